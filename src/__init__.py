"""
Update Asset Publisher

Publishes an exported application bundle (JavaScript bundle plus static
assets, per platform) to a content-addressed remote asset store.

This package provides modular components for each stage of a publish:
- metadata: metadata.json loading and validation
- assets: asset collection, content addressing and deduplication
- api: client for the remote asset store
- uploader: presigned-post upload transport with retry
- publisher: the end-to-end asset upload pipeline
- utils: logging, configuration, retry and metrics helpers

See README.md for detailed documentation and usage examples.
"""

__version__ = "0.1.0"

# Package-level imports
from src.utils.logging import setup_logging

# Initialize default logging configuration
setup_logging()
