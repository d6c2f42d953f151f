"""
Export metadata loading.

Reads and validates the metadata.json written next to an exported bundle,
yielding per-platform bundle and asset descriptors.
"""

from .loader import (
    filter_exported_platforms_by_flag,
    load_metadata,
    validate_metadata_schema,
)
from .models import (
    ALL_PLATFORMS,
    AssetDescriptor,
    Metadata,
    Platform,
    PlatformFileMetadata,
)

__all__ = [
    "ALL_PLATFORMS",
    "AssetDescriptor",
    "Metadata",
    "Platform",
    "PlatformFileMetadata",
    "filter_exported_platforms_by_flag",
    "load_metadata",
    "validate_metadata_schema",
]
