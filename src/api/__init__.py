"""Remote asset store API client."""

from .client import (
    AssetMetadataResult,
    AssetMetadataStatus,
    AssetStoreClient,
)

__all__ = [
    "AssetMetadataResult",
    "AssetMetadataStatus",
    "AssetStoreClient",
]
