"""Value objects produced while collecting and addressing assets."""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from src.metadata.models import Platform


@dataclass(frozen=True)
class RawAsset:
    """
    One asset occurrence for one platform.

    The same file referenced by two platforms yields two RawAsset instances;
    they collapse only during deduplication.

    Attributes:
        path: Absolute path of the file on disk
        content_type: MIME type the asset is served with
        file_extension: Extension with a leading '.', when known
        original_path: Pre-hash source path, used only for display
    """

    path: str
    content_type: str
    file_extension: Optional[str] = None
    original_path: Optional[str] = None


@dataclass(frozen=True)
class PlatformAssets:
    """The launch asset (JS bundle) and regular assets of one platform."""

    platform: Platform
    launch_asset: RawAsset
    assets: Tuple[RawAsset, ...] = ()


# Ordered per-platform groups, in metadata order
CollectedAssets = List[PlatformAssets]


@dataclass(frozen=True)
class KeyedAsset:
    """A RawAsset paired with its storage key."""

    asset: RawAsset
    storage_key: str

    @property
    def path(self) -> str:
        return self.asset.path

    @property
    def content_type(self) -> str:
        return self.asset.content_type

    @property
    def original_path(self) -> Optional[str]:
        return self.asset.original_path


@dataclass(frozen=True)
class ManifestAsset:
    """
    Asset reference in the shape the update manifest expects.

    Attributes:
        file_sha256: base64url SHA-256 of the file bytes
        content_type: MIME type
        storage_key: Content address in the asset store
        bundle_key: Hex MD5 of the file bytes
        file_extension: Extension with a leading '.', when known
    """

    file_sha256: str
    content_type: str
    storage_key: str
    bundle_key: str
    file_extension: Optional[str] = None

    def to_dict(self) -> dict:
        payload = {
            "fileSHA256": self.file_sha256,
            "contentType": self.content_type,
            "storageKey": self.storage_key,
            "bundleKey": self.bundle_key,
        }
        if self.file_extension is not None:
            payload["fileExtension"] = self.file_extension
        return payload
