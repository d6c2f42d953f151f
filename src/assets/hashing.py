"""
Content addressing for assets.

The asset store addresses objects by a storage key derived from the
content type and the SHA-256 of the file bytes:

    storage_key = base64url(sha256(content_type + b"\\0" + base64url(sha256(file))))

Identical bytes served with different content types are distinct objects
in the store, so the content type is part of the key.
"""

import base64
import hashlib
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from src.assets.models import CollectedAssets, ManifestAsset, RawAsset
from src.errors import NotFoundError

CHUNK_SIZE = 1024 * 1024


def base64url_encode(data: bytes) -> str:
    """
    URL-safe base64 without padding.

    Example:
        >>> base64url_encode(b"\\xfb\\xff")
        '-_8'
    """
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def get_storage_key(content_type: str, content_hash: str) -> str:
    """
    Storage key for a content type and base64url file SHA-256.

    Args:
        content_type: MIME type the asset is served with
        content_hash: base64url-encoded SHA-256 of the file bytes

    Returns:
        base64url-encoded storage key
    """
    digest = hashlib.sha256()
    digest.update(content_type.encode("utf-8"))
    digest.update(b"\0")
    digest.update(content_hash.encode("utf-8"))
    return base64url_encode(digest.digest())


def calculate_file_hashes(
    path: Union[str, Path],
    algorithms: Iterable[str],
) -> Dict[str, bytes]:
    """
    Stream a file once, feeding every requested hash algorithm.

    Args:
        path: File to hash
        algorithms: hashlib algorithm names, e.g. ("sha256", "md5")

    Returns:
        Mapping of algorithm name to raw digest

    Raises:
        NotFoundError: If the file is missing or cannot be read
    """
    digests = {name: hashlib.new(name) for name in algorithms}
    try:
        with open(path, "rb") as handle:
            for chunk in iter(lambda: handle.read(CHUNK_SIZE), b""):
                for digest in digests.values():
                    digest.update(chunk)
    except OSError as e:
        raise NotFoundError(f"Cannot read asset file {path}: {e.strerror or e}") from e
    return {name: digest.digest() for name, digest in digests.items()}


def calculate_file_hash(path: Union[str, Path], algorithm: str = "sha256") -> bytes:
    """Return the raw digest of a file for a single algorithm."""
    return calculate_file_hashes(path, [algorithm])[algorithm]


def get_storage_key_for_asset(asset: RawAsset) -> str:
    """Hash an asset's file and derive its storage key."""
    file_sha256 = base64url_encode(calculate_file_hash(asset.path, "sha256"))
    return get_storage_key(asset.content_type, file_sha256)


def convert_asset_to_manifest_asset(asset: RawAsset) -> ManifestAsset:
    """
    Describe an asset for the update manifest.

    SHA-256 and MD5 are computed in a single read of the file.
    """
    hashes = calculate_file_hashes(asset.path, ("sha256", "md5"))
    file_sha256 = base64url_encode(hashes["sha256"])
    return ManifestAsset(
        file_sha256=file_sha256,
        content_type=asset.content_type,
        storage_key=get_storage_key(asset.content_type, file_sha256),
        bundle_key=hashes["md5"].hex(),
        file_extension=asset.file_extension,
    )


def build_unsorted_update_info_group(
    collected: CollectedAssets,
    extra: Optional[Dict[str, Any]] = None,
) -> Dict[str, Dict[str, Any]]:
    """
    Build the per-platform manifest fragments for an update group.

    Platforms appear in collection order; sorting by runtime version is
    left to the caller.

    Args:
        collected: Collected assets
        extra: Optional value stored under "extra" for every platform

    Returns:
        {platform: {"launchAsset": {...}, "assets": [{...}], "extra": {...}}}
    """
    group: Dict[str, Dict[str, Any]] = {}
    for platform_assets in collected:
        assets: List[Dict[str, Any]] = [
            convert_asset_to_manifest_asset(asset).to_dict() for asset in platform_assets.assets
        ]
        group[platform_assets.platform.value] = {
            "launchAsset": convert_asset_to_manifest_asset(platform_assets.launch_asset).to_dict(),
            "assets": assets,
            "extra": dict(extra or {}),
        }
    return group
