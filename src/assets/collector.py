"""
Asset collection for an exported bundle.

Turns validated metadata into per-platform RawAsset groups: absolute file
paths, content types, and (when the exporter dumped an asset map) the
human-readable source path of each hashed asset.

Example usage:
    >>> from src.assets import collect_assets
    >>> collected = collect_assets("dist")
    >>> for group in collected:
    ...     print(group.platform.value, len(group.assets))
"""

import json
import re
from pathlib import Path
from typing import Dict, Optional, Union

from src.assets.models import CollectedAssets, PlatformAssets, RawAsset
from src.errors import NotFoundError
from src.metadata.loader import load_metadata
from src.metadata.models import AssetDescriptor, Metadata
from src.utils.logging import get_logger, log_function_call

logger = get_logger(__name__)

ASSET_MAP_FILENAME = "assetmap.json"

LAUNCH_ASSET_EXTENSION = ".bundle"
LAUNCH_ASSET_CONTENT_TYPE = "application/javascript"
DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Last path segment of an exported asset is its content hash
_ASSET_HASH_PATTERN = re.compile(r"assets/([a-z0-9]+)$", re.IGNORECASE)

# Extension -> MIME type for the asset kinds bundlers export
CONTENT_TYPES: Dict[str, str] = {
    # images
    "apng": "image/apng",
    "avif": "image/avif",
    "bmp": "image/bmp",
    "gif": "image/gif",
    "heic": "image/heic",
    "heif": "image/heif",
    "ico": "image/vnd.microsoft.icon",
    "jp2": "image/jp2",
    "jpeg": "image/jpeg",
    "jpg": "image/jpeg",
    "jxl": "image/jxl",
    "ktx": "image/ktx",
    "ktx2": "image/ktx2",
    "png": "image/png",
    "psd": "image/vnd.adobe.photoshop",
    "svg": "image/svg+xml",
    "tif": "image/tiff",
    "tiff": "image/tiff",
    "webp": "image/webp",
    # audio
    "aac": "audio/aac",
    "aif": "audio/x-aiff",
    "aifc": "audio/x-aiff",
    "aiff": "audio/x-aiff",
    "amr": "audio/amr",
    "caf": "audio/x-caf",
    "flac": "audio/x-flac",
    "m4a": "audio/mp4",
    "mid": "audio/midi",
    "midi": "audio/midi",
    "mp3": "audio/mpeg",
    "oga": "audio/ogg",
    "ogg": "audio/ogg",
    "opus": "audio/ogg",
    "spx": "audio/ogg",
    "wav": "audio/wav",
    "weba": "audio/webm",
    # video
    "3g2": "video/3gpp2",
    "3gp": "video/3gpp",
    "avi": "video/x-msvideo",
    "m4v": "video/x-m4v",
    "mkv": "video/x-matroska",
    "mov": "video/quicktime",
    "mp4": "video/mp4",
    "mpeg": "video/mpeg",
    "mpg": "video/mpeg",
    "webm": "video/webm",
    # 3D models
    "glb": "model/gltf-binary",
    "gltf": "model/gltf+json",
    "stl": "model/stl",
    "usdz": "model/vnd.usdz+zip",
    # fonts
    "eot": "application/vnd.ms-fontobject",
    "otf": "font/otf",
    "ttc": "font/collection",
    "ttf": "font/ttf",
    "woff": "font/woff",
    "woff2": "font/woff2",
    # text and data
    "css": "text/css",
    "csv": "text/csv",
    "htm": "text/html",
    "html": "text/html",
    "ics": "text/calendar",
    "js": "application/javascript",
    "json": "application/json",
    "map": "application/json",
    "md": "text/markdown",
    "mjs": "application/javascript",
    "pdf": "application/pdf",
    "tsv": "text/tab-separated-values",
    "txt": "text/plain",
    "wasm": "application/wasm",
    "webmanifest": "application/manifest+json",
    "xml": "application/xml",
    "yaml": "text/yaml",
    "yml": "text/yaml",
    "zip": "application/zip",
}

# hash -> {"httpServerLocation": ..., "name": ..., "type": ...}
AssetMap = Dict[str, Dict[str, str]]


def guess_content_type_from_extension(ext: Optional[str]) -> str:
    """
    Map a file extension to a MIME type.

    Args:
        ext: Extension with or without a leading '.', any case

    Returns:
        MIME type, or application/octet-stream for unknown extensions

    Example:
        >>> guess_content_type_from_extension(".PNG")
        'image/png'
        >>> guess_content_type_from_extension("unknown")
        'application/octet-stream'
    """
    if not ext:
        return DEFAULT_CONTENT_TYPE
    return CONTENT_TYPES.get(ext.lstrip(".").lower(), DEFAULT_CONTENT_TYPE)


def ensure_leading_period(extension: str) -> str:
    return extension if extension.startswith(".") else f".{extension}"


def resolve_input_directory(
    input_dir: Union[str, Path],
    skip_bundler: bool = False,
) -> Path:
    """
    Resolve the export directory to an absolute path.

    Args:
        input_dir: Directory the bundle was exported to
        skip_bundler: Whether the caller skipped exporting, which changes
            the guidance in the error message

    Returns:
        Absolute path of the export directory

    Raises:
        NotFoundError: If the directory does not exist
    """
    dist_root = Path(input_dir).resolve()
    if not dist_root.exists():
        message = f'--input-dir="{input_dir}" not found.'
        if skip_bundler:
            message += (
                " --skip-bundler requires the project to be exported manually "
                "before uploading. Ex: npx expo export && eas update --skip-bundler"
            )
        raise NotFoundError(message)
    return dist_root


def load_asset_map(dist_root: Union[str, Path]) -> Optional[AssetMap]:
    """
    Load assetmap.json, used only to log the source names of uploaded assets.

    Entries lacking a string httpServerLocation, name or type are dropped.
    A missing or unreadable file yields None: the asset map is advisory.

    Args:
        dist_root: Export directory

    Returns:
        Asset map keyed by content hash, or None
    """
    asset_map_path = Path(dist_root) / ASSET_MAP_FILENAME
    if not asset_map_path.is_file():
        return None

    try:
        payload = json.loads(asset_map_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Ignoring unreadable {ASSET_MAP_FILENAME}: {e}")
        return None

    if not isinstance(payload, dict):
        logger.warning(f"Ignoring {ASSET_MAP_FILENAME}: expected an object")
        return None

    asset_map: AssetMap = {}
    for asset_hash, entry in payload.items():
        if isinstance(entry, dict) and all(
            isinstance(entry.get(key), str) for key in ("httpServerLocation", "name", "type")
        ):
            asset_map[asset_hash] = entry
        else:
            logger.debug(f"Skipping malformed asset map entry: {asset_hash}")
    return asset_map


def get_asset_hash_from_path(asset_path: str) -> Optional[str]:
    """
    Extract the content hash from an exported asset path.

    Example:
        >>> get_asset_hash_from_path("assets/2f334f6c7ca5b2a504bdf8acdee104f3")
        '2f334f6c7ca5b2a504bdf8acdee104f3'
    """
    match = _ASSET_HASH_PATTERN.search(asset_path)
    return match.group(1) if match else None


def get_original_path_from_asset_map(
    asset_map: Optional[AssetMap],
    asset: AssetDescriptor,
) -> Optional[str]:
    """
    Recover the source path of a hashed asset for display.

    Args:
        asset_map: Loaded asset map, or None
        asset: Descriptor from metadata.json

    Returns:
        Path such as "/sub/icon.png", or None when it cannot be resolved

    Example:
        >>> asset_map = {"abc123": {"httpServerLocation": "/assets/sub",
        ...                         "name": "icon", "type": "png"}}
        >>> get_original_path_from_asset_map(asset_map, AssetDescriptor("assets/abc123", "png"))
        '/sub/icon.png'
    """
    if not asset_map:
        return None

    asset_hash = get_asset_hash_from_path(asset.path)
    entry = asset_map.get(asset_hash) if asset_hash else None
    if not entry:
        return None

    path_prefix = entry["httpServerLocation"][len("/assets"):]
    return f"{path_prefix}/{entry['name']}.{entry['type']}"


def _require_file(path: Path, platform: str, relative_path: str) -> Path:
    if not path.is_file():
        raise NotFoundError(
            f'File "{relative_path}" listed for platform "{platform}" in metadata.json '
            f"does not exist. Re-export the project before publishing."
        )
    return path


def collect_assets_from_metadata(
    dist_root: Union[str, Path],
    metadata: Metadata,
    asset_map: Optional[AssetMap] = None,
) -> CollectedAssets:
    """
    Build per-platform RawAsset groups from validated metadata.

    Args:
        dist_root: Export directory the metadata paths are relative to
        metadata: Validated metadata
        asset_map: Optional asset map for original path lookup

    Returns:
        One PlatformAssets per exported platform, in metadata order

    Raises:
        NotFoundError: If a bundle or asset listed in the metadata is not on disk
    """
    root = Path(dist_root).resolve()
    collected: CollectedAssets = []

    for platform, files in metadata:
        bundle_path = _require_file((root / files.bundle).resolve(), platform.value, files.bundle)
        launch_asset = RawAsset(
            path=str(bundle_path),
            content_type=LAUNCH_ASSET_CONTENT_TYPE,
            file_extension=LAUNCH_ASSET_EXTENSION,
        )
        assets = tuple(
            RawAsset(
                path=str(_require_file(root / descriptor.path, platform.value, descriptor.path)),
                content_type=guess_content_type_from_extension(descriptor.ext),
                file_extension=ensure_leading_period(descriptor.ext) if descriptor.ext else None,
                original_path=get_original_path_from_asset_map(asset_map, descriptor),
            )
            for descriptor in files.assets
        )
        collected.append(PlatformAssets(platform=platform, launch_asset=launch_asset, assets=assets))
        logger.debug(f"Collected {len(assets)} asset(s) for {platform.value}")

    return collected


@log_function_call
def collect_assets(
    dist_root: Union[str, Path],
    metadata: Optional[Metadata] = None,
) -> CollectedAssets:
    """
    Load metadata.json and assetmap.json and collect every platform's assets.

    Args:
        dist_root: Export directory
        metadata: Already loaded (and possibly platform-filtered) metadata;
            loaded from dist_root when omitted

    Returns:
        One PlatformAssets per exported platform

    Raises:
        NotFoundError: If metadata.json or a file it lists is missing
        ValidationError: If metadata.json is invalid
    """
    if metadata is None:
        metadata = load_metadata(dist_root)
    asset_map = load_asset_map(dist_root)
    return collect_assets_from_metadata(dist_root, metadata, asset_map)
