"""
Asset collection, content addressing and deduplication.

Resolves exported asset descriptors into files with content types,
derives each file's storage key, and collapses duplicates across platforms.
"""

from .collector import (
    collect_assets,
    collect_assets_from_metadata,
    ensure_leading_period,
    get_asset_hash_from_path,
    get_original_path_from_asset_map,
    guess_content_type_from_extension,
    load_asset_map,
    resolve_input_directory,
)
from .dedup import attach_storage_keys, flatten_collected_assets, unique_by_storage_key
from .hashing import (
    base64url_encode,
    build_unsorted_update_info_group,
    calculate_file_hash,
    calculate_file_hashes,
    convert_asset_to_manifest_asset,
    get_storage_key,
    get_storage_key_for_asset,
)
from .models import CollectedAssets, KeyedAsset, ManifestAsset, PlatformAssets, RawAsset

__all__ = [
    "CollectedAssets",
    "KeyedAsset",
    "ManifestAsset",
    "PlatformAssets",
    "RawAsset",
    "attach_storage_keys",
    "base64url_encode",
    "build_unsorted_update_info_group",
    "calculate_file_hash",
    "calculate_file_hashes",
    "collect_assets",
    "collect_assets_from_metadata",
    "convert_asset_to_manifest_asset",
    "ensure_leading_period",
    "flatten_collected_assets",
    "get_asset_hash_from_path",
    "get_original_path_from_asset_map",
    "get_storage_key",
    "get_storage_key_for_asset",
    "guess_content_type_from_extension",
    "load_asset_map",
    "resolve_input_directory",
    "unique_by_storage_key",
]
