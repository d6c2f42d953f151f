"""
Storage key deduplication.

The same icon or font is usually referenced by every platform's bundle.
Collapsing assets by storage key before talking to the store means each
object is negotiated and transferred once.
"""

from typing import Iterable, List

from src.assets.hashing import get_storage_key_for_asset
from src.assets.models import CollectedAssets, KeyedAsset, RawAsset


def flatten_collected_assets(collected: CollectedAssets) -> List[RawAsset]:
    """Every asset occurrence, launch asset first, platform by platform."""
    assets: List[RawAsset] = []
    for platform_assets in collected:
        assets.append(platform_assets.launch_asset)
        assets.extend(platform_assets.assets)
    return assets


def attach_storage_keys(assets: Iterable[RawAsset]) -> List[KeyedAsset]:
    """Hash each asset occurrence once and pair it with its storage key."""
    return [KeyedAsset(asset=asset, storage_key=get_storage_key_for_asset(asset)) for asset in assets]


def unique_by_storage_key(keyed_assets: Iterable[KeyedAsset]) -> List[KeyedAsset]:
    """
    Keep the first asset seen for each storage key, preserving order.

    Example:
        >>> unique = unique_by_storage_key(keyed)
        >>> unique_by_storage_key(unique) == unique
        True
    """
    seen = set()
    unique: List[KeyedAsset] = []
    for keyed in keyed_assets:
        if keyed.storage_key in seen:
            continue
        seen.add(keyed.storage_key)
        unique.append(keyed)
    return unique
