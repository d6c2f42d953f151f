"""Pytest configuration."""

import hashlib
import json
import sys
from pathlib import Path

import pytest

# Add src to path for imports
project_root = Path(__file__).parent
src_path = project_root / "src"
if str(src_path.parent) not in sys.path:
    sys.path.insert(0, str(src_path.parent))

from src.api.client import AssetMetadataResult, AssetMetadataStatus  # noqa: E402
from src.assets.hashing import get_storage_key_for_asset  # noqa: E402
from src.assets.models import RawAsset  # noqa: E402


class FakeAssetStore:
    """
    In-memory stand-in for AssetStoreClient and the upload transport.

    Uploaded objects become visible to existence checks after
    `visibility_delay` further checks, like an eventually consistent store.
    """

    def __init__(self, asset_limit: int = 1000, visibility_delay: int = 0) -> None:
        self.objects = set()
        self.pending = {}
        self.asset_limit = asset_limit
        self.visibility_delay = visibility_delay
        self.metadata_requests = []
        self.upload_url_requests = []
        self.uploads = []
        self.specifications_short_by = 0

    def get_asset_metadata(self, storage_keys):
        self.metadata_requests.append(list(storage_keys))
        for key in list(self.pending):
            if self.pending[key] <= 0:
                self.objects.add(key)
                del self.pending[key]
            else:
                self.pending[key] -= 1
        return [
            AssetMetadataResult(
                storage_key=key,
                status=(
                    AssetMetadataStatus.EXISTS
                    if key in self.objects
                    else AssetMetadataStatus.DOES_NOT_EXIST
                ),
            )
            for key in storage_keys
        ]

    def get_upload_urls(self, content_types):
        self.upload_url_requests.append(list(content_types))
        count = len(content_types) - self.specifications_short_by
        offset = sum(len(request) for request in self.upload_url_requests[:-1])
        return [
            json.dumps({"url": "https://uploads.test/", "fields": {"key": f"upload-{offset + i}"}})
            for i in range(count)
        ]

    def get_asset_limit_per_update_group(self, project_id):
        return self.asset_limit

    def upload(self, local_path, presigned_post, content_type=None, **kwargs):
        storage_key = get_storage_key_for_asset(
            RawAsset(path=str(local_path), content_type=content_type)
        )
        self.uploads.append((str(local_path), presigned_post, content_type))
        self.pending[storage_key] = self.visibility_delay


@pytest.fixture
def fake_store(monkeypatch):
    """FakeAssetStore wired in as the pipeline's upload transport."""
    store = FakeAssetStore()
    monkeypatch.setattr("src.publisher.pipeline.upload_with_presigned_post", store.upload)
    return store


@pytest.fixture
def make_export(tmp_path):
    """
    Factory writing an exported bundle directory.

    Usage:
        dist = make_export({"ios": [(b"icon bytes", "png")]})
    """

    def _make_export(platforms, version=0, bundler="metro", asset_map=None):
        dist = tmp_path / "dist"
        (dist / "bundles").mkdir(parents=True, exist_ok=True)
        (dist / "assets").mkdir(exist_ok=True)

        file_metadata = {}
        for platform, assets in platforms.items():
            bundle = f"bundles/{platform}.js"
            (dist / bundle).write_text(f"// {platform} bundle\n", encoding="utf-8")
            descriptors = []
            for content, ext in assets:
                asset_path = f"assets/{hashlib.md5(content).hexdigest()}"
                (dist / asset_path).write_bytes(content)
                descriptors.append({"path": asset_path, "ext": ext})
            file_metadata[platform] = {"bundle": bundle, "assets": descriptors}

        metadata = {"version": version, "bundler": bundler, "fileMetadata": file_metadata}
        (dist / "metadata.json").write_text(json.dumps(metadata), encoding="utf-8")
        if asset_map is not None:
            (dist / "assetmap.json").write_text(json.dumps(asset_map), encoding="utf-8")
        return dist

    return _make_export
