"""Tests for storage keys and deduplication."""

import base64
import hashlib

import pytest

from src.assets import (
    PlatformAssets,
    RawAsset,
    attach_storage_keys,
    base64url_encode,
    build_unsorted_update_info_group,
    convert_asset_to_manifest_asset,
    flatten_collected_assets,
    get_storage_key,
    get_storage_key_for_asset,
    unique_by_storage_key,
)
from src.errors import NotFoundError
from src.metadata import Platform


def _write(tmp_path, name, content):
    path = tmp_path / name
    path.write_bytes(content)
    return str(path)


class TestStorageKey:
    """Test content addressing."""

    def test_base64url_has_no_padding(self):
        """Test URL-safe alphabet without '=' padding."""
        assert base64url_encode(b"\xfb\xff") == "-_8"

    def test_matches_reference_construction(self, tmp_path):
        """Test the key is sha256 over content type, NUL, base64url file hash."""
        path = _write(tmp_path, "icon", b"png bytes")
        file_hash = base64.urlsafe_b64encode(hashlib.sha256(b"png bytes").digest()).rstrip(b"=")
        expected = base64.urlsafe_b64encode(
            hashlib.sha256(b"image/png\x00" + file_hash).digest()
        ).rstrip(b"=").decode()

        assert get_storage_key_for_asset(RawAsset(path=path, content_type="image/png")) == expected

    def test_identical_bytes_and_type_give_equal_keys(self, tmp_path):
        """Test that equal bytes with equal type share a key."""
        first = _write(tmp_path, "a", b"same")
        second = _write(tmp_path, "b", b"same")

        assert get_storage_key_for_asset(
            RawAsset(first, "image/png")
        ) == get_storage_key_for_asset(RawAsset(second, "image/png"))

    def test_content_type_changes_key(self, tmp_path):
        """Test that the content type is part of the key."""
        path = _write(tmp_path, "a", b"same")

        assert get_storage_key_for_asset(RawAsset(path, "image/png")) != get_storage_key_for_asset(
            RawAsset(path, "application/octet-stream")
        )

    def test_get_storage_key_is_deterministic(self):
        """Test that the key depends only on its inputs."""
        assert get_storage_key("image/png", "abc") == get_storage_key("image/png", "abc")

    def test_missing_file(self, tmp_path):
        """Test that hashing a file that does not exist raises NotFoundError with its path."""
        missing = str(tmp_path / "gone")

        with pytest.raises(NotFoundError, match="gone"):
            get_storage_key_for_asset(RawAsset(missing, "image/png"))


class TestManifestAsset:
    """Test manifest asset descriptions."""

    def test_convert_asset(self, tmp_path):
        """Test manifest fields of a regular asset."""
        path = _write(tmp_path, "icon", b"icon")
        asset = RawAsset(path=path, content_type="image/png", file_extension=".png")

        manifest_asset = convert_asset_to_manifest_asset(asset)

        assert manifest_asset.bundle_key == hashlib.md5(b"icon").hexdigest()
        assert manifest_asset.storage_key == get_storage_key_for_asset(asset)
        assert manifest_asset.to_dict()["fileExtension"] == ".png"

    def test_launch_asset_without_extension(self, tmp_path):
        """Test that a missing extension is omitted from the manifest."""
        path = _write(tmp_path, "bundle.js", b"code")
        payload = convert_asset_to_manifest_asset(
            RawAsset(path=path, content_type="application/javascript")
        ).to_dict()

        assert "fileExtension" not in payload
        assert payload["contentType"] == "application/javascript"

    def test_update_info_group(self, tmp_path):
        """Test the per-platform manifest grouping."""
        bundle = _write(tmp_path, "ios.js", b"code")
        icon = _write(tmp_path, "icon", b"icon")
        collected = [
            PlatformAssets(
                platform=Platform.IOS,
                launch_asset=RawAsset(bundle, "application/javascript", ".bundle"),
                assets=(RawAsset(icon, "image/png", ".png"),),
            )
        ]

        group = build_unsorted_update_info_group(collected, extra={"branch": "main"})

        assert list(group) == ["ios"]
        assert group["ios"]["extra"] == {"branch": "main"}
        assert len(group["ios"]["assets"]) == 1


class TestDeduplication:
    """Test collapsing assets by storage key."""

    def _collected(self, tmp_path):
        icon_ios = _write(tmp_path, "icon-ios", b"shared icon")
        icon_android = _write(tmp_path, "icon-android", b"shared icon")
        return [
            PlatformAssets(
                Platform.IOS,
                RawAsset(_write(tmp_path, "ios.js", b"ios"), "application/javascript"),
                (RawAsset(icon_ios, "image/png"),),
            ),
            PlatformAssets(
                Platform.ANDROID,
                RawAsset(_write(tmp_path, "android.js", b"android"), "application/javascript"),
                (RawAsset(icon_android, "image/png"),),
            ),
        ]

    def test_flatten_order(self, tmp_path):
        """Test that each platform contributes its launch asset then its assets."""
        collected = self._collected(tmp_path)

        flattened = flatten_collected_assets(collected)

        assert flattened == [
            collected[0].launch_asset,
            collected[0].assets[0],
            collected[1].launch_asset,
            collected[1].assets[0],
        ]

    def test_shared_asset_collapses(self, tmp_path):
        """Test that the first occurrence of a shared asset is kept."""
        keyed = attach_storage_keys(flatten_collected_assets(self._collected(tmp_path)))

        unique = unique_by_storage_key(keyed)

        assert len(keyed) == 4
        assert len(unique) == 3
        assert unique[1].path.endswith("icon-ios")

    def test_dedup_is_idempotent(self, tmp_path):
        """Test that deduplicating twice changes nothing."""
        keyed = attach_storage_keys(flatten_collected_assets(self._collected(tmp_path)))

        unique = unique_by_storage_key(keyed)

        assert unique_by_storage_key(unique) == unique
