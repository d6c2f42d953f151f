"""Tests for metadata.json loading and validation."""

import json

import pytest

from src.errors import NotFoundError, ValidationError
from src.metadata import (
    Platform,
    filter_exported_platforms_by_flag,
    load_metadata,
    validate_metadata_schema,
)


def _valid_payload():
    return {
        "version": 0,
        "bundler": "metro",
        "fileMetadata": {
            "ios": {
                "bundle": "bundles/ios.js",
                "assets": [{"path": "assets/abc123", "ext": "png"}],
            },
            "android": {"bundle": "bundles/android.js", "assets": []},
        },
    }


class TestValidateMetadataSchema:
    """Test the fixed schema check."""

    def test_valid_payload(self):
        """Test that a well-formed document has no errors."""
        assert validate_metadata_schema(_valid_payload()) == []

    def test_non_object_document(self):
        errors = validate_metadata_schema([1, 2])
        assert len(errors) == 1
        assert errors[0].field == "metadata"

    def test_reports_every_issue(self):
        """Test that all problems are reported at once."""
        payload = {"version": "0", "bundler": 3, "fileMetadata": {}}
        fields = [error.field for error in validate_metadata_schema(payload)]
        assert fields == ["version", "bundler"]

    def test_unknown_platform_key(self):
        payload = _valid_payload()
        payload["fileMetadata"]["windows"] = {"bundle": "b.js", "assets": []}

        errors = validate_metadata_schema(payload)

        assert [error.field for error in errors] == ["fileMetadata.windows"]

    def test_asset_descriptor_fields(self):
        payload = _valid_payload()
        payload["fileMetadata"]["ios"]["assets"] = [{"path": "assets/abc"}, {"path": 1, "ext": "png"}]

        fields = [error.field for error in validate_metadata_schema(payload)]

        assert "fileMetadata.ios.assets[0].ext" in fields
        assert "fileMetadata.ios.assets[1].path" in fields

    def test_boolean_version_rejected(self):
        """Test that true/false is not accepted as a number."""
        payload = _valid_payload()
        payload["version"] = False
        assert [error.field for error in validate_metadata_schema(payload)] == ["version"]

    def test_empty_strings_rejected(self):
        """Test that empty bundle, path and ext values are schema errors."""
        payload = _valid_payload()
        payload["fileMetadata"]["ios"] = {"bundle": "", "assets": [{"path": "", "ext": ""}]}

        errors = validate_metadata_schema(payload)

        assert [error.field for error in errors] == [
            "fileMetadata.ios.bundle",
            "fileMetadata.ios.assets[0].path",
            "fileMetadata.ios.assets[0].ext",
        ]
        assert all(error.message == "Must not be empty" for error in errors)

    def test_unknown_fields_rejected(self):
        """Test that fields outside the schema are reported at every level."""
        payload = _valid_payload()
        payload["extra"] = 1
        payload["fileMetadata"]["ios"]["hash"] = "abc"
        payload["fileMetadata"]["ios"]["assets"][0]["size"] = 10

        errors = validate_metadata_schema(payload)

        assert [error.field for error in errors] == [
            "extra",
            "fileMetadata.ios.hash",
            "fileMetadata.ios.assets[0].size",
        ]
        assert all(error.message == "Unknown field" for error in errors)


class TestLoadMetadata:
    """Test load_metadata against files on disk."""

    def _write(self, tmp_path, payload):
        (tmp_path / "metadata.json").write_text(json.dumps(payload), encoding="utf-8")
        return tmp_path

    def test_loads_platforms_in_file_order(self, tmp_path):
        metadata = load_metadata(self._write(tmp_path, _valid_payload()))

        assert metadata.platforms == [Platform.IOS, Platform.ANDROID]
        assert metadata.get(Platform.IOS).assets[0].path == "assets/abc123"
        assert metadata.get(Platform.WEB) is None

    def test_missing_file(self, tmp_path):
        with pytest.raises(NotFoundError, match="metadata.json not found"):
            load_metadata(tmp_path)

    def test_invalid_json(self, tmp_path):
        (tmp_path / "metadata.json").write_text("{not json", encoding="utf-8")
        with pytest.raises(ValidationError, match="not valid JSON"):
            load_metadata(tmp_path)

    def test_schema_issues_listed(self, tmp_path):
        payload = _valid_payload()
        del payload["bundler"]
        payload["fileMetadata"]["web"] = {"assets": []}

        with pytest.raises(ValidationError) as exc_info:
            load_metadata(self._write(tmp_path, payload))

        assert len(exc_info.value.issues) == 2
        assert "bundler: Missing required field" in str(exc_info.value)

    def test_unsupported_version(self, tmp_path):
        payload = _valid_payload()
        payload["version"] = 1
        with pytest.raises(ValidationError, match="Only bundles with metadata version 0 are supported"):
            load_metadata(self._write(tmp_path, payload))

    def test_unsupported_bundler(self, tmp_path):
        payload = _valid_payload()
        payload["bundler"] = "webpack"
        with pytest.raises(
            ValidationError, match="Only bundles created with Metro are currently supported"
        ):
            load_metadata(self._write(tmp_path, payload))

    def test_no_platforms_warns(self, tmp_path, caplog):
        payload = _valid_payload()
        payload["fileMetadata"] = {}

        metadata = load_metadata(self._write(tmp_path, payload))

        assert metadata.platforms == []
        assert "No updates were exported" in caplog.text


class TestFilterExportedPlatforms:
    """Test --platform filtering."""

    def test_all_returns_everything(self, tmp_path):
        (tmp_path / "metadata.json").write_text(json.dumps(_valid_payload()), encoding="utf-8")
        metadata = load_metadata(tmp_path)

        assert filter_exported_platforms_by_flag(metadata, "all") == metadata

    def test_single_platform(self, tmp_path):
        (tmp_path / "metadata.json").write_text(json.dumps(_valid_payload()), encoding="utf-8")
        metadata = load_metadata(tmp_path)

        filtered = filter_exported_platforms_by_flag(metadata, "android")

        assert filtered.platforms == [Platform.ANDROID]

    def test_platform_not_exported(self, tmp_path):
        (tmp_path / "metadata.json").write_text(json.dumps(_valid_payload()), encoding="utf-8")
        metadata = load_metadata(tmp_path)

        with pytest.raises(NotFoundError) as exc_info:
            filter_exported_platforms_by_flag(metadata, "web")

        message = str(exc_info.value)
        assert '--platform="web" not found in metadata.json' in message
        assert "Available platform(s): ios, android" in message


class TestLoadMetadataStrictness:
    """Test that load_metadata refuses documents outside the schema."""

    def test_rejects_empty_and_unknown_fields(self, tmp_path):
        """Test the combined document with empty strings and an extra key."""
        payload = {
            "version": 0,
            "bundler": "metro",
            "extra": 1,
            "fileMetadata": {"ios": {"bundle": "", "assets": [{"path": "", "ext": ""}]}},
        }
        (tmp_path / "metadata.json").write_text(json.dumps(payload), encoding="utf-8")

        with pytest.raises(ValidationError) as exc_info:
            load_metadata(tmp_path)

        assert len(exc_info.value.issues) == 4
        assert "extra: Unknown field" in exc_info.value.issues
