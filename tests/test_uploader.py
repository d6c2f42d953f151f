"""
Unit tests for uploader module (presigned-post transport).

Tests the transport without network access: requests.post is mocked and
retry delays are zeroed. Validates specification parsing, retry behavior on
transient failures, and error reporting.
"""

import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from src.errors import ProtocolError, TransferError
from src.uploader import PresignedPost, UploadResult, upload_with_presigned_post


def _response(status_code=204):
    """Build a mock response whose raise_for_status mirrors the status."""
    response = MagicMock(status_code=status_code)
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(
            f"{status_code} error", response=MagicMock(status_code=status_code)
        )
    return response


@pytest.fixture
def no_retry_delay(monkeypatch):
    monkeypatch.setattr("src.uploader.uploader.BASE_RETRY_DELAY_SECONDS", 0.0)
    monkeypatch.setattr("src.uploader.uploader.MAX_RETRY_DELAY_SECONDS", 0.0)


@pytest.fixture
def asset_file(tmp_path):
    path = tmp_path / "2f334f6c7ca5b2a504bdf8acdee104f3"
    path.write_bytes(b"\x89PNG fake image")
    return path


class TestPresignedPost:
    """Test upload specification parsing."""

    def test_from_specification(self):
        """Test parsing a specification with url and fields."""
        specification = json.dumps({"url": "https://bucket.test/", "fields": {"key": "abc", "policy": 1}})

        presigned_post = PresignedPost.from_specification(specification)

        assert presigned_post.url == "https://bucket.test/"
        assert presigned_post.fields == {"key": "abc", "policy": "1"}

    def test_fields_optional(self):
        presigned_post = PresignedPost.from_specification('{"url": "https://bucket.test/"}')
        assert presigned_post.fields == {}

    def test_invalid_json(self):
        with pytest.raises(ProtocolError, match="not valid JSON"):
            PresignedPost.from_specification("not json")

    def test_missing_url(self):
        with pytest.raises(ProtocolError, match="missing a url"):
            PresignedPost.from_specification('{"fields": {}}')

    def test_fields_not_object(self):
        with pytest.raises(ProtocolError, match="fields must be an object"):
            PresignedPost.from_specification('{"url": "https://bucket.test/", "fields": []}')


class TestUploadWithPresignedPost:
    """Test upload_with_presigned_post."""

    def test_successful_upload(self, asset_file):
        """Test a single successful POST returns an UploadResult."""
        presigned_post = PresignedPost(url="https://bucket.test/", fields={"key": "abc"})

        with patch("src.uploader.uploader.requests.post", return_value=_response()) as mock_post:
            result = upload_with_presigned_post(asset_file, presigned_post, content_type="image/png")

        assert isinstance(result, UploadResult)
        assert result.file_size_bytes == asset_file.stat().st_size
        assert result.url == "https://bucket.test/"

        args, kwargs = mock_post.call_args
        assert args[0] == "https://bucket.test/"
        assert kwargs["data"] == {"key": "abc"}
        filename, _, content_type = kwargs["files"]["file"]
        assert filename == asset_file.name
        assert content_type == "image/png"

    def test_missing_file(self, tmp_path):
        presigned_post = PresignedPost(url="https://bucket.test/")

        with patch("src.uploader.uploader.requests.post") as mock_post:
            with pytest.raises(TransferError) as exc_info:
                upload_with_presigned_post(tmp_path / "missing", presigned_post)

        assert exc_info.value.path.endswith("missing")
        mock_post.assert_not_called()

    def test_transient_failure_is_retried(self, asset_file, no_retry_delay):
        """Test that a 503 followed by success uploads once more."""
        presigned_post = PresignedPost(url="https://bucket.test/")

        with patch(
            "src.uploader.uploader.requests.post",
            side_effect=[_response(503), _response(204)],
        ) as mock_post:
            upload_with_presigned_post(asset_file, presigned_post)

        assert mock_post.call_count == 2

    def test_connection_errors_exhaust_attempts(self, asset_file, no_retry_delay):
        presigned_post = PresignedPost(url="https://bucket.test/")

        with patch(
            "src.uploader.uploader.requests.post",
            side_effect=requests.ConnectionError("connection reset"),
        ) as mock_post:
            with pytest.raises(TransferError, match="connection reset"):
                upload_with_presigned_post(asset_file, presigned_post, max_attempts=3)

        assert mock_post.call_count == 3

    def test_client_error_not_retried(self, asset_file, no_retry_delay):
        """Test that a 403 (e.g. expired signature) fails immediately."""
        presigned_post = PresignedPost(url="https://bucket.test/")

        with patch(
            "src.uploader.uploader.requests.post", return_value=_response(403)
        ) as mock_post:
            with pytest.raises(TransferError) as exc_info:
                upload_with_presigned_post(asset_file, presigned_post)

        assert mock_post.call_count == 1
        assert exc_info.value.path == str(asset_file)
