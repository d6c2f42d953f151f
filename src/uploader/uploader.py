"""
Presigned-post upload transport.

Transfers a single asset to a signed upload destination issued by the asset
store. Transient failures (connection errors, timeouts, HTTP 408/429/5xx)
are retried with exponential backoff; anything else, or running out of
attempts, surfaces as a TransferError naming the file.

Example usage:
    >>> from src.uploader import PresignedPost, upload_with_presigned_post
    >>> presigned_post = PresignedPost.from_specification(specification)
    >>> result = upload_with_presigned_post("/abs/dist/assets/abc123", presigned_post)
    >>> print(f"Uploaded {result.file_size_bytes} bytes in {result.duration_seconds:.2f}s")
"""

import json
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Union

import requests

from src.errors import ProtocolError, TransferError
from src.utils.logging import get_logger
from src.utils.metrics import get_metrics
from src.utils.retry import is_transient_error, retry_with_backoff

# Module logger
logger = get_logger(__name__)

# Configuration constants
MAX_RETRIES = 3
DEFAULT_TIMEOUT_SECONDS = 300
BASE_RETRY_DELAY_SECONDS = 2.0
MAX_RETRY_DELAY_SECONDS = 30.0


@dataclass(frozen=True)
class PresignedPost:
    """
    Signed single-shot multipart upload destination.

    Attributes:
        url: Endpoint to POST the form to
        fields: Form fields that must accompany the file (policy, signature...)
    """

    url: str
    fields: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_specification(cls, specification: str) -> "PresignedPost":
        """
        Parse a JSON upload specification issued by the asset store.

        Raises:
            ProtocolError: If the specification is not {"url": str, "fields": {...}}
        """
        try:
            payload = json.loads(specification)
        except (TypeError, ValueError) as e:
            raise ProtocolError(f"Upload specification is not valid JSON: {e}") from e

        if not isinstance(payload, dict) or not isinstance(payload.get("url"), str):
            raise ProtocolError("Upload specification is missing a url")

        fields = payload.get("fields") or {}
        if not isinstance(fields, dict):
            raise ProtocolError("Upload specification fields must be an object")

        return cls(url=payload["url"], fields={str(k): str(v) for k, v in fields.items()})


@dataclass
class UploadResult:
    """
    Result of a completed transfer.

    Attributes:
        local_path: File that was uploaded
        url: Destination endpoint
        file_size_bytes: Size of the uploaded file
        duration_seconds: Time spent, including retries
    """

    local_path: str
    url: str
    file_size_bytes: int
    duration_seconds: float


def _perform_presigned_post(
    local_path_obj: Path,
    presigned_post: PresignedPost,
    content_type: Optional[str],
    timeout_seconds: float,
) -> None:
    """
    POST the file once. Raises requests exceptions on failure.

    Note:
        Called through retry_with_backoff by upload_with_presigned_post;
        use that instead.
    """
    logger.debug(f"Posting {local_path_obj.name} -> {presigned_post.url}")

    with open(local_path_obj, "rb") as handle:
        file_part = (
            (local_path_obj.name, handle, content_type)
            if content_type
            else (local_path_obj.name, handle)
        )
        response = requests.post(
            presigned_post.url,
            data=presigned_post.fields,
            files={"file": file_part},
            timeout=timeout_seconds,
        )
    response.raise_for_status()


def upload_with_presigned_post(
    local_path: Union[str, Path],
    presigned_post: PresignedPost,
    content_type: Optional[str] = None,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    max_attempts: int = MAX_RETRIES,
) -> UploadResult:
    """
    Upload one file to a presigned-post destination, retrying transient failures.

    Args:
        local_path: Absolute path of the file to upload
        presigned_post: Destination issued by the asset store
        content_type: MIME type for the file part (optional)
        timeout_seconds: Per-attempt request timeout
        max_attempts: Attempts before giving up (including the first)

    Returns:
        UploadResult describing the transfer

    Raises:
        TransferError: If the file is unreadable, the store rejects it, or
            every attempt failed
    """
    metrics = get_metrics()
    start_time = time.time()
    local_path_obj = Path(local_path)

    if not local_path_obj.is_file():
        metrics.record_upload_failure()
        raise TransferError(f"File not found: {local_path}", path=str(local_path))

    file_size = local_path_obj.stat().st_size

    perform = retry_with_backoff(
        max_attempts=max_attempts,
        base_delay=BASE_RETRY_DELAY_SECONDS,
        max_delay=MAX_RETRY_DELAY_SECONDS,
        jitter=True,
        exceptions=(requests.RequestException, OSError),
        retry_if=is_transient_error,
    )(_perform_presigned_post)

    try:
        with metrics.track_upload():
            perform(local_path_obj, presigned_post, content_type, timeout_seconds)
    except (requests.RequestException, OSError) as e:
        metrics.record_upload_failure()
        logger.error(f"Upload failed for {local_path}: {e}")
        raise TransferError(f"Failed to upload {local_path}: {e}", path=str(local_path)) from e

    duration = time.time() - start_time
    metrics.record_upload_success(bytes_uploaded=file_size)
    logger.debug(f"Uploaded {local_path_obj.name} ({file_size} bytes in {duration:.2f}s)")

    return UploadResult(
        local_path=str(local_path),
        url=presigned_post.url,
        file_size_bytes=file_size,
        duration_seconds=duration,
    )
