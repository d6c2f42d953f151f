"""
Error types raised by the publish pipeline.

Every error carries a human-readable message naming the offending platform,
file or limit where one applies. All of them derive from PublishError so the
CLI can map them to a single exit code.
"""

from typing import List, Optional


class PublishError(Exception):
    """Base class for all publish pipeline errors."""

    pass


class ValidationError(PublishError):
    """
    Malformed or unsupported export metadata.

    Attributes:
        issues: Individual schema problems, one line each (may be empty when
            the error is a single semantic check such as the bundler name)
    """

    def __init__(self, message: str, issues: Optional[List[str]] = None) -> None:
        super().__init__(message)
        self.issues = list(issues or [])


class NotFoundError(PublishError):
    """Export directory, metadata file or requested platform is missing."""

    pass


class ProtocolError(PublishError):
    """The asset store answered with a response that contradicts the request."""

    pass


class ApiError(PublishError):
    """
    A request to the asset store failed at the HTTP or GraphQL level.

    Attributes:
        operation: Name of the API operation that failed
        status_code: HTTP status code, if a response was received
    """

    def __init__(
        self,
        message: str,
        operation: str,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.status_code = status_code


class TransferError(PublishError):
    """
    Uploading a single asset failed after the transport exhausted its retries.

    Attributes:
        path: Local path of the asset that could not be uploaded
    """

    def __init__(self, message: str, path: str) -> None:
        super().__init__(message)
        self.path = path


class ConfirmationTimeoutError(PublishError):
    """
    Uploaded assets did not become visible within the configured window.

    Attributes:
        missing_storage_keys: Storage keys still reported missing
    """

    def __init__(self, message: str, missing_storage_keys: List[str]) -> None:
        super().__init__(message)
        self.missing_storage_keys = list(missing_storage_keys)


class PublishCancelledError(PublishError):
    """The caller signalled cancellation while uploads or polling were running."""

    pass
