"""
Presigned-post upload transport.

Provides the retrying single-file transfer used to send asset bytes to the
signed destinations issued by the asset store.
"""

from .uploader import (
    PresignedPost,
    UploadResult,
    upload_with_presigned_post,
)

__all__ = [
    "PresignedPost",
    "UploadResult",
    "upload_with_presigned_post",
]
