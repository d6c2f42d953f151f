"""End-to-end asset upload pipeline."""

from .pipeline import (
    MAX_CONCURRENT_UPLOADS,
    UPLOAD_URL_BATCH_SIZE,
    WARNING_THRESHOLD_RATIO,
    AssetUploadResult,
    ProgressCallback,
    PublishSettings,
    filter_out_assets_that_already_exist,
    is_uploaded_asset_count_above_warning_threshold,
    request_upload_specifications,
    upload_assets,
    upload_missing_assets,
    wait_for_assets_to_exist,
)

__all__ = [
    "MAX_CONCURRENT_UPLOADS",
    "UPLOAD_URL_BATCH_SIZE",
    "WARNING_THRESHOLD_RATIO",
    "AssetUploadResult",
    "ProgressCallback",
    "PublishSettings",
    "filter_out_assets_that_already_exist",
    "is_uploaded_asset_count_above_warning_threshold",
    "request_upload_specifications",
    "upload_assets",
    "upload_missing_assets",
    "wait_for_assets_to_exist",
]
