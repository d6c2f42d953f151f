"""
Asset upload pipeline.

Takes the collected assets of an export and makes sure every one of them
is present in the asset store:

1. Hash every asset occurrence and collapse duplicates by storage key
2. Ask the store which keys are missing
3. Negotiate one signed upload destination per missing asset, in batches
4. Transfer the missing assets, at most `max_concurrency` at a time
5. Poll the store until every transferred asset is visible

Uploads are idempotent at the storage-key level, so a failed or cancelled
publish can simply be run again: assets that made it are not re-sent.

Example usage:
    >>> from src.publisher import upload_assets
    >>> result = upload_assets(client, collected, project_id="0d9b6c4e-...")
    >>> print(f"{result.unique_uploaded_asset_count}/{result.unique_asset_count} uploaded")
"""

import math
import threading
import time
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from src.api.client import AssetStoreClient
from src.assets.dedup import attach_storage_keys, flatten_collected_assets, unique_by_storage_key
from src.assets.models import CollectedAssets, KeyedAsset
from src.errors import ConfirmationTimeoutError, ProtocolError, PublishCancelledError
from src.uploader.uploader import PresignedPost, upload_with_presigned_post
from src.utils.config import PublishConfig
from src.utils.logging import get_logger, log_function_call
from src.utils.metrics import get_metrics
from src.utils.retry import linear_backoff_delay

logger = get_logger(__name__)

# Called as progress(total_unique_assets, currently_missing_assets)
ProgressCallback = Callable[[int, int], None]

MAX_CONCURRENT_UPLOADS = 15
UPLOAD_URL_BATCH_SIZE = 100
WARNING_THRESHOLD_RATIO = 0.75


@dataclass
class PublishSettings:
    """
    Tunables of the upload pipeline.

    Attributes:
        max_concurrency: Transfers allowed in flight at once
        batch_size: Assets per upload-URL request
        upload_timeout_seconds: Per-attempt transfer timeout
        upload_max_attempts: Transfer attempts before giving up on an asset
        confirmation_max_delay_seconds: Cap of the polling delay
        confirmation_timeout_seconds: Give up polling after this long;
            None polls until the store reports every asset
    """

    max_concurrency: int = MAX_CONCURRENT_UPLOADS
    batch_size: int = UPLOAD_URL_BATCH_SIZE
    upload_timeout_seconds: float = 300
    upload_max_attempts: int = 3
    confirmation_max_delay_seconds: float = 5.0
    confirmation_timeout_seconds: Optional[float] = None

    @classmethod
    def from_config(cls, config: PublishConfig) -> "PublishSettings":
        return cls(
            max_concurrency=config.upload_concurrency,
            batch_size=config.upload_batch_size,
            upload_timeout_seconds=config.upload_timeout_seconds,
            upload_max_attempts=config.upload_max_attempts,
            confirmation_max_delay_seconds=config.confirmation_max_delay_seconds,
            confirmation_timeout_seconds=config.confirmation_timeout_seconds,
        )


@dataclass
class AssetUploadResult:
    """
    Summary of an asset upload.

    Attributes:
        asset_count: Asset occurrences across all platforms, duplicates included
        launch_asset_count: JS bundles, one per platform
        unique_asset_count: Assets after storage key deduplication
        unique_uploaded_asset_count: Unique assets that were missing and got uploaded
        unique_uploaded_asset_paths: Original paths of uploaded assets, where known
        asset_limit_per_update_group: Asset limit reported by the store
    """

    asset_count: int
    launch_asset_count: int
    unique_asset_count: int
    unique_uploaded_asset_count: int
    unique_uploaded_asset_paths: List[str] = field(default_factory=list)
    asset_limit_per_update_group: int = 0

    @property
    def is_above_warning_threshold(self) -> bool:
        return is_uploaded_asset_count_above_warning_threshold(
            self.unique_uploaded_asset_count, self.asset_limit_per_update_group
        )


def filter_out_assets_that_already_exist(
    client: AssetStoreClient,
    keyed_assets: Sequence[KeyedAsset],
) -> List[KeyedAsset]:
    """
    Return the assets the store does not have yet.

    The result is always a subset of the input, in input order, selected
    only by the status the store reports for each storage key.
    """
    if not keyed_assets:
        return []

    results = client.get_asset_metadata([asset.storage_key for asset in keyed_assets])
    missing_keys = {result.storage_key for result in results if not result.exists}
    return [asset for asset in keyed_assets if asset.storage_key in missing_keys]


def request_upload_specifications(
    client: AssetStoreClient,
    missing_assets: Sequence[KeyedAsset],
    batch_size: int = UPLOAD_URL_BATCH_SIZE,
) -> List[str]:
    """
    Negotiate one upload destination per missing asset.

    Batches are sent one after another and their results concatenated, so
    the i-th specification belongs to the i-th asset.

    Raises:
        ProtocolError: If a batch returns a different number of
            specifications than it asked for
    """
    specifications: List[str] = []
    for start in range(0, len(missing_assets), batch_size):
        batch = missing_assets[start:start + batch_size]
        batch_specifications = client.get_upload_urls([asset.content_type for asset in batch])
        if len(batch_specifications) != len(batch):
            raise ProtocolError(
                f"Requested {len(batch)} upload URL(s) but the asset store "
                f"returned {len(batch_specifications)}"
            )
        specifications.extend(batch_specifications)

    logger.debug(f"Negotiated {len(specifications)} upload destination(s)")
    return specifications


def upload_missing_assets(
    missing_assets: Sequence[KeyedAsset],
    specifications: Sequence[str],
    max_concurrency: int = MAX_CONCURRENT_UPLOADS,
    upload_timeout_seconds: float = 300,
    upload_max_attempts: int = 3,
    cancel_event: Optional[threading.Event] = None,
) -> None:
    """
    Transfer every missing asset to its negotiated destination.

    At most `max_concurrency` transfers run at once. The first transfer
    error is re-raised after uploads that had not started yet are dropped;
    transfers already running are allowed to finish.

    Raises:
        ProtocolError: If assets and specifications do not pair up
        TransferError: If an asset could not be uploaded
        PublishCancelledError: If cancel_event was set
    """
    if len(missing_assets) != len(specifications):
        raise ProtocolError(
            f"{len(missing_assets)} asset(s) to upload but "
            f"{len(specifications)} upload specification(s)"
        )
    if not missing_assets:
        return

    destinations = [
        PresignedPost.from_specification(specification) for specification in specifications
    ]

    def upload_one(asset: KeyedAsset, destination: PresignedPost) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise PublishCancelledError("Publish cancelled before all assets were uploaded")
        upload_with_presigned_post(
            asset.path,
            destination,
            content_type=asset.content_type,
            timeout_seconds=upload_timeout_seconds,
            max_attempts=upload_max_attempts,
        )

    logger.info(f"Uploading {len(missing_assets)} asset(s), {max_concurrency} at a time")

    with ThreadPoolExecutor(max_workers=max_concurrency) as executor:
        futures = [
            executor.submit(upload_one, asset, destination)
            for asset, destination in zip(missing_assets, destinations)
        ]
        try:
            wait(futures, return_when=FIRST_EXCEPTION)
        finally:
            # No-op for futures that already started
            for future in futures:
                future.cancel()
        for future in futures:
            if future.done() and not future.cancelled() and future.exception() is not None:
                raise future.exception()


def wait_for_assets_to_exist(
    client: AssetStoreClient,
    assets: Sequence[KeyedAsset],
    total_assets: Optional[int] = None,
    progress_callback: Optional[ProgressCallback] = None,
    max_delay_seconds: float = 5.0,
    timeout_seconds: Optional[float] = None,
    cancel_event: Optional[threading.Event] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """
    Poll the store until every asset is visible.

    A successful transfer does not mean the existence check sees the asset
    yet. Each iteration re-checks the remaining assets, then waits 1s, 2s,
    ... up to `max_delay_seconds`, counted from the start of the iteration.

    Args:
        client: Asset store client
        assets: Assets that were transferred
        total_assets: Total reported to the progress callback
        progress_callback: Called as (total_assets, still_missing) per iteration
        max_delay_seconds: Cap of the polling delay
        timeout_seconds: Give up after this long; None never gives up
        cancel_event: Abort the wait when set
        sleep: Sleep function used when no cancel_event is given

    Returns:
        Number of existence checks performed

    Raises:
        ConfirmationTimeoutError: If timeout_seconds elapsed first
        PublishCancelledError: If cancel_event was set
    """
    metrics = get_metrics()
    total = total_assets if total_assets is not None else len(assets)
    remaining_assets = list(assets)
    started_at = time.monotonic()
    iteration = 0

    while remaining_assets:
        iteration += 1
        iteration_started_at = time.monotonic()

        remaining_assets = filter_out_assets_that_already_exist(client, remaining_assets)
        metrics.record_confirmation_iteration()
        if progress_callback:
            progress_callback(total, len(remaining_assets))
        if not remaining_assets:
            break

        logger.debug(f"Waiting for {len(remaining_assets)} asset(s) to become available")

        if timeout_seconds is not None and time.monotonic() - started_at >= timeout_seconds:
            raise ConfirmationTimeoutError(
                f"{len(remaining_assets)} asset(s) were still not available "
                f"after {timeout_seconds:g}s",
                missing_storage_keys=[asset.storage_key for asset in remaining_assets],
            )

        delay = linear_backoff_delay(iteration, max_delay=max_delay_seconds)
        delay -= time.monotonic() - iteration_started_at
        if cancel_event is not None:
            if cancel_event.wait(max(delay, 0)):
                raise PublishCancelledError("Publish cancelled while waiting for assets")
        elif delay > 0:
            sleep(delay)

    return iteration


@log_function_call
def upload_assets(
    client: AssetStoreClient,
    collected: CollectedAssets,
    project_id: str,
    progress_callback: Optional[ProgressCallback] = None,
    settings: Optional[PublishSettings] = None,
    cancel_event: Optional[threading.Event] = None,
) -> AssetUploadResult:
    """
    Make sure every collected asset is present in the asset store.

    Args:
        client: Asset store client
        collected: Collected assets of every platform being published
        project_id: Project whose asset limit is reported
        progress_callback: Called as (total_unique_assets, missing_assets)
            before negotiation, after negotiation, and on every
            confirmation iteration
        settings: Pipeline tunables (defaults match the asset store's limits)
        cancel_event: Abort uploads and polling when set

    Returns:
        AssetUploadResult with the publish's asset counts

    Raises:
        ProtocolError: If the store contradicts a request
        ApiError: If an API request fails
        TransferError: If an asset could not be uploaded
        ConfirmationTimeoutError: If a confirmation timeout is configured
            and assets never became visible
        PublishCancelledError: If cancel_event was set
    """
    settings = settings or PublishSettings()
    metrics = get_metrics()

    assets = flatten_collected_assets(collected)
    unique_assets = unique_by_storage_key(attach_storage_keys(assets))
    metrics.record_assets_hashed(len(assets), len(unique_assets))

    total_assets = len(unique_assets)
    logger.info(
        f"Found {len(assets)} asset(s) across {len(collected)} platform(s), "
        f"{total_assets} unique"
    )

    if progress_callback:
        progress_callback(total_assets, total_assets)
    missing_assets = filter_out_assets_that_already_exist(client, unique_assets)
    unique_uploaded_asset_paths = [
        asset.original_path for asset in missing_assets if asset.original_path
    ]

    specifications = request_upload_specifications(client, missing_assets, settings.batch_size)
    if progress_callback:
        progress_callback(total_assets, len(missing_assets))

    asset_limit = client.get_asset_limit_per_update_group(project_id)

    upload_missing_assets(
        missing_assets,
        specifications,
        max_concurrency=settings.max_concurrency,
        upload_timeout_seconds=settings.upload_timeout_seconds,
        upload_max_attempts=settings.upload_max_attempts,
        cancel_event=cancel_event,
    )

    wait_for_assets_to_exist(
        client,
        missing_assets,
        total_assets=total_assets,
        progress_callback=progress_callback,
        max_delay_seconds=settings.confirmation_max_delay_seconds,
        timeout_seconds=settings.confirmation_timeout_seconds,
        cancel_event=cancel_event,
    )

    logger.info(f"Uploaded {len(missing_assets)} of {total_assets} unique asset(s)")

    return AssetUploadResult(
        asset_count=len(assets),
        launch_asset_count=len(collected),
        unique_asset_count=total_assets,
        unique_uploaded_asset_count=len(missing_assets),
        unique_uploaded_asset_paths=unique_uploaded_asset_paths,
        asset_limit_per_update_group=asset_limit,
    )


def is_uploaded_asset_count_above_warning_threshold(
    uploaded_asset_count: int,
    asset_limit_per_update_group: int,
) -> bool:
    """
    Whether the upload is close to the store's per-update asset limit.

    Example:
        >>> is_uploaded_asset_count_above_warning_threshold(760, 1000)
        True
        >>> is_uploaded_asset_count_above_warning_threshold(750, 1000)
        False
    """
    warning_threshold = math.floor(asset_limit_per_update_group * WARNING_THRESHOLD_RATIO)
    return uploaded_asset_count > warning_threshold
