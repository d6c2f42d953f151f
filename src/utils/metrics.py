"""
Prometheus metrics for publish monitoring.

Provides instrumentation for the publish pipeline with standardized
Prometheus metrics: how many assets were hashed and deduplicated, how many
transfers succeeded or failed, how long the asset store took to confirm.

Metrics Provided:
    - publish_assets_hashed_total: Counter for hashed asset occurrences
    - publish_unique_assets_total: Counter for assets after deduplication
    - publish_upload_requests_total: Counter for transfers by status
    - publish_upload_bytes_total: Counter for uploaded bytes
    - publish_upload_duration_seconds: Histogram for transfer latency
    - publish_existence_checks_total: Counter for existence queries
    - publish_confirmation_iterations_total: Counter for polling iterations
    - publish_api_errors_total: Counter for asset store API errors
    - publish_uploads_in_flight: Gauge for concurrent transfers

Usage:
    from src.utils.metrics import get_metrics

    metrics = get_metrics()
    with metrics.track_upload():
        upload_with_presigned_post(path, presigned_post)
"""

import os
from contextlib import nullcontext
from typing import Optional

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram

from src.utils.logging import get_logger

# Module-level logger
logger = get_logger(__name__)


# ============================================================================
# Metric Definitions
# ============================================================================

class PrometheusMetrics:
    """
    Centralized Prometheus metrics for the publisher.

    Example:
        >>> metrics = PrometheusMetrics(registry=CollectorRegistry())
        >>> metrics.record_upload_success(bytes_uploaded=1024)
    """

    def __init__(
        self,
        enabled: bool = True,
        registry: Optional[CollectorRegistry] = None,
    ) -> None:
        """
        Initialize metrics collectors.

        Args:
            enabled: Whether metrics collection is enabled
            registry: Custom Prometheus registry (uses default if None)

        Note:
            When disabled, every record/track method is a no-op
        """
        self.enabled = enabled
        self.registry = registry if registry is not None else REGISTRY

        if not self.enabled:
            logger.debug("Metrics collection disabled")
            return

        # ====================================================================
        # Asset Collection
        # ====================================================================

        self.assets_hashed = Counter(
            name="publish_assets_hashed_total",
            documentation="Asset occurrences hashed, across all platforms",
            registry=self.registry,
        )

        self.unique_assets = Counter(
            name="publish_unique_assets_total",
            documentation="Assets remaining after storage key deduplication",
            registry=self.registry,
        )

        # ====================================================================
        # Upload Operations
        # ====================================================================

        self.upload_requests = Counter(
            name="publish_upload_requests_total",
            documentation="Asset transfers by final status",
            labelnames=["status"],  # success, failure
            registry=self.registry,
        )

        self.upload_bytes = Counter(
            name="publish_upload_bytes_total",
            documentation="Total bytes transferred to the asset store",
            registry=self.registry,
        )

        self.upload_duration = Histogram(
            name="publish_upload_duration_seconds",
            documentation="Time spent transferring a single asset",
            buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0],
            registry=self.registry,
        )

        self.uploads_in_flight = Gauge(
            name="publish_uploads_in_flight",
            documentation="Asset transfers currently running",
            registry=self.registry,
        )

        # ====================================================================
        # Asset Store API
        # ====================================================================

        self.existence_checks = Counter(
            name="publish_existence_checks_total",
            documentation="Asset existence queries sent to the store",
            registry=self.registry,
        )

        self.confirmation_iterations = Counter(
            name="publish_confirmation_iterations_total",
            documentation="Confirmation loop iterations",
            registry=self.registry,
        )

        self.api_errors = Counter(
            name="publish_api_errors_total",
            documentation="Asset store API errors",
            labelnames=["operation"],
            registry=self.registry,
        )

        logger.debug("PrometheusMetrics initialized with all collectors")

    def track_upload(self):
        """
        Context manager timing one transfer and counting it as in flight.

        Example:
            >>> with metrics.track_upload():
            ...     upload_with_presigned_post(path, presigned_post)
        """
        if not self.enabled:
            return nullcontext()
        return _InFlightTimer(self.upload_duration, self.uploads_in_flight)

    def record_assets_hashed(self, count: int, unique: int) -> None:
        if not self.enabled:
            return
        self.assets_hashed.inc(count)
        self.unique_assets.inc(unique)

    def record_upload_success(self, bytes_uploaded: int) -> None:
        """
        Record a successful transfer.

        Args:
            bytes_uploaded: Number of bytes uploaded
        """
        if not self.enabled:
            return
        self.upload_requests.labels(status="success").inc()
        self.upload_bytes.inc(bytes_uploaded)

    def record_upload_failure(self) -> None:
        """Record a transfer that failed after all retries."""
        if not self.enabled:
            return
        self.upload_requests.labels(status="failure").inc()

    def record_existence_check(self) -> None:
        if not self.enabled:
            return
        self.existence_checks.inc()

    def record_confirmation_iteration(self) -> None:
        if not self.enabled:
            return
        self.confirmation_iterations.inc()

    def record_api_error(self, operation: str) -> None:
        """
        Record an asset store API error.

        Args:
            operation: API operation (asset_metadata, upload_urls, asset_limit)
        """
        if not self.enabled:
            return
        self.api_errors.labels(operation=operation).inc()


class _InFlightTimer:
    """Times a block with a histogram and tracks it in a gauge."""

    def __init__(self, histogram: Histogram, gauge: Gauge) -> None:
        self._timer = histogram.time()
        self._gauge = gauge

    def __enter__(self) -> "_InFlightTimer":
        self._gauge.inc()
        self._timer.__enter__()
        return self

    def __exit__(self, *exc_info) -> None:
        self._timer.__exit__(*exc_info)
        self._gauge.dec()


# ============================================================================
# Global Metrics Instance
# ============================================================================

_metrics_instance: Optional[PrometheusMetrics] = None


def get_metrics() -> PrometheusMetrics:
    """
    Get global metrics instance (singleton).

    Collection is enabled unless METRICS_ENABLED is set to something other
    than "true".

    Returns:
        Global PrometheusMetrics instance
    """
    global _metrics_instance

    if _metrics_instance is None:
        enabled = os.getenv("METRICS_ENABLED", "true").lower() == "true"
        _metrics_instance = PrometheusMetrics(enabled=enabled)

    return _metrics_instance
