"""Tests for Prometheus publish metrics."""

from prometheus_client import CollectorRegistry

from src.utils.metrics import PrometheusMetrics, get_metrics


def _value(registry, name, labels=None):
    return registry.get_sample_value(name, labels or {})


class TestPrometheusMetrics:
    """Test metric recording against an isolated registry."""

    def test_record_assets_hashed(self):
        registry = CollectorRegistry()
        metrics = PrometheusMetrics(registry=registry)

        metrics.record_assets_hashed(count=5, unique=3)

        assert _value(registry, "publish_assets_hashed_total") == 5
        assert _value(registry, "publish_unique_assets_total") == 3

    def test_record_upload_outcomes(self):
        registry = CollectorRegistry()
        metrics = PrometheusMetrics(registry=registry)

        metrics.record_upload_success(bytes_uploaded=2048)
        metrics.record_upload_failure()

        assert _value(registry, "publish_upload_requests_total", {"status": "success"}) == 1
        assert _value(registry, "publish_upload_requests_total", {"status": "failure"}) == 1
        assert _value(registry, "publish_upload_bytes_total") == 2048

    def test_track_upload(self):
        registry = CollectorRegistry()
        metrics = PrometheusMetrics(registry=registry)

        with metrics.track_upload():
            assert _value(registry, "publish_uploads_in_flight") == 1

        assert _value(registry, "publish_uploads_in_flight") == 0
        assert _value(registry, "publish_upload_duration_seconds_count") == 1

    def test_api_errors_by_operation(self):
        registry = CollectorRegistry()
        metrics = PrometheusMetrics(registry=registry)

        metrics.record_api_error("upload_urls")
        metrics.record_existence_check()
        metrics.record_confirmation_iteration()

        assert _value(registry, "publish_api_errors_total", {"operation": "upload_urls"}) == 1
        assert _value(registry, "publish_existence_checks_total") == 1
        assert _value(registry, "publish_confirmation_iterations_total") == 1

    def test_disabled_is_noop(self):
        registry = CollectorRegistry()
        metrics = PrometheusMetrics(enabled=False, registry=registry)

        metrics.record_upload_success(bytes_uploaded=10)
        with metrics.track_upload():
            pass

        assert _value(registry, "publish_upload_bytes_total") is None

    def test_get_metrics_singleton(self):
        assert get_metrics() is get_metrics()
