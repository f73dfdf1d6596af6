"""
Observability Tests

Metrics keep a bounded window plus running totals and never influence
behaviour.
"""

import logging

import structlog

from analysis.providers.mock import MockProvider
from profiling.config import AppConfig, LoggingConfig, MetricsConfig, StoreConfig
from profiling.contracts.base import ProfileType
from profiling.engine import ProfilingSession
from profiling.observability import (
    DEFAULT_METRICS,
    MetricDefinition,
    MetricType,
    MetricsCollector,
    configure_logging,
)

from tests.fixtures import entry, raw_sample


class TestMetricsCollector:

    def test_default_metrics_registered(self):
        collector = MetricsCollector()

        for definition in DEFAULT_METRICS:
            assert collector.definition(definition.name) == definition
            assert collector.get_metric(definition.name) == []

    def test_record_and_count(self):
        collector = MetricsCollector()
        collector.record("samples_merged_total", labels={"profile_type": "heap"})
        collector.record("samples_merged_total", labels={"profile_type": "cpu"})
        collector.record("samples_merged_total", labels={"profile_type": "heap"})

        assert collector.count("samples_merged_total") == 3
        assert collector.count("samples_merged_total", {"profile_type": "heap"}) == 2

    def test_latest_and_aggregates(self):
        collector = MetricsCollector()
        for value in (10.0, 30.0, 20.0):
            collector.record("fetch_duration_ms", value)

        assert collector.get_latest("fetch_duration_ms").value == 20.0
        aggregates = collector.compute_aggregates("fetch_duration_ms")
        assert aggregates["count"] == 3
        assert aggregates["min"] == 10.0
        assert aggregates["max"] == 30.0
        assert aggregates["avg"] == 20.0

    def test_empty_aggregates(self):
        assert MetricsCollector().compute_aggregates("analysis_duration_ms") == {}

    def test_custom_metric(self):
        collector = MetricsCollector()
        collector.register_metric(MetricDefinition("custom", MetricType.GAUGE, "test"))
        collector.record("custom", 4.0)

        assert collector.get_latest("custom").value == 4.0


class TestBoundedHistory:

    def test_points_capped_totals_kept(self):
        collector = MetricsCollector(max_points=10)
        for i in range(100):
            collector.record("samples_merged_total", labels={"profile_type": "heap" if i % 2 else "cpu"})

        assert len(collector.get_metric("samples_merged_total")) == 10
        assert collector.count("samples_merged_total") == 100
        assert collector.count("samples_merged_total", {"profile_type": "heap"}) == 50

    def test_window_keeps_newest(self):
        collector = MetricsCollector(max_points=3)
        for value in range(10):
            collector.record("fetch_duration_ms", float(value))

        assert [p.value for p in collector.get_metric("fetch_duration_ms")] == [7.0, 8.0, 9.0]
        assert collector.get_latest("fetch_duration_ms").value == 9.0
        assert collector.compute_aggregates("fetch_duration_ms")["count"] == 3

    def test_long_running_session_stays_bounded(self):
        config = AppConfig(store=StoreConfig(max_samples=3), metrics=MetricsConfig(max_points=50))
        session = ProfilingSession(config, provider=MockProvider())

        for i in range(500):
            session.ingest(raw_sample(i, {"main.a": entry(i)}))

        metrics = session.metrics
        assert len(session.snapshot(ProfileType.HEAP)) == 3
        assert len(metrics.get_metric("samples_merged_total")) == 50
        assert len(metrics.get_metric("samples_evicted_total")) == 50
        assert metrics.count("samples_merged_total") == 500
        assert metrics.count("samples_evicted_total") == 497


class TestLogging:

    def test_configure_sets_level(self):
        configure_logging(LoggingConfig(level="WARNING"))

        assert logging.getLogger().level == logging.WARNING
        structlog.get_logger("test").warning("configured", ok=True)

    def test_renderer_selection(self):
        configure_logging(LoggingConfig(json=True))
        assert isinstance(structlog.get_config()["processors"][-1], structlog.processors.JSONRenderer)

        configure_logging(LoggingConfig(json=False))
        assert isinstance(structlog.get_config()["processors"][-1], structlog.dev.ConsoleRenderer)
