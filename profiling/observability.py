"""
Observability Layer

RESPONSIBILITY: Structured logging setup and in-process metrics
ALLOWED INPUTS: Events and measurements from any layer
OUTPUTS: Log lines (structlog), MetricPoint series

WHAT THIS LAYER MUST NOT DO:
============================
- Modify system behavior
- Make decisions based on recorded data
- Block the event loop
"""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Deque, Dict, List, Optional, Tuple
import logging
import sys

import structlog

from .config import LoggingConfig


# =============================================================================
# LOGGING
# =============================================================================

def configure_logging(config: Optional[LoggingConfig] = None) -> None:
    """Route structlog through stdlib logging with a console or JSON renderer."""
    config = config or LoggingConfig()
    level = getattr(logging, config.level.upper(), logging.INFO)

    renderer = (
        structlog.processors.JSONRenderer()
        if config.json
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=level,
        force=True,
    )


# =============================================================================
# METRICS
# =============================================================================

class MetricType(Enum):
    COUNTER = "counter"
    GAUGE = "gauge"
    TIMING = "timing"


@dataclass(frozen=True)
class MetricDefinition:
    name: str
    metric_type: MetricType
    description: str
    labels: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class MetricPoint:
    metric_name: str
    value: float
    timestamp: datetime
    labels: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)


DEFAULT_METRICS: Tuple[MetricDefinition, ...] = (
    MetricDefinition(
        name="samples_merged_total",
        metric_type=MetricType.COUNTER,
        description="Samples merged into a time-series store",
        labels=("profile_type",)
    ),
    MetricDefinition(
        name="samples_evicted_total",
        metric_type=MetricType.COUNTER,
        description="Timestamps evicted by the retention cap",
        labels=("profile_type",)
    ),
    MetricDefinition(
        name="samples_rejected_total",
        metric_type=MetricType.COUNTER,
        description="Samples rejected as out of order",
        labels=("profile_type",)
    ),
    MetricDefinition(
        name="fetches_cancelled_total",
        metric_type=MetricType.COUNTER,
        description="Pending sample fetches cancelled before the next tick",
        labels=("target_id",)
    ),
    MetricDefinition(
        name="fetches_failed_total",
        metric_type=MetricType.COUNTER,
        description="Sample fetches that ended in an error",
        labels=("target_id", "status")
    ),
    MetricDefinition(
        name="fetch_duration_ms",
        metric_type=MetricType.TIMING,
        description="Sample fetch round-trip time",
        labels=("target_id",)
    ),
    MetricDefinition(
        name="analysis_requests_total",
        metric_type=MetricType.COUNTER,
        description="Model analysis requests accepted",
        labels=("profile_type",)
    ),
    MetricDefinition(
        name="analysis_failures_total",
        metric_type=MetricType.COUNTER,
        description="Model analyses that degraded to an empty result",
        labels=("profile_type", "code")
    ),
    MetricDefinition(
        name="analysis_duration_ms",
        metric_type=MetricType.TIMING,
        description="Model analysis round-trip time",
        labels=("profile_type",)
    ),
)


LabelSet = Tuple[Tuple[str, str], ...]


class MetricsCollector:
    """
    Recent metric points plus running totals, grouped by metric name.

    One collector is shared by the store, the sampling loop and the
    orchestrator of a session.

    BOUNDS:
    =======
    - At most max_points points are kept per metric; older ones drop off
    - count() reads running totals, so it covers every recorded point
    - get_metric(), get_latest() and compute_aggregates() see the
      retained window only
    """

    def __init__(self, max_points: int = 1000):
        self._max_points = max_points
        self._metrics: Dict[str, Deque[MetricPoint]] = {}
        self._totals: Dict[str, Dict[LabelSet, float]] = {}
        self._definitions: Dict[str, MetricDefinition] = {}
        for definition in DEFAULT_METRICS:
            self.register_metric(definition)

    @property
    def max_points(self) -> int:
        return self._max_points

    def register_metric(self, definition: MetricDefinition):
        self._definitions[definition.name] = definition
        self._series(definition.name)

    def definition(self, metric_name: str) -> Optional[MetricDefinition]:
        return self._definitions.get(metric_name)

    def record(
        self,
        metric_name: str,
        value: float = 1.0,
        labels: Optional[Dict[str, str]] = None
    ):
        label_tuple = tuple(sorted(labels.items())) if labels else ()
        point = MetricPoint(
            metric_name=metric_name,
            value=value,
            timestamp=datetime.now(timezone.utc),
            labels=label_tuple
        )
        self._series(metric_name).append(point)
        totals = self._totals.setdefault(metric_name, {})
        totals[label_tuple] = totals.get(label_tuple, 0.0) + value

    def get_metric(
        self,
        metric_name: str,
        labels: Optional[Dict[str, str]] = None
    ) -> List[MetricPoint]:
        """Retained points for a metric, optionally restricted to matching labels."""
        points = self._metrics.get(metric_name, ())
        if labels:
            wanted = set(labels.items())
            return [p for p in points if wanted <= set(p.labels)]
        return list(points)

    def get_latest(self, metric_name: str) -> Optional[MetricPoint]:
        points = self._metrics.get(metric_name)
        return points[-1] if points else None

    def count(self, metric_name: str, labels: Optional[Dict[str, str]] = None) -> float:
        """Sum of all recorded values, which is the running total for counters."""
        totals = self._totals.get(metric_name, {})
        if not labels:
            return sum(totals.values())
        wanted = set(labels.items())
        return sum(total for label_set, total in totals.items() if wanted <= set(label_set))

    def _series(self, metric_name: str) -> Deque[MetricPoint]:
        series = self._metrics.get(metric_name)
        if series is None:
            series = deque(maxlen=self._max_points)
            self._metrics[metric_name] = series
        return series

    def compute_aggregates(self, metric_name: str) -> Dict[str, float]:
        points = self.get_metric(metric_name)
        if not points:
            return {}

        values = [p.value for p in points]
        return {
            'count': len(values),
            'sum': sum(values),
            'min': min(values),
            'max': max(values),
            'avg': sum(values) / len(values),
        }
