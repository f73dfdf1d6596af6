"""
Heap Detector

Flags heap growth since monitoring began, reports total heap size and
calls out functions holding a large share of it.
"""

from __future__ import annotations
from typing import List, Optional

from ..config import HeuristicThresholds
from ..contracts.insights import Insight, InsightKind, ProfileInsights
from ..contracts.timeseries import StoreSnapshot
from .common import first_total, latest_values, rank_consumers

BYTES_PER_MB = 1024 * 1024


def heap_growth_rate(snapshot: StoreSnapshot) -> Optional[float]:
    """
    Percent change of the summed flat heap between the oldest and latest
    retained samples. None with fewer than two samples, 0 when the first
    total is zero.
    """
    if len(snapshot.dates) < 2:
        return None
    first = first_total(snapshot)
    last = sum(value for _, value in latest_values(snapshot))
    return ((last - first) / first) * 100 if first else 0.0


def analyze_heap(
    snapshot: StoreSnapshot,
    thresholds: Optional[HeuristicThresholds] = None
) -> ProfileInsights:
    thresholds = thresholds or HeuristicThresholds()
    summary = f"Analyzing {len(snapshot.dates)} heap snapshots"

    if snapshot.is_empty:
        return ProfileInsights.empty(summary)

    latest = snapshot.latest_date
    values = latest_values(snapshot)
    total = sum(value for _, value in values)

    def include(name: str) -> bool:
        return (
            not name.startswith(thresholds.runtime_prefix)
            and name != thresholds.total_series_name
        )

    top_consumers = rank_consumers(values, include, total, thresholds.top_consumers)

    insights: List[Insight] = []

    growth = heap_growth_rate(snapshot)
    if growth is not None and growth > thresholds.heap_growth_warning_pct:
        insights.append(Insight(
            kind=InsightKind.WARNING,
            message=f"Memory usage has grown by {growth:.1f}% since monitoring began",
            timestamp=latest,
            metric="heap_growth",
            value=growth
        ))

    if total > 0:
        size_mb = total / BYTES_PER_MB
        insights.append(Insight(
            kind=InsightKind.INFO,
            message=f"Total heap size: {size_mb:.1f} MB",
            timestamp=latest,
            metric="heap_size",
            value=size_mb
        ))

    for consumer in top_consumers:
        if consumer.percentage_of_total > thresholds.heap_consumer_share_pct:
            insights.append(Insight(
                kind=InsightKind.INFO,
                message=(
                    f"{consumer.name} is using "
                    f"{consumer.percentage_of_total:.1f}% of heap space"
                ),
                timestamp=latest,
                metric="heap_usage",
                value=consumer.value
            ))

    return ProfileInsights(
        insights=tuple(insights),
        top_consumers=top_consumers,
        summary=summary
    )
