"""
CPU Detector

Runtime internals are ignored except for allocation and GC work
(the keep-list), which users can influence from their own code.
"""

from __future__ import annotations
from typing import List, Optional

from ..config import HeuristicThresholds
from ..contracts.insights import Insight, InsightKind, ProfileInsights
from ..contracts.timeseries import StoreSnapshot
from .common import latest_values, rank_consumers


def is_cpu_relevant(name: str, thresholds: HeuristicThresholds) -> bool:
    if name == thresholds.total_series_name:
        return False
    if name.startswith(thresholds.runtime_prefix):
        return any(keep in name for keep in thresholds.cpu_keep_substrings)
    return True


def analyze_cpu(
    snapshot: StoreSnapshot,
    thresholds: Optional[HeuristicThresholds] = None
) -> ProfileInsights:
    thresholds = thresholds or HeuristicThresholds()
    summary = f"Analyzing {len(snapshot.dates)} CPU samples"

    if snapshot.is_empty:
        return ProfileInsights.empty(summary)

    latest = snapshot.latest_date

    def include(name: str) -> bool:
        return is_cpu_relevant(name, thresholds)

    values = [(name, value) for name, value in latest_values(snapshot) if include(name)]
    total_cpu_time = sum(value for _, value in values)
    top_consumers = rank_consumers(values, include, total_cpu_time, thresholds.top_consumers)

    insights: List[Insight] = []

    if total_cpu_time > 0:
        insights.append(Insight(
            kind=InsightKind.INFO,
            message=f"Total CPU time: {total_cpu_time:.2f}ms in last profile",
            timestamp=latest,
            metric="cpu_time",
            value=total_cpu_time
        ))

    for consumer in top_consumers:
        if consumer.percentage_of_total > thresholds.cpu_consumer_share_pct:
            insights.append(Insight(
                kind=InsightKind.INFO,
                message=(
                    f"{consumer.name} consumed "
                    f"{consumer.percentage_of_total:.1f}% of CPU time"
                ),
                timestamp=latest,
                metric="cpu_usage",
                value=consumer.value
            ))

    if total_cpu_time > thresholds.cpu_high_usage_ms:
        insights.append(Insight(
            kind=InsightKind.WARNING,
            message=f"High CPU usage detected: {total_cpu_time:.1f}ms in 1s sample",
            timestamp=latest,
            metric="cpu_high_usage",
            value=total_cpu_time
        ))

    return ProfileInsights(
        insights=tuple(insights),
        top_consumers=top_consumers,
        summary=summary
    )
