"""
Shared detector helpers.

All helpers are pure and order-stable: sorted() is stable, so equal
values keep store insertion order.
"""

from __future__ import annotations
from typing import Callable, List, Tuple

from ..contracts.insights import TopConsumer
from ..contracts.timeseries import StoreSnapshot


def latest_values(snapshot: StoreSnapshot) -> List[Tuple[str, float]]:
    """(name, latest flat) for every series, in insertion order."""
    return [(s.name, s.latest.flat) for s in snapshot.series]


def first_total(snapshot: StoreSnapshot) -> float:
    return sum(s.first.flat for s in snapshot.series)


def percentage(value: float, total: float) -> float:
    return (value / total) * 100 if total else 0.0


def rank_consumers(
    values: List[Tuple[str, float]],
    include: Callable[[str], bool],
    total: float,
    limit: int
) -> Tuple[TopConsumer, ...]:
    """Top `limit` entries passing `include`, highest value first."""
    candidates = [(name, value) for name, value in values if include(name)]
    ranked = sorted(candidates, key=lambda item: item[1], reverse=True)[:limit]
    return tuple(
        TopConsumer(
            name=name,
            value=value,
            percentage_of_total=percentage(value, total)
        )
        for name, value in ranked
    )
