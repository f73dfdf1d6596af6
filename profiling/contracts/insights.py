"""
Insight Contracts

Result shapes shared by the heuristic detectors and the model analysis.
Both are exposed read-only to presentation collaborators.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple


class InsightKind(Enum):
    """Severity of an insight. Display order is generation order, not this."""
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class Insight:
    """A single atomic observation about the profile."""
    kind: InsightKind
    message: str
    timestamp: datetime
    metric: str
    value: Optional[float] = None


@dataclass(frozen=True)
class TopConsumer:
    """Derived ranking entry. Never stored."""
    name: str
    value: float
    percentage_of_total: float


@dataclass(frozen=True)
class ProfileInsights:
    """Deterministic heuristic result for one profile type."""
    insights: Tuple[Insight, ...] = field(default_factory=tuple)
    top_consumers: Tuple[TopConsumer, ...] = field(default_factory=tuple)
    summary: str = ""

    @staticmethod
    def empty(summary: str) -> ProfileInsights:
        return ProfileInsights(insights=(), top_consumers=(), summary=summary)

    def by_metric(self, metric: str) -> Tuple[Insight, ...]:
        return tuple(i for i in self.insights if i.metric == metric)
