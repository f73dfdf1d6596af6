"""
Time-Series Snapshot Contracts

Immutable read views of a TimeSeriesStore.

INVARIANTS:
===========
- len(series.points) == len(snapshot.dates) for every series
- points[i] belongs to dates[i]
- Series order is store insertion order
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterator, Optional, Tuple

from .base import ProfileType, SamplePoint


@dataclass(frozen=True)
class SeriesSnapshot:
    """Frozen copy of one named series."""
    name: str
    points: Tuple[SamplePoint, ...]

    @property
    def latest(self) -> SamplePoint:
        return self.points[-1] if self.points else SamplePoint.zero()

    @property
    def first(self) -> SamplePoint:
        return self.points[0] if self.points else SamplePoint.zero()

    @property
    def peak_flat(self) -> float:
        return max((p.flat for p in self.points), default=0.0)

    def flat_trend(self) -> Tuple[float, ...]:
        return tuple(p.flat for p in self.points)


@dataclass(frozen=True)
class StoreSnapshot:
    """
    Point-in-time view of a store.

    Detectors, prompts and the API only ever see this type.
    """
    profile_type: Optional[ProfileType]
    dates: Tuple[datetime, ...]
    series: Tuple[SeriesSnapshot, ...] = field(default_factory=tuple)

    def __post_init__(self):
        for s in self.series:
            if len(s.points) != len(self.dates):
                raise ValueError(
                    f"Series '{s.name}' has {len(s.points)} points "
                    f"for {len(self.dates)} timestamps"
                )

    def __len__(self) -> int:
        return len(self.dates)

    def __iter__(self) -> Iterator[SeriesSnapshot]:
        return iter(self.series)

    @property
    def is_empty(self) -> bool:
        return not self.dates

    @property
    def latest_date(self) -> Optional[datetime]:
        return self.dates[-1] if self.dates else None

    @property
    def first_date(self) -> Optional[datetime]:
        return self.dates[0] if self.dates else None

    @property
    def duration_seconds(self) -> float:
        if len(self.dates) < 2:
            return 0.0
        return (self.dates[-1] - self.dates[0]).total_seconds()

    def get(self, name: str) -> Optional[SeriesSnapshot]:
        for s in self.series:
            if s.name == name:
                return s
        return None

    @staticmethod
    def empty(profile_type: Optional[ProfileType] = None) -> StoreSnapshot:
        return StoreSnapshot(profile_type=profile_type, dates=(), series=())
