"""
Aligned Time-Series Store
=========================

Append-only store of per-function sample points keyed by timestamp.

INVARIANTS:
- dates strictly increasing
- every series has exactly len(dates) points, points[i] <-> dates[i]
- a new name is backfilled with zero points for all retained timestamps
- committed points are never rewritten; retention only drops whole
  oldest columns (one date plus the first point of every series)
- after an eviction, a series whose retained points are all zero is
  removed; if the name returns it is backfilled like any new name

merge() is synchronous and validates before it mutates, so a reader on
the same event loop never sees a half-applied sample.
"""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Deque, Dict, List, Mapping, Optional, Any

import structlog

from ..config import StoreConfig
from ..contracts.base import OutOfOrderSample, ProfileType, SamplePoint
from ..contracts.timeseries import SeriesSnapshot, StoreSnapshot
from ..observability import MetricsCollector


logger = structlog.get_logger(__name__)


RawSampleValues = Mapping[str, Optional[Mapping[str, Any]]]


@dataclass(frozen=True)
class MergeResult:
    """Outcome of one merge call."""
    store: 'TimeSeriesStore'
    timestamp: datetime
    new_series: int
    evicted: int
    dropped_series: int = 0


class TimeSeriesStore:
    """
    One aligned store per (session, profile type).

    Only merge() writes. Everything else reads or copies.
    """

    def __init__(
        self,
        profile_type: Optional[ProfileType] = None,
        config: Optional[StoreConfig] = None,
        metrics: Optional[MetricsCollector] = None
    ):
        self._profile_type = profile_type
        self._config = config or StoreConfig()
        self._metrics = metrics
        self._dates: Deque[datetime] = deque()
        # dict preserves insertion order, which detectors rely on for ties
        self._series: Dict[str, Deque[SamplePoint]] = {}

    # =========================================================================
    # READ ACCESS
    # =========================================================================

    @property
    def profile_type(self) -> Optional[ProfileType]:
        return self._profile_type

    @property
    def max_samples(self) -> Optional[int]:
        return self._config.max_samples

    @property
    def dates(self) -> List[datetime]:
        return list(self._dates)

    @property
    def latest_date(self) -> Optional[datetime]:
        return self._dates[-1] if self._dates else None

    @property
    def series_names(self) -> List[str]:
        return list(self._series)

    def __len__(self) -> int:
        return len(self._dates)

    def __contains__(self, name: str) -> bool:
        return name in self._series

    def points(self, name: str) -> List[SamplePoint]:
        return list(self._series.get(name, ()))

    def snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(
            profile_type=self._profile_type,
            dates=tuple(self._dates),
            series=tuple(
                SeriesSnapshot(name=name, points=tuple(points))
                for name, points in self._series.items()
            )
        )

    # =========================================================================
    # WRITE ACCESS
    # =========================================================================

    def merge(self, timestamp: datetime, raw_sample: RawSampleValues) -> MergeResult:
        """
        Append one sample column.

        Raises OutOfOrderSample (store unchanged) if timestamp does not
        advance past the latest stored date.
        """
        latest = self.latest_date
        if latest is not None and timestamp <= latest:
            if self._metrics is not None:
                self._metrics.record("samples_rejected_total", labels=self._labels())
            raise OutOfOrderSample(timestamp, latest)

        # Decode everything first so a bad entry cannot leave a partial column
        incoming = {name: SamplePoint.from_raw(raw) for name, raw in raw_sample.items()}

        prior = len(self._dates)
        self._dates.append(timestamp)

        for name, points in self._series.items():
            points.append(incoming.pop(name, SamplePoint.zero()))

        # Whatever is left in incoming is new to the store
        new_series = 0
        for name, point in incoming.items():
            points = deque([SamplePoint.zero()] * prior)
            points.append(point)
            self._series[name] = points
            new_series += 1

        evicted = self._evict()
        dropped_series = self._drop_idle_series() if evicted else 0

        if self._metrics is not None:
            self._metrics.record("samples_merged_total", labels=self._labels())
            if evicted:
                self._metrics.record("samples_evicted_total", float(evicted), labels=self._labels())

        logger.debug(
            "sample_merged",
            profile_type=self._profile_type.value if self._profile_type else None,
            timestamp=timestamp.isoformat(),
            series=len(self._series),
            new_series=new_series,
            evicted=evicted,
        )

        return MergeResult(
            store=self,
            timestamp=timestamp,
            new_series=new_series,
            evicted=evicted,
            dropped_series=dropped_series
        )

    def _evict(self) -> int:
        cap = self._config.max_samples
        if cap is None:
            return 0

        evicted = 0
        while len(self._dates) > cap:
            self._dates.popleft()
            for points in self._series.values():
                points.popleft()
            evicted += 1

        if evicted:
            logger.debug(
                "samples_evicted",
                profile_type=self._profile_type.value if self._profile_type else None,
                evicted=evicted,
                retained=len(self._dates),
            )
        return evicted

    def _drop_idle_series(self) -> int:
        """Remove series whose every retained point is zero."""
        idle = [
            name for name, points in self._series.items()
            if not any(p.flat or p.cum for p in reversed(points))
        ]
        for name in idle:
            del self._series[name]

        if idle:
            logger.debug(
                "idle_series_dropped",
                profile_type=self._profile_type.value if self._profile_type else None,
                dropped=len(idle),
            )
        return len(idle)

    def _labels(self) -> Dict[str, str]:
        return {"profile_type": self._profile_type.value if self._profile_type else "unknown"}


def merge(store: TimeSeriesStore, timestamp: datetime, raw_sample: RawSampleValues) -> TimeSeriesStore:
    """Functional form of TimeSeriesStore.merge, returning the store."""
    return store.merge(timestamp, raw_sample).store
