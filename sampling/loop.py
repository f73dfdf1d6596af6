"""
Sampling Loop
=============

Periodically fetches every source and merges each sample on arrival.

GUARANTEES:
===========
1. Bounded fan-out
   - At most max_in_flight pending fetches per source
   - Before a new fetch starts, the oldest pending ones are cancelled
2. Merges happen in completion order, one at a time
3. Failures never stop the loop
   - Fetch errors, cancellations, invalid samples and out-of-order
     rejections become FetchResult records, logged and counted
"""

from __future__ import annotations
from collections import deque
from datetime import datetime, timezone
from typing import Deque, Dict, List, Optional, Sequence
import asyncio

import structlog

from profiling.config import SamplingConfig
from profiling.contracts.base import OutOfOrderSample
from profiling.observability import MetricsCollector

from .contracts import FetchResult, FetchStatus, SampleFetchError
from .sources import SampleSource


logger = structlog.get_logger(__name__)


class SamplingLoop:
    """
    Drives a set of SampleSources into a ProfilingSession.

    `session` only needs an ingest(RawSample) method.
    """

    def __init__(
        self,
        session,
        sources: Sequence[SampleSource],
        config: Optional[SamplingConfig] = None,
        metrics: Optional[MetricsCollector] = None
    ):
        self._session = session
        self._sources = list(sources)
        self._config = config or SamplingConfig()
        self._metrics = metrics
        self._pending: Dict[str, Deque[asyncio.Task]] = {
            source.source_id: deque() for source in self._sources
        }
        self._results: Deque[FetchResult] = deque(maxlen=self._config.result_history)
        self._stopped = asyncio.Event()
        self._ticks = 0

    @property
    def results(self) -> List[FetchResult]:
        return list(self._results)

    @property
    def ticks(self) -> int:
        return self._ticks

    def pending_count(self, source_id: Optional[str] = None) -> int:
        if source_id is not None:
            return len(self._pending.get(source_id, ()))
        return sum(len(tasks) for tasks in self._pending.values())

    # =========================================================================
    # TICKS
    # =========================================================================

    async def tick(self) -> List[asyncio.Task]:
        """Start one fetch per source, cancelling the oldest over the cap."""
        self._ticks += 1
        started = []
        for source in self._sources:
            pending = self._pending[source.source_id]
            while len(pending) >= self._config.max_in_flight:
                oldest = pending.popleft()
                if not oldest.done():
                    oldest.cancel()
                    logger.info("fetch_cancelled", source_id=source.source_id)
                    self._record("fetches_cancelled_total", 1, {"target_id": source.source_id})

            task = asyncio.ensure_future(self._fetch_and_merge(source))
            pending.append(task)
            task.add_done_callback(
                lambda t, sid=source.source_id: self._discard(sid, t)
            )
            started.append(task)

        # Let fetches that need no I/O finish within this tick
        await asyncio.sleep(0)
        return started

    async def run(self, max_ticks: Optional[int] = None) -> None:
        """Tick every interval_seconds until stop() or max_ticks."""
        self._stopped.clear()
        logger.info(
            "sampling_started",
            sources=[s.source_id for s in self._sources],
            interval_seconds=self._config.interval_seconds,
            max_in_flight=self._config.max_in_flight,
        )
        ticks = 0
        while not self._stopped.is_set():
            await self.tick()
            ticks += 1
            if max_ticks is not None and ticks >= max_ticks:
                break
            try:
                await asyncio.wait_for(self._stopped.wait(), self._config.interval_seconds)
            except asyncio.TimeoutError:
                pass
        logger.info("sampling_stopped", ticks=ticks)

    def stop(self) -> None:
        self._stopped.set()

    async def drain(self) -> None:
        """Wait for every pending fetch to finish."""
        tasks = [t for pending in self._pending.values() for t in pending]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def aclose(self) -> None:
        """Stop ticking, cancel pending fetches and close the sources."""
        self.stop()
        tasks = [t for pending in self._pending.values() for t in pending]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        for source in self._sources:
            await source.aclose()

    # =========================================================================
    # ONE FETCH
    # =========================================================================

    async def _fetch_and_merge(self, source: SampleSource) -> FetchResult:
        attempted_at = datetime.now(timezone.utc)
        source_id = source.source_id

        try:
            sample = await source.fetch()
        except asyncio.CancelledError:
            self._add(FetchResult(
                target_id=source_id,
                status=FetchStatus.CANCELLED,
                attempted_at=attempted_at,
                completed_at=datetime.now(timezone.utc),
                error_message="Superseded by a newer fetch"
            ))
            raise
        except SampleFetchError as e:
            logger.warning("fetch_failed", source_id=source_id, status=e.status.value, error=e.message)
            self._record("fetches_failed_total", 1, {"target_id": source_id, "status": e.status.value})
            return self._add(FetchResult(
                target_id=source_id,
                status=e.status,
                attempted_at=attempted_at,
                completed_at=datetime.now(timezone.utc),
                error_message=e.message
            ))

        completed_at = datetime.now(timezone.utc)
        self._record(
            "fetch_duration_ms",
            (completed_at - attempted_at).total_seconds() * 1000,
            {"target_id": source_id}
        )

        try:
            self._session.ingest(sample)
        except OutOfOrderSample as e:
            logger.warning(
                "sample_rejected_out_of_order",
                source_id=source_id,
                timestamp=e.timestamp.isoformat(),
                latest=e.latest.isoformat(),
            )
            return self._add(FetchResult(
                target_id=source_id,
                status=FetchStatus.REJECTED,
                attempted_at=attempted_at,
                completed_at=completed_at,
                error_message=str(e),
                series_count=sample.series_count
            ))
        except ValueError as e:
            logger.warning("sample_invalid", source_id=source_id, error=str(e))
            self._record(
                "fetches_failed_total",
                1,
                {"target_id": source_id, "status": FetchStatus.PARSE_ERROR.value}
            )
            return self._add(FetchResult(
                target_id=source_id,
                status=FetchStatus.PARSE_ERROR,
                attempted_at=attempted_at,
                completed_at=completed_at,
                error_message=str(e),
                series_count=sample.series_count
            ))

        return self._add(FetchResult(
            target_id=source_id,
            status=FetchStatus.SUCCESS,
            attempted_at=attempted_at,
            completed_at=completed_at,
            series_count=sample.series_count
        ))

    def _add(self, result: FetchResult) -> FetchResult:
        self._results.append(result)
        return result

    def _discard(self, source_id: str, task: asyncio.Task):
        pending = self._pending.get(source_id)
        if pending is not None and task in pending:
            pending.remove(task)

    def _record(self, name: str, value: float, labels: Dict[str, str]):
        if self._metrics is not None:
            self._metrics.record(name, value, labels)
