"""
Synthetic Workload Source
=========================

In-process stand-in for a Go service exposing pprof endpoints.

The simulated service runs a 100ms background ticker that randomly
performs a CPU task, a memory task (1 MB appended to a global slice
that is never freed) or nothing. Every 30 seconds, once more than 100
chunks are retained, all but the newest 50 are released.

Heap values are bytes, CPU values are milliseconds per sample window.
Same seed and start time -> same sequence of samples.
"""

from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional
import random

from profiling.contracts.base import ProfileType

from .contracts import RawSample
from .sources import SampleSource


MB = 1024 * 1024

BACKGROUND_TICKS_PER_SECOND = 10
CLEANUP_EVERY_SECONDS = 30
CLEANUP_THRESHOLD_CHUNKS = 100
CLEANUP_KEEP_CHUNKS = 50

LEAK_FUNCTION = "main.MemoryIntensiveTask"
CPU_TASK_FUNCTION = "main.CPUIntensiveTask"
DO_WORK_FUNCTION = "main.(*SimulatedWorkload).DoWork"


class SimulatedService:
    """Shared state of the simulated process: the leak and the clock."""

    def __init__(
        self,
        seed: int = 0,
        start: Optional[datetime] = None,
        interval_seconds: float = 1.0
    ):
        self._rng = random.Random(seed)
        self._start = start or datetime.now(timezone.utc)
        self._interval = timedelta(seconds=interval_seconds)
        self._seconds = 0
        self.retained_chunks = 0
        self.cpu_tasks = 0
        self.memory_tasks = 0

    @property
    def rng(self) -> random.Random:
        return self._rng

    @property
    def now(self) -> datetime:
        return self._start + self._interval * self._seconds

    def advance(self):
        """Run one second of background work."""
        self._seconds += 1
        self.cpu_tasks = 0
        self.memory_tasks = 0
        for _ in range(BACKGROUND_TICKS_PER_SECOND):
            choice = self._rng.randrange(3)
            if choice == 0:
                self.cpu_tasks += 1
            elif choice == 1:
                self.memory_tasks += 1
                self.retained_chunks += 1

        if self._seconds % CLEANUP_EVERY_SECONDS == 0:
            if self.retained_chunks > CLEANUP_THRESHOLD_CHUNKS:
                self.retained_chunks = CLEANUP_KEEP_CHUNKS


class SyntheticWorkloadSource(SampleSource):
    """
    Heap or CPU samples of a SimulatedService.

    Sources sharing one service see the same leak. Each fetch of the
    heap source advances the service by one second; a CPU source on a
    shared service reads the current second.
    """

    def __init__(
        self,
        profile_type: ProfileType,
        service: Optional[SimulatedService] = None,
        seed: int = 0,
        advances_clock: Optional[bool] = None
    ):
        if profile_type not in (ProfileType.HEAP, ProfileType.CPU):
            raise ValueError(f"Synthetic workload has no {profile_type.value} profile")
        self._profile_type = profile_type
        self._owns_service = service is None
        self._service = service or SimulatedService(seed=seed)
        if advances_clock is None:
            advances_clock = self._owns_service or profile_type == ProfileType.HEAP
        self._advances_clock = advances_clock
        self._fetches = 0

    @property
    def source_id(self) -> str:
        return f"synthetic-{self._profile_type.value}"

    @property
    def profile_type(self) -> ProfileType:
        return self._profile_type

    @property
    def service(self) -> SimulatedService:
        return self._service

    async def fetch(self) -> RawSample:
        if self._advances_clock:
            self._service.advance()
        self._fetches += 1

        if self._profile_type == ProfileType.HEAP:
            values = self._heap_values()
        else:
            values = self._cpu_values()

        return RawSample(
            profile_type=self._profile_type,
            timestamp=self._service.now,
            values=values
        )

    def _heap_values(self) -> Dict[str, Dict[str, float]]:
        rng = self._service.rng
        leak = self._service.retained_chunks * MB
        transient = self._service.cpu_tasks * MB
        noise = {
            "runtime.malg": rng.randint(2, 6) * 4096,
            "runtime.allocm": rng.randint(1, 3) * 1024,
            "runtime.gc": rng.randint(64, 256) * 1024,
        }
        values = {
            LEAK_FUNCTION: {"flat": leak, "cum": leak},
            CPU_TASK_FUNCTION: {"flat": transient, "cum": transient},
        }
        for name, flat in noise.items():
            values[name] = {"flat": flat, "cum": flat}

        total = sum(entry["flat"] for entry in values.values())
        values["total"] = {"flat": total, "cum": total}
        return values

    def _cpu_values(self) -> Dict[str, Dict[str, float]]:
        rng = self._service.rng
        tasks = self._service.cpu_tasks
        do_work = round(tasks * rng.uniform(3.0, 5.0), 2)
        mallocgc = round(tasks * rng.uniform(0.4, 0.8) + self._service.memory_tasks * 0.3, 2)
        memclr = round(tasks * rng.uniform(0.2, 0.4), 2)
        scheduler = round(rng.uniform(0.1, 0.5), 2)
        values = {
            DO_WORK_FUNCTION: {"flat": do_work, "cum": do_work},
            CPU_TASK_FUNCTION: {"flat": 0.0, "cum": round(do_work + mallocgc + memclr, 2)},
            "runtime.mallocgc": {"flat": mallocgc, "cum": mallocgc},
            "runtime.memclrNoHeapPointers": {"flat": memclr, "cum": memclr},
            "runtime.schedule": {"flat": scheduler, "cum": scheduler},
        }
        return values
