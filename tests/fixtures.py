"""
Shared Test Builders

Explicit, hand-written samples. Nothing here is random.
"""

from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Mapping, Optional, Sequence
import asyncio

from profiling.config import AppConfig, StoreConfig
from profiling.contracts.base import ProfileType
from profiling.contracts.timeseries import StoreSnapshot
from profiling.timeseries.store import TimeSeriesStore
from sampling.contracts import RawSample


T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
MB = 1024 * 1024


def ts(i: int) -> datetime:
    """Timestamp of the i-th one-second sample."""
    return T0 + timedelta(seconds=i)


def entry(flat: float, cum: Optional[float] = None) -> Dict[str, float]:
    return {"flat": flat, "cum": flat if cum is None else cum}


def make_store(
    samples: Sequence[Mapping[str, Mapping[str, float]]],
    profile_type: ProfileType = ProfileType.HEAP,
    max_samples: Optional[int] = None
) -> TimeSeriesStore:
    """Merge `samples` at ts(0), ts(1), ... into a fresh store."""
    store = TimeSeriesStore(profile_type, StoreConfig(max_samples=max_samples))
    for i, values in enumerate(samples):
        store.merge(ts(i), values)
    return store


def make_snapshot(
    samples: Sequence[Mapping[str, Mapping[str, float]]],
    profile_type: ProfileType = ProfileType.HEAP
) -> StoreSnapshot:
    return make_store(samples, profile_type).snapshot()


def raw_sample(
    i: int,
    values: Mapping[str, Mapping[str, float]],
    profile_type: ProfileType = ProfileType.HEAP
) -> RawSample:
    return RawSample(profile_type=profile_type, timestamp=ts(i), values=dict(values))


def leaking_heap_samples(n: int = 5) -> List[Dict[str, Dict[str, float]]]:
    """main.MemoryIntensiveTask grows 1 MB per sample; runtime noise stays flat."""
    return [
        {
            "main.MemoryIntensiveTask": entry((i + 1) * MB),
            "runtime.malg": entry(64 * 1024),
        }
        for i in range(n)
    ]


def cpu_samples() -> List[Dict[str, Dict[str, float]]]:
    return [
        {
            "main.(*SimulatedWorkload).DoWork": entry(12.0),
            "runtime.mallocgc": entry(9.0),
            "runtime.memclrNoHeapPointers": entry(1.5),
            "runtime.schedule": entry(4.0),
            "total": entry(26.5),
        },
    ]


def app_config(**store_overrides) -> AppConfig:
    return AppConfig(store=StoreConfig(**store_overrides)) if store_overrides else AppConfig()


def run(coro):
    return asyncio.run(coro)


MARKED_RESPONSE = """Here is my analysis.

=== INSIGHTS ===
- [CRITICAL] main.MemoryIntensiveTask leaks 1 MB per tick
- Runtime overhead is low

=== RECOMMENDATIONS ===
- Free chunks after use
- Cap the retained slice
- Add a heap alert

=== CODE_SUGGESTIONS ===
- Use a ring buffer in main.MemoryIntensiveTask

=== SUMMARY ===
   The heap grows linearly because of a retained slice.
"""

FREE_FORM_RESPONSE = """Insights:
- Heap is growing steadily
* [WARNING] GC pressure is rising

Recommendations:
- Reduce allocations

Summary: Memory pressure comes from one task.
"""
