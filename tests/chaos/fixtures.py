"""
Chaos Sources

Sample sources that misbehave on purpose: late, slow, reordered.
"""

import asyncio
from datetime import datetime
from typing import Iterable, List

from profiling.contracts.base import ProfileType
from sampling.contracts import RawSample
from sampling.sources import SampleSource


class ReplaySource(SampleSource):
    """Replays timestamps in the given (possibly shuffled) order."""

    def __init__(self, timestamps: Iterable[datetime], values=None, name="replay"):
        self._timestamps: List[datetime] = list(timestamps)
        self._values = values or {"main.a": {"flat": 1.0, "cum": 1.0}}
        self._name = name
        self._index = 0

    @property
    def source_id(self) -> str:
        return self._name

    @property
    def profile_type(self) -> ProfileType:
        return ProfileType.HEAP

    async def fetch(self) -> RawSample:
        timestamp = self._timestamps[min(self._index, len(self._timestamps) - 1)]
        self._index += 1
        return RawSample(ProfileType.HEAP, timestamp, dict(self._values))


class StallingSource(SampleSource):
    """Never answers until cancelled; tracks how many fetches overlap."""

    def __init__(self, name="stalling"):
        self._name = name
        self.started = 0
        self.active = 0
        self.peak_active = 0

    @property
    def source_id(self) -> str:
        return self._name

    @property
    def profile_type(self) -> ProfileType:
        return ProfileType.CPU

    async def fetch(self) -> RawSample:
        self.started += 1
        self.active += 1
        self.peak_active = max(self.peak_active, self.active)
        try:
            await asyncio.sleep(3600)
        finally:
            self.active -= 1
        raise AssertionError("stalled fetch was never cancelled")
