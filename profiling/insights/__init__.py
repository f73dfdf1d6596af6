"""
Heuristic Insight Detectors

RESPONSIBILITY: Deterministic insights from a store snapshot
ALLOWED INPUTS: StoreSnapshot, HeuristicThresholds
OUTPUTS: ProfileInsights

GUARANTEES:
===========
1. Pure functions - same snapshot, same result
2. Never raise on degenerate data (no samples, zero totals)
3. Unsupported profile types yield an empty result, not an error
"""

from __future__ import annotations
from typing import Callable, Dict, Optional

from ..config import HeuristicThresholds
from ..contracts.base import ProfileType
from ..contracts.insights import ProfileInsights
from ..contracts.timeseries import StoreSnapshot
from .cpu import analyze_cpu, is_cpu_relevant
from .heap import analyze_heap, heap_growth_rate


Detector = Callable[[StoreSnapshot, HeuristicThresholds], ProfileInsights]

DETECTORS: Dict[ProfileType, Detector] = {
    ProfileType.HEAP: analyze_heap,
    ProfileType.CPU: analyze_cpu,
}


def analyze_profile(
    profile_type: ProfileType,
    snapshot: StoreSnapshot,
    thresholds: Optional[HeuristicThresholds] = None
) -> ProfileInsights:
    """Dispatch to the detector registered for `profile_type`."""
    detector = DETECTORS.get(profile_type)
    if detector is None:
        return ProfileInsights.empty(f"No insights available for {profile_type.value}")
    return detector(snapshot, thresholds or HeuristicThresholds())


__all__ = [
    'analyze_profile', 'analyze_heap', 'analyze_cpu',
    'heap_growth_rate', 'is_cpu_relevant', 'DETECTORS',
]
