"""
Sampling Layer

Acquires raw profile samples and feeds them to a ProfilingSession.

PRINCIPLES:
===========
1. Fetches are bounded and explicitly cancellable
2. Failed fetches are first-class records
3. Sources never write to the store directly
"""

from .contracts import (
    FetchStatus,
    RawSample,
    ProfileTarget,
    FetchResult,
    SampleFetchError,
)
from .sources import SampleSource, HttpSampleSource, decode_values
from .registry import TargetRegistry
from .synthetic import SimulatedService, SyntheticWorkloadSource
from .loop import SamplingLoop

__all__ = [
    'FetchStatus', 'RawSample', 'ProfileTarget', 'FetchResult', 'SampleFetchError',
    'SampleSource', 'HttpSampleSource', 'decode_values',
    'TargetRegistry',
    'SimulatedService', 'SyntheticWorkloadSource',
    'SamplingLoop',
]
