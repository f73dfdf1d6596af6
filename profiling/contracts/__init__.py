"""
Contracts Module

Explicit data types passed between the store, the detectors, the
analysis layer and the API. No layer imports another layer's internals.

DESIGN PRINCIPLES:
==================
1. Value types are immutable (frozen dataclasses, tuples)
2. Errors the caller must handle are typed exceptions
3. Recoverable analysis failures are data, not exceptions
"""

from .base import (
    ProfileType,
    SamplePoint,
    OutOfOrderSample,
    AnalysisAlreadyInProgress,
)
from .timeseries import SeriesSnapshot, StoreSnapshot
from .insights import InsightKind, Insight, TopConsumer, ProfileInsights

__all__ = [
    'ProfileType', 'SamplePoint',
    'OutOfOrderSample', 'AnalysisAlreadyInProgress',
    'SeriesSnapshot', 'StoreSnapshot',
    'InsightKind', 'Insight', 'TopConsumer', 'ProfileInsights',
]
