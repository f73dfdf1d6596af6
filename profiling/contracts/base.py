"""
Base Contracts and Shared Types

Foundational types used across the store, detectors and analysis layer.
Everything here is immutable data or a typed exception.

BOUNDARY ENFORCEMENT:
=====================
- Imported by every layer, imports nothing from them
- Value types are frozen dataclasses
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional


# =============================================================================
# PROFILE TYPES
# =============================================================================

class ProfileType(Enum):
    """Kinds of runtime profile the collector can sample."""
    CPU = "cpu"
    HEAP = "heap"
    ALLOCS = "allocs"
    GOROUTINE = "goroutine"

    @classmethod
    def parse(cls, value: str) -> 'ProfileType':
        """Case-insensitive lookup, raises ValueError on unknown names."""
        try:
            return cls(value.strip().lower())
        except ValueError:
            known = ", ".join(p.value for p in cls)
            raise ValueError(f"Unknown profile type '{value}' (expected one of: {known})")


# =============================================================================
# SAMPLE POINT
# =============================================================================

@dataclass(frozen=True)
class SamplePoint:
    """
    Cost of one function at one instant.

    flat: self cost, excluding callees
    cum:  inclusive cost, including callees
    """
    flat: float = 0.0
    cum: float = 0.0

    @staticmethod
    def zero() -> SamplePoint:
        return _ZERO_POINT

    @staticmethod
    def from_raw(raw: Optional[Mapping[str, Any]]) -> SamplePoint:
        """
        Build a point from a decoded sample entry.

        Missing keys and None values default to 0.
        """
        if raw is None:
            return _ZERO_POINT
        if isinstance(raw, SamplePoint):
            return raw
        flat = raw.get("flat")
        cum = raw.get("cum")
        return SamplePoint(
            flat=float(flat) if flat is not None else 0.0,
            cum=float(cum) if cum is not None else 0.0,
        )


_ZERO_POINT = SamplePoint(0.0, 0.0)


# =============================================================================
# ERRORS
# =============================================================================

class OutOfOrderSample(ValueError):
    """
    A sample timestamp did not advance past the latest stored timestamp.

    Fatal to the merge call only. The store is left unchanged.
    """

    def __init__(self, timestamp: datetime, latest: datetime):
        self.timestamp = timestamp
        self.latest = latest
        super().__init__(
            f"Sample at {timestamp.isoformat()} is not after latest "
            f"stored timestamp {latest.isoformat()}"
        )


class AnalysisAlreadyInProgress(RuntimeError):
    """A requester asked for an analysis while its previous one is pending."""

    def __init__(self, requester_id: str):
        self.requester_id = requester_id
        super().__init__(f"Analysis already in progress for requester '{requester_id}'")
