"""
Sampling Contracts

Immutable data structures for sample acquisition.

BOUNDARY: Sampling Layer
Every profile sample enters the system as a RawSample.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from profiling.contracts.base import ProfileType


# =============================================================================
# ENUMS
# =============================================================================

class FetchStatus(Enum):
    """Status of a fetch attempt."""
    SUCCESS = "success"
    HTTP_ERROR = "http_error"
    PARSE_ERROR = "parse_error"
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"
    CANCELLED = "cancelled"
    REJECTED = "rejected"        # Fetched, but refused by the store


# =============================================================================
# SAMPLES AND TARGETS
# =============================================================================

@dataclass(frozen=True)
class RawSample:
    """
    One decoded profile sample.

    values maps a function name to {"flat": ..., "cum": ...}.
    """
    profile_type: ProfileType
    timestamp: datetime
    values: Mapping[str, Optional[Mapping[str, Any]]] = field(default_factory=dict)

    @property
    def series_count(self) -> int:
        return len(self.values)


@dataclass(frozen=True)
class ProfileTarget:
    """Configuration for a single profiling endpoint."""
    target_id: str
    profile_type: ProfileType
    url: str
    enabled: bool = True

    def __hash__(self):
        return hash(self.target_id)


# =============================================================================
# FETCH RESULTS
# =============================================================================

@dataclass(frozen=True)
class FetchResult:
    """
    Result of one fetch attempt.

    Failed and rejected fetches are first-class records, not exceptions.
    """
    target_id: str
    status: FetchStatus
    attempted_at: datetime
    completed_at: datetime
    error_message: Optional[str] = None
    series_count: int = 0

    @property
    def succeeded(self) -> bool:
        return self.status == FetchStatus.SUCCESS

    @property
    def duration_ms(self) -> float:
        return (self.completed_at - self.attempted_at).total_seconds() * 1000

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target_id": self.target_id,
            "status": self.status.value,
            "attempted_at": self.attempted_at.isoformat(),
            "completed_at": self.completed_at.isoformat(),
            "error_message": self.error_message,
            "series_count": self.series_count,
        }


class SampleFetchError(Exception):
    """A source could not produce a sample. `status` says why."""

    def __init__(self, status: FetchStatus, message: str):
        super().__init__(message)
        self.status = status
        self.message = message
