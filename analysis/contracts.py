"""
Analysis Contracts

Typed results of the external-model analysis path.

BOUNDARY ENFORCEMENT:
=====================
- All types are frozen
- An Analysis is always present; failure is an empty Analysis plus an
  explicit AnalysisTransportError, never None and never a raised error
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple

from profiling.contracts.base import ProfileType
from profiling.contracts.insights import Insight, ProfileInsights


NO_SUMMARY = "No summary available"


# =============================================================================
# ANALYSIS RESULT
# =============================================================================

@dataclass(frozen=True)
class Analysis:
    """
    Parsed model output.

    Fields default to empty collections and the NO_SUMMARY placeholder.
    """
    insights: Tuple[Insight, ...] = field(default_factory=tuple)
    summary: str = NO_SUMMARY
    recommendations: Tuple[str, ...] = field(default_factory=tuple)
    code_suggestions: Tuple[str, ...] = field(default_factory=tuple)

    @staticmethod
    def empty() -> Analysis:
        return Analysis()

    @property
    def is_empty(self) -> bool:
        return (
            not self.insights
            and not self.recommendations
            and not self.code_suggestions
            and self.summary == NO_SUMMARY
        )

    @property
    def has_summary(self) -> bool:
        return self.summary != NO_SUMMARY


# Name used by presentation collaborators
LLMAnalysis = Analysis


# =============================================================================
# ERRORS
# =============================================================================

class AnalysisErrorCode(Enum):
    """Explicit failure codes for the analysis path."""
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"
    API_ERROR = "api_error"
    INVALID_RESPONSE = "invalid_response"
    CANCELLED = "cancelled"
    INSUFFICIENT_DATA = "insufficient_data"


@dataclass(frozen=True)
class AnalysisTransportError:
    """
    Recovered failure of the outbound analysis call.

    Returned to the caller alongside an empty Analysis; never raised.
    """
    code: AnalysisErrorCode
    message: str
    occurred_at: datetime

    @staticmethod
    def create(code: AnalysisErrorCode, message: str) -> AnalysisTransportError:
        return AnalysisTransportError(
            code=code,
            message=message,
            occurred_at=datetime.now(timezone.utc)
        )


class AnalysisParseError(ValueError):
    """
    Model text did not follow the sectioned reply format.

    Internal to the parser; triggers the free-form fallback.
    """


# =============================================================================
# OUTCOMES
# =============================================================================

@dataclass(frozen=True)
class AnalysisOutcome:
    """Result of one orchestrated analysis call."""
    analysis: Analysis
    error: Optional[AnalysisTransportError] = None
    prompt_hash: Optional[str] = None
    duration_ms: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @staticmethod
    def failed(
        error: AnalysisTransportError,
        prompt_hash: Optional[str] = None,
        duration_ms: float = 0.0
    ) -> AnalysisOutcome:
        return AnalysisOutcome(
            analysis=Analysis.empty(),
            error=error,
            prompt_hash=prompt_hash,
            duration_ms=duration_ms
        )


@dataclass(frozen=True)
class AnalysisReport:
    """
    Heuristic insights merged with a (possibly empty) model analysis.

    Heuristics are always present. Model insights follow them in
    merged_insights.
    """
    profile_type: ProfileType
    heuristics: ProfileInsights
    analysis: Analysis
    error: Optional[AnalysisTransportError] = None

    @property
    def merged_insights(self) -> Tuple[Insight, ...]:
        return self.heuristics.insights + self.analysis.insights

    @property
    def summary(self) -> str:
        if self.error is None and self.analysis.has_summary:
            return self.analysis.summary
        return self.heuristics.summary

    @property
    def error_message(self) -> Optional[str]:
        return self.error.message if self.error else None
