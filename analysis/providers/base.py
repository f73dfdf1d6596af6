"""
Analysis Provider Abstraction
=============================

Abstract interface for the external model that writes the analysis.

BOUNDARY ENFORCEMENT:
- Providers are constructor-injected, never module singletons
- Failures are explicit ProviderResponse values, never raised
- Cancellation (asyncio.CancelledError) is the one thing that propagates
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..contracts import AnalysisErrorCode


@dataclass(frozen=True)
class ProviderVersion:
    provider_id: str       # "ollama" | "mock"
    model_id: str          # "codellama"
    api_version: str


@dataclass(frozen=True)
class ProviderResponse:
    """
    Immutable response from a provider.

    INVARIANT: Either (success=True, content set) or (success=False, error_code set)
    """
    success: bool
    content: Optional[str] = None

    # Failure info (only set if success=False)
    error_code: Optional[AnalysisErrorCode] = None
    error_message: Optional[str] = None

    provider_version: Optional[ProviderVersion] = None
    invoked_at: Optional[datetime] = None
    latency_ms: float = 0.0

    def __post_init__(self):
        if self.success and self.content is None:
            raise ValueError("Successful response must have content")
        if not self.success and self.error_code is None:
            raise ValueError("Failed response must have error_code")


@dataclass(frozen=True)
class InvocationParams:
    temperature: float = 0.7
    num_predict: int = 2000
    timeout_seconds: float = 120.0


class AnalysisProvider(ABC):
    """
    Abstract analysis provider.

    EXPLICIT FAILURE STATES:
    - TIMEOUT: Call exceeded timeout_seconds
    - NETWORK_ERROR: Connection failed
    - API_ERROR: Endpoint returned a non-2xx status
    - INVALID_RESPONSE: Body was not the expected JSON shape
    """

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        params: InvocationParams
    ) -> ProviderResponse:
        """
        Send one prompt and return the raw model text.

        MUST return ProviderResponse for every failure except cancellation.
        """

    @abstractmethod
    def get_version(self) -> ProviderVersion:
        pass

    @property
    @abstractmethod
    def provider_id(self) -> str:
        pass

    async def aclose(self) -> None:
        """Release network resources. Default: nothing to release."""
