"""
Mock Analysis Provider
======================

Scripted provider for tests and offline demos.

GUARANTEES:
- Responses are returned in order; the last one repeats
- Explicit failure modes can be triggered
- An optional asyncio.Event holds every call open until it is set,
  which lets tests observe a pending analysis
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import List, Optional, Sequence
import asyncio

from ..contracts import AnalysisErrorCode
from .base import (
    AnalysisProvider,
    InvocationParams,
    ProviderResponse,
    ProviderVersion,
)


DEFAULT_RESPONSE = """=== INSIGHTS ===
- [WARNING] main.MemoryIntensiveTask retains memory between ticks
- Allocation rate is dominated by a single function

=== RECOMMENDATIONS ===
- Release buffers after each task completes

=== CODE_SUGGESTIONS ===
- Reuse a sync.Pool in main.MemoryIntensiveTask

=== SUMMARY ===
Heap growth is driven by main.MemoryIntensiveTask.
"""


class MockProvider(AnalysisProvider):

    def __init__(
        self,
        responses: Optional[Sequence[str]] = None,
        failure_mode: Optional[AnalysisErrorCode] = None,
        latency_seconds: float = 0.0,
        gate: Optional[asyncio.Event] = None
    ):
        """
        Args:
            responses: Model texts returned by successive calls
            failure_mode: If set, all calls fail with this error
            latency_seconds: Simulated latency
            gate: If set, calls wait for it before answering
        """
        self._responses = list(responses) if responses else [DEFAULT_RESPONSE]
        self._failure_mode = failure_mode
        self._latency_seconds = latency_seconds
        self._gate = gate
        self._version = ProviderVersion(
            provider_id="mock",
            model_id="mock-scripted-v1",
            api_version="1.0.0"
        )
        self.prompts: List[str] = []
        self.closed = False

    @property
    def provider_id(self) -> str:
        return "mock"

    @property
    def calls(self) -> int:
        return len(self.prompts)

    def get_version(self) -> ProviderVersion:
        return self._version

    async def generate(
        self,
        prompt: str,
        params: InvocationParams
    ) -> ProviderResponse:
        invoked_at = datetime.now(timezone.utc)
        index = len(self.prompts)
        self.prompts.append(prompt)

        if self._latency_seconds:
            await asyncio.sleep(self._latency_seconds)
        if self._gate is not None:
            await self._gate.wait()

        if self._failure_mode is not None:
            return ProviderResponse(
                success=False,
                error_code=self._failure_mode,
                error_message=f"Mock provider configured to fail: {self._failure_mode.value}",
                provider_version=self._version,
                invoked_at=invoked_at,
                latency_ms=self._latency_seconds * 1000
            )

        content = self._responses[min(index, len(self._responses) - 1)]
        return ProviderResponse(
            success=True,
            content=content,
            provider_version=self._version,
            invoked_at=invoked_at,
            latency_ms=self._latency_seconds * 1000
        )

    async def aclose(self) -> None:
        self.closed = True
