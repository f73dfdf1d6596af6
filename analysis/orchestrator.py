"""
Analysis Orchestrator
=====================

Builds the prompt, calls the provider once, parses the reply.

GUARANTEES:
===========
1. At most one outstanding call per requester
   - A second request raises AnalysisAlreadyInProgress, first call untouched
2. Transport failures come back as AnalysisOutcome.error, never raised
3. Explicit cancellation yields a CANCELLED outcome, no retry
   - Cancelling the caller's own task propagates and frees the slot
4. An empty snapshot never reaches the network
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set
import asyncio
import time

import structlog

from profiling.config import AnalysisConfig, PromptConfig
from profiling.contracts.base import AnalysisAlreadyInProgress, ProfileType
from profiling.contracts.timeseries import StoreSnapshot
from profiling.observability import MetricsCollector

from .contracts import (
    AnalysisErrorCode,
    AnalysisOutcome,
    AnalysisTransportError,
)
from .parser import parse
from .prompts import CanonicalPrompt
from .providers.base import AnalysisProvider, InvocationParams, ProviderResponse


logger = structlog.get_logger(__name__)


class AnalysisOrchestrator:
    """
    Single-flight analysis per requester.

    The provider is injected; the orchestrator never constructs one.
    """

    def __init__(
        self,
        provider: AnalysisProvider,
        analysis_config: Optional[AnalysisConfig] = None,
        prompt_config: Optional[PromptConfig] = None,
        metrics: Optional[MetricsCollector] = None
    ):
        self._provider = provider
        self._analysis_config = analysis_config or AnalysisConfig()
        self._prompt_config = prompt_config or PromptConfig()
        self._metrics = metrics
        self._in_flight: Dict[str, asyncio.Task] = {}
        self._cancelled: Set[str] = set()

    @property
    def provider(self) -> AnalysisProvider:
        return self._provider

    @property
    def params(self) -> InvocationParams:
        return InvocationParams(
            temperature=self._analysis_config.temperature,
            num_predict=self._analysis_config.num_predict,
            timeout_seconds=self._analysis_config.timeout_seconds
        )

    def is_pending(self, requester_id: str) -> bool:
        task = self._in_flight.get(requester_id)
        return task is not None and not task.done()

    def pending_requesters(self) -> List[str]:
        return [rid for rid in self._in_flight if self.is_pending(rid)]

    def cancel(self, requester_id: str) -> bool:
        """Cancel the pending call of `requester_id`. False if none is pending."""
        task = self._in_flight.get(requester_id)
        if task is None or task.done():
            return False
        self._cancelled.add(requester_id)
        task.cancel()
        logger.info("analysis_cancel_requested", requester_id=requester_id)
        return True

    async def analyze(
        self,
        requester_id: str,
        profile_type: ProfileType,
        snapshot: StoreSnapshot
    ) -> AnalysisOutcome:
        if self.is_pending(requester_id):
            raise AnalysisAlreadyInProgress(requester_id)

        labels = {"profile_type": profile_type.value}

        if snapshot.is_empty:
            return self._failed(
                AnalysisTransportError.create(
                    AnalysisErrorCode.INSUFFICIENT_DATA,
                    f"No {profile_type.value} samples collected yet"
                ),
                labels
            )

        prompt = CanonicalPrompt.create(profile_type, snapshot, self._prompt_config)
        self._record("analysis_requests_total", 1, labels)
        logger.info(
            "analysis_started",
            requester_id=requester_id,
            profile_type=profile_type.value,
            samples=prompt.sample_count,
            prompt_hash=prompt.prompt_hash[:12],
        )

        task = asyncio.ensure_future(self._provider.generate(prompt.prompt_text, self.params))
        self._in_flight[requester_id] = task
        start_time = time.monotonic()

        try:
            response: ProviderResponse = await task
        except asyncio.CancelledError:
            if requester_id not in self._cancelled:
                # Caller's own task was cancelled
                task.cancel()
                raise
            logger.info("analysis_cancelled", requester_id=requester_id)
            return self._failed(
                AnalysisTransportError.create(
                    AnalysisErrorCode.CANCELLED,
                    "Analysis was cancelled"
                ),
                labels,
                prompt.prompt_hash,
                self._elapsed_ms(start_time)
            )
        except Exception as e:
            logger.exception("analysis_provider_raised", requester_id=requester_id)
            return self._failed(
                AnalysisTransportError.create(
                    AnalysisErrorCode.NETWORK_ERROR,
                    f"Analysis provider raised {type(e).__name__}: {e}"
                ),
                labels,
                prompt.prompt_hash,
                self._elapsed_ms(start_time)
            )
        finally:
            if self._in_flight.get(requester_id) is task:
                del self._in_flight[requester_id]
            self._cancelled.discard(requester_id)

        duration_ms = self._elapsed_ms(start_time)
        self._record("analysis_duration_ms", duration_ms, labels)

        if not response.success:
            return self._failed(
                AnalysisTransportError.create(
                    response.error_code,
                    response.error_message or response.error_code.value
                ),
                labels,
                prompt.prompt_hash,
                duration_ms
            )

        analysis = parse(response.content, datetime.now(timezone.utc))
        logger.info(
            "analysis_completed",
            requester_id=requester_id,
            profile_type=profile_type.value,
            insights=len(analysis.insights),
            recommendations=len(analysis.recommendations),
            duration_ms=round(duration_ms, 1),
        )
        return AnalysisOutcome(
            analysis=analysis,
            prompt_hash=prompt.prompt_hash,
            duration_ms=duration_ms
        )

    async def aclose(self) -> None:
        for requester_id in list(self.pending_requesters()):
            self.cancel(requester_id)
        await self._provider.aclose()

    def _failed(
        self,
        error: AnalysisTransportError,
        labels: Dict[str, str],
        prompt_hash: Optional[str] = None,
        duration_ms: float = 0.0
    ) -> AnalysisOutcome:
        logger.warning(
            "analysis_failed",
            code=error.code.value,
            error=error.message,
            **labels,
        )
        self._record("analysis_failures_total", 1, {**labels, "code": error.code.value})
        return AnalysisOutcome.failed(error, prompt_hash, duration_ms)

    def _record(self, name: str, value: float, labels: Dict[str, str]):
        if self._metrics is not None:
            self._metrics.record(name, value, labels)

    @staticmethod
    def _elapsed_ms(start_time: float) -> float:
        return (time.monotonic() - start_time) * 1000
