"""
Session Engine Module

This module provides the unified interface for one profiling session:
one time-series store per profile type plus the analysis orchestrator.

DESIGN PRINCIPLES:
==================
1. Layers communicate ONLY through contracts
2. Only ingest() writes; every other call reads a snapshot
3. A failed model analysis never hides the heuristic insights
4. The analysis provider is injected, never a module global
"""

from __future__ import annotations
from typing import Dict, List, Optional

import structlog

from analysis.contracts import AnalysisReport
from analysis.orchestrator import AnalysisOrchestrator
from analysis.providers.base import AnalysisProvider
from analysis.providers.ollama import OllamaProvider
from sampling.contracts import RawSample

from .config import AppConfig
from .contracts.base import ProfileType
from .contracts.insights import ProfileInsights
from .contracts.timeseries import StoreSnapshot
from .insights import analyze_profile
from .observability import MetricsCollector
from .timeseries.store import MergeResult, TimeSeriesStore


logger = structlog.get_logger(__name__)


class ProfilingSession:
    """
    Unified session over all profile types.

    FLOW:
    =====
    1. Sampling: RawSample -> ingest() -> TimeSeriesStore.merge
    2. Detectors: snapshot -> ProfileInsights
    3. Analysis: snapshot -> prompt -> provider -> Analysis
    4. Report: heuristics + analysis -> AnalysisReport
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        provider: Optional[AnalysisProvider] = None,
        metrics: Optional[MetricsCollector] = None
    ):
        self._config = config or AppConfig()
        self._metrics = metrics or MetricsCollector(self._config.metrics.max_points)
        self._stores: Dict[ProfileType, TimeSeriesStore] = {}
        self._orchestrator = AnalysisOrchestrator(
            provider or OllamaProvider(self._config.analysis),
            analysis_config=self._config.analysis,
            prompt_config=self._config.prompt,
            metrics=self._metrics
        )

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics

    @property
    def orchestrator(self) -> AnalysisOrchestrator:
        return self._orchestrator

    def store(self, profile_type: ProfileType) -> TimeSeriesStore:
        """Store for `profile_type`, created on first use."""
        store = self._stores.get(profile_type)
        if store is None:
            store = TimeSeriesStore(profile_type, self._config.store, self._metrics)
            self._stores[profile_type] = store
        return store

    # =========================================================================
    # WRITE
    # =========================================================================

    def ingest(self, sample: RawSample) -> MergeResult:
        """
        Merge one sample into the store for its profile type.

        Raises OutOfOrderSample; the store is left unchanged.
        """
        return self.store(sample.profile_type).merge(sample.timestamp, sample.values)

    # =========================================================================
    # READ
    # =========================================================================

    def snapshot(self, profile_type: ProfileType) -> StoreSnapshot:
        store = self._stores.get(profile_type)
        if store is None:
            return StoreSnapshot.empty(profile_type)
        return store.snapshot()

    def insights(self, profile_type: ProfileType) -> ProfileInsights:
        return analyze_profile(profile_type, self.snapshot(profile_type), self._config.thresholds)

    def profile_types(self) -> List[ProfileType]:
        """Profile types holding at least one sample, in enum order."""
        return [pt for pt in ProfileType if pt in self._stores and len(self._stores[pt])]

    def sample_counts(self) -> Dict[ProfileType, int]:
        return {pt: len(self._stores[pt]) for pt in self.profile_types()}

    # =========================================================================
    # ANALYSIS
    # =========================================================================

    async def analyze(
        self,
        profile_type: ProfileType,
        requester_id: str = "default"
    ) -> AnalysisReport:
        """
        Heuristics plus one model analysis of the current snapshot.

        Raises AnalysisAlreadyInProgress if `requester_id` has a pending
        call. Every other failure is reported in AnalysisReport.error.
        """
        snapshot = self.snapshot(profile_type)
        heuristics = analyze_profile(profile_type, snapshot, self._config.thresholds)
        outcome = await self._orchestrator.analyze(requester_id, profile_type, snapshot)
        return AnalysisReport(
            profile_type=profile_type,
            heuristics=heuristics,
            analysis=outcome.analysis,
            error=outcome.error
        )

    def cancel_analysis(self, requester_id: str = "default") -> bool:
        return self._orchestrator.cancel(requester_id)

    def is_analysis_pending(self, requester_id: str = "default") -> bool:
        return self._orchestrator.is_pending(requester_id)

    async def aclose(self) -> None:
        await self._orchestrator.aclose()
        logger.info("session_closed", profile_types=[pt.value for pt in self.profile_types()])
