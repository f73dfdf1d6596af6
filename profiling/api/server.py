"""
Profile Insights: API Server
============================

HTTP surface over one ProfilingSession.

Endpoints:
- GET    /health
- GET    /api/v1/profiles                       -> Profile types with sample counts
- GET    /api/v1/profiles/{type}/insights       -> Heuristic insights
- GET    /api/v1/profiles/{type}/series         -> Aligned time series
- POST   /api/v1/profiles/{type}/samples        -> Ingest one sample
- POST   /api/v1/profiles/{type}/analysis       -> Heuristics + model analysis
- DELETE /api/v1/profiles/{type}/analysis       -> Cancel a pending analysis

Usage:
    uvicorn profiling.api.server:app --reload
"""
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

import structlog
from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from ..config import AppConfig
from ..contracts.base import AnalysisAlreadyInProgress, OutOfOrderSample, ProfileType
from ..engine import ProfilingSession
from ..observability import configure_logging
from sampling.contracts import RawSample
from .mapper import (
    map_insights,
    map_profile_list,
    map_report,
    map_snapshot,
    to_iso,
)


logger = structlog.get_logger(__name__)

CONFIG_PATH_ENV = "PROFILE_INSIGHTS_CONFIG"


# =============================================================================
# REQUEST BODIES
# =============================================================================

class SamplePointBody(BaseModel):
    """Cost of one function. Missing or null values count as 0."""
    flat: Optional[float] = Field(default=None, allow_inf_nan=False)
    cum: Optional[float] = Field(default=None, allow_inf_nan=False)


class SampleBody(BaseModel):
    """One raw sample. `timestamp` defaults to the time of receipt."""
    timestamp: Optional[datetime] = None
    samples: Dict[str, Optional[SamplePointBody]]

    def values(self) -> Dict[str, Optional[Dict[str, Optional[float]]]]:
        return {
            name: point.model_dump() if point is not None else None
            for name, point in self.samples.items()
        }


# =============================================================================
# APP FACTORY
# =============================================================================

def create_app(
    session: Optional[ProfilingSession] = None,
    config: Optional[AppConfig] = None
) -> FastAPI:
    """
    Build the app. An injected session is used as is and not closed on
    shutdown; otherwise one is created in the lifespan.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = None
        if app.state.session is None:
            app_config = config
            if app_config is None:
                path = os.environ.get(CONFIG_PATH_ENV)
                app_config = AppConfig.load(Path(path) if path else None)
            configure_logging(app_config.logging)
            owned = ProfilingSession(app_config)
            app.state.session = owned
            logger.info("session_started", analysis_url=app_config.analysis.base_url)

        yield

        if owned is not None:
            await owned.aclose()
            app.state.session = None

    app = FastAPI(
        title="Profile Insights API",
        version="0.1.0",
        description="Aligned profile time series, heuristic insights and model analysis",
        lifespan=lifespan
    )
    app.state.session = session

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
    )

    _register_routes(app)
    return app


def get_session(request: Request) -> ProfilingSession:
    session = request.app.state.session
    if session is None:
        raise HTTPException(status_code=503, detail="Session not initialized")
    return session


def get_profile_type(profile_type: str) -> ProfileType:
    try:
        return ProfileType.parse(profile_type)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


# =============================================================================
# ENDPOINTS
# =============================================================================

def _register_routes(app: FastAPI):

    @app.get("/health")
    async def health_check(session: ProfilingSession = Depends(get_session)):
        return {
            "status": "online",
            "profile_types": [pt.value for pt in session.profile_types()],
            "pending_analyses": session.orchestrator.pending_requesters(),
        }

    @app.get("/api/v1/profiles")
    async def list_profiles(session: ProfilingSession = Depends(get_session)):
        return {"profiles": map_profile_list(session.sample_counts())}

    @app.get("/api/v1/profiles/{profile_type}/insights")
    async def get_insights(
        profile: ProfileType = Depends(get_profile_type),
        session: ProfilingSession = Depends(get_session)
    ):
        return map_insights(session.insights(profile))

    @app.get("/api/v1/profiles/{profile_type}/series")
    async def get_series(
        profile: ProfileType = Depends(get_profile_type),
        session: ProfilingSession = Depends(get_session)
    ):
        return map_snapshot(session.snapshot(profile))

    @app.post("/api/v1/profiles/{profile_type}/samples")
    async def post_sample(
        body: SampleBody,
        profile: ProfileType = Depends(get_profile_type),
        session: ProfilingSession = Depends(get_session)
    ):
        timestamp = body.timestamp or datetime.now(timezone.utc)
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)

        sample = RawSample(profile_type=profile, timestamp=timestamp, values=body.values())
        try:
            result = session.ingest(sample)
        except OutOfOrderSample as e:
            logger.warning(
                "sample_rejected_out_of_order",
                profile_type=profile.value,
                timestamp=to_iso(e.timestamp),
                latest=to_iso(e.latest),
            )
            raise HTTPException(status_code=409, detail=str(e))

        return {
            "profile_type": profile.value,
            "timestamp": to_iso(result.timestamp),
            "samples": len(result.store),
            "new_series": result.new_series,
            "evicted": result.evicted,
        }

    @app.post("/api/v1/profiles/{profile_type}/analysis")
    async def post_analysis(
        profile: ProfileType = Depends(get_profile_type),
        requester_id: Optional[str] = Query(None),
        session: ProfilingSession = Depends(get_session)
    ):
        try:
            report = await session.analyze(profile, requester_id or profile.value)
        except AnalysisAlreadyInProgress as e:
            raise HTTPException(status_code=409, detail=str(e))
        return map_report(report)

    @app.delete("/api/v1/profiles/{profile_type}/analysis")
    async def cancel_analysis(
        profile: ProfileType = Depends(get_profile_type),
        requester_id: Optional[str] = Query(None),
        session: ProfilingSession = Depends(get_session)
    ):
        requester = requester_id or profile.value
        return {"requester_id": requester, "cancelled": session.cancel_analysis(requester)}


app = create_app()
