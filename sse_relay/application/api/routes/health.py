"""
Health Check Routes
===================

``GET /`` is the liveness probe: it does no work and only says the process is
up. ``GET /health`` adds the relay's own state (pending sessions, streams in
flight, outcome counters); it never calls the upstream.
"""

from fastapi import APIRouter

from sse_relay.application.api.dependencies import OrchestratorDep, SessionStoreDep, SettingsDep
from sse_relay.application.api.models.prepare import HealthResponse

router = APIRouter(tags=["Health"])


@router.get("/")
async def root(settings: SettingsDep):
    """Liveness endpoint."""
    return {
        "name": settings.app.APP_NAME,
        "status": "alive",
        "version": settings.app.APP_VERSION,
    }


@router.get("/health", response_model=HealthResponse)
async def health_check(
    settings: SettingsDep, store: SessionStoreDep, orchestrator: OrchestratorDep
) -> HealthResponse:
    """
    Relay health snapshot.

    ``status`` is ``degraded`` when the session sweeper is not running, since
    abandoned sessions would then accumulate.
    """
    stats = orchestrator.get_stats()
    return HealthResponse(
        status="healthy" if store.running else "degraded",
        sessions=len(store),
        active_streams=orchestrator.active_streams,
        version=settings.app.APP_VERSION,
        streams=stats["outcomes"],
    )
