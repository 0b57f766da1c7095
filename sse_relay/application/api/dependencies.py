"""
FastAPI Dependency Injection Module
===================================

Reusable dependencies for the singletons built during application startup
(see ``lifespan`` in ``sse_relay/application/app.py``). Everything lives on
``app.state``, so each ``create_app()`` instance, and each test, gets its own
store, upstream client and orchestrator.

Example:
    @router.get("/example")
    async def my_route(store: SessionStoreDep):
        return {"sessions": len(store)}
"""

from typing import Annotated

from fastapi import Depends, Request

from sse_relay.core.config.settings import Settings
from sse_relay.core.exceptions import ConfigurationError
from sse_relay.infrastructure.sessions.session_store import SessionStore
from sse_relay.llm_stream.providers.upstream_client import UpstreamClient
from sse_relay.llm_stream.services.stream_orchestrator import StreamOrchestrator

# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


def _from_state(request: Request, name: str):
    try:
        return getattr(request.app.state, name)
    except AttributeError as e:
        raise ConfigurationError(
            f"{name} is not initialized; the application lifespan did not run",
            details={"component": name},
        ) from e


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return _from_state(request, "settings")


def get_session_store(request: Request) -> SessionStore:
    return _from_state(request, "session_store")


def get_upstream_client(request: Request) -> UpstreamClient:
    return _from_state(request, "upstream_client")


def get_orchestrator(request: Request) -> StreamOrchestrator:
    """
    Retrieve the StreamOrchestrator singleton from application state.

    Raises:
        ConfigurationError: If the lifespan startup did not complete
    """
    return _from_state(request, "orchestrator")


# ============================================================================
# TYPE ALIASES
# ============================================================================

SettingsDep = Annotated[Settings, Depends(get_app_settings)]

SessionStoreDep = Annotated[SessionStore, Depends(get_session_store)]

UpstreamClientDep = Annotated[UpstreamClient, Depends(get_upstream_client)]

OrchestratorDep = Annotated[StreamOrchestrator, Depends(get_orchestrator)]
