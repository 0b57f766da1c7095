#!/usr/bin/env python3
"""
FastAPI Application Entry Point

This is the main entry point for the SSE chat relay. It configures the
FastAPI application, its lifespan (session store, upstream client,
orchestrator), middleware, exception handlers and routes.
"""

import asyncio
import uuid
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sse_relay.application.api.middleware.error_handler import ErrorHandlingMiddleware
from sse_relay.application.api.routes import (
    health_router,
    models_router,
    prepare_router,
    streaming_router,
)
from sse_relay.core.config.constants import HEADER_THREAD_ID
from sse_relay.core.config.settings import Settings, get_settings
from sse_relay.core.exceptions import ConfigurationError, SSEBaseError, ValidationError
from sse_relay.core.logging.logger import clear_thread_id, get_logger, set_thread_id, setup_logging
from sse_relay.infrastructure.sessions.session_store import SessionStore
from sse_relay.llm_stream.providers.upstream_client import UpstreamClient
from sse_relay.llm_stream.services.stream_orchestrator import StreamOrchestrator

logger = get_logger(__name__)


# ============================================================================
# Event Loop Fault Handler
# ============================================================================


def handle_loop_exception(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
    """
    Log exceptions from tasks nobody awaited.

    Replaces asyncio's default handler so an orphaned failure is recorded as a
    structured log entry; the server keeps serving other connections.
    """
    exception = context.get("exception")
    logger.error(
        "Unhandled exception in event loop",
        loop_message=context.get("message"),
        error_type=type(exception).__name__ if exception else None,
        error=str(exception) if exception else None,
        exc_info=exception,
    )


# ============================================================================
# Application Lifespan
# ============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle (startup and shutdown).

    STAGE-0: Startup fails with ConfigurationError when no upstream API key
    is configured.
    """
    settings: Settings = app.state.settings

    setup_logging(log_level=settings.logging.LOG_LEVEL, log_format=settings.logging.LOG_FORMAT)

    logger.info(
        "Starting SSE Chat Relay",
        environment=settings.app.ENVIRONMENT,
        version=settings.app.APP_VERSION,
    )

    if not settings.upstream.OPENROUTER_API_KEY:
        raise ConfigurationError(
            "OPENROUTER_API_KEY is not set", details={"setting": "OPENROUTER_API_KEY"}
        )

    loop = asyncio.get_running_loop()
    previous_handler = loop.get_exception_handler()
    loop.set_exception_handler(handle_loop_exception)

    session_store = SessionStore.from_settings(settings)
    session_store.start()

    upstream_client = app.state.upstream_client or UpstreamClient(settings)

    orchestrator = StreamOrchestrator(
        session_store=session_store,
        upstream_client=upstream_client,
        settings=settings,
    )

    # Store in app state for dependencies.py
    app.state.session_store = session_store
    app.state.upstream_client = upstream_client
    app.state.orchestrator = orchestrator

    logger.info("Application startup complete", upstream=settings.upstream.OPENROUTER_BASE_URL)

    try:
        yield

    finally:
        logger.info("Shutting down application", pending_sessions=len(session_store))

        await session_store.stop()
        await upstream_client.aclose()
        loop.set_exception_handler(previous_handler)

        logger.info("Application shutdown complete")


# ============================================================================
# Exception Handlers
# ============================================================================


def _describe_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "invalid request"


async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are client errors: 400 with ``{"error": ...}``."""
    message = _describe_validation_errors(exc)
    logger.warning("Request validation failed", path=request.url.path, error=message)
    return JSONResponse(status_code=400, content={"error": message})


async def validation_exception_handler(request: Request, exc: ValidationError):
    logger.warning("Invalid input", path=request.url.path, error=exc.message, details=exc.details)
    return JSONResponse(status_code=400, content={"error": exc.message})


async def sse_exception_handler(request: Request, exc: SSEBaseError):
    """Handle relay-specific exceptions."""
    logger.error(
        f"Relay exception: {exc.message}",
        error_type=type(exc).__name__,
        path=request.url.path,
        details=exc.details,
    )
    return JSONResponse(
        status_code=500,
        content={"error": exc.message, "error_type": type(exc).__name__},
    )


# ============================================================================
# Middleware
# ============================================================================


async def thread_id_middleware(request: Request, call_next):
    """
    Inject thread ID into all requests for correlation.
    """
    thread_id = request.headers.get(HEADER_THREAD_ID) or str(uuid.uuid4())
    set_thread_id(thread_id)

    try:
        response = await call_next(request)
        # Stream responses already carry the session id
        response.headers.setdefault(HEADER_THREAD_ID, thread_id)
        return response

    finally:
        clear_thread_id()


# ============================================================================
# Application Factory
# ============================================================================


def create_app(
    settings: Settings | None = None, upstream_client: UpstreamClient | None = None
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Settings to use (global settings if omitted)
        upstream_client: Pre-built upstream client (tests inject one backed by
            an httpx MockTransport); built during startup if omitted

    Returns:
        FastAPI: Configured application instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app.APP_NAME,
        version=settings.app.APP_VERSION,
        description="Two-step SSE relay for streaming chat completions",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings
    app.state.upstream_client = upstream_client

    # ========================================================================
    # MIDDLEWARE REGISTRATION
    # ========================================================================
    # Executed in reverse order of registration: thread id, then CORS, then
    # error handling closest to the routes.

    app.add_middleware(
        ErrorHandlingMiddleware,
        include_traceback=(settings.app.ENVIRONMENT == "development"),
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.app.CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[HEADER_THREAD_ID],
    )

    app.middleware("http")(thread_id_middleware)

    # ========================================================================
    # EXCEPTION HANDLERS
    # ========================================================================

    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(ValidationError, validation_exception_handler)
    app.add_exception_handler(SSEBaseError, sse_exception_handler)

    # ========================================================================
    # ROUTER REGISTRATION
    # ========================================================================

    app.include_router(health_router)
    app.include_router(prepare_router)
    app.include_router(streaming_router)
    app.include_router(models_router)

    return app


# Create application instance
app = create_app()
