"""
Error Handling Middleware
=========================

Last line of defense for HTTP requests. FastAPI's exception handlers (see
``app.py``) turn the relay's own exceptions into 400/500 responses; this
middleware catches whatever is left so a bug in one request is logged and
answered with a 500 instead of tearing down the connection.

Streaming responses are not covered once their headers are sent: failures
inside a stream are reported in-band by the orchestrator.
"""

import traceback
from collections.abc import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from sse_relay.core.logging.logger import get_logger

logger = get_logger(__name__)


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for centralized handling of unexpected exceptions.

    Responses carry ``{"error": ...}`` like every other error of the relay;
    in development the traceback is included.
    """

    def __init__(self, app, include_traceback: bool = False):
        """
        Args:
            app: The ASGI application
            include_traceback: Whether to include stack traces in error responses
        """
        super().__init__(app)
        self.include_traceback = include_traceback

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)

        except Exception as e:
            method = request.method
            path = request.url.path
            error_type = type(e).__name__

            logger.error(
                f"Unhandled exception in request: {method} {path}",
                method=method,
                path=path,
                error_type=error_type,
                error_message=str(e),
                exc_info=True,
            )

            error_response = {
                "error": "An unexpected error occurred while processing your request",
                "error_type": error_type,
            }

            if self.include_traceback:
                error_response["detail"] = str(e)
                error_response["traceback"] = traceback.format_exc()

            return JSONResponse(status_code=500, content=error_response)
