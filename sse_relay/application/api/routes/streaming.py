"""
Streaming Routes
================

Step two of the handshake. ``GET /stream/{session_id}`` answers with
``text/event-stream`` and relays the upstream completion for that session:

    : ping

    event: chunk
    data: {"content":"Hi"}

    event: done
    data: [DONE]

The status is always 200 once the route is reached; problems are reported
in-band as a single ``error`` event so ``EventSource`` clients can read them.
"""

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from sse_relay.application.api.dependencies import OrchestratorDep
from sse_relay.application.services.sse_writer import ClientSSEWriter
from sse_relay.core.config.constants import HEADER_THREAD_ID
from sse_relay.core.logging.logger import get_logger

router = APIRouter(prefix="/stream", tags=["Streaming"])
logger = get_logger(__name__)


@router.get(
    "/{session_id}",
    responses={200: {"description": "SSE stream", "content": {"text/event-stream": {}}}},
)
async def stream_session(session_id: str, request: Request, orchestrator: OrchestratorDep):
    """
    Relay the prepared session as server-sent events.

    The client ``Origin`` header feeds the upstream ``Referer`` unless one is
    configured. Closing the connection stops the upstream read.
    """
    logger.info("stream_request_received", session_id=session_id)

    writer = ClientSSEWriter()
    events = orchestrator.stream(
        session_id,
        referer=request.headers.get("origin"),
        is_disconnected=request.is_disconnected,
    )

    return StreamingResponse(
        writer.relay(events),
        media_type=writer.media_type,
        headers={**writer.headers, HEADER_THREAD_ID: session_id},
    )
