"""
Prepare Route
=============

Step one of the two-step handshake: the client posts its chat request, gets
back an opaque session id, and then opens ``GET /stream/{sessionId}`` with an
``EventSource`` (which cannot send a request body).
"""

from fastapi import APIRouter, status

from sse_relay.application.api.dependencies import SessionStoreDep
from sse_relay.application.api.models.prepare import PrepareRequest, PrepareResponse

router = APIRouter(tags=["Streaming"])


@router.post(
    "/prepare",
    response_model=PrepareResponse,
    status_code=status.HTTP_200_OK,
    responses={400: {"description": "Body is not a JSON object or messages are malformed"}},
)
async def prepare(store: SessionStoreDep, body: PrepareRequest | None = None) -> PrepareResponse:
    """
    Register a chat request and return its session id.

    An empty body is valid: the session gets the default model, a system
    preamble and a placeholder user turn.
    """
    body = body or PrepareRequest()
    session = await store.create(body.model, body.message_dicts())
    return PrepareResponse(sessionId=session.id)
