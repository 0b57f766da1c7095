"""
Prepare API Models
==================

Pydantic models for the ``POST /prepare`` handshake and the liveness
endpoints.

The prepare body is deliberately lenient: every field is optional and an
unusable model id is replaced by the default model later on. What is
rejected (400) is a body that is not a JSON object, or a ``messages`` value
that is not a list of ``{role, content}`` objects.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# ============================================================================
# REQUEST MODELS
# ============================================================================


class ChatMessage(BaseModel):
    """
    One conversation turn.

    Extra keys (``name``, ``tool_call_id`` ...) are passed through to the
    upstream untouched.
    """

    model_config = ConfigDict(extra="allow")

    role: str = Field(..., min_length=1, description="system, user, assistant ...")
    content: str | list[Any] = Field(..., description="Text, or a list of content parts")


class PrepareRequest(BaseModel):
    """
    Request model for ``POST /prepare``.

    Example:
        {
            "model": "meta-llama/llama-3.1-8b-instruct:free",
            "messages": [{"role": "user", "content": "Hi"}]
        }
    """

    model: Any = Field(default=None, description="Upstream model id (default model if unusable)")
    messages: list[ChatMessage] | None = Field(default=None, description="Conversation turns")

    def message_dicts(self) -> list[dict[str, Any]]:
        return [message.model_dump() for message in self.messages or []]


# ============================================================================
# RESPONSE MODELS
# ============================================================================


class PrepareResponse(BaseModel):
    """Handshake result; the id is used as ``GET /stream/{sessionId}``."""

    sessionId: str


class HealthResponse(BaseModel):
    status: str
    sessions: int
    active_streams: int
    version: str
    streams: dict[str, Any] | None = None
