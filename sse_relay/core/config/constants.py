"""
System Constants and Enumerations

This module defines relay-wide constants and enumerations: stage labels for
structured logging, the per-attempt state machine, SSE event names and the
response headers that keep intermediaries from buffering the stream.

Architectural Decision: Centralized constants for maintainability
- Single source of truth for wire-level literals
- Type-safe enums for state management
"""

from enum import Enum

# ============================================================================
# Stage Identifiers (for structured logging)
# ============================================================================


class Stage(str, Enum):
    """
    Relay processing stages.

    Format: {SEQUENCE}_{DESCRIPTIVE_NAME}

    Each stage represents a major phase of one ``GET /stream`` request and is
    attached to log entries so the flow can be followed from logs alone.
    """

    SESSION_CLAIM = "1.0_SESSION_CLAIM"
    CANDIDATE_SELECTION = "2.0_CANDIDATE_SELECTION"
    UPSTREAM_CONNECT = "3.0_UPSTREAM_CONNECT"
    STREAMING = "4.0_STREAMING"
    FINAL_FALLBACK = "5.0_FINAL_FALLBACK"
    CLEANUP = "6.0_CLEANUP"

    # Cross-cutting
    SESSION_SWEEP = "S_SESSION_SWEEP"
    PREPARE = "P_PREPARE"


# ============================================================================
# Stream Attempt States
# ============================================================================


class AttemptState(str, Enum):
    """
    State of one upstream stream attempt.

    CONNECTING: waiting for the upstream response headers
    STREAMING: reading the upstream body
    COMPLETED / FAILED / TIMED_OUT / CLIENT_CLOSED: terminal states
    """

    CONNECTING = "connecting"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CLIENT_CLOSED = "client_closed"

    @property
    def is_terminal(self) -> bool:
        return self not in (AttemptState.CONNECTING, AttemptState.STREAMING)


class MalformedPayloadPolicy(str, Enum):
    """
    What happens to an upstream ``data:`` payload that is not valid JSON.

    DROP: log it and continue (default)
    DIAGNOSTIC: log it and forward ``{"raw": ..., "parseError": ...}`` as a chunk
    """

    DROP = "drop"
    DIAGNOSTIC = "diagnostic"


# ============================================================================
# HTTP Headers
# ============================================================================

HEADER_THREAD_ID = "X-Thread-ID"

SSE_MEDIA_TYPE = "text/event-stream; charset=utf-8"

SSE_RESPONSE_HEADERS = {
    "Cache-Control": "no-store, no-transform",
    "Connection": "keep-alive",
    # Disables nginx response buffering
    "X-Accel-Buffering": "no",
}

# ============================================================================
# SSE Event Types
# ============================================================================

SSE_EVENT_CHUNK = "chunk"
SSE_EVENT_DONE = "done"
SSE_EVENT_ERROR = "error"

SSE_TERMINAL_EVENTS = frozenset({SSE_EVENT_DONE, SSE_EVENT_ERROR})

SSE_DONE_PAYLOAD = "[DONE]"
SSE_PRIMING_COMMENT = ": ping\n\n"

# ============================================================================
# Upstream protocol
# ============================================================================

UPSTREAM_DONE_SENTINELS = frozenset({"[DONE]", '"[DONE]"'})
UPSTREAM_CHAT_PATH = "/chat/completions"
UPSTREAM_MODELS_PATH = "/models"
