"""
Streaming Exceptions

Exceptions raised once an upstream stream is already being relayed.
"""

from sse_relay.core.exceptions.base import SSEBaseError


class StreamingError(SSEBaseError):
    """
    Raised when the upstream body fails after streaming began.

    Partial content may already have reached the client, so this is never
    answered with a fallback attempt.
    """
    pass


class StreamingTimeoutError(StreamingError):
    """Raised when a stream attempt exceeds its time budget."""
    pass
