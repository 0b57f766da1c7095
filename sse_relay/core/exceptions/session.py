"""
Session Exceptions

Exceptions related to the prepare/stream session handshake.
"""

from sse_relay.core.exceptions.base import SSEBaseError


class SessionError(SSEBaseError):
    """Base exception for session errors."""
    pass


class SessionNotFoundError(SessionError):
    """
    Raised when a session id is unknown.

    Common causes:
    - The id was already consumed by a stream attempt
    - The session expired before the client opened the stream
    - The id was never issued
    """
    pass
