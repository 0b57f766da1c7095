"""
Upstream Provider Exceptions

All exceptions raised while talking to the upstream chat-completion API.
Every ``ProviderError`` raised before a stream reaches the streaming state is
non-fatal: the relay moves on to the next candidate model.
"""

from typing import Any

from sse_relay.core.exceptions.base import SSEBaseError


class ProviderError(SSEBaseError):
    """Base exception for upstream provider errors."""
    pass


class ProviderNotAvailableError(ProviderError):
    """
    Raised when the upstream cannot be reached.

    Common causes:
    - DNS or connection failure
    - TLS errors
    - Connection reset before response headers
    """
    pass


class ProviderTimeoutError(ProviderError):
    """Raised when connecting to the upstream, or a non-streaming call, times out."""
    pass


class ProviderAPIError(ProviderError):
    """
    Raised when the upstream answers with a non-2xx status.

    Common causes:
    - Unknown or unavailable model (400/404)
    - Rate limiting (429)
    - Invalid credential (401/403)
    - Upstream outage (5xx)
    """

    def __init__(
        self,
        message: str,
        status_code: int,
        body: str = "",
        thread_id: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, thread_id=thread_id, details=details)
        self.status_code = status_code
        self.body = body
        self.details.setdefault("status_code", status_code)
        if body:
            self.details.setdefault("body", body)


class AllProvidersDownError(ProviderError):
    """
    Raised when every candidate model and the final non-streaming call failed.

    The relay turns this into the single ``error`` event of the stream.
    """
    pass
