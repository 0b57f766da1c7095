"""
Base Exception Class

This module contains the base exception class that every relay exception
inherits from, plus ``ConfigurationError`` which is fundamental enough to live
next to it. Specialized exceptions are in their themed modules.
"""

from typing import Any


class SSEBaseError(Exception):
    """
    Base exception for all relay errors.

    Attributes:
        message: Error message
        thread_id: Correlation id (session id during a stream), if available
        details: Additional error details (dict)

    Example:
        raise ProviderAPIError(
            "Upstream returned HTTP 429",
            thread_id=session_id,
            details={"model": model, "status_code": 429},
        )
    """

    def __init__(
        self, message: str, thread_id: str | None = None, details: dict[str, Any] | None = None
    ):
        self.message = message
        self.thread_id = thread_id
        self.details = (details or {}).copy()
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for logging/API responses.

        Returns:
            Dict with error_type, message, thread_id, and details
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "thread_id": self.thread_id,
            "details": self.details,
        }

    def with_context(self, **context) -> "SSEBaseError":
        """Add key-value pairs to the error details (chainable)."""
        self.details.update(context)
        return self

    def __repr__(self) -> str:
        details_str = f", details={self.details}" if self.details else ""
        thread_id_str = f", thread_id='{self.thread_id}'" if self.thread_id else ""
        return f"{self.__class__.__name__}(message='{self.message}'{thread_id_str}{details_str})"

    @classmethod
    def from_exception(
        cls,
        exc: Exception,
        message: str | None = None,
        thread_id: str | None = None,
        **details
    ) -> "SSEBaseError":
        """
        Create an instance from another exception.

        Useful for wrapping httpx exceptions with relay context.

        Example:
            >>> try:
            ...     response = await client.send(request, stream=True)
            ... except httpx.ConnectError as e:
            ...     raise ProviderNotAvailableError.from_exception(e, model=model)
        """
        error_message = message or str(exc) or exc.__class__.__name__
        error_details = {
            "original_error": exc.__class__.__name__,
            "original_message": str(exc),
            **details,
        }
        return cls(error_message, thread_id=thread_id, details=error_details)


class ConfigurationError(SSEBaseError):
    """Raised when configuration is invalid or missing (e.g. no upstream API key)."""
    pass
