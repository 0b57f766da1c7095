"""
Exception Module

Structured exception hierarchy for the SSE chat relay, organized by theme.

Module Structure:
-----------------
- **base.py**: SSEBaseError base class + ConfigurationError
- **provider.py**: upstream provider exceptions
- **streaming.py**: exceptions raised while a stream is being relayed
- **session.py**: session handshake exceptions
- **validation.py**: request validation exceptions

Usage:
------
```python
from sse_relay.core.exceptions import ProviderAPIError, SessionNotFoundError
```
"""

# Base exception
from sse_relay.core.exceptions.base import ConfigurationError, SSEBaseError

# Provider exceptions
from sse_relay.core.exceptions.provider import (
    AllProvidersDownError,
    ProviderAPIError,
    ProviderError,
    ProviderNotAvailableError,
    ProviderTimeoutError,
)

# Session exceptions
from sse_relay.core.exceptions.session import SessionError, SessionNotFoundError

# Streaming exceptions
from sse_relay.core.exceptions.streaming import StreamingError, StreamingTimeoutError

# Validation exceptions
from sse_relay.core.exceptions.validation import InvalidInputError, ValidationError

__all__ = [
    # Base
    "SSEBaseError",
    "ConfigurationError",
    # Provider
    "ProviderError",
    "ProviderNotAvailableError",
    "ProviderTimeoutError",
    "ProviderAPIError",
    "AllProvidersDownError",
    # Session
    "SessionError",
    "SessionNotFoundError",
    # Streaming
    "StreamingError",
    "StreamingTimeoutError",
    # Validation
    "ValidationError",
    "InvalidInputError",
]
