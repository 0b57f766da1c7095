"""
Core Module

Foundational components: configuration, logging and exceptions.
"""

from .exceptions import (
    AllProvidersDownError,
    ConfigurationError,
    InvalidInputError,
    ProviderAPIError,
    ProviderError,
    ProviderNotAvailableError,
    ProviderTimeoutError,
    SessionNotFoundError,
    SSEBaseError,
    StreamingError,
    StreamingTimeoutError,
    ValidationError,
)
from .logging import (
    clear_thread_id,
    get_logger,
    get_thread_id,
    log_stage,
    set_thread_id,
    setup_logging,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "set_thread_id",
    "get_thread_id",
    "clear_thread_id",
    "log_stage",
    "SSEBaseError",
    "ConfigurationError",
    "ProviderError",
    "ProviderNotAvailableError",
    "ProviderTimeoutError",
    "ProviderAPIError",
    "AllProvidersDownError",
    "SessionNotFoundError",
    "StreamingError",
    "StreamingTimeoutError",
    "ValidationError",
    "InvalidInputError",
]
