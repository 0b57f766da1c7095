"""
Structured Logging Module using structlog

This module provides structured logging for the relay with:
- Correlation ID (``thread_id``) injected from a context variable; during a
  stream it holds the session id
- Stage labels for following one stream through its lifecycle
- JSON formatting for log aggregation, or a colored console renderer
- Redaction of upstream API keys that end up in log messages
"""

import logging
import re
import sys
from contextvars import ContextVar
from datetime import datetime, timezone

import structlog
from structlog.types import EventDict, WrappedLogger

# Context variable for the correlation id of the current request
thread_id_ctx: ContextVar[str | None] = ContextVar("thread_id", default=None)

_API_KEY_PATTERNS = (
    re.compile(r"\bsk-or-[a-zA-Z0-9-]+\b"),
    re.compile(r"\bsk-[a-zA-Z0-9]+\b"),
    re.compile(r"(?i)\bbearer\s+[a-zA-Z0-9._-]+"),
)


def add_thread_id(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add thread ID to log event from context variable.

    STAGE-L.1: Correlation id injection
    """
    thread_id = thread_id_ctx.get()
    if thread_id and "thread_id" not in event_dict:
        event_dict["thread_id"] = thread_id
    return event_dict


def add_timestamp(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add ISO timestamp to log event.

    STAGE-L.2: Timestamp injection
    """
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    return event_dict


def redact_secrets(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Redact API keys and bearer tokens from log messages.

    STAGE-L.3: Secret redaction

    Upstream error bodies are logged verbatim and occasionally echo the
    Authorization header back.
    """
    for key in ("event", "detail", "body"):
        value = event_dict.get(key)
        if isinstance(value, str):
            for pattern in _API_KEY_PATTERNS:
                value = pattern.sub("[REDACTED]", value)
            event_dict[key] = value

    return event_dict


def add_log_level_name(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Upper-case the log level name.

    STAGE-L.4: Log level injection
    """
    if "level" in event_dict:
        event_dict["level"] = event_dict["level"].upper()
    return event_dict


def setup_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """
    Setup structured logging with structlog.

    STAGE-L: Logging initialization

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format ('json' or 'console')
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
        force=True,
    )

    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_thread_id,
            add_timestamp,
            structlog.stdlib.add_log_level,
            add_log_level_name,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            redact_secrets,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Usage:
        logger = get_logger(__name__)
        logger.info("message", key="value", stage="4.0_STREAMING")
    """
    return structlog.get_logger(name)


def set_thread_id(thread_id: str) -> None:
    """Set the correlation id for the current context."""
    thread_id_ctx.set(thread_id)


def get_thread_id() -> str | None:
    """Get the correlation id of the current context."""
    return thread_id_ctx.get()


def clear_thread_id() -> None:
    """Clear the correlation id at the end of request processing."""
    thread_id_ctx.set(None)


def log_stage(
    logger: structlog.stdlib.BoundLogger, stage: str, message: str, level: str = "info", **kwargs
) -> None:
    """
    Log a message with stage information.

    Args:
        logger: Logger instance
        stage: Stage identifier (usually a ``Stage`` member)
        message: Log message
        level: Log level (debug, info, warning, error, critical)
        **kwargs: Additional fields to log

    Usage:
        log_stage(logger, Stage.UPSTREAM_CONNECT, "Upstream connected", model=model)
    """
    log_func = getattr(logger, level.lower())
    log_func(message, stage=getattr(stage, "value", stage), **kwargs)
