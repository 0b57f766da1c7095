"""
Configuration Module

Centralized, type-safe configuration for the SSE chat relay.

Components:
-----------
- **settings.py**: Pydantic-based configuration with environment variable loading
- **constants.py**: Stage labels, attempt states, SSE event names and headers

Usage:
------
```python
from sse_relay.core.config import get_settings
from sse_relay.core.config.constants import AttemptState, Stage

settings = get_settings()
timeout = settings.relay.STREAM_TIMEOUT
```

Environment Variables:
---------------------
```bash
OPENROUTER_API_KEY=sk-or-...
FALLBACK_MODELS='["mistralai/mistral-7b-instruct:free"]'
STREAM_TIMEOUT=60
LOG_LEVEL=INFO
PORT=3000
```
"""

from sse_relay.core.config.constants import (
    HEADER_THREAD_ID,
    SSE_DONE_PAYLOAD,
    SSE_EVENT_CHUNK,
    SSE_EVENT_DONE,
    SSE_EVENT_ERROR,
    SSE_MEDIA_TYPE,
    SSE_PRIMING_COMMENT,
    SSE_RESPONSE_HEADERS,
    SSE_TERMINAL_EVENTS,
    AttemptState,
    MalformedPayloadPolicy,
    Stage,
)
from sse_relay.core.config.settings import Settings, get_settings, reload_settings

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "reload_settings",
    # Enums
    "Stage",
    "AttemptState",
    "MalformedPayloadPolicy",
    # SSE
    "HEADER_THREAD_ID",
    "SSE_DONE_PAYLOAD",
    "SSE_EVENT_CHUNK",
    "SSE_EVENT_DONE",
    "SSE_EVENT_ERROR",
    "SSE_MEDIA_TYPE",
    "SSE_PRIMING_COMMENT",
    "SSE_RESPONSE_HEADERS",
    "SSE_TERMINAL_EVENTS",
]
