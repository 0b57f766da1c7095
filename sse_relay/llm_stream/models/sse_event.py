import json
from typing import Any

from pydantic import BaseModel

from sse_relay.core.config.constants import (
    SSE_DONE_PAYLOAD,
    SSE_EVENT_CHUNK,
    SSE_EVENT_DONE,
    SSE_EVENT_ERROR,
    SSE_TERMINAL_EVENTS,
)


def encode_data(data: Any) -> str:
    """
    Serialize an event payload for a single ``data:`` line.

    Strings go out literally unless they contain a line break, which would
    split the frame; everything else is compact JSON.
    """
    if isinstance(data, str) and "\n" not in data and "\r" not in data:
        return data
    return json.dumps(data, ensure_ascii=False, separators=(",", ":"))


class SSEEvent(BaseModel):
    """
    Represents an SSE event to send to the client.

    The relay only ever emits three kinds: ``chunk`` with ``{"content": ...}``,
    and the terminal ``done`` / ``error`` signals.
    """
    model_config = {"frozen": True}

    event: str | None = None
    data: Any

    @property
    def is_terminal(self) -> bool:
        return self.event in SSE_TERMINAL_EVENTS

    def format(self) -> str:
        """Format as SSE protocol string."""
        lines = []
        if self.event:
            lines.append(f"event: {self.event}")
        lines.append(f"data: {encode_data(self.data)}")
        return "\n".join(lines) + "\n\n"

    @classmethod
    def chunk(cls, content: str) -> "SSEEvent":
        return cls(event=SSE_EVENT_CHUNK, data={"content": content})

    @classmethod
    def diagnostic(cls, raw: str, parse_error: str) -> "SSEEvent":
        """Chunk forwarding an upstream payload that could not be decoded."""
        return cls(event=SSE_EVENT_CHUNK, data={"raw": raw, "parseError": parse_error})

    @classmethod
    def done(cls) -> "SSEEvent":
        return cls(event=SSE_EVENT_DONE, data=SSE_DONE_PAYLOAD)

    @classmethod
    def error(cls, message: str, detail: str | None = None) -> "SSEEvent":
        data = {"message": message}
        if detail:
            data["detail"] = detail
        return cls(event=SSE_EVENT_ERROR, data=data)
