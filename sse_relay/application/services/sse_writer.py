"""
Client SSE Writer
=================

WHAT IS THIS SERVICE?
---------------------
ClientSSEWriter turns the orchestrator's ``SSEEvent`` objects into wire frames
for one client connection. It is the only place that knows the outbound SSE
grammar:

    : ping                      <- priming comment, sent once on open

    event: chunk
    data: {"content":"Hi"}

    event: done
    data: [DONE]

WHY A SEPARATE WRITER?
----------------------
- Headers that stop proxies from buffering live in one place
- Frames produced after close are dropped instead of raising, so a
  timeout racing a client disconnect is harmless
- ``relay()`` guarantees the event source is closed on every exit path,
  which is what releases the upstream response and the session

ARCHITECTURE:
-------------
Route → ClientSSEWriter.relay() → StreamOrchestrator.stream() → UpstreamClient
"""

from collections.abc import AsyncIterator
from contextlib import aclosing
from typing import Any

from sse_relay.core.config.constants import SSE_MEDIA_TYPE, SSE_PRIMING_COMMENT, SSE_RESPONSE_HEADERS
from sse_relay.core.logging.logger import get_logger
from sse_relay.llm_stream.models.sse_event import SSEEvent

logger = get_logger(__name__)


class ClientSSEWriter:
    """
    Frame writer for one client SSE connection.

    Usage:
        writer = ClientSSEWriter()
        return StreamingResponse(
            writer.relay(orchestrator.stream(session_id)),
            media_type=writer.media_type,
            headers=writer.headers,
        )
    """

    media_type = SSE_MEDIA_TYPE

    def __init__(self):
        self._opened = False
        self._closed = False
        self._frames_sent = 0

    @property
    def headers(self) -> dict[str, str]:
        """Response headers that keep intermediaries from buffering the stream."""
        return dict(SSE_RESPONSE_HEADERS)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def frames_sent(self) -> int:
        return self._frames_sent

    def open(self) -> str | None:
        """Return the priming comment (once). None if already open or closed."""
        if self._closed or self._opened:
            return None
        self._opened = True
        return SSE_PRIMING_COMMENT

    def send(self, event: str | None, payload: Any) -> str | None:
        """
        Format one frame.

        Returns:
            The frame text, or None once the writer is closed
        """
        if self._closed:
            return None
        self._frames_sent += 1
        return SSEEvent(event=event, data=payload).format()

    def close(self) -> None:
        """Mark the connection closed. Safe to call more than once."""
        self._closed = True

    async def relay(self, events: AsyncIterator[SSEEvent]) -> AsyncIterator[str]:
        """
        Drive an event source to the wire.

        Stops after the first terminal event. The source is closed when this
        generator finishes, fails, or is cancelled by a client disconnect.
        """
        async with aclosing(events):
            try:
                priming = self.open()
                if priming is not None:
                    yield priming

                async for event in events:
                    frame = self.send(event.event, event.data)
                    if frame is None:
                        break
                    yield frame
                    if event.is_terminal:
                        break
            finally:
                self.close()
                logger.debug("Client stream closed", frames_sent=self._frames_sent)
