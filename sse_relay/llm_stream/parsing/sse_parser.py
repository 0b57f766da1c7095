"""
Incremental SSE Frame Parser

Turns the raw byte stream of an upstream chat-completion response into the
sequence of ``data:`` payloads it carries.

The upstream body arrives in arbitrary network chunks: a chunk can end in the
middle of a line, in the middle of a block separator, or in the middle of a
multi-byte UTF-8 character. The parser keeps a single text buffer per stream
attempt and only ever hands out payloads from complete blocks, so the payload
sequence does not depend on where the chunk boundaries fall.

Parsing rules:
- Blocks are separated by a blank line (``\\n\\n``; ``\\r\\n`` is normalized)
- Inside a block every ``data:`` line yields one payload; ``event:``, ``id:``,
  ``retry:`` and comment lines are ignored
- ``[DONE]`` (optionally quoted) ends the stream; later input is ignored
- A payload that is not JSON is reported, never raised
"""

import codecs
import json
from dataclasses import dataclass
from typing import Any

from sse_relay.core.config.constants import UPSTREAM_DONE_SENTINELS

DATA_PREFIX = "data:"
BLOCK_SEPARATOR = "\n\n"


@dataclass(frozen=True)
class SSEPayload:
    """
    One ``data:`` payload extracted from the upstream stream.

    Attributes:
        raw: Payload text with the ``data:`` prefix and whitespace removed
        data: Decoded JSON value (None for the sentinel or on decode failure)
        error: JSON decode error message, if decoding failed
        done: True for the ``[DONE]`` sentinel
    """

    raw: str
    data: Any = None
    error: str | None = None
    done: bool = False

    @property
    def is_malformed(self) -> bool:
        return self.error is not None


def decode_payload(raw: str) -> SSEPayload:
    """Classify a single payload string as sentinel, JSON value or malformed text."""
    if raw in UPSTREAM_DONE_SENTINELS:
        return SSEPayload(raw=raw, done=True)

    try:
        return SSEPayload(raw=raw, data=json.loads(raw))
    except ValueError as e:
        return SSEPayload(raw=raw, error=str(e))


class SSEFrameParser:
    """
    Stateful parser for one upstream stream attempt.

    Usage:
        parser = SSEFrameParser()
        async for chunk in body:
            for payload in parser.feed(chunk):
                ...
        for payload in parser.flush():
            ...
    """

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""
        self._finished = False

    @property
    def finished(self) -> bool:
        """True once the ``[DONE]`` sentinel has been seen."""
        return self._finished

    @property
    def pending(self) -> str:
        """Text of the incomplete trailing block (for diagnostics)."""
        return self._buffer

    def feed(self, data: bytes) -> list[SSEPayload]:
        """
        Append a network chunk and return the payloads of every block it completed.

        Args:
            data: Raw bytes as read from the upstream body

        Returns:
            Payloads in stream order; ends with the sentinel if it was reached
        """
        if self._finished:
            return []

        self._buffer += self._decoder.decode(data)
        return self._drain(final=False)

    def flush(self) -> list[SSEPayload]:
        """
        Parse whatever is left once the upstream body has ended.

        A well-behaved upstream terminates its last block with a blank line,
        but a trailing unterminated block is still honored.
        """
        if self._finished:
            return []

        self._buffer += self._decoder.decode(b"", final=True)
        return self._drain(final=True)

    def _drain(self, final: bool) -> list[SSEPayload]:
        text = self._buffer.replace("\r\n", "\n")
        blocks = text.split(BLOCK_SEPARATOR)

        # The last element is incomplete unless the body has ended
        self._buffer = "" if final else blocks.pop()

        payloads: list[SSEPayload] = []
        for block in blocks:
            for raw in self._data_lines(block):
                payload = decode_payload(raw)
                payloads.append(payload)

                if payload.done:
                    self._finished = True
                    self._buffer = ""
                    return payloads

        return payloads

    @staticmethod
    def _data_lines(block: str) -> list[str]:
        lines = (line.strip() for line in block.split("\n"))
        return [
            line[len(DATA_PREFIX):].strip()
            for line in lines
            if line and line.startswith(DATA_PREFIX)
        ]
