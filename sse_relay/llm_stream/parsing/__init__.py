"""
Upstream stream parsing: SSE framing and content extraction.
"""

from sse_relay.llm_stream.parsing.content_extractors import (
    DEFAULT_EXTRACTORS,
    ContentExtractor,
    choice_text,
    delta_content,
    extract_content,
    finish_reason,
    message_content,
)
from sse_relay.llm_stream.parsing.sse_parser import SSEFrameParser, SSEPayload, decode_payload

__all__ = [
    "SSEFrameParser",
    "SSEPayload",
    "decode_payload",
    "ContentExtractor",
    "DEFAULT_EXTRACTORS",
    "extract_content",
    "finish_reason",
    "delta_content",
    "message_content",
    "choice_text",
]
