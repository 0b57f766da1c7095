from sse_relay.llm_stream.models.sse_event import SSEEvent, encode_data

__all__ = ["SSEEvent", "encode_data"]
