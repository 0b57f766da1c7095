from sse_relay.llm_stream.services.stream_orchestrator import StreamAttempt, StreamOrchestrator

__all__ = ["StreamAttempt", "StreamOrchestrator"]
