from sse_relay.application.api.models.prepare import (
    ChatMessage,
    HealthResponse,
    PrepareRequest,
    PrepareResponse,
)

__all__ = ["ChatMessage", "HealthResponse", "PrepareRequest", "PrepareResponse"]
