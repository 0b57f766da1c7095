from sse_relay.application.api.routes.health import router as health_router
from sse_relay.application.api.routes.models import router as models_router
from sse_relay.application.api.routes.prepare import router as prepare_router
from sse_relay.application.api.routes.streaming import router as streaming_router

__all__ = ["health_router", "models_router", "prepare_router", "streaming_router"]
