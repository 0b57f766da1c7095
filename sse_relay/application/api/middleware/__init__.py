from sse_relay.application.api.middleware.error_handler import ErrorHandlingMiddleware

__all__ = ["ErrorHandlingMiddleware"]
