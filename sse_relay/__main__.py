"""
Run the relay with uvicorn: ``python -m sse_relay``.
"""

import uvicorn

from sse_relay.core.config.settings import get_settings


def main() -> None:
    settings = get_settings()

    uvicorn.run(
        "sse_relay.application.app:app",
        host=settings.app.API_HOST,
        port=settings.app.API_PORT,
        reload=settings.app.ENVIRONMENT == "development",
        log_level=settings.logging.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
