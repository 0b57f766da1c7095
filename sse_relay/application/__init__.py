"""
Application Layer

FastAPI wiring around the relay engine: app factory and lifespan, routes,
dependencies, middleware and the client-facing SSE writer.
"""
