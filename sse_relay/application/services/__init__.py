"""
Application Services

- **sse_writer.py**: ClientSSEWriter, formats orchestrator events for the client connection
"""

from sse_relay.application.services.sse_writer import ClientSSEWriter

__all__ = ["ClientSSEWriter"]
