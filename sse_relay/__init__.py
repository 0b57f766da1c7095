"""SSE chat relay: turns a prepare/stream handshake into a normalized SSE stream."""

__version__ = "1.0.0"
