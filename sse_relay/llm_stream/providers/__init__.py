"""
Upstream provider access.
"""

from sse_relay.llm_stream.providers.upstream_client import UpstreamClient

__all__ = ["UpstreamClient"]
