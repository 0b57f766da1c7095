"""
Test Fixtures Package

Shared test utilities and helpers for consistent testing across all modules.
"""

from .sse_factory import SSEBodyFactory
from .upstream_factory import HANG, FakeUpstreamClient, UpstreamTestFactory

__all__ = ["HANG", "FakeUpstreamClient", "SSEBodyFactory", "UpstreamTestFactory"]
