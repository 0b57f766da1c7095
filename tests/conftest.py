"""
Pytest Configuration and Shared Test Fixtures

This module provides reusable fixtures for all tests.
All fixtures defined here are automatically available to all test files.
"""

import pytest

from sse_relay.core.config.settings import Settings
from sse_relay.infrastructure.sessions.session_store import SessionStore
from sse_relay.llm_stream.services.stream_orchestrator import StreamOrchestrator
from tests.test_fixtures import FakeUpstreamClient

DEFAULT_TEST_MODEL = "test/default-model:free"
FALLBACK_TEST_MODELS = ["test/fallback-a:free", "test/fallback-b:free"]


# ============================================================================
# Configuration Fixtures
# ============================================================================


def make_settings(**overrides) -> Settings:
    """Settings with test values; keyword arguments override single fields."""
    values = {
        "OPENROUTER_API_KEY": "sk-or-test-key",
        "OPENROUTER_BASE_URL": "https://upstream.test/api/v1",
        "REFERER": None,
        "DEFAULT_REFERER": "https://relay.test",
        "X_TITLE": "Relay Tests",
        "DEFAULT_MODEL": DEFAULT_TEST_MODEL,
        "FALLBACK_MODELS": list(FALLBACK_TEST_MODELS),
        "STREAM_TIMEOUT": 5.0,
        "MALFORMED_PAYLOAD_POLICY": "drop",
        "ENVIRONMENT": "test",
        "LOG_FORMAT": "console",
        "LOG_LEVEL": "WARNING",
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def test_settings() -> Settings:
    """Application settings for tests (no environment dependence on the relay fields)."""
    return make_settings()


# ============================================================================
# Relay Component Fixtures
# ============================================================================


@pytest.fixture
def session_store(test_settings) -> SessionStore:
    """Unstarted session store built from the test settings."""
    return SessionStore.from_settings(test_settings)


@pytest.fixture
def fake_upstream() -> FakeUpstreamClient:
    """Scripted upstream; tests fill in ``streams`` / ``completion``."""
    return FakeUpstreamClient()


@pytest.fixture
def orchestrator(session_store, fake_upstream, test_settings) -> StreamOrchestrator:
    """StreamOrchestrator wired to the fake upstream."""
    return StreamOrchestrator(
        session_store=session_store,
        upstream_client=fake_upstream,
        settings=test_settings,
    )
