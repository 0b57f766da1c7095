"""
Unit Tests for Core Exceptions

Tests for the relay exception hierarchy and its helpers.
"""

import httpx
import pytest

from sse_relay.core.exceptions import (
    AllProvidersDownError,
    ConfigurationError,
    InvalidInputError,
    ProviderAPIError,
    ProviderError,
    ProviderNotAvailableError,
    ProviderTimeoutError,
    SessionNotFoundError,
    SSEBaseError,
    StreamingError,
    StreamingTimeoutError,
    ValidationError,
)


@pytest.mark.unit
class TestSSEBaseError:
    """Test the base exception class."""

    def test_base_error_creation(self):
        error = SSEBaseError("Test message")
        assert str(error) == "Test message"
        assert error.details == {}
        assert error.thread_id is None

    def test_details_are_copied(self):
        """Test that the caller's dict is not mutated by with_context."""
        details = {"model": "a/b"}
        error = SSEBaseError("Test", details=details).with_context(attempt=2)

        assert error.details == {"model": "a/b", "attempt": 2}
        assert details == {"model": "a/b"}

    def test_to_dict(self):
        error = SessionNotFoundError("invalid sessionId", thread_id="abc")

        assert error.to_dict() == {
            "error_type": "SessionNotFoundError",
            "message": "invalid sessionId",
            "thread_id": "abc",
            "details": {},
        }

    def test_from_exception_wraps_original(self):
        original = httpx.ConnectError("connection refused")
        error = ProviderNotAvailableError.from_exception(original, model="a/b")

        assert isinstance(error, ProviderNotAvailableError)
        assert error.message == "connection refused"
        assert error.details["original_error"] == "ConnectError"
        assert error.details["model"] == "a/b"

    def test_from_exception_message_override(self):
        error = StreamingError.from_exception(ValueError("boom"), message="stream error")

        assert error.message == "stream error"
        assert error.details["original_message"] == "boom"

    def test_repr_includes_context(self):
        error = SSEBaseError("Test", thread_id="t-1", details={"k": 1})
        assert "thread_id='t-1'" in repr(error)
        assert "details={'k': 1}" in repr(error)


@pytest.mark.unit
class TestProviderErrors:
    """Test upstream provider exceptions."""

    @pytest.mark.parametrize(
        "error_class",
        [ProviderNotAvailableError, ProviderTimeoutError, ProviderAPIError, AllProvidersDownError],
    )
    def test_provider_errors_share_base(self, error_class):
        assert issubclass(error_class, ProviderError)
        assert issubclass(error_class, SSEBaseError)

    def test_api_error_records_status_and_body(self):
        error = ProviderAPIError(
            "Upstream returned HTTP 429", status_code=429, body="rate limited", details={"model": "m"}
        )

        assert error.status_code == 429
        assert error.body == "rate limited"
        assert error.details == {"model": "m", "status_code": 429, "body": "rate limited"}

    def test_api_error_without_body(self):
        error = ProviderAPIError("Upstream returned HTTP 500", status_code=500)
        assert "body" not in error.details


@pytest.mark.unit
class TestOtherErrors:
    """Test streaming, validation and configuration exceptions."""

    def test_streaming_timeout_is_streaming_error(self):
        assert issubclass(StreamingTimeoutError, StreamingError)
        assert not issubclass(StreamingError, ProviderError)

    def test_invalid_input_is_validation_error(self):
        error = InvalidInputError("messages must be an array")
        assert isinstance(error, ValidationError)

    def test_configuration_error(self):
        error = ConfigurationError("OPENROUTER_API_KEY is not set")
        assert isinstance(error, SSEBaseError)
        assert "OPENROUTER_API_KEY" in str(error)
