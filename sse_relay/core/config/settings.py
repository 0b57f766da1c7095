#!/usr/bin/env python3
"""
Centralized Configuration Module using Pydantic Settings

This module provides type-safe, environment-based configuration for the SSE
chat relay. Every tunable of the relay (upstream credentials, fallback models,
timeouts, session expiry, logging) is declared here so that the rest of the
code never reads ``os.environ`` directly.

Architectural Decision: Pydantic Settings for type safety and validation
- Environment variable loading with .env support
- Type validation at startup (fail fast on misconfiguration)
- Grouped views (``settings.upstream``, ``settings.relay`` ...) for readability
- Easy testing: construct ``Settings(...)`` with explicit overrides
"""

from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_FREE_MODEL = "meta-llama/llama-3.1-8b-instruct:free"

DEFAULT_FALLBACK_MODELS = [
    "mistralai/mistral-7b-instruct:free",
    "google/gemma-2-9b-it:free",
    "qwen/qwen-2-7b-instruct:free",
]


class UpstreamSettings(BaseSettings):
    """
    Upstream chat-completion provider configuration.

    STAGE-0.1: Upstream connection configuration

    The relay talks to a single OpenRouter-compatible endpoint. Only the API
    key is mandatory; its absence is checked when the application starts.
    """

    OPENROUTER_API_KEY: str | None = Field(default=None, description="Upstream API key")
    OPENROUTER_BASE_URL: str = Field(
        default="https://openrouter.ai/api/v1", description="Upstream base URL"
    )
    REFERER: str | None = Field(default=None, description="Outbound Referer override")
    DEFAULT_REFERER: str = Field(default="https://localhost", description="Referer of last resort")
    X_TITLE: str = Field(default="SSE Chat Relay", description="Outbound X-Title header")
    UPSTREAM_CONNECT_TIMEOUT: float = Field(default=10.0, description="Connect timeout in seconds")
    UPSTREAM_REQUEST_TIMEOUT: float = Field(
        default=60.0, description="Timeout for non-streaming upstream calls"
    )

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class RelaySettings(BaseSettings):
    """
    Relay engine configuration: models, timeouts and session lifecycle.

    STAGE-0.2: Relay configuration
    """

    DEFAULT_MODEL: str = Field(default=DEFAULT_FREE_MODEL, description="Model used when none is given")
    FALLBACK_MODELS: list[str] = Field(
        default_factory=lambda: list(DEFAULT_FALLBACK_MODELS),
        description="Ordered fallback candidates tried after the requested model",
    )
    STREAM_TIMEOUT: float = Field(default=60.0, description="Hard limit for one stream attempt")
    SESSION_TTL: float = Field(default=600.0, description="Session time-to-live in seconds")
    SESSION_SWEEP_INTERVAL: float = Field(default=300.0, description="Sweep interval in seconds")
    DEFAULT_SYSTEM_PROMPT: str = Field(default="You are a helpful assistant.")
    PLACEHOLDER_USER_MESSAGE: str = Field(default="Hello")
    MALFORMED_PAYLOAD_POLICY: Literal["drop", "diagnostic"] = Field(
        default="drop", description="What to do with upstream payloads that are not JSON"
    )

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class LoggingSettings(BaseSettings):
    """
    Logging configuration for structured logging.

    STAGE-L: Logging configuration

    Architectural Decision: structlog for production-grade logging
    """

    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class ApplicationSettings(BaseSettings):
    """
    General application settings.

    STAGE-0: Application initialization
    """

    ENVIRONMENT: Literal["development", "staging", "production", "test"] = Field(
        default="development", description="Application environment"
    )
    DEBUG: bool = Field(default=False, description="Debug mode")
    APP_NAME: str = Field(default="SSE Chat Relay", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")
    API_HOST: str = Field(default="0.0.0.0", description="API host")
    API_PORT: int = Field(default=3000, description="API port")
    CORS_ORIGINS: list[str] = Field(default=["*"], description="Allowed CORS origins")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class Settings(BaseSettings):
    """
    Main settings class that aggregates all configuration sections.

    STAGE-0: Centralized configuration initialization

    Usage:
        from sse_relay.core.config.settings import get_settings

        settings = get_settings()
        api_key = settings.upstream.OPENROUTER_API_KEY
        timeout = settings.relay.STREAM_TIMEOUT
    """

    # Upstream settings
    OPENROUTER_API_KEY: str | None = Field(default=None, description="Upstream API key")
    OPENROUTER_BASE_URL: str = Field(
        default="https://openrouter.ai/api/v1", description="Upstream base URL"
    )
    REFERER: str | None = Field(default=None, description="Outbound Referer override")
    DEFAULT_REFERER: str = Field(default="https://localhost", description="Referer of last resort")
    X_TITLE: str = Field(default="SSE Chat Relay", description="Outbound X-Title header")
    UPSTREAM_CONNECT_TIMEOUT: float = Field(default=10.0, description="Connect timeout in seconds")
    UPSTREAM_REQUEST_TIMEOUT: float = Field(
        default=60.0, description="Timeout for non-streaming upstream calls"
    )

    # Relay settings
    DEFAULT_MODEL: str = Field(default=DEFAULT_FREE_MODEL, description="Model used when none is given")
    FALLBACK_MODELS: list[str] = Field(
        default_factory=lambda: list(DEFAULT_FALLBACK_MODELS),
        description="Ordered fallback candidates tried after the requested model",
    )
    STREAM_TIMEOUT: float = Field(default=60.0, gt=0, description="Hard limit for one stream attempt")
    SESSION_TTL: float = Field(default=600.0, gt=0, description="Session time-to-live in seconds")
    SESSION_SWEEP_INTERVAL: float = Field(default=300.0, gt=0, description="Sweep interval in seconds")
    DEFAULT_SYSTEM_PROMPT: str = Field(default="You are a helpful assistant.")
    PLACEHOLDER_USER_MESSAGE: str = Field(default="Hello")
    MALFORMED_PAYLOAD_POLICY: Literal["drop", "diagnostic"] = Field(
        default="drop", description="What to do with upstream payloads that are not JSON"
    )

    # Logging settings
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    # Application settings
    ENVIRONMENT: Literal["development", "staging", "production", "test"] = Field(
        default="development", description="Application environment"
    )
    DEBUG: bool = Field(default=False, description="Debug mode")
    APP_NAME: str = Field(default="SSE Chat Relay", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")
    API_HOST: str = Field(default="0.0.0.0", description="API host")
    API_PORT: int = Field(
        default=3000,
        validation_alias=AliasChoices("PORT", "API_PORT"),
        description="API port (PORT is accepted as well)",
    )
    CORS_ORIGINS: list[str] = Field(default=["*"], description="Allowed CORS origins")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    @field_validator("DEFAULT_MODEL")
    @classmethod
    def validate_default_model(cls, v):
        """An empty default model would make every defaulted session unusable."""
        if not v or not v.strip():
            raise ValueError("DEFAULT_MODEL must not be empty")
        return v.strip()

    # Nested configuration objects
    @property
    def upstream(self) -> "UpstreamSettings":
        """Get upstream provider settings."""
        return UpstreamSettings(
            OPENROUTER_API_KEY=self.OPENROUTER_API_KEY,
            OPENROUTER_BASE_URL=self.OPENROUTER_BASE_URL,
            REFERER=self.REFERER,
            DEFAULT_REFERER=self.DEFAULT_REFERER,
            X_TITLE=self.X_TITLE,
            UPSTREAM_CONNECT_TIMEOUT=self.UPSTREAM_CONNECT_TIMEOUT,
            UPSTREAM_REQUEST_TIMEOUT=self.UPSTREAM_REQUEST_TIMEOUT,
        )

    @property
    def relay(self) -> "RelaySettings":
        """Get relay engine settings."""
        return RelaySettings(
            DEFAULT_MODEL=self.DEFAULT_MODEL,
            FALLBACK_MODELS=list(self.FALLBACK_MODELS),
            STREAM_TIMEOUT=self.STREAM_TIMEOUT,
            SESSION_TTL=self.SESSION_TTL,
            SESSION_SWEEP_INTERVAL=self.SESSION_SWEEP_INTERVAL,
            DEFAULT_SYSTEM_PROMPT=self.DEFAULT_SYSTEM_PROMPT,
            PLACEHOLDER_USER_MESSAGE=self.PLACEHOLDER_USER_MESSAGE,
            MALFORMED_PAYLOAD_POLICY=self.MALFORMED_PAYLOAD_POLICY,
        )

    @property
    def logging(self) -> "LoggingSettings":
        """Get logging settings."""
        return LoggingSettings(LOG_LEVEL=self.LOG_LEVEL, LOG_FORMAT=self.LOG_FORMAT)

    @property
    def app(self) -> "ApplicationSettings":
        """Get application settings."""
        return ApplicationSettings(
            ENVIRONMENT=self.ENVIRONMENT,
            DEBUG=self.DEBUG,
            APP_NAME=self.APP_NAME,
            APP_VERSION=self.APP_VERSION,
            API_HOST=self.API_HOST,
            API_PORT=self.API_PORT,
            CORS_ORIGINS=self.CORS_ORIGINS,
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        populate_by_name=True,
        extra="ignore",  # Ignore extra environment variables
    )


# Global settings instance (singleton pattern)
_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get the global settings instance (singleton).

    STAGE-0.3: Settings initialization

    Returns:
        Settings: Global settings instance
    """
    global _settings

    if _settings is None:
        _settings = Settings()

    return _settings


def reload_settings() -> Settings:
    """
    Reload settings (useful for testing).

    Returns:
        Settings: New settings instance
    """
    global _settings
    _settings = Settings()
    return _settings
