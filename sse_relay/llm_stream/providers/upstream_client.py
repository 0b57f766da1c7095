#!/usr/bin/env python3
"""
Upstream Chat-Completion Client

This module talks to the OpenRouter-compatible upstream API over httpx.

Architectural Decision: one thin client, typed failures
- The relay only needs three calls: a streaming completion, a non-streaming
  completion (final fallback) and the model catalog
- Every transport or HTTP failure is converted into a ``ProviderError``
  subclass before it reaches the orchestrator, so the fallback policy never
  has to know about httpx
- Once the body is being read, failures surface as ``StreamingError``:
  partial output may already be on the wire and no fallback is attempted
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx

from sse_relay.core.config.constants import UPSTREAM_CHAT_PATH, UPSTREAM_MODELS_PATH, Stage
from sse_relay.core.config.settings import Settings, get_settings
from sse_relay.core.exceptions import (
    ProviderAPIError,
    ProviderError,
    ProviderNotAvailableError,
    ProviderTimeoutError,
    StreamingError,
)
from sse_relay.core.logging.logger import get_logger, log_stage
from sse_relay.llm_stream.parsing.content_extractors import extract_content

logger = get_logger(__name__)

# Upstream error bodies are kept for diagnostics only
MAX_ERROR_BODY_LENGTH = 2000


class UpstreamClient:
    """
    Client for the upstream chat-completion provider.

    STAGE-3: Upstream connection

    Usage:
        client = UpstreamClient(settings)

        async with client.open_stream(model, messages, referer) as body:
            async for chunk in body:
                ...

        text = await client.complete(model, messages, referer)
        catalog = await client.list_models()

        await client.aclose()
    """

    def __init__(self, settings: Settings | None = None, http_client: httpx.AsyncClient | None = None):
        """
        Initialize the upstream client.

        Args:
            settings: Application settings (global settings if omitted)
            http_client: Pre-built httpx client; tests pass one with a MockTransport.
                A client passed in is owned by the caller and not closed here.
        """
        self._settings = settings or get_settings()
        upstream = self._settings.upstream

        self._base_url = upstream.OPENROUTER_BASE_URL.rstrip("/")
        self._api_key = upstream.OPENROUTER_API_KEY or ""
        self._referer_override = upstream.REFERER
        self._default_referer = upstream.DEFAULT_REFERER
        self._title = upstream.X_TITLE

        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(
                upstream.UPSTREAM_REQUEST_TIMEOUT, connect=upstream.UPSTREAM_CONNECT_TIMEOUT
            ),
        )

    # ------------------------------------------------------------------
    # Headers
    # ------------------------------------------------------------------

    def resolve_referer(self, origin: str | None = None) -> str:
        """Configured override, then the client's Origin, then the default."""
        return self._referer_override or origin or self._default_referer

    def build_headers(self, referer: str | None = None) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "Referer": self.resolve_referer(referer),
            "X-Title": self._title,
        }

    def _url(self, path: str) -> str:
        return f"{self._base_url}{path}"

    # ------------------------------------------------------------------
    # Streaming completion
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def open_stream(
        self, model: str, messages: list[dict[str, Any]], referer: str | None = None
    ) -> AsyncIterator[AsyncIterator[bytes]]:
        """
        Open a streaming completion and yield its raw body.

        STAGE-3.1: Streaming request

        The context manager returns only after the upstream answered with a
        2xx status. The response is closed when the block exits, whichever
        way it exits.

        Raises:
            ProviderTimeoutError: Connecting timed out
            ProviderNotAvailableError: Transport failure before response headers
            ProviderAPIError: Non-2xx status
        """
        request = self._client.build_request(
            "POST",
            self._url(UPSTREAM_CHAT_PATH),
            json={"model": model, "messages": messages, "stream": True},
            headers=self.build_headers(referer),
        )

        try:
            response = await self._client.send(request, stream=True)
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError.from_exception(
                e, message="Upstream connection timed out", model=model
            ) from e
        except httpx.HTTPError as e:
            raise ProviderNotAvailableError.from_exception(
                e, message="Failed to connect to upstream", model=model
            ) from e

        try:
            if not response.is_success:
                body = await self._read_error_body(response)
                raise ProviderAPIError(
                    f"Upstream returned HTTP {response.status_code}",
                    status_code=response.status_code,
                    body=body,
                    details={"model": model},
                )

            log_stage(
                logger, Stage.UPSTREAM_CONNECT, "Upstream stream opened",
                model=model, status_code=response.status_code,
            )
            yield self._iter_body(response, model)
        finally:
            await response.aclose()

    async def _iter_body(self, response: httpx.Response, model: str) -> AsyncIterator[bytes]:
        try:
            async for chunk in response.aiter_bytes():
                yield chunk
        except httpx.HTTPError as e:
            raise StreamingError.from_exception(e, message="stream error", model=model) from e

    async def _read_error_body(self, response: httpx.Response) -> str:
        try:
            raw = await response.aread()
        except httpx.HTTPError as e:
            logger.warning(
                "Could not read upstream error body",
                stage=Stage.UPSTREAM_CONNECT.value,
                status_code=response.status_code,
                error=str(e),
            )
            return ""
        return raw.decode("utf-8", errors="replace")[:MAX_ERROR_BODY_LENGTH]

    # ------------------------------------------------------------------
    # Non-streaming calls
    # ------------------------------------------------------------------

    async def _request_json(self, method: str, path: str, model: str | None = None, **kwargs) -> Any:
        try:
            response = await self._client.request(method, self._url(path), **kwargs)
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError.from_exception(
                e, message="Upstream request timed out", model=model
            ) from e
        except httpx.HTTPError as e:
            raise ProviderNotAvailableError.from_exception(
                e, message="Failed to connect to upstream", model=model
            ) from e

        if not response.is_success:
            raise ProviderAPIError(
                f"Upstream returned HTTP {response.status_code}",
                status_code=response.status_code,
                body=response.text[:MAX_ERROR_BODY_LENGTH],
                details={"model": model} if model else None,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ProviderError.from_exception(
                e, message="Upstream returned invalid JSON", model=model
            ) from e

    async def complete(
        self, model: str, messages: list[dict[str, Any]], referer: str | None = None
    ) -> str:
        """
        Run a non-streaming completion and return its full text.

        STAGE-5.1: Final non-streaming fallback

        Returns:
            The completion text ("" if the upstream returned no content)
        """
        data = await self._request_json(
            "POST",
            UPSTREAM_CHAT_PATH,
            model=model,
            json={"model": model, "messages": messages, "stream": False},
            headers=self.build_headers(referer),
        )
        return extract_content(data) or ""

    async def list_models(self) -> Any:
        """Fetch the upstream model catalog as decoded JSON."""
        return await self._request_json(
            "GET",
            UPSTREAM_MODELS_PATH,
            headers={"Authorization": f"Bearer {self._api_key}"},
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()
