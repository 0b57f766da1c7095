"""
Unit Tests for UpstreamClient

Uses ``httpx.MockTransport`` so the real request building, header handling
and error mapping run without network access.
"""

import json

import httpx
import pytest

from sse_relay.core.exceptions import (
    ProviderAPIError,
    ProviderError,
    ProviderNotAvailableError,
    ProviderTimeoutError,
    StreamingError,
)
from sse_relay.llm_stream.providers.upstream_client import UpstreamClient
from tests.conftest import make_settings
from tests.test_fixtures import SSEBodyFactory, UpstreamTestFactory


class FailingStream(httpx.AsyncByteStream):
    """Body that sends one chunk and then loses the connection."""

    async def __aiter__(self):
        yield SSEBodyFactory.frame(SSEBodyFactory.delta("Hi"))
        raise httpx.ReadError("connection reset")


async def read_body(client, model="m", referer=None) -> bytes:
    async with client.open_stream(model, [{"role": "user", "content": "q"}], referer) as body:
        return b"".join([chunk async for chunk in body])


@pytest.mark.unit
class TestHeaders:
    """Test outbound headers and the Referer precedence."""

    def test_referer_override_wins(self):
        client = UpstreamTestFactory.client(
            make_settings(REFERER="https://configured.test"), lambda r: httpx.Response(200)
        )
        assert client.resolve_referer("https://origin.test") == "https://configured.test"

    def test_origin_used_without_override(self, test_settings):
        client = UpstreamTestFactory.client(test_settings, lambda r: httpx.Response(200))
        assert client.resolve_referer("https://origin.test") == "https://origin.test"

    def test_default_referer_last(self, test_settings):
        client = UpstreamTestFactory.client(test_settings, lambda r: httpx.Response(200))
        assert client.resolve_referer(None) == "https://relay.test"

    @pytest.mark.asyncio
    async def test_streaming_request(self, test_settings):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=SSEBodyFactory.hi_there())

        client = UpstreamTestFactory.client(test_settings, handler)

        body = await read_body(client, model="vendor/model", referer="https://origin.test")

        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == "https://upstream.test/api/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer sk-or-test-key"
        assert request.headers["Referer"] == "https://origin.test"
        assert request.headers["X-Title"] == "Relay Tests"
        assert json.loads(request.content) == {
            "model": "vendor/model",
            "messages": [{"role": "user", "content": "q"}],
            "stream": True,
        }
        assert body == SSEBodyFactory.hi_there()


@pytest.mark.unit
class TestStreamErrors:
    """Test mapping of failures to provider and streaming errors."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [400, 401, 404, 429, 500, 503])
    async def test_non_success_status(self, test_settings, status):
        client = UpstreamTestFactory.client(
            test_settings, lambda r: httpx.Response(status, text="nope")
        )

        with pytest.raises(ProviderAPIError) as exc_info:
            await read_body(client)

        assert exc_info.value.status_code == status
        assert exc_info.value.body == "nope"
        assert exc_info.value.details["model"] == "m"

    @pytest.mark.asyncio
    async def test_connect_error(self, test_settings):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = UpstreamTestFactory.client(test_settings, handler)

        with pytest.raises(ProviderNotAvailableError):
            await read_body(client)

    @pytest.mark.asyncio
    async def test_connect_timeout(self, test_settings):
        def handler(request):
            raise httpx.ConnectTimeout("slow", request=request)

        client = UpstreamTestFactory.client(test_settings, handler)

        with pytest.raises(ProviderTimeoutError):
            await read_body(client)

    @pytest.mark.asyncio
    async def test_read_error_after_headers(self, test_settings):
        client = UpstreamTestFactory.client(
            test_settings, lambda r: httpx.Response(200, stream=FailingStream())
        )

        chunks = []
        with pytest.raises(StreamingError) as exc_info:
            async with client.open_stream("m", []) as body:
                async for chunk in body:
                    chunks.append(chunk)

        assert chunks
        assert not isinstance(exc_info.value, ProviderError)
        assert exc_info.value.message == "stream error"
        assert exc_info.value.details["original_message"] == "connection reset"


@pytest.mark.unit
class TestNonStreamingCalls:
    """Test the final-fallback completion and the model catalog."""

    @pytest.mark.asyncio
    async def test_complete_returns_text(self, test_settings):
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return httpx.Response(200, json=SSEBodyFactory.completion("Full answer"))

        client = UpstreamTestFactory.client(test_settings, handler)

        assert await client.complete("m", [{"role": "user", "content": "q"}]) == "Full answer"
        assert seen[0]["stream"] is False

    @pytest.mark.asyncio
    async def test_complete_without_content(self, test_settings):
        client = UpstreamTestFactory.client(
            test_settings, lambda r: httpx.Response(200, json={"choices": []})
        )
        assert await client.complete("m", []) == ""

    @pytest.mark.asyncio
    async def test_complete_error_status(self, test_settings):
        client = UpstreamTestFactory.client(test_settings, lambda r: httpx.Response(502))

        with pytest.raises(ProviderAPIError):
            await client.complete("m", [])

    @pytest.mark.asyncio
    async def test_complete_invalid_json(self, test_settings):
        client = UpstreamTestFactory.client(
            test_settings, lambda r: httpx.Response(200, text="<html>")
        )

        with pytest.raises(ProviderError):
            await client.complete("m", [])

    @pytest.mark.asyncio
    async def test_list_models_passthrough(self, test_settings):
        catalog = {"data": [{"id": "vendor/model"}]}
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=catalog)

        client = UpstreamTestFactory.client(test_settings, handler)

        assert await client.list_models() == catalog
        assert seen[0].method == "GET"
        assert str(seen[0].url) == "https://upstream.test/api/v1/models"
        assert seen[0].headers["Authorization"] == "Bearer sk-or-test-key"

    @pytest.mark.asyncio
    async def test_aclose_leaves_injected_client_open(self, test_settings):
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        client = UpstreamClient(test_settings, http_client=http_client)
        await client.aclose()

        assert not http_client.is_closed
        await http_client.aclose()
