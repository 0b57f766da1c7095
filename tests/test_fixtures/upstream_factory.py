"""
Upstream Test Factory

Creates controllable upstream stand-ins:
- ``FakeUpstreamClient``: scripted per-model behavior for orchestrator tests
- ``UpstreamTestFactory.client``: a real ``UpstreamClient`` over an httpx
  ``MockTransport`` for client and route tests
"""

import asyncio
import json
from collections.abc import Callable
from contextlib import asynccontextmanager
from typing import Any

import httpx

from sse_relay.core.config.settings import Settings
from sse_relay.core.exceptions import ProviderAPIError
from sse_relay.llm_stream.providers.upstream_client import UpstreamClient

# Script item that blocks the body forever (timeout tests)
HANG = object()


class FakeUpstreamClient:
    """
    Scripted upstream client.

    ``streams`` maps a model id to either an exception (raised when the stream
    is opened) or a list of body items: bytes are yielded, exceptions raised,
    ``HANG`` blocks. Models without a script answer 404.
    """

    def __init__(
        self,
        streams: dict[str, Any] | None = None,
        completion: str | Exception = "",
        models: Any = None,
    ):
        self.streams = streams or {}
        self.completion = completion
        self.models = models if models is not None else {"data": []}

        self.opened: list[str] = []
        self.closed: list[str] = []
        self.completed: list[str] = []
        self.referers: list[str | None] = []
        self.messages: list[list[dict[str, Any]]] = []

    @asynccontextmanager
    async def open_stream(self, model: str, messages: list[dict[str, Any]], referer: str | None = None):
        self.opened.append(model)
        self.referers.append(referer)
        self.messages.append(messages)

        script = self.streams.get(
            model, ProviderAPIError("Upstream returned HTTP 404", status_code=404)
        )
        if isinstance(script, Exception):
            raise script

        try:
            yield self._body(script)
        finally:
            self.closed.append(model)

    async def _body(self, script: list[Any]):
        for item in script:
            if item is HANG:
                await asyncio.Event().wait()
            elif isinstance(item, Exception):
                raise item
            else:
                yield item

    async def complete(self, model: str, messages: list[dict[str, Any]], referer: str | None = None) -> str:
        self.completed.append(model)
        if isinstance(self.completion, Exception):
            raise self.completion
        return self.completion

    async def list_models(self) -> Any:
        return self.models

    async def aclose(self) -> None:
        pass


class UpstreamTestFactory:
    """Factory for ``UpstreamClient`` instances backed by ``httpx.MockTransport``."""

    @staticmethod
    def client(
        settings: Settings, handler: Callable[[httpx.Request], httpx.Response]
    ) -> UpstreamClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return UpstreamClient(settings, http_client=http_client)

    @staticmethod
    def streaming_handler(
        bodies: dict[str, bytes | int], completion: dict[str, Any] | int | None = None
    ) -> Callable[[httpx.Request], httpx.Response]:
        """
        Route chat requests by model.

        ``bodies`` maps a model to an SSE body (200) or a status code. The
        non-streaming request answers with ``completion`` (JSON, or a status
        code; 500 when omitted).
        """
        def handler(request: httpx.Request) -> httpx.Response:
            payload = json.loads(request.content)
            model = payload["model"]

            if not payload.get("stream"):
                if completion is None or isinstance(completion, int):
                    return httpx.Response(completion or 500, text="upstream down")
                return httpx.Response(200, json=completion)

            body = bodies.get(model, 404)
            if isinstance(body, int):
                return httpx.Response(body, text=f"no such model: {model}")
            return httpx.Response(
                200, content=body, headers={"Content-Type": "text/event-stream"}
            )

        return handler
