"""
Model Catalog Route

Passes the upstream model catalog through unchanged. Upstream failures are
raised as ``ProviderError`` and answered with ``500 {"error": ...}`` by the
application's exception handler.
"""

from typing import Any

from fastapi import APIRouter

from sse_relay.application.api.dependencies import UpstreamClientDep

router = APIRouter(tags=["Models"])


@router.get("/models", responses={500: {"description": "Upstream catalog unavailable"}})
async def list_models(upstream: UpstreamClientDep) -> Any:
    return await upstream.list_models()
