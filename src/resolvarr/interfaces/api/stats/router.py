"""Runtime metrics endpoint."""

from __future__ import annotations

from typing import Any, cast

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from resolvarr.interfaces.app_state import AppState

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("/metrics")
async def metrics(request: Request) -> JSONResponse:
    """Return in-memory per-provider counters and cache/browser utilisation."""
    state = cast(AppState, request.app.state)

    data: dict[str, Any] = {}

    m = getattr(state, "metrics", None)
    if m is not None:
        data.update(m.snapshot())

    cache = getattr(state, "result_cache", None)
    if cache is not None:
        data["cache"] = {"entries": len(cache), "ttl_seconds": cache.ttl_seconds}

    browser = getattr(state, "browser", None)
    if browser is not None:
        data["browser"] = {"active_sessions": browser.active_sessions}

    return JSONResponse(content=data)
