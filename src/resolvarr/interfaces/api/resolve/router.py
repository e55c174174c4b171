"""Resolution endpoints."""

from __future__ import annotations

from typing import Any, cast

import structlog
from fastapi import APIRouter, Path, Request
from fastapi.responses import JSONResponse

from resolvarr.domain.entities import ContentRequest, ResolutionResult
from resolvarr.domain.exceptions import AllProvidersFailedError
from resolvarr.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(tags=["resolve"])


def _result_body(result: ResolutionResult) -> dict[str, Any]:
    return {
        "stream_url": result.stream_url,
        "provider_id": result.provider_id,
        "resolved_at": result.resolved_at.isoformat(),
        "headers": dict(result.headers),
    }


def _failure_body(exc: AllProvidersFailedError) -> dict[str, Any]:
    return {
        "error": exc.kind,
        "reasons": [
            {"provider_id": r.provider_id, "kind": r.kind, "message": r.message}
            for r in exc.error.reasons
        ],
    }


async def _resolve(request: Request, content: ContentRequest) -> JSONResponse:
    state = cast(AppState, request.app.state)
    try:
        result = await state.resolver.execute(content)
    except AllProvidersFailedError as exc:
        log.info(
            "resolve_failed",
            content=content.cache_key,
            kinds=exc.error.kinds(),
        )
        return JSONResponse(status_code=502, content=_failure_body(exc))
    return JSONResponse(content=_result_body(result))


def _invalid(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=422, content={"error": "InvalidRequest", "message": message}
    )


@router.get("/resolve/movie/{external_id}")
async def resolve_movie(request: Request, external_id: str) -> JSONResponse:
    try:
        content = ContentRequest.movie(external_id)
    except ValueError as exc:
        return _invalid(str(exc))
    return await _resolve(request, content)


@router.get("/resolve/tv/{external_id}/{season}/{episode}")
async def resolve_episode(
    request: Request,
    external_id: str,
    season: int = Path(..., description="Season number (1-based)."),
    episode: int = Path(..., description="Episode number (1-based)."),
) -> JSONResponse:
    try:
        content = ContentRequest.tv(external_id, season, episode)
    except ValueError as exc:
        return _invalid(str(exc))
    return await _resolve(request, content)


@router.get("/providers")
async def list_providers(request: Request) -> JSONResponse:
    """List every configured provider in priority order."""
    state = cast(AppState, request.app.state)
    providers = [
        {
            "id": spec.id,
            "priority": spec.priority,
            "enabled": spec.enabled,
            "content_types": sorted(ct.value for ct in spec.embed_url_templates),
            "decode_strategy": spec.decode_strategy_id,
            "requires_browser": spec.requires_browser,
            "version": spec.version,
        }
        for spec in state.providers.all()
    ]
    return JSONResponse(content={"providers": providers, "count": len(providers)})


