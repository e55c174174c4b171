from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request

from resolvarr import __version__
from resolvarr.infrastructure.config import AppConfig
from resolvarr.interfaces.app_state import AppState
from resolvarr.interfaces.composition import lifespan

log = structlog.get_logger(__name__)


def build_app(config: AppConfig) -> FastAPI:
    """Build the FastAPI app. Configuration only; resources live in lifespan()."""
    app = FastAPI(
        title="Resolvarr",
        description="Resolves movies and episodes to playable stream URLs",
        version=__version__,
        lifespan=lifespan,
    )

    app.state = AppState()
    app.state.config = config

    from resolvarr.interfaces.api.resolve.router import router as resolve_router
    from resolvarr.interfaces.api.stats.router import router as stats_router

    app.include_router(resolve_router)
    app.include_router(stats_router)

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            log.info(
                "http_request",
                method=request.method,
                path=request.url.path,
                status_code=status_code,
                duration_ms=round((time.perf_counter() - start) * 1000.0, 2),
                client_host=(request.client.host if request.client else None),
            )

    return app
