from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
from starlette.datastructures import State

from resolvarr.infrastructure.config import AppConfig

if TYPE_CHECKING:
    from resolvarr.application.use_cases.resolve_stream import ResolveStreamUseCase
    from resolvarr.domain.ports import BrowserAdapterPort, CachePort
    from resolvarr.infrastructure.cache import ResultCache
    from resolvarr.infrastructure.metrics import MetricsCollector
    from resolvarr.infrastructure.providers import ProviderRegistry


class AppState(State):
    """FastAPI application state with all DI resources.

    Lifecycle managed by composition.py::lifespan().
    """

    # Configuration
    config: AppConfig

    # Infrastructure
    http_client: httpx.AsyncClient
    cache_backend: CachePort | None
    result_cache: ResultCache
    browser: BrowserAdapterPort | None

    # Domain ports
    providers: ProviderRegistry

    # Application services
    resolver: ResolveStreamUseCase

    # In-memory per-provider counters
    metrics: MetricsCollector
