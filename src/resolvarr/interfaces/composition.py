"""Composition root: dependency injection via FastAPI lifespan."""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

import structlog
from fastapi import FastAPI

from resolvarr.application.use_cases.resolve_stream import (
    ResolverSettings,
    ResolveStreamUseCase,
)
from resolvarr.domain.entities import ProviderSpec
from resolvarr.infrastructure.browser import PlaywrightBrowserAdapter
from resolvarr.infrastructure.cache import ResultCache, create_backend
from resolvarr.infrastructure.common.http import build_http_client
from resolvarr.infrastructure.config.schema import AppConfig
from resolvarr.infrastructure.decoders import default_decoder_registry
from resolvarr.infrastructure.metadata import load_titles
from resolvarr.infrastructure.metrics import MetricsCollector
from resolvarr.infrastructure.navigation import ChainNavigator
from resolvarr.infrastructure.providers import ProviderRegistry
from resolvarr.infrastructure.validation import StreamValidator
from resolvarr.interfaces.app_state import AppState

log = structlog.get_logger(__name__)


def read_credentials(specs: list[ProviderSpec]) -> dict[str, str]:
    """Collect provider credentials from the environment variables they name."""
    credentials: dict[str, str] = {}
    for spec in specs:
        if not spec.credential_env:
            continue
        value = os.environ.get(spec.credential_env)
        if value:
            credentials[spec.id] = value
        else:
            log.warning(
                "provider_credential_missing",
                provider=spec.id,
                env=spec.credential_env,
            )
    return credentials


def resolver_settings(config: AppConfig) -> ResolverSettings:
    return ResolverSettings(
        max_transient_retries=config.max_transient_retries,
        retry_backoff_seconds=config.retry_backoff_seconds,
        timeout_overrides=dict(config.provider_timeouts),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Initialize and clean up all resources (DI composition root).

    Order matters:
        1. Decoder + provider registries (fail fast on bad YAML)
        2. Cache backend and result cache
        3. HTTP client
        4. Browser adapter (only when a provider needs one)
        5. Navigator, validator, resolver
    """
    state = cast(AppState, app.state)
    config = state.config

    state.metrics = MetricsCollector()

    # 1) Registries
    decoders = default_decoder_registry()
    state.providers = ProviderRegistry.from_file(config.providers_path, decoders)
    log.info(
        "providers_loaded",
        count=len(state.providers),
        path=str(config.providers_path),
    )

    # 2) Cache
    state.cache_backend = create_backend(
        config.cache_backend,
        directory=str(config.cache_dir),
        redis_url=config.cache_redis_url,
        ttl_seconds=config.cache_ttl_seconds,
    )
    if state.cache_backend is not None:
        await state.cache_backend.__aenter__()
        if config.environment == "dev":
            await state.cache_backend.clear()
            log.debug("cache_cleared", environment="dev")
    state.result_cache = ResultCache(
        config.cache_ttl_seconds, backend=state.cache_backend
    )
    log.info("cache_initialized", backend=config.cache_backend)

    # 3) HTTP client with per-host rate limiting + 429/503 retry
    state.http_client = build_http_client(
        timeout_seconds=config.http_timeout_seconds,
        user_agent=config.http_user_agent,
        max_retries=config.http_max_retries,
        rate_limit_rps=config.http_rate_limit_rps,
    )
    log.info("http_client_initialized", rate_limit_rps=config.http_rate_limit_rps)

    # 4) Browser (lazy launch on first session)
    needs_browser = any(spec.requires_browser for spec in state.providers.all())
    state.browser = None
    if needs_browser and config.browser_enabled:
        state.browser = PlaywrightBrowserAdapter(
            headless=config.browser_headless,
            cdp_endpoint=config.browser_cdp_endpoint,
            executable_path=config.browser_executable_path,
            max_sessions=config.browser_max_sessions,
            stealth=config.browser_stealth,
        )
        log.info(
            "browser_adapter_initialized", max_sessions=config.browser_max_sessions
        )
    elif needs_browser:
        log.warning("browser_disabled", reason="browser providers will fail")

    # 5) Resolver
    navigator = ChainNavigator(
        state.http_client,
        state.browser,
        default_step_timeout=config.step_timeout_seconds,
    )
    validator = StreamValidator(
        state.http_client,
        probe=config.validator_probe,
        timeout_seconds=config.validator_probe_timeout_seconds,
    )
    state.resolver = ResolveStreamUseCase(
        providers=state.providers,
        navigator=navigator,
        decoders=decoders,
        validator=validator,
        cache=state.result_cache,
        events=state.metrics,
        titles=load_titles(config.titles_path),
        credentials=read_credentials(state.providers.all()),
        settings=resolver_settings(config),
    )
    log.info("resolver_initialized")

    try:
        yield
    finally:
        if state.browser is not None:
            await state.browser.cleanup()
            log.info("browser_cleaned_up")

        await state.http_client.aclose()
        log.info("http_client_closed")

        if state.cache_backend is not None:
            await state.cache_backend.aclose()
            log.info("cache_closed")

        log.info("app_shutdown_complete")
