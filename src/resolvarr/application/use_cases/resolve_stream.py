"""Resolve a content request into a validated stream URL.

Per-request state machine::

    PENDING -> TRYING_PROVIDER(i) -> SUCCESS
                                  -> PROVIDER_FAILED -> TRYING_PROVIDER(i+1)
                                                     -> ALL_PROVIDERS_FAILED
    SUCCESS | ALL_PROVIDERS_FAILED -> DONE

Providers are tried strictly one after another in priority order. Only
transient failures (network errors, timeouts) are retried in place;
structural failures move on to the next provider immediately.
"""

from __future__ import annotations

import asyncio
import functools
import random
import re
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Mapping
from urllib.parse import urlsplit

import structlog

from resolvarr.domain.entities import (
    ContentRequest,
    DecodeContext,
    EncodedPayload,
    FailureReason,
    ProviderSpec,
    ResolutionError,
    ResolutionEvent,
    ResolutionResult,
)
from resolvarr.domain.exceptions import (
    AllProvidersFailedError,
    DecodeMismatch,
    ResolutionFailure,
    StepTimeout,
)
from resolvarr.domain.ports import (
    DecoderRegistryPort,
    NavigatorPort,
    ProviderRegistryPort,
    ResolutionEventSink,
    ResultCachePort,
    StreamValidatorPort,
    TitleLookupPort,
)

log = structlog.get_logger(__name__)


class ResolutionState(str, Enum):
    PENDING = "pending"
    TRYING_PROVIDER = "trying_provider"
    SUCCESS = "success"
    PROVIDER_FAILED = "provider_failed"
    ALL_PROVIDERS_FAILED = "all_providers_failed"
    DONE = "done"


@dataclass(frozen=True)
class ResolverSettings:
    max_transient_retries: int = 2
    retry_backoff_seconds: float = 0.5
    retry_backoff_max: float = 5.0
    timeout_overrides: Mapping[str, float] = field(default_factory=dict)


def build_decode_context(
    spec: ProviderSpec, payload: EncodedPayload, credential: str | None
) -> DecodeContext:
    """Everything the decoder may use, captured as immutable data."""
    return DecodeContext(
        provider_id=spec.id,
        fingerprint=payload.fingerprint,
        request_timestamp=payload.aux.get("timestamp"),
        aux_tokens=dict(payload.aux),
        credential=credential,
    )


def extract_candidates(spec: ProviderSpec, plaintext: str) -> list[str]:
    """Pick the stream URLs out of decoded text, in order of appearance.

    Placeholder domains are substituted first; ``candidate_pattern`` (if
    set) then selects every match, preferring a named group ``url``.
    Duplicates and URLs whose host starts with one of the provider's
    ``excluded_host_prefixes`` are dropped.
    """
    text = plaintext.strip()
    for placeholder, replacement in spec.url_substitutions.items():
        text = text.replace(placeholder, replacement)
    if not spec.candidate_pattern:
        found = [text]
    else:
        found = [
            match.group("url") if "url" in match.re.groupindex else match.group(0)
            for match in re.finditer(spec.candidate_pattern, text)
        ]
    if not found:
        raise DecodeMismatch(f"decoded text of '{spec.id}' holds no stream URL")

    candidates: list[str] = []
    for url in found:
        host = (urlsplit(url).hostname or "").lower()
        if url in candidates or host.startswith(spec.excluded_host_prefixes):
            continue
        candidates.append(url)
    if not candidates:
        raise DecodeMismatch(f"decoded text of '{spec.id}' only holds excluded hosts")
    return candidates


def playback_headers(spec: ProviderSpec, payload: EncodedPayload) -> dict[str, str]:
    """Headers a player needs; defaults the Referer to the payload page origin."""
    headers = dict(spec.stream_headers)
    if "Referer" not in headers and payload.source_url:
        parts = urlsplit(payload.source_url)
        headers["Referer"] = f"{parts.scheme}://{parts.netloc}/"
    return headers


class ResolveStreamUseCase:
    """Orchestrates cache, providers, navigator, decoder and validator."""

    def __init__(
        self,
        *,
        providers: ProviderRegistryPort,
        navigator: NavigatorPort,
        decoders: DecoderRegistryPort,
        validator: StreamValidatorPort,
        cache: ResultCachePort,
        events: ResolutionEventSink | None = None,
        titles: TitleLookupPort | None = None,
        credentials: Mapping[str, str] | None = None,
        settings: ResolverSettings | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._providers = providers
        self._navigator = navigator
        self._decoders = decoders
        self._validator = validator
        self._cache = cache
        self._events = events
        self._titles = titles
        self._credentials = dict(credentials or {})
        self._settings = settings or ResolverSettings()
        self._sleep = sleep

    async def execute(self, request: ContentRequest) -> ResolutionResult:
        """Resolve ``request`` or raise ``AllProvidersFailedError``."""
        started = time.perf_counter()
        specs = self._providers.list(request.content_type)
        self._transition(request, ResolutionState.PENDING, providers=len(specs))

        for spec in specs:
            hit = await self._cache.get(request.cache_key, spec.id)
            if hit is not None:
                self._transition(
                    request, ResolutionState.SUCCESS, provider=spec.id, from_cache=True
                )
                self._finish(request, started, result=hit, from_cache=True)
                return hit

        title = self._titles.lookup(request.external_id) if self._titles else None
        reasons: list[FailureReason] = []

        for index, spec in enumerate(specs):
            self._transition(
                request, ResolutionState.TRYING_PROVIDER, index=index, provider=spec.id
            )
            try:
                result, from_cache = await self._cache.get_or_resolve(
                    request.cache_key,
                    spec.id,
                    functools.partial(self._attempt_with_retries, spec, request, title),
                )
            except ResolutionFailure as exc:
                reasons.append(FailureReason(spec.id, exc.kind, exc.message))
                self._transition(
                    request,
                    ResolutionState.PROVIDER_FAILED,
                    provider=spec.id,
                    kind=exc.kind,
                    reason=exc.message,
                )
                continue
            except Exception as exc:  # noqa: BLE001
                log.exception("provider_attempt_crashed", provider=spec.id)
                reasons.append(FailureReason(spec.id, "InternalError", repr(exc)))
                self._transition(
                    request,
                    ResolutionState.PROVIDER_FAILED,
                    provider=spec.id,
                    kind="InternalError",
                )
                continue

            self._transition(
                request,
                ResolutionState.SUCCESS,
                provider=spec.id,
                from_cache=from_cache,
            )
            self._finish(
                request, started, result=result, from_cache=from_cache, reasons=reasons
            )
            return result

        error = ResolutionError(tuple(reasons))
        self._transition(
            request,
            ResolutionState.ALL_PROVIDERS_FAILED,
            reasons=[f"{r.provider_id}:{r.kind}" for r in reasons],
        )
        self._finish(request, started, error=error, reasons=reasons)
        raise AllProvidersFailedError(error)

    # ------------------------------------------------------------------
    # Provider attempt
    # ------------------------------------------------------------------

    async def _attempt_with_retries(
        self, spec: ProviderSpec, request: ContentRequest, title: str | None
    ) -> ResolutionResult:
        attempts = self._settings.max_transient_retries + 1
        for attempt in range(attempts):
            try:
                return await self._attempt(spec, request, title)
            except ResolutionFailure as exc:
                if not exc.retryable or attempt == attempts - 1:
                    raise
                delay = self._backoff(attempt)
                log.warning(
                    "provider_attempt_retry",
                    provider=spec.id,
                    kind=exc.kind,
                    attempt=attempt + 1,
                    delay=round(delay, 2),
                    reason=exc.message,
                )
                await self._sleep(delay)
        raise AssertionError("unreachable")  # pragma: no cover

    async def _attempt(
        self, spec: ProviderSpec, request: ContentRequest, title: str | None
    ) -> ResolutionResult:
        timeout = self._settings.timeout_overrides.get(spec.id, spec.timeout_seconds)
        try:
            return await asyncio.wait_for(self._pipeline(spec, request, title), timeout)
        except asyncio.TimeoutError as exc:
            raise StepTimeout(f"provider '{spec.id}' exceeded {timeout}s") from exc

    async def _pipeline(
        self, spec: ProviderSpec, request: ContentRequest, title: str | None
    ) -> ResolutionResult:
        payload = await self._navigator.navigate(spec, request, title=title)
        context = build_decode_context(spec, payload, self._credentials.get(spec.id))
        strategy = self._decoders.get(spec.decode_strategy_id)
        plaintext = strategy.decode(payload, context)

        headers = playback_headers(spec, payload)
        rejections: list[str] = []
        for candidate in extract_candidates(spec, plaintext):
            outcome = await self._validator.validate(candidate, headers=headers)
            if outcome.is_valid and outcome.url is not None:
                log.info(
                    "provider_resolved",
                    provider=spec.id,
                    content=request.cache_key,
                    strategy=spec.decode_strategy_id,
                    skipped=len(rejections),
                )
                return ResolutionResult(
                    stream_url=outcome.url,
                    provider_id=spec.id,
                    headers=headers,
                )
            log.debug(
                "candidate_rejected",
                provider=spec.id,
                candidate=candidate,
                reason=outcome.reason,
            )
            rejections.append(outcome.reason or "rejected")

        raise DecodeMismatch(
            f"candidate from '{spec.id}' rejected: {'; '.join(rejections)}"
        )

    def _backoff(self, attempt: int) -> float:
        base = self._settings.retry_backoff_seconds
        delay = base * (2**attempt)
        jitter = random.uniform(0, base)  # noqa: S311
        return min(delay + jitter, self._settings.retry_backoff_max)

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def _transition(
        self, request: ContentRequest, state: ResolutionState, **fields: object
    ) -> None:
        log.debug(
            "resolution_state", content=request.cache_key, state=state.value, **fields
        )

    def _finish(
        self,
        request: ContentRequest,
        started: float,
        *,
        result: ResolutionResult | None = None,
        error: ResolutionError | None = None,
        from_cache: bool = False,
        reasons: list[FailureReason] | None = None,
    ) -> None:
        duration_ms = (time.perf_counter() - started) * 1000
        self._transition(
            request, ResolutionState.DONE, duration_ms=round(duration_ms, 1)
        )
        if result is not None:
            log.info(
                "resolution_succeeded",
                content=request.cache_key,
                provider=result.provider_id,
                from_cache=from_cache,
                duration_ms=round(duration_ms, 1),
            )
        else:
            log.warning(
                "resolution_failed",
                content=request.cache_key,
                reasons=[f"{r.provider_id}:{r.kind}" for r in (reasons or [])],
            )
        if self._events is not None:
            self._events.emit(
                ResolutionEvent(
                    request=request,
                    result=result,
                    error=error,
                    duration_ms=duration_ms,
                    from_cache=from_cache,
                    attempts=tuple(reasons or ()),
                )
            )
