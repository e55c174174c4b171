"""httpx transport with per-host rate limiting and 429/503 retry."""

from __future__ import annotations

import asyncio
import random

import httpx
import structlog

from resolvarr.infrastructure.common.rate_limiter import HostRateLimiter

log = structlog.get_logger(__name__)

_DEFAULT_RETRYABLE = frozenset({429, 503})


def _parse_retry_after(headers: httpx.Headers) -> float | None:
    """Seconds from a ``Retry-After`` header, or None (HTTP-date form is ignored)."""
    raw = headers.get("retry-after")
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


class RetryTransport(httpx.AsyncBaseTransport):
    """Rate-limits every request and retries throttled responses.

    Before each request the host's token bucket is consulted. On a
    retryable status the response is drained and the request retried
    after ``Retry-After`` or exponential backoff with jitter, up to
    ``max_retries`` times; the last response is returned as is.
    """

    def __init__(
        self,
        wrapped: httpx.AsyncBaseTransport,
        rate_limiter: HostRateLimiter,
        *,
        max_retries: int = 2,
        backoff_base: float = 1.0,
        max_backoff: float = 15.0,
        retryable_status_codes: frozenset[int] = _DEFAULT_RETRYABLE,
    ) -> None:
        self._wrapped = wrapped
        self._rate_limiter = rate_limiter
        self._max_retries = max_retries
        self._backoff_base = backoff_base
        self._max_backoff = max_backoff
        self._retryable = retryable_status_codes

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        attempt = 0
        while True:
            await self._rate_limiter.acquire(url)
            response = await self._wrapped.handle_async_request(request)

            if response.status_code not in self._retryable:
                self._rate_limiter.record_success(url)
                return response

            self._rate_limiter.record_throttle(url)
            if attempt >= self._max_retries:
                return response

            await response.aread()
            await response.aclose()

            delay = self._compute_delay(response, attempt)
            log.info(
                "http_retry",
                url=url,
                status=response.status_code,
                attempt=attempt + 1,
                delay=round(delay, 2),
            )
            await asyncio.sleep(delay)
            attempt += 1

    def _compute_delay(self, response: httpx.Response, attempt: int) -> float:
        retry_after = _parse_retry_after(response.headers)
        if retry_after is not None:
            return min(retry_after, self._max_backoff)
        delay = self._backoff_base * (2**attempt)
        jitter = random.uniform(0, self._backoff_base)  # noqa: S311
        return min(delay + jitter, self._max_backoff)

    async def aclose(self) -> None:
        await self._wrapped.aclose()
