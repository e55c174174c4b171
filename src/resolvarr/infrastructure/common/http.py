"""Shared httpx client construction."""

from __future__ import annotations

import httpx

from resolvarr.infrastructure.common.rate_limiter import HostRateLimiter
from resolvarr.infrastructure.common.retry_transport import RetryTransport


def build_http_client(
    *,
    timeout_seconds: float,
    user_agent: str,
    max_retries: int = 2,
    backoff_base: float = 1.0,
    rate_limit_rps: float = 5.0,
    rate_limit_burst: int = 10,
) -> httpx.AsyncClient:
    """AsyncClient whose transport rate-limits and retries throttled calls."""
    transport = RetryTransport(
        httpx.AsyncHTTPTransport(),
        HostRateLimiter(default_rps=rate_limit_rps, burst=rate_limit_burst),
        max_retries=max_retries,
        backoff_base=backoff_base,
    )
    return httpx.AsyncClient(
        transport=transport,
        timeout=timeout_seconds,
        follow_redirects=True,
        headers={
            "User-Agent": user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
        },
    )
