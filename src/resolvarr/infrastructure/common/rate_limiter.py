"""Per-host token-bucket rate limiting for outgoing provider requests.

Embed hosts throttle aggressively; the bucket rate halves on 429/503
and recovers slowly on success.
"""

from __future__ import annotations

import asyncio
import time
from urllib.parse import urlsplit

import structlog

log = structlog.get_logger(__name__)


class TokenBucket:
    """Token bucket whose rate adapts to server feedback.

    Args:
        rate: Tokens per second. ``<= 0`` disables limiting.
        burst: Bucket capacity.
        min_rate: Floor when throttled.
        max_rate: Ceiling when recovering.
    """

    def __init__(
        self,
        rate: float,
        burst: int = 10,
        *,
        min_rate: float = 0.5,
        max_rate: float = 50.0,
    ) -> None:
        self._rate = rate
        self._burst = burst
        self._tokens = float(burst)
        self._last_refill = time.monotonic()
        self._lock = asyncio.Lock()
        self._min_rate = min_rate
        self._max_rate = max_rate

    @property
    def rate(self) -> float:
        return self._rate

    async def acquire(self) -> None:
        """Wait until a token is available, then take it."""
        if self._rate <= 0:
            return

        async with self._lock:
            self._refill()
            if self._tokens < 1.0:
                await asyncio.sleep((1.0 - self._tokens) / self._rate)
                self._refill()
            self._tokens = max(self._tokens - 1.0, 0.0)

    def _refill(self) -> None:
        now = time.monotonic()
        refilled = self._tokens + (now - self._last_refill) * self._rate
        self._tokens = min(self._burst, refilled)
        self._last_refill = now

    def record_success(self) -> None:
        self._rate = min(self._max_rate, self._rate * 1.1)

    def record_throttle(self) -> None:
        old = self._rate
        self._rate = max(self._min_rate, self._rate * 0.5)
        log.debug(
            "rate_limit_throttle", old_rps=round(old, 2), new_rps=round(self._rate, 2)
        )


class HostRateLimiter:
    """One ``TokenBucket`` per target host.

    Args:
        default_rps: Requests per second per host. 0 = unlimited.
        burst: Burst size per host.
    """

    def __init__(self, default_rps: float = 5.0, burst: int = 10) -> None:
        self._default_rps = default_rps
        self._burst = burst
        self._buckets: dict[str, TokenBucket] = {}

    @staticmethod
    def host_of(url: str) -> str:
        return (urlsplit(url).hostname or "").lower()

    def bucket(self, host: str) -> TokenBucket:
        bucket = self._buckets.get(host)
        if bucket is None:
            bucket = TokenBucket(rate=self._default_rps, burst=self._burst)
            self._buckets[host] = bucket
        return bucket

    async def acquire(self, url: str) -> None:
        if self._default_rps <= 0:
            return
        host = self.host_of(url)
        if host:
            await self.bucket(host).acquire()

    def record_success(self, url: str) -> None:
        host = self.host_of(url)
        if host in self._buckets:
            self._buckets[host].record_success()

    def record_throttle(self, url: str) -> None:
        host = self.host_of(url)
        if host in self._buckets:
            self._buckets[host].record_throttle()
