"""Result cache: TTL-bounded resolutions with single-flight coalescing.

One instance is built per process and passed by reference. Entries are
keyed by (content key, provider id); concurrent callers for the same key
share a single in-flight attempt. Writes are last-writer-wins and entries
expire after ``ttl_seconds``; an expired entry is never returned.

An optional ``CachePort`` backend (diskcache or redis) receives a
write-through copy so results survive restarts.
"""

from __future__ import annotations

import asyncio
import math
import time
from datetime import datetime
from typing import Any, Awaitable, Callable

import structlog

from resolvarr.domain.entities import ResolutionResult
from resolvarr.domain.ports import CachePort

log = structlog.get_logger(__name__)

_KEY_PREFIX = "resolution"

# Evict expired entries every N writes
_EVICT_INTERVAL = 256


class _CacheEntry:
    """Time-bounded cache entry."""

    __slots__ = ("value", "expires_at")

    def __init__(self, value: ResolutionResult, expires_at: float) -> None:
        self.value = value
        self.expires_at = expires_at

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


def serialize_result(result: ResolutionResult) -> dict[str, Any]:
    return {
        "stream_url": result.stream_url,
        "provider_id": result.provider_id,
        "resolved_at": result.resolved_at.isoformat(),
        "headers": dict(result.headers),
    }


def deserialize_result(data: dict[str, Any]) -> ResolutionResult:
    return ResolutionResult(
        stream_url=data["stream_url"],
        provider_id=data["provider_id"],
        resolved_at=datetime.fromisoformat(data["resolved_at"]),
        headers=dict(data.get("headers") or {}),
    )


class ResultCache:
    """Per-(content, provider) resolution cache.

    Args:
        ttl_seconds: Lifetime of a cached result.
        backend: Optional persistent ``CachePort`` for write-through.
        clock: Monotonic clock, injectable for tests.
        max_entries: In-memory bound; oldest entries go first.
    """

    def __init__(
        self,
        ttl_seconds: float,
        *,
        backend: CachePort | None = None,
        clock: Callable[[], float] = time.monotonic,
        max_entries: int = 10_000,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        self._ttl = ttl_seconds
        self._backend = backend
        self._clock = clock
        self._max_entries = max_entries
        self._entries: dict[str, _CacheEntry] = {}
        self._inflight: dict[str, asyncio.Task[ResolutionResult]] = {}
        self._waiters: dict[asyncio.Task[ResolutionResult], int] = {}
        self._writes = 0

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    @staticmethod
    def make_key(content_key: str, provider_id: str) -> str:
        return f"{_KEY_PREFIX}:{content_key}|{provider_id}"

    def in_flight(self, content_key: str, provider_id: str) -> bool:
        return self.make_key(content_key, provider_id) in self._inflight

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # Reads and writes
    # ------------------------------------------------------------------

    async def get(self, content_key: str, provider_id: str) -> ResolutionResult | None:
        """Return a live entry, consulting the backend on a memory miss."""
        key = self.make_key(content_key, provider_id)
        now = self._clock()
        entry = self._entries.get(key)
        if entry is not None:
            if not entry.is_expired(now):
                return entry.value
            del self._entries[key]

        if self._backend is None:
            return None

        raw = await self._backend.get(key)
        if not raw:
            return None
        result = deserialize_result(raw)
        if not result.is_fresh(self._ttl):
            return None

        resolved_at = result.resolved_at
        age = (datetime.now(resolved_at.tzinfo) - resolved_at).total_seconds()
        self._entries[key] = _CacheEntry(result, now + max(self._ttl - age, 0.0))
        log.debug("result_cache_backend_hit", key=key)
        return result

    async def put(
        self, content_key: str, provider_id: str, result: ResolutionResult
    ) -> None:
        key = self.make_key(content_key, provider_id)
        self._entries[key] = _CacheEntry(result, self._clock() + self._ttl)
        self._writes += 1
        overfull = len(self._entries) > self._max_entries
        if self._writes % _EVICT_INTERVAL == 0 or overfull:
            self._evict()

        if self._backend is not None:
            await self._backend.set(
                key, serialize_result(result), ttl=math.ceil(self._ttl)
            )

    async def invalidate(self, content_key: str, provider_id: str) -> None:
        key = self.make_key(content_key, provider_id)
        self._entries.pop(key, None)
        if self._backend is not None:
            await self._backend.delete(key)

    def _evict(self) -> None:
        now = self._clock()
        expired = [k for k, e in self._entries.items() if e.is_expired(now)]
        for k in expired:
            del self._entries[k]
        overflow = len(self._entries) - self._max_entries
        if overflow > 0:
            for k in list(self._entries)[:overflow]:
                del self._entries[k]
        if expired or overflow > 0:
            log.debug(
                "result_cache_evicted",
                expired=len(expired),
                overflow=max(overflow, 0),
            )

    # ------------------------------------------------------------------
    # Single flight
    # ------------------------------------------------------------------

    async def get_or_resolve(
        self,
        content_key: str,
        provider_id: str,
        factory: Callable[[], Awaitable[ResolutionResult]],
    ) -> tuple[ResolutionResult, bool]:
        """Return a cached result or run ``factory`` at most once per key.

        Concurrent callers for the same key await the same task and see
        the same result or exception. A cancelled caller leaves the shared
        attempt running while other callers still wait on it; when the last
        caller is cancelled the attempt is cancelled too, and its teardown
        (browser session included) finishes before the cancellation
        propagates.

        Returns:
            ``(result, from_cache)``.
        """
        cached = await self.get(content_key, provider_id)
        if cached is not None:
            return cached, True

        key = self.make_key(content_key, provider_id)
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.create_task(self._run(content_key, provider_id, factory))
            self._inflight[key] = task
            task.add_done_callback(lambda t: self._finish(key, t))
        else:
            log.debug("result_cache_coalesced", key=key)

        self._waiters[task] = self._waiters.get(task, 0) + 1
        try:
            return await asyncio.shield(task), False
        except asyncio.CancelledError:
            if self._waiters[task] == 1 and not task.done():
                log.debug("result_cache_attempt_cancelled", key=key)
                task.cancel()
                await asyncio.wait([task])
            raise
        finally:
            remaining = self._waiters.pop(task) - 1
            if remaining:
                self._waiters[task] = remaining

    async def _run(
        self,
        content_key: str,
        provider_id: str,
        factory: Callable[[], Awaitable[ResolutionResult]],
    ) -> ResolutionResult:
        result = await factory()
        await self.put(content_key, provider_id, result)
        return result

    def _finish(self, key: str, task: asyncio.Task[ResolutionResult]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # Mark the outcome retrieved; waiters that are still around re-raise it.
        if not task.cancelled():
            task.exception()
