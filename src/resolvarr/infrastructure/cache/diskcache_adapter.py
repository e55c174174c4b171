"""Diskcache adapter: SQLite-backed persistent store, no daemon."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import structlog
from diskcache import Cache as DiskCache

log = structlog.get_logger(__name__)


class DiskcacheAdapter:
    """Async wrapper around the synchronous ``diskcache.Cache``.

    Disk I/O runs in ``asyncio.to_thread``; a semaphore limits parallel
    operations to keep SQLite lock contention down. Values are stored as
    JSON text.

    Args:
        directory: Cache directory.
        ttl_seconds: Default TTL for ``set()``.
        max_concurrent: Max parallel disk operations.
    """

    def __init__(
        self,
        directory: str | Path = "./.cache/resolvarr",
        ttl_seconds: int = 1800,
        max_concurrent: int = 10,
    ) -> None:
        self.directory = Path(directory)
        self.default_ttl = ttl_seconds
        self._cache: DiskCache | None = None
        self._semaphore = asyncio.Semaphore(max_concurrent)

    async def __aenter__(self) -> DiskcacheAdapter:
        if self._cache is None:
            self._cache = await asyncio.to_thread(DiskCache, str(self.directory))
            log.info("diskcache_opened", path=str(self.directory))
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._cache is not None:
            await asyncio.to_thread(self._cache.close)
            self._cache = None
            log.info("diskcache_closed", directory=str(self.directory))

    def _require(self) -> DiskCache:
        if self._cache is None:
            raise RuntimeError("Cache not initialized. Use 'async with cache:'")
        return self._cache

    async def get(self, key: str) -> Any | None:
        cache = self._require()
        async with self._semaphore:
            raw = await asyncio.to_thread(cache.get, key, default=None)
        log.debug("cache_get", key=key, hit=raw is not None)
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any, *, ttl: int | None = None) -> None:
        cache = self._require()
        expire = ttl if ttl is not None else self.default_ttl
        encoded = json.dumps(value)
        async with self._semaphore:
            await asyncio.to_thread(cache.set, key, encoded, expire=expire)
        log.debug("cache_set", key=key, ttl=expire, size_bytes=len(encoded))

    async def delete(self, key: str) -> bool:
        if self._cache is None:
            return False
        async with self._semaphore:
            deleted = await asyncio.to_thread(self._cache.delete, key)
        log.debug("cache_delete", key=key, deleted=deleted)
        return bool(deleted)

    async def clear(self) -> None:
        if self._cache is None:
            return
        async with self._semaphore:
            await asyncio.to_thread(self._cache.clear)
        log.warning("cache_cleared", directory=str(self.directory))
