"""Redis adapter via ``redis.asyncio``."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

log = structlog.get_logger(__name__)


class RedisAdapter:
    """Async Redis store; values are JSON text.

    Redis failures on reads and writes are logged and degrade to a cache
    miss so an unavailable Redis never fails a resolution.

    Args:
        url: Redis URL, e.g. ``redis://localhost:6379/0``.
        ttl_seconds: Default TTL for ``set()``.
        max_concurrent: Max parallel Redis operations.
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        ttl_seconds: int = 1800,
        max_concurrent: int = 50,
    ) -> None:
        self.url = url
        self.default_ttl = ttl_seconds
        self._client: Redis | None = None
        self._semaphore = asyncio.Semaphore(max_concurrent)

    async def __aenter__(self) -> RedisAdapter:
        if self._client is None:
            self._client = Redis.from_url(self.url, decode_responses=True)
            try:
                await self._client.ping()
            except RedisError as e:
                log.error("redis_connection_failed", url=self.url, error=str(e))
                raise
            log.info("redis_connected", url=self.url)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            log.info("redis_closed")

    def _require(self) -> Redis:
        if self._client is None:
            raise RuntimeError("Redis not initialized. Use 'async with cache:'")
        return self._client

    async def get(self, key: str) -> Any | None:
        client = self._require()
        async with self._semaphore:
            try:
                raw = await client.get(key)
            except RedisError as e:
                log.error("redis_get_error", key=key, error=str(e))
                return None
        if raw is None:
            log.debug("cache_miss", key=key)
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            log.error("redis_decode_error", key=key, error=str(e))
            return None

    async def set(self, key: str, value: Any, *, ttl: int | None = None) -> None:
        client = self._require()
        expire = ttl if ttl is not None else self.default_ttl
        encoded = json.dumps(value)
        async with self._semaphore:
            try:
                await client.setex(key, expire, encoded)
            except RedisError as e:
                log.error("redis_set_error", key=key, error=str(e))
                return
        log.debug("cache_set", key=key, ttl=expire, size_bytes=len(encoded))

    async def delete(self, key: str) -> bool:
        if self._client is None:
            return False
        async with self._semaphore:
            try:
                deleted = await self._client.delete(key)
            except RedisError as e:
                log.error("redis_delete_error", key=key, error=str(e))
                return False
        return deleted > 0

    async def clear(self) -> None:
        if self._client is None:
            return
        async with self._semaphore:
            try:
                await self._client.flushdb()
            except RedisError as e:
                log.error("redis_flush_error", error=str(e))
                return
        log.warning("redis_flushed")
