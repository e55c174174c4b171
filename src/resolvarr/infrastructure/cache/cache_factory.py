"""Build the persistent cache backend selected in the config."""

from __future__ import annotations

from typing import Literal

import structlog

from resolvarr.domain.ports import CachePort
from resolvarr.infrastructure.cache.diskcache_adapter import DiskcacheAdapter
from resolvarr.infrastructure.cache.redis_adapter import RedisAdapter

log = structlog.get_logger(__name__)

CacheBackend = Literal["memory", "diskcache", "redis"]


def create_backend(
    backend: CacheBackend = "memory",
    *,
    directory: str = "./.cache/resolvarr",
    redis_url: str = "redis://localhost:6379/0",
    ttl_seconds: int = 1800,
    max_concurrent: int = 10,
) -> CachePort | None:
    """Return a ``CachePort`` for ``backend``, or None for memory-only.

    Raises:
        ValueError: Unknown backend name.
    """
    if backend == "memory":
        log.info("cache_backend_create", backend=backend)
        return None
    if backend == "diskcache":
        log.info(
            "cache_backend_create",
            backend=backend,
            directory=directory,
            ttl=ttl_seconds,
        )
        return DiskcacheAdapter(
            directory=directory,
            ttl_seconds=ttl_seconds,
            max_concurrent=max_concurrent,
        )
    if backend == "redis":
        log.info(
            "cache_backend_create", backend=backend, url=redis_url, ttl=ttl_seconds
        )
        return RedisAdapter(url=redis_url, ttl_seconds=ttl_seconds)
    raise ValueError(
        f"Unknown cache backend: {backend!r}. Must be 'memory', 'diskcache' or 'redis'."
    )
