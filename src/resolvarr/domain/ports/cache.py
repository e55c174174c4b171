"""Cache port: async key-value storage with TTL, used for persisting results."""

from __future__ import annotations

from typing import Any, Protocol


class CachePort(Protocol):
    """Backend-agnostic async key-value store.

    Implementations:
      - DiskcacheAdapter (SQLite on disk, no daemon)
      - RedisAdapter (redis.asyncio)

    Adapters are opened and closed as async context managers.
    """

    async def get(self, key: str) -> Any:
        """Return the stored value, or None when missing or expired."""
        ...

    async def set(self, key: str, value: Any, *, ttl: int | None = None) -> None: ...

    async def delete(self, key: str) -> bool: ...

    async def clear(self) -> None: ...

    async def aclose(self) -> None: ...

    async def __aenter__(self) -> CachePort: ...

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None: ...
