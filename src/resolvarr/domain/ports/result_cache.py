"""Result cache port: TTL'd resolutions with single-flight coalescing."""

from __future__ import annotations

from typing import Awaitable, Callable, Protocol

from resolvarr.domain.entities import ResolutionResult


class ResultCachePort(Protocol):
    async def get(self, content_key: str, provider_id: str) -> ResolutionResult | None:
        """Return a live entry; expired entries are never returned."""
        ...

    async def get_or_resolve(
        self,
        content_key: str,
        provider_id: str,
        factory: Callable[[], Awaitable[ResolutionResult]],
    ) -> tuple[ResolutionResult, bool]:
        """Cached result, or the result of at most one in-flight ``factory`` call."""
        ...
