"""Navigator port: walks a provider chain to its encoded payload."""

from __future__ import annotations

from typing import Protocol

from resolvarr.domain.entities import ContentRequest, EncodedPayload, ProviderSpec


class NavigatorPort(Protocol):
    async def navigate(
        self,
        spec: ProviderSpec,
        request: ContentRequest,
        *,
        title: str | None = None,
    ) -> EncodedPayload: ...
