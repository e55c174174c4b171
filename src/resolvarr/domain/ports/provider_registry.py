"""Provider registry port."""

from __future__ import annotations

from typing import Protocol

from resolvarr.domain.entities import ContentType, ProviderSpec


class ProviderRegistryPort(Protocol):
    def lookup(self, provider_id: str) -> ProviderSpec:
        """Return the spec, or raise ProviderNotFoundError."""
        ...

    def list(self, content_type: ContentType) -> list[ProviderSpec]:
        """Enabled providers for ``content_type`` in priority order."""
        ...
