"""In-memory provider registry, loaded once at startup."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

from resolvarr.domain.entities import ContentType, ProviderSpec
from resolvarr.domain.exceptions import DuplicateProviderError, ProviderNotFoundError
from resolvarr.domain.ports import DecoderRegistryPort
from resolvarr.infrastructure.providers.loader import check_strategies, load_providers


class ProviderRegistry:
    """Immutable view over the configured providers."""

    def __init__(self, specs: Iterable[ProviderSpec]) -> None:
        self._specs: dict[str, ProviderSpec] = {}
        for spec in specs:
            if spec.id in self._specs:
                raise DuplicateProviderError(f"duplicate provider id '{spec.id}'")
            self._specs[spec.id] = spec

    @classmethod
    def from_file(cls, path: Path, decoders: DecoderRegistryPort) -> ProviderRegistry:
        return cls(load_providers(path, decoders))

    @classmethod
    def from_specs(
        cls, specs: Iterable[ProviderSpec], decoders: DecoderRegistryPort
    ) -> ProviderRegistry:
        specs = list(specs)
        check_strategies(specs, decoders)
        return cls(specs)

    def lookup(self, provider_id: str) -> ProviderSpec:
        try:
            return self._specs[provider_id]
        except KeyError:
            raise ProviderNotFoundError(f"unknown provider '{provider_id}'") from None

    def list(self, content_type: ContentType) -> list[ProviderSpec]:
        """Enabled providers for ``content_type``, by priority then id."""
        candidates = [
            s for s in self._specs.values() if s.enabled and s.supports(content_type)
        ]
        return sorted(candidates, key=lambda s: (s.priority, s.id))

    def all(self) -> list[ProviderSpec]:
        return sorted(self._specs.values(), key=lambda s: (s.priority, s.id))

    def __len__(self) -> int:
        return len(self._specs)
