"""Load the provider registry file."""

from __future__ import annotations

from pathlib import Path

import structlog
import yaml
from pydantic import ValidationError

from resolvarr.domain.entities import ProviderSpec
from resolvarr.domain.exceptions import (
    DuplicateProviderError,
    ProviderConfigError,
    UnknownDecodeStrategyError,
)
from resolvarr.domain.ports import DecoderRegistryPort
from resolvarr.infrastructure.providers.adapters import to_domain_provider
from resolvarr.infrastructure.providers.validation_schema import ProviderRegistryFile

log = structlog.get_logger(__name__)


def parse_providers(data: object, *, source: str = "<memory>") -> list[ProviderSpec]:
    """Validate an already-parsed registry document."""
    if data is None:
        raise ProviderConfigError(f"{source}: registry file is empty")
    if not isinstance(data, dict):
        raise ProviderConfigError(f"{source}: registry root must be a mapping")
    try:
        model = ProviderRegistryFile.model_validate(data)
    except ValidationError as e:
        log.error(
            "provider_registry_invalid",
            registry_file=source,
            error_type="ValidationError",
            error_details=e.errors(),
        )
        raise ProviderConfigError(f"{source}: {e}") from e

    specs: list[ProviderSpec] = []
    seen: set[str] = set()
    for provider in model.providers:
        if provider.id in seen:
            raise DuplicateProviderError(
                f"{source}: duplicate provider id '{provider.id}'"
            )
        seen.add(provider.id)
        specs.append(to_domain_provider(provider))
    return specs


def check_strategies(specs: list[ProviderSpec], decoders: DecoderRegistryPort) -> None:
    """Fail fast when a provider names a strategy nobody registered."""
    for spec in specs:
        if spec.decode_strategy_id not in decoders:
            log.error(
                "provider_unknown_decode_strategy",
                provider=spec.id,
                strategy=spec.decode_strategy_id,
            )
            raise UnknownDecodeStrategyError(
                f"provider '{spec.id}' references unknown decode strategy "
                f"'{spec.decode_strategy_id}'"
            )


def load_providers(path: Path, decoders: DecoderRegistryPort) -> list[ProviderSpec]:
    """Read, validate and convert the registry file.

    Raises:
        ProviderConfigError: Unreadable file, bad YAML or schema violation.
        DuplicateProviderError: Two entries share an id.
        UnknownDecodeStrategyError: An entry names an unregistered strategy.
    """
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as e:
        log.error(
            "provider_registry_load_failed",
            registry_file=str(path),
            error_type=type(e).__name__,
            error_message=str(e),
        )
        raise ProviderConfigError(f"{path}: {e}") from e
    except yaml.YAMLError as e:
        log.error(
            "provider_registry_invalid",
            registry_file=str(path),
            error_type=type(e).__name__,
            error_message=str(e),
        )
        raise ProviderConfigError(f"{path}: {e}") from e

    specs = parse_providers(data, source=str(path))
    check_strategies(specs, decoders)
    log.info("provider_registry_loaded", registry_file=str(path), providers=len(specs))
    return specs
