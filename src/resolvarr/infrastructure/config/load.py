from __future__ import annotations

from copy import deepcopy
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv

from .defaults import DEFAULT_CONFIG
from .schema import AppConfig, EnvOverrides

# Flat field name -> (section, key) in the YAML shape.
_FLAT_TO_SECTION: dict[str, tuple[str, str]] = {
    "providers_path": ("providers", "registry_path"),
    "titles_path": ("providers", "titles_path"),
    "http_timeout_seconds": ("http", "timeout_seconds"),
    "http_user_agent": ("http", "user_agent"),
    "http_max_retries": ("http", "max_retries"),
    "http_rate_limit_rps": ("http", "rate_limit_rps"),
    "browser_enabled": ("browser", "enabled"),
    "browser_headless": ("browser", "headless"),
    "browser_cdp_endpoint": ("browser", "cdp_endpoint"),
    "browser_executable_path": ("browser", "executable_path"),
    "browser_max_sessions": ("browser", "max_sessions"),
    "browser_stealth": ("browser", "stealth"),
    "step_timeout_seconds": ("browser", "step_timeout_seconds"),
    "max_transient_retries": ("resolver", "max_transient_retries"),
    "retry_backoff_seconds": ("resolver", "retry_backoff_seconds"),
    "provider_timeouts": ("resolver", "provider_timeouts"),
    "validator_probe": ("validator", "probe"),
    "validator_probe_timeout_seconds": ("validator", "probe_timeout_seconds"),
    "log_level": ("logging", "level"),
    "log_format": ("logging", "format"),
    "cache_backend": ("cache", "backend"),
    "cache_dir": ("cache", "dir"),
    "cache_redis_url": ("cache", "redis_url"),
    "cache_ttl_seconds": ("cache", "ttl_seconds"),
    "api_host": ("api", "host"),
    "api_port": ("api", "port"),
}

_SECTION_KEYS: frozenset[str] = frozenset(s for s, _ in _FLAT_TO_SECTION.values())

# Mappings that replace each other wholesale instead of merging key by key.
_OPAQUE_KEYS: frozenset[tuple[str, str]] = frozenset(
    {("resolver", "provider_timeouts")}
)


def _deep_merge(
    base: dict[str, Any],
    override: Mapping[str, Any],
    _path: tuple[str, ...] = (),
) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base`` and return ``base``.

    dict + dict merges deeply; anything else (and opaque mappings) is
    replaced by the override.
    """
    for key, value in override.items():
        path = (*_path, key)
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, Mapping)
            and path not in _OPAQUE_KEYS
        ):
            _deep_merge(base[key], value, path)
        else:
            base[key] = dict(value) if isinstance(value, Mapping) else value
    return base


def _normalize_layer(data: Mapping[str, Any]) -> dict[str, Any]:
    """Bring a layer (defaults/YAML/ENV/CLI) into the sectioned shape.

    Layers may mix already sectioned blocks with flat keys such as
    ``cache_ttl_seconds``; flat keys win over their sectioned twin.
    """
    out: dict[str, Any] = {}

    for section in _SECTION_KEYS:
        if isinstance(data.get(section), Mapping):
            out[section] = dict(data[section])

    for key in ("app_name", "environment"):
        if key in data:
            out[key] = data[key]

    for flat_key, (section, section_key) in _FLAT_TO_SECTION.items():
        if flat_key in data:
            out.setdefault(section, {})[section_key] = data[flat_key]

    return out


def _read_yaml_config(config_path: Path) -> dict[str, Any]:
    parsed = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ValueError(f"Config YAML must be a mapping, got: {type(parsed)!r}")
    return parsed


def load_config(
    *,
    config_path: Path | None = None,
    dotenv_path: Path | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> AppConfig:
    """Load configuration with precedence defaults < YAML < env vars < CLI.

    Never creates files or directories.
    """
    cli_overrides = cli_overrides or {}

    # .env participates as part of the env var layer.
    if dotenv_path is not None:
        if not dotenv_path.exists():
            raise FileNotFoundError(dotenv_path)
        load_dotenv(dotenv_path, override=False)

    merged = _normalize_layer(deepcopy(DEFAULT_CONFIG))

    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(config_path)
        _deep_merge(merged, _normalize_layer(_read_yaml_config(config_path)))

    _deep_merge(merged, _normalize_layer(EnvOverrides().to_update_dict()))
    _deep_merge(merged, _normalize_layer(cli_overrides))

    return AppConfig.model_validate(merged)
