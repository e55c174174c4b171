"""Pydantic configuration models with validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]
CacheBackend = Literal["memory", "diskcache", "redis"]


def _normalize_path(value: Any) -> Path:
    """Normalize a path-like value. Never touches the filesystem."""
    if isinstance(value, Path):
        return value.expanduser()
    if isinstance(value, str):
        return Path(value).expanduser()
    raise TypeError(f"Expected path-like value, got: {type(value)!r}")


def _alias(flat: str, section: str, key: str) -> AliasChoices:
    return AliasChoices(flat, AliasPath(section, key))


class AppConfig(BaseModel):
    """Canonical application configuration (validated, final).

    YAML files are sectioned (providers/http/browser/resolver/validator/
    logging/cache/api). Environment variables arrive flat through
    ``EnvOverrides``; ``load.py`` merges every layer with the precedence
    defaults < YAML < ENV < CLI before validating this model.
    """

    app_name: str = Field(default="resolvarr")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )

    # providers.*
    providers_path: Path = Field(
        default=Path("./providers/providers.yaml"),
        validation_alias=_alias("providers_path", "providers", "registry_path"),
        description="Provider registry YAML file.",
    )
    titles_path: Optional[Path] = Field(
        default=None,
        validation_alias=_alias("titles_path", "providers", "titles_path"),
        description="Optional YAML mapping of external id to title.",
    )

    # http.*
    http_timeout_seconds: float = Field(
        default=20.0,
        validation_alias=_alias("http_timeout_seconds", "http", "timeout_seconds"),
    )
    http_user_agent: str = Field(
        default="Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
        validation_alias=_alias("http_user_agent", "http", "user_agent"),
        description="User-Agent for provider requests.",
    )
    http_max_retries: int = Field(
        default=2,
        ge=0,
        validation_alias=_alias("http_max_retries", "http", "max_retries"),
        description="Transport-level retries on 429/503.",
    )
    http_rate_limit_rps: float = Field(
        default=5.0,
        ge=0,
        validation_alias=_alias("http_rate_limit_rps", "http", "rate_limit_rps"),
        description="Requests per second per host (0 = unlimited).",
    )

    # browser.*
    browser_enabled: bool = Field(
        default=True,
        validation_alias=_alias("browser_enabled", "browser", "enabled"),
        description="Disable to skip providers that need a browser.",
    )
    browser_headless: bool = Field(
        default=True,
        validation_alias=_alias("browser_headless", "browser", "headless"),
    )
    browser_cdp_endpoint: Optional[str] = Field(
        default=None,
        validation_alias=_alias("browser_cdp_endpoint", "browser", "cdp_endpoint"),
        description="Attach to an external Chromium over CDP instead of launching.",
    )
    browser_executable_path: Optional[str] = Field(
        default=None,
        validation_alias=_alias(
            "browser_executable_path", "browser", "executable_path"
        ),
    )
    browser_max_sessions: int = Field(
        default=2,
        ge=1,
        validation_alias=_alias("browser_max_sessions", "browser", "max_sessions"),
        description="Max concurrently open browser sessions.",
    )
    browser_stealth: bool = Field(
        default=True,
        validation_alias=_alias("browser_stealth", "browser", "stealth"),
    )
    step_timeout_seconds: float = Field(
        default=20.0,
        validation_alias=_alias(
            "step_timeout_seconds", "browser", "step_timeout_seconds"
        ),
        description="Default timeout per chain step (seconds).",
    )

    # resolver.*
    max_transient_retries: int = Field(
        default=2,
        ge=0,
        le=5,
        validation_alias=_alias(
            "max_transient_retries", "resolver", "max_transient_retries"
        ),
    )
    retry_backoff_seconds: float = Field(
        default=0.5,
        ge=0,
        validation_alias=_alias(
            "retry_backoff_seconds", "resolver", "retry_backoff_seconds"
        ),
    )
    provider_timeouts: dict[str, float] = Field(
        default_factory=dict,
        validation_alias=_alias("provider_timeouts", "resolver", "provider_timeouts"),
        description="Per-provider attempt timeout overrides (seconds).",
    )

    # validator.*
    validator_probe: bool = Field(
        default=False,
        validation_alias=_alias("validator_probe", "validator", "probe"),
        description="Probe candidate URLs before accepting them.",
    )
    validator_probe_timeout_seconds: float = Field(
        default=5.0,
        validation_alias=_alias(
            "validator_probe_timeout_seconds", "validator", "probe_timeout_seconds"
        ),
    )

    # logging.*
    log_level: LogLevel = Field(
        default="INFO",
        validation_alias=_alias("log_level", "logging", "level"),
    )
    log_format: Optional[LogFormat] = Field(
        default=None,
        validation_alias=_alias("log_format", "logging", "format"),
        description="console/json. If unset, derived from environment.",
    )

    # cache.*
    cache_backend: CacheBackend = Field(
        default="memory",
        validation_alias=_alias("cache_backend", "cache", "backend"),
    )
    cache_dir: Path = Field(
        default=Path("./.cache/resolvarr"),
        validation_alias=_alias("cache_dir", "cache", "dir"),
    )
    cache_redis_url: str = Field(
        default="redis://localhost:6379/0",
        validation_alias=_alias("cache_redis_url", "cache", "redis_url"),
    )
    cache_ttl_seconds: int = Field(
        default=1800,
        validation_alias=_alias("cache_ttl_seconds", "cache", "ttl_seconds"),
        description="Lifetime of a cached resolution (seconds).",
    )

    # api.*
    api_host: str = Field(
        default="0.0.0.0", validation_alias=_alias("api_host", "api", "host")
    )
    api_port: int = Field(
        default=7979, validation_alias=_alias("api_port", "api", "port")
    )

    @field_validator("providers_path", "cache_dir", mode="before")
    @classmethod
    def _validate_paths(cls, v: Any) -> Path:
        return _normalize_path(v)

    @field_validator("titles_path", mode="before")
    @classmethod
    def _validate_optional_path(cls, v: Any) -> Optional[Path]:
        if v is None:
            return None
        return _normalize_path(v)

    @field_validator(
        "http_timeout_seconds",
        "step_timeout_seconds",
        "validator_probe_timeout_seconds",
    )
    @classmethod
    def _validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeouts must be > 0")
        return v

    @field_validator("cache_ttl_seconds")
    @classmethod
    def _validate_cache_ttl(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("cache_ttl_seconds must be > 0")
        return v

    @field_validator("provider_timeouts")
    @classmethod
    def _validate_provider_timeouts(cls, v: dict[str, float]) -> dict[str, float]:
        bad = sorted(k for k, t in v.items() if t <= 0)
        if bad:
            raise ValueError(f"provider_timeouts must be > 0 (got: {', '.join(bad)})")
        return v

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        # Default log format: console in dev/test, json in prod.
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    def to_sectioned_dict(self) -> dict[str, Any]:
        """Dump configuration in the sectioned shape used by config.yaml."""
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "providers": {
                "registry_path": str(self.providers_path),
                "titles_path": str(self.titles_path) if self.titles_path else None,
            },
            "http": {
                "timeout_seconds": self.http_timeout_seconds,
                "user_agent": self.http_user_agent,
                "max_retries": self.http_max_retries,
                "rate_limit_rps": self.http_rate_limit_rps,
            },
            "browser": {
                "enabled": self.browser_enabled,
                "headless": self.browser_headless,
                "cdp_endpoint": self.browser_cdp_endpoint,
                "executable_path": self.browser_executable_path,
                "max_sessions": self.browser_max_sessions,
                "stealth": self.browser_stealth,
                "step_timeout_seconds": self.step_timeout_seconds,
            },
            "resolver": {
                "max_transient_retries": self.max_transient_retries,
                "retry_backoff_seconds": self.retry_backoff_seconds,
                "provider_timeouts": dict(self.provider_timeouts),
            },
            "validator": {
                "probe": self.validator_probe,
                "probe_timeout_seconds": self.validator_probe_timeout_seconds,
            },
            "logging": {"level": self.log_level, "format": self.log_format},
            "cache": {
                "backend": self.cache_backend,
                "dir": str(self.cache_dir),
                "redis_url": self.cache_redis_url,
                "ttl_seconds": self.cache_ttl_seconds,
            },
            "api": {"host": self.api_host, "port": self.api_port},
        }


class EnvOverrides(BaseSettings):
    """Environment-variable overrides (all optional).

    ``load.py`` reads ``RESOLVARR_*`` variables through this model and
    merges only the values that were set, e.g.:

    - RESOLVARR_PROVIDERS_PATH
    - RESOLVARR_BROWSER_CDP_ENDPOINT
    - RESOLVARR_PROVIDER_TIMEOUTS='{"vidsrc-embed": 25}'
    - RESOLVARR_CACHE_TTL_SECONDS
    """

    model_config = SettingsConfigDict(
        env_prefix="RESOLVARR_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None

    providers_path: Optional[Path] = None
    titles_path: Optional[Path] = None

    http_timeout_seconds: Optional[float] = None
    http_user_agent: Optional[str] = None
    http_max_retries: Optional[int] = None
    http_rate_limit_rps: Optional[float] = None

    browser_enabled: Optional[bool] = None
    browser_headless: Optional[bool] = None
    browser_cdp_endpoint: Optional[str] = None
    browser_executable_path: Optional[str] = None
    browser_max_sessions: Optional[int] = None
    browser_stealth: Optional[bool] = None
    step_timeout_seconds: Optional[float] = None

    max_transient_retries: Optional[int] = None
    retry_backoff_seconds: Optional[float] = None
    provider_timeouts: Optional[dict[str, float]] = None

    validator_probe: Optional[bool] = None
    validator_probe_timeout_seconds: Optional[float] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    cache_backend: Optional[CacheBackend] = None
    cache_dir: Optional[Path] = None
    cache_redis_url: Optional[str] = None
    cache_ttl_seconds: Optional[int] = None

    api_host: Optional[str] = None
    api_port: Optional[int] = None

    def to_update_dict(self) -> dict[str, Any]:
        """Only the values that were actually provided, for merging."""
        return self.model_dump(exclude_none=True)
