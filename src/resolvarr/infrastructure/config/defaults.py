"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "resolvarr",
    "environment": "dev",
    "providers": {
        "registry_path": "./providers/providers.yaml",
        "titles_path": None,
    },
    "http": {
        "timeout_seconds": 20.0,
        "user_agent": (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
        ),
        "max_retries": 2,
        "rate_limit_rps": 5.0,
    },
    "browser": {
        "enabled": True,
        "headless": True,
        "cdp_endpoint": None,
        "executable_path": None,
        "max_sessions": 2,
        "stealth": True,
        "step_timeout_seconds": 20.0,
    },
    "resolver": {
        "max_transient_retries": 2,
        "retry_backoff_seconds": 0.5,
        "provider_timeouts": {},
    },
    "validator": {
        "probe": False,
        "probe_timeout_seconds": 5.0,
    },
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
    "cache": {
        "backend": "memory",
        "dir": "./.cache/resolvarr",
        "redis_url": "redis://localhost:6379/0",
        "ttl_seconds": 1800,
    },
    "api": {
        "host": "0.0.0.0",
        "port": 7979,
    },
}
