from __future__ import annotations

import argparse
import sys
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import structlog
import uvicorn

from resolvarr.infrastructure.config import load_config
from resolvarr.infrastructure.logging.setup import configure_logging
from resolvarr.interfaces.main import build_app

log = structlog.get_logger(__name__)


def _parse_args(argv: Iterable[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="resolvarr",
        description="Serve the stream resolution API.",
    )

    # Server options
    parser.add_argument("--host", default=None, help="Bind host (overrides api.host).")
    parser.add_argument(
        "--port", default=None, type=int, help="Bind port (overrides api.port)."
    )

    # Config wiring
    parser.add_argument("--config", default=None, help="Path to YAML config file.")
    parser.add_argument("--dotenv", default=None, help="Path to .env file.")
    parser.add_argument(
        "--providers",
        default=None,
        help="Override the provider registry YAML file.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override log level.",
    )
    parser.add_argument(
        "--log-format",
        default=None,
        choices=["json", "console"],
        help="Override log format.",
    )
    parser.add_argument(
        "--headful",
        action="store_true",
        help="Run the browser with a visible window.",
    )

    return parser.parse_args(list(argv) if argv is not None else None)


def cli_overrides_from(args: argparse.Namespace) -> dict[str, Any]:
    """Map parsed CLI flags onto flat config keys."""
    overrides: dict[str, Any] = {}
    if args.host:
        overrides["api_host"] = args.host
    if args.port:
        overrides["api_port"] = args.port
    if args.providers:
        overrides["providers_path"] = args.providers
    if args.log_level:
        overrides["log_level"] = args.log_level
    if args.log_format:
        overrides["log_format"] = args.log_format
    if args.headful:
        overrides["browser_headless"] = False
    return overrides


def start(argv: Iterable[str] | None = None) -> None:
    """Process entrypoint: load config once, then serve the app built from it."""
    if argv is None:
        argv = sys.argv[1:]

    args = _parse_args(argv)

    config = load_config(
        config_path=Path(args.config) if args.config else None,
        dotenv_path=Path(args.dotenv) if args.dotenv else None,
        cli_overrides=cli_overrides_from(args),
    )

    log_config = configure_logging(config)
    log.info("starting", host=config.api_host, port=config.api_port)

    uvicorn.run(
        build_app(config),
        host=config.api_host,
        port=config.api_port,
        log_config=log_config,
    )


if __name__ == "__main__":
    raise SystemExit(start())
