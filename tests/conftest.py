"""Shared test fixtures for the resolvarr test suite."""

from __future__ import annotations

from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from resolvarr.domain.entities import (
    ContentRequest,
    ContentType,
    ExtractionRule,
    ExtractionStep,
    Fingerprint,
    ProviderSpec,
    RuleType,
    StepKind,
)

# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def build_regex_step(pattern: str, **kwargs: Any) -> ExtractionStep:
    """Fetch step extracting with ``pattern``."""
    return ExtractionStep(
        kind=StepKind.FETCH,
        rule=ExtractionRule(type=RuleType.REGEX, pattern=pattern),
        **kwargs,
    )


def build_spec(provider_id: str = "alpha", **overrides: Any) -> ProviderSpec:
    """ProviderSpec with a single fetch step; override any field."""
    fields: dict[str, Any] = {
        "id": provider_id,
        "priority": 10,
        "embed_url_templates": {
            ContentType.MOVIE: (
                f"https://{provider_id}.example/embed/movie/{{external_id}}"
            ),
            ContentType.TV: (
                f"https://{provider_id}.example/embed/tv/"
                "{external_id}/{season}/{episode}"
            ),
        },
        "chain_steps": (build_regex_step(r'data-payload="(?P<payload>[^"]+)"'),),
        "decode_strategy_id": "urlsafe-base64",
    }
    fields.update(overrides)
    return ProviderSpec(**fields)


@pytest.fixture()
def make_spec() -> Callable[..., ProviderSpec]:
    return build_spec


@pytest.fixture()
def regex_step() -> Callable[..., ExtractionStep]:
    return build_regex_step


# ---------------------------------------------------------------------------
# Domain entity fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def movie_request() -> ContentRequest:
    return ContentRequest.movie("tt0111161")


@pytest.fixture()
def episode_request() -> ContentRequest:
    return ContentRequest.tv("tt0903747", 1, 2)


@pytest.fixture()
def fingerprint() -> Fingerprint:
    """Deterministic browser fingerprint."""
    return Fingerprint(
        screen_width=1920,
        screen_height=1080,
        color_depth=24,
        user_agent="Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 Chrome/124.0",
        platform="Linux x86_64",
        language="en-US",
        timezone_offset=-120,
        canvas="iVBORw0KGgoAAAANSUhEUgAA",
    )


# ---------------------------------------------------------------------------
# Mock port fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def mock_cache() -> AsyncMock:
    """Mock CachePort."""
    cache = AsyncMock()
    cache.get = AsyncMock(return_value=None)
    cache.set = AsyncMock()
    cache.delete = AsyncMock(return_value=True)
    cache.clear = AsyncMock()
    cache.aclose = AsyncMock()
    return cache


@pytest.fixture()
def mock_event_sink() -> MagicMock:
    """Mock ResolutionEventSink (synchronous emit)."""
    sink = MagicMock()
    sink.emit.return_value = None
    return sink
