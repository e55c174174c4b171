"""Tests for ProviderSpec."""

from __future__ import annotations

import pytest

from resolvarr.domain.entities import (
    ContentType,
    ExtractionRule,
    ExtractionStep,
    RuleType,
    StepKind,
)


class TestProviderSpec:
    def test_requires_chain_steps(self, make_spec) -> None:
        with pytest.raises(ValueError, match="no chain steps"):
            make_spec(chain_steps=())

    def test_supports_declared_content_types(self, make_spec) -> None:
        spec = make_spec(
            embed_url_templates={ContentType.MOVIE: "https://a.example/{external_id}"}
        )
        assert spec.supports(ContentType.MOVIE)
        assert not spec.supports(ContentType.TV)

    def test_has_browser_steps(self, make_spec) -> None:
        browse = ExtractionStep(
            kind=StepKind.BROWSER_NAVIGATE,
            rule=ExtractionRule(type=RuleType.WAIT_FOR_VALUE, expression="window.x"),
        )
        spec = make_spec(chain_steps=(browse,), requires_browser=True)
        assert spec.has_browser_steps
        assert not make_spec().has_browser_steps

    def test_defaults(self, make_spec) -> None:
        spec = make_spec()
        assert spec.enabled is True
        assert spec.timeout_seconds == 30.0
        assert spec.requires_browser is False
