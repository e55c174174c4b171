"""Tests for provider registry loading and validation."""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any

import pytest
import yaml

from resolvarr.domain.entities import ContentType, RuleType, StepKind, StepOutput
from resolvarr.domain.exceptions import (
    DuplicateProviderError,
    ProviderConfigError,
    ProviderNotFoundError,
    UnknownDecodeStrategyError,
)
from resolvarr.infrastructure.decoders import default_decoder_registry
from resolvarr.infrastructure.navigation.extraction import apply_rule
from resolvarr.infrastructure.providers import (
    ProviderRegistry,
    load_providers,
    parse_providers,
)

SHIPPED_REGISTRY = Path(__file__).parents[4] / "providers" / "providers.yaml"

BASE: dict[str, Any] = {
    "version": 1,
    "providers": [
        {
            "id": "alpha",
            "priority": 20,
            "embed_url_template": {
                "movie": "https://alpha.example/movie/{external_id}",
                "tv": "https://alpha.example/tv/{external_id}/{season}/{episode}",
            },
            "chain": [
                {
                    "kind": "fetch",
                    "rule": {"type": "regex", "pattern": 'src="(?P<url>[^"]+)"'},
                },
                {
                    "kind": "fetch",
                    "rule": {
                        "type": "css",
                        "selector": "div.enc",
                        "aux_attributes": {"session_id": "id"},
                    },
                },
            ],
            "decode_strategy": "xor-with-session-id",
        },
        {
            "id": "beta",
            "priority": 10,
            "embed_url_template": {"movie": "https://beta.example/{external_id}"},
            "chain": [
                {
                    "kind": "browser_navigate",
                    "capture_fingerprint": True,
                    "rule": {"type": "wait_for_value", "expression": "window.__p"},
                }
            ],
            "decode_strategy": "aes-ctr-fingerprint",
            "requires_browser": True,
            "credential_env": "BETA_KEY",
        },
    ],
}


def _doc(**provider_overrides: Any) -> dict[str, Any]:
    doc = copy.deepcopy(BASE)
    doc["providers"][0].update(provider_overrides)
    return doc


class TestParseProviders:
    def test_valid_document(self) -> None:
        specs = parse_providers(BASE)
        alpha, beta = specs
        assert alpha.embed_url_templates[ContentType.TV].endswith("{episode}")
        assert alpha.chain_steps[1].rule.type is RuleType.CSS
        assert alpha.chain_steps[1].rule.aux_attributes == {"session_id": "id"}
        assert beta.chain_steps[0].kind is StepKind.BROWSER_NAVIGATE
        assert beta.chain_steps[0].capture_fingerprint
        assert beta.credential_env == "BETA_KEY"
        assert not beta.supports(ContentType.TV)

    def test_empty_document(self) -> None:
        with pytest.raises(ProviderConfigError, match="empty"):
            parse_providers(None)

    def test_root_must_be_mapping(self) -> None:
        with pytest.raises(ProviderConfigError, match="mapping"):
            parse_providers(["a"])

    def test_duplicate_ids(self) -> None:
        doc = copy.deepcopy(BASE)
        doc["providers"][1]["id"] = "alpha"
        with pytest.raises(DuplicateProviderError, match="alpha"):
            parse_providers(doc)

    def test_unknown_field_rejected(self) -> None:
        with pytest.raises(ProviderConfigError, match="extra"):
            parse_providers(_doc(colour="blue"))

    def test_bad_provider_id(self) -> None:
        with pytest.raises(ProviderConfigError):
            parse_providers(_doc(id="Alpha Provider"))

    def test_empty_chain(self) -> None:
        with pytest.raises(ProviderConfigError, match="at least one step"):
            parse_providers(_doc(chain=[]))

    def test_relative_embed_url(self) -> None:
        with pytest.raises(ProviderConfigError, match="absolute"):
            parse_providers(_doc(embed_url_template={"movie": "/movie/{external_id}"}))

    def test_unknown_placeholder(self) -> None:
        with pytest.raises(ProviderConfigError, match="imdb"):
            parse_providers(
                _doc(embed_url_template={"movie": "https://a.example/{imdb}"})
            )

    def test_invalid_regex(self) -> None:
        rule = {"type": "regex", "pattern": "(?P<payload>["}
        chain = [{"kind": "fetch", "rule": rule}]
        with pytest.raises(ProviderConfigError, match="invalid regex"):
            parse_providers(_doc(chain=chain))

    def test_last_regex_needs_payload_group(self) -> None:
        chain = [{"kind": "fetch", "rule": {"type": "regex", "pattern": "(?P<url>x)"}}]
        with pytest.raises(ProviderConfigError, match="'payload'"):
            parse_providers(_doc(chain=chain))

    def test_css_needs_selector(self) -> None:
        chain = [{"kind": "fetch", "rule": {"type": "css"}}]
        with pytest.raises(ProviderConfigError, match="selector"):
            parse_providers(_doc(chain=chain))

    def test_wait_for_value_needs_browser_step(self) -> None:
        rule = {"type": "wait_for_value", "expression": "x"}
        chain = [{"kind": "fetch", "rule": rule}]
        with pytest.raises(ProviderConfigError, match="browser_navigate"):
            parse_providers(_doc(chain=chain))

    def test_browser_step_needs_requires_browser(self) -> None:
        doc = copy.deepcopy(BASE)
        doc["providers"][1]["requires_browser"] = False
        with pytest.raises(ProviderConfigError, match="requires_browser"):
            parse_providers(doc)

    def test_invalid_candidate_pattern(self) -> None:
        with pytest.raises(ProviderConfigError, match="candidate_pattern"):
            parse_providers(_doc(candidate_pattern="(unclosed"))


class TestLoadProviders:
    def test_load_from_file(self, tmp_path: Path) -> None:
        path = tmp_path / "providers.yaml"
        path.write_text(yaml.safe_dump(BASE), encoding="utf-8")
        specs = load_providers(path, default_decoder_registry())
        assert [s.id for s in specs] == ["alpha", "beta"]

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ProviderConfigError):
            load_providers(tmp_path / "nope.yaml", default_decoder_registry())

    def test_broken_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "providers.yaml"
        path.write_text("providers: [unclosed", encoding="utf-8")
        with pytest.raises(ProviderConfigError):
            load_providers(path, default_decoder_registry())

    def test_unknown_strategy(self, tmp_path: Path) -> None:
        path = tmp_path / "providers.yaml"
        path.write_text(yaml.safe_dump(_doc(decode_strategy="rot13")), encoding="utf-8")
        with pytest.raises(UnknownDecodeStrategyError, match="rot13"):
            load_providers(path, default_decoder_registry())

    def test_shipped_registry_is_valid(self) -> None:
        specs = load_providers(SHIPPED_REGISTRY, default_decoder_registry())
        assert [s.id for s in specs] == ["vidsrc-embed", "vidsrc-embed-browser"]
        for spec in specs:
            assert spec.decode_strategy_id != "aes-ctr-fingerprint"
            assert spec.excluded_host_prefixes == ("app2.", "app3.")

    @pytest.mark.parametrize(
        "page",
        ["src: '/prorcp/QUJDRA=='", 'src: "/srcrcp/QUJDRA=="'],
    )
    def test_shipped_player_hop_accepts_both_paths(self, page: str) -> None:
        for spec in load_providers(SHIPPED_REGISTRY, default_decoder_registry()):
            extracted = apply_rule(spec.chain_steps[1].rule, StepOutput.URL, page)
            assert extracted.value.endswith("rcp/QUJDRA==")

    def test_shipped_browser_entry(self) -> None:
        specs = load_providers(SHIPPED_REGISTRY, default_decoder_registry())
        fetch_only, browser = specs
        assert not fetch_only.requires_browser
        assert browser.requires_browser
        assert browser.priority > fetch_only.priority
        assert browser.decode_strategy_id == "plain"

        last = browser.chain_steps[-1]
        assert last.kind is StepKind.BROWSER_NAVIGATE
        assert last.rule.type is RuleType.WAIT_FOR_VALUE
        assert 'div[style*="display:none"]' in last.rule.expression
        assert "window[d.id]" in last.rule.expression
        assert browser.url_substitutions == fetch_only.url_substitutions
        assert browser.candidate_pattern == fetch_only.candidate_pattern


class TestProviderRegistry:
    def _registry(self) -> ProviderRegistry:
        return ProviderRegistry.from_specs(
            parse_providers(BASE), default_decoder_registry()
        )

    def test_list_orders_by_priority(self) -> None:
        movies = self._registry().list(ContentType.MOVIE)
        assert [s.id for s in movies] == ["beta", "alpha"]

    def test_list_filters_content_type(self) -> None:
        assert [s.id for s in self._registry().list(ContentType.TV)] == ["alpha"]

    def test_list_skips_disabled(self) -> None:
        registry = ProviderRegistry(parse_providers(_doc(enabled=False)))
        assert [s.id for s in registry.list(ContentType.MOVIE)] == ["beta"]
        assert len(registry.all()) == 2

    def test_ties_broken_by_id(self) -> None:
        doc = copy.deepcopy(BASE)
        doc["providers"][0]["priority"] = 10
        registry = ProviderRegistry(parse_providers(doc))
        assert [s.id for s in registry.list(ContentType.MOVIE)] == ["alpha", "beta"]

    def test_lookup(self) -> None:
        registry = self._registry()
        assert registry.lookup("alpha").priority == 20
        with pytest.raises(ProviderNotFoundError):
            registry.lookup("gamma")

    def test_from_specs_checks_strategies(self, make_spec) -> None:
        with pytest.raises(UnknownDecodeStrategyError):
            ProviderRegistry.from_specs(
                [make_spec(decode_strategy_id="nope")], default_decoder_registry()
            )

    def test_duplicate_specs(self, make_spec) -> None:
        with pytest.raises(DuplicateProviderError):
            ProviderRegistry([make_spec("a"), make_spec("a")])
