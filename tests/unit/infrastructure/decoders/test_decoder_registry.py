"""Tests for DecoderRegistry."""

from __future__ import annotations

import pytest

from resolvarr.domain.exceptions import UnknownDecodeStrategyError
from resolvarr.domain.ports import DecodeStrategy
from resolvarr.infrastructure.decoders import DecoderRegistry, default_decoder_registry
from resolvarr.infrastructure.decoders.substitution import Rotation

EXPECTED_IDS = {
    "custom-alphabet-base64",
    "playerjs-hash",
    "urlsafe-base64",
    "reverse-base64-shift",
    "rot3",
    "reverse-hex-offset",
    "xor-with-session-id",
    "xor-with-timestamp",
    "envelope-xor",
    "delimited-radix",
    "packed-js",
    "aes-ctr-fingerprint",
    "plain",
}


class TestDecoderRegistry:
    def test_default_registry_ids(self) -> None:
        assert set(default_decoder_registry().ids()) == EXPECTED_IDS

    def test_every_strategy_satisfies_port(self) -> None:
        registry = default_decoder_registry()
        for sid in registry.ids():
            strategy = registry.get(sid)
            assert isinstance(strategy, DecodeStrategy)
            assert strategy.strategy_id == sid

    def test_unknown_id(self) -> None:
        with pytest.raises(UnknownDecodeStrategyError, match="no-such"):
            default_decoder_registry().get("no-such")

    def test_duplicate_registration(self) -> None:
        registry = DecoderRegistry([Rotation()])
        with pytest.raises(ValueError, match="twice"):
            registry.register(Rotation())

    def test_contains(self) -> None:
        registry = DecoderRegistry([Rotation(strategy_id="rot5", shift=5)])
        assert "rot5" in registry
        assert "rot3" not in registry
