"""Decode strategy registry.

Providers name their strategy by id; the id is resolved once, at provider
load time, and never guessed at request time.
"""

from __future__ import annotations

from typing import Iterable

import structlog

from resolvarr.domain.exceptions import UnknownDecodeStrategyError
from resolvarr.domain.ports import DecodeStrategy
from resolvarr.infrastructure.decoders.envelope import Envelope
from resolvarr.infrastructure.decoders.packer import PackedJavaScript
from resolvarr.infrastructure.decoders.radix import DelimitedRadix
from resolvarr.infrastructure.decoders.stream_cipher import AuthenticatedCounterMode
from resolvarr.infrastructure.decoders.substitution import (
    CustomAlphabetBase64,
    PlayerJsHash,
    Plain,
    ReverseBase64Shift,
    ReverseHexOffset,
    Rotation,
    UrlSafeBase64,
)
from resolvarr.infrastructure.decoders.xor import RepeatingKeyXor

log = structlog.get_logger(__name__)


class DecoderRegistry:
    """Maps strategy ids to strategy instances."""

    def __init__(self, strategies: Iterable[DecodeStrategy] = ()) -> None:
        self._strategies: dict[str, DecodeStrategy] = {}
        for strategy in strategies:
            self.register(strategy)

    def register(self, strategy: DecodeStrategy) -> None:
        sid = strategy.strategy_id
        if sid in self._strategies:
            raise ValueError(f"decode strategy '{sid}' registered twice")
        self._strategies[sid] = strategy
        log.debug("decode_strategy_registered", strategy=sid)

    def get(self, strategy_id: str) -> DecodeStrategy:
        try:
            return self._strategies[strategy_id]
        except KeyError:
            raise UnknownDecodeStrategyError(
                f"unknown decode strategy '{strategy_id}' "
                f"(known: {', '.join(sorted(self._strategies))})"
            ) from None

    def __contains__(self, strategy_id: object) -> bool:
        return strategy_id in self._strategies

    def ids(self) -> list[str]:
        return sorted(self._strategies)


def default_decoder_registry() -> DecoderRegistry:
    """Registry with every built-in strategy."""
    return DecoderRegistry(
        [
            CustomAlphabetBase64(),
            PlayerJsHash(),
            UrlSafeBase64(),
            ReverseBase64Shift(),
            Rotation(),
            ReverseHexOffset(),
            RepeatingKeyXor(),
            RepeatingKeyXor(strategy_id="xor-with-timestamp", key_token=None),
            Envelope(
                strategy_id="envelope-xor",
                outer=UrlSafeBase64(strategy_id="envelope-xor.outer"),
                inner=RepeatingKeyXor(
                    strategy_id="envelope-xor.inner", key_token="envelope_id"
                ),
            ),
            DelimitedRadix(),
            PackedJavaScript(),
            AuthenticatedCounterMode(),
            Plain(),
        ]
    )
