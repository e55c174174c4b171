"""Decode strategy port."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from resolvarr.domain.entities import DecodeContext, EncodedPayload


@runtime_checkable
class DecodeStrategy(Protocol):
    """Pure transform from an encoded payload to plaintext.

    Implementations must not hold mutable state or perform I/O: calling
    ``decode`` twice with equal arguments returns equal output.
    """

    @property
    def strategy_id(self) -> str: ...

    def decode(self, payload: EncodedPayload, context: DecodeContext) -> str: ...


@runtime_checkable
class ReversibleStrategy(DecodeStrategy, Protocol):
    """Strategy that also ships a test encoder."""

    def encode(self, plaintext: str, context: DecodeContext) -> str: ...


class DecoderRegistryPort(Protocol):
    def get(self, strategy_id: str) -> DecodeStrategy: ...

    def __contains__(self, strategy_id: object) -> bool: ...
