"""Envelope strategies: an outer layer wrapping an ``identifier:blob`` record."""

from __future__ import annotations

from dataclasses import dataclass, replace

from resolvarr.domain.entities import DecodeContext, EncodedPayload
from resolvarr.domain.exceptions import MalformedPayload
from resolvarr.domain.ports import DecodeStrategy, ReversibleStrategy
from resolvarr.infrastructure.decoders.base import require_token


@dataclass(frozen=True)
class Envelope:
    """Decode ``outer``, split the record, decode the blob with ``inner``.

    The identifier is handed to ``inner`` as the aux token ``id_token``,
    so an inner XOR can be keyed by it.
    """

    strategy_id: str
    outer: ReversibleStrategy
    inner: DecodeStrategy
    separator: str = ":"
    id_token: str = "envelope_id"

    def decode(self, payload: EncodedPayload, context: DecodeContext) -> str:
        record = self.outer.decode(payload, context)
        identifier, sep, blob = record.partition(self.separator)
        if not sep or not identifier or not blob:
            raise MalformedPayload(
                f"{self.strategy_id}: expected 'identifier{self.separator}blob' record"
            )
        inner_context = context.with_tokens(**{self.id_token: identifier})
        return self.inner.decode(replace(payload, data=blob), inner_context)

    def encode(self, plaintext: str, context: DecodeContext) -> str:
        if not isinstance(self.inner, ReversibleStrategy):
            raise TypeError(f"{self.strategy_id}: inner strategy has no encoder")
        identifier = require_token(context, self.id_token, strategy_id=self.strategy_id)
        blob = self.inner.encode(plaintext, context)
        return self.outer.encode(f"{identifier}{self.separator}{blob}", context)
