"""Repeating-key XOR over URL-safe base64."""

from __future__ import annotations

import base64
from dataclasses import dataclass

from resolvarr.domain.entities import DecodeContext, EncodedPayload
from resolvarr.domain.exceptions import KeyDerivationFailed
from resolvarr.infrastructure.decoders.base import (
    b64decode,
    decode_utf8,
    payload_text,
    require_token,
)


def xor_bytes(data: bytes, key: bytes) -> bytes:
    return bytes(b ^ key[i % len(key)] for i, b in enumerate(data))


@dataclass(frozen=True)
class RepeatingKeyXor:
    """XOR keyed by a short value the provider ships next to the payload.

    ``key_token`` names the aux token holding the key (for example the
    hidden element's id). With ``key_token=None`` the request timestamp
    string is the key.
    """

    strategy_id: str = "xor-with-session-id"
    key_token: str | None = "session_id"

    def _key(self, context: DecodeContext) -> bytes:
        if self.key_token is None:
            if not context.request_timestamp:
                raise KeyDerivationFailed(
                    f"{self.strategy_id}: request timestamp missing for provider "
                    f"'{context.provider_id}'"
                )
            return context.request_timestamp.encode("utf-8")
        token = require_token(context, self.key_token, strategy_id=self.strategy_id)
        return token.encode("utf-8")

    def decode(self, payload: EncodedPayload, context: DecodeContext) -> str:
        key = self._key(context)
        data = payload_text(payload, self.strategy_id)
        raw = b64decode(data, strategy_id=self.strategy_id, urlsafe=True)
        return decode_utf8(xor_bytes(raw, key), strategy_id=self.strategy_id)

    def encode(self, plaintext: str, context: DecodeContext) -> str:
        raw = xor_bytes(plaintext.encode("utf-8"), self._key(context))
        return base64.urlsafe_b64encode(raw).decode("ascii")
