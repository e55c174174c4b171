"""Reversible substitution strategies.

Custom base64 alphabets, PlayerJS tagged records, URL-safe base64,
letter rotation, the reverse/offset/hex scheme and the identity used for
values a page has already decoded. Each strategy ships an
``encode`` counterpart used to build test vectors.
"""

from __future__ import annotations

import base64
import string
from dataclasses import dataclass, field, replace

from resolvarr.domain.entities import DecodeContext, EncodedPayload
from resolvarr.domain.exceptions import MalformedPayload
from resolvarr.infrastructure.decoders.base import b64decode, decode_utf8, payload_text

STANDARD_ALPHABET = (
    string.ascii_uppercase + string.ascii_lowercase + string.digits + "+/="
)
PLAYERJS_ALPHABET = "ABCDEFGHIJKLMabcdefghijklmNOPQRSTUVWXYZnopqrstuvwxyz0123456789+/="


@dataclass(frozen=True)
class CustomAlphabetBase64:
    """Base64 written in a permuted 65-character alphabet (padding included)."""

    strategy_id: str = "custom-alphabet-base64"
    alphabet: str = PLAYERJS_ALPHABET

    def __post_init__(self) -> None:
        if len(self.alphabet) != 65 or len(set(self.alphabet)) != 65:
            raise ValueError("alphabet must contain 65 distinct characters")

    def decode(self, payload: EncodedPayload, context: DecodeContext) -> str:
        data = payload_text(payload, self.strategy_id)
        invalid = set(data) - set(self.alphabet)
        if invalid:
            raise MalformedPayload(
                f"{self.strategy_id}: characters outside alphabet: "
                f"{''.join(sorted(invalid))[:10]!r}"
            )
        standard = data.translate(str.maketrans(self.alphabet, STANDARD_ALPHABET))
        raw = b64decode(standard, strategy_id=self.strategy_id)
        return decode_utf8(raw, strategy_id=self.strategy_id)

    def encode(self, plaintext: str, context: DecodeContext) -> str:
        standard = base64.b64encode(plaintext.encode("utf-8")).decode("ascii")
        return standard.translate(str.maketrans(STANDARD_ALPHABET, self.alphabet))


@dataclass(frozen=True)
class PlayerJsHash:
    """PlayerJS ``#0``/``#1`` records.

    ``#0`` carries the custom-alphabet body as is; ``#1`` writes ``+`` as
    ``#`` so the record survives URL fragments.
    """

    strategy_id: str = "playerjs-hash"
    body: CustomAlphabetBase64 = field(default_factory=CustomAlphabetBase64)

    def decode(self, payload: EncodedPayload, context: DecodeContext) -> str:
        data = payload_text(payload, self.strategy_id)
        if data.startswith("#0"):
            body = data[2:]
        elif data.startswith("#1"):
            body = data[2:].replace("#", "+")
        else:
            raise MalformedPayload(f"{self.strategy_id}: missing #0/#1 prefix")
        return self.body.decode(replace(payload, data=body), context)

    def encode(self, plaintext: str, context: DecodeContext) -> str:
        body = self.body.encode(plaintext, context)
        if "+" in body:
            return "#1" + body.replace("+", "#")
        return "#0" + body


@dataclass(frozen=True)
class UrlSafeBase64:
    strategy_id: str = "urlsafe-base64"

    def decode(self, payload: EncodedPayload, context: DecodeContext) -> str:
        data = payload_text(payload, self.strategy_id)
        raw = b64decode(data, strategy_id=self.strategy_id, urlsafe=True)
        return decode_utf8(raw, strategy_id=self.strategy_id)

    def encode(self, plaintext: str, context: DecodeContext) -> str:
        encoded = base64.urlsafe_b64encode(plaintext.encode("utf-8"))
        return encoded.decode("ascii").rstrip("=")


@dataclass(frozen=True)
class ReverseBase64Shift:
    """Reversed URL-safe base64 of a char-shifted string.

    Reversing moves the base64 padding to the front, so leading ``=`` are
    dropped before decoding.
    """

    strategy_id: str = "reverse-base64-shift"
    shift: int = 3

    def decode(self, payload: EncodedPayload, context: DecodeContext) -> str:
        data = payload_text(payload, self.strategy_id).lstrip("=")
        raw = b64decode(data[::-1], strategy_id=self.strategy_id, urlsafe=True)
        shifted = raw.decode("latin-1")
        codes = [ord(c) - self.shift for c in shifted]
        if any(code < 0 for code in codes):
            raise MalformedPayload(f"{self.strategy_id}: shift underflow")
        return "".join(chr(code) for code in codes)

    def encode(self, plaintext: str, context: DecodeContext) -> str:
        shifted = "".join(chr(ord(c) + self.shift) for c in plaintext)
        try:
            raw = shifted.encode("latin-1")
        except UnicodeEncodeError as exc:
            raise ValueError("plaintext must be latin-1 after shifting") from exc
        return base64.urlsafe_b64encode(raw).decode("ascii")[::-1]


@dataclass(frozen=True)
class Rotation:
    """Letters-only rotation; digits and punctuation pass through.

    ``decode`` rotates forward by ``shift`` (``eqqmp`` -> ``https`` for 3).
    """

    strategy_id: str = "rot3"
    shift: int = 3

    def _table(self, shift: int) -> dict[int, int]:
        lower = string.ascii_lowercase
        upper = string.ascii_uppercase
        k = shift % 26
        return str.maketrans(
            lower + upper,
            lower[k:] + lower[:k] + upper[k:] + upper[:k],
        )

    def decode(self, payload: EncodedPayload, context: DecodeContext) -> str:
        data = payload_text(payload, self.strategy_id)
        return data.translate(self._table(self.shift))

    def encode(self, plaintext: str, context: DecodeContext) -> str:
        return plaintext.translate(self._table(-self.shift))


@dataclass(frozen=True)
class ReverseHexOffset:
    """Reverse the string, subtract ``offset`` from each char, hex-decode."""

    strategy_id: str = "reverse-hex-offset"
    offset: int = 1

    def decode(self, payload: EncodedPayload, context: DecodeContext) -> str:
        data = payload_text(payload, self.strategy_id)
        hex_text = "".join(chr(max(ord(c) - self.offset, 0)) for c in reversed(data))
        if len(hex_text) % 2 or any(c not in string.hexdigits for c in hex_text):
            raise MalformedPayload(f"{self.strategy_id}: not a shifted hex string")
        return decode_utf8(bytes.fromhex(hex_text), strategy_id=self.strategy_id)

    def encode(self, plaintext: str, context: DecodeContext) -> str:
        hex_text = plaintext.encode("utf-8").hex()
        return "".join(chr(ord(c) + self.offset) for c in hex_text)[::-1]


@dataclass(frozen=True)
class Plain:
    """Identity: the page already decoded the value in its own runtime."""

    strategy_id: str = "plain"

    def decode(self, payload: EncodedPayload, context: DecodeContext) -> str:
        return payload_text(payload, self.strategy_id)

    def encode(self, plaintext: str, context: DecodeContext) -> str:
        return plaintext
