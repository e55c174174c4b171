"""Delimited-radix decoding.

Pages embed ``eval(function(h,u,n,t,e,r){...}("ENC",u,"ALPHA",offset,base,r))``.
``ENC`` is a run of segments, each terminated by ``ALPHA[base]``; the
characters of a segment are digits (their index in ``ALPHA``) of a number
in ``base``. That number minus ``offset`` is a char code, and the joined
chars are UTF-8 bytes.

The alphabet, base and offset are page-supplied and arrive as the aux
tokens ``alphabet``, ``base`` and ``offset``.
"""

from __future__ import annotations

from dataclasses import dataclass

from resolvarr.domain.entities import DecodeContext, EncodedPayload
from resolvarr.domain.exceptions import KeyDerivationFailed, MalformedPayload
from resolvarr.infrastructure.decoders.base import (
    payload_text,
    require_int_token,
    require_token,
)


@dataclass(frozen=True)
class DelimitedRadix:
    strategy_id: str = "delimited-radix"

    def _params(self, context: DecodeContext) -> tuple[str, int, int]:
        alphabet = require_token(context, "alphabet", strategy_id=self.strategy_id)
        base = require_int_token(context, "base", strategy_id=self.strategy_id)
        offset = require_int_token(context, "offset", strategy_id=self.strategy_id)
        if not 2 <= base < len(alphabet):
            raise KeyDerivationFailed(
                f"{self.strategy_id}: base {base} unusable with a "
                f"{len(alphabet)}-char alphabet"
            )
        return alphabet, base, offset

    def decode(self, payload: EncodedPayload, context: DecodeContext) -> str:
        alphabet, base, offset = self._params(context)
        data = payload_text(payload, self.strategy_id)
        delimiter = alphabet[base]
        digits = {ch: i for i, ch in enumerate(alphabet[:base])}

        segments = data.split(delimiter)
        if segments.pop():
            raise MalformedPayload(f"{self.strategy_id}: unterminated segment")

        chars: list[str] = []
        for segment in segments:
            if not segment:
                raise MalformedPayload(f"{self.strategy_id}: empty segment")
            value = 0
            for ch in segment:
                digit = digits.get(ch)
                if digit is None:
                    raise MalformedPayload(
                        f"{self.strategy_id}: {ch!r} is not a base-{base} digit"
                    )
                value = value * base + digit
            code = value - offset
            if not 0 <= code <= 0xFF:
                raise MalformedPayload(
                    f"{self.strategy_id}: char code {code} out of range"
                )
            chars.append(chr(code))

        try:
            return "".join(chars).encode("latin-1").decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedPayload(f"{self.strategy_id}: output is not UTF-8") from exc

    def encode(self, plaintext: str, context: DecodeContext) -> str:
        alphabet, base, offset = self._params(context)
        delimiter = alphabet[base]
        out: list[str] = []
        for byte in plaintext.encode("utf-8"):
            value = byte + offset
            digits = ""
            while True:
                value, rem = divmod(value, base)
                digits = alphabet[rem] + digits
                if value == 0:
                    break
            out.append(digits + delimiter)
        return "".join(out)
