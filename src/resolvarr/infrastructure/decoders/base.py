"""Shared helpers for decode strategies.

Every helper converts low-level codec errors into the resolution error
taxonomy so strategies never leak ``binascii.Error`` or
``UnicodeDecodeError`` to the resolver.
"""

from __future__ import annotations

import base64
import binascii

from resolvarr.domain.entities import DecodeContext, EncodedPayload
from resolvarr.domain.exceptions import KeyDerivationFailed, MalformedPayload


def payload_text(payload: EncodedPayload, strategy_id: str) -> str:
    """Return the stripped payload data, rejecting empty input."""
    data = payload.data.strip()
    if not data:
        raise MalformedPayload(f"{strategy_id}: empty payload")
    return data


def b64decode(data: str, *, strategy_id: str, urlsafe: bool = False) -> bytes:
    """Strict base64 decode that tolerates missing padding.

    With ``urlsafe`` both alphabets are accepted.
    """
    cleaned = data.strip()
    if urlsafe:
        cleaned = cleaned.replace("-", "+").replace("_", "/")
    cleaned += "=" * (-len(cleaned) % 4)
    try:
        return base64.b64decode(cleaned, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MalformedPayload(f"{strategy_id}: invalid base64 ({exc})") from exc


def decode_utf8(raw: bytes, *, strategy_id: str) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedPayload(f"{strategy_id}: output is not UTF-8") from exc


def require_token(context: DecodeContext, name: str, *, strategy_id: str) -> str:
    """Return an aux token or fail with KeyDerivationFailed."""
    value = context.aux_tokens.get(name)
    if not value:
        raise KeyDerivationFailed(
            f"{strategy_id}: context token '{name}' missing for provider "
            f"'{context.provider_id}'"
        )
    return value


def require_int_token(context: DecodeContext, name: str, *, strategy_id: str) -> int:
    raw = require_token(context, name, strategy_id=strategy_id)
    try:
        return int(raw)
    except ValueError as exc:
        raise KeyDerivationFailed(
            f"{strategy_id}: context token '{name}' is not an integer: {raw!r}"
        ) from exc
