"""Authenticated counter-mode stream cipher keyed by a client fingerprint.

Key derivation::

    key = SHA-256("<fingerprint digest>:<timestamp>:<credential>")

where the fingerprint digest is ``Fingerprint.digest()`` (SHA-256 hex of
the canonical fingerprint string). The same 32-byte key drives AES-256 in
CTR mode and the HMAC-SHA256 tag.

Wire format (base64, either alphabet)::

    counter_block[16] = nonce[12] || initial_counter[4, big endian]
    tag[32]           = HMAC-SHA256(key, counter_block || ciphertext)
    payload           = counter_block || tag || ciphertext

The keystream starts at ``counter_block``, so the prefix must be split off
before decrypting.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import os
from dataclasses import dataclass

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from resolvarr.domain.entities import DecodeContext, EncodedPayload, Fingerprint
from resolvarr.domain.exceptions import (
    DecodeMismatch,
    KeyDerivationFailed,
    MalformedPayload,
)
from resolvarr.infrastructure.decoders.base import b64decode, decode_utf8, payload_text

NONCE_SIZE = 12
COUNTER_BLOCK_SIZE = 16
TAG_SIZE = 32
PREFIX_SIZE = COUNTER_BLOCK_SIZE + TAG_SIZE


def derive_key(fingerprint: Fingerprint, timestamp: str, credential: str) -> bytes:
    material = f"{fingerprint.digest()}:{timestamp}:{credential}"
    return hashlib.sha256(material.encode("utf-8")).digest()


def counter_block(nonce: bytes, counter: int = 0) -> bytes:
    if len(nonce) != NONCE_SIZE:
        raise ValueError(f"nonce must be {NONCE_SIZE} bytes")
    return nonce + counter.to_bytes(COUNTER_BLOCK_SIZE - NONCE_SIZE, "big")


def seal(plaintext: bytes, key: bytes, nonce: bytes, counter: int = 0) -> bytes:
    """Encrypt and tag ``plaintext``; returns the raw (not base64) payload."""
    block = counter_block(nonce, counter)
    encryptor = Cipher(algorithms.AES(key), modes.CTR(block)).encryptor()
    ciphertext = encryptor.update(plaintext) + encryptor.finalize()
    tag = hmac.new(key, block + ciphertext, hashlib.sha256).digest()
    return block + tag + ciphertext


@dataclass(frozen=True)
class AuthenticatedCounterMode:
    strategy_id: str = "aes-ctr-fingerprint"

    def _key(self, context: DecodeContext) -> bytes:
        fingerprint = context.fingerprint
        timestamp = context.request_timestamp
        credential = context.credential
        if fingerprint is None or not timestamp or not credential:
            missing = [
                name
                for name, value in (
                    ("fingerprint", fingerprint),
                    ("request_timestamp", timestamp),
                    ("credential", credential),
                )
                if not value
            ]
            raise KeyDerivationFailed(
                f"{self.strategy_id}: missing {', '.join(missing)} for provider "
                f"'{context.provider_id}'"
            )
        return derive_key(fingerprint, timestamp, credential)

    def decode(self, payload: EncodedPayload, context: DecodeContext) -> str:
        key = self._key(context)
        raw = b64decode(
            payload_text(payload, self.strategy_id),
            strategy_id=self.strategy_id,
            urlsafe=True,
        )
        if len(raw) <= PREFIX_SIZE:
            raise MalformedPayload(
                f"{self.strategy_id}: payload of {len(raw)} bytes has no ciphertext "
                f"after the {PREFIX_SIZE}-byte prefix"
            )

        block = raw[:COUNTER_BLOCK_SIZE]
        tag = raw[COUNTER_BLOCK_SIZE:PREFIX_SIZE]
        ciphertext = raw[PREFIX_SIZE:]

        expected = hmac.new(key, block + ciphertext, hashlib.sha256).digest()
        if not hmac.compare_digest(tag, expected):
            raise DecodeMismatch(f"{self.strategy_id}: authentication tag mismatch")

        decryptor = Cipher(algorithms.AES(key), modes.CTR(block)).decryptor()
        plaintext = decryptor.update(ciphertext) + decryptor.finalize()
        return decode_utf8(plaintext, strategy_id=self.strategy_id)

    def encode(self, plaintext: str, context: DecodeContext) -> str:
        """Seal ``plaintext``; a hex ``nonce`` aux token makes it deterministic."""
        nonce_hex = context.aux_tokens.get("nonce")
        nonce = bytes.fromhex(nonce_hex) if nonce_hex else os.urandom(NONCE_SIZE)
        sealed = seal(plaintext.encode("utf-8"), self._key(context), nonce)
        return base64.b64encode(sealed).decode("ascii")
