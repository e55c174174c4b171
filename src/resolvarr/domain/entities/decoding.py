"""Decode inputs: the encoded payload and everything needed to decode it."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Mapping


@dataclass(frozen=True)
class Fingerprint:
    """Client-observable attributes some providers use as key material."""

    screen_width: int
    screen_height: int
    color_depth: int
    user_agent: str
    platform: str
    language: str
    timezone_offset: int  # minutes, as reported by Date.getTimezoneOffset()
    canvas: str = ""  # slice of the rendered canvas data URL

    def canonical(self) -> str:
        """Colon-joined form the providers hash.

        The user agent is truncated to 50 characters.
        """
        return ":".join(
            [
                f"{self.screen_width}x{self.screen_height}",
                str(self.color_depth),
                self.user_agent[:50],
                self.platform,
                self.language,
                str(self.timezone_offset),
                self.canvas,
            ]
        )

    def digest(self) -> str:
        return hashlib.sha256(self.canonical().encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class EncodedPayload:
    """Terminal output of a provider chain, consumed once by a decoder."""

    data: str
    origin_step_index: int
    source_url: str = ""
    aux: Mapping[str, str] = field(default_factory=dict)
    fingerprint: Fingerprint | None = None


@dataclass(frozen=True)
class DecodeContext:
    """All data a decode function may use, passed explicitly."""

    provider_id: str
    fingerprint: Fingerprint | None = None
    request_timestamp: str | None = None
    aux_tokens: Mapping[str, str] = field(default_factory=dict)
    credential: str | None = None

    def with_tokens(self, **tokens: str) -> DecodeContext:
        """Copy of this context with extra aux tokens."""
        merged = {**self.aux_tokens, **tokens}
        return DecodeContext(
            provider_id=self.provider_id,
            fingerprint=self.fingerprint,
            request_timestamp=self.request_timestamp,
            aux_tokens=merged,
            credential=self.credential,
        )
