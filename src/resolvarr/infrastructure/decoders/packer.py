"""Dean Edwards p.a.c.k.e.r. unpacking."""

from __future__ import annotations

import re
from dataclasses import dataclass

from resolvarr.domain.entities import DecodeContext, EncodedPayload
from resolvarr.domain.exceptions import MalformedPayload
from resolvarr.infrastructure.decoders.base import payload_text

# eval(function(p,a,c,k,e,d){...}('payload',base,count,'dict'.split('|')))
_PACKED_ARGS_RE = re.compile(
    r"}\('(.*?)',\s*(\d+),\s*(\d+),\s*'([^']*)'\s*\.split\('\|'\)",
    re.DOTALL,
)
_WORD_RE = re.compile(r"\b\w+\b")


def unpack(packed: str) -> str | None:
    """Unpack a packed script, or return None if it is not packed.

    Base-N tokens in the payload are replaced with words from the
    dictionary; tokens without a dictionary entry are kept.
    """
    match = _PACKED_ARGS_RE.search(packed)
    if not match:
        return None

    body = match.group(1)
    base = int(match.group(2))
    count = int(match.group(3))
    keywords = match.group(4).split("|")
    if not 2 <= base <= 36:
        return None
    if len(keywords) < count:
        keywords.extend([""] * (count - len(keywords)))

    def _replace_word(word_match: re.Match[str]) -> str:
        word = word_match.group(0)
        try:
            index = int(word, base)
        except ValueError:
            return word
        if index < len(keywords) and keywords[index]:
            return keywords[index]
        return word

    return _WORD_RE.sub(_replace_word, body)


@dataclass(frozen=True)
class PackedJavaScript:
    """Returns the unpacked script; ``candidate_pattern`` then picks the URL."""

    strategy_id: str = "packed-js"

    def decode(self, payload: EncodedPayload, context: DecodeContext) -> str:
        unpacked = unpack(payload_text(payload, self.strategy_id))
        if unpacked is None:
            raise MalformedPayload(f"{self.strategy_id}: no packed script found")
        return unpacked.replace("\\'", "'").replace('\\"', '"')
