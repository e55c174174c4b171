"""Content-metadata lookup port (external id -> human-readable title)."""

from __future__ import annotations

from typing import Protocol


class TitleLookupPort(Protocol):
    def lookup(self, external_id: str) -> str | None: ...
