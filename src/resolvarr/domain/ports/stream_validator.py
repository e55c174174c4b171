"""Stream URL validator port."""

from __future__ import annotations

from typing import Mapping, Protocol

from resolvarr.domain.entities import ValidationOutcome


class StreamValidatorPort(Protocol):
    async def validate(
        self,
        candidate: str,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> ValidationOutcome: ...
