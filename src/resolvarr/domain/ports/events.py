"""Resolution event sink port (dashboards, metrics)."""

from __future__ import annotations

from typing import Protocol

from resolvarr.domain.entities import ResolutionEvent


class ResolutionEventSink(Protocol):
    def emit(self, event: ResolutionEvent) -> None: ...
