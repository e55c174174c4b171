"""Resolution outcomes and events."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Mapping

from resolvarr.domain.entities.content import ContentRequest


@dataclass(frozen=True)
class ResolutionResult:
    """A resolved, validated stream URL."""

    stream_url: str
    provider_id: str
    resolved_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    headers: Mapping[str, str] = field(default_factory=dict)

    def is_fresh(self, ttl_seconds: float, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now - self.resolved_at < timedelta(seconds=ttl_seconds)


@dataclass(frozen=True)
class FailureReason:
    """Why one provider attempt failed."""

    provider_id: str
    kind: str  # "NetworkError", "Timeout", "NotFound", ...
    message: str


@dataclass(frozen=True)
class ResolutionError:
    """Aggregate failure: every provider's reason, in attempt order."""

    reasons: tuple[FailureReason, ...] = ()

    def kinds(self) -> dict[str, str]:
        return {r.provider_id: r.kind for r in self.reasons}


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of validating a candidate stream URL.

    Exactly one of ``url`` (valid) or ``reason`` (rejected) is set.
    """

    url: str | None = None
    reason: str | None = None

    @property
    def is_valid(self) -> bool:
        return self.url is not None

    @classmethod
    def valid(cls, url: str) -> ValidationOutcome:
        return cls(url=url)

    @classmethod
    def rejected(cls, reason: str) -> ValidationOutcome:
        return cls(reason=reason)


@dataclass(frozen=True)
class ResolutionEvent:
    """Emitted once per resolution for dashboards and metrics."""

    request: ContentRequest
    result: ResolutionResult | None = None
    error: ResolutionError | None = None
    duration_ms: float = 0.0
    from_cache: bool = False
    attempts: tuple[FailureReason, ...] = ()

    @property
    def succeeded(self) -> bool:
        return self.result is not None
