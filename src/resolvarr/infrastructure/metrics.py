"""In-memory resolution metrics.

Counters are plain integers mutated on the event loop thread; no locks,
no I/O. ``MetricsCollector`` doubles as the resolution event sink, so the
dashboard data (success rates, per-provider health) is fed directly from
resolver events.
"""

from __future__ import annotations

import time
from collections import Counter
from dataclasses import dataclass, field

from resolvarr.domain.entities import ResolutionEvent


@dataclass
class ProviderStats:
    """Accumulated outcomes for one provider."""

    attempts: int = 0
    successes: int = 0
    failures: int = 0
    cache_hits: int = 0
    failure_kinds: Counter[str] = field(default_factory=Counter)

    def snapshot(self) -> dict[str, object]:
        rate = round(self.successes / self.attempts, 4) if self.attempts else 0.0
        return {
            "attempts": self.attempts,
            "successes": self.successes,
            "failures": self.failures,
            "cache_hits": self.cache_hits,
            "success_rate": rate,
            "failure_kinds": dict(sorted(self.failure_kinds.items())),
        }


@dataclass
class MetricsCollector:
    """Aggregates ``ResolutionEvent``s into per-provider statistics."""

    _providers: dict[str, ProviderStats] = field(default_factory=dict)
    _resolutions: int = 0
    _succeeded: int = 0
    _failed: int = 0
    _total_duration_ms: float = 0.0
    _start_ns: int = field(default_factory=time.perf_counter_ns)

    def _stats(self, provider_id: str) -> ProviderStats:
        stats = self._providers.get(provider_id)
        if stats is None:
            stats = ProviderStats()
            self._providers[provider_id] = stats
        return stats

    def emit(self, event: ResolutionEvent) -> None:
        """Record one finished resolution."""
        self._resolutions += 1
        self._total_duration_ms += event.duration_ms

        for reason in event.attempts:
            stats = self._stats(reason.provider_id)
            stats.attempts += 1
            stats.failures += 1
            stats.failure_kinds[reason.kind] += 1

        if event.result is not None:
            self._succeeded += 1
            stats = self._stats(event.result.provider_id)
            if event.from_cache:
                stats.cache_hits += 1
            else:
                stats.attempts += 1
                stats.successes += 1
        else:
            self._failed += 1

    def provider(self, provider_id: str) -> ProviderStats | None:
        return self._providers.get(provider_id)

    def snapshot(self) -> dict[str, object]:
        """Return a JSON-serializable snapshot of all metrics."""
        uptime_s = round((time.perf_counter_ns() - self._start_ns) / 1_000_000_000, 1)
        avg_ms = 0.0
        if self._resolutions:
            avg_ms = round(self._total_duration_ms / self._resolutions, 1)
        return {
            "uptime_seconds": uptime_s,
            "resolutions": {
                "total": self._resolutions,
                "succeeded": self._succeeded,
                "failed": self._failed,
                "avg_duration_ms": avg_ms,
            },
            "providers": {
                name: stats.snapshot()
                for name, stats in sorted(self._providers.items())
            },
        }
