"""Tests for MetricsCollector fed by resolution events."""

from __future__ import annotations

from resolvarr.domain.entities import (
    ContentRequest,
    FailureReason,
    ResolutionError,
    ResolutionEvent,
    ResolutionResult,
)
from resolvarr.infrastructure.metrics import MetricsCollector, ProviderStats

REQUEST = ContentRequest.movie("tt0111161")


def _success(
    provider_id: str, *, from_cache: bool = False, attempts=()
) -> ResolutionEvent:
    return ResolutionEvent(
        request=REQUEST,
        result=ResolutionResult(
            stream_url="https://cdn.example/a.m3u8", provider_id=provider_id
        ),
        duration_ms=100.0,
        from_cache=from_cache,
        attempts=tuple(attempts),
    )


class TestProviderStats:
    def test_empty_snapshot(self) -> None:
        snap = ProviderStats().snapshot()
        assert snap["attempts"] == 0
        assert snap["success_rate"] == 0.0
        assert snap["failure_kinds"] == {}


class TestMetricsCollector:
    def test_success_after_fallback(self) -> None:
        metrics = MetricsCollector()
        metrics.emit(
            _success("beta", attempts=[FailureReason("alpha", "NotFound", "gone")])
        )

        alpha = metrics.provider("alpha")
        beta = metrics.provider("beta")
        assert alpha is not None and beta is not None
        assert (alpha.attempts, alpha.failures) == (1, 1)
        assert alpha.failure_kinds["NotFound"] == 1
        assert (beta.attempts, beta.successes) == (1, 1)

    def test_cache_hits_are_not_attempts(self) -> None:
        metrics = MetricsCollector()
        metrics.emit(_success("alpha", from_cache=True))
        stats = metrics.provider("alpha")
        assert stats is not None
        assert stats.cache_hits == 1
        assert stats.attempts == 0

    def test_total_failure(self) -> None:
        reasons = (
            FailureReason("alpha", "Timeout", "slow"),
            FailureReason("beta", "DecodeError", "garbled"),
        )
        metrics = MetricsCollector()
        metrics.emit(
            ResolutionEvent(
                request=REQUEST,
                error=ResolutionError(reasons),
                duration_ms=300.0,
                attempts=reasons,
            )
        )
        snap = metrics.snapshot()
        assert snap["resolutions"] == {
            "total": 1,
            "succeeded": 0,
            "failed": 1,
            "avg_duration_ms": 300.0,
        }
        assert snap["providers"]["beta"]["failure_kinds"] == {"DecodeError": 1}

    def test_success_rate(self) -> None:
        metrics = MetricsCollector()
        metrics.emit(_success("alpha"))
        metrics.emit(_success("beta", attempts=[FailureReason("alpha", "Timeout", "")]))
        snap = metrics.snapshot()
        assert snap["providers"]["alpha"]["success_rate"] == 0.5
        assert snap["resolutions"]["avg_duration_ms"] == 100.0
        assert metrics.provider("gamma") is None
