"""Resolution error taxonomy.

Every provider attempt fails with exactly one ``ResolutionFailure``
subclass. ``kind`` is the stable name reported to callers and metrics;
``retryable`` tells the resolver whether an in-place retry is allowed.
"""

from __future__ import annotations

from resolvarr.domain.entities.resolution import ResolutionError


class ResolutionFailure(Exception):
    """Base class for per-provider attempt failures."""

    kind = "InternalError"
    retryable = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NetworkError(ResolutionFailure):
    """Transport failure or unexpected HTTP status."""

    kind = "NetworkError"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        retryable: bool = True,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable


class StepTimeout(ResolutionFailure):
    """A network call or browser wait exceeded its timeout."""

    kind = "Timeout"
    retryable = True


class ExtractionNotFound(ResolutionFailure):
    """An extraction rule did not match; the page layout probably changed."""

    kind = "NotFound"


class MalformedPayload(ResolutionFailure):
    """Decoder input has the wrong shape (length, character set)."""

    kind = "MalformedPayload"


class KeyDerivationFailed(ResolutionFailure):
    """A context field the decoder needs is missing."""

    kind = "KeyDerivationFailed"


class DecodeMismatch(ResolutionFailure):
    """Decoding worked structurally but the result is not a usable stream."""

    kind = "DecodeMismatch"


class AllProvidersFailedError(Exception):
    """Every candidate provider failed; carries all per-provider reasons."""

    kind = "AllProvidersFailed"

    def __init__(self, error: ResolutionError) -> None:
        summary = ", ".join(f"{r.provider_id}={r.kind}" for r in error.reasons)
        super().__init__(f"all providers failed: {summary or 'no providers'}")
        self.error = error


# ---------------------------------------------------------------------------
# Configuration errors (raised at startup, never during a request)
# ---------------------------------------------------------------------------


class ProviderError(Exception):
    """Base class for provider registry errors."""


class ProviderConfigError(ProviderError):
    """Raised when the provider registry file is invalid."""


class UnknownDecodeStrategyError(ProviderError):
    """Raised when a strategy id is not known to the decoder registry."""


class DuplicateProviderError(ProviderError):
    """Raised when two providers share an id."""


class ProviderNotFoundError(ProviderError):
    """Raised when a provider id is not known to the registry."""
