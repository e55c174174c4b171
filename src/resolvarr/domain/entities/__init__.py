from .content import ContentRequest, ContentType
from .decoding import DecodeContext, EncodedPayload, Fingerprint
from .provider import (
    ExtractionRule,
    ExtractionStep,
    ProviderSpec,
    RuleType,
    StepKind,
    StepOutput,
)
from .resolution import (
    FailureReason,
    ResolutionError,
    ResolutionEvent,
    ResolutionResult,
    ValidationOutcome,
)

__all__ = [
    "ContentRequest",
    "ContentType",
    "DecodeContext",
    "EncodedPayload",
    "ExtractionRule",
    "ExtractionStep",
    "FailureReason",
    "Fingerprint",
    "ProviderSpec",
    "ResolutionError",
    "ResolutionEvent",
    "ResolutionResult",
    "RuleType",
    "StepKind",
    "StepOutput",
    "ValidationOutcome",
]
