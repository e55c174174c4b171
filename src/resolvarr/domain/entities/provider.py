"""Provider registry value objects.

A provider is described declaratively: where its embed page lives, which
hops lead from there to the encoded payload, and which decode strategy
turns that payload into a stream URL.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping

from resolvarr.domain.entities.content import ContentType
from resolvarr.domain.entities.decoding import Fingerprint


class StepKind(str, Enum):
    FETCH = "fetch"
    BROWSER_NAVIGATE = "browser_navigate"


class RuleType(str, Enum):
    REGEX = "regex"
    CSS = "css"
    WAIT_FOR_VALUE = "wait_for_value"


class StepOutput(str, Enum):
    """What a chain step yields: the next hop, or the terminal payload."""

    URL = "url"
    PAYLOAD = "payload"


@dataclass(frozen=True)
class ExtractionRule:
    """How to pull the next hop URL or the final payload out of a page.

    Only the fields relevant to ``type`` are set:

    - ``regex``: ``pattern`` with a named group ``url`` or ``payload``.
      Every other named group is copied into the payload's aux metadata.
    - ``css``: ``selector`` plus ``attribute`` (``None`` means element text).
      ``aux_attributes`` maps aux names to attributes of the same element.
    - ``wait_for_value``: ``selector`` or ``expression``, polled in the
      rendered page until a value appears.
    """

    type: RuleType
    pattern: str | None = None
    ignore_case: bool = False
    dot_all: bool = False
    selector: str | None = None
    attribute: str | None = None
    aux_attributes: Mapping[str, str] = field(default_factory=dict)
    expression: str | None = None


@dataclass(frozen=True)
class ExtractionStep:
    """One hop in a provider chain."""

    kind: StepKind
    rule: ExtractionRule
    url: str | None = None  # template; defaults to the previous hop
    wait_until: str = "domcontentloaded"
    timeout_seconds: float | None = None
    capture_fingerprint: bool = False


@dataclass(frozen=True)
class ProviderSpec:
    """Declarative description of one provider."""

    id: str
    priority: int
    embed_url_templates: Mapping[ContentType, str]
    chain_steps: tuple[ExtractionStep, ...]
    decode_strategy_id: str
    requires_browser: bool = False
    headers: Mapping[str, str] = field(default_factory=dict)
    version: str = "1"
    enabled: bool = True
    timeout_seconds: float = 30.0
    candidate_pattern: str | None = None
    excluded_host_prefixes: tuple[str, ...] = ()
    url_substitutions: Mapping[str, str] = field(default_factory=dict)
    stream_headers: Mapping[str, str] = field(default_factory=dict)
    credential_env: str | None = None
    fingerprint: Fingerprint | None = None

    def __post_init__(self) -> None:
        if not self.chain_steps:
            raise ValueError(f"provider '{self.id}' declares no chain steps")

    def supports(self, content_type: ContentType) -> bool:
        return content_type in self.embed_url_templates

    @property
    def has_browser_steps(self) -> bool:
        return any(s.kind is StepKind.BROWSER_NAVIGATE for s in self.chain_steps)
