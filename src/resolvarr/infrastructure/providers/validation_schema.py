"""Pydantic validation models for the provider registry YAML."""

from __future__ import annotations

import re
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from resolvarr.infrastructure.navigation.templates import (
    TEMPLATE_FIELDS,
    template_fields,
)

PROVIDER_ID_RE = r"^[a-z0-9][a-z0-9-]*$"
WAIT_UNTIL = Literal["commit", "domcontentloaded", "load", "networkidle"]


class _Strict(BaseModel):
    model_config = ConfigDict(extra="forbid")


class ExtractionRuleModel(_Strict):
    type: Literal["regex", "css", "wait_for_value"]
    pattern: Optional[str] = None
    ignore_case: bool = False
    dot_all: bool = False
    selector: Optional[str] = None
    attribute: Optional[str] = None
    aux_attributes: Dict[str, str] = Field(default_factory=dict)
    expression: Optional[str] = None

    @model_validator(mode="after")
    def _validate_rule(self) -> "ExtractionRuleModel":
        if self.type == "regex":
            if not self.pattern:
                raise ValueError("regex rule requires 'pattern'")
            try:
                re.compile(self.pattern)
            except re.error as e:
                raise ValueError(f"invalid regex pattern: {e}") from e
        elif self.type == "css":
            if not self.selector:
                raise ValueError("css rule requires 'selector'")
        elif bool(self.selector) == bool(self.expression):
            raise ValueError(
                "wait_for_value rule requires exactly one of 'selector' or 'expression'"
            )
        return self

    def group_names(self) -> set[str]:
        if self.type != "regex" or not self.pattern:
            return set()
        return set(re.compile(self.pattern).groupindex)


class ExtractionStepModel(_Strict):
    kind: Literal["fetch", "browser_navigate"]
    rule: ExtractionRuleModel
    url: Optional[str] = None
    wait_until: WAIT_UNTIL = "domcontentloaded"
    timeout_seconds: Optional[float] = None
    capture_fingerprint: bool = False

    @field_validator("timeout_seconds")
    @classmethod
    def _validate_timeout(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError("timeout_seconds must be > 0")
        return v

    @model_validator(mode="after")
    def _validate_step(self) -> "ExtractionStepModel":
        if self.kind == "fetch":
            if self.rule.type == "wait_for_value":
                raise ValueError("wait_for_value rules need a browser_navigate step")
            if self.capture_fingerprint:
                raise ValueError("capture_fingerprint needs a browser_navigate step")
        return self


class FingerprintModel(_Strict):
    screen_width: int
    screen_height: int
    color_depth: int = 24
    user_agent: str
    platform: str
    language: str = "en-US"
    timezone_offset: int = 0
    canvas: str = ""


class ProviderModel(_Strict):
    id: str = Field(pattern=PROVIDER_ID_RE)
    version: str = "1"
    enabled: bool = True
    priority: int = Field(ge=0)
    embed_url_template: Dict[Literal["movie", "tv"], str]
    chain: List[ExtractionStepModel]
    decode_strategy: str
    requires_browser: bool = False
    headers: Dict[str, str] = Field(default_factory=dict)
    timeout_seconds: float = Field(default=30.0, gt=0)
    candidate_pattern: Optional[str] = None
    excluded_host_prefixes: List[str] = Field(default_factory=list)
    url_substitutions: Dict[str, str] = Field(default_factory=dict)
    stream_headers: Dict[str, str] = Field(default_factory=dict)
    credential_env: Optional[str] = None
    fingerprint: Optional[FingerprintModel] = None

    @field_validator("embed_url_template")
    @classmethod
    def _validate_templates(cls, v: Dict[str, str]) -> Dict[str, str]:
        if not v:
            raise ValueError("embed_url_template needs at least one content type")
        for content_type, template in v.items():
            if not template.startswith(("http://", "https://")):
                raise ValueError(f"{content_type} embed URL must be absolute http(s)")
            unknown = template_fields(template) - TEMPLATE_FIELDS
            if unknown:
                raise ValueError(
                    f"{content_type} embed URL uses unknown placeholders: "
                    f"{', '.join(sorted(unknown))}"
                )
        return v

    @field_validator("candidate_pattern")
    @classmethod
    def _validate_candidate_pattern(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            try:
                re.compile(v)
            except re.error as e:
                raise ValueError(f"invalid candidate_pattern: {e}") from e
        return v

    @model_validator(mode="after")
    def _validate_chain(self) -> "ProviderModel":
        if not self.chain:
            raise ValueError("chain must contain at least one step")

        last = len(self.chain) - 1
        for index, step in enumerate(self.chain):
            expected = "payload" if index == last else "url"
            if step.rule.type == "regex" and expected not in step.rule.group_names():
                raise ValueError(
                    f"chain step {index}: regex needs a named group '{expected}'"
                )
            if step.kind == "browser_navigate" and not self.requires_browser:
                raise ValueError(
                    f"chain step {index} is browser_navigate but requires_browser "
                    "is false"
                )
            if step.url is not None:
                unknown = template_fields(step.url) - TEMPLATE_FIELDS
                if unknown:
                    raise ValueError(
                        f"chain step {index} url uses unknown placeholders: "
                        f"{', '.join(sorted(unknown))}"
                    )
        return self


class ProviderRegistryFile(_Strict):
    version: int = 1
    providers: List[ProviderModel]
