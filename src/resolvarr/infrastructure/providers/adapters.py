"""Adapters to convert Pydantic validation models to domain models."""

from __future__ import annotations

from resolvarr.domain import entities as domain
from resolvarr.infrastructure.providers import validation_schema as infra


def to_domain_rule(pydantic: infra.ExtractionRuleModel) -> domain.ExtractionRule:
    return domain.ExtractionRule(
        type=domain.RuleType(pydantic.type),
        pattern=pydantic.pattern,
        ignore_case=pydantic.ignore_case,
        dot_all=pydantic.dot_all,
        selector=pydantic.selector,
        attribute=pydantic.attribute,
        aux_attributes=dict(pydantic.aux_attributes),
        expression=pydantic.expression,
    )


def to_domain_step(pydantic: infra.ExtractionStepModel) -> domain.ExtractionStep:
    return domain.ExtractionStep(
        kind=domain.StepKind(pydantic.kind),
        rule=to_domain_rule(pydantic.rule),
        url=pydantic.url,
        wait_until=pydantic.wait_until,
        timeout_seconds=pydantic.timeout_seconds,
        capture_fingerprint=pydantic.capture_fingerprint,
    )


def to_domain_fingerprint(pydantic: infra.FingerprintModel) -> domain.Fingerprint:
    return domain.Fingerprint(
        screen_width=pydantic.screen_width,
        screen_height=pydantic.screen_height,
        color_depth=pydantic.color_depth,
        user_agent=pydantic.user_agent,
        platform=pydantic.platform,
        language=pydantic.language,
        timezone_offset=pydantic.timezone_offset,
        canvas=pydantic.canvas,
    )


def to_domain_provider(pydantic: infra.ProviderModel) -> domain.ProviderSpec:
    """Convert a validated provider entry to the domain ProviderSpec."""
    return domain.ProviderSpec(
        id=pydantic.id,
        priority=pydantic.priority,
        embed_url_templates={
            domain.ContentType(kind): template
            for kind, template in pydantic.embed_url_template.items()
        },
        chain_steps=tuple(to_domain_step(s) for s in pydantic.chain),
        decode_strategy_id=pydantic.decode_strategy,
        requires_browser=pydantic.requires_browser,
        headers=dict(pydantic.headers),
        version=pydantic.version,
        enabled=pydantic.enabled,
        timeout_seconds=pydantic.timeout_seconds,
        candidate_pattern=pydantic.candidate_pattern,
        excluded_host_prefixes=tuple(pydantic.excluded_host_prefixes),
        url_substitutions=dict(pydantic.url_substitutions),
        stream_headers=dict(pydantic.stream_headers),
        credential_env=pydantic.credential_env,
        fingerprint=to_domain_fingerprint(pydantic.fingerprint)
        if pydantic.fingerprint
        else None,
    )
