"""Apply extraction rules to fetched or rendered pages.

Regex rules run on the raw text; CSS rules parse it with BeautifulSoup
(lxml). Both yield the hop URL or payload plus any aux metadata captured
on the way.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any

from bs4 import BeautifulSoup

from resolvarr.domain.entities import ExtractionRule, RuleType, StepOutput
from resolvarr.domain.exceptions import ExtractionNotFound


@dataclass(frozen=True)
class Extracted:
    value: str
    aux: dict[str, str] = field(default_factory=dict)


@lru_cache(maxsize=256)
def compile_pattern(pattern: str, ignore_case: bool, dot_all: bool) -> re.Pattern[str]:
    flags = 0
    if ignore_case:
        flags |= re.IGNORECASE
    if dot_all:
        flags |= re.DOTALL
    return re.compile(pattern, flags)


def parse_html(text: str) -> BeautifulSoup:
    return BeautifulSoup(text, "lxml")


def _finish(value: str, output: StepOutput) -> str:
    value = value.strip()
    if output is StepOutput.URL:
        value = html.unescape(value)
    return value


def _apply_regex(rule: ExtractionRule, output: StepOutput, text: str) -> Extracted:
    assert rule.pattern is not None
    pattern = compile_pattern(rule.pattern, rule.ignore_case, rule.dot_all)
    match = pattern.search(text)
    if match is None:
        raise ExtractionNotFound(f"pattern {rule.pattern[:60]!r} did not match")

    groups = match.groupdict()
    value = groups.get(output.value) or ""
    if not value.strip():
        raise ExtractionNotFound(f"group '{output.value}' matched empty text")

    aux = {
        name: captured
        for name, captured in groups.items()
        if name not in ("url", "payload") and captured is not None
    }
    return Extracted(_finish(value, output), aux)


def _attr(element: Any, name: str) -> str | None:
    raw = element.get(name)
    if raw is None:
        return None
    if isinstance(raw, list):
        return " ".join(raw)
    return str(raw)


def _apply_css(rule: ExtractionRule, output: StepOutput, text: str) -> Extracted:
    assert rule.selector is not None
    element = parse_html(text).select_one(rule.selector)
    if element is None:
        raise ExtractionNotFound(f"selector {rule.selector!r} matched nothing")

    if rule.attribute:
        value = _attr(element, rule.attribute) or ""
    else:
        value = element.get_text(strip=True)
    if not value.strip():
        raise ExtractionNotFound(f"selector {rule.selector!r} yielded empty value")

    aux: dict[str, str] = {}
    for name, attribute in rule.aux_attributes.items():
        captured = _attr(element, attribute)
        if captured:
            aux[name] = captured
    return Extracted(_finish(value, output), aux)


def apply_rule(rule: ExtractionRule, output: StepOutput, text: str) -> Extracted:
    """Extract the step output from page text.

    Raises:
        ExtractionNotFound: The rule did not match.
    """
    if rule.type is RuleType.REGEX:
        return _apply_regex(rule, output, text)
    if rule.type is RuleType.CSS:
        return _apply_css(rule, output, text)
    raise ValueError(f"rule type '{rule.type.value}' needs a rendered page")


def from_page_value(value: Any, output: StepOutput) -> Extracted:
    """Turn a value returned by the page's runtime into an extraction.

    Strings and numbers are the value itself. Objects must carry the
    output key (``url`` or ``payload``); their other keys become aux.
    """
    if isinstance(value, dict):
        main = value.get(output.value)
        if not isinstance(main, str) or not main.strip():
            raise ExtractionNotFound(f"page value has no '{output.value}' string")
        aux = {
            str(k): str(v)
            for k, v in value.items()
            if k != output.value and v is not None
        }
        return Extracted(_finish(main, output), aux)
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        text = str(value)
        if text.strip():
            return Extracted(_finish(text, output))
    raise ExtractionNotFound(f"page value {value!r} is not usable")
