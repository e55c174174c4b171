"""Embed URL templates."""

from __future__ import annotations

import re
import string
from urllib.parse import quote

from resolvarr.domain.entities import ContentRequest
from resolvarr.domain.exceptions import ExtractionNotFound

TEMPLATE_FIELDS = frozenset(
    {"external_id", "season", "episode", "content_type", "title_slug"}
)

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def template_fields(template: str) -> set[str]:
    """Placeholder names used by ``template``."""
    return {name for _, name, _, _ in string.Formatter().parse(template) if name}


def slugify(title: str) -> str:
    return _SLUG_RE.sub("-", title.lower()).strip("-")


def render(template: str, request: ContentRequest, title: str | None = None) -> str:
    fields = template_fields(template)
    values: dict[str, object] = {
        "external_id": quote(request.external_id, safe=""),
        "season": request.season if request.season is not None else "",
        "episode": request.episode if request.episode is not None else "",
        "content_type": request.content_type.value,
    }
    if "title_slug" in fields:
        if not title:
            raise ExtractionNotFound(f"no title known for '{request.external_id}'")
        values["title_slug"] = slugify(title)
    return template.format(**values)
