"""Static title lookup backed by a YAML mapping of external id to title."""

from __future__ import annotations

from pathlib import Path
from typing import Mapping

import structlog
import yaml

log = structlog.get_logger(__name__)


class MappingTitleLookup:
    """Synchronous ``external_id -> title`` lookup."""

    def __init__(self, titles: Mapping[str, str] | None = None) -> None:
        self._titles = dict(titles or {})

    def lookup(self, external_id: str) -> str | None:
        return self._titles.get(external_id)

    def __len__(self) -> int:
        return len(self._titles)


def load_titles(path: Path | None) -> MappingTitleLookup:
    """Load a ``{external_id: title}`` YAML file.

    A missing path yields an empty lookup.
    """
    if path is None or not path.exists():
        return MappingTitleLookup()
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: titles file must be a mapping")
    titles = {str(k): str(v) for k, v in data.items()}
    log.info("titles_loaded", titles_file=str(path), count=len(titles))
    return MappingTitleLookup(titles)
