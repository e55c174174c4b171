"""Content request value objects.

Pure value objects, no framework dependencies, no I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ContentType(str, Enum):
    """Kind of content a request refers to."""

    MOVIE = "movie"
    TV = "tv"


@dataclass(frozen=True)
class ContentRequest:
    """A movie or TV episode to resolve.

    Created by the caller and read-only thereafter. TV requests must carry
    season and episode numbers; movie requests must not.
    """

    content_type: ContentType
    external_id: str  # TMDB / IMDb id, e.g. "tt0111161" or "550"
    season: int | None = None
    episode: int | None = None

    def __post_init__(self) -> None:
        if not self.external_id or not self.external_id.strip():
            raise ValueError("external_id must not be empty")
        if self.content_type is ContentType.TV:
            if self.season is None or self.episode is None:
                raise ValueError("tv requests require season and episode")
            if self.season < 1 or self.episode < 1:
                raise ValueError("season and episode must be >= 1")
        elif self.season is not None or self.episode is not None:
            raise ValueError("movie requests must not carry season/episode")

    @classmethod
    def movie(cls, external_id: str) -> ContentRequest:
        return cls(ContentType.MOVIE, external_id)

    @classmethod
    def tv(cls, external_id: str, season: int, episode: int) -> ContentRequest:
        return cls(ContentType.TV, external_id, season, episode)

    @property
    def cache_key(self) -> str:
        """Stable key identifying this content across providers."""
        if self.content_type is ContentType.TV:
            return f"tv:{self.external_id}:{self.season}:{self.episode}"
        return f"movie:{self.external_id}"
