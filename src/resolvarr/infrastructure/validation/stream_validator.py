"""Stream URL validation: shape check plus optional reachability probe."""

from __future__ import annotations

import asyncio
import re
import time
from typing import Mapping
from urllib.parse import urlsplit

import httpx
import structlog

from resolvarr.domain.entities import ValidationOutcome

log = structlog.get_logger(__name__)

MANIFEST_EXTENSIONS: tuple[str, ...] = (".m3u8", ".mpd")

_WHITESPACE_RE = re.compile(r"\s")

# Probe result TTLs
_CACHE_TTL_REACHABLE = 600
_CACHE_TTL_UNREACHABLE = 60


class _ProbeCacheEntry:
    __slots__ = ("outcome", "expires_at")

    def __init__(self, outcome: ValidationOutcome, ttl: int) -> None:
        self.outcome = outcome
        self.expires_at = time.monotonic() + ttl

    @property
    def is_expired(self) -> bool:
        return time.monotonic() >= self.expires_at


def check_shape(
    candidate: str, extensions: tuple[str, ...] = MANIFEST_EXTENSIONS
) -> ValidationOutcome:
    """Accept absolute http(s) URLs whose path ends in a manifest extension."""
    url = candidate.strip()
    if not url or _WHITESPACE_RE.search(url):
        return ValidationOutcome.rejected("not a url")
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return ValidationOutcome.rejected("not an absolute http(s) url")
    if not parts.path.lower().endswith(extensions):
        return ValidationOutcome.rejected(
            f"path does not end in {' or '.join(extensions)}"
        )
    return ValidationOutcome.valid(url)


class StreamValidator:
    """Validates candidate stream URLs.

    The shape check always runs. With ``probe=True`` the URL is also
    fetched (bounded by ``timeout_seconds``); HLS manifests must start with
    ``#EXTM3U``. Probe outcomes are cached briefly per URL.

    Args:
        http_client: Shared httpx client, required when probing.
        probe: Enable the reachability probe.
        timeout_seconds: Probe timeout.
        max_concurrent: Max parallel probes.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        *,
        probe: bool = False,
        timeout_seconds: float = 5.0,
        max_concurrent: int = 10,
        extensions: tuple[str, ...] = MANIFEST_EXTENSIONS,
    ) -> None:
        if probe and http_client is None:
            raise ValueError("probing requires an http client")
        self._http = http_client
        self._probe = probe
        self._timeout = timeout_seconds
        self._extensions = extensions
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._cache: dict[str, _ProbeCacheEntry] = {}

    async def validate(
        self,
        candidate: str,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> ValidationOutcome:
        outcome = check_shape(candidate, self._extensions)
        if not outcome.is_valid or not self._probe:
            return outcome

        assert outcome.url is not None
        cached = self._cache.get(outcome.url)
        if cached is not None and not cached.is_expired:
            return cached.outcome

        async with self._semaphore:
            probed = await self._probe_url(outcome.url, headers or {})
        ttl = _CACHE_TTL_REACHABLE if probed.is_valid else _CACHE_TTL_UNREACHABLE
        self._cache[outcome.url] = _ProbeCacheEntry(probed, ttl)
        return probed

    async def _probe_url(
        self, url: str, headers: Mapping[str, str]
    ) -> ValidationOutcome:
        assert self._http is not None
        try:
            resp = await self._http.get(
                url,
                headers=dict(headers),
                timeout=self._timeout,
                follow_redirects=True,
            )
        except httpx.TimeoutException:
            log.debug("stream_probe_timeout", url=url, timeout=self._timeout)
            return ValidationOutcome.rejected(f"probe timed out after {self._timeout}s")
        except httpx.HTTPError as exc:
            log.debug("stream_probe_http_error", url=url, error=str(exc))
            return ValidationOutcome.rejected(f"probe failed: {exc}")

        if resp.status_code >= 400:
            return ValidationOutcome.rejected(f"probe returned HTTP {resp.status_code}")

        if urlsplit(url).path.lower().endswith(".m3u8"):
            body = resp.text.lstrip("\ufeff").lstrip()
            if not body.startswith("#EXTM3U"):
                return ValidationOutcome.rejected("response is not an HLS playlist")

        log.debug("stream_probe_ok", url=url, status=resp.status_code)
        return ValidationOutcome.valid(url)
