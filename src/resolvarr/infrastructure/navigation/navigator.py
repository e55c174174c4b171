"""Chain navigator: walks a provider's hops to its encoded payload.

Fetch steps use the shared httpx client; browser steps go through the
browser adapter, which is only touched when the provider declares
``requires_browser``. Each hop sends the previous hop's final URL as
``Referer`` (and its origin as ``Origin``); providers reject requests
whose referer does not match the expected chain.

A failing step aborts the attempt. Retries are the resolver's business.
"""

from __future__ import annotations

from contextlib import AsyncExitStack
from typing import AsyncContextManager
from urllib.parse import urljoin, urlsplit

import httpx
import structlog

from resolvarr.domain.entities import (
    ContentRequest,
    EncodedPayload,
    ExtractionStep,
    Fingerprint,
    ProviderSpec,
    RuleType,
    StepKind,
    StepOutput,
)
from resolvarr.domain.exceptions import (
    ExtractionNotFound,
    NetworkError,
    ResolutionFailure,
    StepTimeout,
)
from resolvarr.domain.ports import BrowserAdapterPort, BrowserSessionPort
from resolvarr.infrastructure.navigation.extraction import (
    Extracted,
    apply_rule,
    from_page_value,
)
from resolvarr.infrastructure.navigation.templates import render

log = structlog.get_logger(__name__)

_TRANSIENT_STATUSES = frozenset({408, 425, 429})


def origin_of(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


def status_failure(status_code: int, url: str) -> ResolutionFailure:
    """Map an HTTP error status to the failure taxonomy."""
    if status_code in (404, 410):
        return ExtractionNotFound(f"{url} returned HTTP {status_code}")
    return NetworkError(
        f"{url} returned HTTP {status_code}",
        status_code=status_code,
        retryable=status_code >= 500 or status_code in _TRANSIENT_STATUSES,
    )


class ChainNavigator:
    """Executes ``ProviderSpec.chain_steps`` for one provider attempt.

    Args:
        http_client: Shared httpx client for fetch steps.
        browser: Browser adapter, or None when browser automation is off.
        default_step_timeout: Seconds per hop when the step sets none.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        browser: BrowserAdapterPort | None = None,
        *,
        default_step_timeout: float = 20.0,
    ) -> None:
        self._http = http_client
        self._browser = browser
        self._default_step_timeout = default_step_timeout

    async def navigate(
        self,
        spec: ProviderSpec,
        request: ContentRequest,
        *,
        title: str | None = None,
    ) -> EncodedPayload:
        template = spec.embed_url_templates.get(request.content_type)
        if template is None:
            raise ExtractionNotFound(
                f"provider '{spec.id}' has no embed URL for "
                f"{request.content_type.value}"
            )

        hop_url = render(template, request, title)
        referer: str | None = None
        aux: dict[str, str] = {}
        fingerprint: Fingerprint | None = spec.fingerprint
        last_index = len(spec.chain_steps) - 1
        payload: EncodedPayload | None = None

        async with AsyncExitStack() as stack:
            session: BrowserSessionPort | None = None

            for index, step in enumerate(spec.chain_steps):
                output = StepOutput.PAYLOAD if index == last_index else StepOutput.URL
                url = self._step_url(step, hop_url, request, title)
                timeout = step.timeout_seconds or self._default_step_timeout

                if step.kind is StepKind.FETCH:
                    page_url, text = await self._fetch(spec, url, referer, timeout)
                    extracted = apply_rule(step.rule, output, text)
                else:
                    if session is None:
                        session = await stack.enter_async_context(
                            self._open_session(spec)
                        )
                    page_url, extracted, captured = await self._browse(
                        session, step, output, url, referer, timeout
                    )
                    if captured is not None:
                        fingerprint = captured

                aux.update(extracted.aux)
                log.debug(
                    "navigator_step_done",
                    provider=spec.id,
                    step=index,
                    kind=step.kind.value,
                    url=page_url,
                )

                if output is StepOutput.URL:
                    referer = page_url
                    hop_url = urljoin(page_url, extracted.value)
                else:
                    payload = EncodedPayload(
                        data=extracted.value,
                        origin_step_index=index,
                        source_url=page_url,
                        aux=dict(aux),
                        fingerprint=fingerprint,
                    )

        assert payload is not None
        return payload

    def _step_url(
        self,
        step: ExtractionStep,
        hop_url: str,
        request: ContentRequest,
        title: str | None,
    ) -> str:
        if step.url is None:
            return hop_url
        return urljoin(hop_url, render(step.url, request, title))

    def _open_session(
        self, spec: ProviderSpec
    ) -> AsyncContextManager[BrowserSessionPort]:
        if not spec.requires_browser or self._browser is None:
            raise ResolutionFailure(
                f"provider '{spec.id}' needs a browser but browser automation "
                "is unavailable"
            )
        return self._browser.open()

    def _headers(self, spec: ProviderSpec, referer: str | None) -> dict[str, str]:
        headers = dict(spec.headers)
        if referer is not None:
            headers["Referer"] = referer
            headers["Origin"] = origin_of(referer)
        return headers

    async def _fetch(
        self,
        spec: ProviderSpec,
        url: str,
        referer: str | None,
        timeout: float,
    ) -> tuple[str, str]:
        """GET one hop; returns (final URL, body)."""
        try:
            resp = await self._http.get(
                url,
                headers=self._headers(spec, referer),
                timeout=timeout,
                follow_redirects=True,
            )
        except httpx.TimeoutException as exc:
            raise StepTimeout(f"GET {url} exceeded {timeout}s") from exc
        except httpx.HTTPError as exc:
            raise NetworkError(f"GET {url} failed: {exc}") from exc

        if resp.status_code >= 400:
            raise status_failure(resp.status_code, url)
        return str(resp.url), resp.text

    async def _browse(
        self,
        session: BrowserSessionPort,
        step: ExtractionStep,
        output: StepOutput,
        url: str,
        referer: str | None,
        timeout: float,
    ) -> tuple[str, Extracted, Fingerprint | None]:
        await session.goto(
            url, wait_until=step.wait_until, timeout=timeout, referer=referer
        )

        rule = step.rule
        if rule.type is RuleType.WAIT_FOR_VALUE:
            value = await session.wait_for_value(
                selector=rule.selector,
                attribute=rule.attribute,
                expression=rule.expression,
                timeout=timeout,
            )
            extracted = from_page_value(value, output)
        else:
            extracted = apply_rule(rule, output, await session.content())

        captured = None
        if step.capture_fingerprint:
            captured = await session.fingerprint(timeout=timeout)
        return session.url, extracted, captured
