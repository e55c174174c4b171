"""Playwright-backed browser automation adapter.

One Chromium process is shared (launched lazily, or reached over CDP);
every session gets its own ``BrowserContext`` so cookies, storage and
timing data never leak between provider attempts. A session lives for
exactly one attempt and is closed on every exit path.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import structlog
from playwright.async_api import (
    Browser,
    Error as PlaywrightError,
    Page,
    Playwright,
    Route,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)
from playwright_stealth import Stealth

from resolvarr.domain.entities import Fingerprint
from resolvarr.domain.exceptions import ExtractionNotFound, NetworkError, StepTimeout
from resolvarr.infrastructure.browser.scripts import (
    FINGERPRINT_SCRIPT,
    SELECTOR_VALUE_SCRIPT,
    expression_value_script,
)

log = structlog.get_logger(__name__)

_BLOCKED_RESOURCE_TYPES = frozenset(
    {"image", "font", "stylesheet", "media", "texttrack"}
)


def _ms(seconds: float) -> int:
    return max(int(seconds * 1000), 1)


async def _block_resources(route: Route) -> None:
    """Abort requests for heavy resource types."""
    if route.request.resource_type in _BLOCKED_RESOURCE_TYPES:
        await route.abort()
    else:
        await route.continue_()


class PlaywrightSession:
    """One page in an isolated context.

    Obtained via ``PlaywrightBrowserAdapter.open``.
    """

    def __init__(self, page: Page) -> None:
        self._page = page

    @property
    def url(self) -> str:
        return self._page.url

    async def goto(
        self,
        url: str,
        *,
        wait_until: str = "domcontentloaded",
        timeout: float,
        referer: str | None = None,
    ) -> None:
        try:
            response = await self._page.goto(
                url,
                wait_until=wait_until,  # type: ignore[arg-type]
                timeout=_ms(timeout),
                referer=referer,
            )
        except PlaywrightTimeoutError as exc:
            raise StepTimeout(f"navigation to {url} exceeded {timeout}s") from exc
        except PlaywrightError as exc:
            raise NetworkError(f"navigation to {url} failed: {exc.message}") from exc

        if response is not None and response.status >= 400:
            raise NetworkError(
                f"navigation to {url} returned HTTP {response.status}",
                status_code=response.status,
                retryable=response.status >= 500 or response.status == 429,
            )
        log.debug("browser_navigated", url=url, final_url=self._page.url)

    async def content(self) -> str:
        return await self._page.content()

    async def wait_for_value(
        self,
        *,
        selector: str | None = None,
        attribute: str | None = None,
        expression: str | None = None,
        timeout: float,
    ) -> Any:
        """Wait for an in-page value, polling on animation frames.

        With ``selector`` the value is the element's text (or ``attribute``);
        with ``expression`` it is whatever the expression evaluates to once
        it is non-empty.
        """
        if (selector is None) == (expression is None):
            raise ValueError("pass exactly one of selector or expression")

        target = selector if selector is not None else expression
        try:
            if selector is not None:
                handle = await self._page.wait_for_function(
                    SELECTOR_VALUE_SCRIPT,
                    arg=[selector, attribute],
                    timeout=_ms(timeout),
                )
            else:
                assert expression is not None
                handle = await self._page.wait_for_function(
                    expression_value_script(expression),
                    timeout=_ms(timeout),
                )
            return await handle.json_value()
        except PlaywrightTimeoutError as exc:
            raise StepTimeout(
                f"value {target!r} did not appear within {timeout}s"
            ) from exc
        except PlaywrightError as exc:
            raise ExtractionNotFound(
                f"waiting for {target!r} failed: {exc.message}"
            ) from exc

    async def evaluate(self, expression: str, *, timeout: float) -> Any:
        try:
            return await asyncio.wait_for(self._page.evaluate(expression), timeout)
        except asyncio.TimeoutError as exc:
            raise StepTimeout(f"evaluate exceeded {timeout}s") from exc
        except PlaywrightError as exc:
            raise ExtractionNotFound(f"evaluate failed: {exc.message}") from exc

    async def fingerprint(self, *, timeout: float) -> Fingerprint:
        raw = await self.evaluate(FINGERPRINT_SCRIPT, timeout=timeout)
        try:
            return Fingerprint(
                screen_width=int(raw["screen_width"]),
                screen_height=int(raw["screen_height"]),
                color_depth=int(raw["color_depth"]),
                user_agent=str(raw["user_agent"]),
                platform=str(raw["platform"]),
                language=str(raw["language"]),
                timezone_offset=int(raw["timezone_offset"]),
                canvas=str(raw.get("canvas") or ""),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ExtractionNotFound(f"fingerprint script returned {raw!r}") from exc


class PlaywrightBrowserAdapter:
    """Hands out single-use browser sessions.

    Usage::

        adapter = PlaywrightBrowserAdapter(headless=True, max_sessions=2)
        async with adapter.open() as session:
            await session.goto(url, timeout=20)
            value = await session.wait_for_value(expression="window.x", timeout=20)
        await adapter.cleanup()
    """

    def __init__(
        self,
        *,
        headless: bool = True,
        cdp_endpoint: str | None = None,
        executable_path: str | None = None,
        max_sessions: int = 2,
        stealth: bool = True,
        block_resources: bool = True,
        user_agent: str | None = None,
    ) -> None:
        self._headless = headless
        self._cdp_endpoint = cdp_endpoint
        self._executable_path = executable_path
        self._stealth = stealth
        self._block_resources = block_resources
        self._user_agent = user_agent
        self._pw: Playwright | None = None
        self._browsers: dict[bool, Browser] = {}
        self._lock = asyncio.Lock()
        self._slots = asyncio.Semaphore(max_sessions)
        self._active = 0

    @property
    def active_sessions(self) -> int:
        return self._active

    @property
    def is_running(self) -> bool:
        return any(b.is_connected() for b in self._browsers.values())

    async def _ensure_browser(self, headless: bool) -> Browser:
        """Launch (or reconnect) the shared browser for ``headless``."""
        browser = self._browsers.get(headless)
        if browser is not None and browser.is_connected():
            return browser

        async with self._lock:
            browser = self._browsers.get(headless)
            if browser is not None and browser.is_connected():
                return browser

            if self._pw is None:
                self._pw = await async_playwright().start()

            if self._cdp_endpoint:
                browser = await self._pw.chromium.connect_over_cdp(self._cdp_endpoint)
                log.info("browser_connected", endpoint=self._cdp_endpoint)
            else:
                browser = await self._pw.chromium.launch(
                    headless=headless,
                    executable_path=self._executable_path,
                )
                log.info("browser_launched", headless=headless)
            self._browsers[headless] = browser
            return browser

    @asynccontextmanager
    async def open(
        self, *, headless: bool | None = None
    ) -> AsyncIterator[PlaywrightSession]:
        """Open a fresh isolated session; it is closed when the block exits."""
        mode = self._headless if headless is None else headless
        async with self._slots:
            browser = await self._ensure_browser(mode)
            context = await browser.new_context(user_agent=self._user_agent)
            self._active += 1
            log.debug("browser_session_opened", active=self._active)
            try:
                if self._stealth:
                    await Stealth().apply_stealth_async(context)
                if self._block_resources:
                    await context.route("**/*", _block_resources)
                page = await context.new_page()
                yield PlaywrightSession(page)
            finally:
                self._active -= 1
                try:
                    await context.close()
                except PlaywrightError:
                    log.warning("browser_session_close_error", exc_info=True)
                log.debug("browser_session_closed", active=self._active)

    async def cleanup(self) -> None:
        """Close all browsers and stop Playwright."""
        for browser in self._browsers.values():
            try:
                await browser.close()
            except PlaywrightError:
                log.warning("browser_close_error", exc_info=True)
        self._browsers.clear()
        if self._pw is not None:
            await self._pw.stop()
            self._pw = None
        log.info("browser_adapter_cleaned_up")
