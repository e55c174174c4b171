"""Tests for PlaywrightBrowserAdapter and PlaywrightSession (Playwright mocked)."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from resolvarr.domain.exceptions import ExtractionNotFound, NetworkError, StepTimeout
from resolvarr.infrastructure.browser.playwright_adapter import (
    PlaywrightBrowserAdapter,
    PlaywrightSession,
)

_MODULE = "resolvarr.infrastructure.browser.playwright_adapter"


def _make_page(url: str = "https://a.example/embed") -> MagicMock:
    page = MagicMock()
    page.url = url
    page.goto = AsyncMock(return_value=MagicMock(status=200))
    page.content = AsyncMock(return_value="<html></html>")
    page.wait_for_function = AsyncMock()
    page.evaluate = AsyncMock()
    return page


def _make_playwright(page: MagicMock) -> tuple[MagicMock, MagicMock, MagicMock]:
    context = MagicMock()
    context.new_page = AsyncMock(return_value=page)
    context.route = AsyncMock()
    context.close = AsyncMock()

    browser = MagicMock()
    browser.is_connected.return_value = True
    browser.new_context = AsyncMock(return_value=context)
    browser.close = AsyncMock()

    pw = MagicMock()
    pw.chromium.launch = AsyncMock(return_value=browser)
    pw.chromium.connect_over_cdp = AsyncMock(return_value=browser)
    pw.stop = AsyncMock()

    factory = MagicMock()
    factory.return_value.start = AsyncMock(return_value=pw)
    return factory, pw, context


@pytest.fixture()
def stealth() -> MagicMock:
    with patch(f"{_MODULE}.Stealth") as cls:
        cls.return_value.apply_stealth_async = AsyncMock()
        yield cls


class TestPlaywrightSession:
    async def test_goto_timeout(self) -> None:
        page = _make_page()
        page.goto.side_effect = PlaywrightTimeoutError("Timeout 1000ms exceeded")
        with pytest.raises(StepTimeout, match="exceeded 1.0s"):
            await PlaywrightSession(page).goto("https://a.example", timeout=1.0)

    async def test_goto_error(self) -> None:
        page = _make_page()
        page.goto.side_effect = PlaywrightError("net::ERR_NAME_NOT_RESOLVED")
        with pytest.raises(NetworkError, match="ERR_NAME_NOT_RESOLVED"):
            await PlaywrightSession(page).goto("https://a.example", timeout=1.0)

    @pytest.mark.parametrize(("status", "retryable"), [(503, True), (403, False)])
    async def test_goto_http_error(self, status: int, retryable: bool) -> None:
        page = _make_page()
        page.goto.return_value = MagicMock(status=status)
        with pytest.raises(NetworkError) as exc_info:
            await PlaywrightSession(page).goto("https://a.example", timeout=1.0)
        assert exc_info.value.status_code == status
        assert exc_info.value.retryable is retryable

    async def test_goto_passes_referer_and_ms_timeout(self) -> None:
        page = _make_page()
        await PlaywrightSession(page).goto(
            "https://a.example", timeout=2.5, referer="https://r.example/"
        )
        page.goto.assert_awaited_once_with(
            "https://a.example",
            wait_until="domcontentloaded",
            timeout=2500,
            referer="https://r.example/",
        )

    async def test_wait_for_value_by_expression(self) -> None:
        page = _make_page()
        handle = MagicMock()
        handle.json_value = AsyncMock(return_value={"payload": "abc"})
        page.wait_for_function.return_value = handle

        value = await PlaywrightSession(page).wait_for_value(
            expression="window.__p", timeout=3
        )

        assert value == {"payload": "abc"}
        assert page.wait_for_function.await_args.kwargs["timeout"] == 3000

    async def test_wait_for_value_by_selector(self) -> None:
        page = _make_page()
        handle = MagicMock()
        handle.json_value = AsyncMock(return_value="XFs=")
        page.wait_for_function.return_value = handle

        value = await PlaywrightSession(page).wait_for_value(
            selector="#k9", attribute="data-x", timeout=1
        )

        assert value == "XFs="
        assert page.wait_for_function.await_args.kwargs["arg"] == ["#k9", "data-x"]

    async def test_wait_for_value_timeout(self) -> None:
        page = _make_page()
        page.wait_for_function.side_effect = PlaywrightTimeoutError("Timeout")
        with pytest.raises(StepTimeout, match="did not appear"):
            await PlaywrightSession(page).wait_for_value(expression="window.x", timeout=1)

    async def test_wait_for_value_needs_exactly_one_target(self) -> None:
        with pytest.raises(ValueError):
            await PlaywrightSession(_make_page()).wait_for_value(timeout=1)

    async def test_evaluate_timeout(self) -> None:
        page = _make_page()

        async def _hang(_expr: str) -> None:
            await asyncio.sleep(10)

        page.evaluate = _hang
        with pytest.raises(StepTimeout):
            await PlaywrightSession(page).evaluate("1", timeout=0.01)

    async def test_fingerprint(self) -> None:
        page = _make_page()
        page.evaluate.return_value = {
            "screen_width": 1920,
            "screen_height": 1080,
            "color_depth": 24,
            "user_agent": "UA",
            "platform": "Linux",
            "language": "en-US",
            "timezone_offset": 0,
            "canvas": "abc",
        }
        fp = await PlaywrightSession(page).fingerprint(timeout=1)
        assert fp.screen_width == 1920
        assert fp.canvas == "abc"

    async def test_fingerprint_incomplete(self) -> None:
        page = _make_page()
        page.evaluate.return_value = {"screen_width": 1}
        with pytest.raises(ExtractionNotFound, match="fingerprint"):
            await PlaywrightSession(page).fingerprint(timeout=1)


class TestPlaywrightBrowserAdapter:
    async def test_session_lifecycle(self, stealth: MagicMock) -> None:
        page = _make_page()
        factory, pw, context = _make_playwright(page)
        with patch(f"{_MODULE}.async_playwright", factory):
            adapter = PlaywrightBrowserAdapter(max_sessions=1)
            async with adapter.open() as session:
                assert adapter.active_sessions == 1
                await session.goto("https://a.example", timeout=1)
            assert adapter.active_sessions == 0
            context.close.assert_awaited_once()
            stealth.return_value.apply_stealth_async.assert_awaited_once_with(context)
            context.route.assert_awaited_once()

            await adapter.cleanup()
        pw.stop.assert_awaited_once()

    async def test_timeout_mid_navigation_releases_session(
        self, stealth: MagicMock
    ) -> None:
        page = _make_page()
        page.goto.side_effect = PlaywrightTimeoutError("Timeout 1000ms exceeded")
        factory, _pw, context = _make_playwright(page)
        with patch(f"{_MODULE}.async_playwright", factory):
            adapter = PlaywrightBrowserAdapter()
            with pytest.raises(StepTimeout):
                async with adapter.open() as session:
                    await session.goto("https://a.example", timeout=1)

        assert adapter.active_sessions == 0
        context.close.assert_awaited_once()

    async def test_cancellation_releases_session(self, stealth: MagicMock) -> None:
        page = _make_page()

        async def _hang(*_args, **_kwargs):
            await asyncio.sleep(10)

        page.goto = _hang
        factory, _pw, context = _make_playwright(page)
        with patch(f"{_MODULE}.async_playwright", factory):
            adapter = PlaywrightBrowserAdapter()

            async def _attempt() -> None:
                async with adapter.open() as session:
                    await session.goto("https://a.example", timeout=30)

            with pytest.raises(asyncio.TimeoutError):
                await asyncio.wait_for(_attempt(), timeout=0.05)

        assert adapter.active_sessions == 0
        context.close.assert_awaited_once()

    async def test_browser_launched_once(self, stealth: MagicMock) -> None:
        factory, pw, _context = _make_playwright(_make_page())
        with patch(f"{_MODULE}.async_playwright", factory):
            adapter = PlaywrightBrowserAdapter()
            async with adapter.open():
                pass
            async with adapter.open():
                pass
        pw.chromium.launch.assert_awaited_once()

    async def test_cdp_endpoint(self, stealth: MagicMock) -> None:
        factory, pw, _context = _make_playwright(_make_page())
        with patch(f"{_MODULE}.async_playwright", factory):
            adapter = PlaywrightBrowserAdapter(cdp_endpoint="ws://chrome:9222")
            async with adapter.open():
                pass
        pw.chromium.connect_over_cdp.assert_awaited_once_with("ws://chrome:9222")
        pw.chromium.launch.assert_not_awaited()

    async def test_stealth_and_blocking_optional(self, stealth: MagicMock) -> None:
        factory, _pw, context = _make_playwright(_make_page())
        with patch(f"{_MODULE}.async_playwright", factory):
            adapter = PlaywrightBrowserAdapter(stealth=False, block_resources=False)
            async with adapter.open():
                pass
        stealth.assert_not_called()
        context.route.assert_not_awaited()
