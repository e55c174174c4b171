"""Browser automation port.

Sessions are single-use and scoped: ``open()`` returns an async context
manager whose exit always closes the underlying browser context.
"""

from __future__ import annotations

from typing import Any, AsyncContextManager, Protocol, runtime_checkable

from resolvarr.domain.entities import Fingerprint


@runtime_checkable
class BrowserSessionPort(Protocol):
    """One isolated page-rendering context owned by one provider attempt."""

    @property
    def url(self) -> str:
        """URL of the current page after redirects."""
        ...

    async def goto(
        self,
        url: str,
        *,
        wait_until: str = "domcontentloaded",
        timeout: float,
        referer: str | None = None,
    ) -> None: ...

    async def content(self) -> str: ...

    async def wait_for_value(
        self,
        *,
        selector: str | None = None,
        attribute: str | None = None,
        expression: str | None = None,
        timeout: float,
    ) -> Any:
        """Wait until the page exposes a value, then return it.

        Exactly one of ``selector`` or ``expression`` must be given. Raises
        ``StepTimeout`` if nothing appears within ``timeout`` seconds.
        """
        ...

    async def evaluate(self, expression: str, *, timeout: float) -> Any: ...

    async def fingerprint(self, *, timeout: float) -> Fingerprint: ...


@runtime_checkable
class BrowserAdapterPort(Protocol):
    def open(self, *, headless: bool = True) -> AsyncContextManager[BrowserSessionPort]:
        ...

    @property
    def active_sessions(self) -> int: ...

    async def cleanup(self) -> None: ...
