from .playwright_adapter import PlaywrightBrowserAdapter, PlaywrightSession

__all__ = ["PlaywrightBrowserAdapter", "PlaywrightSession"]
