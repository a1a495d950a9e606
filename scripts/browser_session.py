"""Single long-lived headless Chromium process plus one browsing context.

The browser and context are expensive and shared across application attempts;
pages are cheap and opened one per attempt. Start is lazy and idempotent,
close is safe to repeat, and a closed session cannot be reused.
"""

import asyncio

from playwright.async_api import async_playwright

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-first-run",
]

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class SessionError(RuntimeError):
    """Session used before ensure_started() or after close()."""


class BrowserSession:
    """Owns one browser process and one context for the lifetime of an agent."""

    def __init__(self, headless=True, launch_args=None, user_agent=USER_AGENT,
                 viewport=None, playwright_factory=None):
        self.headless = headless
        self.launch_args = list(LAUNCH_ARGS if launch_args is None else launch_args)
        self.user_agent = user_agent
        self.viewport = viewport or {"width": 1280, "height": 900}
        self._playwright_factory = playwright_factory or async_playwright
        self._playwright = None
        self._browser = None
        self._context = None
        self._closed = False
        self._lock = asyncio.Lock()
        self.launch_count = 0

    @property
    def started(self) -> bool:
        return self._context is not None

    @property
    def closed(self) -> bool:
        return self._closed

    async def ensure_started(self) -> None:
        """Start the browser and context on first call; no-op afterwards."""
        if self._closed:
            raise SessionError("Browser session has been closed")
        async with self._lock:
            if self._context is not None:
                return
            self._playwright = await self._playwright_factory().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless,
                args=self.launch_args,
            )
            self.launch_count += 1
            self._context = await self._browser.new_context(
                user_agent=self.user_agent,
                viewport=self.viewport,
                locale="en-US",
            )

    async def new_page(self):
        """Open a fresh page in the shared context."""
        if self._closed:
            raise SessionError("new_page() called after close()")
        if self._context is None:
            raise SessionError("new_page() called before ensure_started()")
        return await self._context.new_page()

    async def close(self) -> None:
        """Close context, browser and driver. Safe to call repeatedly or before start."""
        self._closed = True
        context, browser, playwright = self._context, self._browser, self._playwright
        self._context = self._browser = self._playwright = None
        try:
            if context is not None:
                await context.close()
            if browser is not None:
                await browser.close()
        finally:
            if playwright is not None:
                await playwright.stop()

    async def __aenter__(self):
        await self.ensure_started()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
