"""Headless Chromium rendering via Playwright's asyncio API."""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import TYPE_CHECKING

from playwright.async_api import Browser, Page, Playwright, Route, async_playwright
from playwright.async_api import Error as PlaywrightError

from svg2psd.engine.backend import HandleState, RenderingEngine, RenderingHandle
from svg2psd.errors import HandleCreationError

if TYPE_CHECKING:
    from svg2psd.engine.config import EngineConfig

logger = logging.getLogger(__name__)

# Only the inline SVG is ever rendered; every auxiliary fetch is aborted
_BLOCKED_RESOURCES = frozenset({"stylesheet", "font", "image", "media"})

_PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<style>
  html, body {{
    margin: 0;
    padding: 0;
    background: transparent;
    width: {width}px;
    height: {height}px;
    overflow: hidden;
  }}
  svg {{ display: block; }}
</style>
</head>
<body>
{svg}
</body>
</html>"""

_BLANK_PAGE = "<!DOCTYPE html><html><body></body></html>"


async def _block_auxiliary_resources(route: Route) -> None:
    if route.request.resource_type in _BLOCKED_RESOURCES:
        await route.abort()
    else:
        await route.continue_()


class ChromiumHandle(RenderingHandle):
    """A Playwright page configured once for fragment rendering."""

    def __init__(self, handle_id: int, page: Page) -> None:
        super().__init__(handle_id)
        self._page = page

    @property
    def is_usable(self) -> bool:
        return super().is_usable and not self._page.is_closed()

    async def render(self, svg: str, width: int, height: int, timeout_ms: int) -> bytes:
        page = self._page
        await page.set_viewport_size({"width": width, "height": height})
        await page.set_content(
            _PAGE_TEMPLATE.format(svg=svg, width=width, height=height),
            timeout=timeout_ms,
            wait_until="load",
        )
        await page.wait_for_selector("svg", state="attached", timeout=timeout_ms)
        return await page.screenshot(
            type="png",
            clip={"x": 0, "y": 0, "width": width, "height": height},
            omit_background=True,
            timeout=timeout_ms,
        )

    async def reset(self) -> None:
        await self._page.set_content(_BLANK_PAGE)

    async def close(self) -> None:
        self.state = HandleState.DISCARDED
        if not self._page.is_closed():
            await self._page.close()


class ChromiumEngine(RenderingEngine):
    """One shared headless Chromium; each handle is a page inside it."""

    name = "chromium"

    def __init__(self, config: EngineConfig) -> None:
        self._config = config
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._lock = asyncio.Lock()
        self._ids = itertools.count(1)

    @property
    def is_running(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    async def start(self) -> None:
        async with self._lock:
            if self.is_running:
                return
            # A disconnected browser is replaced rather than reused
            await self._stop()
            logger.info("Launching headless Chromium for SVG to PSD conversion")
            try:
                self._playwright = await async_playwright().start()
                self._browser = await self._playwright.chromium.launch(
                    headless=True,
                    args=self._config.browser_args,
                    timeout=self._config.launch_timeout_ms,
                )
            except PlaywrightError as e:
                await self._stop()
                raise HandleCreationError(f"Chromium could not be launched: {e}") from e

    async def new_handle(self) -> ChromiumHandle:
        await self.start()
        browser = self._browser
        if browser is None:
            raise HandleCreationError("Chromium is not running")
        try:
            page = await browser.new_page()
            await page.route("**/*", _block_auxiliary_resources)
        except PlaywrightError as e:
            raise HandleCreationError(f"Chromium page could not be created: {e}") from e
        handle = ChromiumHandle(next(self._ids), page)
        logger.debug("Created rendering handle %d", handle.id)
        return handle

    async def close(self) -> None:
        async with self._lock:
            was_running = self._browser is not None
            await self._stop()
        if was_running:
            logger.info("SVG to PSD browser instance closed")

    async def _stop(self) -> None:
        browser, self._browser = self._browser, None
        playwright, self._playwright = self._playwright, None
        if browser is not None:
            try:
                await browser.close()
            except PlaywrightError as e:
                logger.debug("Browser close failed: %s", e)
        if playwright is not None:
            await playwright.stop()
