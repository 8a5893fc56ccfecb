"""Headless browser sessions for price extraction."""

from __future__ import annotations

import logging
import random
from contextlib import AbstractAsyncContextManager
from typing import Callable, Protocol

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    Route,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from pricewatch.errors import ExtractionFailure, OrchestrationFailure
from pricewatch.ingest.settings import ScrapeSettings

logger = logging.getLogger(__name__)

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/125.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.4 Safari/605.1.15",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:125.0) Gecko/20100101 Firefox/125.0",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
]

VIEWPORT = {"width": 1920, "height": 1080}

EXTRA_HEADERS = {
    "Accept-Language": "en-US,en;q=0.9",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Upgrade-Insecure-Requests": "1",
}

BLOCKED_RESOURCE_TYPES = frozenset({"image", "stylesheet", "font", "media"})

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
    "--disable-blink-features=AutomationControlled",
    "--window-size=1920,1080",
]

STEALTH_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', {get: () => undefined});
Object.defineProperty(navigator, 'languages', {get: () => ['en-US', 'en']});
window.chrome = window.chrome || {runtime: {}};
"""


class PageSession(Protocol):
    """One isolated page. Implementations raise ExtractionFailure on any error."""

    async def goto(self, url: str, *, timeout_ms: int) -> int | None: ...

    async def wait_for_selector(self, selector: str, *, timeout_ms: int) -> None: ...

    async def scroll_by(self, pixels: int) -> None: ...

    async def text_content(self, selector: str) -> str | None: ...

    async def close(self) -> None: ...


class BrowserSession(Protocol):
    async def new_page(self) -> PageSession: ...


BrowserFactory = Callable[[ScrapeSettings], AbstractAsyncContextManager[BrowserSession]]


def random_user_agent(rng: random.Random | None = None) -> str:
    return (rng or random).choice(USER_AGENTS)


async def _close_context(context: BrowserContext) -> None:
    try:
        await context.close()
    except PlaywrightError as exc:
        logger.debug("Ignoring error while closing context: %s", exc.message)


async def _block_heavy_resources(route: Route) -> None:
    if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
        await route.abort()
    else:
        await route.continue_()


class PlaywrightPage:
    def __init__(self, context: BrowserContext, page: Page) -> None:
        self._context = context
        self._page = page

    async def goto(self, url: str, *, timeout_ms: int) -> int | None:
        try:
            response = await self._page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise ExtractionFailure("Navigation timeout exceeded") from exc
        except PlaywrightError as exc:
            raise ExtractionFailure(f"Navigation failed: {exc.message}") from exc
        return response.status if response else None

    async def wait_for_selector(self, selector: str, *, timeout_ms: int) -> None:
        try:
            await self._page.wait_for_selector(selector, timeout=timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise ExtractionFailure(f"Timeout waiting for selector {selector!r}") from exc
        except PlaywrightError as exc:
            raise ExtractionFailure(f"Selector {selector!r} failed: {exc.message}") from exc

    async def scroll_by(self, pixels: int) -> None:
        try:
            await self._page.evaluate("(dy) => window.scrollBy(0, dy)", pixels)
        except PlaywrightError as exc:
            raise ExtractionFailure(f"Scroll failed: {exc.message}") from exc

    async def text_content(self, selector: str) -> str | None:
        try:
            return await self._page.text_content(selector)
        except PlaywrightError as exc:
            raise ExtractionFailure(f"Could not read {selector!r}: {exc.message}") from exc

    async def close(self) -> None:
        await _close_context(self._context)


class PlaywrightBrowser:
    """Chromium with a fresh context per page, so attempts share nothing."""

    def __init__(self, settings: ScrapeSettings, *, rng: random.Random | None = None) -> None:
        self.settings = settings
        self._rng = rng or random.Random()
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None

    async def __aenter__(self) -> "PlaywrightBrowser":
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.settings.headless,
                args=LAUNCH_ARGS,
                ignore_default_args=["--enable-automation"],
            )
        except (PlaywrightError, OSError) as exc:
            await self._shutdown()
            raise OrchestrationFailure(f"Browser could not start: {exc}") from exc
        logger.info("Browser launched (headless=%s)", self.settings.headless)
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self._shutdown()

    async def new_page(self) -> PlaywrightPage:
        if self._browser is None:
            raise OrchestrationFailure("Browser is not running")
        try:
            context = await self._browser.new_context(
                user_agent=random_user_agent(self._rng),
                viewport=VIEWPORT,
                device_scale_factor=1,
                extra_http_headers=EXTRA_HEADERS,
            )
        except PlaywrightError as exc:
            raise ExtractionFailure(f"Could not open page: {exc.message}") from exc
        try:
            context.set_default_timeout(self.settings.default_timeout_ms)
            context.set_default_navigation_timeout(self.settings.navigation_timeout_ms)
            await context.add_init_script(STEALTH_SCRIPT)
            await context.route("**/*", _block_heavy_resources)
            page = await context.new_page()
        except PlaywrightError as exc:
            await _close_context(context)
            raise ExtractionFailure(f"Could not open page: {exc.message}") from exc
        return PlaywrightPage(context, page)

    async def _shutdown(self) -> None:
        if self._browser is not None:
            try:
                await self._browser.close()
            except PlaywrightError as exc:
                logger.debug("Ignoring error while closing browser: %s", exc.message)
            self._browser = None
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except (PlaywrightError, OSError) as exc:
                logger.debug("Ignoring error while stopping playwright: %s", exc)
            self._playwright = None
