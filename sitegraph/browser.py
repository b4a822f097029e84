"""
Browser Session
===============
Thin Playwright layer used by the crawler.

- Single browser, single BrowserContext (shared cookies, so a manual
  login carries over to every crawled page)
- Scoped page acquisition: ``async with session.page() as page`` always
  closes the page, success or error
- Navigation with a multi-condition wait policy that never raises on
  timeout or network failure — the caller inspects what loaded
- Resource blocking (images, media, fonts)
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, List, Optional

from playwright.async_api import async_playwright, Browser, BrowserContext, Page
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout

from .run_config import CrawlConfig

logger = logging.getLogger(__name__)

# Resource types to block for speed
_BLOCKED_RESOURCE_TYPES = frozenset([
    "image", "media", "font",
])


@dataclass
class NavigationResult:
    """Outcome of ``BrowserSession.goto``."""
    final_url: str
    status_code: Optional[int] = None
    timed_out: bool = False
    error: str = ""


@dataclass
class ConsoleMessageRecord:
    type: str
    text: str


@dataclass
class RenderResult:
    """Snapshot of a single rendered page (``BrowserSession.render``)."""
    url: str
    status_code: Optional[int]
    title: str
    html: str
    timing_ms: float
    console_messages: List[ConsoleMessageRecord] = field(default_factory=list)


async def _block_media_route(route) -> None:
    """Abort image/media/font requests, let everything else through."""
    if route.request.resource_type in _BLOCKED_RESOURCE_TYPES:
        await route.abort()
    else:
        await route.continue_()


class BrowserSession:
    """
    Owns the Playwright browser for the lifetime of a crawl.

    Usage::

        async with BrowserSession(config) as session:
            async with session.page() as page:
                nav = await session.goto(page, "https://example.com")
    """

    def __init__(self, config: Optional[CrawlConfig] = None):
        self.config = config or CrawlConfig()
        self._playwright = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None

    async def __aenter__(self) -> "BrowserSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Launch Chromium and create the shared context."""
        if self._context is not None:
            return
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self.config.headless,
            args=[
                '--disable-gpu',
                '--no-sandbox',
                '--disable-dev-shm-usage',
                '--disable-extensions',
                '--no-first-run',
            ]
        )
        self._context = await self._browser.new_context(
            user_agent=self.config.user_agent,
            viewport={
                'width': self.config.viewport_width,
                'height': self.config.viewport_height,
            },
            locale='en-US',
        )
        logger.info(
            f"Playwright browser initialized "
            f"(headless={self.config.headless}, "
            f"blocking={'images,fonts,media' if self.config.block_media else 'none'})"
        )

    async def close(self) -> None:
        """Close context, browser and Playwright. Errors are logged and ignored."""
        if self._context:
            try:
                await self._context.close()
            except Exception as e:
                logger.debug(f"Error closing context: {e}")
            self._context = None
        if self._browser:
            try:
                await self._browser.close()
            except Exception as e:
                logger.debug(f"Error closing browser: {e}")
            self._browser = None
        if self._playwright:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.debug(f"Error stopping Playwright: {e}")
            self._playwright = None

    # ------------------------------------------------------------------
    # Pages
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def page(self, *, block_media: Optional[bool] = None) -> AsyncIterator[Page]:
        """Exclusive page for one visit; closed on exit whatever happens."""
        if self._context is None:
            await self.start()
        if block_media is None:
            block_media = self.config.block_media

        page = await self._context.new_page()
        try:
            if block_media:
                await page.route("**/*", _block_media_route)
            yield page
        finally:
            try:
                if not page.is_closed():
                    await page.close()
            except Exception as e:
                logger.debug(f"Error closing page: {e}")

    async def goto(self, page: Page, url: str, *, timeout_ms: Optional[int] = None) -> NavigationResult:
        """
        Navigate and wait for every configured load condition.

        All conditions share one deadline.  A timeout or network error is
        reported in the result, never raised; a partially loaded page is
        still usable.
        """
        timeout_ms = timeout_ms or self.config.timeout_ms
        conditions = list(self.config.wait_until) or ['load']
        deadline = time.monotonic() + timeout_ms / 1000

        result = NavigationResult(final_url=url)
        try:
            response = await page.goto(url, wait_until=conditions[0], timeout=timeout_ms)
            if response is not None:
                result.status_code = response.status
            for condition in conditions[1:]:
                remaining_ms = max(1, int((deadline - time.monotonic()) * 1000))
                await page.wait_for_load_state(condition, timeout=remaining_ms)
        except PlaywrightTimeout:
            result.timed_out = True
            result.status_code = None
            logger.warning(f"[NAV] Timeout after {timeout_ms}ms: {url[:80]} — continuing with partial load")
        except PlaywrightError as e:
            result.status_code = None
            result.error = str(e).splitlines()[0] if str(e) else type(e).__name__
            logger.warning(f"[NAV] Navigation failed: {url[:80]} — {result.error}")

        current = page.url or ''
        if current.startswith(('http://', 'https://')):
            result.final_url = current
        return result

    async def capture_screenshot(self, page: Page, path: str) -> Optional[str]:
        """Full-page screenshot; returns the path, or None if it failed."""
        try:
            await page.screenshot(path=path, full_page=True)
            return path
        except Exception as e:
            logger.debug(f"[SCREENSHOT] Failed for {path}: {e}")
            return None

    # ------------------------------------------------------------------
    # Stand-alone helpers
    # ------------------------------------------------------------------

    async def render(self, url: str) -> RenderResult:
        """Load one page and return its HTML, title, status and console output."""
        console: List[ConsoleMessageRecord] = []

        def on_console(msg) -> None:
            console.append(ConsoleMessageRecord(type=msg.type, text=msg.text))

        start = time.monotonic()
        async with self.page() as page:
            page.on('console', on_console)
            nav = await self.goto(page, url)
            title = await safe_title(page)
            try:
                html = await page.content()
            except PlaywrightError:
                html = ''
            page.remove_listener('console', on_console)
            return RenderResult(
                url=nav.final_url,
                status_code=nav.status_code,
                title=title,
                html=html,
                timing_ms=(time.monotonic() - start) * 1000,
                console_messages=console,
            )

    async def wait_for_manual_login(self, login_url: str, wait_ms: int) -> None:
        """Open *login_url* and give the operator *wait_ms* to sign in."""
        logger.info(
            f"[LOGIN] Opening {login_url} — waiting {round(wait_ms / 1000)}s "
            f"for you to complete login..."
        )
        async with self.page(block_media=False) as page:
            await self.goto(page, login_url)
            await asyncio.sleep(wait_ms / 1000)
        logger.info("[LOGIN] Continuing with crawl using your session")


async def safe_title(page) -> str:
    """Page title, or "" when the page cannot answer."""
    try:
        return (await page.title()) or ''
    except Exception:
        return ''
