"""
Headless-browser page fetcher (Playwright, Chromium).

Requires the optional 'browser' extra: pip install -e '.[browser]' and
'playwright install chromium'.
"""
import asyncio
import logging
from typing import Optional

from playwright.async_api import async_playwright, Browser, BrowserContext

from restaurant_discovery.clients.http_client import USER_AGENT
from restaurant_discovery.data.errors import AdapterError

logger = logging.getLogger(__name__)


class BrowserPageFetcher:
    """Renders pages in Chromium and returns the final HTML."""

    def __init__(self, headless: bool = True, navigation_timeout_ms: int = 30000, settle_ms: int = 2000):
        self.headless = headless
        self.navigation_timeout_ms = navigation_timeout_ms
        self.settle_ms = settle_ms
        self.playwright = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()

    async def start(self):
        """Initialize browser session"""
        self.playwright = await async_playwright().start()
        self.browser = await self.playwright.chromium.launch(
            headless=self.headless,
            args=["--disable-blink-features=AutomationControlled"]
        )
        self.context = await self.browser.new_context(
            viewport={"width": 1280, "height": 800},
            user_agent=USER_AGENT,
        )
        await self.context.add_init_script("Object.defineProperty(navigator, 'webdriver', {get: () => undefined})")
        logger.info("Browser page fetcher started")

    async def stop(self):
        """Cleanup resources"""
        if self.context:
            await self.context.close()
            self.context = None
        if self.browser:
            await self.browser.close()
            self.browser = None
        if self.playwright:
            await self.playwright.stop()
            self.playwright = None

    async def fetch(self, url: str) -> str:
        if not self.context:
            raise RuntimeError("BrowserPageFetcher not started. Use 'async with ...'")

        page = await self.context.new_page()
        try:
            await page.goto(url, wait_until="domcontentloaded", timeout=self.navigation_timeout_ms)
            # Listings are often rendered after the DOM is ready
            await asyncio.sleep(self.settle_ms / 1000)
            html = await page.content()
            logger.debug(f"Rendered {len(html)} bytes from {url}")
            return html
        except Exception as e:
            raise AdapterError(f"Browser fetch of {url} failed: {e}") from e
        finally:
            await page.close()
