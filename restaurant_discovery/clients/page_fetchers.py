"""
Page fetchers used by the scraping adapter.

HttpPageFetcher fetches raw markup with aiohttp. BrowserPageFetcher
(browser_fetcher.py) renders pages in headless Chromium for sites that build
their listings client-side.
"""
import logging

from restaurant_discovery.clients.http_client import BaseHTTPClient

logger = logging.getLogger(__name__)


class HttpPageFetcher(BaseHTTPClient):
    """Plain HTTP page fetcher."""

    def __init__(self, total_timeout: float = 30, **kwargs):
        super().__init__(total_timeout=total_timeout, **kwargs)

    async def fetch(self, url: str) -> str:
        html = await self.get_text(url, headers={"Accept": "text/html,application/xhtml+xml"})
        logger.debug(f"Fetched {len(html)} bytes from {url}")
        return html
