"""
Shared aiohttp session handling and retrying JSON/text requests
"""
import logging
from typing import Any, Dict, Optional

import aiohttp
from aiohttp import ClientSession, ClientTimeout
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from restaurant_discovery.data.errors import AdapterError, RetryableUpstreamError, UpstreamHTTPError

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {408, 425, 429, 500, 502, 503, 504}
MAX_RETRIES = 3

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class BaseHTTPClient:
    """
    Async HTTP client with connection pooling.

    Subclasses share one session per instance; use as an async context
    manager or call close() explicitly.
    """

    def __init__(self, total_timeout: float = 30, connect_timeout: float = 10, limit_per_host: int = 10):
        self.timeout = ClientTimeout(total=total_timeout, connect=connect_timeout)
        self.limit_per_host = limit_per_host
        self.session: Optional[ClientSession] = None

    async def __aenter__(self):
        """Async context manager entry - create session with connection pooling."""
        if self.session is None or self.session.closed:
            connector = aiohttp.TCPConnector(
                limit=50,
                limit_per_host=self.limit_per_host,
                ttl_dns_cache=300,
            )
            self.session = ClientSession(
                connector=connector,
                timeout=self.timeout,
                headers={"User-Agent": USER_AGENT},
            )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """Explicitly close the session."""
        if self.session and not self.session.closed:
            await self.session.close()
            self.session = None

    def _require_session(self) -> ClientSession:
        if not self.session or self.session.closed:
            raise RuntimeError(f"{type(self).__name__} session not initialized. Use 'async with ...'")
        return self.session

    @staticmethod
    def _raise_for_status(status: int, url: str) -> None:
        if status in RETRYABLE_STATUS_CODES:
            raise RetryableUpstreamError(f"Retryable HTTP status {status} from {url}", status=status)
        if status >= 400:
            raise UpstreamHTTPError(f"HTTP status {status} from {url}", status=status)

    @retry(
        stop=stop_after_attempt(MAX_RETRIES),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=8),
        retry=retry_if_exception_type(RetryableUpstreamError),
        reraise=True,
    )
    async def get_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> Dict[str, Any]:
        session = self._require_session()
        try:
            async with session.get(url, params=params, headers=headers) as resp:
                self._raise_for_status(resp.status, url)
                return await resp.json(content_type=None)
        except aiohttp.ClientError as e:
            logger.error(f"GET {url} failed: {e}")
            raise AdapterError(f"Request to {url} failed: {e}") from e
        except ValueError as e:
            raise AdapterError(f"Invalid JSON payload from {url}") from e

    @retry(
        stop=stop_after_attempt(MAX_RETRIES),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=8),
        retry=retry_if_exception_type(RetryableUpstreamError),
        reraise=True,
    )
    async def get_text(self, url: str, headers: Optional[Dict[str, str]] = None) -> str:
        session = self._require_session()
        try:
            async with session.get(url, headers=headers) as resp:
                self._raise_for_status(resp.status, url)
                return await resp.text()
        except aiohttp.ClientError as e:
            logger.error(f"GET {url} failed: {e}")
            raise AdapterError(f"Request to {url} failed: {e}") from e
