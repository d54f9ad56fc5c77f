"""
HTML scraping adapter: CSS selector rules per target site, BeautifulSoup extraction
"""
import asyncio
import logging
import re
from typing import Dict, List, Optional, Union
from urllib.parse import quote_plus

from bs4 import BeautifulSoup

from restaurant_discovery.clients.client_protocols import PageFetcherProtocol
from restaurant_discovery.data.defaults import DEFAULT_SCRAPING_TARGETS, ScrapingTarget
from restaurant_discovery.data.models import DiscoverySource
from restaurant_discovery.data.raw_models import ScrapedRaw
from restaurant_discovery.searchers.base import DiscoveryContext, SourceAdapter
from restaurant_discovery.searchers.query_coalescer import BatchedQueryCoalescer
from restaurant_discovery.utils.ttl_cache import TTLCache

logger = logging.getLogger(__name__)

MAX_RESULTS_PER_PAGE = 3
MAX_CONCURRENT_PAGES = 2

PHONE_PATTERN = re.compile(r'\d{10,}')
RATING_PATTERN = re.compile(r'^\d+\.?\d*$')
PRICE_PATTERN = re.compile(
    r'[₦N]?\s?\d+(?:,\d{3})*(?:\.\d+)?(?:\s*-\s*[₦N]?\s?\d+(?:,\d{3})*(?:\.\d+)?)?'
    r'(?:\s*per\s*(?:plate|person|meal|dish))?',
    re.IGNORECASE,
)
RANGE_PATTERN = re.compile(r'\d+\s*-\s*\d+')

MIN_NAME_LENGTH = 3
MIN_ADDRESS_LENGTH = 6
MIN_REVIEW_LENGTH = 11


def split_selectors(rule: str) -> List[str]:
    return [s.strip() for s in rule.split(",") if s.strip()]


def build_search_url(url: str, query: str) -> str:
    """Append the query as a q= parameter."""
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}q={quote_plus(query.lower())}"


class ScrapingAdapter(SourceAdapter):
    """
    Scrapes listing pages of configured targets.

    Every query is run against every target. Pages are fetched through the
    injected page fetcher (plain HTTP or headless browser) behind a coalescer,
    so a URL is fetched once per cache lifetime, with at most
    max_concurrent_pages fetches at a time.
    """

    source = DiscoverySource.SCRAPING

    def __init__(
        self,
        fetcher: PageFetcherProtocol,
        targets: Optional[List[ScrapingTarget]] = None,
        cache: Optional[TTLCache] = None,
        name: str = "scraping",
        timeout: float = 90.0,
        max_concurrent_pages: int = MAX_CONCURRENT_PAGES,
        max_results_per_page: int = MAX_RESULTS_PER_PAGE,
    ):
        self.fetcher = fetcher
        self.targets = targets if targets is not None else list(DEFAULT_SCRAPING_TARGETS)
        self.name = name
        self.timeout = timeout
        self.max_results_per_page = max_results_per_page
        self._page_semaphore = asyncio.Semaphore(max_concurrent_pages)
        self.page_coalescer = BatchedQueryCoalescer(
            cache if cache is not None else TTLCache(),
            name=f"{name}-pages",
            grouped_fetch=self._fetch_pages,
        )

    async def discover(self, query: str, context: DiscoveryContext) -> List[ScrapedRaw]:
        outcomes = await asyncio.gather(
            *(self._scrape_target(target, query, context) for target in self.targets),
            return_exceptions=True,
        )

        candidates: List[ScrapedRaw] = []
        for target, outcome in zip(self.targets, outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, Exception):
                logger.warning(f"[{self.name}] Scraping {target.url} failed: {outcome}")
                continue
            candidates.extend(outcome)
        return candidates

    async def _scrape_target(self, target: ScrapingTarget, query: str, context: DiscoveryContext) -> List[ScrapedRaw]:
        url = build_search_url(target.url, query)
        async with self._page_semaphore:
            html = await self.page_coalescer.acquire(url)
        records = self.extract(html, target, url, context.region_keywords)
        logger.info(f"[{self.name}] Extracted {len(records)} records from {url}")
        return records

    async def _fetch_pages(self, urls: List[str]) -> Dict[str, Union[str, Exception]]:
        """Fetch one coalesced batch of pages concurrently; the page semaphore bounds the batch size."""
        outcomes = await asyncio.gather(*(self.fetcher.fetch(url) for url in urls), return_exceptions=True)
        for outcome in outcomes:
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
        return dict(zip(urls, outcomes))

    def extract(
        self,
        html: str,
        target: ScrapingTarget,
        page_url: str,
        region_keywords: Optional[List[str]] = None
    ) -> List[ScrapedRaw]:
        """
        Apply a target's selector rules to a page.

        Field lists are extracted independently and zipped by position. Address,
        phone and website fall back to the first match on the page. Only records
        with a name are emitted, at most max_results_per_page per page.
        """
        soup = BeautifulSoup(html, "html.parser")
        rules = target.selectors

        names = self._names(soup, rules.name)
        addresses = self._addresses(soup, rules.address, region_keywords or [])
        phones = [t for t in self._texts(soup, rules.phone) if PHONE_PATTERN.search(t)]
        websites = self._websites(soup, rules.website)
        ratings = [t for t in self._texts(soup, rules.rating) if "." in t or RATING_PATTERN.match(t)]
        prices = self._prices(soup, rules.price)
        reviews = self._reviews(soup, rules.reviews)

        records = []
        for i, name in enumerate(names[:self.max_results_per_page]):
            records.append(ScrapedRaw(
                name=name,
                address=self._pick(addresses, i, fallback=True),
                phone=self._pick(phones, i, fallback=True),
                website=self._pick(websites, i, fallback=True),
                rating_text=self._pick(ratings, i),
                price_text=self._pick(prices, i),
                review_snippets=reviews,
                page_url=page_url,
            ))
        return records

    @staticmethod
    def _pick(values: List[str], index: int, fallback: bool = False) -> Optional[str]:
        if index < len(values):
            return values[index]
        if fallback and values:
            return values[0]
        return None

    @staticmethod
    def _texts(soup: BeautifulSoup, rule: str) -> List[str]:
        texts = []
        for selector in split_selectors(rule):
            for element in soup.select(selector):
                text = element.get_text(" ", strip=True)
                if text:
                    texts.append(text)
        return texts

    def _names(self, soup: BeautifulSoup, rule: str) -> List[str]:
        names: List[str] = []
        for text in self._texts(soup, rule):
            # Skip fragments of a name already seen
            if len(text) >= MIN_NAME_LENGTH and not any(text in existing for existing in names):
                names.append(text)
        return names

    def _addresses(self, soup: BeautifulSoup, rule: str, region_keywords: List[str]) -> List[str]:
        addresses = []
        for text in self._texts(soup, rule):
            if len(text) < MIN_ADDRESS_LENGTH:
                continue
            if region_keywords and not any(k in text.lower() for k in region_keywords):
                continue
            addresses.append(text)
        return addresses

    @staticmethod
    def _websites(soup: BeautifulSoup, rule: str) -> List[str]:
        websites = []
        for selector in split_selectors(rule):
            for element in soup.select(selector):
                text = element.get_text(strip=True) or element.get("href", "")
                if text.startswith("http") or "www." in text:
                    websites.append(text)
        return websites

    def _prices(self, soup: BeautifulSoup, rule: str) -> List[str]:
        prices = []
        for text in self._texts(soup, rule):
            match = PRICE_PATTERN.search(text)
            if match and any(ch.isdigit() for ch in match.group(0)):
                prices.append(match.group(0).strip())
            elif "₦" in text or RANGE_PATTERN.search(text):
                prices.append(text)
        return prices

    @staticmethod
    def _reviews(soup: BeautifulSoup, rule: str) -> List[str]:
        selectors = split_selectors(rule) or [".review", ".comment", ".testimonial"]
        snippets = []
        for selector in selectors:
            for element in soup.select(selector):
                body = element.select_one('[class*="text"], [class*="body"], p') or element
                text = body.get_text(" ", strip=True)
                if len(text) >= MIN_REVIEW_LENGTH:
                    snippets.append(text)
        return snippets
