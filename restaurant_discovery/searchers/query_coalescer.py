"""
Batched query coalescer for rate-limited upstream lookups.

Concurrent callers asking for the same (normalized) key share one in-flight
future. Distinct keys that arrive within a short window are grouped into a
batch and dispatched together, either as one grouped upstream call or item
by item with a small delay between items. Successful results are cached.
"""
import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Union

from restaurant_discovery.utils.ttl_cache import TTLCache, DEFAULT_TTL_SECONDS

logger = logging.getLogger(__name__)

FetchFn = Callable[[str], Awaitable[Any]]
GroupedFetchFn = Callable[[List[str]], Awaitable[Dict[str, Union[Any, Exception]]]]

BATCH_WINDOW_SECONDS = 0.1
MAX_BATCH_SIZE = 10
ITEM_DELAY_SECONDS = 0.05


@dataclass
class _PendingItem:
    cache_key: str
    query: str
    fetch_fn: Optional[FetchFn]
    future: asyncio.Future


def _consume_exception(future: asyncio.Future) -> None:
    # Every waiter may have been cancelled; avoid "exception never retrieved"
    if not future.cancelled():
        future.exception()


class BatchedQueryCoalescer:
    """
    Coalesces and batches lookups against one upstream.

    Usage:
        coalescer = BatchedQueryCoalescer(TTLCache(), name="places-search")
        result = await coalescer.acquire("amala lagos", client.text_search)

    The cache instance is owned by the caller so several coalescers (or a
    test) can share or inspect it.
    """

    def __init__(
        self,
        cache: Optional[TTLCache] = None,
        *,
        name: str = "coalescer",
        window: float = BATCH_WINDOW_SECONDS,
        max_batch_size: int = MAX_BATCH_SIZE,
        item_delay: float = ITEM_DELAY_SECONDS,
        cache_ttl: float = DEFAULT_TTL_SECONDS,
        grouped_fetch: Optional[GroupedFetchFn] = None,
    ):
        if max_batch_size < 1:
            raise ValueError("max_batch_size must be at least 1")
        self.cache = cache if cache is not None else TTLCache(default_ttl=cache_ttl)
        self.name = name
        self.window = window
        self.max_batch_size = max_batch_size
        self.item_delay = item_delay
        self.cache_ttl = cache_ttl
        self.grouped_fetch = grouped_fetch

        self._pending: List[_PendingItem] = []
        self._in_flight: Dict[str, asyncio.Future] = {}
        self._timer: Optional[asyncio.TimerHandle] = None
        self._dispatch_tasks: Set[asyncio.Task] = set()
        self.batches_dispatched = 0
        self.coalesced_requests = 0

    @staticmethod
    def normalize_key(key: str) -> str:
        return re.sub(r'\s+', ' ', key.strip().lower())

    async def acquire(self, key: str, fetch_fn: Optional[FetchFn] = None) -> Any:
        """
        Return the upstream result for key, fetching at most once per window.

        Raises whatever fetch_fn raised for this specific key. Failures are
        not cached, so the next call retries.
        """
        cache_key = self.normalize_key(key)
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug(f"[{self.name}] Cache hit for '{cache_key}'")
            return cached

        future = self._in_flight.get(cache_key)
        if future is None:
            if fetch_fn is None and self.grouped_fetch is None:
                raise ValueError("fetch_fn is required when no grouped fetch is configured")
            loop = asyncio.get_running_loop()
            future = loop.create_future()
            future.add_done_callback(_consume_exception)
            self._in_flight[cache_key] = future
            self._pending.append(_PendingItem(cache_key, key, fetch_fn, future))
            self._schedule(loop)
        else:
            self.coalesced_requests += 1
            logger.debug(f"[{self.name}] Coalesced request for '{cache_key}'")

        # Shielded so one cancelled caller does not cancel the shared lookup
        return await asyncio.shield(future)

    def _schedule(self, loop: asyncio.AbstractEventLoop) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

        if len(self._pending) >= self.max_batch_size:
            self._flush()
        else:
            self._timer = loop.call_later(self.window, self._flush)

    def _flush(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

        while self._pending:
            batch = self._pending[:self.max_batch_size]
            self._pending = self._pending[self.max_batch_size:]
            task = asyncio.ensure_future(self._dispatch(batch))
            self._dispatch_tasks.add(task)
            task.add_done_callback(self._dispatch_tasks.discard)

    async def _dispatch(self, batch: List[_PendingItem]) -> None:
        self.batches_dispatched += 1
        logger.debug(f"[{self.name}] Processing batch of {len(batch)} requests")

        try:
            if self.grouped_fetch is not None:
                await self._dispatch_grouped(batch)
            else:
                await self._dispatch_sequential(batch)
        except asyncio.CancelledError:
            for item in batch:
                self._in_flight.pop(item.cache_key, None)
                if not item.future.done():
                    item.future.cancel()
            raise

    async def _dispatch_sequential(self, batch: List[_PendingItem]) -> None:
        for index, item in enumerate(batch):
            if index > 0 and self.item_delay > 0:
                await asyncio.sleep(self.item_delay)
            try:
                result = await item.fetch_fn(item.query)
            except Exception as e:
                logger.debug(f"[{self.name}] Lookup failed for '{item.cache_key}': {e}")
                self._settle(item, error=e)
                continue
            self._settle(item, result=result)

    async def _dispatch_grouped(self, batch: List[_PendingItem]) -> None:
        queries = [item.query for item in batch]
        try:
            outcomes = await self.grouped_fetch(queries)
        except Exception as e:
            logger.warning(f"[{self.name}] Grouped lookup of {len(batch)} keys failed: {e}")
            for item in batch:
                self._settle(item, error=e)
            return

        for item in batch:
            if item.query not in outcomes:
                self._settle(item, error=KeyError(f"No result returned for '{item.query}'"))
                continue
            outcome = outcomes[item.query]
            if isinstance(outcome, Exception):
                self._settle(item, error=outcome)
            else:
                self._settle(item, result=outcome)

    def _settle(self, item: _PendingItem, result: Any = None, error: Optional[Exception] = None) -> None:
        if self._in_flight.get(item.cache_key) is item.future:
            del self._in_flight[item.cache_key]

        if item.future.done():
            return
        if error is not None:
            item.future.set_exception(error)
            return

        # Only real results are cached; a None "not found" is re-asked next time
        if result is not None:
            self.cache.set(item.cache_key, result, ttl=self.cache_ttl)
        item.future.set_result(result)

    def stats(self) -> Dict[str, int]:
        cache_stats = self.cache.stats()
        return {
            "cache_size": cache_stats["size"],
            "cache_hits": cache_stats["hits"],
            "cache_misses": cache_stats["misses"],
            "pending": len(self._pending),
            "in_flight": len(self._in_flight),
            "batches_dispatched": self.batches_dispatched,
            "coalesced_requests": self.coalesced_requests,
        }
