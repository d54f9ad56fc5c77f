"""
Social feed adapter: proposes restaurant names from free-text posts
"""
import logging
import re
from typing import List, Optional

from restaurant_discovery.clients.client_protocols import SocialFeedClientProtocol
from restaurant_discovery.data.models import DiscoverySource
from restaurant_discovery.data.raw_models import SocialRaw
from restaurant_discovery.searchers.base import DiscoveryContext, SourceAdapter
from restaurant_discovery.searchers.query_coalescer import BatchedQueryCoalescer
from restaurant_discovery.utils.ttl_cache import TTLCache

logger = logging.getLogger(__name__)

# "Mama Put Bukka", "Iya Basira Restaurant": 2-4 capitalized words before a venue keyword
NAME_PATTERN = re.compile(r'\b([A-Z][a-z]+(?:\s[A-Z][a-z]+){1,3})\s+(?i:restaurant|bukka|spot|place)\b')


def propose_name(text: str) -> Optional[str]:
    match = NAME_PATTERN.search(text)
    return match.group(1) if match else None


class SocialFeedAdapter(SourceAdapter):
    """Turns recent posts into name-only candidates."""

    source = DiscoverySource.SOCIAL

    def __init__(
        self,
        client: SocialFeedClientProtocol,
        cache: Optional[TTLCache] = None,
        name: str = "social-feed",
        timeout: float = 30.0,
    ):
        self.client = client
        self.name = name
        self.timeout = timeout
        self.coalescer = BatchedQueryCoalescer(cache, name=f"{name}-search")

    async def discover(self, query: str, context: DiscoveryContext) -> List[SocialRaw]:
        response = await self.coalescer.acquire(
            query,
            lambda _key: self.client.search_recent(query, max_results=context.max_results_per_query),
        )

        region_hint = self._region_hint(context.region_keywords)
        candidates = []
        for post in response.data:
            proposed = propose_name(post.text)
            if not proposed:
                continue
            lowered = post.text.lower()
            if context.region_keywords and not any(k in lowered for k in context.region_keywords):
                logger.debug(f"[{self.name}] Skipping post {post.id}: no region keyword")
                continue

            candidates.append(SocialRaw(
                proposed_name=proposed,
                text=post.text,
                post_id=post.id,
                post_url=self.client.post_url(post.id),
                lat=post.geo.lat if post.geo else None,
                lng=post.geo.lng if post.geo else None,
                region_hint=region_hint,
            ))

        logger.info(f"[{self.name}] '{query}': {len(candidates)} of {len(response.data)} posts proposed a name")
        return candidates

    @staticmethod
    def _region_hint(region_keywords: List[str]) -> Optional[str]:
        if not region_keywords:
            return None
        return region_keywords[0].title()
