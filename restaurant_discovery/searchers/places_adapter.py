"""
Structured places API adapter: text search, then a detail lookup per hit
"""
import asyncio
import logging
from typing import List, Optional

from restaurant_discovery.clients.client_protocols import PlacesClientProtocol
from restaurant_discovery.data.api_models import PlaceDetails, PlaceGeometry, PlaceSearchResult
from restaurant_discovery.data.models import DiscoverySource
from restaurant_discovery.data.raw_models import ApiRaw, RawReview
from restaurant_discovery.searchers.base import DiscoveryContext, SourceAdapter
from restaurant_discovery.searchers.query_coalescer import BatchedQueryCoalescer
from restaurant_discovery.utils.ttl_cache import TTLCache

logger = logging.getLogger(__name__)

MAX_REVIEWS_PER_PLACE = 5


class PlacesApiAdapter(SourceAdapter):
    """
    Discovers places through a text search + details API.

    Both lookups go through coalescers, so repeated queries and places that
    show up under several queries are fetched once per cache lifetime.
    """

    source = DiscoverySource.API

    def __init__(
        self,
        client: PlacesClientProtocol,
        cache: Optional[TTLCache] = None,
        name: str = "places-api",
        timeout: float = 60.0,
        max_reviews: int = MAX_REVIEWS_PER_PLACE,
    ):
        self.client = client
        self.name = name
        self.timeout = timeout
        self.max_reviews = max_reviews
        # One cache, disjoint key prefixes
        self.cache = cache if cache is not None else TTLCache()
        self.search_coalescer = BatchedQueryCoalescer(self.cache, name=f"{name}-search")
        self.details_coalescer = BatchedQueryCoalescer(self.cache, name=f"{name}-details")

    async def discover(self, query: str, context: DiscoveryContext) -> List[ApiRaw]:
        response = await self.search_coalescer.acquire(
            self._search_key(query, context),
            lambda _key: self.client.text_search(
                query,
                location=context.region_centroid,
                radius=context.search_radius_m,
            ),
        )
        hits = response.results[:context.max_results_per_query]
        logger.info(f"[{self.name}] '{query}' returned {len(hits)} places")

        outcomes = await asyncio.gather(
            *(self._details_for(hit) for hit in hits),
            return_exceptions=True,
        )

        candidates = []
        for hit, outcome in zip(hits, outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, Exception):
                logger.warning(f"[{self.name}] Dropping place {hit.place_id}: details lookup failed: {outcome}")
                continue
            candidates.append(self._to_raw(hit, outcome))
        return candidates

    @staticmethod
    def _search_key(query: str, context: DiscoveryContext) -> str:
        lat, lng = context.region_centroid
        return f"search:{query}@{lat},{lng}/{context.search_radius_m}"

    async def _details_for(self, hit: PlaceSearchResult) -> PlaceDetails:
        return await self.details_coalescer.acquire(
            f"details:{hit.place_id}",
            lambda _key: self.client.place_details(hit.place_id),
        )

    def _to_raw(self, hit: PlaceSearchResult, details: PlaceDetails) -> ApiRaw:
        location = self._location(details.geometry) or self._location(hit.geometry)
        opening_hours = details.opening_hours

        return ApiRaw(
            place_id=hit.place_id,
            name=details.name or hit.name,
            formatted_address=details.formatted_address or hit.formatted_address,
            lat=location.lat if location else None,
            lng=location.lng if location else None,
            phone=details.formatted_phone_number,
            website=details.website,
            rating=details.rating,
            user_ratings_total=details.user_ratings_total,
            price_level=details.price_level,
            opening_periods=opening_hours.periods if opening_hours else [],
            open_now=opening_hours.open_now if opening_hours else None,
            photo_urls=[self.client.photo_url(photo.photo_reference) for photo in details.photos],
            reviews=[
                RawReview(author=r.author_name, rating=r.rating, text=r.text, time=r.time)
                for r in details.reviews[:self.max_reviews]
            ],
            source_url=f"https://maps.google.com/place/{hit.place_id}",
        )

    @staticmethod
    def _location(geometry: Optional[PlaceGeometry]):
        if geometry and geometry.location:
            return geometry.location
        return None
