"""
Social feed recent-search client over aiohttp
"""
import os
import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from restaurant_discovery.clients.http_client import BaseHTTPClient
from restaurant_discovery.data.api_models import SocialPost, SocialPostGeo, SocialSearchResponse
from restaurant_discovery.data.errors import AdapterError

logger = logging.getLogger(__name__)

SOCIAL_SEARCH_URL = "https://api.twitter.com/2/tweets/search/recent"


class SocialFeedClient(BaseHTTPClient):
    """Bearer-token client for a recent-post search endpoint."""

    def __init__(self, bearer_token: Optional[str] = None, search_url: str = SOCIAL_SEARCH_URL, **kwargs):
        super().__init__(**kwargs)
        self.bearer_token = bearer_token or os.getenv("SOCIAL_FEED_BEARER_TOKEN")
        if not self.bearer_token:
            raise ValueError("Bearer token must be provided or set in SOCIAL_FEED_BEARER_TOKEN environment variable")
        self.search_url = search_url

    async def search_recent(self, query: str, max_results: int = 10) -> SocialSearchResponse:
        params = {
            "query": query,
            # The endpoint rejects fewer than 10 results per page
            "max_results": max(10, min(max_results, 100)),
            "tweet.fields": "geo,created_at",
            "expansions": "geo.place_id",
            "place.fields": "geo",
        }
        headers = {"Authorization": f"Bearer {self.bearer_token}"}
        payload = await self.get_json(self.search_url, params=params, headers=headers)

        try:
            return SocialSearchResponse(data=[self._to_post(item, payload) for item in payload.get("data") or []])
        except (ValidationError, KeyError, TypeError) as e:
            raise AdapterError(f"Failed to parse social search response for '{query}': {e}") from e

    @staticmethod
    def _to_post(item: Dict[str, Any], payload: Dict[str, Any]) -> SocialPost:
        geo = None
        place_id = (item.get("geo") or {}).get("place_id")
        if place_id:
            for place in (payload.get("includes") or {}).get("places", []):
                bbox = (place.get("geo") or {}).get("bbox")
                if place.get("id") == place_id and bbox and len(bbox) == 4:
                    # bbox is [west, south, east, north]; use its centre
                    geo = SocialPostGeo(lat=(bbox[1] + bbox[3]) / 2, lng=(bbox[0] + bbox[2]) / 2)
                    break
        return SocialPost(id=str(item["id"]), text=item["text"], geo=geo)

    def post_url(self, post_id: str) -> str:
        return f"https://twitter.com/i/status/{post_id}"
