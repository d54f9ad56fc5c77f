"""
Places API client (text search + place details) over aiohttp
"""
import os
import logging
from typing import Optional, Tuple

from pydantic import ValidationError

from restaurant_discovery.clients.http_client import BaseHTTPClient
from restaurant_discovery.data.api_models import (
    PlaceDetails,
    PlaceDetailsResponse,
    PlacesTextSearchResponse,
)
from restaurant_discovery.data.errors import AdapterError

logger = logging.getLogger(__name__)

PLACES_BASE_URL = "https://maps.googleapis.com/maps/api/place"

DETAIL_FIELDS = ",".join([
    "name",
    "formatted_address",
    "geometry",
    "photos",
    "reviews",
    "rating",
    "user_ratings_total",
    "opening_hours",
    "price_level",
    "website",
    "formatted_phone_number",
])

# Statuses that mean "request worked" for the places endpoints
OK_STATUSES = {"OK", "ZERO_RESULTS"}


class PlacesClient(BaseHTTPClient):
    """Client for the places text search and details endpoints."""

    def __init__(self, api_key: Optional[str] = None, base_url: str = PLACES_BASE_URL, **kwargs):
        super().__init__(**kwargs)
        self.api_key = api_key or os.getenv("GOOGLE_PLACES_API_KEY")
        if not self.api_key:
            raise ValueError("Places API key must be provided or set in GOOGLE_PLACES_API_KEY environment variable")
        self.base_url = base_url.rstrip("/")

    async def text_search(
        self,
        query: str,
        location: Optional[Tuple[float, float]] = None,
        radius: Optional[int] = None
    ) -> PlacesTextSearchResponse:
        params = {"query": query, "key": self.api_key}
        if location:
            params["location"] = f"{location[0]},{location[1]}"
        if radius:
            params["radius"] = radius

        payload = await self.get_json(f"{self.base_url}/textsearch/json", params=params)
        try:
            response = PlacesTextSearchResponse(**payload)
        except ValidationError as e:
            raise AdapterError(f"Failed to parse text search response for '{query}': {e}") from e

        if response.status and response.status not in OK_STATUSES:
            raise AdapterError(f"Text search for '{query}' returned {response.status}: {response.error_message}")

        logger.debug(f"Text search '{query}' returned {len(response.results)} results")
        return response

    async def place_details(self, place_id: str) -> PlaceDetails:
        params = {"place_id": place_id, "fields": DETAIL_FIELDS, "key": self.api_key}
        payload = await self.get_json(f"{self.base_url}/details/json", params=params)
        try:
            response = PlaceDetailsResponse(**payload)
        except ValidationError as e:
            raise AdapterError(f"Failed to parse details for place {place_id}: {e}") from e

        if response.status not in OK_STATUSES or response.result is None:
            raise AdapterError(f"Details lookup for place {place_id} returned {response.status}")
        return response.result

    def photo_url(self, photo_reference: str, max_width: int = 400) -> str:
        return f"{self.base_url}/photo?maxwidth={max_width}&photoreference={photo_reference}&key={self.api_key}"
