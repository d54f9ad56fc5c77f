"""
Protocols (interfaces) for upstream client implementations.
Allows for dependency injection and easier testing.
"""
from typing import Protocol, Optional, Tuple

from restaurant_discovery.data.api_models import (
    PlaceDetails,
    PlacesTextSearchResponse,
    SocialSearchResponse,
)


class PlacesClientProtocol(Protocol):
    """
    Protocol defining the interface for structured place API clients.

    This allows for dependency injection where we can swap
    real implementations with mock implementations for testing.
    """

    async def __aenter__(self):
        ...

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        ...

    async def text_search(
        self,
        query: str,
        location: Optional[Tuple[float, float]] = None,
        radius: Optional[int] = None
    ) -> PlacesTextSearchResponse:
        """
        Search places by free text, optionally biased to a circle.

        Args:
            query: Free text query
            location: Optional (lat, lng) bias centre
            radius: Optional bias radius in meters

        Returns:
            PlacesTextSearchResponse object
        """
        ...

    async def place_details(self, place_id: str) -> PlaceDetails:
        """
        Fetch phone, website, hours, photos and reviews for one place.

        Raises:
            AdapterError: If the place cannot be fetched or parsed
        """
        ...

    def photo_url(self, photo_reference: str, max_width: int = 400) -> str:
        ...


class SocialFeedClientProtocol(Protocol):
    """Protocol for social feed search clients."""

    async def __aenter__(self):
        ...

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        ...

    async def search_recent(self, query: str, max_results: int = 10) -> SocialSearchResponse:
        ...

    def post_url(self, post_id: str) -> str:
        ...


class PageFetcherProtocol(Protocol):
    """
    Fetches rendered HTML for a page.

    Implementations may drive a headless browser or use plain HTTP; the
    scraping adapter only needs the final markup.
    """

    async def __aenter__(self):
        ...

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        ...

    async def fetch(self, url: str) -> str:
        ...
