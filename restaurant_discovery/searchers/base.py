"""
Source adapter framework
"""
from abc import ABC, abstractmethod
from typing import List, Tuple

from pydantic import BaseModel, Field

from restaurant_discovery.data import defaults
from restaurant_discovery.data.models import DiscoverySource
from restaurant_discovery.data.raw_models import RawCandidate


class DiscoveryContext(BaseModel):
    """Per-run search parameters handed to every adapter call"""
    model_config = {"frozen": True}

    region_centroid: Tuple[float, float] = defaults.DEFAULT_REGION_CENTROID
    search_radius_m: int = defaults.DEFAULT_SEARCH_RADIUS_M
    max_results_per_query: int = 10
    region_keywords: List[str] = Field(default_factory=lambda: list(defaults.DEFAULT_REGION_KEYWORDS))


class SourceAdapter(ABC):
    """
    One upstream kind (structured API, scraped pages, social feed).

    discover() may raise; the orchestrator wraps every call in a timeout and
    an error boundary, so adapters do not need to catch their own failures.
    """

    source: DiscoverySource
    name: str = "adapter"
    timeout: float = 60.0

    @abstractmethod
    async def discover(self, query: str, context: DiscoveryContext) -> List[RawCandidate]:
        """Return raw candidates for one query."""
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, source={self.source.value!r})"
