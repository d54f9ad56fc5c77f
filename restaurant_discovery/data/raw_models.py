"""
Raw candidate records as produced by the source adapters.

Each adapter emits its own shape; the Normalizer maps each kind explicitly.
"""
from typing import Optional, List, Union, Literal, Annotated
from pydantic import BaseModel, Field

from restaurant_discovery.data.api_models import OpeningPeriod


class RawReview(BaseModel):
    author: Optional[str] = None
    rating: Optional[float] = None
    text: Optional[str] = None
    time: Optional[int] = None


class ApiRaw(BaseModel):
    """Place assembled from a text search hit and its detail lookup"""
    kind: Literal["api"] = "api"
    place_id: str
    name: Optional[str] = None
    formatted_address: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    rating: Optional[float] = None
    user_ratings_total: Optional[int] = None
    price_level: Optional[int] = None
    opening_periods: List[OpeningPeriod] = Field(default_factory=list)
    open_now: Optional[bool] = None
    photo_urls: List[str] = Field(default_factory=list)
    reviews: List[RawReview] = Field(default_factory=list)
    source_url: str


class ScrapedRaw(BaseModel):
    """Text pulled from a page by selector rules, unparsed"""
    kind: Literal["scraping"] = "scraping"
    name: str
    address: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    rating_text: Optional[str] = None
    price_text: Optional[str] = None
    review_snippets: List[str] = Field(default_factory=list)
    page_url: str


class SocialRaw(BaseModel):
    kind: Literal["social"] = "social"
    proposed_name: str
    text: str
    post_id: str
    post_url: str
    lat: Optional[float] = None
    lng: Optional[float] = None
    region_hint: Optional[str] = None


RawCandidate = Annotated[Union[ApiRaw, ScrapedRaw, SocialRaw], Field(discriminator="kind")]
