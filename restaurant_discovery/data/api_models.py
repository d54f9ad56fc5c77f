"""
API response models for external API integrations (places API, social feed).
"""
from typing import Optional, List
from pydantic import BaseModel, Field


# Places text search response models
class PlaceLocation(BaseModel):
    lat: float
    lng: float


class PlaceGeometry(BaseModel):
    location: Optional[PlaceLocation] = None


class PlaceSearchResult(BaseModel):
    """Single record from the places text search endpoint."""
    place_id: str
    name: Optional[str] = None
    formatted_address: Optional[str] = None
    geometry: Optional[PlaceGeometry] = None


class PlacesTextSearchResponse(BaseModel):
    """Complete places text search response."""
    results: List[PlaceSearchResult] = Field(default_factory=list)
    status: Optional[str] = None
    error_message: Optional[str] = None
    next_page_token: Optional[str] = None


# Place details response models
class OpeningPeriodPoint(BaseModel):
    """Provider day-of-week point. day: 0 = Sunday, time: 'HHMM'."""
    day: int = Field(..., ge=0, le=6)
    time: Optional[str] = None


class OpeningPeriod(BaseModel):
    open: OpeningPeriodPoint
    close: Optional[OpeningPeriodPoint] = None


class OpeningHours(BaseModel):
    open_now: Optional[bool] = None
    periods: List[OpeningPeriod] = Field(default_factory=list)


class PlacePhoto(BaseModel):
    photo_reference: str


class PlaceReview(BaseModel):
    author_name: Optional[str] = None
    rating: Optional[float] = None
    text: Optional[str] = None
    time: Optional[int] = None


class PlaceDetails(BaseModel):
    """Place detail record, only the fields requested by PlacesClient."""
    name: Optional[str] = None
    formatted_address: Optional[str] = None
    geometry: Optional[PlaceGeometry] = None
    formatted_phone_number: Optional[str] = None
    website: Optional[str] = None
    rating: Optional[float] = None
    user_ratings_total: Optional[int] = None
    price_level: Optional[int] = None
    opening_hours: Optional[OpeningHours] = None
    photos: List[PlacePhoto] = Field(default_factory=list)
    reviews: List[PlaceReview] = Field(default_factory=list)


class PlaceDetailsResponse(BaseModel):
    result: Optional[PlaceDetails] = None
    status: Optional[str] = None
    error_message: Optional[str] = None


# Social feed search response models
class SocialPostGeo(BaseModel):
    lat: float
    lng: float


class SocialPost(BaseModel):
    id: str
    text: str
    geo: Optional[SocialPostGeo] = None


class SocialSearchResponse(BaseModel):
    data: List[SocialPost] = Field(default_factory=list)
