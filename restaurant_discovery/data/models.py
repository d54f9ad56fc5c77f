"""
Canonical data models for the restaurant discovery pipeline
"""
from enum import Enum
from typing import Optional, List, Dict, Literal
from pydantic import BaseModel, Field, computed_field

from restaurant_discovery.data.validation_models import ValidationResult


class DiscoverySource(str, Enum):
    """Kind of upstream a candidate was discovered through"""
    API = "api"
    SCRAPING = "scraping"
    SOCIAL = "social"


class CandidateStatus(str, Enum):
    PENDING = "pending"
    DUPLICATE = "duplicate"
    REJECTED = "rejected"


class Coordinates(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class PriceInfo(BaseModel):
    """Display price plus optional numeric bounds in minor currency units (kobo, cents, pence)"""
    display: str = ""
    price_min: Optional[int] = None
    price_max: Optional[int] = None
    currency: str = "USD"
    price_level: Optional[int] = Field(None, ge=0, le=4)


class DayHours(BaseModel):
    open: str
    close: str
    is_open: bool = False


class ReviewSnippet(BaseModel):
    author: str = "Anonymous"
    rating: Optional[float] = None
    text: str = ""
    posted_at: Optional[str] = None


class LocationCandidate(BaseModel):
    """A proposed restaurant record flowing through the pipeline"""
    id: str
    name: str
    address: str
    coordinates: Coordinates
    coordinates_estimated: bool = False
    phone: str = ""
    website: str = ""
    description: str = ""
    cuisine: List[str] = Field(default_factory=list)
    service_type: Literal["dine-in", "takeaway", "both"] = "both"

    # None means unknown; only display helpers coerce to 0
    rating: Optional[float] = None
    review_count: Optional[int] = None

    discovery_source: DiscoverySource
    source_url: str

    price_info: PriceInfo = Field(default_factory=PriceInfo)
    hours: Dict[str, DayHours] = Field(default_factory=dict)
    is_open_now: Optional[bool] = None
    images: List[str] = Field(default_factory=list)
    reviews: List[ReviewSnippet] = Field(default_factory=list)

    defaulted_fields: List[str] = Field(default_factory=list)
    status: CandidateStatus = CandidateStatus.PENDING
    validation: Optional[ValidationResult] = None
    duplicate_of: Optional[str] = None

    @property
    def display_rating(self) -> float:
        return self.rating if self.rating is not None else 0.0

    @property
    def display_review_count(self) -> int:
        return self.review_count if self.review_count is not None else 0


# Weights for the blended duplicate score
NAME_WEIGHT = 0.4
ADDRESS_WEIGHT = 0.3
PHONE_WEIGHT = 0.2
PROXIMITY_WEIGHT = 0.1


class SimilarityScore(BaseModel):
    """Per-pair similarity breakdown. Transient, never persisted."""
    name_score: float = Field(..., ge=0, le=1)
    address_score: float = Field(..., ge=0, le=1)
    phone_score: float = Field(..., ge=0, le=1)
    proximity_score: float = Field(0.0, ge=0, le=1)

    @computed_field
    @property
    def overall_score(self) -> float:
        return (
            self.name_score * NAME_WEIGHT
            + self.address_score * ADDRESS_WEIGHT
            + self.phone_score * PHONE_WEIGHT
            + self.proximity_score * PROXIMITY_WEIGHT
        )


class DuplicateVerdict(BaseModel):
    """Outcome of duplicate resolution for one candidate"""
    kind: Literal["unique", "duplicate_of_existing", "duplicate_in_batch"] = "unique"
    matched_id: Optional[str] = None
    matched_name: Optional[str] = None
    score: Optional[SimilarityScore] = None
    reasons: List[str] = Field(default_factory=list)
    primary_reason: Optional[str] = None

    @property
    def is_duplicate(self) -> bool:
        return self.kind != "unique"


class RejectedCandidate(BaseModel):
    candidate: LocationCandidate
    validation: ValidationResult


class DiscoveryStats(BaseModel):
    """Run diagnostics returned alongside the results"""
    raw_counts: Dict[str, int] = Field(default_factory=dict)
    failed_tasks: int = 0
    timed_out_tasks: int = 0
    cancelled_tasks: int = 0
    normalization_failures: int = 0
    defaults_applied: Dict[str, int] = Field(default_factory=dict)
    existing_lookup_failed: bool = False
    existing_count: int = 0
    duration_seconds: float = 0.0
    final_state: str = "idle"


class DiscoveryResult(BaseModel):
    accepted: List[LocationCandidate] = Field(default_factory=list)
    duplicates: List[LocationCandidate] = Field(default_factory=list)
    rejected: List[RejectedCandidate] = Field(default_factory=list)
    stats: DiscoveryStats = Field(default_factory=DiscoveryStats)

    @property
    def is_empty(self) -> bool:
        return not (self.accepted or self.duplicates or self.rejected)
