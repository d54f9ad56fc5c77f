"""
Maps raw adapter records onto the canonical LocationCandidate schema.

Each raw kind has its own mapping. Anything the source did not supply is
filled with a documented default and the field name is recorded in
defaulted_fields, so moderators can tell observed data from filler:

    coordinates   -> region centroid (coordinates_estimated=True)
    cuisine       -> [default cuisine tag]
    service_type  -> "both"
    hours         -> DEFAULT_HOURS weekly schedule
    description   -> "Discovered via <source>"
    price_info    -> "moderate" tier for the detected currency

Name and address are never defaulted: an empty string is left in place and
rejected by validation.
"""
import logging
import re
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from restaurant_discovery.data.api_models import OpeningPeriod
from restaurant_discovery.data.defaults import (
    DEFAULT_CUISINE_TAG,
    DEFAULT_HOURS,
    DEFAULT_REGION_CENTROID,
    DEFAULT_SERVICE_TYPE,
)
from restaurant_discovery.data.models import (
    Coordinates,
    DayHours,
    DiscoverySource,
    LocationCandidate,
    PriceInfo,
    ReviewSnippet,
)
from restaurant_discovery.data.raw_models import ApiRaw, RawCandidate, ScrapedRaw, SocialRaw
from restaurant_discovery.utils import currency

logger = logging.getLogger(__name__)

# Provider day-of-week index, 0 = Sunday
WEEKDAYS = ["sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday"]

SOURCE_LABELS = {
    DiscoverySource.API: "places API",
    DiscoverySource.SCRAPING: "web scraping",
    DiscoverySource.SOCIAL: "social media",
}

RATING_NUMBER = re.compile(r'\d+(?:\.\d+)?')
MAX_REVIEWS = 5
SOCIAL_EXCERPT_LENGTH = 200


def clean_text(value: Optional[str]) -> str:
    if not value:
        return ""
    return re.sub(r'\s+', ' ', value).strip()


def format_hhmm(value: Optional[str]) -> Optional[str]:
    """'0830' -> '08:30'"""
    if not value or len(value) != 4 or not value.isdigit():
        return None
    return f"{value[:2]}:{value[2:]}"


def parse_rating_text(text: Optional[str]) -> Optional[float]:
    """First number in the text if it lies within [0, 5], else unknown."""
    if not text:
        return None
    match = RATING_NUMBER.search(text)
    if not match:
        return None
    value = float(match.group(0))
    return value if 0 <= value <= 5 else None


def periods_to_hours(periods: List[OpeningPeriod]) -> Dict[str, DayHours]:
    """
    Map provider opening periods onto weekday names.

    Days without a period are closed. A period without a close point means
    open around the clock.
    """
    hours: Dict[str, DayHours] = {}
    for period in periods:
        day = WEEKDAYS[period.open.day]
        open_time = format_hhmm(period.open.time) or "00:00"
        close_time = format_hhmm(period.close.time) if period.close else None
        hours[day] = DayHours(open=open_time, close=close_time or "23:59", is_open=True)

    if not hours:
        return {}
    for day in WEEKDAYS:
        hours.setdefault(day, DayHours(open="00:00", close="00:00", is_open=False))
    return {day: hours[day] for day in WEEKDAYS[1:] + WEEKDAYS[:1]}


class Normalizer:
    """Raw record -> LocationCandidate. Pure apart from the generated id."""

    def __init__(
        self,
        region_centroid: Tuple[float, float] = DEFAULT_REGION_CENTROID,
        default_cuisine: str = DEFAULT_CUISINE_TAG
    ):
        self.region_centroid = region_centroid
        self.default_cuisine = default_cuisine

    def normalize(self, raw: RawCandidate, source: DiscoverySource) -> LocationCandidate:
        if raw.kind != source.value:
            raise ValueError(f"Raw record of kind '{raw.kind}' reported by a {source.value} adapter")

        if isinstance(raw, ApiRaw):
            fields = self._from_api(raw)
        elif isinstance(raw, ScrapedRaw):
            fields = self._from_scraped(raw)
        elif isinstance(raw, SocialRaw):
            fields = self._from_social(raw)
        else:
            raise TypeError(f"Unsupported raw record type: {type(raw).__name__}")

        return self._finish(fields, source)

    def _from_api(self, raw: ApiRaw) -> Dict[str, Any]:
        address = clean_text(raw.formatted_address)
        code = currency.currency_for_address(address)

        fields: Dict[str, Any] = {
            "name": clean_text(raw.name),
            "address": address,
            "coordinates": self._coordinates(raw.lat, raw.lng),
            "phone": clean_text(raw.phone),
            "website": clean_text(raw.website),
            "rating": raw.rating if raw.rating is not None and 0 <= raw.rating <= 5 else None,
            "review_count": raw.user_ratings_total,
            "source_url": raw.source_url,
            "is_open_now": raw.open_now,
            "images": list(raw.photo_urls),
            "reviews": [
                ReviewSnippet(
                    author=clean_text(r.author) or "Anonymous",
                    rating=r.rating,
                    text=clean_text(r.text),
                    posted_at=self._timestamp(r.time),
                )
                for r in raw.reviews[:MAX_REVIEWS]
            ],
            "hours": periods_to_hours(raw.opening_periods),
        }
        if raw.price_level is not None:
            fields["price_info"] = self._price_from_level(raw.price_level, code)
        else:
            fields["currency"] = code
        return fields

    def _from_scraped(self, raw: ScrapedRaw) -> Dict[str, Any]:
        address = clean_text(raw.address)
        code = currency.currency_for_address(address)

        fields: Dict[str, Any] = {
            "name": clean_text(raw.name),
            "address": address,
            "coordinates": None,
            "phone": clean_text(raw.phone),
            "website": clean_text(raw.website),
            "rating": parse_rating_text(raw.rating_text),
            "source_url": raw.page_url,
            "reviews": [ReviewSnippet(text=clean_text(s)) for s in raw.review_snippets[:MAX_REVIEWS]],
        }
        bounds = currency.parse_price_text(raw.price_text, code)
        if bounds:
            low, high = bounds
            fields["price_info"] = PriceInfo(
                display=currency.format_price_range(low, high, code),
                price_min=low,
                price_max=high,
                currency=code,
            )
        else:
            fields["currency"] = code
        return fields

    def _from_social(self, raw: SocialRaw) -> Dict[str, Any]:
        address = clean_text(raw.region_hint)
        excerpt = clean_text(raw.text)[:SOCIAL_EXCERPT_LENGTH]
        return {
            "name": clean_text(raw.proposed_name),
            "address": address,
            "coordinates": self._coordinates(raw.lat, raw.lng),
            "description": f"Discovered via {SOURCE_LABELS[DiscoverySource.SOCIAL]}: {excerpt}",
            "source_url": raw.post_url,
            "currency": currency.currency_for_address(address),
        }

    def _finish(self, fields: Dict[str, Any], source: DiscoverySource) -> LocationCandidate:
        defaulted: List[str] = []

        coordinates = fields.pop("coordinates", None)
        estimated = coordinates is None
        if estimated:
            coordinates = Coordinates(lat=self.region_centroid[0], lng=self.region_centroid[1])
            defaulted.append("coordinates")

        if not fields.get("cuisine"):
            fields["cuisine"] = [self.default_cuisine]
            defaulted.append("cuisine")
        else:
            fields["cuisine"] = list(dict.fromkeys(fields["cuisine"]))

        if not fields.get("service_type"):
            fields["service_type"] = DEFAULT_SERVICE_TYPE
            defaulted.append("service_type")

        if not fields.get("hours"):
            fields["hours"] = {day: DayHours(**h) for day, h in DEFAULT_HOURS.items()}
            defaulted.append("hours")

        if not fields.get("description"):
            fields["description"] = f"Discovered via {SOURCE_LABELS[source]}"
            defaulted.append("description")

        code = fields.pop("currency", None)
        if "price_info" not in fields:
            fields["price_info"] = self._price_from_level(None, code or currency.DEFAULT_CURRENCY)
            defaulted.append("price_info")

        return LocationCandidate(
            id=uuid.uuid4().hex,
            coordinates=coordinates,
            coordinates_estimated=estimated,
            discovery_source=source,
            defaulted_fields=defaulted,
            **fields,
        )

    @staticmethod
    def _coordinates(lat: Optional[float], lng: Optional[float]) -> Optional[Coordinates]:
        if lat is None or lng is None:
            return None
        return Coordinates(lat=lat, lng=lng)

    @staticmethod
    def _price_from_level(price_level: Optional[int], code: str) -> PriceInfo:
        low, high = currency.tier_range(code, currency.price_tier_for_level(price_level))
        return PriceInfo(
            display=currency.format_price_range(low, high, code),
            price_min=low,
            price_max=high,
            currency=code,
            price_level=price_level,
        )

    @staticmethod
    def _timestamp(unix_time: Optional[int]) -> Optional[str]:
        if unix_time is None:
            return None
        return datetime.fromtimestamp(unix_time, tz=timezone.utc).isoformat()
