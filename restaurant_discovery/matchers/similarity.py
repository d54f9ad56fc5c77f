"""
String and geographic similarity functions used for duplicate detection.

All functions are pure. String metrics return a float in [0, 1] where two
empty inputs count as identical and a single empty input counts as no match,
so missing fields never collapse two candidates into one.
"""
import math
import re
from typing import Tuple

from rapidfuzz.distance import JaroWinkler, Levenshtein

EARTH_RADIUS_M = 6_371_000

# Proximity decays linearly between these distances
PROXIMITY_FULL_MATCH_M = 100.0
PROXIMITY_ZERO_MATCH_M = 1000.0

ROAD_TYPE_TOKENS = r'\b(street|st|road|rd|avenue|ave|lane|ln)\b'

LatLng = Tuple[float, float]


def _empty_guard(a: str, b: str):
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    return None


def string_similarity(a: str, b: str) -> float:
    """
    Jaro-Winkler similarity.

    The Jaro score is boosted by 0.1 per shared prefix character (up to 4)
    once it exceeds 0.7, which rewards name variants like
    "mama cass" / "mama cass kitchen".
    """
    guarded = _empty_guard(a, b)
    if guarded is not None:
        return guarded
    if a == b:
        return 1.0
    # Fixed argument order keeps the greedy match window symmetric
    if b < a:
        a, b = b, a
    return JaroWinkler.similarity(a, b, prefix_weight=0.1)


def edit_distance_similarity(a: str, b: str) -> float:
    """(max_len - levenshtein) / max_len, with no prefix bias."""
    guarded = _empty_guard(a, b)
    if guarded is not None:
        return guarded
    longest = max(len(a), len(b))
    return (longest - Levenshtein.distance(a, b)) / longest


def normalize_address(address: str) -> str:
    if not address:
        return ""

    normalized = address.lower()

    # Remove road type words and their abbreviations
    normalized = re.sub(ROAD_TYPE_TOKENS, '', normalized)

    # Remove all punctuation except spaces
    normalized = re.sub(r'[^\w\s]', '', normalized)

    normalized = re.sub(r'\s+', ' ', normalized)
    normalized = normalized.strip()

    # Punctuation removal can expose a new road token ("st." -> "st")
    if re.search(ROAD_TYPE_TOKENS, normalized):
        return normalize_address(normalized)
    return normalized


def normalize_phone(phone: str) -> str:
    if not phone:
        return ""
    return re.sub(r'\D', '', phone)


def normalize_name(name: str) -> str:
    if not name:
        return ""
    return re.sub(r'\s+', ' ', name.lower()).strip()


def haversine_meters(p1: LatLng, p2: LatLng) -> float:
    """Great-circle distance in meters between two (lat, lng) points."""
    lat1, lng1 = p1
    lat2, lng2 = p2
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def proximity_score(p1: LatLng, p2: LatLng) -> float:
    distance = haversine_meters(p1, p2)
    if distance < PROXIMITY_FULL_MATCH_M:
        return 1.0
    if distance >= PROXIMITY_ZERO_MATCH_M:
        return 0.0
    span = PROXIMITY_ZERO_MATCH_M - PROXIMITY_FULL_MATCH_M
    return 1.0 - (distance - PROXIMITY_FULL_MATCH_M) / span
