"""
Existing-location providers used for duplicate detection
"""
import asyncio
import uuid
import pandas as pd
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from restaurant_discovery.data.defaults import DEFAULT_REGION_CENTROID
from restaurant_discovery.data.models import Coordinates, DiscoverySource, LocationCandidate

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ["name", "address"]


class ExistingLocationsProvider(Protocol):
    """
    Read interface over the approved location dataset.
    Allows dependency injection and easy testing.
    """
    async def get_existing_locations(self) -> List[LocationCandidate]:
        """
        Return previously approved locations.

        Raises:
            Any exception on lookup failure; the orchestrator treats it as an
            empty existing set.
        """
        ...


class InMemoryExistingLocations:
    """Provider over a fixed list, mostly for tests and embedding."""

    def __init__(self, locations: Optional[Sequence[LocationCandidate]] = None):
        self.locations = list(locations or [])

    async def get_existing_locations(self) -> List[LocationCandidate]:
        return list(self.locations)


def _clean(value: Any) -> str:
    if value is None or pd.isna(value):
        return ""
    return str(value).strip()


def _optional_float(value: Any) -> Optional[float]:
    if value is None or pd.isna(value) or value == "":
        return None
    return float(value)


def create_location_from_csv_row(
    row: Dict[str, Any],
    region_centroid: Tuple[float, float] = DEFAULT_REGION_CENTROID
) -> LocationCandidate:
    """Build a LocationCandidate from one row of an approved-locations export."""
    lat = _optional_float(row.get("lat"))
    lng = _optional_float(row.get("lng"))
    estimated = lat is None or lng is None
    if estimated:
        lat, lng = region_centroid

    source = _clean(row.get("discovery_source")) or DiscoverySource.API.value
    rating = _optional_float(row.get("rating"))

    return LocationCandidate(
        id=_clean(row.get("id")) or uuid.uuid4().hex,
        name=_clean(row.get("name")),
        address=_clean(row.get("address")),
        coordinates=Coordinates(lat=lat, lng=lng),
        coordinates_estimated=estimated,
        phone=_clean(row.get("phone")),
        website=_clean(row.get("website")),
        description=_clean(row.get("description")),
        rating=rating,
        discovery_source=DiscoverySource(source),
        source_url=_clean(row.get("source_url")) or "existing-dataset",
    )


class CSVExistingLocationsLoader:
    """
    Loads approved locations from a CSV export.

    Expected columns: name, address; optional id, lat, lng, phone, website,
    description, rating, discovery_source, source_url.
    """

    def __init__(self, csv_path: str, region_centroid: Tuple[float, float] = DEFAULT_REGION_CENTROID):
        self.csv_path = csv_path
        self.region_centroid = region_centroid

    def load(self) -> List[LocationCandidate]:
        """
        Load locations from the CSV file.

        Raises:
            FileNotFoundError: If CSV file doesn't exist
            ValueError: If CSV file is malformed or lacks required columns
        """
        csv_file = Path(self.csv_path)

        if not csv_file.exists():
            raise FileNotFoundError(f"CSV file not found: {self.csv_path}")

        logger.info(f"Loading existing locations from {self.csv_path}")

        try:
            df = pd.read_csv(csv_file, dtype={"id": str, "phone": str})
        except pd.errors.EmptyDataError:
            logger.warning(f"Existing locations file {self.csv_path} is empty")
            return []
        except pd.errors.ParserError as e:
            raise ValueError(f"Error parsing CSV file: {e}")

        missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
        if missing:
            raise ValueError(f"CSV file is missing required columns: {', '.join(missing)}")

        locations = []
        failed_conversions = 0
        for index, row in df.iterrows():
            try:
                locations.append(create_location_from_csv_row(row.to_dict(), self.region_centroid))
            except Exception as e:
                failed_conversions += 1
                logger.warning(f"Failed to convert row {index}: {e}")
                continue

        logger.info(f"Successfully converted {len(locations)} existing locations")
        if failed_conversions > 0:
            logger.warning(f"Failed to convert {failed_conversions} rows")
        return locations

    async def get_existing_locations(self) -> List[LocationCandidate]:
        # pandas parsing blocks, keep it off the event loop
        return await asyncio.to_thread(self.load)
