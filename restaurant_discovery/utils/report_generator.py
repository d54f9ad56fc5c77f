"""
Moderation report generator.

Writes a discovery result as CSV files a moderator can work through:
accepted candidates (pending review), duplicates with the reason they were
matched, and rejected candidates with their validation issues.
"""
import logging
import pandas as pd
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from restaurant_discovery.data.models import DiscoveryResult, LocationCandidate

logger = logging.getLogger(__name__)


class ModerationReportGenerator:
    """Generator for moderation CSVs from a DiscoveryResult."""

    @staticmethod
    def candidate_row(candidate: LocationCandidate) -> Dict:
        validation = candidate.validation
        return {
            'ID': candidate.id,
            'Name': candidate.name,
            'Address': candidate.address,
            'Latitude': candidate.coordinates.lat,
            'Longitude': candidate.coordinates.lng,
            'Coordinates Estimated': candidate.coordinates_estimated,
            'Phone': candidate.phone,
            'Website': candidate.website,
            'Cuisine': ", ".join(candidate.cuisine),
            'Price': candidate.price_info.display,
            'Rating': candidate.display_rating,
            'Number of Reviews': candidate.display_review_count,
            'Source': candidate.discovery_source.value,
            'Source URL': candidate.source_url,
            'Status': candidate.status.value,
            'Confidence': validation.confidence if validation else None,
            'Issues': "; ".join(validation.issues) if validation else "",
            'Defaulted Fields': ", ".join(candidate.defaulted_fields),
            'Duplicate Of': candidate.duplicate_of or "",
        }

    def _write(self, rows: List[Dict], path: Path) -> Optional[str]:
        if not rows:
            logger.info(f"Nothing to write for {path.name}")
            return None
        df = pd.DataFrame(rows)
        df.to_csv(path, index=False)
        logger.info(f"Saved {len(df)} rows to {path}")
        return str(path)

    def run(self, result: DiscoveryResult, output_dir: str, timestamp: Optional[str] = None) -> Dict[str, Optional[str]]:
        """
        Write accepted, duplicate and rejected CSVs.

        Args:
            result: DiscoveryResult from the orchestrator
            output_dir: Directory for the CSV files (created if missing)
            timestamp: Optional file suffix; defaults to the current time

        Returns:
            Mapping of report kind to written file path (None when empty)
        """
        timestamp = timestamp or datetime.now().strftime("%Y%m%d_%H%M%S")
        output_path = Path(output_dir)
        output_path.mkdir(parents=True, exist_ok=True)

        accepted = [self.candidate_row(c) for c in result.accepted]
        duplicates = [self.candidate_row(c) for c in result.duplicates]
        rejected = [self.candidate_row(r.candidate) for r in result.rejected]

        files = {
            'accepted': self._write(accepted, output_path / f"accepted_candidates_{timestamp}.csv"),
            'duplicates': self._write(duplicates, output_path / f"duplicate_candidates_{timestamp}.csv"),
            'rejected': self._write(rejected, output_path / f"rejected_candidates_{timestamp}.csv"),
        }

        if accepted:
            logger.info("\nSample of accepted candidates:")
            logger.info(pd.DataFrame(accepted)[['Name', 'Address', 'Confidence']].head(3).to_string(index=False))
        return files
