"""
Confidence Scorer - transparent rule list deciding whether a candidate is
worth sending to moderation.
"""
import logging
from typing import List, Optional

from restaurant_discovery.data.models import DiscoverySource, LocationCandidate
from restaurant_discovery.data.validation_models import ValidationResult

logger = logging.getLogger(__name__)

MIN_NAME_LENGTH = 3
MAX_ISSUES = 3

NAME_PENALTY = 0.4
ADDRESS_PENALTY = 0.3
REGION_PENALTY = 0.2
DOMAIN_PENALTY = 0.3
STRICT_DOMAIN_PENALTY = 0.4

HIGH_RATING = 4.0
HIGH_RATING_BONUS = 0.1
API_SOURCE_BONUS = 0.1

ISSUE_NAME = "invalid or missing name"
ISSUE_ADDRESS = "missing address"
ISSUE_REGION = "may be outside target region"
ISSUE_DOMAIN = "may not match target cuisine"


class ValidationScorer:
    """
    Scores candidates starting from 1.0 with flat, stacking penalties.

    Rules, in order:
      - name missing or shorter than 3 chars: -0.4
      - address missing: -0.3
      - address lacks every region keyword: -0.2 (skipped without keywords)
      - name and description lack every domain keyword: -0.3, or -0.4 when
        strict (skipped without keywords)
      - rating above 4.0: +0.1
      - discovered through the structured API: +0.1

    Confidence is clamped to [0, 1]. A candidate is valid when confidence
    exceeds the threshold and fewer than 3 issues were raised.
    """

    def __init__(
        self,
        region_keywords: Optional[List[str]] = None,
        domain_keywords: Optional[List[str]] = None,
        strict_domain_match: bool = False,
        confidence_threshold: float = 0.6
    ):
        self.region_keywords = [k.lower() for k in region_keywords or []]
        self.domain_keywords = [k.lower() for k in domain_keywords or []]
        self.strict_domain_match = strict_domain_match
        self.confidence_threshold = confidence_threshold

    def score(self, candidate: LocationCandidate) -> ValidationResult:
        issues: List[str] = []
        confidence = 1.0

        name = candidate.name.strip()
        address = candidate.address.strip()

        if len(name) < MIN_NAME_LENGTH:
            issues.append(ISSUE_NAME)
            confidence -= NAME_PENALTY

        if not address:
            issues.append(ISSUE_ADDRESS)
            confidence -= ADDRESS_PENALTY
        elif self.region_keywords and not self._contains_any(address, self.region_keywords):
            issues.append(ISSUE_REGION)
            confidence -= REGION_PENALTY

        if self.domain_keywords:
            haystack = f"{name} {candidate.description}"
            if not self._contains_any(haystack, self.domain_keywords):
                issues.append(ISSUE_DOMAIN)
                confidence -= STRICT_DOMAIN_PENALTY if self.strict_domain_match else DOMAIN_PENALTY

        # Unknown rating earns nothing and costs nothing
        if candidate.rating is not None and candidate.rating > HIGH_RATING:
            confidence += HIGH_RATING_BONUS

        if candidate.discovery_source == DiscoverySource.API:
            confidence += API_SOURCE_BONUS

        confidence = round(max(0.0, min(1.0, confidence)), 4)
        is_valid = confidence > self.confidence_threshold and len(issues) < MAX_ISSUES

        logger.debug(f"Scored '{candidate.name}': confidence={confidence}, issues={issues}")
        return ValidationResult(is_valid=is_valid, confidence=confidence, issues=issues)

    def confidence(self, candidate: LocationCandidate) -> float:
        """Confidence only; used to break in-batch duplicate ties."""
        return self.score(candidate).confidence

    @staticmethod
    def _contains_any(text: str, keywords: List[str]) -> bool:
        lowered = text.lower()
        return any(k in lowered for k in keywords)
