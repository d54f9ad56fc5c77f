"""
Duplicate Resolver

Classifies each candidate as unique, a duplicate of an existing approved
location, or a duplicate of another candidate in the same batch.
"""
import logging
from typing import Callable, List, Optional, Sequence, Tuple

from restaurant_discovery.data.models import DuplicateVerdict, LocationCandidate, SimilarityScore
from restaurant_discovery.matchers.similarity import (
    edit_distance_similarity,
    haversine_meters,
    normalize_address,
    normalize_name,
    normalize_phone,
    proximity_score,
    string_similarity,
)

logger = logging.getLogger(__name__)

DEFAULT_DUPLICATE_THRESHOLD = 0.8
# Each of these is conclusive on its own
NAME_CONCLUSIVE_SCORE = 0.9
PHONE_CONCLUSIVE_SCORE = 1.0
# Only used for moderation reasons
ADDRESS_REASON_SCORE = 0.8
NEAR_DISTANCE_M = 50.0

ConfidenceFn = Callable[[LocationCandidate], float]


class DuplicateResolver:
    """
    Pairwise duplicate detection against existing records and within a batch.

    Candidates are resolved in the order given. Existing records always win.
    Within the batch, a candidate is compared with every kept candidate. It
    replaces the ones it matches only when its confidence_fn value is strictly
    higher than each of theirs; otherwise it is a duplicate of the earliest
    match. Without a confidence_fn the earlier one is always kept.
    """

    def __init__(
        self,
        duplicate_threshold: float = DEFAULT_DUPLICATE_THRESHOLD,
        confidence_fn: Optional[ConfidenceFn] = None
    ):
        self.duplicate_threshold = duplicate_threshold
        self.confidence_fn = confidence_fn

    def compare(self, a: LocationCandidate, b: LocationCandidate) -> SimilarityScore:
        phone_a = normalize_phone(a.phone)
        phone_b = normalize_phone(b.phone)

        # Region-centroid fallbacks are not real positions
        if a.coordinates_estimated or b.coordinates_estimated:
            proximity = 0.0
        else:
            proximity = proximity_score(
                (a.coordinates.lat, a.coordinates.lng),
                (b.coordinates.lat, b.coordinates.lng),
            )

        return SimilarityScore(
            name_score=string_similarity(normalize_name(a.name), normalize_name(b.name)),
            address_score=edit_distance_similarity(normalize_address(a.address), normalize_address(b.address)),
            phone_score=1.0 if phone_a and phone_a == phone_b else 0.0,
            proximity_score=proximity,
        )

    def is_duplicate(self, score: SimilarityScore) -> bool:
        return (
            score.overall_score > self.duplicate_threshold
            or score.name_score > NAME_CONCLUSIVE_SCORE
            or score.phone_score >= PHONE_CONCLUSIVE_SCORE
        )

    def explain(
        self,
        score: SimilarityScore,
        candidate: LocationCandidate,
        other: LocationCandidate
    ) -> Tuple[List[str], Optional[str]]:
        """Human-readable reasons for a match, plus the single most telling one."""
        reasons = []
        phone = score.phone_score >= PHONE_CONCLUSIVE_SCORE
        name = score.name_score > NAME_CONCLUSIVE_SCORE
        address = score.address_score > ADDRESS_REASON_SCORE

        if phone:
            reasons.append(f"Same phone number: {other.phone}")
        if name:
            reasons.append(f'Very similar name: "{other.name}"')
        if address:
            reasons.append(f'Similar address: "{other.address}"')
        if not (candidate.coordinates_estimated or other.coordinates_estimated):
            distance = haversine_meters(
                (candidate.coordinates.lat, candidate.coordinates.lng),
                (other.coordinates.lat, other.coordinates.lng),
            )
            if distance < NEAR_DISTANCE_M:
                reasons.append(f"Location within {NEAR_DISTANCE_M:.0f}m ({distance:.0f}m)")

        if phone:
            primary = "Same phone number"
        elif name and address:
            primary = "Same name and address"
        elif name:
            primary = "Very similar name"
        elif address:
            primary = "Similar address"
        elif reasons:
            primary = "Nearby location"
        else:
            primary = f"Overall similarity {score.overall_score:.2f}"
            reasons.append(primary)
        return reasons, primary

    def best_existing_match(
        self,
        candidate: LocationCandidate,
        existing: Sequence[LocationCandidate]
    ) -> Optional[Tuple[LocationCandidate, SimilarityScore]]:
        best = None
        for record in existing:
            score = self.compare(candidate, record)
            if not self.is_duplicate(score):
                continue
            if best is None or score.overall_score > best[1].overall_score:
                best = (record, score)
        return best

    def _verdict(self, kind: str, candidate: LocationCandidate, other: LocationCandidate, score: SimilarityScore) -> DuplicateVerdict:
        reasons, primary = self.explain(score, candidate, other)
        return DuplicateVerdict(
            kind=kind,
            matched_id=other.id,
            matched_name=other.name,
            score=score,
            reasons=reasons,
            primary_reason=primary,
        )

    def _confidence(self, candidate: LocationCandidate) -> float:
        return self.confidence_fn(candidate) if self.confidence_fn else 0.0

    def _displace(
        self,
        candidates: Sequence[LocationCandidate],
        verdicts: List[DuplicateVerdict],
        matches: List[Tuple[int, SimilarityScore]],
        winner_index: int
    ) -> None:
        """Mark every matched kept candidate as a duplicate of the winner, re-pointing their own duplicates."""
        winner = candidates[winner_index]
        displaced_ids = {candidates[k].id for k, _ in matches}

        for kept_index, score in matches:
            verdicts[kept_index] = self._verdict("duplicate_in_batch", candidates[kept_index], winner, score)
            logger.debug(f"'{winner.name}' replaces lower-confidence '{candidates[kept_index].name}'")

        for index, verdict in enumerate(verdicts):
            if index == winner_index or candidates[index].id in displaced_ids:
                continue
            if verdict.kind == "duplicate_in_batch" and verdict.matched_id in displaced_ids:
                score = self.compare(candidates[index], winner)
                verdicts[index] = self._verdict("duplicate_in_batch", candidates[index], winner, score)

    def resolve(
        self,
        candidates: Sequence[LocationCandidate],
        existing: Sequence[LocationCandidate]
    ) -> List[Tuple[LocationCandidate, DuplicateVerdict]]:
        """
        Return (candidate, verdict) pairs in input order.

        Pass 1 checks every candidate against existing records, which makes
        that part independent of candidate order. Pass 2 de-duplicates the
        remaining candidates against each other in discovery order.
        """
        verdicts: List[DuplicateVerdict] = [DuplicateVerdict() for _ in candidates]

        # Pass 1: existing data wins
        for index, candidate in enumerate(candidates):
            match = self.best_existing_match(candidate, existing)
            if match:
                record, score = match
                verdicts[index] = self._verdict("duplicate_of_existing", candidate, record, score)
                logger.debug(f"'{candidate.name}' duplicates existing '{record.name}' ({verdicts[index].primary_reason})")

        # Pass 2: within the batch, against every kept candidate
        accepted: List[int] = []
        for index, candidate in enumerate(candidates):
            if verdicts[index].is_duplicate:
                continue

            matches = []
            for kept_index in accepted:
                score = self.compare(candidate, candidates[kept_index])
                if self.is_duplicate(score):
                    matches.append((kept_index, score))

            if not matches:
                accepted.append(index)
                continue

            confidence = self._confidence(candidate)
            if all(confidence > self._confidence(candidates[k]) for k, _ in matches):
                self._displace(candidates, verdicts, matches, index)
                displaced = {k for k, _ in matches}
                accepted = sorted([k for k in accepted if k not in displaced] + [index])
            else:
                kept_index, score = matches[0]
                verdicts[index] = self._verdict("duplicate_in_batch", candidate, candidates[kept_index], score)
                logger.debug(f"'{candidate.name}' duplicates batch candidate '{candidates[kept_index].name}'")

        duplicates = sum(1 for v in verdicts if v.is_duplicate)
        logger.info(f"Resolved {len(candidates)} candidates against {len(existing)} existing: {duplicates} duplicates")
        return list(zip(candidates, verdicts))
