import pytest

from restaurant_discovery.data.models import DiscoverySource
from restaurant_discovery.validators.confidence_scorer import (
    ISSUE_ADDRESS,
    ISSUE_DOMAIN,
    ISSUE_NAME,
    ISSUE_REGION,
    ValidationScorer,
)
from tests.fixtures.candidates import make_candidate

DOMAIN = ["amala", "ewedu", "gbegiri", "yoruba", "nigerian", "bukka", "buka"]


@pytest.fixture
def scorer():
    return ValidationScorer(region_keywords=["lagos"], domain_keywords=DOMAIN)


class TestValidationScorer:
    """Test the rule list and its thresholds"""

    def test_xy_without_address(self, scorer):
        """Two-character name and no address is invalid with low confidence"""
        result = scorer.score(make_candidate(name="XY", address=""))

        assert result.confidence <= 0.3
        assert not result.is_valid
        assert ISSUE_NAME in result.issues
        assert ISSUE_ADDRESS in result.issues

    def test_empty_name_and_address_always_invalid(self, scorer):
        for source in DiscoverySource:
            candidate = make_candidate(name="", address="", source=source, rating=5.0, description="amala")
            assert not scorer.score(candidate).is_valid

    def test_clean_candidate_accepted(self, scorer):
        result = scorer.score(make_candidate(name="Amala Shitta", address="Surulere, Lagos"))
        assert result.is_valid
        assert result.confidence == 1.0
        assert result.issues == []

    def test_region_penalty_only_with_address(self, scorer):
        result = scorer.score(make_candidate(name="Amala Shitta", address="Wuse 2, Abuja"))
        assert result.issues == [ISSUE_REGION]
        assert result.confidence == pytest.approx(0.8)

    def test_domain_keyword_found_in_description(self, scorer):
        candidate = make_candidate(name="Mama Tee", address="Ikeja, Lagos", description="Great ewedu and gbegiri")
        assert ISSUE_DOMAIN not in scorer.score(candidate).issues

    def test_domain_penalty_strictness(self):
        candidate = make_candidate(name="Pizza Palace", address="Ikeja, Lagos")
        relaxed = ValidationScorer(region_keywords=["lagos"], domain_keywords=DOMAIN)
        strict = ValidationScorer(region_keywords=["lagos"], domain_keywords=DOMAIN, strict_domain_match=True)

        assert relaxed.score(candidate).confidence == pytest.approx(0.7)
        assert strict.score(candidate).confidence == pytest.approx(0.6)
        # Exactly at the threshold is not enough
        assert not strict.score(candidate).is_valid

    def test_rules_skipped_without_keywords(self):
        scorer = ValidationScorer()
        result = scorer.score(make_candidate(name="Pizza Palace", address="Houston"))
        assert result.issues == []

    def test_bonuses_and_clamp(self, scorer):
        candidate = make_candidate(
            name="Amala Shitta", address="Lagos", source=DiscoverySource.API, rating=4.8,
        )
        assert scorer.score(candidate).confidence == 1.0

    def test_bonuses_lift_penalised_candidate(self, scorer):
        candidate = make_candidate(
            name="Pizza Palace", address="Lagos", source=DiscoverySource.API, rating=4.5,
        )
        result = scorer.score(candidate)
        assert result.confidence == pytest.approx(0.9)
        assert result.is_valid

    def test_unknown_rating_earns_nothing(self, scorer):
        with_rating = make_candidate(name="Pizza Palace", address="Lagos", rating=0.0)
        without = make_candidate(name="Pizza Palace", address="Lagos", rating=None)
        assert scorer.score(with_rating).confidence == scorer.score(without).confidence

    def test_three_issues_invalid_even_with_high_confidence(self):
        scorer = ValidationScorer(
            region_keywords=["lagos"], domain_keywords=DOMAIN, confidence_threshold=0.0,
        )
        result = scorer.score(make_candidate(name="XY", address="Abuja", source=DiscoverySource.API, rating=5))
        assert len(result.issues) == 3
        assert not result.is_valid

    def test_issue_order_follows_rules(self, scorer):
        result = scorer.score(make_candidate(name="", address="Abuja"))
        assert result.issues == [ISSUE_NAME, ISSUE_REGION, ISSUE_DOMAIN]
