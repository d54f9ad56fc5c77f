import pytest

from restaurant_discovery.matchers.similarity import (
    edit_distance_similarity,
    haversine_meters,
    normalize_address,
    normalize_name,
    normalize_phone,
    proximity_score,
    string_similarity,
)


class TestStringSimilarity:
    """Test Jaro-Winkler string similarity"""

    @pytest.mark.parametrize("value", ["amala", "mama cass kitchen", "a", "Iya Basira Buka"])
    def test_reflexive(self, value):
        """Every string is identical to itself"""
        assert string_similarity(value, value) == 1.0

    @pytest.mark.parametrize("a,b", [
        ("mama cass", "mama cass kitchen"),
        ("amala shitta", "shitta amala"),
        ("dixon", "dicksonx"),
        ("iya basira", "iya bashira"),
        ("abc", "xyz"),
    ])
    def test_symmetric(self, a, b):
        """Argument order does not change the score"""
        assert string_similarity(a, b) == string_similarity(b, a)

    def test_empty_inputs(self):
        """Both empty is a vacuous match, one empty is no match"""
        assert string_similarity("", "") == 1.0
        assert string_similarity("amala", "") == 0.0
        assert string_similarity("", "amala") == 0.0

    def test_shared_prefix_rewarded(self):
        """Name variants sharing a prefix score above plain edit distance"""
        jw = string_similarity("mama cass", "mama cass kitchen")
        ed = edit_distance_similarity("mama cass", "mama cass kitchen")
        assert jw > ed
        assert jw > 0.9

    def test_unrelated_names_score_low(self):
        assert string_similarity("amala shitta", "pizza hut") < 0.7


class TestEditDistanceSimilarity:
    """Test normalized Levenshtein similarity"""

    def test_identical(self):
        assert edit_distance_similarity("12 ogba lagos", "12 ogba lagos") == 1.0

    def test_single_edit(self):
        assert edit_distance_similarity("abcd", "abce") == pytest.approx(0.75)

    def test_empty_inputs(self):
        assert edit_distance_similarity("", "") == 1.0
        assert edit_distance_similarity("abc", "") == 0.0


class TestNormalizers:
    """Test address, phone and name normalization"""

    def test_address_strips_road_types_and_punctuation(self):
        assert normalize_address("12 Ogba Road, Lagos") == "12 ogba lagos"
        assert normalize_address("12 Ogba Rd., Lagos") == "12 ogba lagos"
        assert normalize_address("5  Allen   Avenue") == "5 allen"

    @pytest.mark.parametrize("address", [
        "12 Ogba Road, Lagos",
        "St. Street St.",
        "Lane ln. LN, road",
        "",
        "Plot 4, Admiralty Way, Lekki Phase 1",
    ])
    def test_address_idempotent(self, address):
        once = normalize_address(address)
        assert normalize_address(once) == once

    def test_phone_digits_only(self):
        assert normalize_phone("+234 (803) 456-7890") == "2348034567890"
        assert normalize_phone("") == ""

    def test_name_lowercase_and_whitespace(self):
        assert normalize_name("  Mama   Cass  Kitchen ") == "mama cass kitchen"


class TestGeographic:
    """Test haversine distance and proximity decay"""

    def test_zero_distance(self):
        assert haversine_meters((6.5, 3.3), (6.5, 3.3)) == 0.0

    def test_known_distance(self):
        # One degree of latitude is ~111.2 km
        assert haversine_meters((0.0, 0.0), (1.0, 0.0)) == pytest.approx(111_195, rel=1e-3)

    def test_proximity_full_under_100m(self):
        assert proximity_score((6.5, 3.3), (6.5005, 3.3)) == 1.0

    def test_proximity_decays_linearly(self):
        # ~550 m north is half way between 100 m and 1000 m
        point = (6.5 + 550 / 111_195, 3.3)
        assert proximity_score((6.5, 3.3), point) == pytest.approx(0.5, abs=0.01)

    def test_proximity_zero_beyond_1km(self):
        assert proximity_score((6.5, 3.3), (6.6, 3.3)) == 0.0
