"""Tests for the scoring primitives."""

import pytest

from services.scoring import (
    naics_alignment, set_aside_compliance, rating_score, capability_overlap,
    gsa_bonus, round_half_up
)


class TestRoundHalfUp:
    def test_half_rounds_up(self):
        assert round_half_up(88.5) == 89
        assert round_half_up(2.5) == 3

    def test_float_noise_near_half(self):
        assert round_half_up(88.49999999999999) == 89

    def test_below_half_rounds_down(self):
        assert round_half_up(88.49) == 88


class TestNaicsAlignment:
    def test_exact_match(self):
        result = naics_alignment("541511", ["541511", "541512"])
        assert result.score == 100
        assert result.exact_match

    def test_prefix_match(self):
        result = naics_alignment("541511", ["541519"])
        assert result.score == 70
        assert result.related_match
        assert not result.exact_match

    def test_no_overlap(self):
        assert naics_alignment("541511", ["337211"]).score == 0

    def test_empty_supplier_codes_score_zero(self):
        assert naics_alignment("541511", []).score == 0

    def test_no_opportunity_code_is_neutral(self):
        result = naics_alignment(None, ["541511"])
        assert result.score == 50
        assert not result.exact_match


class TestSetAsideCompliance:
    def test_open_competition(self):
        result = set_aside_compliance(None, [])
        assert result.score == 80
        assert not result.matched

    def test_substring_match_is_case_insensitive(self):
        result = set_aside_compliance("SDVOSB", ["certified service-disabled veteran-owned small business"])
        assert result.score == 100
        assert result.matched

    def test_8a_matches_sba_program(self):
        assert set_aside_compliance("SBA", ["SBA 8(a) Program participant"]).matched

    def test_missing_certification(self):
        result = set_aside_compliance("WOSB", ["HUBZone"])
        assert result.score == 0
        assert not result.matched

    def test_unknown_code_never_matches(self):
        assert set_aside_compliance("XYZ", ["Small Business"]).score == 0


class TestRatingScore:
    @pytest.mark.parametrize("rating,expected", [(0, 0), (5, 100), (2.5, 50), ("4.5", 90)])
    def test_linear_scale(self, rating, expected):
        assert rating_score(rating) == pytest.approx(expected)

    def test_unparseable_is_zero(self):
        assert rating_score("n/a") == 0
        assert rating_score(None) == 0

    def test_monotonic(self):
        values = [rating_score(r / 10) for r in range(0, 51)]
        assert values == sorted(values)

    def test_out_of_range_is_clamped(self):
        assert rating_score(7) == 100
        assert rating_score(-1) == 0


class TestCapabilityOverlap:
    def test_neutral_without_description(self):
        assert capability_overlap("", ["cloud"]) == 50

    def test_neutral_without_capabilities(self):
        assert capability_overlap("cloud migration services", []) == 50

    def test_partial_overlap(self):
        score = capability_overlap("Cloud migration for agency email", ["cloud", "furniture"])
        assert score == 50

    def test_full_overlap_capped(self):
        assert capability_overlap("cybersecurity and cloud", ["cloud", "cybersecurity"]) == 100

    def test_word_inside_capability_counts(self):
        # "network" is a word of the description and a substring of the capability
        assert capability_overlap("network upgrade", ["networking"]) == 100


class TestGsaBonus:
    def test_holder(self):
        assert gsa_bonus(True) == 100

    def test_non_holder(self):
        assert gsa_bonus(False) == 70
