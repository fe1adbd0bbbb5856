"""Tests for hard filters on answers and the trait profile pre-filter."""

import pytest

from compatibility_engine.configs import HardFilterConfig
from compatibility_engine.filters import build_profile_filter, is_hard_filtered, profiles_conflict
from compatibility_engine.schema import ParsedSurvey, TraitProfile


class TestHardFilterConfig:
    """Tests for the unordered incompatible-pair check."""

    def test_pair_is_unordered(self):
        hard_filter = HardFilterConfig.from_dict({"question_id": "q", "incompatible_pairs": [["B", "D"]]})
        assert hard_filter.matches("B", "D")
        assert hard_filter.matches("D", "B")

    def test_other_pairs_pass(self):
        hard_filter = HardFilterConfig.from_dict({"question_id": "q", "incompatible_pairs": [["B", "D"]]})
        assert not hard_filter.matches("B", "B")
        assert not hard_filter.matches("A", "D")

    def test_missing_answer_never_vetoes(self):
        hard_filter = HardFilterConfig.from_dict({"question_id": "q", "incompatible_pairs": [["B", "D"]]})
        assert not hard_filter.matches("B", None)
        assert not hard_filter.matches(["B"], "D")

    def test_malformed_pair_rejected(self):
        with pytest.raises(ValueError):
            HardFilterConfig.from_dict({"question_id": "q", "incompatible_pairs": [["B", "C", "D"]]})


class TestIsHardFiltered:
    """Tests for filter evaluation against a matching config."""

    def test_bride_price_veto(self, v2_config, v2_answers):
        """Test that the packaged v2 config vetoes B/D on bride_price_attitude."""
        a = ParsedSurvey("a", dict(v2_answers, bride_price_attitude="B"))
        b = ParsedSurvey("b", dict(v2_answers, bride_price_attitude="D"))
        assert is_hard_filtered(a, b, v2_config)
        assert is_hard_filtered(b, a, v2_config)

    def test_compatible_answers_pass(self, v2_config, v2_answers):
        a = ParsedSurvey("a", dict(v2_answers, bride_price_attitude="B"))
        b = ParsedSurvey("b", dict(v2_answers, bride_price_attitude="C"))
        assert not is_hard_filtered(a, b, v2_config)

    def test_no_filters_configured(self, v3_lite_config, v3_lite_answers):
        a = ParsedSurvey("a", v3_lite_answers)
        b = ParsedSurvey("b", v3_lite_answers)
        assert not is_hard_filtered(a, b, v3_lite_config)


class TestProfileFilter:
    """Tests for trait / deal-breaker and dating preference exclusion."""

    def test_deal_breaker_excludes_in_both_directions(self):
        smoker = TraitProfile(traits=frozenset({"smoking"}))
        picky = TraitProfile(deal_breakers=frozenset({"smoking"}))
        assert profiles_conflict(smoker, picky)
        assert profiles_conflict(picky, smoker)

    def test_unrelated_traits_pass(self):
        a = TraitProfile(traits=frozenset({"pets"}), deal_breakers=frozenset({"smoking"}))
        b = TraitProfile(traits=frozenset({"gaming"}))
        assert not profiles_conflict(a, b)

    def test_dating_preference_must_accept_both_ways(self):
        a = TraitProfile(gender="female", dating_preference="male")
        b = TraitProfile(gender="male", dating_preference="male")
        assert profiles_conflict(a, b)

    def test_mutual_preference_passes(self):
        a = TraitProfile(gender="female", dating_preference="male")
        b = TraitProfile(gender="male", dating_preference="female")
        assert not profiles_conflict(a, b)

    def test_undisclosed_counts_as_accepting(self):
        a = TraitProfile(gender="female", dating_preference="undisclosed")
        b = TraitProfile(gender="undisclosed", dating_preference="female")
        assert not profiles_conflict(a, b)

    def test_incomplete_preferences_skip_gender_check(self):
        a = TraitProfile(gender="female", dating_preference="female")
        b = TraitProfile(gender="male")
        assert not profiles_conflict(a, b)

    def test_build_profile_filter(self):
        profiles = {
            "u1": TraitProfile(traits=frozenset({"smoking"})),
            "u2": TraitProfile(deal_breakers=frozenset({"smoking"})),
            "u3": TraitProfile(),
        }
        pair_filter = build_profile_filter(profiles)
        assert pair_filter("u1", "u2")
        assert not pair_filter("u1", "u3")
        # Users without a profile are never excluded
        assert not pair_filter("u1", "unknown")

    def test_profile_from_json_strings(self):
        """Test parsing of stored rows with JSON-encoded tag lists."""
        profile = TraitProfile.from_dict({
            "traits": '["smoking", "night owl"]',
            "dealBreakers": "not json",
            "datingPreference": "male",
        })
        assert profile.traits == frozenset({"smoking", "night owl"})
        assert profile.deal_breakers == frozenset()
        assert profile.dating_preference == "male"
