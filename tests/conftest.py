"""Shared fixtures for the compatibility engine test suite."""

import copy

import pytest

from compatibility_engine.configs import MatchingConfig, load_matching_config
from compatibility_engine.schema import ParsedSurvey, SurveyRecord


V2_ANSWERS = {
    "_surveyVersion": "v2",
    "reply_anxiety": 6,
    "safety_source": "B",
    "betrayal_redlines": [
        "Being active on dating apps",
        "Hiding money trouble",
        "Keeping in regular touch with an ex",
    ],
    "conflict_animal": "C",
    "family_communication": "B",
    "intimacy_warmth": 7,
    "intimacy_passion": 6,
    "intimacy_low_response": "A",
    "city_trajectory": "A",
    "economic_role": "A",
    "family_resources": "A",
    "bride_price_attitude": "A",
    "realistic_factors": ["health", "earning power and career prospects", "life skills"],
    "future_priorities": [
        "Career progression",
        "A stable marriage",
        "Looking after my parents",
    ],
    "stress_partner_type": "B",
    "growth_sync": "B",
    "stage_difference": "D",
    "relationship_adventure": 8,
    "life_rhythm": "B",
    "digital_boundaries": ["open but private"],
}

V3_LITE_ANSWERS = {
    "_surveyVersion": "v3-lite",
    "crush_daily": "C",
    "message_response": "B",
    "first_date": "C",
    "love_recharge": "B",
    "no_reply_reaction": "C",
    "sns_attitude": "B",
    "conflict_style": "A",
    "dealbreaker": "A",
    "opposite_sex_boundary": "B",
    "ideal_relationship": "B",
}

# Two dimensions, one slider and one single-choice question, B/D vetoed
TINY_CONFIG = {
    "version": "tiny",
    "name": "Tiny test survey",
    "questions": {
        "score": {"type": "slider", "label": "Score", "short_label": "score", "min": 0, "max": 10},
        "attitude": {
            "type": "single",
            "label": "Attitude",
            "options": {"A": "Alpha", "B": "Beta", "C": "Gamma", "D": "Delta"},
        },
    },
    "dimensions": [
        {"name": "Outlook", "weight": 0.5,
         "items": [{"question_id": "score", "scorer": "slider", "weight": 1.0}]},
        {"name": "Values", "weight": 0.5,
         "items": [{"question_id": "attitude", "scorer": "single", "weight": 1.0}]},
    ],
    "hard_filters": [{"question_id": "attitude", "incompatible_pairs": [["B", "D"]]}],
    "reasons": {
        "shared_choices": [{"question_id": "attitude", "template": "Both {option}"}],
    },
}


@pytest.fixture(scope="session")
def v2_config() -> MatchingConfig:
    """Packaged v2 matching configuration."""
    return load_matching_config("v2.yaml")


@pytest.fixture(scope="session")
def v3_lite_config() -> MatchingConfig:
    """Packaged v3-lite matching configuration."""
    return load_matching_config("v3_lite.yaml")


@pytest.fixture
def tiny_config_dict():
    """Editable copy of the tiny matching configuration document."""
    return copy.deepcopy(TINY_CONFIG)


@pytest.fixture
def tiny_config(tiny_config_dict) -> MatchingConfig:
    return MatchingConfig.from_dict(tiny_config_dict)


@pytest.fixture
def v2_answers():
    """Editable copy of a complete v2 answer set."""
    return copy.deepcopy(V2_ANSWERS)


@pytest.fixture
def v3_lite_answers():
    return copy.deepcopy(V3_LITE_ANSWERS)


@pytest.fixture
def make_record():
    """Factory for eligible survey records."""
    def _make(user_id, answers, completed=True, opted_in=True):
        return SurveyRecord(
            user_id=user_id,
            answers=copy.deepcopy(answers),
            completed=completed,
            opted_in=opted_in,
        )
    return _make


@pytest.fixture
def make_survey():
    """Factory for parsed surveys."""
    def _make(user_id, answers):
        return ParsedSurvey(user_id=user_id, answers=copy.deepcopy(answers))
    return _make
