"""
Hard filters (deal-breakers) on survey answers.

A hard filter vetoes a pair unconditionally, independent of the weighted
score: a vetoed pair is never scored, reasoned about, or returned. Filters
are OR'd, so any single match excludes the pair. Incompatible value pairs
are unordered, so the check is symmetric in the two respondents.
"""

import logging

from ..configs.matching import MatchingConfig
from ..schema import ParsedSurvey

logger = logging.getLogger(__name__)


def is_hard_filtered(a: ParsedSurvey, b: ParsedSurvey, config: MatchingConfig) -> bool:
    """
    Check whether any configured hard filter vetoes the pair.

    Args:
        a: First respondent
        b: Second respondent
        config: Matching configuration

    Returns:
        True if the pair must never be matched
    """
    for hard_filter in config.hard_filters:
        a_value = a.get(hard_filter.question_id)
        b_value = b.get(hard_filter.question_id)
        if hard_filter.matches(a_value, b_value):
            logger.debug(f"Hard filter on {hard_filter.question_id} vetoes "
                        f"{a.user_id}/{b.user_id} ({a_value}, {b_value})")
            return True
    return False
