"""
Caller-side candidate pre-filter built from trait profiles.

The scoring engine never interprets traits. Callers use this module to turn
per-user trait profiles into a pair predicate and hand it to the round
matcher as its pair_filter.

Exclusion Rules (only applied when both users have a profile):
- Dating preference: when both genders and both preferences are known, each
  side's preference must accept the other's gender. "Prefer not to say" on
  either the preference or the gender counts as accepting.
- Deal-breakers: any trait of one user listed in the other's deal-breakers.
"""

import logging
from typing import Callable, Mapping

from ..schema import TraitProfile

logger = logging.getLogger(__name__)

UNDISCLOSED = "undisclosed"

PairFilter = Callable[[str, str], bool]


def _accepts(preference: str, gender: str, undisclosed: str) -> bool:
    return preference == gender or preference == undisclosed or gender == undisclosed


def profiles_conflict(a: TraitProfile, b: TraitProfile, undisclosed: str = UNDISCLOSED) -> bool:
    """
    Check whether two profiles rule each other out.

    Args:
        a: First user's profile
        b: Second user's profile
        undisclosed: Token meaning "prefer not to say"

    Returns:
        True if the pair should never be offered as candidates
    """
    if a.gender and a.dating_preference and b.gender and b.dating_preference:
        a_wants_b = _accepts(a.dating_preference, b.gender, undisclosed)
        b_wants_a = _accepts(b.dating_preference, a.gender, undisclosed)
        if not (a_wants_b and b_wants_a):
            return True

    if a.deal_breakers & b.traits or b.deal_breakers & a.traits:
        return True

    return False


def build_profile_filter(
    profiles: Mapping[str, TraitProfile],
    undisclosed: str = UNDISCLOSED
) -> PairFilter:
    """
    Build a pair predicate from trait profiles.

    Args:
        profiles: User id -> TraitProfile
        undisclosed: Token meaning "prefer not to say"

    Returns:
        Callable (user_a, user_b) -> True when the pair is excluded
    """
    def pair_filter(user_a: str, user_b: str) -> bool:
        a = profiles.get(user_a)
        b = profiles.get(user_b)
        if a is None or b is None:
            return False
        return profiles_conflict(a, b, undisclosed)

    logger.info(f"Built profile pre-filter over {len(profiles)} profiles")
    return pair_filter
