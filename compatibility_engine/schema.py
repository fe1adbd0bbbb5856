"""
Data model for matching rounds.

Defines the engine's input records and its output unit:
- SurveyRecord: one respondent's stored survey state (read-only input)
- ParsedSurvey: user id plus typed answer map, the unit scorers consume
- TraitProfile: supplementary traits and deal-breakers (caller-side only)
- MatchResult: one pair assignment with compatibility and reasons
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Optional, Tuple

from .answers import Answer, parse_answers


@dataclass
class SurveyRecord:
    """
    One respondent's survey state.

    Attributes:
        user_id: Stable user identifier
        answers: Question id -> answer (number, string code, or list of strings)
        completed: Whether the survey was completed
        opted_in: Whether the user opted into matching
    """
    user_id: str
    answers: Dict[str, Answer] = field(default_factory=dict)
    completed: bool = False
    opted_in: bool = False

    @property
    def is_eligible(self) -> bool:
        return bool(self.completed and self.opted_in)

    def parse(self) -> "ParsedSurvey":
        return ParsedSurvey(user_id=self.user_id, answers=parse_answers(self.answers))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SurveyRecord":
        """Create from a stored row (camelCase or snake_case keys)."""
        user_id = data.get("userId", data.get("user_id"))
        if user_id is None:
            raise ValueError("Survey record is missing a user id")

        return cls(
            user_id=str(user_id),
            answers=parse_answers(data.get("answers")),
            completed=bool(data.get("completed", False)),
            opted_in=bool(data.get("optedIn", data.get("opted_in", False)))
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "answers": dict(self.answers),
            "completed": self.completed,
            "optedIn": self.opted_in
        }


@dataclass
class ParsedSurvey:
    """User id plus typed answer map."""
    user_id: str
    answers: Dict[str, Answer] = field(default_factory=dict)

    def get(self, question_id: str) -> Optional[Answer]:
        return self.answers.get(question_id)


@dataclass
class TraitProfile:
    """
    Per-user supplementary profile data.

    Used only by the caller-side pre-filter; the scoring engine never reads it.

    Attributes:
        traits: Trait tags the user has (e.g. "smoking")
        deal_breakers: Trait tags the user refuses in a partner
        gender: Optional self-reported gender
        dating_preference: Optional gender the user wants to date
    """
    traits: FrozenSet[str] = frozenset()
    deal_breakers: FrozenSet[str] = frozenset()
    gender: str = ""
    dating_preference: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TraitProfile":
        return cls(
            traits=_tag_set(data.get("traits")),
            deal_breakers=_tag_set(data.get("dealBreakers", data.get("deal_breakers"))),
            gender=data.get("gender") or "",
            dating_preference=data.get("datingPreference", data.get("dating_preference")) or ""
        )


@dataclass(frozen=True)
class MatchResult:
    """
    One pair assignment produced by a round.

    Attributes:
        user1_id: Respondent whose turn produced the pair
        user2_id: Chosen partner
        compatibility: Display percentage in [55, 99]
        reasons: At most four justification strings, in priority order
    """
    user1_id: str
    user2_id: str
    compatibility: int
    reasons: Tuple[str, ...] = ()

    @property
    def pair(self) -> Tuple[str, str]:
        return unordered_pair(self.user1_id, self.user2_id)

    def involves(self, user_id: str) -> bool:
        return user_id in (self.user1_id, self.user2_id)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the external output contract."""
        return {
            "user1Id": self.user1_id,
            "user2Id": self.user2_id,
            "compatibility": self.compatibility,
            "reasons": list(self.reasons)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MatchResult":
        return cls(
            user1_id=data["user1Id"],
            user2_id=data["user2Id"],
            compatibility=int(data["compatibility"]),
            reasons=tuple(data.get("reasons", []))
        )


def unordered_pair(a: str, b: str) -> Tuple[str, str]:
    """Canonical (smaller, larger) ordering for an unordered pair of user ids."""
    return (a, b) if a <= b else (b, a)


def _tag_set(value: Any) -> FrozenSet[str]:
    """Accept a list of tags or its JSON-encoded form (as stored by the profile table)."""
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return frozenset()
    if not isinstance(value, (list, tuple, set, frozenset)):
        return frozenset()
    return frozenset(v for v in value if isinstance(v, str))
