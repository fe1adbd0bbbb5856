"""
Dimension scorers for pairwise compatibility.

Each scorer compares two respondents' answers to one question and returns a
similarity in [0, 1]. Scorers never raise: missing, wrong-typed or empty
answers fall back to fixed constants so one unanswered question degrades the
pair toward neutral instead of failing it.

Scorer Kinds:
- slider:  1 - |a - b| / (max - min), missing answers default to the midpoint
- single:  1.0 for the same code, 0.2 otherwise, 0.3 if either side is missing
- tags:    Jaccard index of the two tag sets, 0.5 when both are empty
- ranking: 0.6 * overlap ratio + 0.4 * pairwise order agreement over shared items

All four are symmetric in their two respondents.
"""

import logging
import math
from typing import Any, Callable, Dict, List, Optional

from ..configs.matching import MatchingConfig, QuestionSpec, ScorerKind
from ..schema import ParsedSurvey

logger = logging.getLogger(__name__)

CHOICE_MISMATCH_SCORE = 0.2
CHOICE_MISSING_SCORE = 0.3
UNKNOWN_SCALE_SCORE = 0.5
EMPTY_TAGS_SCORE = 0.5
RANKING_MISSING_SCORE = 0.3
RANKING_OVERLAP_WEIGHT = 0.6
RANKING_ORDER_WEIGHT = 0.4

Scorer = Callable[[ParsedSurvey, ParsedSurvey, str, Optional[QuestionSpec]], float]


def scale_similarity(
    a: ParsedSurvey,
    b: ParsedSurvey,
    question_id: str,
    question: Optional[QuestionSpec] = None
) -> float:
    """
    Bounded-scale similarity for slider answers.

    Formula:
        sim = 1 - |a - b| / (max - min)

    Missing answers default to the scale midpoint; answers outside the scale
    are clamped onto it.

    Args:
        a: First respondent
        b: Second respondent
        question_id: Question to compare
        question: Catalog entry carrying the scale bounds

    Returns:
        Similarity in [0, 1]
    """
    if question is None or question.min is None or question.max is None:
        return UNKNOWN_SCALE_SCORE

    low, high = float(question.min), float(question.max)
    scale_range = high - low
    if scale_range == 0:
        return 1.0

    midpoint = (low + high) / 2
    a_value = _clamp(_as_number(a.get(question_id), midpoint), low, high)
    b_value = _clamp(_as_number(b.get(question_id), midpoint), low, high)

    return 1.0 - abs(a_value - b_value) / scale_range


def choice_similarity(
    a: ParsedSurvey,
    b: ParsedSurvey,
    question_id: str,
    question: Optional[QuestionSpec] = None
) -> float:
    """
    Exact-choice similarity for single-choice answers.

    Different codes get partial credit rather than zero. If the question
    carries an affinity matrix covering both codes, the matrix value is used.

    Args:
        a: First respondent
        b: Second respondent
        question_id: Question to compare
        question: Optional catalog entry (for the affinity matrix)

    Returns:
        Similarity in [0, 1]
    """
    a_value = a.get(question_id)
    b_value = b.get(question_id)
    if not isinstance(a_value, str) or not isinstance(b_value, str):
        return CHOICE_MISSING_SCORE

    if question is not None and question.affinity:
        affinity = question.affinity.get(a_value, {}).get(b_value)
        if affinity is not None:
            return affinity

    return 1.0 if a_value == b_value else CHOICE_MISMATCH_SCORE


def tags_overlap(
    a: ParsedSurvey,
    b: ParsedSurvey,
    question_id: str,
    question: Optional[QuestionSpec] = None
) -> float:
    """
    Tag-set overlap (Jaccard index) for multi-select answers.

    Both-empty is neutral (0.5) so mutual non-answering is not rewarded.

    Args:
        a: First respondent
        b: Second respondent
        question_id: Question to compare
        question: Unused, accepted for a uniform scorer signature

    Returns:
        |A & B| / |A | B|, in [0, 1]
    """
    a_tags = set(_as_list(a.get(question_id)))
    b_tags = set(_as_list(b.get(question_id)))

    union = a_tags | b_tags
    if not union:
        return EMPTY_TAGS_SCORE

    return len(a_tags & b_tags) / len(union)


def ranking_concordance(
    a: ParsedSurvey,
    b: ParsedSurvey,
    question_id: str,
    question: Optional[QuestionSpec] = None
) -> float:
    """
    Ranked-list concordance.

    Formula:
        shared = items present in both rankings
        overlap_ratio = |shared| / max(|a|, |b|)
        order_score = concordant shared pairs / all shared pairs (0.5 if < 2 shared)
        sim = 0.6 * overlap_ratio + 0.4 * order_score

    Args:
        a: First respondent
        b: Second respondent
        question_id: Question to compare
        question: Unused, accepted for a uniform scorer signature

    Returns:
        Similarity in [0, 1]; 0.0 when nothing is shared, 0.3 when a list is missing
    """
    a_rank = _dedupe(_as_list(a.get(question_id)))
    b_rank = _dedupe(_as_list(b.get(question_id)))
    if not a_rank or not b_rank:
        return RANKING_MISSING_SCORE

    a_pos = {item: i for i, item in enumerate(a_rank)}
    b_pos = {item: i for i, item in enumerate(b_rank)}
    shared = [item for item in a_rank if item in b_pos]
    if not shared:
        return 0.0

    concordant = 0
    total = 0
    for i in range(len(shared)):
        for j in range(i + 1, len(shared)):
            x, y = shared[i], shared[j]
            if (a_pos[x] - a_pos[y]) * (b_pos[x] - b_pos[y]) > 0:
                concordant += 1
            total += 1

    overlap_ratio = len(shared) / max(len(a_rank), len(b_rank))
    order_score = concordant / total if total > 0 else 0.5

    return RANKING_OVERLAP_WEIGHT * overlap_ratio + RANKING_ORDER_WEIGHT * order_score


SCORERS: Dict[ScorerKind, Scorer] = {
    ScorerKind.SCALE: scale_similarity,
    ScorerKind.CHOICE: choice_similarity,
    ScorerKind.TAGS: tags_overlap,
    ScorerKind.RANKING: ranking_concordance,
}


def score_item(
    a: ParsedSurvey,
    b: ParsedSurvey,
    question_id: str,
    kind: ScorerKind,
    config: Optional[MatchingConfig] = None
) -> float:
    """
    Score one question with the scorer registered for its kind.

    Args:
        a: First respondent
        b: Second respondent
        question_id: Question to compare
        kind: Scorer kind
        config: Matching config providing the question catalog

    Returns:
        Similarity in [0, 1]
    """
    question = config.get_question(question_id) if config is not None else None
    return SCORERS[kind](a, b, question_id, question)


def _as_number(value: Any, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    try:
        number = float(value)
    except OverflowError:
        return default
    if not math.isfinite(number):
        return default
    return number


def _as_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str)]


def _dedupe(items: List[str]) -> List[str]:
    """Drop repeated entries, keeping each item at its first position."""
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))
