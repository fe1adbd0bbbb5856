"""
Dimension aggregation and compatibility mapping.

Combines per-question similarities into named dimension scores and the
dimension scores into one raw compatibility value, then maps the raw value
onto the user-facing percentage.

Aggregation Formula:
    dimension_score = sum(item_weight * item_similarity)
    raw = clip(sum(dimension_weight * dimension_score), 0, 1)

Compatibility Mapping:
    compatibility = clamp(round_half_up(raw * 45 + 55), 55, 99)

The floor of 55 is a product decision: even a mismatched pair reads as
"majority compatible". The ceiling keeps the display below 100%.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, Any, List, Optional

import numpy as np

from ..configs.matching import MatchingConfig
from ..schema import ParsedSurvey
from .scorers import score_item

logger = logging.getLogger(__name__)

COMPATIBILITY_FLOOR = 55
COMPATIBILITY_CEILING = 99
COMPATIBILITY_SPAN = 45


@dataclass
class DimensionScore:
    """Score of one dimension for one pair."""
    name: str
    weight: float
    score: float

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "weight": float(self.weight), "score": float(self.score)}


def compute_dimension_scores(
    a: ParsedSurvey,
    b: ParsedSurvey,
    config: MatchingConfig
) -> List[DimensionScore]:
    """
    Score every configured dimension for a pair.

    Args:
        a: First respondent
        b: Second respondent
        config: Matching configuration

    Returns:
        One DimensionScore per dimension, in configuration order
    """
    scores = []
    for dim in config.dimensions:
        item_scores = np.array([
            score_item(a, b, item.question_id, item.scorer, config) for item in dim.items
        ])
        item_weights = np.array([item.weight for item in dim.items])
        scores.append(DimensionScore(
            name=dim.name,
            weight=dim.weight,
            score=float(np.dot(item_weights, item_scores))
        ))
    return scores


def aggregate_raw_score(dimension_scores: List[DimensionScore]) -> float:
    """
    Combine dimension scores into one raw compatibility value.

    Args:
        dimension_scores: Per-dimension scores

    Returns:
        Weighted sum clipped to [0, 1]
    """
    if not dimension_scores:
        return 0.0

    weights = np.array([d.weight for d in dimension_scores])
    values = np.array([d.score for d in dimension_scores])
    return float(np.clip(np.dot(weights, values), 0, 1))


def to_compatibility_percent(raw: float) -> int:
    """
    Map a raw score in [0, 1] to the display percentage.

    Rounds half up (x.5 -> x+1), unlike Python's round(), then clamps to
    [55, 99].

    Args:
        raw: Raw aggregate score

    Returns:
        Integer compatibility in [55, 99]
    """
    scaled = math.floor(raw * COMPATIBILITY_SPAN + COMPATIBILITY_FLOOR + 0.5)
    return int(min(COMPATIBILITY_CEILING, max(COMPATIBILITY_FLOOR, scaled)))


def compute_compatibility(
    a: ParsedSurvey,
    b: ParsedSurvey,
    config: MatchingConfig,
    dimension_scores: Optional[List[DimensionScore]] = None
) -> int:
    """
    Compute the display compatibility for a pair.

    Hard filters are not applied here; callers check them first.

    Args:
        a: First respondent
        b: Second respondent
        config: Matching configuration
        dimension_scores: Precomputed dimension scores (computed if omitted)

    Returns:
        Integer compatibility in [55, 99]
    """
    if dimension_scores is None:
        dimension_scores = compute_dimension_scores(a, b, config)
    return to_compatibility_percent(aggregate_raw_score(dimension_scores))
