"""Scoring module: per-question scorers and dimension aggregation."""

from .scorers import (
    scale_similarity,
    choice_similarity,
    tags_overlap,
    ranking_concordance,
    score_item,
    SCORERS
)
from .aggregate import (
    DimensionScore,
    compute_dimension_scores,
    aggregate_raw_score,
    to_compatibility_percent,
    compute_compatibility
)

__all__ = [
    "scale_similarity",
    "choice_similarity",
    "tags_overlap",
    "ranking_concordance",
    "score_item",
    "SCORERS",
    "DimensionScore",
    "compute_dimension_scores",
    "aggregate_raw_score",
    "to_compatibility_percent",
    "compute_compatibility"
]
