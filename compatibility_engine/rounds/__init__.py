"""Matching rounds: visitation ordering, the round matcher and batch rounds."""

from .ordering import ShuffledOrder, FixedOrder, identity_order, OrderingStrategy
from .matcher import RoundMatcher, run_matching_round, eligible_pool, recorded_pair_filter, STRATEGIES
from .batch import (
    current_period_key,
    survey_versions,
    group_by_version,
    combine_pair_filters,
    PoolStats,
    BatchRoundResult,
    run_batch_round
)

__all__ = [
    "ShuffledOrder",
    "FixedOrder",
    "identity_order",
    "OrderingStrategy",
    "RoundMatcher",
    "run_matching_round",
    "eligible_pool",
    "recorded_pair_filter",
    "STRATEGIES",
    "current_period_key",
    "survey_versions",
    "group_by_version",
    "combine_pair_filters",
    "PoolStats",
    "BatchRoundResult",
    "run_batch_round"
]
