"""
Evaluation metrics for matching rounds.

A round has no ground truth: nobody knows which pairing was "right". The
evaluation therefore describes round behavior:
1. Compatibility distribution over the emitted pairs
2. Coverage (how many eligible respondents were matched)
3. Stability across visitation orders (how much the pairing depends on
   who picks first)

This module DOES NOT claim that higher compatibility predicts real-world
relationship outcomes.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
from scipy.stats import pearsonr

from ..schema import MatchResult

logger = logging.getLogger(__name__)

DEFAULT_QUANTILES = [0.1, 0.25, 0.5, 0.75, 0.9]


@dataclass
class ScoreDistributionStats:
    """Statistics about the compatibility distribution of emitted pairs."""
    count: int
    mean: float
    std: float
    min: float
    max: float
    quantiles: Dict[str, float]  # e.g., {"p10": 62.0, "p50": 74.0, "p90": 88.0}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": int(self.count),
            "mean": float(self.mean),
            "std": float(self.std),
            "min": float(self.min),
            "max": float(self.max),
            "quantiles": {k: float(v) for k, v in self.quantiles.items()}
        }


@dataclass
class RoundCoverage:
    """How much of the eligible pool a round matched."""
    n_eligible: int
    n_pairs: int
    n_matched: int
    n_unmatched: int
    matched_fraction: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "n_eligible": int(self.n_eligible),
            "n_pairs": int(self.n_pairs),
            "n_matched": int(self.n_matched),
            "n_unmatched": int(self.n_unmatched),
            "matched_fraction": float(self.matched_fraction)
        }


@dataclass
class RoundStabilityMetrics:
    """Stability of a round across several seeded visitation orders."""
    n_runs: int
    pair_jaccard_mean: float  # Mean Jaccard overlap of pair sets between runs
    matched_fraction_mean: float
    matched_fraction_std: float
    partner_score_correlation_mean: float  # Mean correlation of per-user partner scores

    def to_dict(self) -> Dict[str, Any]:
        return {
            "n_runs": int(self.n_runs),
            "pair_jaccard_mean": float(self.pair_jaccard_mean),
            "matched_fraction_mean": float(self.matched_fraction_mean),
            "matched_fraction_std": float(self.matched_fraction_std),
            "partner_score_correlation_mean": float(self.partner_score_correlation_mean)
        }


@dataclass
class RoundReport:
    """
    Complete evaluation report for one round.

    Contains the compatibility distribution, coverage and (optionally)
    stability across visitation orders.
    """
    round_name: str
    distribution_stats: ScoreDistributionStats
    coverage: RoundCoverage
    stability_metrics: Optional[RoundStabilityMetrics] = None
    additional_metrics: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "round_name": self.round_name,
            "distribution_stats": self.distribution_stats.to_dict(),
            "coverage": self.coverage.to_dict(),
            "additional_metrics": self.additional_metrics
        }
        if self.stability_metrics:
            result["stability_metrics"] = self.stability_metrics.to_dict()
        return result

    def save(self, filepath: str) -> None:
        """Save report to JSON file."""
        with open(filepath, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.info(f"Saved round report to {filepath}")

    def summary(self) -> str:
        """Generate text summary of the report."""
        lines = [
            f"Round Report: {self.round_name}",
            "=" * 50,
            "",
            "Coverage:",
            f"  Eligible:  {self.coverage.n_eligible}",
            f"  Pairs:     {self.coverage.n_pairs}",
            f"  Unmatched: {self.coverage.n_unmatched}",
            f"  Matched fraction: {self.coverage.matched_fraction:.2%}",
            "",
            "Compatibility Distribution:",
            f"  Mean: {self.distribution_stats.mean:.2f}",
            f"  Std:  {self.distribution_stats.std:.2f}",
            f"  Min:  {self.distribution_stats.min:.0f}",
            f"  Max:  {self.distribution_stats.max:.0f}",
        ]

        for q_name, q_value in self.distribution_stats.quantiles.items():
            lines.append(f"  {q_name}: {q_value:.1f}")

        if self.stability_metrics:
            lines.extend([
                "",
                f"Stability Metrics ({self.stability_metrics.n_runs} orders):",
                f"  Pair Jaccard: {self.stability_metrics.pair_jaccard_mean:.4f}",
                f"  Matched fraction: {self.stability_metrics.matched_fraction_mean:.2%} "
                f"(std {self.stability_metrics.matched_fraction_std:.4f})",
                f"  Partner score correlation: {self.stability_metrics.partner_score_correlation_mean:.4f}",
            ])

        return "\n".join(lines)


def compute_score_distribution_stats(
    scores: Sequence[float],
    quantiles: Optional[List[float]] = None
) -> ScoreDistributionStats:
    """
    Compute distribution statistics for compatibility scores.

    Args:
        scores: Compatibility values
        quantiles: Quantile values to compute (default: p10, p25, p50, p75, p90)

    Returns:
        ScoreDistributionStats instance (all zeros for an empty round)
    """
    if quantiles is None:
        quantiles = DEFAULT_QUANTILES

    scores = np.asarray(scores, dtype=float)
    if scores.size == 0:
        return ScoreDistributionStats(
            count=0, mean=0.0, std=0.0, min=0.0, max=0.0,
            quantiles={f"p{int(round(q * 100))}": 0.0 for q in quantiles}
        )

    quantile_dict = {
        f"p{int(round(q * 100))}": float(np.percentile(scores, q * 100))
        for q in quantiles
    }

    return ScoreDistributionStats(
        count=int(scores.size),
        mean=float(np.mean(scores)),
        std=float(np.std(scores)),
        min=float(np.min(scores)),
        max=float(np.max(scores)),
        quantiles=quantile_dict
    )


def compute_round_coverage(n_eligible: int, results: Sequence[MatchResult]) -> RoundCoverage:
    """
    Compute coverage of a round.

    Args:
        n_eligible: Number of eligible respondents
        results: Emitted pairs

    Returns:
        RoundCoverage instance
    """
    n_matched = 2 * len(results)
    return RoundCoverage(
        n_eligible=n_eligible,
        n_pairs=len(results),
        n_matched=n_matched,
        n_unmatched=max(n_eligible - n_matched, 0),
        matched_fraction=n_matched / n_eligible if n_eligible > 0 else 0.0
    )


def partner_scores(results: Sequence[MatchResult], user_ids: Sequence[str]) -> np.ndarray:
    """
    Per-user partner compatibility (0 for unmatched users).

    Args:
        results: Emitted pairs
        user_ids: Users to report, in output order

    Returns:
        Array aligned with user_ids
    """
    by_user = {}
    for r in results:
        by_user[r.user1_id] = r.compatibility
        by_user[r.user2_id] = r.compatibility
    return np.array([by_user.get(uid, 0) for uid in user_ids], dtype=float)


def compute_stability_metrics(
    run_results: List[List[MatchResult]],
    user_ids: Sequence[str]
) -> RoundStabilityMetrics:
    """
    Compute stability metrics across rounds run with different orders.

    Args:
        run_results: Pairs emitted by each run over the same pool
        user_ids: Eligible users of the pool

    Returns:
        RoundStabilityMetrics instance
    """
    n_runs = len(run_results)
    n_users = len(user_ids)

    if n_runs < 2:
        logger.warning("Need at least 2 runs for stability analysis")
        fraction = 2 * len(run_results[0]) / n_users if n_runs and n_users else 0.0
        return RoundStabilityMetrics(
            n_runs=n_runs,
            pair_jaccard_mean=1.0,
            matched_fraction_mean=fraction,
            matched_fraction_std=0.0,
            partner_score_correlation_mean=1.0
        )

    pair_sets = [{r.pair for r in results} for results in run_results]
    fractions = np.array([2 * len(results) / n_users if n_users else 0.0 for results in run_results])
    score_vectors = [partner_scores(results, user_ids) for results in run_results]

    jaccard_scores = []
    correlations = []
    for i in range(n_runs):
        for j in range(i + 1, n_runs):
            union = len(pair_sets[i] | pair_sets[j])
            jaccard_scores.append(len(pair_sets[i] & pair_sets[j]) / union if union > 0 else 1.0)

            vec_i, vec_j = score_vectors[i], score_vectors[j]
            if np.array_equal(vec_i, vec_j):
                correlations.append(1.0)
            elif n_users >= 3 and np.std(vec_i) > 0 and np.std(vec_j) > 0:
                corr, _ = pearsonr(vec_i, vec_j)
                correlations.append(float(corr))

    return RoundStabilityMetrics(
        n_runs=n_runs,
        pair_jaccard_mean=float(np.mean(jaccard_scores)),
        matched_fraction_mean=float(np.mean(fractions)),
        matched_fraction_std=float(np.std(fractions)),
        partner_score_correlation_mean=float(np.mean(correlations)) if correlations else 0.0
    )


def results_to_frame(results: Sequence[MatchResult]) -> pd.DataFrame:
    """
    Tabulate results for CSV export.

    Args:
        results: Emitted pairs

    Returns:
        DataFrame with user1Id, user2Id, compatibility and reasons (" | "-joined)
    """
    return pd.DataFrame(
        [
            {
                "user1Id": r.user1_id,
                "user2Id": r.user2_id,
                "compatibility": r.compatibility,
                "reasons": " | ".join(r.reasons)
            }
            for r in results
        ],
        columns=["user1Id", "user2Id", "compatibility", "reasons"]
    )


def create_round_report(
    round_name: str,
    results: Sequence[MatchResult],
    n_eligible: int,
    run_results: Optional[List[List[MatchResult]]] = None,
    user_ids: Optional[Sequence[str]] = None,
    quantiles: Optional[List[float]] = None
) -> RoundReport:
    """
    Create a complete round report.

    Args:
        round_name: Name of the round (e.g. the period key)
        results: Emitted pairs
        n_eligible: Number of eligible respondents
        run_results: Pairs from repeated runs (for stability analysis)
        user_ids: Eligible users (required for stability analysis)
        quantiles: Quantiles to compute

    Returns:
        RoundReport instance
    """
    dist_stats = compute_score_distribution_stats([r.compatibility for r in results], quantiles)
    coverage = compute_round_coverage(n_eligible, results)

    stability = None
    if run_results and user_ids is not None:
        stability = compute_stability_metrics(run_results, user_ids)

    reason_counts = [len(r.reasons) for r in results]
    additional = {
        "mean_reasons": float(np.mean(reason_counts)) if reason_counts else 0.0
    }

    return RoundReport(
        round_name=round_name,
        distribution_stats=dist_stats,
        coverage=coverage,
        stability_metrics=stability,
        additional_metrics=additional
    )
