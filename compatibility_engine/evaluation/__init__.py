"""Evaluation module for matching round analysis."""

from .metrics import (
    compute_score_distribution_stats,
    compute_round_coverage,
    compute_stability_metrics,
    partner_scores,
    results_to_frame,
    RoundReport,
    create_round_report
)

__all__ = [
    "compute_score_distribution_stats",
    "compute_round_coverage",
    "compute_stability_metrics",
    "partner_scores",
    "results_to_frame",
    "RoundReport",
    "create_round_report"
]
