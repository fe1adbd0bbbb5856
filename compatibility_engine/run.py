"""
Main runner for a matching round.

This is the single entrypoint for running a batch round offline, against a
snapshot of the survey table.

Usage:
    python -m compatibility_engine.run --config configs/config.yaml

The runner performs the following steps:
1. Load and validate configuration (runner + per-version matching configs)
2. Load survey records, trait profiles and already-recorded pairs
3. Run the batch round (one pool per survey version, largest first)
4. Evaluate the round (coverage, compatibility distribution)
5. Optionally re-run under several seeds for stability analysis
6. Save all artifacts
"""

import argparse
import logging
import sys
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

import numpy as np

from .configs.matching import MatchingConfig, ScorerKind
from .schema import SurveyRecord

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def setup_logging(log_level: str) -> None:
    """Configure logging level from config."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.getLogger().setLevel(level)


def run_round(
    config_path: str,
    surveys_path: Optional[str] = None,
    profiles_path: Optional[str] = None,
    seed: Optional[int] = None,
    strategy: Optional[str] = None,
    output_dir: Optional[str] = None,
    stability: bool = False
) -> Dict[str, Any]:
    """
    Run a complete batch round.

    Args:
        config_path: Path to the runner configuration YAML file
        surveys_path: Survey snapshot (overrides data.surveys)
        profiles_path: Trait profiles (overrides data.profiles)
        seed: Visitation order seed (overrides global.random_seed)
        strategy: "greedy" or "edge_greedy" (overrides round.strategy)
        output_dir: Artifact directory (overrides global.output_dir)
        stability: Re-run the round under evaluation.stability_seeds

    Returns:
        Dictionary with round results and paths to artifacts
    """
    from .artifacts import ArtifactManager
    from .configs import load_config, validate_config, load_matching_configs, get_config_value
    from .data_loading import load_survey_records, load_trait_profiles, load_recorded_pairs
    from .evaluation import create_round_report
    from .rounds import current_period_key, run_batch_round

    # =========================================================================
    # 1. Load and validate configuration
    # =========================================================================
    logger.info("=" * 60)
    logger.info("COMPATIBILITY MATCHING ROUND")
    logger.info("=" * 60)

    config = load_config(config_path)
    issues = validate_config(config)
    if issues:
        for issue in issues:
            logger.warning(f"Config issue: {issue}")

    setup_logging(get_config_value(config, "global.log_level", "INFO"))

    base_seed = seed if seed is not None else get_config_value(config, "global.random_seed")
    strategy = strategy or get_config_value(config, "round.strategy", "greedy")
    max_full_graph = get_config_value(config, "round.max_full_graph", 2000)
    sample_size = get_config_value(config, "round.sample_size", 200)

    matching_configs = load_matching_configs(config.get("versions") or None)
    logger.info(f"Matching configs: {sorted(matching_configs)}")

    effective_output_dir = output_dir or get_config_value(config, "global.output_dir", "artifacts")
    artifact_manager = ArtifactManager(effective_output_dir)

    now = datetime.now()
    period = current_period_key(now)

    # =========================================================================
    # 2. Load data
    # =========================================================================
    logger.info("\n" + "=" * 60)
    logger.info("STEP 1: Loading Data")
    logger.info("=" * 60)

    surveys_path = surveys_path or get_config_value(config, "data.surveys")
    try:
        if not surveys_path:
            raise FileNotFoundError("No survey snapshot configured")
        records = load_survey_records(surveys_path)
    except FileNotFoundError as e:
        logger.error(f"Survey snapshot not found: {e}")
        logger.info("Creating synthetic survey records for demonstration...")
        records = _create_synthetic_surveys(matching_configs, random_seed=base_seed)

    profiles = None
    profiles_path = profiles_path or get_config_value(config, "data.profiles")
    if profiles_path:
        try:
            profiles = load_trait_profiles(profiles_path)
        except FileNotFoundError as e:
            logger.warning(f"Trait profiles not found, running without profile pre-filter: {e}")

    recorded_pairs = None
    recorded_path = get_config_value(config, "data.recorded_pairs")
    if recorded_path:
        try:
            recorded_pairs = load_recorded_pairs(recorded_path, period=period)
        except FileNotFoundError as e:
            logger.warning(f"Recorded pairs not found, no pairs excluded: {e}")

    # =========================================================================
    # 3. Batch round
    # =========================================================================
    logger.info("\n" + "=" * 60)
    logger.info(f"STEP 2: Batch Round ({strategy}, seed={base_seed})")
    logger.info("=" * 60)

    round_kwargs = dict(
        recorded_pairs=recorded_pairs,
        profiles=profiles,
        strategy=strategy,
        max_full_graph=max_full_graph,
        sample_size=sample_size,
        now=now
    )
    batch = run_batch_round(records, matching_configs, random_seed=base_seed, **round_kwargs)

    for version, stats in batch.pool_stats.items():
        logger.info(f"  Pool {version}: {stats.eligible} available, {stats.matched} matched")

    # =========================================================================
    # 4. Evaluation and stability analysis
    # =========================================================================
    logger.info("\n" + "=" * 60)
    logger.info("STEP 3: Evaluation")
    logger.info("=" * 60)

    eligible_ids = list(dict.fromkeys(r.user_id for r in records if r.is_eligible))
    stability_seeds: List[int] = []
    run_results = None

    if stability:
        stability_seeds = get_config_value(config, "evaluation.stability_seeds", [11, 22, 33, 44, 55])
        logger.info(f"Running stability analysis with seeds: {stability_seeds}")
        run_results = [
            run_batch_round(records, matching_configs, random_seed=s, **round_kwargs).results
            for s in stability_seeds
        ]

    report = create_round_report(
        round_name=period,
        results=batch.results,
        n_eligible=batch.total_eligible,
        run_results=run_results,
        user_ids=eligible_ids,
        quantiles=get_config_value(config, "evaluation.quantiles")
    )
    report.additional_metrics["pool_stats"] = {v: s.to_dict() for v, s in batch.pool_stats.items()}
    logger.info("\n" + report.summary())

    # =========================================================================
    # 5. Save artifacts
    # =========================================================================
    artifact_manager.save_matches(batch.results)
    artifact_manager.save_round_report(report)

    from . import __version__
    metadata = {
        "engine_version": __version__,
        "run_timestamp": now.isoformat(),
        "period": period,
        "config_path": config_path,
        "surveys_path": surveys_path,
        "strategy": strategy,
        "random_seed": base_seed,
        "stability_seeds": stability_seeds,
        "versions": sorted(matching_configs),
        "total_records": len(records),
        "total_eligible": batch.total_eligible,
        "matches_created": len(batch.results),
        "pool_stats": {v: s.to_dict() for v, s in batch.pool_stats.items()}
    }
    artifact_manager.save_metadata(metadata)
    artifact_manager.save_yaml_config(config, "config_used")

    # =========================================================================
    # Summary
    # =========================================================================
    logger.info("\n" + "=" * 60)
    logger.info("ROUND COMPLETE")
    logger.info("=" * 60)

    artifacts = artifact_manager.list_artifacts()
    logger.info(f"\nArtifacts saved to {artifact_manager.output_dir}/:")
    for name in artifacts:
        logger.info(f"  - {name}")

    return {
        "success": True,
        "output_dir": str(artifact_manager.output_dir),
        "artifacts": artifacts,
        "metadata": metadata,
        "batch": batch,
        "report": report
    }


def _create_synthetic_surveys(
    configs: Mapping[str, MatchingConfig],
    n_users: int = 200,
    random_seed: Optional[int] = None
) -> List[SurveyRecord]:
    """Create synthetic survey records for demonstration when no snapshot is available."""
    rng = np.random.RandomState(42 if random_seed is None else random_seed)
    versions = sorted(configs)

    # Most respondents answer one version; some answer two
    version_tags = versions + ["+".join(versions)] if len(versions) > 1 else versions
    weights = np.array([0.6] + [0.3] * (len(version_tags) - 2) + [0.1])[:len(version_tags)]
    weights = weights / weights.sum()

    records = []
    for i in range(n_users):
        tag = version_tags[rng.choice(len(version_tags), p=weights)]
        answers: Dict[str, Any] = {"_surveyVersion": tag}

        for version in tag.split("+"):
            for question in configs[version].questions.values():
                answers[question.question_id] = _synthetic_answer(question, rng)

        records.append(SurveyRecord(
            user_id=f"user_{i:04d}",
            answers=answers,
            completed=bool(rng.rand() < 0.95),
            opted_in=bool(rng.rand() < 0.9)
        ))

    logger.info(f"Created synthetic survey records: {n_users} users")
    return records


def _synthetic_answer(question, rng: np.random.RandomState) -> Any:
    codes = list(question.options)
    if question.kind == ScorerKind.SCALE:
        return int(rng.randint(int(question.min), int(question.max) + 1))
    if question.kind == ScorerKind.CHOICE:
        return codes[rng.randint(len(codes))]
    if question.kind == ScorerKind.TAGS:
        size = rng.randint(1, min(3, len(codes)) + 1)
        return [str(c) for c in rng.choice(codes, size=size, replace=False)]
    return [str(c) for c in rng.permutation(codes)]


def main():
    """Main entry point for the round runner."""
    parser = argparse.ArgumentParser(
        description="Run a compatibility matching round"
    )
    parser.add_argument(
        "--config",
        type=str,
        default="configs/config.yaml",
        help="Path to configuration file"
    )
    parser.add_argument(
        "--surveys",
        type=str,
        default=None,
        help="Survey snapshot (.json, .jsonl or .csv; overrides config)"
    )
    parser.add_argument(
        "--profiles",
        type=str,
        default=None,
        help="Trait profiles JSON (overrides config)"
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Visitation order seed (overrides config)"
    )
    parser.add_argument(
        "--strategy",
        type=str,
        choices=["greedy", "edge_greedy"],
        default=None,
        help="Matching strategy (overrides config)"
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help="Output directory for artifacts (overrides config)"
    )
    parser.add_argument(
        "--stability",
        action="store_true",
        help="Re-run the round under the configured stability seeds"
    )

    args = parser.parse_args()

    try:
        result = run_round(
            args.config,
            surveys_path=args.surveys,
            profiles_path=args.profiles,
            seed=args.seed,
            strategy=args.strategy,
            output_dir=args.output_dir,
            stability=args.stability
        )
        if result["success"]:
            logger.info("\nRound completed successfully!")
            return 0
        else:
            logger.error("\nRound failed!")
            return 1
    except Exception as e:
        logger.exception(f"Round failed with error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
