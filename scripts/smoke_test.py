"""
Smoke test for the matching engine.

This script validates that:
1. The packaged matching configs load and validate
2. Scores stay in [55, 99] and are symmetric on a synthetic pool
3. A round never pairs a respondent twice or across a hard filter
4. The runner completes end-to-end and writes its artifacts

Usage:
    python scripts/smoke_test.py
"""

import sys
import tempfile
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import logging

import yaml

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def run_smoke_test():
    """Run smoke tests on scoring, rounds and the runner."""

    logger.info("=" * 60)
    logger.info("SMOKE TEST: Matching Engine")
    logger.info("=" * 60)

    from compatibility_engine.configs import load_matching_configs
    from compatibility_engine.filters import is_hard_filtered
    from compatibility_engine.rounds import eligible_pool, run_matching_round
    from compatibility_engine.run import _create_synthetic_surveys, run_round
    from compatibility_engine.scoring import compute_compatibility

    results = {}

    # =========================================================================
    # Test 1: Configs
    # =========================================================================
    logger.info("\n" + "=" * 60)
    logger.info("TEST 1: Matching Configs")
    logger.info("=" * 60)

    try:
        configs = load_matching_configs()
        for version, config in configs.items():
            n_items = sum(len(d.items) for d in config.dimensions)
            logger.info(f"  {version}: {len(config.dimensions)} dimensions, {n_items} items")
        results["configs"] = "PASSED"
    except Exception as e:
        logger.error(f"  CONFIG TEST FAILED: {e}")
        results["configs"] = f"FAILED - {e}"
        return _summarize(results)

    records = _create_synthetic_surveys(configs, n_users=120, random_seed=7)

    # =========================================================================
    # Test 2: Score range and symmetry
    # =========================================================================
    logger.info("\n" + "=" * 60)
    logger.info("TEST 2: Score Range and Symmetry")
    logger.info("=" * 60)

    try:
        config = configs["v2"]
        pool = list(eligible_pool(records).values())[:40]
        n_checked = 0
        for i, a in enumerate(pool):
            for b in pool[i + 1:]:
                forward = compute_compatibility(a, b, config)
                backward = compute_compatibility(b, a, config)
                assert 55 <= forward <= 99, f"{a.user_id}/{b.user_id} out of range: {forward}"
                assert forward == backward, f"{a.user_id}/{b.user_id} asymmetric: {forward} != {backward}"
                n_checked += 1
        logger.info(f"  Checked {n_checked} pairs: OK")
        results["scoring"] = "PASSED"
    except Exception as e:
        logger.error(f"  SCORING TEST FAILED: {e}")
        results["scoring"] = f"FAILED - {e}"

    # =========================================================================
    # Test 3: Round invariants
    # =========================================================================
    logger.info("\n" + "=" * 60)
    logger.info("TEST 3: Round Invariants")
    logger.info("=" * 60)

    try:
        config = configs["v2"]
        parsed = eligible_pool(records)
        for strategy in ["greedy", "edge_greedy"]:
            for seed in range(5):
                matches = run_matching_round(records, config, strategy=strategy, random_seed=seed)
                users = [uid for m in matches for uid in (m.user1_id, m.user2_id)]
                assert len(users) == len(set(users)), "respondent matched twice"
                for m in matches:
                    assert not is_hard_filtered(parsed[m.user1_id], parsed[m.user2_id], config)
            logger.info(f"  {strategy}: {len(matches)} pairs (last seed), invariants hold")
        results["rounds"] = "PASSED"
    except Exception as e:
        logger.error(f"  ROUND TEST FAILED: {e}")
        results["rounds"] = f"FAILED - {e}"

    # =========================================================================
    # Test 4: Runner end-to-end
    # =========================================================================
    logger.info("\n" + "=" * 60)
    logger.info("TEST 4: Runner End-to-End")
    logger.info("=" * 60)

    try:
        with tempfile.TemporaryDirectory() as tmp:
            with open(project_root / "configs" / "config.yaml") as f:
                config = yaml.safe_load(f)
            config["global"]["output_dir"] = str(Path(tmp) / "artifacts")
            config["data"] = {"surveys": str(Path(tmp) / "missing.json")}

            config_path = Path(tmp) / "config.yaml"
            with open(config_path, "w") as f:
                yaml.safe_dump(config, f)

            outcome = run_round(str(config_path), stability=True)
            logger.info(f"  Artifacts: {outcome['artifacts']}")
            expected = {"matches.json", "matches.csv", "round_report.json", "config_used.yaml", "metadata.json"}
            missing = expected - set(outcome["artifacts"])
            assert not missing, f"missing artifacts: {missing}"
        results["runner"] = "PASSED"
    except Exception as e:
        logger.error(f"  RUNNER TEST FAILED: {e}")
        results["runner"] = f"FAILED - {e}"
        import traceback
        traceback.print_exc()

    return _summarize(results)


def _summarize(results):
    logger.info("\n" + "=" * 60)
    logger.info("SMOKE TEST SUMMARY")
    logger.info("=" * 60)

    all_passed = True
    for name, status in results.items():
        logger.info(f"  {name.upper()}: {status}")
        if "FAILED" in status:
            all_passed = False

    if all_passed:
        logger.info("\n  ALL TESTS PASSED")
        return 0
    else:
        logger.error("\n  SOME TESTS FAILED")
        return 1


if __name__ == "__main__":
    sys.exit(run_smoke_test())
