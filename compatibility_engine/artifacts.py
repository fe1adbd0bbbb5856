"""
Artifact management for round outputs.

Every file a run produces goes through the ArtifactManager so that the
output directory layout is decided in one place:

    <output_dir>/
        matches.json        Wire-format results (user1Id, user2Id, ...)
        matches.csv         Same results, tabulated with pandas
        round_report.json   Coverage, distribution and stability metrics
        config_used.yaml    Runner configuration as resolved for the run
        metadata.json       Run metadata (period, seed, versions, counts)
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Sequence

import yaml

from .evaluation.metrics import RoundReport, results_to_frame
from .schema import MatchResult

logger = logging.getLogger(__name__)


class ArtifactManager:
    """
    Writer for the artifacts of one run.

    Attributes:
        output_dir: Directory receiving the artifacts (created if missing)
    """

    def __init__(self, output_dir: str):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def save_matches(self, results: Sequence[MatchResult], name: str = "matches") -> Path:
        """Save results as JSON (wire keys) and CSV."""
        json_path = self.output_dir / f"{name}.json"
        with open(json_path, "w") as f:
            json.dump([r.to_dict() for r in results], f, indent=2, ensure_ascii=False)

        csv_path = self.output_dir / f"{name}.csv"
        results_to_frame(results).to_csv(csv_path, index=False)

        logger.info(f"Saved {len(results)} matches to {json_path} and {csv_path}")
        return json_path

    def save_round_report(self, report: RoundReport, name: str = "round_report") -> Path:
        path = self.output_dir / f"{name}.json"
        report.save(str(path))
        return path

    def save_metadata(self, metadata: Dict[str, Any]) -> Path:
        path = self.output_dir / "metadata.json"
        with open(path, "w") as f:
            json.dump(metadata, f, indent=2, default=str)
        logger.info(f"Saved metadata to {path}")
        return path

    def save_yaml_config(self, config: Dict[str, Any], name: str) -> Path:
        path = self.output_dir / f"{name}.yaml"
        with open(path, "w") as f:
            yaml.safe_dump(config, f, default_flow_style=False, sort_keys=False, allow_unicode=True)
        logger.info(f"Saved configuration to {path}")
        return path

    def list_artifacts(self) -> List[str]:
        """List artifact file names in the output directory."""
        return sorted(p.name for p in self.output_dir.iterdir() if p.is_file())
