"""
Configuration loading and validation.

This module handles loading of YAML configuration files: the runner
configuration (seed, logging, round strategy, data paths) and the
per-survey-version matching configurations.
"""

import logging
from pathlib import Path
from typing import Dict, Any, List, Optional

import yaml

from .matching import MatchingConfig

logger = logging.getLogger(__name__)

PACKAGED_CONFIG_DIR = Path(__file__).parent
DEFAULT_MATCHING_CONFIGS = ["v2.yaml", "v3_lite.yaml"]
KNOWN_STRATEGIES = ("greedy", "edge_greedy")


def load_config(filepath: str) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        filepath: Path to the YAML configuration file

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {filepath}")

    logger.info(f"Loading configuration from {filepath}")
    with open(filepath, "r") as f:
        config = yaml.safe_load(f)

    if config is None:
        raise ValueError(f"Configuration file is empty: {filepath}")

    return config


def validate_config(config: Dict[str, Any]) -> List[str]:
    """
    Validate runner configuration and return list of warnings/errors.

    Args:
        config: Configuration dictionary

    Returns:
        List of warning/error messages (empty if valid)
    """
    issues = []

    for section in ["global", "round"]:
        if section not in config:
            issues.append(f"Missing required section: {section}")

    if "round" in config:
        strategy = config["round"].get("strategy", "greedy")
        if strategy not in KNOWN_STRATEGIES:
            issues.append(f"Unknown round strategy: {strategy}")

        sample_size = config["round"].get("sample_size", 200)
        if sample_size < 1:
            issues.append(f"round.sample_size must be positive, got {sample_size}")

    if "versions" in config and not config["versions"]:
        issues.append("versions is empty; no matching configuration will be loaded")

    # Seeded runs are the only reproducible ones
    if "global" in config:
        if "random_seed" not in config["global"]:
            issues.append("Missing global.random_seed (visitation order will not be reproducible)")

    if "evaluation" in config:
        seeds = config["evaluation"].get("stability_seeds", [])
        if seeds and len(seeds) < 2:
            issues.append("evaluation.stability_seeds needs at least 2 seeds")

    return issues


def get_config_value(config: Dict[str, Any], path: str, default: Any = None) -> Any:
    """
    Get a nested configuration value using dot notation.

    Args:
        config: Configuration dictionary
        path: Dot-separated path (e.g., "round.strategy")
        default: Default value if path doesn't exist

    Returns:
        Configuration value or default
    """
    keys = path.split(".")
    value = config
    for key in keys:
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default
    return value


def load_matching_config(filepath: Optional[str] = None) -> MatchingConfig:
    """
    Load and validate a matching configuration.

    Args:
        filepath: Path to a matching YAML file. Bare file names are also
            looked up among the packaged configs. Defaults to the packaged v2.

    Returns:
        Validated MatchingConfig

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the configuration is invalid
    """
    path = Path(filepath) if filepath else PACKAGED_CONFIG_DIR / DEFAULT_MATCHING_CONFIGS[0]
    if not path.exists() and (PACKAGED_CONFIG_DIR / path.name).exists():
        path = PACKAGED_CONFIG_DIR / path.name

    document = load_config(str(path))
    matching = MatchingConfig.from_dict(document)

    n_items = sum(len(d.items) for d in matching.dimensions)
    logger.info(f"Loaded matching config '{matching.version}': "
               f"{len(matching.dimensions)} dimensions, {n_items} items, "
               f"{len(matching.hard_filters)} hard filters")
    return matching


def load_matching_configs(filepaths: Optional[List[str]] = None) -> Dict[str, MatchingConfig]:
    """
    Load several matching configurations keyed by survey version.

    Args:
        filepaths: Matching YAML paths (defaults to every packaged config)

    Returns:
        Dictionary of version -> MatchingConfig

    Raises:
        ValueError: If two files declare the same version
    """
    configs: Dict[str, MatchingConfig] = {}
    for filepath in filepaths or DEFAULT_MATCHING_CONFIGS:
        matching = load_matching_config(filepath)
        if matching.version in configs:
            raise ValueError(f"Duplicate matching config for version '{matching.version}'")
        configs[matching.version] = matching
    return configs
