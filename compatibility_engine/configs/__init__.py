"""Configuration loading for the runner and the per-version matching configs."""

from .loader import (
    load_config,
    validate_config,
    get_config_value,
    load_matching_config,
    load_matching_configs
)
from .matching import (
    ScorerKind,
    QuestionSpec,
    DimensionItem,
    DimensionConfig,
    HardFilterConfig,
    ReasonConfig,
    MatchingConfig
)

__all__ = [
    "load_config",
    "validate_config",
    "get_config_value",
    "load_matching_config",
    "load_matching_configs",
    "ScorerKind",
    "QuestionSpec",
    "DimensionItem",
    "DimensionConfig",
    "HardFilterConfig",
    "ReasonConfig",
    "MatchingConfig"
]
