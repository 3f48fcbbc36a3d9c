"""Configuration module."""

from .config import (
    Config,
    DecisionConfig,
    EvaluationConfig,
    LogConfig,
    RuleWeightConfig,
    ScoringConfig,
    get_config,
    reset_config,
)

__all__ = [
    "Config",
    "DecisionConfig",
    "EvaluationConfig",
    "LogConfig",
    "RuleWeightConfig",
    "ScoringConfig",
    "get_config",
    "reset_config",
]
