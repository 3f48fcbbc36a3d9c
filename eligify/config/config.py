"""
Configuration management for the evaluation engine.
Loads settings from environment variables with sensible defaults.

Every variable is prefixed with ELIGIFY_. A .env file in the working
directory (or the file passed to get_config) is loaded first.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv

SCORING_METHODS = ("weighted", "pass_fail", "sum", "average", "percentage")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ScoringConfig:
    """Default scoring settings applied when criteria leave them unset."""
    pass_threshold: float = 65.0
    method: str = "weighted"
    precision: int = 2  # decimal places the final score is rounded to

    def __post_init__(self):
        if not 0 <= self.pass_threshold <= 100:
            raise ValueError(
                f"pass_threshold must be within [0, 100], got {self.pass_threshold}"
            )
        self.method = self.method.strip().lower()
        if self.method not in SCORING_METHODS:
            raise ValueError(
                f"Unknown scoring method '{self.method}'. Valid: {', '.join(SCORING_METHODS)}"
            )
        if self.precision < 0:
            raise ValueError(f"precision must be >= 0, got {self.precision}")


@dataclass
class RuleWeightConfig:
    """Default rule weight per priority."""
    critical: float = 100.0
    high: float = 75.0
    medium: float = 50.0
    low: float = 25.0
    info: float = 0.0

    def __post_init__(self):
        for name, value in self.as_dict().items():
            if value < 0:
                raise ValueError(f"Weight for priority '{name}' must be >= 0, got {value}")

    def as_dict(self) -> Dict[str, float]:
        return {
            "critical": self.critical,
            "high": self.high,
            "medium": self.medium,
            "low": self.low,
            "info": self.info,
        }

    def weight_for(self, priority: str) -> float:
        """Weight for a priority name (case-insensitive)."""
        return self.as_dict()[str(priority).lower()]


@dataclass
class EvaluationConfig:
    """Evaluation behaviour."""
    # Criteria with no active rules: error (False) or trivially pass (True)
    allow_empty_criteria: bool = False
    batch_size: int = 100
    max_workers: int = 1

    def __post_init__(self):
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}")
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")


@dataclass
class DecisionConfig:
    """
    Decision labels by score tier.

    Tiers are (minimum score, label) pairs; the first tier whose minimum
    the score reaches wins. A verdict that reaches no tier gets the
    fallback label.
    """
    pass_tiers: List[tuple] = field(default_factory=lambda: [
        (90.0, "Excellent"),
        (80.0, "Very Good"),
        (70.0, "Good"),
    ])
    pass_fallback: str = "Approved"
    fail_tiers: List[tuple] = field(default_factory=lambda: [
        (50.0, "Needs Improvement"),
        (30.0, "Poor"),
    ])
    fail_fallback: str = "Rejected"

    def label_for(self, score: float, passed: bool) -> str:
        tiers = self.pass_tiers if passed else self.fail_tiers
        for minimum, label in sorted(tiers, key=lambda t: t[0], reverse=True):
            if score >= minimum:
                return label
        return self.pass_fallback if passed else self.fail_fallback


@dataclass
class LogConfig:
    """Logging configuration. An empty log_dir disables file output."""
    level: str = "INFO"
    log_dir: str = ""

    def __post_init__(self):
        self.level = self.level.strip().upper()
        if self.level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level '{self.level}'. Valid: {', '.join(LOG_LEVELS)}")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("true", "1", "yes")


class Config:
    """
    Central configuration manager.

    Loads configuration from environment variables and provides
    typed access to all settings.
    """

    _instance: Optional['Config'] = None

    def __new__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, env_file: str = ".env"):
        if self._initialized:
            return

        for env_name in [".env", env_file]:
            env_path = Path(env_name)
            if env_path.exists():
                load_dotenv(env_path, override=True)

        self.scoring = self._load_scoring_config()
        self.weights = self._load_weight_config()
        self.evaluation = self._load_evaluation_config()
        self.decisions = DecisionConfig()
        self.log = self._load_log_config()

        self._initialized = True

    def _load_scoring_config(self) -> ScoringConfig:
        """Load scoring defaults from environment."""
        return ScoringConfig(
            pass_threshold=float(os.getenv("ELIGIFY_PASS_THRESHOLD", "65")),
            method=os.getenv("ELIGIFY_SCORING_METHOD", "weighted"),
            precision=int(os.getenv("ELIGIFY_SCORE_PRECISION", "2")),
        )

    def _load_weight_config(self) -> RuleWeightConfig:
        """Load per-priority weights from environment."""
        return RuleWeightConfig(
            critical=float(os.getenv("ELIGIFY_WEIGHT_CRITICAL", "100")),
            high=float(os.getenv("ELIGIFY_WEIGHT_HIGH", "75")),
            medium=float(os.getenv("ELIGIFY_WEIGHT_MEDIUM", "50")),
            low=float(os.getenv("ELIGIFY_WEIGHT_LOW", "25")),
            info=float(os.getenv("ELIGIFY_WEIGHT_INFO", "0")),
        )

    def _load_evaluation_config(self) -> EvaluationConfig:
        """Load evaluation behaviour from environment."""
        return EvaluationConfig(
            allow_empty_criteria=_env_bool("ELIGIFY_ALLOW_EMPTY_CRITERIA", "false"),
            batch_size=int(os.getenv("ELIGIFY_BATCH_SIZE", "100")),
            max_workers=int(os.getenv("ELIGIFY_MAX_WORKERS", "1")),
        )

    def _load_log_config(self) -> LogConfig:
        """Load logging configuration from environment."""
        return LogConfig(
            level=os.getenv("ELIGIFY_LOG_LEVEL", "INFO"),
            log_dir=os.getenv("ELIGIFY_LOG_DIR", ""),
        )

    def reload(self, env_file: str = ".env") -> 'Config':
        """Reload configuration from environment."""
        self._initialized = False
        Config._instance = None
        return Config(env_file)

    def validate(self) -> tuple[bool, List[str]]:
        """
        Cross-check settings that are individually valid.

        Returns:
            Tuple of (is_valid, list of error/warning messages)
        """
        errors = []
        warnings = []

        if self.evaluation.allow_empty_criteria:
            warnings.append(
                "WARNING: ELIGIFY_ALLOW_EMPTY_CRITERIA=true - criteria without active rules pass with score 100"
            )
        if self.evaluation.max_workers > 1 and self.evaluation.batch_size < self.evaluation.max_workers:
            warnings.append(
                f"WARNING: batch_size ({self.evaluation.batch_size}) is smaller than "
                f"max_workers ({self.evaluation.max_workers}); some workers stay idle"
            )
        if self.log.log_dir:
            log_dir = Path(self.log.log_dir)
            if log_dir.exists() and not log_dir.is_dir():
                errors.append(f"ELIGIFY_LOG_DIR '{self.log.log_dir}' exists and is not a directory")

        messages = errors + warnings
        return len(errors) == 0, messages

    def summary(self) -> str:
        """One-line settings summary."""
        return (
            f"threshold={self.scoring.pass_threshold} | method={self.scoring.method} | "
            f"precision={self.scoring.precision} | batch_size={self.evaluation.batch_size} | "
            f"workers={self.evaluation.max_workers} | log={self.log.level}"
        )


def get_config(env_file: str = ".env") -> Config:
    """Get or create the global config instance."""
    return Config(env_file)


def reset_config() -> None:
    """Drop the cached instance so the next get_config() re-reads the environment."""
    Config._instance = None
