"""
Evaluation engine: rule, group, scoring and orchestration layers.
"""

from .batch import BatchItem, BatchResult, data_hash, evaluate_batch
from .evaluator import CriteriaEvaluator, evaluate
from .group_evaluator import GroupEvaluator, combine
from .rule_evaluator import RuleEvaluator
from .scoring import (
    AverageScorer,
    PassFailScorer,
    PercentageScorer,
    Scorer,
    ScoreUnit,
    ScoringEngine,
    SumScorer,
    WeightedScorer,
)

__all__ = [
    "CriteriaEvaluator",
    "evaluate",
    "RuleEvaluator",
    "GroupEvaluator",
    "combine",
    "ScoringEngine",
    "Scorer",
    "ScoreUnit",
    "WeightedScorer",
    "PassFailScorer",
    "SumScorer",
    "AverageScorer",
    "PercentageScorer",
    "evaluate_batch",
    "BatchItem",
    "BatchResult",
    "data_hash",
]
