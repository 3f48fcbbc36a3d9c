"""
Eligify: rule and group evaluation engine for eligibility criteria.

    from eligify import CriteriaBuilder, evaluate

    criteria = (
        CriteriaBuilder("loan")
        .add_rule("income", ">=", 3000, weight=40)
        .add_rule("credit_score", ">=", 650, weight=60)
        .build()
    )
    result = evaluate(criteria, {"income": 5000, "credit_score": 600})
    result.passed, result.score  # (False, 40.0)
"""

from .builder import CriteriaBuilder, GroupBuilder
from .engine import BatchResult, CriteriaEvaluator, ScoringEngine, evaluate, evaluate_batch
from .loader import criteria_from_dict, list_presets, load_criteria, load_preset
from .rules import (
    CoercionError,
    ConfigurationError,
    Criteria,
    EligifyError,
    EvaluationResult,
    ExpressionEvaluationError,
    ExpressionSyntaxError,
    FieldResolutionError,
    FieldType,
    GroupCombination,
    GroupResult,
    OperatorEvaluator,
    ReasonCode,
    Rule,
    RuleGroup,
    RuleOperator,
    RulePriority,
    RuleResult,
    ScoringMethod,
    compile_criteria,
)

__version__ = "0.1.0"

__all__ = [
    "CriteriaBuilder",
    "GroupBuilder",
    "CriteriaEvaluator",
    "ScoringEngine",
    "OperatorEvaluator",
    "evaluate",
    "evaluate_batch",
    "BatchResult",
    "compile_criteria",
    "criteria_from_dict",
    "load_criteria",
    "load_preset",
    "list_presets",
    "Criteria",
    "Rule",
    "RuleGroup",
    "RuleResult",
    "GroupResult",
    "EvaluationResult",
    "FieldType",
    "GroupCombination",
    "ReasonCode",
    "RuleOperator",
    "RulePriority",
    "ScoringMethod",
    "EligifyError",
    "ConfigurationError",
    "ExpressionSyntaxError",
    "FieldResolutionError",
    "CoercionError",
    "ExpressionEvaluationError",
]
