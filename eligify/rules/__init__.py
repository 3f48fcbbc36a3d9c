"""
Rule definitions, validation and operator semantics.

Public API:
- Rule, RuleGroup, Criteria: definition value objects
- compile_criteria: validate once, evaluate many times
- OperatorEvaluator: operator dispatch with register() extension point
- parse_expression: boolean group logic
"""

from .compile import CompiledCriteria, CompiledGroup, CompiledRule, compile_criteria
from .coercion import MISSING, coerce, resolve_field, values_match
from .errors import (
    CoercionError,
    ConfigurationError,
    EligifyError,
    ExpressionEvaluationError,
    ExpressionSyntaxError,
    FieldResolutionError,
)
from .expression import (
    AllExpr,
    AnyExpr,
    NotExpr,
    RefExpr,
    collect_refs,
    evaluate_expr,
    parse_expression,
)
from .models import (
    Criteria,
    EvaluationResult,
    EvaluationTrace,
    GroupResult,
    Rule,
    RuleGroup,
    RuleResult,
    TraceStep,
)
from .operators import OPERATORS, OperatorEvaluator, OperatorOptions, compile_pattern
from .registry import (
    OPERATOR_REGISTRY,
    OperatorSpec,
    get_canonical_operator,
    get_operator_spec,
    operators_for_field_type,
    validate_operator,
)
from .types import (
    Comparable,
    FieldType,
    GroupCombination,
    ReasonCode,
    RuleOperator,
    RulePriority,
    ScoringMethod,
    ValueKind,
)

__all__ = [
    # Definitions
    "Rule",
    "RuleGroup",
    "Criteria",
    # Results
    "RuleResult",
    "GroupResult",
    "EvaluationResult",
    "EvaluationTrace",
    "TraceStep",
    # Compilation
    "compile_criteria",
    "CompiledCriteria",
    "CompiledGroup",
    "CompiledRule",
    # Coercion
    "MISSING",
    "coerce",
    "resolve_field",
    "values_match",
    # Operators
    "OPERATORS",
    "OPERATOR_REGISTRY",
    "OperatorEvaluator",
    "OperatorOptions",
    "OperatorSpec",
    "compile_pattern",
    "get_canonical_operator",
    "get_operator_spec",
    "operators_for_field_type",
    "validate_operator",
    # Expressions
    "AllExpr",
    "AnyExpr",
    "NotExpr",
    "RefExpr",
    "collect_refs",
    "evaluate_expr",
    "parse_expression",
    # Types
    "Comparable",
    "FieldType",
    "GroupCombination",
    "ReasonCode",
    "RuleOperator",
    "RulePriority",
    "ScoringMethod",
    "ValueKind",
    # Errors
    "EligifyError",
    "ConfigurationError",
    "ExpressionSyntaxError",
    "FieldResolutionError",
    "CoercionError",
    "ExpressionEvaluationError",
]
