"""
Operator Registry - Single source of truth for operator semantics.

Used by:
- Criteria compilation (reject unknown operators, bad value shapes and
  invalid operator/field-type pairings before any data is evaluated)
- Builders and loaders (alias resolution)

Adding a new operator requires a RuleOperator member, an entry here and an
evaluation function registered with the OperatorEvaluator.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import FrozenSet

from .types import FieldType, RuleOperator


class OpCategory(Enum):
    """Operator families."""
    EQUALITY = auto()
    ORDERING = auto()
    MEMBERSHIP = auto()
    RANGE = auto()
    STRING = auto()
    EXISTENCE = auto()
    PATTERN = auto()


class ValueShape(Enum):
    """Shape the configured expected value must have."""
    SCALAR = auto()   # single number/string/bool/date
    LIST = auto()     # sequence of scalars (may be empty)
    PAIR = auto()     # exactly two scalars: [lo, hi]
    PATTERN = auto()  # regex pattern string
    NONE = auto()     # no expected value


@dataclass(frozen=True)
class OperatorSpec:
    """
    Specification for a single operator.

    Attributes:
        operator: Canonical RuleOperator
        category: Operator family
        value_shape: Required shape of the expected value
        label: Short human label
        description: One-line description for docs/UI
    """
    operator: RuleOperator
    category: OpCategory
    value_shape: ValueShape
    label: str
    description: str

    @property
    def requires_value(self) -> bool:
        return self.value_shape != ValueShape.NONE


# =============================================================================
# OPERATOR REGISTRY
# =============================================================================

OPERATOR_REGISTRY: dict[RuleOperator, OperatorSpec] = {
    RuleOperator.EQ: OperatorSpec(
        RuleOperator.EQ, OpCategory.EQUALITY, ValueShape.SCALAR,
        "equals", "Field equals the value exactly",
    ),
    RuleOperator.NE: OperatorSpec(
        RuleOperator.NE, OpCategory.EQUALITY, ValueShape.SCALAR,
        "not equals", "Field differs from the value",
    ),
    RuleOperator.GT: OperatorSpec(
        RuleOperator.GT, OpCategory.ORDERING, ValueShape.SCALAR,
        "greater than", "Field is strictly greater than the value",
    ),
    RuleOperator.GE: OperatorSpec(
        RuleOperator.GE, OpCategory.ORDERING, ValueShape.SCALAR,
        "greater or equal", "Field is greater than or equal to the value",
    ),
    RuleOperator.LT: OperatorSpec(
        RuleOperator.LT, OpCategory.ORDERING, ValueShape.SCALAR,
        "less than", "Field is strictly less than the value",
    ),
    RuleOperator.LE: OperatorSpec(
        RuleOperator.LE, OpCategory.ORDERING, ValueShape.SCALAR,
        "less or equal", "Field is less than or equal to the value",
    ),
    RuleOperator.IN: OperatorSpec(
        RuleOperator.IN, OpCategory.MEMBERSHIP, ValueShape.LIST,
        "in", "Field is one of the listed values",
    ),
    RuleOperator.NOT_IN: OperatorSpec(
        RuleOperator.NOT_IN, OpCategory.MEMBERSHIP, ValueShape.LIST,
        "not in", "Field is none of the listed values",
    ),
    RuleOperator.BETWEEN: OperatorSpec(
        RuleOperator.BETWEEN, OpCategory.RANGE, ValueShape.PAIR,
        "between", "Field lies within [lo, hi] inclusive",
    ),
    RuleOperator.NOT_BETWEEN: OperatorSpec(
        RuleOperator.NOT_BETWEEN, OpCategory.RANGE, ValueShape.PAIR,
        "not between", "Field lies outside [lo, hi]",
    ),
    RuleOperator.CONTAINS: OperatorSpec(
        RuleOperator.CONTAINS, OpCategory.STRING, ValueShape.SCALAR,
        "contains", "String field contains the substring, or array field contains the element",
    ),
    RuleOperator.STARTS_WITH: OperatorSpec(
        RuleOperator.STARTS_WITH, OpCategory.STRING, ValueShape.SCALAR,
        "starts with", "String field starts with the value",
    ),
    RuleOperator.ENDS_WITH: OperatorSpec(
        RuleOperator.ENDS_WITH, OpCategory.STRING, ValueShape.SCALAR,
        "ends with", "String field ends with the value",
    ),
    RuleOperator.EXISTS: OperatorSpec(
        RuleOperator.EXISTS, OpCategory.EXISTENCE, ValueShape.NONE,
        "exists", "Field is present and not null",
    ),
    RuleOperator.NOT_EXISTS: OperatorSpec(
        RuleOperator.NOT_EXISTS, OpCategory.EXISTENCE, ValueShape.NONE,
        "does not exist", "Field is absent or null",
    ),
    RuleOperator.REGEX: OperatorSpec(
        RuleOperator.REGEX, OpCategory.PATTERN, ValueShape.PATTERN,
        "matches pattern", "Field matches the regular expression",
    ),
}

# Alternate spellings accepted wherever an operator is parsed
OPERATOR_ALIASES: dict[str, str] = {
    "=": "==",
    "equals": "==",
    "<>": "!=",
    "neq": "!=",
    "not_equals": "!=",
    "gte": ">=",
    "greater_than": ">",
    "greater_than_or_equal": ">=",
    "lte": "<=",
    "less_than": "<",
    "less_than_or_equal": "<=",
    "not in": "not_in",
    "nin": "not_in",
    "not between": "not_between",
    "startswith": "starts_with",
    "endswith": "ends_with",
    "matches": "regex",
}

# Operator families allowed per field-type hint (existence is always allowed)
FIELD_TYPE_CATEGORIES: dict[FieldType, FrozenSet[OpCategory]] = {
    FieldType.NUMERIC: frozenset(
        {OpCategory.EQUALITY, OpCategory.ORDERING, OpCategory.RANGE, OpCategory.MEMBERSHIP}
    ),
    FieldType.INTEGER: frozenset(
        {OpCategory.EQUALITY, OpCategory.ORDERING, OpCategory.RANGE, OpCategory.MEMBERSHIP}
    ),
    FieldType.STRING: frozenset(
        {OpCategory.EQUALITY, OpCategory.MEMBERSHIP, OpCategory.STRING, OpCategory.PATTERN}
    ),
    FieldType.BOOLEAN: frozenset({OpCategory.EQUALITY}),
    FieldType.DATE: frozenset(
        {OpCategory.EQUALITY, OpCategory.ORDERING, OpCategory.RANGE}
    ),
    FieldType.ARRAY: frozenset({OpCategory.MEMBERSHIP}),
}

ALL_OPERATORS: FrozenSet[str] = frozenset(
    {op.value for op in RuleOperator} | set(OPERATOR_ALIASES)
)


def get_canonical_operator(operator: str | RuleOperator) -> RuleOperator:
    """
    Resolve an operator name or alias to its canonical RuleOperator.

    Raises:
        ConfigurationError: If the operator is unknown
    """
    return RuleOperator.from_value(operator)


def get_operator_spec(operator: str | RuleOperator) -> OperatorSpec | None:
    """
    Get operator specification from registry.

    Returns:
        OperatorSpec if known, None if unknown
    """
    from .errors import ConfigurationError

    try:
        return OPERATOR_REGISTRY.get(get_canonical_operator(operator))
    except ConfigurationError:
        return None


def is_operator_allowed(operator: RuleOperator, field_type: FieldType | None) -> bool:
    """Check the operator/field-type pairing. No hint means anything goes."""
    if field_type is None:
        return True
    spec = OPERATOR_REGISTRY[operator]
    if spec.category == OpCategory.EXISTENCE:
        return True
    # contains on an array field is membership, not a string test
    if field_type == FieldType.ARRAY and operator == RuleOperator.CONTAINS:
        return True
    return spec.category in FIELD_TYPE_CATEGORIES[field_type]


def operators_for_field_type(field_type: FieldType | str) -> list[RuleOperator]:
    """List operators valid for a field-type hint, in registry order."""
    ft = FieldType.from_value(field_type)
    return [op for op in OPERATOR_REGISTRY if is_operator_allowed(op, ft)]


def validate_operator(
    operator: str | RuleOperator,
    field_type: FieldType | None = None,
) -> str | None:
    """
    Validate an operator, optionally against a field-type hint.

    Returns:
        None if valid, error message if invalid
    """
    spec = get_operator_spec(operator)
    if spec is None:
        valid = ", ".join(op.value for op in OPERATOR_REGISTRY)
        return f"Unknown operator '{operator}'. Valid operators: {valid}"
    if not is_operator_allowed(spec.operator, field_type):
        return (
            f"Operator '{spec.operator.value}' is not valid for "
            f"field type '{field_type.value}'"
        )
    return None
