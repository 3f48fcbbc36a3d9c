"""
Criteria compilation.

Compile at configuration time, not per evaluation:
- Resolve operator aliases and enum strings to canonical members
- Validate threshold, value shapes, weights, min_required and
  operator/field-type pairings
- Precompile regex patterns
- Parse boolean expressions and resolve their references to positions
- Sort rules and groups by order

Every problem raises ConfigurationError before any input data is touched.
The resulting CompiledCriteria is immutable and can be shared across
threads and reused for any number of evaluations.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping

from .errors import ConfigurationError
from .expression import Expr, parse_expression, resolve_refs
from .models import Criteria, Rule, RuleGroup
from .operators import OperatorEvaluator, OperatorOptions, compile_pattern
from .registry import OPERATOR_REGISTRY, OpCategory, ValueShape, validate_operator
from .types import FieldType, GroupCombination, RuleOperator, ScoringMethod


@dataclass(frozen=True)
class CompiledRule:
    """A validated rule ready for evaluation."""
    rule: Rule
    key: str
    operator: RuleOperator
    field_type: FieldType | None
    options: OperatorOptions
    weight: float
    order: int
    position: int  # 1-based, among all members of the owning container
    group_id: str | None = None

    @property
    def field(self) -> str:
        return self.rule.field


@dataclass(frozen=True)
class CompiledGroup:
    """A validated group. rules holds active members only."""
    group: RuleGroup
    group_id: str
    combination: GroupCombination
    rules: tuple[CompiledRule, ...]
    min_required: int | None
    expression: Expr | None  # references resolved to member positions
    weight: float
    position: int

    @property
    def name(self) -> str:
        return self.group.name or self.group_id


@dataclass(frozen=True)
class CompiledCriteria:
    """Validated, evaluation-ready criteria."""
    criteria: Criteria
    identifier: str
    threshold: float
    scoring: ScoringMethod
    precision: int
    rules: tuple[CompiledRule, ...]
    groups: tuple[CompiledGroup, ...]
    group_combination: GroupCombination
    group_min_required: int | None
    group_expression: Expr | None  # references resolved to group positions
    partial_credit: bool
    decision_thresholds: tuple[tuple[float, str], ...] | None
    is_empty: bool

    @property
    def rule_count(self) -> int:
        return len(self.rules) + sum(len(g.rules) for g in self.groups)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_list(value: Any) -> bool:
    return isinstance(value, (list, tuple, set, frozenset))


def _parse(enum_cls, value, target: str):
    try:
        return enum_cls.from_value(value)
    except ConfigurationError as e:
        raise ConfigurationError(str(e), target=target) from e


# =============================================================================
# Rule validation
# =============================================================================

def _validate_value(rule: Rule, operator: RuleOperator, field_type: FieldType | None, target: str) -> None:
    spec = OPERATOR_REGISTRY[operator]
    value = rule.value
    shape = spec.value_shape

    if shape == ValueShape.NONE:
        return

    if shape == ValueShape.LIST:
        if not _is_list(value):
            raise ConfigurationError(
                f"Operator '{operator.value}' requires a list of values, got {type(value).__name__}",
                target=target,
            )
        return

    if shape == ValueShape.PAIR:
        if not _is_list(value) or len(value) != 2:
            raise ConfigurationError(
                f"Operator '{operator.value}' requires exactly two values [min, max]",
                target=target,
            )
        lo, hi = list(value)
        if lo is None or hi is None:
            raise ConfigurationError("Range bounds must not be null", target=target)
        if _is_number(lo) and _is_number(hi) and lo > hi:
            raise ConfigurationError(
                f"Range lower bound {lo} is greater than upper bound {hi}", target=target
            )
        return

    if shape == ValueShape.PATTERN:
        if not isinstance(value, str):
            raise ConfigurationError("Regex operator requires a pattern string", target=target)
        return

    # Scalar
    if value is None:
        raise ConfigurationError(
            f"Operator '{operator.value}' requires a value, got null", target=target
        )
    if spec.category == OpCategory.STRING:
        if operator == RuleOperator.CONTAINS and not isinstance(value, (dict, list, tuple, set)):
            return
        if not isinstance(value, str):
            raise ConfigurationError(
                f"Operator '{operator.value}' requires a string value", target=target
            )
        return
    if _is_list(value) and field_type != FieldType.ARRAY:
        raise ConfigurationError(
            f"Operator '{operator.value}' requires a single value, got a list", target=target
        )
    if isinstance(value, dict):
        raise ConfigurationError(
            f"Operator '{operator.value}' does not accept a mapping value", target=target
        )


def compile_rule(
    rule: Rule,
    position: int,
    operators: OperatorEvaluator,
    group_id: str | None = None,
) -> CompiledRule:
    """Validate and normalize one rule."""
    target = f"rule '{rule.key}'"
    if not rule.field or not isinstance(rule.field, str):
        raise ConfigurationError("Rule field must be a non-empty string", target=target)

    operator = _parse(RuleOperator, rule.operator, target)
    field_type = _parse(FieldType, rule.field_type, target) if rule.field_type is not None else None

    error = validate_operator(operator, field_type)
    if error:
        raise ConfigurationError(error, target=target)
    if not operators.supports(operator):
        raise ConfigurationError(
            f"No evaluation function registered for '{operator.value}'", target=target
        )

    _validate_value(rule, operator, field_type, target)

    if not _is_number(rule.weight) or rule.weight < 0:
        raise ConfigurationError(
            f"Weight must be a non-negative number, got {rule.weight!r}", target=target
        )

    pattern = None
    if operator == RuleOperator.REGEX:
        try:
            pattern = compile_pattern(rule.value, rule.case_sensitive)
        except re.error as e:
            raise ConfigurationError(f"Invalid regex pattern {rule.value!r}: {e}", target=target) from e

    return CompiledRule(
        rule=rule,
        key=rule.key,
        operator=operator,
        field_type=field_type,
        options=OperatorOptions(case_sensitive=rule.case_sensitive, pattern=pattern),
        weight=float(rule.weight),
        order=rule.order,
        position=position,
        group_id=group_id,
    )


# =============================================================================
# Reference tables for boolean expressions
# =============================================================================

def _reference_table(
    members: list[tuple[int, list[str | None]]],
    prefix: str,
    target: str,
) -> dict[str, str]:
    """
    Build name -> canonical key for expression references.

    Args:
        members: (position, [explicit names]) per member, all members included
        prefix: Positional-name prefix ("r" for rules, "g" for groups)
        target: Owner for error messages

    Explicit names win over positional names; a name claimed twice is an error.
    """
    table: dict[str, str] = {}
    for position, names in members:
        canonical = str(position)
        for name in names:
            if not name:
                continue
            if name in table and table[name] != canonical:
                raise ConfigurationError(
                    f"Reference name '{name}' is used by more than one member", target=target
                )
            table[name] = canonical
    for position, _ in members:
        canonical = str(position)
        table.setdefault(canonical, canonical)
        table.setdefault(f"{prefix}{position}", canonical)
    return table


def _compile_expression(
    text: str | None,
    table: dict[str, str],
    target: str,
) -> Expr:
    if text is None or not str(text).strip():
        raise ConfigurationError("Boolean combination requires an expression", target=target)
    expr = parse_expression(text)
    return resolve_refs(expr, table, target=target)


def _check_min_required(value: Any, available: int, target: str) -> int:
    if value is None or not _is_number(value) or int(value) != value:
        raise ConfigurationError(
            f"MIN_N combination requires an integer min_required, got {value!r}", target=target
        )
    value = int(value)
    if value < 1:
        raise ConfigurationError(f"min_required must be >= 1, got {value}", target=target)
    if value > available:
        raise ConfigurationError(
            f"min_required ({value}) exceeds the number of active members ({available})",
            target=target,
        )
    return value


# =============================================================================
# Group / criteria compilation
# =============================================================================

def compile_group(group: RuleGroup, position: int, operators: OperatorEvaluator) -> CompiledGroup:
    """Validate one group and its member rules."""
    target = f"group '{group.group_id}'"
    if not group.group_id:
        raise ConfigurationError("Group identifier must not be empty")

    combination = _parse(GroupCombination, group.combination, target)
    if not _is_number(group.weight) or group.weight < 0:
        raise ConfigurationError(
            f"Group weight must be a non-negative number, got {group.weight!r}", target=target
        )

    members = sorted(group.rules, key=lambda r: r.order)
    compiled = tuple(
        compile_rule(rule, index, operators, group.group_id)
        for index, rule in enumerate(members, start=1)
        if rule.active
    )

    min_required = None
    expression = None
    if combination == GroupCombination.MIN_N:
        min_required = _check_min_required(group.min_required, len(compiled), target)
    elif combination == GroupCombination.BOOLEAN_EXPRESSION:
        table = _reference_table(
            [(i, [r.alias, r.rule_id]) for i, r in enumerate(members, start=1)],
            "r",
            target,
        )
        expression = _compile_expression(group.expression, table, target)

    return CompiledGroup(
        group=group,
        group_id=group.group_id,
        combination=combination,
        rules=compiled,
        min_required=min_required,
        expression=expression,
        weight=float(group.weight),
        position=position,
    )


def compile_criteria(
    criteria: Criteria,
    operators: OperatorEvaluator | None = None,
    config=None,
) -> CompiledCriteria:
    """
    Validate criteria and build an evaluation-ready form.

    Args:
        criteria: Criteria definition
        operators: Evaluator whose registered operators are allowed
        config: Config instance (defaults to get_config())

    Raises:
        ConfigurationError: On any invalid definition
    """
    if config is None:
        from ..config import get_config

        config = get_config()
    operators = operators or OperatorEvaluator()
    target = f"criteria '{criteria.identifier}'"

    threshold = criteria.pass_threshold
    if threshold is None:
        threshold = config.scoring.pass_threshold
    if not _is_number(threshold) or not 0 <= threshold <= 100:
        raise ConfigurationError(
            f"Pass threshold must be within [0, 100], got {threshold!r}", target=target
        )

    scoring = _parse(
        ScoringMethod,
        criteria.scoring if criteria.scoring is not None else config.scoring.method,
        target,
    )
    group_combination = _parse(GroupCombination, criteria.group_combination, target)

    rules = tuple(
        compile_rule(rule, index, operators)
        for index, rule in enumerate(sorted(criteria.rules, key=lambda r: r.order), start=1)
        if rule.active
    )

    all_groups = sorted(criteria.groups, key=lambda g: g.order)
    seen_ids: set[str] = set()
    for group in all_groups:
        if group.group_id in seen_ids:
            raise ConfigurationError(f"Duplicate group identifier '{group.group_id}'", target=target)
        seen_ids.add(group.group_id)

    groups = tuple(
        compile_group(group, index, operators)
        for index, group in enumerate(all_groups, start=1)
        if group.active
    )

    group_min_required = None
    group_expression = None
    if groups and group_combination == GroupCombination.MIN_N:
        group_min_required = _check_min_required(criteria.group_min_required, len(groups), target)
    elif groups and group_combination == GroupCombination.BOOLEAN_EXPRESSION:
        table = _reference_table(
            [(i, [g.group_id, g.name]) for i, g in enumerate(all_groups, start=1)],
            "g",
            target,
        )
        group_expression = _compile_expression(criteria.group_expression, table, target)

    is_empty = not rules and not any(g.rules for g in groups)
    if is_empty and not config.evaluation.allow_empty_criteria:
        raise ConfigurationError(
            "Criteria has no active rules; add at least one rule or enable ELIGIFY_ALLOW_EMPTY_CRITERIA",
            target=target,
        )

    return CompiledCriteria(
        criteria=criteria,
        identifier=criteria.identifier,
        threshold=float(threshold),
        scoring=scoring,
        precision=config.scoring.precision,
        rules=rules,
        groups=groups,
        group_combination=group_combination,
        group_min_required=group_min_required,
        group_expression=group_expression,
        partial_credit=bool(criteria.group_partial_credit),
        decision_thresholds=_decision_table(criteria.decision_thresholds, target),
        is_empty=is_empty,
    )


def _decision_table(
    thresholds: Mapping[Any, str] | None,
    target: str,
) -> tuple[tuple[float, str], ...] | None:
    if not thresholds:
        return None
    table = []
    for minimum, label in thresholds.items():
        try:
            minimum = float(minimum)
        except (TypeError, ValueError):
            raise ConfigurationError(
                f"Decision threshold {minimum!r} is not a number", target=target
            ) from None
        table.append((minimum, str(label)))
    return tuple(sorted(table, key=lambda t: t[0], reverse=True))
