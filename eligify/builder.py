"""
Fluent builder for Criteria.

    criteria = (
        CriteriaBuilder("loan_approval")
        .pass_threshold(70)
        .add_rule("credit_score", ">=", 650, weight=8)
        .group("income")
            .add_rule("income", ">=", 30000, alias="income_ok")
            .add_rule("debt_to_income_ratio", "<=", 0.4, alias="dti_ok")
            .require_logic("income_ok AND dti_ok")
            .weight(5)
            .end()
        .build()
    )

Obvious mistakes raise ConfigurationError at the offending call;
build() runs the full compiler so the returned Criteria is known-good.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from .config import get_config
from .rules.compile import compile_criteria
from .rules.errors import ConfigurationError
from .rules.expression import parse_expression
from .rules.models import Criteria, Rule, RuleGroup
from .rules.registry import OPERATOR_REGISTRY, ValueShape
from .rules.types import GroupCombination, RuleOperator, RulePriority, ScoringMethod


def _make_rule(
    field: str,
    operator: str | RuleOperator,
    value: Any = None,
    weight: float | None = None,
    priority: RulePriority | str = RulePriority.MEDIUM,
    order: int = 0,
    **options: Any,
) -> Rule:
    op = RuleOperator.from_value(operator)
    level = RulePriority.from_value(priority)
    shape = OPERATOR_REGISTRY[op].value_shape
    if shape == ValueShape.LIST and (not isinstance(value, (list, tuple, set)) or not value):
        raise ConfigurationError(f"Operator '{op.value}' requires a non-empty list", target=field)
    if shape == ValueShape.PAIR and (not isinstance(value, (list, tuple)) or len(value) != 2):
        raise ConfigurationError(f"Operator '{op.value}' requires exactly two values", target=field)
    if weight is None:
        weight = get_config().weights.weight_for(level.value)
    if isinstance(value, (set, frozenset)):
        value = sorted(value, key=str)
    return Rule(
        field=field,
        operator=op,
        value=list(value) if isinstance(value, tuple) else value,
        weight=weight,
        priority=level,
        order=order,
        **options,
    )


class GroupBuilder:
    """Builds one RuleGroup; end() returns to the parent builder."""

    def __init__(self, parent: "CriteriaBuilder", group_id: str, order: int):
        self._parent = parent
        self._group_id = group_id
        self._order = order
        self._rules: list[Rule] = []
        self._combination = GroupCombination.ALL
        self._min_required: int | None = None
        self._expression: str | None = None
        self._weight = 1.0
        self._name = ""
        self._description = ""

    def add_rule(self, field: str, operator: str | RuleOperator, value: Any = None, **kwargs: Any) -> "GroupBuilder":
        kwargs.setdefault("order", len(self._rules))
        self._rules.append(_make_rule(field, operator, value, **kwargs))
        return self

    def add_rules(self, rules: Iterable[Mapping[str, Any]]) -> "GroupBuilder":
        for spec in rules:
            spec = dict(spec)
            self.add_rule(spec.pop("field"), spec.pop("operator"), spec.pop("value", None), **spec)
        return self

    def require_all(self) -> "GroupBuilder":
        self._combination = GroupCombination.ALL
        return self

    def require_any(self) -> "GroupBuilder":
        self._combination = GroupCombination.ANY
        return self

    def require_min(self, count: int) -> "GroupBuilder":
        if count < 1:
            raise ConfigurationError("Minimum required must be at least 1", target=self._group_id)
        self._combination = GroupCombination.MIN_N
        self._min_required = count
        return self

    def require_majority(self) -> "GroupBuilder":
        self._combination = GroupCombination.MAJORITY
        return self

    def require_logic(self, expression: str) -> "GroupBuilder":
        parse_expression(expression)
        self._combination = GroupCombination.BOOLEAN_EXPRESSION
        self._expression = expression
        return self

    def weight(self, weight: float) -> "GroupBuilder":
        if weight <= 0:
            raise ConfigurationError("Group weight must be greater than 0", target=self._group_id)
        self._weight = float(weight)
        return self

    def name(self, name: str) -> "GroupBuilder":
        self._name = name
        return self

    def description(self, text: str) -> "GroupBuilder":
        self._description = text
        return self

    def build(self) -> RuleGroup:
        return RuleGroup(
            group_id=self._group_id,
            rules=tuple(self._rules),
            combination=self._combination,
            min_required=self._min_required,
            expression=self._expression,
            weight=self._weight,
            name=self._name,
            order=self._order,
            description=self._description,
        )

    def end(self) -> "CriteriaBuilder":
        self._parent._groups.append(self.build())
        return self._parent


class CriteriaBuilder:
    """Builds an immutable Criteria."""

    def __init__(self, name: str):
        if not name:
            raise ConfigurationError("Criteria name must not be empty")
        self._name = name
        self._description = ""
        self._threshold: float | None = None
        self._scoring: ScoringMethod | None = None
        self._rules: list[Rule] = []
        self._groups: list[RuleGroup] = []
        self._group_combination = GroupCombination.ALL
        self._group_min_required: int | None = None
        self._group_expression: str | None = None
        self._partial_credit = False
        self._decisions: dict[float, str] | None = None

    def description(self, text: str) -> "CriteriaBuilder":
        self._description = text
        return self

    def pass_threshold(self, threshold: float) -> "CriteriaBuilder":
        if not 0 <= threshold <= 100:
            raise ConfigurationError(f"Pass threshold must be within [0, 100], got {threshold}")
        self._threshold = float(threshold)
        return self

    def scoring(self, method: ScoringMethod | str) -> "CriteriaBuilder":
        self._scoring = ScoringMethod.from_value(method)
        return self

    def add_rule(self, field: str, operator: str | RuleOperator, value: Any = None, **kwargs: Any) -> "CriteriaBuilder":
        kwargs.setdefault("order", len(self._rules))
        self._rules.append(_make_rule(field, operator, value, **kwargs))
        return self

    def add_rules(self, rules: Iterable[Mapping[str, Any]]) -> "CriteriaBuilder":
        for spec in rules:
            spec = dict(spec)
            self.add_rule(spec.pop("field"), spec.pop("operator"), spec.pop("value", None), **spec)
        return self

    def group(self, group_id: str) -> GroupBuilder:
        if any(g.group_id == group_id for g in self._groups):
            raise ConfigurationError(f"Duplicate group identifier '{group_id}'")
        return GroupBuilder(self, group_id, order=len(self._groups))

    def combine_groups(
        self,
        combination: GroupCombination | str,
        min_required: int | None = None,
        expression: str | None = None,
    ) -> "CriteriaBuilder":
        """How group verdicts fold together (default ALL)."""
        self._group_combination = GroupCombination.from_value(combination)
        self._group_min_required = min_required
        if expression is not None:
            parse_expression(expression)
        self._group_expression = expression
        return self

    def partial_group_credit(self, enabled: bool = True) -> "CriteriaBuilder":
        self._partial_credit = enabled
        return self

    def decision_thresholds(self, thresholds: Mapping[float, str]) -> "CriteriaBuilder":
        self._decisions = dict(thresholds)
        return self

    def build(self) -> Criteria:
        criteria = Criteria(
            name=self._name,
            rules=tuple(self._rules),
            groups=tuple(self._groups),
            pass_threshold=self._threshold,
            scoring=self._scoring,
            group_combination=self._group_combination,
            group_min_required=self._group_min_required,
            group_expression=self._group_expression,
            group_partial_credit=self._partial_credit,
            decision_thresholds=self._decisions,
            description=self._description,
        )
        compile_criteria(criteria)
        return criteria
