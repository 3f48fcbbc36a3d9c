"""
Group evaluation.

combine() folds member outcomes under a combinator. It is shared by rule
groups and by the criteria-level group-of-groups step:

- ALL:      every member passed (zero members: vacuously true)
- ANY:      at least one member passed
- MIN_N:    count(passed) >= min_required
- MAJORITY: count(passed) > count(members) / 2 (ties fail)
- BOOLEAN:  parsed expression over member outcomes keyed by position
"""

from __future__ import annotations

import time
from dataclasses import replace
from typing import Any, Mapping, Sequence

from ..rules.compile import CompiledCriteria, CompiledGroup
from ..rules.errors import ExpressionEvaluationError
from ..rules.expression import Expr, evaluate_expr
from ..rules.models import GroupResult, RuleResult
from ..rules.types import GroupCombination, ReasonCode
from .rule_evaluator import RuleEvaluator


def combine(
    combination: GroupCombination,
    outcomes: Sequence[bool],
    min_required: int | None = None,
    expression: Expr | None = None,
    values: Mapping[str, bool] | None = None,
) -> bool:
    """
    Fold member outcomes into one verdict.

    Args:
        combination: Combinator
        outcomes: Member outcomes in order
        min_required: Threshold for MIN_N
        expression: Resolved expression for BOOLEAN_EXPRESSION
        values: Position key -> outcome, for BOOLEAN_EXPRESSION

    Raises:
        ExpressionEvaluationError: If the expression references a member
            without an outcome
    """
    passed = sum(1 for o in outcomes if o)
    if combination == GroupCombination.ALL:
        return passed == len(outcomes)
    if combination == GroupCombination.ANY:
        return passed > 0
    if combination == GroupCombination.MIN_N:
        return passed >= (min_required or 0)
    if combination == GroupCombination.MAJORITY:
        return passed > len(outcomes) / 2
    if combination == GroupCombination.BOOLEAN_EXPRESSION:
        if expression is None:
            raise ExpressionEvaluationError("No expression compiled for boolean combination")
        return evaluate_expr(expression, values or {})
    raise ValueError(f"Unsupported combination: {combination}")


class GroupEvaluator:
    """Evaluates compiled groups and the group-of-groups fold."""

    def __init__(self, rule_evaluator: RuleEvaluator | None = None):
        self.rule_evaluator = rule_evaluator or RuleEvaluator()

    def evaluate(self, group: CompiledGroup, data: Mapping[str, Any]) -> GroupResult:
        """Evaluate member rules, then fold them."""
        start = time.perf_counter()
        results = tuple(self.rule_evaluator.evaluate(rule, data) for rule in group.rules)
        return self.fold(group, results, start)

    def fold(
        self,
        group: CompiledGroup,
        rule_results: Sequence[RuleResult],
        start: float | None = None,
    ) -> GroupResult:
        """Combine already evaluated member results into a GroupResult."""
        start = time.perf_counter() if start is None else start
        rule_results = [
            r if r.group_id else replace(r, group_id=group.group_id) for r in rule_results
        ]
        outcomes = [r.passed for r in rule_results]
        values = {str(rule.position): r.passed for rule, r in zip(group.rules, rule_results)}

        reason = ReasonCode.OK
        error = None
        try:
            passed = combine(group.combination, outcomes, group.min_required, group.expression, values)
        except ExpressionEvaluationError as e:
            passed = False
            reason, error = e.reason, str(e)

        passed_count = sum(1 for o in outcomes if o)
        member_count = len(outcomes)
        if member_count:
            score = passed_count / member_count
        else:
            score = 1.0 if passed else 0.0

        return GroupResult(
            group_id=group.group_id,
            combination=group.combination.value,
            rule_results=tuple(rule_results),
            passed=passed,
            score=score,
            weight=group.weight,
            passed_count=passed_count,
            member_count=member_count,
            reason=reason,
            error=error,
            duration_ms=(time.perf_counter() - start) * 1000,
            name=group.name,
        )

    def combine_groups(
        self,
        criteria: CompiledCriteria,
        group_results: Sequence[GroupResult],
    ) -> tuple[bool | None, str | None]:
        """
        Criteria-level fold over group verdicts.

        Returns:
            (groups_passed, error). groups_passed is None without groups.
        """
        if not criteria.groups:
            return None, None
        values = {str(g.position): r.passed for g, r in zip(criteria.groups, group_results)}
        try:
            passed = combine(
                criteria.group_combination,
                [r.passed for r in group_results],
                criteria.group_min_required,
                criteria.group_expression,
                values,
            )
        except ExpressionEvaluationError as e:
            return False, str(e)
        return passed, None
