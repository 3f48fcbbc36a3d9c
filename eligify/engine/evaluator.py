"""
Criteria evaluator (orchestrator).

Sequence per call:
1. compile/validate the criteria (ConfigurationError aborts, no result)
2. evaluate ungrouped rules in ascending order
3. evaluate each group and fold its members
4. fold group verdicts (criteria-level combination)
5. score, apply threshold to the unrounded score (PASS_FAIL uses the
   binary all-pass result); the reported score is rounded
6. assemble the trace

The evaluator holds no per-call state. One instance (and one
CompiledCriteria) can serve concurrent calls from many threads.
"""

from __future__ import annotations

import time
from typing import Any, Mapping

from ..rules.compile import CompiledCriteria, compile_criteria
from ..rules.errors import ConfigurationError
from ..rules.models import (
    Criteria,
    EvaluationResult,
    EvaluationTrace,
    GroupResult,
    RuleResult,
    TraceStep,
)
from ..rules.operators import OperatorEvaluator
from ..rules.types import ReasonCode, ScoringMethod
from ..utils.logger import get_logger
from .group_evaluator import GroupEvaluator
from .rule_evaluator import RuleEvaluator
from .scoring import ScoringEngine, all_units_passed


def _rule_step(result: RuleResult) -> TraceStep:
    return TraceStep(
        stage="rule",
        target=result.rule_id,
        passed=result.passed,
        duration_ms=result.duration_ms,
        field=result.field,
        operator=result.operator,
        expected=result.expected,
        actual=result.actual,
        reason=result.reason.name,
        message=result.error,
    )


def _group_step(result: GroupResult) -> TraceStep:
    return TraceStep(
        stage="group",
        target=result.group_id,
        passed=result.passed,
        duration_ms=result.duration_ms,
        reason=result.reason.name,
        message=result.error or (
            f"{result.combination}: {result.passed_count}/{result.member_count} passed"
        ),
    )


class CriteriaEvaluator:
    """
    Evaluates criteria against flat input maps.

    Args:
        operators: Operator dispatch (custom operators via register())
        scoring: Scoring engine (custom scorers via register())
        config: Config instance, defaults to get_config()
    """

    def __init__(
        self,
        operators: OperatorEvaluator | None = None,
        scoring: ScoringEngine | None = None,
        config=None,
    ):
        if config is None:
            from ..config import get_config

            config = get_config()
        self.config = config
        self.operators = operators or OperatorEvaluator()
        self.scoring = scoring or ScoringEngine()
        self.rule_evaluator = RuleEvaluator(self.operators)
        self.group_evaluator = GroupEvaluator(self.rule_evaluator)
        self.logger = get_logger()

    def compile(self, criteria: Criteria) -> CompiledCriteria:
        """
        Validate criteria once for repeated evaluation.

        Raises:
            ConfigurationError: If the definition is invalid
        """
        try:
            return compile_criteria(criteria, self.operators, self.config)
        except ConfigurationError as e:
            self.logger.error(f"[CONFIG] | criteria={criteria.identifier} | {e}")
            raise

    def evaluate(
        self,
        criteria: Criteria | CompiledCriteria,
        data: Mapping[str, Any],
    ) -> EvaluationResult:
        """
        Evaluate criteria against one input map.

        Args:
            criteria: Criteria definition or a CompiledCriteria
            data: Flat key/value snapshot

        Returns:
            EvaluationResult

        Raises:
            ConfigurationError: If the criteria are invalid
            TypeError: If data is not a mapping
        """
        if not isinstance(data, Mapping):
            raise TypeError(f"data must be a mapping, got {type(data).__name__}")

        start = time.perf_counter()
        compiled = criteria if isinstance(criteria, CompiledCriteria) else self.compile(criteria)
        steps: list[TraceStep] = [
            TraceStep(
                stage="validate",
                target=compiled.identifier,
                passed=True,
                duration_ms=(time.perf_counter() - start) * 1000,
                message=(
                    f"{compiled.rule_count} active rules, {len(compiled.groups)} groups, "
                    f"scoring={compiled.scoring.value}, threshold={compiled.threshold}"
                ),
            )
        ]

        if compiled.is_empty:
            return self._empty_result(compiled, steps, start)

        rule_results = []
        for rule in compiled.rules:
            result = self.rule_evaluator.evaluate(rule, data)
            rule_results.append(result)
            steps.append(_rule_step(result))

        group_results = []
        for group in compiled.groups:
            result = self.group_evaluator.evaluate(group, data)
            group_results.append(result)
            steps.extend(_rule_step(r) for r in result.rule_results)
            steps.append(_group_step(result))

        groups_passed, groups_error = self.group_evaluator.combine_groups(compiled, group_results)
        if groups_passed is not None:
            steps.append(TraceStep(
                stage="groups",
                target=compiled.identifier,
                passed=groups_passed,
                reason=(ReasonCode.UNRESOLVED_REFERENCE if groups_error else ReasonCode.OK).name,
                message=groups_error or (
                    f"{compiled.group_combination.value}: "
                    f"{sum(1 for g in group_results if g.passed)}/{len(group_results)} groups passed"
                ),
            ))

        score_start = time.perf_counter()
        raw = self.scoring.raw_score(
            compiled.scoring,
            rule_results,
            group_results,
            groups_passed=groups_passed,
            partial_credit=compiled.partial_credit,
        )
        score = round(raw, compiled.precision)
        steps.append(TraceStep(
            stage="score",
            target=compiled.scoring.value,
            duration_ms=(time.perf_counter() - score_start) * 1000,
            message=f"score={score}" + (f" (raw={raw!r})" if raw != score else ""),
        ))

        if compiled.scoring == ScoringMethod.PASS_FAIL:
            passed = all_units_passed(rule_results, group_results, groups_passed)
        else:
            passed = raw >= compiled.threshold

        return self._finish(
            compiled, steps, start, passed, score,
            tuple(rule_results), tuple(group_results), groups_passed,
        )

    def _empty_result(self, compiled: CompiledCriteria, steps: list[TraceStep], start: float) -> EvaluationResult:
        steps.append(TraceStep(
            stage="score",
            target=compiled.scoring.value,
            message="no active rules: score=100.0",
        ))
        return self._finish(compiled, steps, start, True, 100.0, (), (), None)

    def _finish(
        self,
        compiled: CompiledCriteria,
        steps: list[TraceStep],
        start: float,
        passed: bool,
        score: float,
        rule_results: tuple[RuleResult, ...],
        group_results: tuple[GroupResult, ...],
        groups_passed: bool | None,
    ) -> EvaluationResult:
        decision = self.decide(compiled, score, passed)
        comparator = ">=" if passed else "<"
        steps.append(TraceStep(
            stage="verdict",
            target=compiled.identifier,
            passed=passed,
            message=(
                f"score {score} {comparator} threshold {compiled.threshold}"
                if compiled.scoring != ScoringMethod.PASS_FAIL
                else f"pass_fail: {'all passed' if passed else 'not all passed'}"
            ) + (f" ({decision})" if decision else ""),
        ))
        total_ms = (time.perf_counter() - start) * 1000

        self.logger.evaluation(
            compiled.identifier, passed, score, compiled.threshold,
            duration_ms=total_ms, method=compiled.scoring.value,
        )

        return EvaluationResult(
            criteria=compiled.identifier,
            passed=passed,
            score=score,
            threshold=compiled.threshold,
            scoring=compiled.scoring,
            rule_results=rule_results,
            group_results=group_results,
            trace=EvaluationTrace(tuple(steps), total_ms),
            groups_passed=groups_passed,
            decision=decision,
        )

    def decide(self, compiled: CompiledCriteria, score: float, passed: bool) -> str | None:
        """
        Decision label for a score.

        Criteria-specific thresholds win (highest minimum reached); without
        them the configured pass/fail tiers apply.
        """
        if compiled.decision_thresholds:
            for minimum, label in compiled.decision_thresholds:
                if score >= minimum:
                    return label
            return None
        return self.config.decisions.label_for(score, passed)


_default_evaluator: CriteriaEvaluator | None = None


def evaluate(criteria: Criteria | CompiledCriteria, data: Mapping[str, Any]) -> EvaluationResult:
    """Evaluate with a shared default CriteriaEvaluator."""
    global _default_evaluator
    if _default_evaluator is None:
        _default_evaluator = CriteriaEvaluator()
    return _default_evaluator.evaluate(criteria, data)
