"""
Domain and result model.

Definitions (Rule, RuleGroup, Criteria) are immutable value objects
supplied by the caller. Results (RuleResult, GroupResult,
EvaluationResult) and the trace are built fresh per evaluation and never
mutated afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from .types import GroupCombination, ReasonCode, RulePriority, ScoringMethod


def _freeze(value: Any) -> tuple:
    return tuple(value) if value is not None else ()


# =============================================================================
# Definitions
# =============================================================================

@dataclass(frozen=True)
class Rule:
    """
    A single field/operator/value condition.

    Attributes:
        field: Dot-path into the input map
        operator: RuleOperator or any accepted alias
        value: Expected value (scalar, list, or [lo, hi] for ranges)
        weight: Non-negative weight used by weighted/sum scoring
        order: Evaluation sequence (ascending, stable)
        active: Inactive rules are skipped entirely
        field_type: Optional FieldType hint for coercion
        rule_id: Stable identifier (defaults to field + operator)
        alias: Name usable in group boolean expressions
        case_sensitive: Applies to string operators and regex
        priority: Informational priority
    """
    field: str
    operator: Any
    value: Any = None
    weight: float = 1
    order: int = 0
    active: bool = True
    field_type: Any = None
    rule_id: str | None = None
    alias: str | None = None
    case_sensitive: bool = True
    priority: Any = RulePriority.MEDIUM
    description: str = ""

    @property
    def key(self) -> str:
        """Identifier used in results and traces."""
        if self.rule_id:
            return self.rule_id
        if self.alias:
            return self.alias
        op = getattr(self.operator, "value", self.operator)
        return f"{self.field} {op}"


@dataclass(frozen=True)
class RuleGroup:
    """
    Rules combined under one combinator.

    min_required is only used by MIN_N, expression only by
    BOOLEAN_EXPRESSION. weight is the group's single scoring unit.
    """
    group_id: str
    rules: tuple[Rule, ...] = ()
    combination: Any = GroupCombination.ALL
    min_required: int | None = None
    expression: str | None = None
    weight: float = 1.0
    name: str = ""
    order: int = 0
    active: bool = True
    description: str = ""

    def __post_init__(self):
        object.__setattr__(self, "rules", _freeze(self.rules))


@dataclass(frozen=True)
class Criteria:
    """
    Named set of rules and groups with a scoring method and threshold.

    pass_threshold / scoring of None fall back to the configured defaults.
    group_combination folds group verdicts (default ALL).
    decision_thresholds maps minimum score -> decision label.
    """
    name: str
    rules: tuple[Rule, ...] = ()
    groups: tuple[RuleGroup, ...] = ()
    pass_threshold: float | None = None
    scoring: Any = None
    group_combination: Any = GroupCombination.ALL
    group_min_required: int | None = None
    group_expression: str | None = None
    group_partial_credit: bool = False
    decision_thresholds: Mapping[float, str] | None = None
    description: str = ""
    criteria_id: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "rules", _freeze(self.rules))
        object.__setattr__(self, "groups", _freeze(self.groups))

    @property
    def identifier(self) -> str:
        return self.criteria_id or self.name


# =============================================================================
# Results
# =============================================================================

@dataclass(frozen=True)
class RuleResult:
    """Outcome of one rule. actual/expected are post-coercion primitives."""
    rule_id: str
    field: str
    operator: str
    expected: Any
    actual: Any
    passed: bool
    weight: float
    duration_ms: float = 0.0
    reason: ReasonCode = ReasonCode.OK
    error: str | None = None
    group_id: str | None = None
    order: int = 0
    alias: str | None = None

    def to_dict(self) -> dict:
        return {
            "rule_id": self.rule_id,
            "field": self.field,
            "operator": self.operator,
            "expected": self.expected,
            "actual": self.actual,
            "passed": self.passed,
            "weight": self.weight,
            "duration_ms": self.duration_ms,
            "reason": self.reason.name,
            "error": self.error,
            "group_id": self.group_id,
        }


@dataclass(frozen=True)
class GroupResult:
    """
    Outcome of one group.

    score is the fraction of active members that passed, independent of
    the combinator verdict.
    """
    group_id: str
    combination: str
    rule_results: tuple[RuleResult, ...]
    passed: bool
    score: float
    weight: float
    passed_count: int
    member_count: int
    reason: ReasonCode = ReasonCode.OK
    error: str | None = None
    duration_ms: float = 0.0
    name: str = ""

    def to_dict(self) -> dict:
        return {
            "group_id": self.group_id,
            "name": self.name,
            "combination": self.combination,
            "passed": self.passed,
            "score": self.score,
            "weight": self.weight,
            "passed_count": self.passed_count,
            "member_count": self.member_count,
            "reason": self.reason.name,
            "error": self.error,
            "duration_ms": self.duration_ms,
            "rules": [r.to_dict() for r in self.rule_results],
        }


@dataclass(frozen=True)
class TraceStep:
    """One entry of the execution trace."""
    stage: str  # validate, rule, group, groups, score, verdict
    target: str
    passed: bool | None = None
    duration_ms: float = 0.0
    field: str | None = None
    operator: str | None = None
    expected: Any = None
    actual: Any = None
    reason: str = ReasonCode.OK.name
    message: str | None = None

    def to_dict(self) -> dict:
        return {
            "stage": self.stage,
            "target": self.target,
            "passed": self.passed,
            "duration_ms": self.duration_ms,
            "field": self.field,
            "operator": self.operator,
            "expected": self.expected,
            "actual": self.actual,
            "reason": self.reason,
            "message": self.message,
        }

    def format_line(self) -> str:
        status = {True: "PASS", False: "FAIL", None: "----"}[self.passed]
        if self.stage == "rule":
            body = f"{self.field} {self.operator} {self.expected!r} (actual={self.actual!r})"
        else:
            body = self.message or ""
        line = f"[{self.stage}] {self.target}: {status} {body}".rstrip()
        if self.reason != ReasonCode.OK.name:
            line += f" [{self.reason}]"
        return line


@dataclass(frozen=True)
class EvaluationTrace:
    """Ordered record of every evaluation step."""
    steps: tuple[TraceStep, ...] = ()
    total_ms: float = 0.0

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self):
        return iter(self.steps)

    def failures(self) -> list[TraceStep]:
        return [s for s in self.steps if s.passed is False]

    def to_list(self) -> list[dict]:
        return [s.to_dict() for s in self.steps]

    def format_lines(self) -> list[str]:
        """Format trace as human-readable lines (no prefix, caller adds it)."""
        lines = [s.format_line() for s in self.steps]
        lines.append(f"total: {self.total_ms:.3f}ms")
        return lines


@dataclass(frozen=True)
class EvaluationResult:
    """
    Final verdict for one (criteria, data) pair.

    groups_passed is the criteria-level group combination verdict, or None
    when the criteria has no active groups.
    """
    criteria: str
    passed: bool
    score: float
    threshold: float
    scoring: ScoringMethod
    rule_results: tuple[RuleResult, ...] = ()
    group_results: tuple[GroupResult, ...] = ()
    trace: EvaluationTrace = field(default_factory=EvaluationTrace)
    groups_passed: bool | None = None
    decision: str | None = None

    @property
    def all_rule_results(self) -> list[RuleResult]:
        """Ungrouped results followed by each group's results."""
        results = list(self.rule_results)
        for group in self.group_results:
            results.extend(group.rule_results)
        return results

    @property
    def failed_rules(self) -> list[RuleResult]:
        return [r for r in self.all_rule_results if not r.passed]

    @property
    def errors(self) -> list[RuleResult]:
        """Rule results recorded with a recovered error."""
        return [r for r in self.all_rule_results if r.error is not None]

    def to_dict(self) -> dict:
        return {
            "criteria": self.criteria,
            "passed": self.passed,
            "score": self.score,
            "threshold": self.threshold,
            "scoring": self.scoring.value,
            "decision": self.decision,
            "groups_passed": self.groups_passed,
            "rules": [r.to_dict() for r in self.rule_results],
            "groups": [g.to_dict() for g in self.group_results],
            "trace": self.trace.to_list(),
            "total_ms": self.trace.total_ms,
        }
