"""
Scoring engine.

Scoring units:
- each ungrouped active rule (weight = rule weight, credit 0 or 1)
- each evaluated group (weight = group weight, credit 0 or 1, or the
  group's member pass fraction when partial credit is enabled)

Methods:
- WEIGHTED:   100 * sum(weight * credit) / sum(weight); 0 when total weight is 0
- PASS_FAIL:  100 if every rule and the group combination pass, else 0
- SUM:        raw sum of passed weights (not normalized)
- AVERAGE:    100 * passed units / units; 0 without units
- PERCENTAGE: same formula as AVERAGE
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence

from ..rules.errors import ConfigurationError
from ..rules.models import GroupResult, RuleResult
from ..rules.types import ScoringMethod


@dataclass(frozen=True)
class ScoreUnit:
    """One scoring unit."""
    key: str
    weight: float
    passed: bool
    credit: float  # 0.0 - 1.0


class Scorer(Protocol):
    """Scoring strategy."""

    def score(self, units: Sequence[ScoreUnit], all_passed: bool) -> float:
        ...


class WeightedScorer:
    def score(self, units: Sequence[ScoreUnit], all_passed: bool) -> float:
        total = sum(u.weight for u in units)
        if total == 0:
            return 0.0
        return 100.0 * sum(u.weight * u.credit for u in units) / total


class PassFailScorer:
    def score(self, units: Sequence[ScoreUnit], all_passed: bool) -> float:
        return 100.0 if all_passed else 0.0


class SumScorer:
    def score(self, units: Sequence[ScoreUnit], all_passed: bool) -> float:
        return float(sum(u.weight for u in units if u.passed))


class AverageScorer:
    def score(self, units: Sequence[ScoreUnit], all_passed: bool) -> float:
        if not units:
            return 0.0
        return 100.0 * sum(1 for u in units if u.passed) / len(units)


class PercentageScorer(AverageScorer):
    """Named alias of AVERAGE."""


DEFAULT_SCORERS: dict[ScoringMethod, Scorer] = {
    ScoringMethod.WEIGHTED: WeightedScorer(),
    ScoringMethod.PASS_FAIL: PassFailScorer(),
    ScoringMethod.SUM: SumScorer(),
    ScoringMethod.AVERAGE: AverageScorer(),
    ScoringMethod.PERCENTAGE: PercentageScorer(),
}


def all_units_passed(
    rule_results: Sequence[RuleResult],
    group_results: Sequence[GroupResult] = (),
    groups_passed: bool | None = None,
) -> bool:
    """
    Every ungrouped rule passed and the groups passed.

    The groups term is the criteria-level combination verdict when given,
    otherwise every group must pass.
    """
    if groups_passed is None:
        groups_passed = all(g.passed for g in group_results)
    return all(r.passed for r in rule_results) and groups_passed


def build_units(
    rule_results: Sequence[RuleResult],
    group_results: Sequence[GroupResult],
    partial_credit: bool = False,
) -> list[ScoreUnit]:
    units = [
        ScoreUnit(r.rule_id, r.weight, r.passed, 1.0 if r.passed else 0.0)
        for r in rule_results
    ]
    for g in group_results:
        credit = g.score if partial_credit else (1.0 if g.passed else 0.0)
        units.append(ScoreUnit(g.group_id, g.weight, g.passed, credit))
    return units


class ScoringEngine:
    """Maps scoring methods to scorers. register() swaps in alternatives."""

    def __init__(self, scorers: dict[ScoringMethod, Scorer] | None = None):
        self._scorers: dict[ScoringMethod, Scorer] = dict(DEFAULT_SCORERS)
        for method, scorer in (scorers or {}).items():
            self.register(method, scorer)

    def register(self, method: ScoringMethod | str, scorer: Scorer) -> None:
        if not callable(getattr(scorer, "score", None)):
            raise ConfigurationError(f"Scorer for '{method}' has no score() method")
        self._scorers[ScoringMethod.from_value(method)] = scorer

    def raw_score(
        self,
        method: ScoringMethod,
        rule_results: Sequence[RuleResult],
        group_results: Sequence[GroupResult] = (),
        groups_passed: bool | None = None,
        partial_credit: bool = False,
    ) -> float:
        """
        Unrounded score for one evaluation. The threshold is applied to this value.

        Args:
            method: Scoring method
            rule_results: Ungrouped rule results
            group_results: Group results (each one unit)
            groups_passed: Criteria-level group combination verdict
            partial_credit: Credit groups by member pass fraction (WEIGHTED)
        """
        scorer = self._scorers.get(ScoringMethod.from_value(method))
        if scorer is None:
            raise ConfigurationError(f"No scorer registered for '{method}'")
        units = build_units(rule_results, group_results, partial_credit)
        return float(scorer.score(units, all_units_passed(rule_results, group_results, groups_passed)))

    def score(
        self,
        method: ScoringMethod,
        rule_results: Sequence[RuleResult],
        group_results: Sequence[GroupResult] = (),
        groups_passed: bool | None = None,
        partial_credit: bool = False,
        precision: int = 2,
    ) -> float:
        """raw_score() rounded to precision decimal places, for reporting."""
        raw = self.raw_score(method, rule_results, group_results, groups_passed, partial_credit)
        return round(raw, precision)
