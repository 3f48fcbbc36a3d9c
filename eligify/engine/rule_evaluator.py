"""
Single-rule evaluation.

Resolves the field, coerces both sides and applies the operator.
Recoverable problems (absent field, null value, type mismatch, a custom
operator that raises) are recorded on the RuleResult as passed=False with
a reason code; they never abort the surrounding evaluation.
"""

from __future__ import annotations

import re
import time
from datetime import date, datetime
from typing import Any, Mapping

from ..rules.coercion import MISSING, coerce, resolve_field
from ..rules.compile import CompiledRule
from ..rules.errors import CoercionError, ConfigurationError, FieldResolutionError
from ..rules.models import RuleResult
from ..rules.operators import OperatorEvaluator
from ..rules.types import ReasonCode
from ..utils.logger import get_logger


def _plain(value: Any) -> Any:
    """Raw value in a trace-friendly form."""
    if value is MISSING:
        return None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (tuple, set, frozenset)):
        return list(value)
    return value


class RuleEvaluator:
    """Evaluates compiled rules against an input map."""

    def __init__(self, operators: OperatorEvaluator | None = None):
        self.operators = operators or OperatorEvaluator()

    def evaluate(self, rule: CompiledRule, data: Mapping[str, Any]) -> RuleResult:
        start = time.perf_counter()
        raw = resolve_field(data, rule.field)
        expected_repr = _plain(rule.rule.value)
        actual_repr = _plain(raw)
        passed = False
        reason = ReasonCode.OK
        error = None

        try:
            actual, expected = coerce(raw, rule.rule.value, rule.operator, rule.field_type, rule.field)
        except (FieldResolutionError, CoercionError) as e:
            reason, error = e.reason, str(e)
        else:
            actual_repr = actual.to_primitive()
            expected_repr = expected.to_primitive()
            try:
                passed = self.operators.evaluate(rule.operator, actual, expected, rule.options)
            except ConfigurationError:
                raise
            except re.error as e:
                reason, error = ReasonCode.INVALID_PATTERN, f"Invalid pattern: {e}"
            except Exception as e:
                # Custom operator functions are caller code
                reason, error = ReasonCode.INTERNAL_ERROR, f"{type(e).__name__}: {e}"

        if error is not None:
            get_logger().rule_error(rule.key, rule.field, reason.name, error)

        return RuleResult(
            rule_id=rule.key,
            field=rule.field,
            operator=rule.operator.value,
            expected=expected_repr,
            actual=actual_repr,
            passed=passed,
            weight=rule.weight,
            duration_ms=(time.perf_counter() - start) * 1000,
            reason=reason,
            error=error,
            group_id=rule.group_id,
            order=rule.order,
            alias=rule.rule.alias,
        )
