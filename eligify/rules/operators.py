"""
Operator evaluation.

One function per operator over coerced Comparables. Coercion guarantees
both sides already share a kind, so these functions never branch on raw
Python types.

Custom operators are added through OperatorEvaluator.register(); there
is no implicit discovery.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable

from .coercion import values_match
from .errors import ConfigurationError
from .types import Comparable, RuleOperator, ValueKind

# Characters accepted as pattern delimiters ("/^abc$/i")
_DELIMITERS = "/#~!@%|"
_FLAG_MAP = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
    "u": 0,
}


@dataclass(frozen=True)
class OperatorOptions:
    """Per-rule operator options."""
    case_sensitive: bool = True
    pattern: re.Pattern | None = None  # precompiled regex for REGEX rules


DEFAULT_OPTIONS = OperatorOptions()

OperatorFn = Callable[[Comparable, Comparable, OperatorOptions], bool]


def compile_pattern(text: str, case_sensitive: bool = True) -> re.Pattern:
    """
    Compile a regex, accepting bare or delimited forms.

    "/^[A-Z]+$/i" compiles "^[A-Z]+$" with IGNORECASE. A bare pattern is
    compiled as-is.

    Raises:
        re.error: If the pattern is invalid
    """
    flags = 0 if case_sensitive else re.IGNORECASE
    body = text
    if len(text) >= 2 and text[0] in _DELIMITERS:
        end = text.rfind(text[0])
        suffix = text[end + 1:]
        if end > 0 and all(ch in _FLAG_MAP for ch in suffix):
            body = text[1:end]
            for ch in suffix:
                flags |= _FLAG_MAP[ch]
    return re.compile(body, flags)


def _fold(text: str, options: OperatorOptions) -> str:
    return text if options.case_sensitive else text.casefold()


# =============================================================================
# Operator functions
# =============================================================================

def eval_eq(actual: Comparable, expected: Comparable, options: OperatorOptions) -> bool:
    """Exact equality. No epsilon for numbers."""
    if actual.kind == ValueKind.STRING:
        return _fold(actual.value, options) == _fold(expected.value, options)
    if actual.kind == ValueKind.ARRAY:
        if len(actual.value) != len(expected.value):
            return False
        return all(
            values_match(a, b, options.case_sensitive)
            for a, b in zip(actual.value, expected.value)
        )
    return actual.value == expected.value


def eval_ne(actual: Comparable, expected: Comparable, options: OperatorOptions) -> bool:
    return not eval_eq(actual, expected, options)


def eval_gt(actual: Comparable, expected: Comparable, options: OperatorOptions) -> bool:
    return actual.value > expected.value


def eval_ge(actual: Comparable, expected: Comparable, options: OperatorOptions) -> bool:
    return actual.value >= expected.value


def eval_lt(actual: Comparable, expected: Comparable, options: OperatorOptions) -> bool:
    return actual.value < expected.value


def eval_le(actual: Comparable, expected: Comparable, options: OperatorOptions) -> bool:
    return actual.value <= expected.value


def _is_member(value, candidates: tuple, options: OperatorOptions) -> bool:
    return any(values_match(value, c, options.case_sensitive) for c in candidates)


def eval_in(actual: Comparable, expected: Comparable, options: OperatorOptions) -> bool:
    """
    Membership.

    Scalar field: value is one of the options.
    Array field: every element is one of the options (subset).
    """
    if actual.kind == ValueKind.ARRAY:
        return all(_is_member(v, expected.value, options) for v in actual.value)
    return _is_member(actual.value, expected.value, options)


def eval_not_in(actual: Comparable, expected: Comparable, options: OperatorOptions) -> bool:
    """Scalar field: not an option. Array field: no element is an option."""
    if actual.kind == ValueKind.ARRAY:
        return not any(_is_member(v, expected.value, options) for v in actual.value)
    return not _is_member(actual.value, expected.value, options)


def eval_between(actual: Comparable, expected: Comparable, options: OperatorOptions) -> bool:
    """Inclusive on both ends: lo <= v <= hi."""
    lo, hi = expected.value
    return lo <= actual.value <= hi


def eval_not_between(actual: Comparable, expected: Comparable, options: OperatorOptions) -> bool:
    return not eval_between(actual, expected, options)


def eval_contains(actual: Comparable, expected: Comparable, options: OperatorOptions) -> bool:
    if actual.kind == ValueKind.ARRAY:
        return _is_member(expected.value, actual.value, options)
    return _fold(expected.value, options) in _fold(actual.value, options)


def eval_starts_with(actual: Comparable, expected: Comparable, options: OperatorOptions) -> bool:
    return _fold(actual.value, options).startswith(_fold(expected.value, options))


def eval_ends_with(actual: Comparable, expected: Comparable, options: OperatorOptions) -> bool:
    return _fold(actual.value, options).endswith(_fold(expected.value, options))


def eval_exists(actual: Comparable, expected: Comparable, options: OperatorOptions) -> bool:
    return actual.is_present


def eval_not_exists(actual: Comparable, expected: Comparable, options: OperatorOptions) -> bool:
    return not actual.is_present


def eval_regex(actual: Comparable, expected: Comparable, options: OperatorOptions) -> bool:
    pattern = options.pattern or compile_pattern(expected.value, options.case_sensitive)
    return pattern.search(actual.value) is not None


OPERATORS: dict[RuleOperator, OperatorFn] = {
    RuleOperator.EQ: eval_eq,
    RuleOperator.NE: eval_ne,
    RuleOperator.GT: eval_gt,
    RuleOperator.GE: eval_ge,
    RuleOperator.LT: eval_lt,
    RuleOperator.LE: eval_le,
    RuleOperator.IN: eval_in,
    RuleOperator.NOT_IN: eval_not_in,
    RuleOperator.BETWEEN: eval_between,
    RuleOperator.NOT_BETWEEN: eval_not_between,
    RuleOperator.CONTAINS: eval_contains,
    RuleOperator.STARTS_WITH: eval_starts_with,
    RuleOperator.ENDS_WITH: eval_ends_with,
    RuleOperator.EXISTS: eval_exists,
    RuleOperator.NOT_EXISTS: eval_not_exists,
    RuleOperator.REGEX: eval_regex,
}


class OperatorEvaluator:
    """
    Dispatch table from operator to evaluation function.

    Each instance owns its own table, so registering a replacement on one
    evaluator never affects another.
    """

    def __init__(self, functions: dict[RuleOperator, OperatorFn] | None = None):
        self._functions: dict[RuleOperator, OperatorFn] = dict(OPERATORS)
        if functions:
            for operator, fn in functions.items():
                self.register(operator, fn)

    def register(self, operator: RuleOperator | str, fn: OperatorFn) -> None:
        """Register (or replace) the function for an operator."""
        if not callable(fn):
            raise ConfigurationError(f"Operator function for '{operator}' is not callable")
        self._functions[RuleOperator.from_value(operator)] = fn

    def supports(self, operator: RuleOperator) -> bool:
        return operator in self._functions

    def evaluate(
        self,
        operator: RuleOperator,
        actual: Comparable,
        expected: Comparable,
        options: OperatorOptions = DEFAULT_OPTIONS,
    ) -> bool:
        """
        Apply an operator.

        Raises:
            ConfigurationError: If no function is registered for operator
        """
        fn = self._functions.get(operator)
        if fn is None:
            raise ConfigurationError(f"No evaluation function registered for '{operator.value}'")
        return bool(fn(actual, expected, options))
