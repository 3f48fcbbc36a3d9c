"""
Tests for operator evaluation over coerced values.
"""

import re

import pytest

from eligify.rules import MISSING, ConfigurationError, OperatorEvaluator, OperatorOptions, RuleOperator
from eligify.rules.coercion import coerce
from eligify.rules.operators import compile_pattern
from eligify.rules.registry import (
    get_canonical_operator,
    get_operator_spec,
    operators_for_field_type,
    validate_operator,
)
from eligify.rules.types import FieldType


def check(raw, operator, expected, field_type=None, case_sensitive=True):
    """Coerce then evaluate, the way the rule evaluator does."""
    op = RuleOperator.from_value(operator)
    actual, exp = coerce(raw, expected, op, field_type, "field")
    return OperatorEvaluator().evaluate(op, actual, exp, OperatorOptions(case_sensitive=case_sensitive))


class TestComparisonOperators:
    """Equality and ordering."""

    def test_equality_has_no_epsilon(self):
        assert check(0.1 + 0.2, "==", 0.3) is False
        assert check(0.5, "==", 0.5) is True

    def test_not_equal(self):
        assert check(5, "!=", 6) is True
        assert check("a", "!=", "a") is False

    @pytest.mark.parametrize("operator,raw,expected,result", [
        (">", 10, 5, True),
        (">", 5, 5, False),
        (">=", 5, 5, True),
        ("<", 4, 5, True),
        ("<=", 5, 5, True),
        ("<=", 6, 5, False),
    ])
    def test_ordering(self, operator, raw, expected, result):
        assert check(raw, operator, expected) is result

    def test_string_equality_case_option(self):
        assert check("Full_Time", "==", "full_time") is False
        assert check("Full_Time", "==", "full_time", case_sensitive=False) is True


class TestRangeOperators:
    """between / not_between are inclusive on both ends."""

    @pytest.mark.parametrize("age,result", [(18, True), (65, True), (40, True), (17, False), (66, False)])
    def test_between_inclusive(self, age, result):
        assert check(age, "between", [18, 65]) is result

    @pytest.mark.parametrize("age,result", [(18, False), (65, False), (17, True), (66, True)])
    def test_not_between_is_negation(self, age, result):
        assert check(age, "not_between", [18, 65]) is result

    def test_date_range(self):
        assert check("2024-06-01", "between", ["2024-01-01", "2024-12-31"]) is True
        assert check("2025-01-01", "between", ["2024-01-01", "2024-12-31"]) is False


class TestMembershipOperators:
    """in / not_in compare per element."""

    def test_scalar_in(self):
        assert check("b", "in", ["a", "b"]) is True
        assert check("c", "in", ["a", "b"]) is False

    def test_numeric_elements(self):
        assert check(2, "in", ["1", "2"]) is True

    def test_array_field_in_is_subset(self):
        assert check(["a", "b"], "in", ["a", "b", "c"]) is True
        assert check(["a", "z"], "in", ["a", "b", "c"]) is False

    def test_not_in(self):
        assert check("z", "not_in", ["a"]) is True
        assert check(["a", "z"], "not_in", ["a"]) is False
        assert check(["y", "z"], "not_in", ["a"]) is True

    def test_empty_option_list(self):
        assert check("a", "in", []) is False
        assert check("a", "not_in", []) is True


class TestStringOperators:
    """contains / starts_with / ends_with."""

    def test_contains_substring(self):
        assert check("hello world", "contains", "world") is True
        assert check("hello world", "contains", "World") is False

    def test_contains_case_insensitive(self):
        assert check("HELLO", "contains", "hell", case_sensitive=False) is True

    def test_contains_on_array_field(self):
        assert check(["python", "sql"], "contains", "sql") is True
        assert check(["python", "sql"], "contains", "go") is False

    def test_starts_and_ends_with(self):
        assert check("ACME-001", "starts_with", "ACME") is True
        assert check("ACME-001", "ends_with", "001") is True
        assert check("ACME-001", "ends_with", "ACME") is False


class TestExistenceOperators:
    """exists means present and not null."""

    def test_exists(self):
        assert check("x", "exists", None) is True
        assert check(0, "exists", None) is True
        assert check(None, "exists", None) is False
        assert check(MISSING, "exists", None) is False

    def test_not_exists(self):
        assert check(MISSING, "not_exists", None) is True
        assert check(None, "not_exists", None) is True
        assert check("x", "not_exists", None) is False


class TestRegexOperator:
    """regex uses search semantics and accepts delimited patterns."""

    def test_bare_pattern(self):
        assert check("123", "regex", r"^\d{3}$") is True
        assert check("1234", "regex", r"^\d{3}$") is False

    def test_delimited_pattern_with_flags(self):
        assert check("ABC123", "regex", r"/^[a-z]+\d+$/i") is True

    def test_compile_pattern_strips_delimiters(self):
        pattern = compile_pattern("/abc/m")
        assert pattern.pattern == "abc"
        assert pattern.flags & re.MULTILINE

    def test_pattern_without_delimiters_kept_verbatim(self):
        assert compile_pattern("a/b").pattern == "a/b"

    def test_case_insensitive_option(self):
        assert compile_pattern("abc", case_sensitive=False).search("ABC")


class TestOperatorEvaluatorRegistry:
    """Custom operators through register()."""

    def test_register_replaces_function(self):
        evaluator = OperatorEvaluator()
        evaluator.register("==", lambda actual, expected, options: True)
        actual, expected = coerce(1, 2, RuleOperator.EQ, path="x")
        assert evaluator.evaluate(RuleOperator.EQ, actual, expected) is True

    def test_registration_is_per_instance(self):
        custom = OperatorEvaluator({RuleOperator.EQ: lambda a, e, o: True})
        default = OperatorEvaluator()
        actual, expected = coerce(1, 2, RuleOperator.EQ, path="x")
        assert custom.evaluate(RuleOperator.EQ, actual, expected) is True
        assert default.evaluate(RuleOperator.EQ, actual, expected) is False

    def test_register_unknown_operator_raises(self):
        with pytest.raises(ConfigurationError, match="Unknown RuleOperator"):
            OperatorEvaluator().register("approx", lambda a, e, o: True)

    def test_register_non_callable_raises(self):
        with pytest.raises(ConfigurationError, match="not callable"):
            OperatorEvaluator().register("==", "nope")


class TestOperatorRegistry:
    """Alias resolution and field-type pairing."""

    @pytest.mark.parametrize("alias,canonical", [
        ("gte", RuleOperator.GE),
        ("ge", RuleOperator.GE),
        ("lte", RuleOperator.LE),
        ("eq", RuleOperator.EQ),
        ("neq", RuleOperator.NE),
        ("NOT IN", RuleOperator.NOT_IN),
        (">", RuleOperator.GT),
    ])
    def test_aliases(self, alias, canonical):
        assert get_canonical_operator(alias) == canonical

    def test_unknown_operator(self):
        assert get_operator_spec("approx_eq") is None
        assert "Unknown operator" in validate_operator("approx_eq")

    def test_field_type_pairing(self):
        assert validate_operator(">", FieldType.NUMERIC) is None
        assert validate_operator(">", FieldType.STRING) is not None
        assert validate_operator("exists", FieldType.BOOLEAN) is None
        assert validate_operator("contains", FieldType.ARRAY) is None

    def test_operators_for_boolean(self):
        ops = operators_for_field_type("boolean")
        assert ops == [RuleOperator.EQ, RuleOperator.NE, RuleOperator.EXISTS, RuleOperator.NOT_EXISTS]
