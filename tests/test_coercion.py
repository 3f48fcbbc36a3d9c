"""
Tests for value coercion and field resolution.

Validates that:
1. Flat keys win over nested traversal
2. Numbers, booleans and dates coerce strictly
3. Absent fields and nulls raise the recoverable errors
4. Existence operators never raise
"""

from datetime import date, datetime, timezone

import pytest

from eligify.rules import MISSING, CoercionError, FieldResolutionError, FieldType, ReasonCode, RuleOperator, ValueKind
from eligify.rules.coercion import coerce, resolve_field, values_match


class TestResolveField:
    """Dot-path lookup."""

    def test_flat_key_wins_over_nested(self):
        data = {"applicant.age": 30, "applicant": {"age": 40}}
        assert resolve_field(data, "applicant.age") == 30

    def test_nested_mapping_fallback(self):
        assert resolve_field({"applicant": {"age": 40}}, "applicant.age") == 40

    def test_sequence_index(self):
        assert resolve_field({"loans": [{"amount": 5}]}, "loans.0.amount") == 5

    def test_absent_path_is_missing(self):
        assert resolve_field({"applicant": {"age": 40}}, "applicant.name") is MISSING
        assert resolve_field({}, "income") is MISSING

    def test_explicit_none_is_not_missing(self):
        assert resolve_field({"income": None}, "income") is None


class TestNumericCoercion:
    """Ordering operators coerce both sides to float."""

    def test_numeric_string_parses(self):
        actual, expected = coerce("700", 650, RuleOperator.GE, path="credit_score")
        assert actual.kind == ValueKind.NUMBER
        assert actual.value == 700.0
        assert expected.value == 650.0

    def test_non_numeric_string_is_type_mismatch(self):
        with pytest.raises(CoercionError) as exc:
            coerce("abc", 650, RuleOperator.GE, path="credit_score")
        assert exc.value.reason == ReasonCode.TYPE_MISMATCH

    def test_boolean_is_not_a_number(self):
        with pytest.raises(CoercionError):
            coerce(True, 1, RuleOperator.GT, path="flag")

    def test_integer_hint_rejects_fractions(self):
        with pytest.raises(CoercionError, match="not an integer"):
            coerce(3.5, 3, RuleOperator.GE, FieldType.INTEGER, path="years")

    def test_integer_hint_accepts_integral_floats(self):
        actual, _ = coerce(3.0, 3, RuleOperator.GE, FieldType.INTEGER, path="years")
        assert actual.value == 3.0

    def test_nan_is_missing_value(self):
        with pytest.raises(CoercionError) as exc:
            coerce(float("nan"), 1, RuleOperator.GT, path="score")
        assert exc.value.reason == ReasonCode.MISSING_VALUE


class TestMissingValues:
    """Absent keys and explicit nulls."""

    def test_absent_field_raises_field_resolution_error(self):
        with pytest.raises(FieldResolutionError, match="income"):
            coerce(MISSING, 3000, RuleOperator.GE, path="income")

    def test_explicit_null_is_missing_value(self):
        with pytest.raises(CoercionError) as exc:
            coerce(None, 3000, RuleOperator.GE, path="income")
        assert exc.value.reason == ReasonCode.MISSING_VALUE

    def test_existence_operators_never_raise(self):
        actual, _ = coerce(MISSING, None, RuleOperator.EXISTS, path="x")
        assert actual.kind == ValueKind.ABSENT
        actual, _ = coerce(None, None, RuleOperator.NOT_EXISTS, path="x")
        assert actual.kind == ValueKind.NULL
        actual, _ = coerce("", None, RuleOperator.EXISTS, path="x")
        assert actual.is_present

    def test_nan_is_null_for_existence(self):
        actual, _ = coerce(float("nan"), None, RuleOperator.EXISTS, path="score")
        assert actual.kind == ValueKind.NULL
        assert not actual.is_present


class TestBooleanCoercion:
    """Strict whitelist: True/False, 1/0, "true"/"false", "1"/"0"."""

    @pytest.mark.parametrize("raw,expected", [
        (True, True), ("true", True), ("TRUE", True), ("1", True), (1, True),
        (False, False), ("false", False), ("0", False), (0, False),
    ])
    def test_whitelisted_values(self, raw, expected):
        actual, _ = coerce(raw, True, RuleOperator.EQ, path="verified")
        assert actual.kind == ValueKind.BOOL
        assert actual.value is expected

    @pytest.mark.parametrize("raw", ["yes", "on", 2, "", "truthy"])
    def test_other_values_are_rejected(self, raw):
        with pytest.raises(CoercionError):
            coerce(raw, True, RuleOperator.EQ, path="verified")


class TestDateCoercion:
    """Dates compare as UTC instants."""

    def test_iso_strings_compare_as_instants(self):
        actual, expected = coerce("2024-01-02", "2024-01-01", RuleOperator.GT, path="d")
        assert actual.kind == ValueKind.TIMESTAMP
        assert actual.value > expected.value

    def test_zulu_suffix_equals_date_object(self):
        actual, expected = coerce("2024-01-01T00:00:00Z", date(2024, 1, 1), RuleOperator.EQ, path="d")
        assert actual.value == expected.value

    def test_naive_datetime_is_utc(self):
        actual, _ = coerce(datetime(2024, 5, 1, 12, 0), "2024-01-01", RuleOperator.GT, path="d")
        assert actual.value.tzinfo == timezone.utc

    def test_offset_is_normalized(self):
        actual, expected = coerce(
            "2024-01-01T02:00:00+02:00", "2024-01-01T00:00:00", RuleOperator.EQ, FieldType.DATE, path="d"
        )
        assert actual.value == expected.value

    def test_invalid_date_is_type_mismatch(self):
        with pytest.raises(CoercionError):
            coerce("not a date", "2024-01-01", RuleOperator.GT, FieldType.DATE, path="d")

    def test_trace_form_is_iso_string(self):
        actual, _ = coerce("2024-01-02", "2024-01-01", RuleOperator.GT, path="d")
        assert actual.to_primitive() == "2024-01-02T00:00:00+00:00"


class TestEqualityInference:
    """Equality without a hint infers a common kind."""

    def test_number_and_numeric_string(self):
        actual, expected = coerce("42", 42, RuleOperator.EQ, path="n")
        assert actual.kind == ValueKind.NUMBER
        assert actual.value == expected.value

    def test_two_strings(self):
        actual, _ = coerce("full_time", "full_time", RuleOperator.EQ, path="s")
        assert actual.kind == ValueKind.STRING

    def test_incompatible_types_raise(self):
        with pytest.raises(CoercionError):
            coerce("abc", ["a"], RuleOperator.EQ, path="s")

    def test_string_hint_renders_numbers(self):
        actual, _ = coerce(5, "5", RuleOperator.EQ, FieldType.STRING, path="s")
        assert actual.value == "5"


class TestValuesMatch:
    """Element equality used by membership operators."""

    def test_numeric_match_across_types(self):
        assert values_match("1", 1)
        assert values_match(2.0, "2")

    def test_case_insensitive_text(self):
        assert not values_match("A", "a")
        assert values_match("A", "a", case_sensitive=False)

    def test_boolean_whitelist(self):
        assert values_match(True, "true")
        assert not values_match("x", True)
