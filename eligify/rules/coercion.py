"""
Value coercion.

Turns a raw input value and a configured expected value into a pair of
Comparables before any operator runs. This is the only place where the
loose typing of incoming data is interpreted.

Strategy selection:
- A field-type hint on the rule always wins.
- Otherwise the operator family decides (ordering/range are numeric or
  date, string operators are textual) and equality infers a common kind
  from both sides.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from datetime import date, datetime
from typing import Any

from ..utils.datetime_utils import is_date_like, normalize_datetime
from .errors import CoercionError, FieldResolutionError
from .registry import OPERATOR_REGISTRY, OpCategory
from .types import Comparable, FieldType, ReasonCode, RuleOperator, ValueKind

EXPECTED_PATH = "<expected>"

_TRUE_TOKENS = frozenset({"true", "1"})
_FALSE_TOKENS = frozenset({"false", "0"})

_FIELD_TYPE_KINDS = {
    FieldType.NUMERIC: ValueKind.NUMBER,
    FieldType.INTEGER: ValueKind.NUMBER,
    FieldType.STRING: ValueKind.STRING,
    FieldType.BOOLEAN: ValueKind.BOOL,
    FieldType.DATE: ValueKind.TIMESTAMP,
    FieldType.ARRAY: ValueKind.ARRAY,
}


class _Missing:
    """Sentinel for a key that is not present in the input map."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


# =============================================================================
# Field resolution
# =============================================================================

def resolve_field(data: Mapping[str, Any], path: str) -> Any:
    """
    Look up a dot-path in the input map.

    The flattened key is tried first. Nested mappings (and integer
    indexes into sequences) are walked only when the flat key is absent.

    Returns:
        The raw value, or MISSING when the path does not resolve
    """
    if path in data:
        return data[path]
    if "." not in path:
        return MISSING

    current: Any = data
    for part in path.split("."):
        if isinstance(current, Mapping):
            if part not in current:
                return MISSING
            current = current[part]
        elif _is_sequence(current) and part.isdigit():
            index = int(part)
            if index >= len(current):
                return MISSING
            current = current[index]
        else:
            return MISSING
    return current


def _is_sequence(value: Any) -> bool:
    if isinstance(value, (str, bytes)):
        return False
    return isinstance(value, (Sequence, set, frozenset))


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_missing_value(value: Any) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


# =============================================================================
# Scalar converters (raise CoercionError)
# =============================================================================

def to_number(value: Any, path: str, integer: bool = False) -> float:
    """Convert to float. Strings must parse; booleans are rejected."""
    if _is_missing_value(value):
        raise CoercionError(f"'{path}' is null", ReasonCode.MISSING_VALUE, value)
    if isinstance(value, bool):
        raise CoercionError(f"'{path}' is a boolean, expected a number", raw=value)
    if _is_number(value):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise CoercionError(
                f"'{path}' value {value!r} is not numeric", raw=value
            ) from None
        if math.isnan(number):
            raise CoercionError(f"'{path}' is NaN", ReasonCode.MISSING_VALUE, value)
    else:
        raise CoercionError(
            f"'{path}' has type {type(value).__name__}, expected a number", raw=value
        )
    if integer and not number.is_integer():
        raise CoercionError(f"'{path}' value {value!r} is not an integer", raw=value)
    return number


def to_bool(value: Any, path: str) -> bool:
    """Whitelist conversion: True/False, 1/0, "true"/"false", "1"/"0"."""
    if isinstance(value, bool):
        return value
    if _is_number(value) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        token = value.strip().lower()
        if token in _TRUE_TOKENS:
            return True
        if token in _FALSE_TOKENS:
            return False
    raise CoercionError(f"'{path}' value {value!r} is not a boolean", raw=value)


def to_timestamp(value: Any, path: str) -> datetime:
    """Convert to an aware UTC instant."""
    result, error = normalize_datetime(value, path)
    if error:
        raise CoercionError(error, raw=value)
    return result


def to_text(value: Any, path: str) -> str:
    """Strings pass through; plain numbers are rendered; anything else fails."""
    if isinstance(value, str):
        return value
    if _is_number(value):
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value)
    raise CoercionError(
        f"'{path}' has type {type(value).__name__}, expected a string", raw=value
    )


def to_array(value: Any, path: str) -> tuple:
    if isinstance(value, (set, frozenset)):
        return tuple(sorted(value, key=str))
    if _is_sequence(value):
        return tuple(value)
    raise CoercionError(
        f"'{path}' has type {type(value).__name__}, expected an array", raw=value
    )


def to_kind(value: Any, kind: ValueKind, path: str, integer: bool = False) -> Comparable:
    """Convert a raw value into a Comparable of the given kind."""
    if kind == ValueKind.NUMBER:
        return Comparable(to_number(value, path, integer), kind, path)
    if kind == ValueKind.BOOL:
        return Comparable(to_bool(value, path), kind, path)
    if kind == ValueKind.TIMESTAMP:
        return Comparable(to_timestamp(value, path), kind, path)
    if kind == ValueKind.STRING:
        return Comparable(to_text(value, path), kind, path)
    if kind == ValueKind.ARRAY:
        return Comparable(to_array(value, path), kind, path)
    raise CoercionError(f"Cannot coerce '{path}' to {kind.name}", raw=value)


def infer_kind(value: Any) -> ValueKind:
    """Natural kind of a raw scalar/sequence."""
    if isinstance(value, bool):
        return ValueKind.BOOL
    if _is_number(value):
        return ValueKind.NUMBER
    if isinstance(value, (datetime, date)):
        return ValueKind.TIMESTAMP
    if isinstance(value, str):
        return ValueKind.STRING
    if _is_sequence(value):
        return ValueKind.ARRAY
    raise CoercionError(f"Unsupported value type {type(value).__name__}", raw=value)


def _equality_kind(actual: Any, expected: Any) -> ValueKind:
    if isinstance(actual, bool) or isinstance(expected, bool):
        return ValueKind.BOOL
    if isinstance(actual, (datetime, date)) or isinstance(expected, (datetime, date)):
        return ValueKind.TIMESTAMP
    if _is_number(actual) or _is_number(expected):
        return ValueKind.NUMBER
    if isinstance(actual, str) and isinstance(expected, str):
        if is_date_like(actual) and is_date_like(expected):
            return ValueKind.TIMESTAMP
        return ValueKind.STRING
    if _is_sequence(actual) and _is_sequence(expected):
        return ValueKind.ARRAY
    raise CoercionError(
        f"Cannot compare {type(actual).__name__} with {type(expected).__name__}",
        raw=actual,
    )


def _ordering_kind(actual: Any, expected: Any, field_type: FieldType | None) -> ValueKind:
    if field_type is not None:
        return _FIELD_TYPE_KINDS[field_type]
    candidates = list(expected) if _is_sequence(expected) else [expected]
    if is_date_like(actual) or any(is_date_like(c) for c in candidates):
        return ValueKind.TIMESTAMP
    return ValueKind.NUMBER


# =============================================================================
# Public entry point
# =============================================================================

def coerce(
    raw: Any,
    expected: Any,
    operator: RuleOperator,
    field_type: FieldType | None = None,
    path: str = "",
) -> tuple[Comparable, Comparable]:
    """
    Coerce a raw field value and the expected value into Comparables.

    Args:
        raw: Value from the input map, or MISSING
        expected: Configured expected value
        operator: Canonical operator
        field_type: Optional field-type hint
        path: Field path for error messages

    Returns:
        (actual, expected) Comparables

    Raises:
        FieldResolutionError: Field absent under a value operator
        CoercionError: Null value or incompatible types
    """
    spec = OPERATOR_REGISTRY[operator]
    integer = field_type == FieldType.INTEGER

    if spec.category == OpCategory.EXISTENCE:
        if raw is MISSING:
            actual = Comparable.absent(path)
        elif _is_missing_value(raw):
            actual = Comparable.null(path)
        else:
            actual = Comparable(raw, infer_kind_or_string(raw), path)
        return actual, Comparable.null(EXPECTED_PATH)

    if raw is MISSING:
        raise FieldResolutionError(path)
    if _is_missing_value(raw):
        raise CoercionError(f"'{path}' is null", ReasonCode.MISSING_VALUE, raw)
    if _is_missing_value(expected):
        raise CoercionError("Expected value is null", ReasonCode.MISSING_VALUE, expected)

    if spec.category == OpCategory.ORDERING:
        kind = _ordering_kind(raw, expected, field_type)
        return (
            to_kind(raw, kind, path, integer),
            to_kind(expected, kind, EXPECTED_PATH),
        )

    if spec.category == OpCategory.RANGE:
        kind = _ordering_kind(raw, expected, field_type)
        bounds = to_array(expected, EXPECTED_PATH)
        if len(bounds) != 2:
            raise CoercionError("Range requires exactly two bounds", raw=expected)
        lo = to_kind(bounds[0], kind, EXPECTED_PATH).value
        hi = to_kind(bounds[1], kind, EXPECTED_PATH).value
        return (
            to_kind(raw, kind, path, integer),
            Comparable((lo, hi), ValueKind.ARRAY, EXPECTED_PATH),
        )

    if spec.category == OpCategory.MEMBERSHIP:
        options = Comparable(to_array(expected, EXPECTED_PATH), ValueKind.ARRAY, EXPECTED_PATH)
        if field_type is not None and field_type != FieldType.ARRAY:
            return to_kind(raw, _FIELD_TYPE_KINDS[field_type], path, integer), options
        if _is_sequence(raw):
            return Comparable(to_array(raw, path), ValueKind.ARRAY, path), options
        return Comparable(raw, infer_kind(raw), path), options

    if operator == RuleOperator.CONTAINS and (
        field_type == FieldType.ARRAY or (field_type is None and _is_sequence(raw))
    ):
        return (
            Comparable(to_array(raw, path), ValueKind.ARRAY, path),
            Comparable(expected, infer_kind(expected), EXPECTED_PATH),
        )

    if spec.category in (OpCategory.STRING, OpCategory.PATTERN):
        return (
            to_kind(raw, ValueKind.STRING, path),
            to_kind(expected, ValueKind.STRING, EXPECTED_PATH),
        )

    # Equality
    if field_type is not None:
        kind = _FIELD_TYPE_KINDS[field_type]
    else:
        kind = _equality_kind(raw, expected)
    return (
        to_kind(raw, kind, path, integer),
        to_kind(expected, kind, EXPECTED_PATH),
    )


def infer_kind_or_string(value: Any) -> ValueKind:
    """infer_kind without raising; unknown objects are reported as strings."""
    try:
        return infer_kind(value)
    except CoercionError:
        return ValueKind.STRING


# =============================================================================
# Element equality for membership operators
# =============================================================================

def _try(fn, value: Any):
    try:
        return fn(value, "")
    except CoercionError:
        return None


def values_match(a: Any, b: Any, case_sensitive: bool = True) -> bool:
    """
    Compare two raw scalars the way membership operators do.

    Booleans use the whitelist, dates compare as instants, values that
    both parse as numbers compare numerically, everything else compares
    as text.
    """
    if isinstance(a, bool) or isinstance(b, bool):
        left, right = _try(to_bool, a), _try(to_bool, b)
        return left is not None and left == right
    if isinstance(a, (datetime, date)) or isinstance(b, (datetime, date)):
        left, right = _try(to_timestamp, a), _try(to_timestamp, b)
        return left is not None and left == right
    if a is None or b is None:
        return a is b
    left_num, right_num = _try(to_number, a), _try(to_number, b)
    if left_num is not None and right_num is not None:
        return left_num == right_num
    left, right = str(a), str(b)
    if not case_sensitive:
        return left.casefold() == right.casefold()
    return left == right
