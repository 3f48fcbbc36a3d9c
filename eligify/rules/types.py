"""
Rule evaluation type definitions.

Enums and the tagged Comparable value that every operator consumes.
Comparables are produced only by the coercion step (see coercion.py);
operator functions never inspect raw input values.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntEnum, auto
from typing import Any


class _LookupEnum(str, Enum):
    """str-valued enum with lenient, alias-aware parsing."""

    @classmethod
    def _aliases(cls) -> dict[str, str]:
        return {}

    @classmethod
    def from_value(cls, value: Any):
        """
        Parse an enum member from its value, name or a known alias.

        Raises:
            ConfigurationError: If the value is not recognised
        """
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower() if value is not None else ""
        key = cls._aliases().get(key, key)
        for member in cls:
            if key in (member.value, member.name.lower()):
                return member

        from .errors import ConfigurationError

        valid = ", ".join(m.value for m in cls)
        raise ConfigurationError(
            f"Unknown {cls.__name__} '{value}'. Valid values: {valid}"
        )


class RuleOperator(_LookupEnum):
    """Closed set of comparison operators."""

    EQ = "=="
    NE = "!="
    GT = ">"
    GE = ">="
    LT = "<"
    LE = "<="
    IN = "in"
    NOT_IN = "not_in"
    BETWEEN = "between"
    NOT_BETWEEN = "not_between"
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    EXISTS = "exists"
    NOT_EXISTS = "not_exists"
    REGEX = "regex"

    @classmethod
    def _aliases(cls) -> dict[str, str]:
        from .registry import OPERATOR_ALIASES

        return OPERATOR_ALIASES


class FieldType(_LookupEnum):
    """Optional field-type hint used to pick a coercion strategy."""

    NUMERIC = "numeric"
    INTEGER = "integer"
    STRING = "string"
    BOOLEAN = "boolean"
    DATE = "date"
    ARRAY = "array"

    @classmethod
    def _aliases(cls) -> dict[str, str]:
        return {
            "number": "numeric",
            "float": "numeric",
            "decimal": "numeric",
            "int": "integer",
            "str": "string",
            "text": "string",
            "bool": "boolean",
            "datetime": "date",
            "timestamp": "date",
            "list": "array",
        }


class GroupCombination(_LookupEnum):
    """How member outcomes fold into a group (or groups into criteria)."""

    ALL = "all"
    ANY = "any"
    MIN_N = "min"
    MAJORITY = "majority"
    BOOLEAN_EXPRESSION = "boolean"

    @classmethod
    def _aliases(cls) -> dict[str, str]:
        return {
            "and": "all",
            "or": "any",
            "min_n": "min",
            "at_least": "min",
            "expression": "boolean",
            "logic": "boolean",
        }


class ScoringMethod(_LookupEnum):
    """Aggregation algorithm turning outcomes into a score."""

    WEIGHTED = "weighted"
    PASS_FAIL = "pass_fail"
    SUM = "sum"
    AVERAGE = "average"
    PERCENTAGE = "percentage"

    @classmethod
    def _aliases(cls) -> dict[str, str]:
        return {"passfail": "pass_fail", "pass-fail": "pass_fail", "binary": "pass_fail"}


class RulePriority(_LookupEnum):
    """Rule priority. Maps to a default weight (see config.RuleWeightConfig)."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


class ReasonCode(IntEnum):
    """
    Reason codes for rule and group outcomes.

    Every result carries one so failures are machine-readable in traces.
    OK covers both "condition met" and "condition simply not met".
    """

    OK = 0
    MISSING_FIELD = auto()  # Key absent from the input map
    MISSING_VALUE = auto()  # Explicit null / NaN under a value operator
    TYPE_MISMATCH = auto()  # Values cannot be coerced to a common kind
    INVALID_PATTERN = auto()  # Regex could not be applied
    UNKNOWN_OPERATOR = auto()  # No evaluation function registered
    UNRESOLVED_REFERENCE = auto()  # Expression references an unavailable member
    INTERNAL_ERROR = auto()  # Unexpected error inside an operator function


class ValueKind(IntEnum):
    """Tag of a Comparable."""

    NUMBER = auto()
    STRING = auto()
    BOOL = auto()
    TIMESTAMP = auto()
    ARRAY = auto()
    ABSENT = auto()  # Key not present
    NULL = auto()  # Present but null


@dataclass(frozen=True)
class Comparable:
    """
    A coerced value with its kind.

    Attributes:
        value: float | str | bool | datetime | tuple of raw elements | None
        kind: Tag describing how operators must treat value
        path: Field path (or "<expected>") for error messages
    """

    value: Any
    kind: ValueKind
    path: str = ""

    @property
    def is_present(self) -> bool:
        return self.kind not in (ValueKind.ABSENT, ValueKind.NULL)

    @classmethod
    def absent(cls, path: str) -> "Comparable":
        return cls(value=None, kind=ValueKind.ABSENT, path=path)

    @classmethod
    def null(cls, path: str) -> "Comparable":
        return cls(value=None, kind=ValueKind.NULL, path=path)

    def to_primitive(self) -> Any:
        """Plain JSON-friendly form for traces."""
        if self.kind == ValueKind.TIMESTAMP and isinstance(self.value, datetime):
            return self.value.isoformat()
        if self.kind == ValueKind.ARRAY:
            return [
                v.isoformat() if isinstance(v, datetime) else v for v in self.value
            ]
        return self.value

    def __repr__(self) -> str:
        return f"{self.kind.name}({self.value!r})"
