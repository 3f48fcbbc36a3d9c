"""
Error taxonomy for criteria evaluation.

Two families:
- ConfigurationError (and ExpressionSyntaxError): fatal, raised before any
  rule touches the input data. No partial result is produced.
- FieldResolutionError, CoercionError, ExpressionEvaluationError: recovered
  locally. The rule (or group) is recorded as failed with the error attached
  and the rest of the evaluation continues.
"""

from __future__ import annotations

from typing import Any

from .types import ReasonCode


class EligifyError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(EligifyError, ValueError):
    """
    Criteria definition is invalid.

    Attributes:
        target: Identifier of the offending rule/group (if known)
        details: Extra structured context for logging
    """

    def __init__(
        self,
        message: str,
        target: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.target = target
        self.details = details or {}
        if target:
            message = f"{target}: {message}"
        super().__init__(message)


class ExpressionSyntaxError(ConfigurationError):
    """Boolean expression could not be parsed."""

    def __init__(self, message: str, expression: str, position: int | None = None):
        self.expression = expression
        self.position = position
        where = f" at position {position}" if position is not None else ""
        super().__init__(f"{message}{where} in expression {expression!r}")


class FieldResolutionError(EligifyError, LookupError):
    """Field required by a value operator is absent from the input."""

    reason = ReasonCode.MISSING_FIELD

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Field '{path}' is not present in the input data")

    def __str__(self) -> str:
        # LookupError would otherwise repr() the message
        return self.args[0]


class CoercionError(EligifyError, ValueError):
    """Actual/expected values cannot be brought to a comparable form."""

    def __init__(
        self,
        message: str,
        reason: ReasonCode = ReasonCode.TYPE_MISMATCH,
        raw: Any = None,
    ):
        self.reason = reason
        self.raw = raw
        super().__init__(message)


class ExpressionEvaluationError(EligifyError):
    """Boolean expression could not be evaluated against member outcomes."""

    reason = ReasonCode.UNRESOLVED_REFERENCE
