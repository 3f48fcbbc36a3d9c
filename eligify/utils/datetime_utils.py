"""
Datetime normalization utilities.

Single source of truth for date parsing used by value coercion.
All results are timezone-aware UTC instants so comparisons are
instant-based, never string-based.
"""

import math
import re
from datetime import date, datetime, timezone

# Strings must start like an ISO date to be treated as dates during inference
_ISO_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")

_FORMATS = [
    "%Y-%m-%dT%H:%M:%S",      # Full ISO
    "%Y-%m-%dT%H:%M",          # ISO without seconds
    "%Y-%m-%d %H:%M:%S",       # Space separator with seconds
    "%Y-%m-%d %H:%M",          # Space separator without seconds
    "%Y-%m-%d",                # Date only
]


def is_date_like(value) -> bool:
    """True for datetime/date objects and ISO-looking date strings."""
    if isinstance(value, (datetime, date)):
        return True
    return isinstance(value, str) and bool(_ISO_DATE_PREFIX.match(value.strip()))


def _as_utc(value: datetime) -> datetime:
    # Naive values are taken to be UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def normalize_datetime(
    value,
    param_name: str = "datetime",
) -> tuple[datetime | None, str | None]:
    """
    Normalize a date value from various input formats.

    Accepts datetime, date, ISO-format strings (optionally with a trailing
    'Z') and epoch seconds.

    Args:
        value: Value to normalize
        param_name: Parameter name for error messages

    Returns:
        Tuple of (normalized_datetime, error_message)
        - If successful: (aware UTC datetime, None)
        - If failed: (None, error_string)
    """
    if value is None:
        return None, f"Missing {param_name}"

    if isinstance(value, datetime):
        return _as_utc(value), None

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc), None

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
            return None, f"Invalid {param_name}: {value}"
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc), None
        except (OverflowError, OSError, ValueError):
            return None, f"Invalid {param_name} timestamp: {value}"

    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None, f"Empty {param_name}"

        for fmt in _FORMATS:
            try:
                return _as_utc(datetime.strptime(value, fmt)), None
            except ValueError:
                continue

        # fromisoformat handles offsets and fractional seconds
        try:
            return _as_utc(datetime.fromisoformat(value.replace("Z", "+00:00"))), None
        except ValueError:
            pass

        return None, f"Invalid {param_name} format: '{value}'. Use YYYY-MM-DD or YYYY-MM-DDTHH:MM:SS"

    return None, f"Invalid {param_name} type: expected date, string or number, got {type(value).__name__}"
