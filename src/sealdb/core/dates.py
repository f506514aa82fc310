"""Canonical text form of date values.

Dates are stored and compared as ISO 8601 strings, so every instant needs
exactly one spelling. Timezone-aware values are converted to UTC; naive
values and calendar dates keep their own isoformat.
"""

from datetime import date, datetime, timezone
from typing import Any


def canonical_date(value: Any) -> str:
    """Return the canonical ISO 8601 string for a date value.

    Args:
        value: A ``datetime``, a ``date`` or an ISO 8601 string
            (``Z`` is accepted as UTC).

    Returns:
        ``YYYY-MM-DD`` for calendar dates, otherwise ``datetime.isoformat()``
        of the value, converted to UTC when it carries an offset.

    Raises:
        TypeError: If ``value`` is not a date, datetime or string.
        ValueError: If a string is not ISO 8601.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).isoformat()
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str):
        raise TypeError(f"Expected a date value, got {type(value).__name__}")

    text = value.strip()
    if len(text) == 10:
        try:
            return date.fromisoformat(text).isoformat()
        except ValueError:
            pass
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return canonical_date(datetime.fromisoformat(text))


def now_utc() -> str:
    """Current instant in canonical form."""
    return canonical_date(datetime.now(timezone.utc))
