"""
Domain calendar-date utilities (pure).

Order records only care about calendar days. The store hands back its native
timestamp type (ISO strings, sometimes with a trailing 'Z', or datetimes);
everything is reduced to a `date` here before entering the domain model.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional


def to_calendar_date(value: Any) -> Optional[date]:
    """
    Reduce a store timestamp or calendar date to a `date`.

    Returns None for absent values (None or blank strings).

    Raises:
        TypeError: If the value is not a date, datetime or string
        ValueError: If a string is not ISO-8601
    """

    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if len(text) == 10:
            return date.fromisoformat(text)
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    raise TypeError(f"Unsupported date type: {type(value)!r}")


def require_calendar_date(name: str, value: Any) -> None:
    """
    Enforce that a field holds a plain calendar date.

    A `datetime` is rejected even though it subclasses `date`, so that
    time-of-day never leaks into interval comparisons.
    """

    if isinstance(value, datetime) or not isinstance(value, date):
        raise ValueError(f"{name} must be a calendar date")


def month_key(value: date) -> str:
    """Year-month bucket key, e.g. '2024-03'."""

    return f"{value.year:04d}-{value.month:02d}"


__all__ = ["to_calendar_date", "require_calendar_date", "month_key"]
