"""Date parsing utilities."""

from datetime import date, timedelta
import re

from dateutil import parser as date_parser

ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}")


def parse_date(date_str: str) -> date:
    """Parse an exported date string into a date object.

    Accounting exports use US month-first dates ("01/15/2025") or ISO dates
    ("2025-01-15", optionally with a time part). Anything dateutil can read
    unambiguously is accepted; time and timezone parts are dropped so that
    the calendar date in the file is the one that is kept.

    Args:
        date_str: Date string

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    if date_str is None or not str(date_str).strip():
        raise ValueError("Empty date string")

    date_str = str(date_str).strip()

    if ISO_DATE.match(date_str):
        # Keep the calendar date even when a UTC timestamp is attached
        date_str = date_str[:10]

    try:
        dt = date_parser.parse(date_str, dayfirst=False, yearfirst=False)
        return dt.date()
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def widen_date_range(dates: list[date], days: int) -> tuple[date, date] | None:
    """Return (min - days, max + days) for the given dates, or None if empty."""
    if not dates:
        return None
    delta = timedelta(days=days)
    return (min(dates) - delta, max(dates) + delta)
