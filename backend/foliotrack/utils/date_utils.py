# backend/foliotrack/utils/date_utils.py
"""
Date utility functions for Foliotrack.

Shared calendar helpers used by the history calculator and the holdings
service.

Usage:
    from foliotrack.utils.date_utils import iter_days, subtract_months

    start = subtract_months(date.today(), 6)
    days = list(iter_days(start, date.today()))
"""

import calendar
from collections.abc import Iterator
from datetime import date, datetime, timedelta, timezone


def iter_days(start_date: date, end_date: date) -> Iterator[date]:
    """
    Yield every calendar day in a date range.

    Args:
        start_date: First date in range (inclusive)
        end_date: Last date in range (inclusive)

    Yields:
        Dates in chronological order; nothing if start_date > end_date
    """
    current = start_date
    while current <= end_date:
        yield current
        current += timedelta(days=1)


def subtract_months(d: date, months: int) -> date:
    """
    Move a date back by whole calendar months.

    The day is clamped to the last day of the target month, so
    subtract_months(date(2024, 3, 31), 1) == date(2024, 2, 29).
    """
    month_index = d.year * 12 + (d.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(d.day, last_day))


def start_of_year(d: date) -> date:
    """First day of the year containing d."""
    return date(d.year, 1, 1)


def today_utc() -> date:
    """Current date in UTC."""
    return datetime.now(timezone.utc).date()
