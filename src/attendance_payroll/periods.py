"""Month/year helpers shared by attendance and payroll."""

from __future__ import annotations

import calendar
from datetime import date

MONTHS = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


def month_number(month: str | int) -> int:
    """1-based month number from a full month name or a number."""
    if isinstance(month, int):
        if not 1 <= month <= 12:
            raise ValueError(f"Month out of range: {month}")
        return month
    cleaned = month.strip().lower()
    for index, name in enumerate(MONTHS, start=1):
        if name.lower() == cleaned:
            return index
    raise ValueError(f"Unknown month: {month!r}")


def month_name(month: str | int) -> str:
    """Full English month name, the form collaborators store."""
    return MONTHS[month_number(month) - 1]


def days_in_month(month: str | int, year: int) -> int:
    return calendar.monthrange(year, month_number(month))[1]


def month_start(month: str | int, year: int) -> date:
    return date(year, month_number(month), 1)


def month_end(month: str | int, year: int) -> date:
    return date(year, month_number(month), days_in_month(month, year))


def month_dates(month: str | int, year: int) -> list[date]:
    """Every calendar date of the month, in order."""
    number = month_number(month)
    return [date(year, number, d) for d in range(1, days_in_month(number, year) + 1)]


def period_key(month: str | int, year: int) -> tuple[int, int]:
    """Sortable (year, month) key."""
    return (year, month_number(month))


def is_before(month: str | int, year: int, other_month: str | int, other_year: int) -> bool:
    """True when (month, year) is strictly earlier than (other_month, other_year)."""
    return period_key(month, year) < period_key(other_month, other_year)
