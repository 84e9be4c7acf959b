"""Business-day calendar for a billing month: Monday to Friday minus active holidays."""

import calendar
from datetime import date
from typing import Iterable, List, Tuple

from fastapi import status

from app.core.exceptions import ServiceError


def parse_month(value: str) -> Tuple[int, int]:
    """Parse 'YYYY-MM' into (year, month)."""
    try:
        year_str, month_str = value.strip().split("-")
        year, month = int(year_str), int(month_str)
    except (AttributeError, ValueError):
        raise ServiceError(f"Invalid month '{value}', expected YYYY-MM", status.HTTP_400_BAD_REQUEST)
    if not 1 <= month <= 12 or not 1 <= year <= 9999:
        raise ServiceError(f"Invalid month '{value}', expected YYYY-MM", status.HTTP_400_BAD_REQUEST)
    return year, month


def format_month(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """First and last calendar day of the month."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def stored_weekday(day: date) -> int:
    """Weekday in the stored enrollment encoding: 0=Sunday, 1=Monday .. 6=Saturday."""
    return day.isoweekday() % 7


def business_days(year: int, month: int, holidays: Iterable[date] = ()) -> List[date]:
    """Every Monday to Friday of the month not listed in holidays, ascending."""
    first, last = month_bounds(year, month)
    closed = set(holidays)
    days = []
    for number in range(first.day, last.day + 1):
        day = date(year, month, number)
        if day.weekday() < 5 and day not in closed:
            days.append(day)
    return days
