from __future__ import annotations

import calendar
import re
from datetime import date, datetime, timedelta
from typing import Tuple

from ..core.exceptions import ValidationError

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_MONTH_RE = re.compile(r"^\d{4}-\d{2}$")


def parse_iso_date(value, label: str = "attendanceDate") -> date:
    """Parse a strict YYYY-MM-DD string into date.

    ``date`` instances pass through untouched (the store hands them back that way).
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    s = str(value or "").strip()
    if not _DATE_RE.match(s):
        raise ValidationError(f"{label} must be YYYY-MM-DD")
    try:
        return datetime.strptime(s, "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"{label} is not a valid calendar date")


def parse_month(value) -> Tuple[int, int]:
    s = str(value or "").strip()
    if not _MONTH_RE.match(s):
        raise ValidationError("Invalid month")
    year, month = (int(x) for x in s.split("-"))
    if not 1 <= month <= 12:
        raise ValidationError("Invalid month")
    return year, month


def month_end(value: date) -> date:
    """Last day of the month containing ``value``; leap years included."""
    last = calendar.monthrange(value.year, value.month)[1]
    return value.replace(day=last)


def month_bounds(month: str) -> Tuple[date, date]:
    year, mm = parse_month(month)
    start = date(year, mm, 1)
    return start, month_end(start)


def count_working_days(start: date, end: date) -> int:
    """Monday-Friday days between start and end, both inclusive."""
    days = 0
    current = start
    while current <= end:
        if current.weekday() < 5:
            days += 1
        current += timedelta(days=1)
    return days


def iso(value: date) -> str:
    return value.strftime("%Y-%m-%d")
