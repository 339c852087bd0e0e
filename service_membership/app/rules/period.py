"""
Date helpers for drip scheduling.

All dates are calendar dates. "Today" comes from a clock object so that
callers (and tests) can simulate a different date.
"""

import calendar
from datetime import date, datetime, timedelta
from typing import Any, Dict, Mapping, Optional, Union

from .models import PeriodType


DateLike = Union[date, datetime, str]

_PERIOD_ALIASES = {
    "day": PeriodType.DAYS,
    "days": PeriodType.DAYS,
    "week": PeriodType.WEEKS,
    "weeks": PeriodType.WEEKS,
    "month": PeriodType.MONTHS,
    "months": PeriodType.MONTHS,
}


class SystemClock:
    """Clock backed by the system date, optionally simulating another date."""

    def __init__(self, simulated_date: Optional[date] = None):
        self.simulated_date = simulated_date

    def today(self) -> date:
        if self.simulated_date is not None:
            return self.simulated_date
        return date.today()


class FixedClock:
    """Clock frozen on a given date."""

    def __init__(self, current: DateLike):
        self.current = to_date(current)

    def today(self) -> date:
        return self.current

    def advance(self, days: int = 1) -> date:
        self.current = self.current + timedelta(days=days)
        return self.current


def to_date(value: DateLike) -> date:
    """Coerce a date, datetime or ISO string into a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(str(value).strip()).date()


def validate_period_unit(value: Any, default: int = 0) -> int:
    """Return ``value`` as a non-negative int, otherwise ``default``."""
    if isinstance(value, bool):
        return default
    try:
        unit = int(value)
    except (TypeError, ValueError):
        return default
    return unit if unit >= 0 else default


def validate_period_type(value: Any, default: PeriodType = PeriodType.DAYS) -> PeriodType:
    """Return ``value`` as a PeriodType, otherwise ``default``."""
    if isinstance(value, PeriodType):
        return value
    if isinstance(value, str):
        return _PERIOD_ALIASES.get(value.strip().lower(), default)
    return default


def validate_period(period: Mapping[str, Any]) -> Dict[str, Any]:
    """Normalise the period fields of a drip entry; other keys pass through."""
    normalized = dict(period)
    if "period_unit" in normalized:
        normalized["period_unit"] = validate_period_unit(normalized["period_unit"])
    if "period_type" in normalized:
        normalized["period_type"] = validate_period_type(normalized["period_type"])
    return normalized


def add_interval(period_unit: Any, period_type: Any, start_date: DateLike) -> date:
    """Advance ``start_date`` by ``period_unit`` days, weeks or months.

    Month arithmetic keeps the day of month, clamped to the last day of the
    target month.
    """
    start = to_date(start_date)
    unit = validate_period_unit(period_unit)
    period_type = validate_period_type(period_type)

    if period_type == PeriodType.WEEKS:
        return start + timedelta(weeks=unit)

    if period_type == PeriodType.MONTHS:
        month_index = start.month - 1 + unit
        year = start.year + month_index // 12
        month = month_index % 12 + 1
        day = min(start.day, calendar.monthrange(year, month)[1])
        return date(year, month, day)

    return start + timedelta(days=unit)
