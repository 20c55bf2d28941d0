import calendar
import re
from datetime import UTC, date, datetime, time, timedelta

from dateutil import parser as dateutil_parser
from dateutil.parser import ParserError
from dateutil.relativedelta import relativedelta

from ..core.types import WEEKDAYS
from . import clock

__all__ = [
    "clamp_day",
    "cycle_bounds",
    "day_range",
    "end_of_day",
    "epoch",
    "parse_date",
    "week_offset",
    "weekday_index",
]

_DAY_ALIASES = {name[:3]: name for name in WEEKDAYS}


def epoch(d: date) -> int:
    """Unix seconds of UTC midnight on `d`. Stable across hosts and timezones."""
    return int(datetime.combine(d, time.min, tzinfo=UTC).timestamp())


def end_of_day(d: date) -> datetime:
    return datetime.combine(d, time(23, 59, 59))


def weekday_index(name: str) -> int:
    """Monday=0 .. Sunday=6, accepting full names or three-letter aliases."""
    key = name.strip().lower()
    key = _DAY_ALIASES.get(key, key)
    if key not in WEEKDAYS:
        raise ValueError(f"unknown weekday '{name}'")
    return WEEKDAYS.index(key)


def week_offset(d: date, week_start: str = "sunday") -> int:
    """Position of `d` within its week, 0 being the configured first day."""
    return (d.weekday() - weekday_index(week_start)) % 7


def clamp_day(year: int, month: int, day: int) -> date:
    last = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last))


def cycle_bounds(frequency: str, d: date, week_start: str = "sunday") -> tuple[date, date]:
    """Half-open [start, end) of the cycle containing `d` for a routine frequency."""
    if frequency == "daily":
        return d, d + timedelta(days=1)
    if frequency == "weekly":
        start = d - timedelta(days=week_offset(d, week_start))
        return start, start + timedelta(days=7)
    if frequency == "monthly":
        start = d.replace(day=1)
        return start, start + relativedelta(months=1)
    if frequency == "quarterly":
        start = date(d.year, 3 * ((d.month - 1) // 3) + 1, 1)
        return start, start + relativedelta(months=3)
    if frequency == "yearly":
        start = date(d.year, 1, 1)
        return start, start + relativedelta(years=1)
    raise ValueError(f"unknown frequency '{frequency}'")


def day_range(start: date, end: date):
    d = start
    while d < end:
        yield d
        d += timedelta(days=1)


def parse_date(value: str) -> date | None:
    """Parses a date string (e.g., 'today', 'tomorrow', 'mon', 'YYYY-MM-DD')."""
    lowered = value.strip().lower()
    today = clock.today()

    if lowered == "today":
        return today
    if lowered == "yesterday":
        return today - timedelta(days=1)
    if lowered == "tomorrow":
        return today + timedelta(days=1)
    lowered = _DAY_ALIASES.get(lowered, lowered)
    if lowered in WEEKDAYS:
        days_ahead = (WEEKDAYS.index(lowered) - today.weekday()) % 7
        return today + timedelta(days=days_ahead)
    if re.match(r"^\d{1,2}:\d{2}$", lowered):
        return None
    try:
        return dateutil_parser.parse(
            value, default=datetime(today.year, today.month, today.day)
        ).date()
    except (ParserError, ValueError, OverflowError):
        return None
