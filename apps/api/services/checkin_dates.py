"""
Calendar helpers for check-in scheduling.

Day-of-week numbers follow the Sunday=0..Saturday=6 convention used by the
check-in schedules, not Python's Monday=0 weekday().
"""

from datetime import date, datetime, time, tzinfo
from typing import Optional, Union
from zoneinfo import ZoneInfo

from core.exceptions import WindowConfigError
from services.checkin_constants import DAY_NAMES, DAY_NUMBERS


def day_of_week(day: date) -> int:
    """Sunday=0 .. Saturday=6."""
    return (day.weekday() + 1) % 7


def parse_day_of_week(value: Union[str, int, None]) -> int:
    """
    Parse a day name ("friday", "Fri") or number (0-6) into Sunday=0..Saturday=6.

    Raises:
        WindowConfigError: if the value is not a recognisable day
    """
    if isinstance(value, bool):
        raise WindowConfigError(f"Not a day of week: {value!r}", field="start_day")
    if isinstance(value, int):
        if 0 <= value <= 6:
            return value
        raise WindowConfigError(f"Day number out of range: {value}", field="start_day")
    if not isinstance(value, str) or not value.strip():
        raise WindowConfigError(f"Not a day of week: {value!r}", field="start_day")

    name = value.strip().lower()
    if name in DAY_NUMBERS:
        return DAY_NUMBERS[name]
    # Accept three-letter abbreviations
    for full_name, number in DAY_NUMBERS.items():
        if len(name) >= 3 and full_name.startswith(name):
            return number
    raise WindowConfigError(f"Not a day of week: {value!r}", field="start_day")


def parse_time_of_day(value: Union[str, time, None]) -> time:
    """
    Parse "HH:MM" (24h) into a time.

    Raises:
        WindowConfigError: on anything that is not a valid HH:MM
    """
    if isinstance(value, time):
        return value
    if not isinstance(value, str):
        raise WindowConfigError(f"Not a time of day: {value!r}", field="start_time")

    parts = value.strip().split(":")
    if len(parts) not in (2, 3):
        raise WindowConfigError(f"Not a time of day: {value!r}", field="start_time")
    try:
        hours, minutes = int(parts[0]), int(parts[1])
    except ValueError as e:
        raise WindowConfigError(f"Not a time of day: {value!r}", field="start_time") from e
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise WindowConfigError(f"Time of day out of range: {value!r}", field="start_time")
    return time(hours, minutes)


def format_time_12h(value: time) -> str:
    """10:00 -> '10:00 AM', 22:30 -> '10:30 PM', 00:05 -> '12:05 AM'."""
    period = "PM" if value.hour >= 12 else "AM"
    display_hours = value.hour % 12 or 12
    return f"{display_hours}:{value.minute:02d} {period}"


def day_name(day_number: int) -> str:
    return DAY_NAMES[day_number % 7]


def resolve_timezone(tz: Union[str, tzinfo, None], default: str = "UTC") -> tzinfo:
    if tz is None:
        return ZoneInfo(default)
    if isinstance(tz, str):
        return ZoneInfo(tz)
    return tz


def local_day(instant: Union[datetime, date], tz: Optional[tzinfo] = None) -> date:
    """
    Calendar day of an instant in the given zone.

    Naive datetimes are taken as already local. Plain dates pass through.
    """
    if not isinstance(instant, datetime):
        return instant
    if instant.tzinfo is not None and tz is not None:
        instant = instant.astimezone(tz)
    return instant.date()


def to_local(instant: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Aware instants are converted to tz; naive ones are assumed local and tagged with tz."""
    if tz is None:
        return instant
    if instant.tzinfo is None:
        return instant.replace(tzinfo=tz)
    return instant.astimezone(tz)


def sort_key(instant: Union[datetime, date, None], tz: Optional[tzinfo] = None) -> datetime:
    """Comparable key for mixed naive/aware instants and plain dates."""
    if instant is None:
        return datetime.min.replace(tzinfo=tz or ZoneInfo("UTC"))
    if not isinstance(instant, datetime):
        instant = datetime.combine(instant, time.min)
    return to_local(instant, tz or ZoneInfo("UTC"))
