"""
Check-in Window Evaluator

Decides whether a recurring check-in can be submitted right now.

A window opens weekly at `start_time` on `start_day`. For a given due date the
opening day is found inside the same 7-day cycle:

    days_to_add = (start_day - due_day_of_week + 7) % 7
    opened_at   = (due_date + days_to_add) at start_time

A check-in is available when the due date has arrived (day granularity),
the window has opened, and the check-in is not completed yet. There is no
close time: once opened, the window stays open until the check-in is done.

Policy for the ambiguous case: due date passed but window not opened yet is
reported to clients as "window closed" (availability WINDOW_NOT_OPEN keeps
it distinguishable for callers).
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Optional, Union
import logging

from core.exceptions import WindowConfigError
from services.checkin_constants import (
    CheckInStatus,
    EngineDefaults,
    WindowAvailability,
    get_engine_defaults,
)
from services.checkin_dates import (
    day_name,
    day_of_week,
    format_time_12h,
    parse_day_of_week,
    parse_time_of_day,
    resolve_timezone,
    to_local,
)
from schemas import CheckInRecord, RecurringWindow

logger = logging.getLogger(__name__)


MESSAGE_ALWAYS_OPEN = "Check-ins are always available"
MESSAGE_OPEN = "Check-in window is open"
MESSAGE_COMPLETED = "Check-in already completed"


@dataclass
class WindowState:
    """Availability of one check-in at one instant."""
    is_open: bool
    opened_at: datetime               # Window opening instant (due date midnight when ungated)
    message: str
    availability: WindowAvailability
    available_from: Optional[datetime] = None  # Earliest instant the check-in can be submitted


def _is_unset(value: Union[int, str, None]) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _window_start_day(window: RecurringWindow, defaults: EngineDefaults) -> int:
    if _is_unset(window.start_day):
        return defaults.start_day
    try:
        return parse_day_of_week(window.start_day)
    except WindowConfigError as e:
        logger.warning(f"{e.detail}; using {day_name(defaults.start_day)}")
        return defaults.start_day


def _window_start_time(window: RecurringWindow, defaults: EngineDefaults) -> time:
    if _is_unset(window.start_time):
        return defaults.start_time
    return parse_time_of_day(window.start_time)


def compute_window_start(
    due_date: date,
    window: RecurringWindow,
    tz: Union[str, tzinfo, None] = None,
    defaults: Optional[EngineDefaults] = None,
) -> datetime:
    """
    Opening instant of the window for a due date.

    A window without start_day or start_time uses the configured defaults.

    Raises:
        WindowConfigError: if the window's start_time is malformed
    """
    defaults = defaults or get_engine_defaults()
    zone = resolve_timezone(tz, defaults.timezone)

    start_day = _window_start_day(window, defaults)
    start_time = _window_start_time(window, defaults)

    days_to_add = (start_day - day_of_week(due_date) + 7) % 7
    start_date = due_date + timedelta(days=days_to_add)
    return datetime.combine(start_date, start_time, tzinfo=zone)


def evaluate_window(
    due_date: date,
    window: Optional[RecurringWindow],
    now: datetime,
    completed: bool = False,
    tz: Union[str, tzinfo, None] = None,
    defaults: Optional[EngineDefaults] = None,
) -> WindowState:
    """
    Evaluate whether a check-in due on `due_date` can be submitted at `now`.

    Args:
        due_date: Calendar due date of the check-in
        window: Recurring window rule (None or disabled means ungated)
        now: Current instant; naive values are read as local wall time
        completed: Whether the check-in is already submitted
        tz: Zone for calendar math (defaults to the configured zone)

    Returns:
        WindowState with is_open, opened_at and a user-facing message
    """
    defaults = defaults or get_engine_defaults()
    zone = resolve_timezone(tz, defaults.timezone)
    now_local = to_local(now, zone)
    due_midnight = datetime.combine(due_date, time.min, tzinfo=zone)

    if window is None or not window.enabled:
        if completed:
            return WindowState(False, due_midnight, MESSAGE_COMPLETED, WindowAvailability.COMPLETED)
        return WindowState(True, due_midnight, MESSAGE_ALWAYS_OPEN, WindowAvailability.ALWAYS_OPEN, due_midnight)

    try:
        opened_at = compute_window_start(due_date, window, zone, defaults)
    except WindowConfigError as e:
        # Fail open: never lock a client out over a bad schedule
        logger.warning(f"Check-in window unusable, treating as always open: {e.detail}")
        if completed:
            return WindowState(False, due_midnight, MESSAGE_COMPLETED, WindowAvailability.COMPLETED)
        return WindowState(True, due_midnight, MESSAGE_ALWAYS_OPEN, WindowAvailability.ALWAYS_OPEN, due_midnight)

    available_from = max(opened_at, due_midnight)

    if completed:
        return WindowState(False, opened_at, MESSAGE_COMPLETED, WindowAvailability.COMPLETED, available_from)

    if now_local.date() < due_date:
        return WindowState(
            is_open=False,
            opened_at=opened_at,
            message=f"Check-in is not due yet. Available from {_describe_instant(available_from)}",
            availability=WindowAvailability.NOT_YET_DUE,
            available_from=available_from,
        )

    if now_local >= opened_at:
        return WindowState(True, opened_at, MESSAGE_OPEN, WindowAvailability.OPEN, available_from)

    return WindowState(
        is_open=False,
        opened_at=opened_at,
        message=f"Check-in window closed. Opens again {_describe_instant(opened_at)}",
        availability=WindowAvailability.WINDOW_NOT_OPEN,
        available_from=available_from,
    )


def _describe_instant(instant: datetime) -> str:
    return f"{day_name(day_of_week(instant.date()))} at {format_time_12h(instant.time())}"


def describe_window(window: Optional[RecurringWindow], defaults: Optional[EngineDefaults] = None) -> str:
    """Human-readable window summary, e.g. 'Friday 10:00 AM onwards'."""
    if window is None or not window.enabled:
        return "Check-ins available anytime"

    defaults = defaults or get_engine_defaults()
    try:
        start_time = _window_start_time(window, defaults)
    except WindowConfigError:
        return "Check-ins available anytime"
    return f"{day_name(_window_start_day(window, defaults))} {format_time_12h(start_time)} onwards"


def derive_status(record: CheckInRecord, today: date) -> CheckInStatus:
    """Completed once submitted; overdue when the due date passed without a submission."""
    if record.submitted_at is not None:
        return CheckInStatus.COMPLETED
    if record.due_date is not None and record.due_date < today:
        return CheckInStatus.OVERDUE
    return CheckInStatus.PENDING


def evaluate_record_window(
    record: CheckInRecord,
    window: Optional[RecurringWindow],
    now: datetime,
    tz: Union[str, tzinfo, None] = None,
    defaults: Optional[EngineDefaults] = None,
) -> WindowState:
    """evaluate_window for a stored record; records without a due date are ungated."""
    defaults = defaults or get_engine_defaults()
    zone = resolve_timezone(tz, defaults.timezone)
    due_date = record.due_date or to_local(now, zone).date()
    completed = record.submitted_at is not None or record.status == CheckInStatus.COMPLETED
    return evaluate_window(due_date, window, now, completed=completed, tz=zone, defaults=defaults)
