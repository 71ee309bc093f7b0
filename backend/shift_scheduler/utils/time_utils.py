# backend/shift_scheduler/utils/time_utils.py
"""
Time helpers shared by the engine and its triggers.

Shift dates are business-local calendar dates, so the "now" used as a run's
reference instant is taken in the configured timezone.
"""

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

UTC_TIMEZONE = timezone.utc


def utc_now() -> datetime:
    """Get current UTC timestamp (timezone-aware)."""
    return datetime.now(UTC_TIMEZONE)


def get_timezone(name: Optional[str]) -> tzinfo:
    """Resolve an IANA timezone name, falling back to UTC for unknown names."""
    if not name or name.upper() == "UTC":
        return UTC_TIMEZONE
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return UTC_TIMEZONE


def local_now(timezone_name: Optional[str] = None) -> datetime:
    """Current time in the configured business timezone."""
    return datetime.now(get_timezone(timezone_name))


def tomorrow_of(reference: datetime) -> date:
    """First calendar date a run anchored at ``reference`` may touch."""
    return reference.date() + timedelta(days=1)


def shift_window(
    shift_date: date, start_time: time, end_time: time
) -> Tuple[datetime, datetime]:
    """
    Absolute [start, end) window of a shift.

    An end time at or before the start time means the shift runs past
    midnight and ends on the following day.
    """
    starts_at = datetime.combine(shift_date, start_time)
    end_date = shift_date if end_time > start_time else shift_date + timedelta(days=1)
    ends_at = datetime.combine(end_date, end_time)
    return starts_at, ends_at


def windows_overlap(
    first: Tuple[datetime, datetime], second: Tuple[datetime, datetime]
) -> bool:
    """Half-open interval test: touching boundaries do not overlap."""
    return first[0] < second[1] and first[1] > second[0]


def parse_reference_datetime(
    value: str, timezone_name: Optional[str] = None
) -> datetime:
    """
    Parse a console-supplied reference instant.

    Accepts ISO 8601 date or date-time strings; naive values are interpreted
    in the configured timezone.

    Raises:
        ValueError: If the string is not a valid ISO 8601 value
    """
    parsed = datetime.fromisoformat(value.strip())
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=get_timezone(timezone_name))
    return parsed
