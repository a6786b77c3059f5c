"""
Calendar and clock helpers shared by the availability store and the
booking conflict checker.

Clock values are 24-hour ``HH:MM`` strings. They are normalised to a
zero-padded form so lexical order matches chronological order.
"""

import re
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Any, List

from marketplace.core.exceptions import ValidationError

CLOCK_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])$")


def parse_clock(value: Any, field: str = "time") -> str:
    """Validate a 24-hour clock string and return it zero-padded."""
    if not isinstance(value, str):
        raise ValidationError(
            "Invalid time format. Use HH:MM (24-hour format)", field=field
        )
    match = CLOCK_PATTERN.match(value.strip())
    if not match:
        raise ValidationError(
            "Invalid time format. Use HH:MM (24-hour format)", field=field
        )
    hours, minutes = match.groups()
    return f"{int(hours):02d}:{minutes}"


def clock_to_minutes(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_clock(total: int) -> str:
    return f"{total // 60:02d}:{total % 60:02d}"


def parse_calendar_date(value: Any, field: str = "date") -> date:
    """Accept a ``date`` or a ``YYYY-MM-DD`` string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            pass
    raise ValidationError("Invalid date format. Use YYYY-MM-DD", field=field)


def parse_timestamp(value: Any, field: str = "scheduled_at") -> datetime:
    """Accept a ``datetime`` or an ISO-8601 timestamp string.

    Aware values are converted to UTC and stored naive, matching the
    ``DateTime`` columns of the consultations table.
    """
    parsed = None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            parsed = None
    if parsed is None:
        raise ValidationError("Invalid timestamp. Use ISO-8601", field=field)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def local_to_utc(value: datetime, tz: tzinfo) -> datetime:
    """Naive wall-clock time in ``tz`` to the naive UTC form bookings use."""
    return value.replace(tzinfo=tz).astimezone(timezone.utc).replace(tzinfo=None)


def intervals_overlap(a_start, a_end, b_start, b_end) -> bool:
    """Half-open overlap: ``[a_start, a_end)`` and ``[b_start, b_end)`` share time."""
    return a_start < b_end and b_start < a_end


def week_monday(day: date) -> date:
    return day - timedelta(days=day.weekday())


def week_days(monday: date) -> List[date]:
    return [monday + timedelta(days=offset) for offset in range(7)]
