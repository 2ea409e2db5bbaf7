"""Value types shared by the schedule store and the calendar builder."""

from __future__ import annotations

import datetime as dt
import re
from dataclasses import dataclass, replace
from enum import Enum

TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::\d{2})?$")


class MalformedTimeError(ValueError):
    """Raised when a walk's start time cannot be read as ``HH:MM``."""


class ViewMode(str, Enum):
    """Calendar granularity shown on the walker schedule page."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class WalkStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TimeSlot(str, Enum):
    AM = "AM"
    PM = "PM"


class HolidayStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


@dataclass(frozen=True)
class CalendarCursor:
    """Where the schedule page is looking: an anchor date and a view mode."""

    reference_date: dt.date
    view_mode: ViewMode = ViewMode.MONTH

    def with_date(self, reference_date: dt.date) -> "CalendarCursor":
        return replace(self, reference_date=reference_date)

    def with_view(self, view_mode: ViewMode | str) -> "CalendarCursor":
        return replace(self, view_mode=ViewMode(view_mode))


def date_key(value: dt.date | str) -> str:
    """Return the ``YYYY-MM-DD`` lookup key for a date or ISO date string."""

    if isinstance(value, dt.datetime):
        return value.date().isoformat()
    if isinstance(value, dt.date):
        return value.isoformat()
    # Tolerate full timestamps such as "2024-06-20T00:00:00.000Z"
    return str(value)[:10]


def parse_date(value: dt.date | str) -> dt.date:
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    return dt.date.fromisoformat(date_key(value))


def parse_time(start_time: str) -> tuple[int, int]:
    """Split ``HH:MM`` into hour and minute, rejecting anything else."""

    match = TIME_RE.match(str(start_time or "").strip())
    if not match:
        raise MalformedTimeError(f"Invalid start time {start_time!r} (expected HH:MM)")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise MalformedTimeError(f"Start time {start_time!r} is out of range")
    return hour, minute


def parse_start_hour(start_time: str) -> int:
    """Read the hour in front of the first colon, ignoring whatever follows.

    Looser than :func:`parse_time`: "10:00 AM" and "10:0" both give 10.
    """

    head = str(start_time or "").split(":", 1)[0].strip()
    if not head.isdigit() or int(head) > 23:
        raise MalformedTimeError(f"Start time {start_time!r} has no valid hour")
    return int(head)


def time_slot_for(start_time: str) -> str:
    return TimeSlot.AM.value if parse_time(start_time)[0] < 12 else TimeSlot.PM.value
