"""Calendar view-model builder for the walker schedule page.

Every function here is a pure projection of the walk and holiday-request
snapshots handed in by the caller. Nothing is cached between calls, so a
caller may rebuild as often as it likes with fresh data.
"""

from __future__ import annotations

import calendar as _calendar
import datetime as dt
import logging
from collections import defaultdict
from typing import Any, Iterable, Mapping, Sequence

from .navigation import get_view_title_display, get_week_range
from .records import (
    CalendarCursor,
    MalformedTimeError,
    ViewMode,
    WalkStatus,
    date_key,
    parse_date,
    parse_start_hour,
    parse_time,
)

logger = logging.getLogger(__name__)

DAY_START_HOUR = 6
DAY_END_HOUR = 21

HOLIDAY_STATUS_CLASSES = {
    "pending": "bg-amber-100 text-amber-800",
    "approved": "bg-green-100 text-green-800",
    "denied": "bg-red-100 text-red-800",
}
UNKNOWN_STATUS_CLASS = "bg-gray-100 text-gray-800"


# ----------------------------------------------------------------------
# Grouping & lookups
# ----------------------------------------------------------------------
def group_walks_by_date(walks: Iterable[Mapping[str, Any]]) -> dict[str, list]:
    """Bucket walks by ISO date, keeping input order within each date."""

    grouped: dict[str, list] = defaultdict(list)
    for walk in walks:
        grouped[date_key(walk["date"])].append(walk)
    return dict(grouped)


def is_group_walk(walk: Mapping[str, Any], same_day_walks: Sequence[Mapping[str, Any]]) -> bool:
    walk_id = walk.get("id")
    for other in same_day_walks:
        if other is walk or (walk_id is not None and other.get("id") == walk_id):
            continue
        if (
            other.get("start_time") == walk.get("start_time")
            and other.get("time_slot") == walk.get("time_slot")
            and date_key(other["date"]) == date_key(walk["date"])
        ):
            return True
    return False


def find_holiday_for_date(
    key: str, holiday_requests: Iterable[Mapping[str, Any]]
) -> Mapping[str, Any] | None:
    """Return the first holiday request dated ``key``.

    Duplicates for one date are not expected (the store rejects them); if a
    caller passes some anyway, input order decides.
    """

    for request in holiday_requests:
        if date_key(request["date"]) == key:
            return request
    return None


def build_holiday_lookup(holiday_requests: Iterable[Mapping[str, Any]]) -> dict[str, Mapping]:
    lookup: dict[str, Mapping] = {}
    for request in holiday_requests:
        lookup.setdefault(date_key(request["date"]), request)
    return lookup


def holiday_status_class(status: str | None) -> str | None:
    if status is None:
        return None
    return HOLIDAY_STATUS_CLASSES.get(str(status), UNKNOWN_STATUS_CLASS)


def filter_upcoming_walks(
    walks: Iterable[Mapping[str, Any]],
    today: dt.date,
    *,
    walker_id: Any = None,
    limit: int | None = None,
) -> list:
    """Scheduled walks on or after ``today``, soonest first."""

    upcoming = [
        walk
        for walk in walks
        if walk.get("status") == WalkStatus.SCHEDULED.value
        and parse_date(walk["date"]) >= today
        and (walker_id is None or walk.get("walker_id") == walker_id)
    ]
    upcoming.sort(key=lambda walk: date_key(walk["date"]))
    return upcoming[:limit] if limit is not None else upcoming


def filter_past_walks(
    walks: Iterable[Mapping[str, Any]],
    today: dt.date,
    *,
    walker_id: Any = None,
    limit: int | None = None,
) -> list:
    past = [
        walk
        for walk in walks
        if parse_date(walk["date"]) < today
        and (walker_id is None or walk.get("walker_id") == walker_id)
    ]
    past.sort(key=lambda walk: date_key(walk["date"]), reverse=True)
    return past[:limit] if limit is not None else past


# ----------------------------------------------------------------------
# Grid construction
# ----------------------------------------------------------------------
def _holiday_fields(holiday: Mapping[str, Any] | None) -> dict:
    status = holiday.get("status") if holiday else None
    return {
        "holiday_request": holiday,
        "has_holiday_request": holiday is not None,
        "holiday_status": status,
        "holiday_status_class": holiday_status_class(status),
    }


def group_walk_ids(walks: Sequence[Mapping[str, Any]]) -> list:
    return [walk.get("id") for walk in walks if is_group_walk(walk, walks)]


def _build_cell(
    day: dt.date,
    walks_by_date: Mapping[str, list],
    holiday_lookup: Mapping[str, Mapping],
    today: dt.date | None,
) -> dict:
    key = day.isoformat()
    walks = list(walks_by_date.get(key, []))
    cell = {
        "date": day,
        "date_key": key,
        "day": day.day,
        "walks": walks,
        "group_walk_ids": group_walk_ids(walks),
        "is_today": today is not None and day == today,
    }
    cell.update(_holiday_fields(holiday_lookup.get(key)))
    return cell


def build_month_grid(
    reference_date: dt.date,
    walks_by_date: Mapping[str, list],
    holiday_lookup: Mapping[str, Mapping],
    today: dt.date | None = None,
) -> list[list[dict | None]]:
    """Weeks (Sunday first) covering the month of ``reference_date``.

    Cells outside the month are ``None`` so every week has seven columns.
    """

    year, month = reference_date.year, reference_date.month
    days_in_month = _calendar.monthrange(year, month)[1]
    first = dt.date(year, month, 1)
    # date.weekday() is Monday=0; shift so Sunday lands in column 0
    leading = (first.weekday() + 1) % 7

    cells: list[dict | None] = [None] * leading
    for day_number in range(1, days_in_month + 1):
        cells.append(
            _build_cell(dt.date(year, month, day_number), walks_by_date, holiday_lookup, today)
        )
    if len(cells) % 7:
        cells.extend([None] * (7 - len(cells) % 7))
    return [cells[idx : idx + 7] for idx in range(0, len(cells), 7)]


def build_week_grid(
    reference_date: dt.date,
    walks_by_date: Mapping[str, list],
    holiday_lookup: Mapping[str, Mapping],
    today: dt.date | None = None,
) -> list[dict]:
    start, _ = get_week_range(reference_date)
    return [
        _build_cell(start + dt.timedelta(days=offset), walks_by_date, holiday_lookup, today)
        for offset in range(7)
    ]


def format_hour(hour: int) -> str:
    suffix = "PM" if hour >= 12 else "AM"
    return f"{hour % 12 or 12} {suffix}"


def build_day_grid(
    reference_date: dt.date,
    walks_by_date: Mapping[str, list],
    holiday_lookup: Mapping[str, Mapping],
    today: dt.date | None = None,
) -> dict:
    key = reference_date.isoformat()
    day_walks = walks_by_date.get(key, [])
    by_hour: dict[int, list] = defaultdict(list)
    for walk in day_walks:
        try:
            hour = parse_start_hour(walk.get("start_time"))
        except MalformedTimeError:
            logger.warning(
                "Skipping walk %s on %s from day view: bad start time %r",
                walk.get("id"),
                key,
                walk.get("start_time"),
            )
            continue
        by_hour[hour].append(walk)

    time_slots = [
        {"hour": hour, "display": format_hour(hour), "walks": by_hour.get(hour, [])}
        for hour in range(DAY_START_HOUR, DAY_END_HOUR + 1)
    ]
    grid = {
        "date": reference_date,
        "date_key": key,
        "is_today": today is not None and reference_date == today,
        "time_slots": time_slots,
        "group_walk_ids": group_walk_ids(day_walks),
    }
    grid.update(_holiday_fields(holiday_lookup.get(key)))
    return grid


def calculate_end_time(start_time: str, duration_minutes: int) -> str:
    """Wall-clock end time; anything past 23:59 wraps to the next day."""

    hour, minute = parse_time(start_time)
    total = (hour * 60 + minute + int(duration_minutes)) % (24 * 60)
    return f"{total // 60:02d}:{total % 60:02d}"


def build_calendar(
    cursor: CalendarCursor,
    walks: Iterable[Mapping[str, Any]],
    holiday_requests: Iterable[Mapping[str, Any]],
    today: dt.date | None = None,
) -> dict:
    """Project the snapshots into the grid for ``cursor.view_mode``."""

    walks_by_date = group_walks_by_date(walks)
    holiday_lookup = build_holiday_lookup(holiday_requests)
    view = ViewMode(cursor.view_mode)
    if view is ViewMode.MONTH:
        grid: Any = build_month_grid(cursor.reference_date, walks_by_date, holiday_lookup, today)
    elif view is ViewMode.WEEK:
        grid = build_week_grid(cursor.reference_date, walks_by_date, holiday_lookup, today)
    else:
        grid = build_day_grid(cursor.reference_date, walks_by_date, holiday_lookup, today)
    return {
        "view": view.value,
        "reference_date": cursor.reference_date,
        "title": get_view_title_display(cursor),
        "grid": grid,
    }
