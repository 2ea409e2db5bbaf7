"""Cursor navigation and header text for the schedule calendar."""

from __future__ import annotations

import calendar as _calendar
import datetime as dt

from .records import CalendarCursor, ViewMode, parse_time


def _add_months(value: dt.date, months: int) -> dt.date:
    index = value.year * 12 + (value.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    day = min(value.day, _calendar.monthrange(year, month)[1])
    return dt.date(year, month, day)


def _step(cursor: CalendarCursor, direction: int) -> CalendarCursor:
    view = ViewMode(cursor.view_mode)
    if view is ViewMode.MONTH:
        target = _add_months(cursor.reference_date, direction)
    elif view is ViewMode.WEEK:
        target = cursor.reference_date + dt.timedelta(days=7 * direction)
    else:
        target = cursor.reference_date + dt.timedelta(days=direction)
    return cursor.with_date(target)


def go_to_next(cursor: CalendarCursor) -> CalendarCursor:
    return _step(cursor, 1)


def go_to_prev(cursor: CalendarCursor) -> CalendarCursor:
    return _step(cursor, -1)


def go_to_today(cursor: CalendarCursor, today: dt.date) -> CalendarCursor:
    return cursor.with_date(today)


def change_view(cursor: CalendarCursor, view_mode: ViewMode | str) -> CalendarCursor:
    return cursor.with_view(view_mode)


def get_week_range(reference_date: dt.date) -> tuple[dt.date, dt.date]:
    """Return the Sunday on or before ``reference_date`` and the Saturday after it."""

    start = reference_date - dt.timedelta(days=(reference_date.weekday() + 1) % 7)
    return start, start + dt.timedelta(days=6)


def get_view_title_display(cursor: CalendarCursor) -> str:
    reference = cursor.reference_date
    view = ViewMode(cursor.view_mode)
    if view is ViewMode.MONTH:
        return f"{reference:%B} {reference.year}"
    if view is ViewMode.DAY:
        return f"{reference:%A}, {reference:%B} {reference.day}, {reference.year}"

    start, end = get_week_range(reference)
    if start.year != end.year:
        return f"{start:%b} {start.day}, {start.year} - {end:%b} {end.day}, {end.year}"
    if start.month != end.month:
        return f"{start:%b} {start.day} - {end:%b} {end.day}, {end.year}"
    return f"{start:%b} {start.day} - {end.day}, {end.year}"


def format_time(start_time: str) -> str:
    """Render ``14:30`` as ``2:30 PM``."""

    hour, minute = parse_time(start_time)
    suffix = "PM" if hour >= 12 else "AM"
    return f"{hour % 12 or 12}:{minute:02d} {suffix}"
