"""Core orchestration logic for the walker schedule service."""

from __future__ import annotations

import datetime as dt
import functools
import logging
import sqlite3
import threading
from typing import Any

from .calendar import build_calendar, filter_past_walks, filter_upcoming_walks
from .database import get_connection, initialize_database
from .records import (
    CalendarCursor,
    HolidayStatus,
    MalformedTimeError,
    ViewMode,
    WalkStatus,
    parse_time,
    time_slot_for,
)

logger = logging.getLogger(__name__)

HOLIDAY_UPDATABLE_FIELDS = ("date", "reason", "status", "admin_notes")


class ValidationError(RuntimeError):
    """Raised when incoming data fails validation."""


class NotFoundError(ValidationError):
    """Raised when a referenced record does not exist."""


def _validate_date(value: str, field: str = "date") -> str:
    try:
        return dt.date.fromisoformat(str(value)[:10]).isoformat()
    except ValueError as exc:
        raise ValidationError(f"Invalid {field} {value!r} (expected YYYY-MM-DD)") from exc


def _serialized(method):
    """Run a facade method while holding the system's connection lock."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper


class ScheduleSystem:
    """High level façade over walkers, walks and time-off requests."""

    def __init__(self, db_path: str = ":memory:") -> None:
        self.conn = get_connection(db_path)
        # Guards self.conn across request threads; methods nest, hence RLock
        self._lock = threading.RLock()
        initialize_database(self.conn)

    # ------------------------------------------------------------------
    # Walkers & dogs
    # ------------------------------------------------------------------
    @_serialized
    def create_walker(
        self,
        *,
        name: str,
        email: str,
        phone: str | None = None,
        bio: str | None = None,
    ) -> dict:
        if not name or not email:
            raise ValidationError("Walker name and email are required")
        try:
            cur = self.conn.execute(
                "INSERT INTO walkers(name, email, phone, bio) VALUES (?, ?, ?, ?)",
                (name, email.lower(), phone, bio),
            )
        except sqlite3.IntegrityError as exc:
            self.conn.rollback()
            raise ValidationError(f"A walker with email {email} already exists") from exc
        self.conn.commit()
        logger.info("Created walker %s (%s)", cur.lastrowid, name)
        return self.get_walker(cur.lastrowid)

    @_serialized
    def get_walker(self, walker_id: int) -> dict:
        row = self.conn.execute("SELECT * FROM walkers WHERE id = ?", (walker_id,)).fetchone()
        if not row:
            raise NotFoundError("Walker not found")
        return row

    @_serialized
    def list_walkers(self) -> list[dict]:
        """Return active walkers ordered by name."""

        return self.conn.execute(
            "SELECT * FROM walkers WHERE is_active = 1 ORDER BY name"
        ).fetchall()

    @_serialized
    def add_dog(
        self,
        *,
        name: str,
        owner_name: str | None = None,
        breed: str | None = None,
        size: str | None = None,
        special_needs: str | None = None,
    ) -> dict:
        if not name:
            raise ValidationError("Dog name is required")
        cur = self.conn.execute(
            """
            INSERT INTO dogs(name, owner_name, breed, size, special_needs)
            VALUES (?, ?, ?, ?, ?)
            """,
            (name, owner_name, breed, size, special_needs),
        )
        self.conn.commit()
        return self.get_dog(cur.lastrowid)

    @_serialized
    def get_dog(self, dog_id: int) -> dict:
        row = self.conn.execute("SELECT * FROM dogs WHERE id = ?", (dog_id,)).fetchone()
        if not row:
            raise NotFoundError("Dog not found")
        return row

    @_serialized
    def list_dogs(self) -> list[dict]:
        return self.conn.execute("SELECT * FROM dogs ORDER BY name").fetchall()

    # ------------------------------------------------------------------
    # Walks
    # ------------------------------------------------------------------
    @_serialized
    def schedule_walk(
        self,
        *,
        dog_id: int,
        walker_id: int,
        date: str,
        start_time: str,
        duration: int,
        time_slot: str | None = None,
        status: str = WalkStatus.SCHEDULED.value,
        notes: str | None = None,
    ) -> dict:
        self.get_dog(dog_id)
        self.get_walker(walker_id)
        walk_date = _validate_date(date)
        try:
            hour, minute = parse_time(start_time)
        except MalformedTimeError as exc:
            raise ValidationError(str(exc)) from exc
        if not isinstance(duration, int) or duration <= 0:
            raise ValidationError("Duration must be a positive number of minutes")
        if status not in {item.value for item in WalkStatus}:
            raise ValidationError(f"Unknown walk status {status!r}")
        start_time = f"{hour:02d}:{minute:02d}"
        time_slot = time_slot or time_slot_for(start_time)
        if time_slot not in ("AM", "PM"):
            raise ValidationError("Time slot must be AM or PM")

        cur = self.conn.execute(
            """
            INSERT INTO walks(dog_id, walker_id, date, start_time, time_slot, duration, status, notes)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (dog_id, walker_id, walk_date, start_time, time_slot, duration, status, notes),
        )
        self.conn.commit()
        logger.info("Scheduled walk %s for walker %s on %s", cur.lastrowid, walker_id, walk_date)
        return self.get_walk(cur.lastrowid)

    @_serialized
    def get_walk(self, walk_id: int) -> dict:
        row = self.conn.execute("SELECT * FROM walks WHERE id = ?", (walk_id,)).fetchone()
        if not row:
            raise NotFoundError("Walk not found")
        return row

    @_serialized
    def list_walks(
        self,
        *,
        walker_id: int | None = None,
        status: str | None = None,
    ) -> list[dict]:
        conditions: list[str] = []
        params: list[Any] = []
        if walker_id is not None:
            conditions.append("walker_id = ?")
            params.append(walker_id)
        if status:
            conditions.append("status = ?")
            params.append(status)
        where_clause = ""
        if conditions:
            where_clause = " WHERE " + " AND ".join(conditions)
        # Insertion order within a date is the order the calendar shows
        return self.conn.execute(
            "SELECT * FROM walks" + where_clause + " ORDER BY date, id",
            params,
        ).fetchall()

    @_serialized
    def update_walk_status(self, walk_id: int, status: str) -> dict:
        if status not in {item.value for item in WalkStatus}:
            raise ValidationError(f"Unknown walk status {status!r}")
        self.get_walk(walk_id)
        self.conn.execute(
            "UPDATE walks SET status = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            (status, walk_id),
        )
        self.conn.commit()
        return self.get_walk(walk_id)

    @_serialized
    def list_upcoming_walks(
        self,
        *,
        walker_id: int | None = None,
        today: dt.date | None = None,
        limit: int | None = None,
    ) -> list[dict]:
        return filter_upcoming_walks(
            self.list_walks(walker_id=walker_id),
            today or dt.date.today(),
            limit=limit,
        )

    @_serialized
    def list_past_walks(
        self,
        *,
        walker_id: int | None = None,
        today: dt.date | None = None,
        limit: int | None = None,
    ) -> list[dict]:
        return filter_past_walks(
            self.list_walks(walker_id=walker_id),
            today or dt.date.today(),
            limit=limit,
        )

    # ------------------------------------------------------------------
    # Holiday (time-off) requests
    # ------------------------------------------------------------------
    @_serialized
    def create_holiday_request(self, *, walker_id: int, date: str, reason: str) -> dict:
        if not walker_id or not date or not reason:
            raise ValidationError("Walker ID, date, and reason are required")
        self.get_walker(walker_id)
        request_date = _validate_date(date)
        try:
            cur = self.conn.execute(
                """
                INSERT INTO holiday_requests(walker_id, date, reason, status)
                VALUES (?, ?, ?, ?)
                """,
                (walker_id, request_date, reason, HolidayStatus.PENDING.value),
            )
        except sqlite3.IntegrityError as exc:
            self.conn.rollback()
            raise ValidationError(
                f"Walker {walker_id} already has a time off request for {request_date}"
            ) from exc
        self.conn.commit()
        logger.info("Walker %s requested time off on %s", walker_id, request_date)
        return self.get_holiday_request(cur.lastrowid)

    @_serialized
    def get_holiday_request(self, request_id: int) -> dict:
        row = self.conn.execute(
            "SELECT * FROM holiday_requests WHERE id = ?", (request_id,)
        ).fetchone()
        if not row:
            raise NotFoundError("Holiday request not found")
        return row

    @_serialized
    def list_holiday_requests(
        self,
        *,
        status: str | None = None,
        walker_id: int | None = None,
    ) -> list[dict]:
        conditions: list[str] = []
        params: list[Any] = []
        if status:
            conditions.append("status = ?")
            params.append(status)
        if walker_id is not None:
            conditions.append("walker_id = ?")
            params.append(walker_id)
        where_clause = ""
        if conditions:
            where_clause = " WHERE " + " AND ".join(conditions)
        return self.conn.execute(
            "SELECT * FROM holiday_requests"
            + where_clause
            + " ORDER BY date, updated_at DESC, id DESC",
            params,
        ).fetchall()

    @_serialized
    def count_pending_holiday_requests(self) -> int:
        row = self.conn.execute(
            "SELECT COUNT(*) AS count FROM holiday_requests WHERE status = ?",
            (HolidayStatus.PENDING.value,),
        ).fetchone()
        return row["count"]

    @_serialized
    def update_holiday_request(self, request_id: int, /, **changes: Any) -> dict:
        self.get_holiday_request(request_id)
        unknown = set(changes) - set(HOLIDAY_UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        if "date" in changes:
            if not changes["date"]:
                raise ValidationError("Date is required")
            changes["date"] = _validate_date(changes["date"])
        if "reason" in changes:
            reason = changes["reason"]
            if not isinstance(reason, str) or not reason.strip():
                raise ValidationError("Reason is required")
            changes["reason"] = reason.strip()
        if "status" in changes and changes["status"] not in {item.value for item in HolidayStatus}:
            raise ValidationError(f"Unknown holiday request status {changes['status']!r}")
        if not changes:
            return self.get_holiday_request(request_id)

        assignments = ", ".join(f"{field} = ?" for field in changes)
        try:
            self.conn.execute(
                f"UPDATE holiday_requests SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (*changes.values(), request_id),
            )
        except sqlite3.IntegrityError as exc:
            self.conn.rollback()
            if "UNIQUE" in str(exc):
                raise ValidationError(
                    "Walker already has a time off request for that date"
                ) from exc
            raise ValidationError(f"Could not update holiday request: {exc}") from exc
        self.conn.commit()
        return self.get_holiday_request(request_id)

    @_serialized
    def review_holiday_request(
        self,
        request_id: int,
        *,
        status: str,
        admin_notes: str | None = None,
    ) -> dict:
        """Approve or deny a pending request, recording the admin's notes."""

        if status not in (HolidayStatus.APPROVED.value, HolidayStatus.DENIED.value):
            raise ValidationError("Holiday requests can only be approved or denied")
        current = self.get_holiday_request(request_id)
        if current["status"] != HolidayStatus.PENDING.value:
            raise ValidationError(
                f"Holiday request {request_id} has already been {current['status']}"
            )
        request = self.update_holiday_request(request_id, status=status, admin_notes=admin_notes)
        logger.info("Holiday request %s %s", request_id, status)
        return request

    @_serialized
    def delete_holiday_request(self, request_id: int) -> None:
        self.get_holiday_request(request_id)
        self.conn.execute("DELETE FROM holiday_requests WHERE id = ?", (request_id,))
        self.conn.commit()

    # ------------------------------------------------------------------
    # Calendar
    # ------------------------------------------------------------------
    @_serialized
    def calendar_view(
        self,
        *,
        walker_id: int,
        reference_date: dt.date | str | None = None,
        view_mode: ViewMode | str = ViewMode.MONTH,
        today: dt.date | None = None,
    ) -> dict:
        self.get_walker(walker_id)
        today = today or dt.date.today()
        if reference_date is None:
            anchor = today
        elif isinstance(reference_date, dt.date):
            anchor = reference_date
        else:
            anchor = dt.date.fromisoformat(_validate_date(reference_date, "reference date"))
        try:
            cursor = CalendarCursor(anchor, ViewMode(view_mode))
        except ValueError as exc:
            raise ValidationError(f"Unknown calendar view {view_mode!r}") from exc

        walks = filter_upcoming_walks(self.list_walks(walker_id=walker_id), today)
        holiday_requests = self.list_holiday_requests(walker_id=walker_id)
        return build_calendar(cursor, walks, holiday_requests, today)

    @_serialized
    def close(self) -> None:
        self.conn.close()
