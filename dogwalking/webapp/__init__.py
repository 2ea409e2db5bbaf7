"""Flask application exposing the walker schedule as JSON."""

from __future__ import annotations

import datetime as dt
import os
from typing import Any

from flask import Flask, jsonify, redirect, request, url_for
from flask.json.provider import DefaultJSONProvider

from dogwalking.schedule.navigation import go_to_next, go_to_prev, go_to_today
from dogwalking.schedule.records import CalendarCursor, ViewMode
from dogwalking.schedule.system import NotFoundError, ScheduleSystem, ValidationError


class ScheduleJSONProvider(DefaultJSONProvider):
    """Serialise dates as ISO strings instead of HTTP dates."""

    @staticmethod
    def default(o: Any) -> Any:
        if isinstance(o, (dt.date, dt.datetime)):
            return o.isoformat()
        return DefaultJSONProvider.default(o)


def _payload() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def create_app(database_path: str | None = None) -> Flask:
    """Create and configure the Flask application."""

    app = Flask(__name__)
    app.json = ScheduleJSONProvider(app)
    app.config["SECRET_KEY"] = os.environ.get("DOGWALKING_SECRET_KEY", "dogwalking-secret")
    app.config["DATABASE_PATH"] = database_path or os.environ.get(
        "DOGWALKING_DATABASE", "dogwalking.db"
    )

    system = ScheduleSystem(app.config["DATABASE_PATH"])
    app.extensions["schedule_system"] = system

    @app.errorhandler(NotFoundError)
    def handle_not_found(exc: NotFoundError) -> Any:
        return jsonify({"error": str(exc)}), 404

    @app.errorhandler(ValidationError)
    def handle_validation_error(exc: ValidationError) -> Any:
        app.logger.info("Rejected %s %s: %s", request.method, request.path, exc)
        return jsonify({"error": str(exc)}), 400

    def today() -> dt.date:
        return dt.date.today()

    @app.get("/")
    def index() -> Any:
        return redirect(url_for("walkers"))

    # ------------------------------------------------------------------
    # Walkers & dogs
    # ------------------------------------------------------------------
    @app.route("/walkers", methods=["GET", "POST"])
    def walkers() -> Any:
        if request.method == "POST":
            data = _payload()
            walker = system.create_walker(
                name=(data.get("name") or "").strip(),
                email=(data.get("email") or "").strip(),
                phone=data.get("phone") or None,
                bio=data.get("bio") or None,
            )
            return jsonify({"walker": walker}), 201
        return jsonify({"walkers": system.list_walkers()})

    @app.get("/walkers/<int:walker_id>")
    def walker_detail(walker_id: int) -> Any:
        walker = system.get_walker(walker_id)
        return jsonify(
            {
                "walker": walker,
                "upcoming_walks": system.list_upcoming_walks(
                    walker_id=walker_id, today=today(), limit=5
                ),
                "holiday_requests": system.list_holiday_requests(walker_id=walker_id),
            }
        )

    @app.get("/walkers/<int:walker_id>/schedule")
    def walker_schedule(walker_id: int) -> Any:
        current = today()
        view = request.args.get("view", ViewMode.MONTH.value)
        reference = request.args.get("date") or current.isoformat()
        calendar = system.calendar_view(
            walker_id=walker_id,
            reference_date=reference,
            view_mode=view,
            today=current,
        )
        cursor = CalendarCursor(calendar["reference_date"], ViewMode(calendar["view"]))
        calendar["navigation"] = {
            "prev": go_to_prev(cursor).reference_date,
            "next": go_to_next(cursor).reference_date,
            "today": go_to_today(cursor, current).reference_date,
        }
        return jsonify(calendar)

    @app.get("/walkers/<int:walker_id>/walks/upcoming")
    def walker_upcoming_walks(walker_id: int) -> Any:
        system.get_walker(walker_id)
        walks = system.list_upcoming_walks(
            walker_id=walker_id,
            today=today(),
            limit=request.args.get("limit", type=int),
        )
        return jsonify({"walks": walks})

    @app.route("/dogs", methods=["GET", "POST"])
    def dogs() -> Any:
        if request.method == "POST":
            data = _payload()
            dog = system.add_dog(
                name=(data.get("name") or "").strip(),
                owner_name=data.get("owner_name") or None,
                breed=data.get("breed") or None,
                size=data.get("size") or None,
                special_needs=data.get("special_needs") or None,
            )
            return jsonify({"dog": dog}), 201
        return jsonify({"dogs": system.list_dogs()})

    # ------------------------------------------------------------------
    # Walks
    # ------------------------------------------------------------------
    @app.route("/walks", methods=["GET", "POST"])
    def walks() -> Any:
        if request.method == "POST":
            data = _payload()
            try:
                duration = int(data.get("duration") or 0)
            except (TypeError, ValueError):
                raise ValidationError("Duration must be a positive number of minutes")
            walk = system.schedule_walk(
                dog_id=data.get("dog_id"),
                walker_id=data.get("walker_id"),
                date=data.get("date") or "",
                start_time=data.get("start_time") or "",
                duration=duration,
                time_slot=data.get("time_slot") or None,
                notes=data.get("notes") or None,
            )
            return jsonify({"walk": walk}), 201
        return jsonify(
            {
                "walks": system.list_walks(
                    walker_id=request.args.get("walker_id", type=int),
                    status=request.args.get("status") or None,
                )
            }
        )

    @app.post("/walks/<int:walk_id>/status")
    def update_walk_status(walk_id: int) -> Any:
        walk = system.update_walk_status(walk_id, _payload().get("status") or "")
        return jsonify({"walk": walk})

    # ------------------------------------------------------------------
    # Holiday requests
    # ------------------------------------------------------------------
    @app.route("/holiday-requests", methods=["GET", "POST"])
    def holiday_requests() -> Any:
        if request.method == "POST":
            data = _payload()
            holiday = system.create_holiday_request(
                walker_id=data.get("walker_id"),
                date=data.get("date") or "",
                reason=(data.get("reason") or "").strip(),
            )
            return jsonify({"request": holiday}), 201
        requests = system.list_holiday_requests(
            status=request.args.get("status") or None,
            walker_id=request.args.get("walker_id", type=int),
        )
        return jsonify({"requests": requests})

    @app.route("/holiday-requests/<int:request_id>", methods=["GET", "PUT", "DELETE"])
    def holiday_request_detail(request_id: int) -> Any:
        if request.method == "PUT":
            holiday = system.update_holiday_request(request_id, **_payload())
            return jsonify({"request": holiday})
        if request.method == "DELETE":
            system.delete_holiday_request(request_id)
            return jsonify({"success": True})
        return jsonify({"request": system.get_holiday_request(request_id)})

    @app.post("/holiday-requests/<int:request_id>/review")
    def review_holiday_request(request_id: int) -> Any:
        data = _payload()
        holiday = system.review_holiday_request(
            request_id,
            status=data.get("status") or "",
            admin_notes=data.get("admin_notes") or None,
        )
        return jsonify({"request": holiday})

    @app.get("/holiday-requests/pending/count")
    def pending_holiday_count() -> Any:
        return jsonify({"count": system.count_pending_holiday_requests()})

    return app


__all__ = ["create_app"]
