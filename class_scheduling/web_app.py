from __future__ import annotations

from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable

import holidays as pyholidays
from flask import Flask, jsonify, request

from .booking import Conflict, DayOfWeek, DuplicateLabel, InvalidFormat, InvalidRange, SlotInUse
from .normalization import parse_time
from .yaml_store import ClassScheduleRecord, ScheduleStorageError, ScheduleYamlRepository

DEFAULT_HOLIDAY_COUNTRY = "US"


def create_app(
    data_dir: str | Path = "data",
    now_provider: Callable[[], datetime] | None = None,
    holiday_country: str = DEFAULT_HOLIDAY_COUNTRY,
) -> Flask:
    app = Flask(__name__)
    repository = ScheduleYamlRepository(data_dir)
    clock: Callable[[], datetime] = now_provider or datetime.now
    holiday_cache: dict[int, Any] = {}

    def _holiday_name(target_date: date) -> str | None:
        year = target_date.year
        if year not in holiday_cache:
            holiday_cache[year] = pyholidays.country_holidays(holiday_country, years=[year])
        return holiday_cache[year].get(target_date)

    @app.after_request
    def add_cors_headers(response: Any) -> Any:
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type"
        return response

    @app.errorhandler(InvalidFormat)
    def handle_invalid_format(error: InvalidFormat) -> Any:
        return jsonify({"ok": False, "message": str(error), "field": error.field}), 400

    @app.errorhandler(InvalidRange)
    def handle_invalid_range(error: InvalidRange) -> Any:
        return jsonify({"ok": False, "message": str(error)}), 400

    @app.errorhandler(Conflict)
    def handle_conflict(error: Conflict) -> Any:
        payload: dict[str, Any] = {"ok": False, "message": str(error), "type": error.axis}
        if error.reservation is not None:
            payload["conflicting_class_id"] = error.reservation.owner_id
            payload["conflicting_class"] = error.reservation.display_owner
        return jsonify(payload), 409

    @app.errorhandler(DuplicateLabel)
    @app.errorhandler(SlotInUse)
    def handle_state_conflict(error: ValueError) -> Any:
        return jsonify({"ok": False, "message": str(error)}), 409

    @app.errorhandler(ValueError)
    def handle_value_error(error: ValueError) -> Any:
        return jsonify({"ok": False, "message": str(error)}), 400

    @app.errorhandler(ScheduleStorageError)
    def handle_storage_error(error: ScheduleStorageError) -> Any:
        return jsonify({"ok": False, "message": "Failed to save schedule data."}), 500

    @app.get("/api/admin/timeslots")
    def list_time_slots() -> Any:
        return jsonify([slot.to_dict() for slot in repository.get_time_slots()])

    @app.post("/api/admin/timeslots")
    def create_time_slot() -> Any:
        payload = request.get_json(silent=True) or {}
        start_time = str(payload.get("start_time", "")).strip()
        end_time = str(payload.get("end_time", "")).strip()
        if not start_time or not end_time:
            return jsonify({"ok": False, "message": "Start time and end time are required"}), 400

        created = repository.add_time_slot(start_time, end_time, label=payload.get("label"), now=clock())
        return jsonify(created.to_dict()), 201

    @app.delete("/api/admin/timeslots")
    def delete_time_slot() -> Any:
        slot_id = str(request.args.get("id", "")).strip()
        if not slot_id:
            return jsonify({"ok": False, "message": "Time slot ID is required for deletion"}), 400
        try:
            deleted = repository.delete_time_slot(slot_id, now=clock())
        except KeyError:
            return jsonify({"ok": False, "message": "Time slot not found"}), 404
        return jsonify({"ok": True, "time_slot": deleted.to_dict()})

    @app.get("/api/admin/rooms")
    def list_rooms() -> Any:
        return jsonify([room.to_dict() for room in repository.get_rooms()])

    @app.post("/api/admin/rooms")
    def create_room() -> Any:
        payload = request.get_json(silent=True) or {}
        name = str(payload.get("name", "")).strip()
        if not name:
            return jsonify({"ok": False, "message": "Room name is required"}), 400

        try:
            capacity = int(payload["capacity"]) if payload.get("capacity") is not None else None
        except (TypeError, ValueError):
            return jsonify({"ok": False, "message": "capacity must be a number"}), 400

        created = repository.add_room(
            name,
            capacity=capacity,
            building=payload.get("building"),
            floor=payload.get("floor"),
            now=clock(),
        )
        return jsonify(created.to_dict()), 201

    @app.get("/api/admin/classes/<class_id>/schedules")
    def list_class_schedules(class_id: str) -> Any:
        records = sorted(repository.get_class_schedules(class_id), key=_schedule_sort_key)
        return jsonify([record.to_dict() for record in records])

    @app.post("/api/admin/classes/<class_id>/schedules")
    def create_class_schedule(class_id: str) -> Any:
        payload = request.get_json(silent=True) or {}
        if not payload.get("day"):
            return jsonify({"ok": False, "message": "Day is required"}), 400

        created = repository.add_class_schedule(
            class_id,
            str(payload["day"]),
            class_name=payload.get("class_name"),
            start_time=payload.get("start_time"),
            end_time=payload.get("end_time"),
            time_slot_id=payload.get("time_slot_id"),
            room_id=payload.get("room_id"),
            teacher_id=payload.get("teacher_id"),
            now=clock(),
        )
        return jsonify(created.to_dict()), 201

    @app.put("/api/admin/classes/<class_id>/schedules/<schedule_id>")
    def update_class_schedule(class_id: str, schedule_id: str) -> Any:
        existing = repository.get_class_schedule(schedule_id)
        if existing is None or existing.class_id != class_id:
            return jsonify({"ok": False, "message": "Schedule not found"}), 404

        payload = request.get_json(silent=True) or {}
        updated = repository.update_class_schedule(
            schedule_id,
            day=payload.get("day"),
            start_time=payload.get("start_time"),
            end_time=payload.get("end_time"),
            time_slot_id=payload.get("time_slot_id"),
            room_id=payload.get("room_id"),
            teacher_id=payload.get("teacher_id"),
            now=clock(),
        )
        return jsonify(updated.to_dict())

    @app.delete("/api/admin/classes/<class_id>/schedules/<schedule_id>")
    def delete_class_schedule(class_id: str, schedule_id: str) -> Any:
        existing = repository.get_class_schedule(schedule_id)
        if existing is None or existing.class_id != class_id:
            return jsonify({"ok": False, "message": "Schedule not found"}), 404

        deleted = repository.delete_class_schedule(schedule_id, now=clock())
        return jsonify({"ok": True, "schedule": deleted.to_dict()})

    @app.post("/api/admin/schedule/conflicts")
    def check_schedule_conflicts() -> Any:
        payload = request.get_json(silent=True) or {}
        schedules = payload.get("schedules")
        if not schedules or not isinstance(schedules, list):
            return jsonify({"ok": False, "message": "Valid schedules are required"}), 400
        if not all(isinstance(entry, dict) and entry.get("day") for entry in schedules):
            return jsonify({"ok": False, "message": "Each schedule must have a day and a time"}), 400

        reports = repository.check_conflicts(
            schedules,
            class_id=payload.get("class_id"),
            teacher_id=payload.get("teacher_id"),
        )
        return jsonify({"hasConflicts": bool(reports), "conflicts": [report.to_dict() for report in reports]})

    @app.get("/api/admin/timetable")
    def get_timetable() -> Any:
        grouped: dict[str, list[dict[str, Any]]] = {day.value: [] for day in DayOfWeek}
        for record in sorted(repository.get_class_schedules(), key=_schedule_sort_key):
            grouped[record.day].append(record.to_dict())
        return jsonify({"days": grouped})

    @app.get("/api/teacher/<teacher_id>/classes/today")
    def get_teacher_classes_today(teacher_id: str) -> Any:
        date_text = request.args.get("date")
        if date_text:
            try:
                target_date = date.fromisoformat(date_text)
            except ValueError:
                return jsonify({"ok": False, "message": "date must be formatted as YYYY-MM-DD"}), 400
        else:
            target_date = clock().date()

        day = DayOfWeek.from_weekday(target_date.weekday())
        holiday = _holiday_name(target_date)
        classes: list[ClassScheduleRecord] = []
        if holiday is None:
            classes = [record for record in repository.get_schedules_for_teacher(teacher_id) if record.day == day.value]
            classes.sort(key=_schedule_sort_key)

        return jsonify(
            {
                "ok": True,
                "date": target_date.isoformat(),
                "day": day.value,
                "holiday": holiday,
                "classes": [record.to_dict() for record in classes],
            }
        )

    return app


def _schedule_sort_key(record: ClassScheduleRecord) -> tuple[int, int]:
    day_order = [day.value for day in DayOfWeek]
    return day_order.index(record.day), parse_time(record.start_time)


if __name__ == "__main__":
    app = create_app()
    app.run(host="127.0.0.1", port=5000, debug=False)
