from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable
import shutil
import threading
from uuid import uuid4

import yaml

from .booking import (
    Conflict,
    ConflictReport,
    DuplicateLabel,
    Reservation,
    SlotInUse,
    TimeInterval,
    has_time_overlap,
)
from .normalization import (
    find_closest_name,
    find_closest_time_slot,
    format_minutes,
    format_time_for_display,
    normalize_day,
    parse_interval,
    parse_legacy_schedule,
    parse_time,
)
from .validation import check_booking, collect_conflicts


@dataclass(frozen=True)
class RoomRecord:
    room_id: str
    name: str
    capacity: int | None = None
    building: str | None = None
    floor: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "room_id": self.room_id,
            "name": self.name,
            "capacity": self.capacity,
            "building": self.building,
            "floor": self.floor,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "RoomRecord":
        capacity = data.get("capacity")
        return RoomRecord(
            room_id=str(data["room_id"]),
            name=str(data["name"]),
            capacity=int(capacity) if capacity is not None else None,
            building=(str(data["building"]) if data.get("building") is not None else None),
            floor=(str(data["floor"]) if data.get("floor") is not None else None),
        )


@dataclass(frozen=True)
class TimeSlotRecord:
    slot_id: str
    label: str
    start_time: str
    end_time: str

    @property
    def interval(self) -> TimeInterval:
        return parse_interval(self.start_time, self.end_time)

    def to_dict(self) -> dict[str, str]:
        return {
            "slot_id": self.slot_id,
            "label": self.label,
            "start_time": self.start_time,
            "end_time": self.end_time,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "TimeSlotRecord":
        return TimeSlotRecord(
            slot_id=str(data["slot_id"]),
            label=str(data["label"]),
            start_time=str(data["start_time"]),
            end_time=str(data["end_time"]),
        )


@dataclass(frozen=True)
class ClassScheduleRecord:
    schedule_id: str
    class_id: str
    class_name: str
    day: str
    start_time: str
    end_time: str
    created_at: datetime
    updated_at: datetime
    teacher_id: str | None = None
    room_id: str | None = None
    time_slot_id: str | None = None

    @property
    def interval(self) -> TimeInterval:
        return parse_interval(self.start_time, self.end_time)

    def room_reservation(self) -> Reservation | None:
        if not self.room_id:
            return None
        return Reservation(self.room_id, normalize_day(self.day), self.interval, self.class_id, self.class_name)

    def teacher_reservation(self) -> Reservation | None:
        if not self.teacher_id:
            return None
        return Reservation(self.teacher_id, normalize_day(self.day), self.interval, self.class_id, self.class_name)

    def to_dict(self) -> dict[str, Any]:
        return {
            "schedule_id": self.schedule_id,
            "class_id": self.class_id,
            "class_name": self.class_name,
            "teacher_id": self.teacher_id,
            "room_id": self.room_id,
            "time_slot_id": self.time_slot_id,
            "day": self.day,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "created_at": self.created_at.isoformat(timespec="seconds"),
            "updated_at": self.updated_at.isoformat(timespec="seconds"),
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "ClassScheduleRecord":
        def optional(key: str) -> str | None:
            return str(data[key]) if data.get(key) is not None else None

        return ClassScheduleRecord(
            schedule_id=str(data["schedule_id"]),
            class_id=str(data["class_id"]),
            class_name=str(data.get("class_name") or data["class_id"]),
            day=str(data["day"]),
            start_time=str(data["start_time"]),
            end_time=str(data["end_time"]),
            created_at=datetime.fromisoformat(str(data["created_at"])),
            updated_at=datetime.fromisoformat(str(data["updated_at"])),
            teacher_id=optional("teacher_id"),
            room_id=optional("room_id"),
            time_slot_id=optional("time_slot_id"),
        )


@dataclass
class MigrationReport:
    created: list[ClassScheduleRecord] = field(default_factory=list)
    skipped: list[dict[str, str]] = field(default_factory=list)


class ScheduleStorageError(RuntimeError):
    pass


DEFAULT_TIME_SLOTS = [
    ("08:00", "09:30"),
    ("09:30", "11:00"),
    ("11:00", "12:30"),
    ("12:30", "14:00"),
    ("14:00", "15:30"),
    ("15:30", "17:00"),
    ("17:00", "18:30"),
]

DEFAULT_ROOMS = [
    {"name": "Room 101", "capacity": 30, "building": "Main Building", "floor": "1"},
    {"name": "Room 102", "capacity": 25, "building": "Main Building", "floor": "1"},
    {"name": "Room 103", "capacity": 35, "building": "Main Building", "floor": "1"},
    {"name": "Room 201", "capacity": 30, "building": "Main Building", "floor": "2"},
    {"name": "Room 202", "capacity": 25, "building": "Main Building", "floor": "2"},
    {"name": "Lab 1", "capacity": 20, "building": "Science Wing", "floor": "1"},
    {"name": "Computer Lab", "capacity": 30, "building": "Technology Wing", "floor": "1"},
    {"name": "Library", "capacity": 50, "building": "Main Building", "floor": "1"},
]


class ScheduleYamlRepository:
    def __init__(self, base_dir: str | Path = "data") -> None:
        self.base_dir = Path(base_dir)
        self.rooms_file = self.base_dir / "rooms.yaml"
        self.time_slots_file = self.base_dir / "time_slots.yaml"
        self.schedules_file = self.base_dir / "class_schedules.yaml"
        self.log_file = self.base_dir / "schedule_events.yaml"
        # Every check-then-write sequence holds this lock.
        self._write_lock = threading.RLock()
        self._ensure_files()

    def _ensure_files(self) -> None:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        for path in (self.rooms_file, self.time_slots_file, self.schedules_file, self.log_file):
            if not path.exists():
                path.write_text("[]\n", encoding="utf-8")

    def _read_yaml_list(self, path: Path) -> list[dict[str, Any]]:
        try:
            payload = yaml.safe_load(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            path.write_text("[]\n", encoding="utf-8")
            return []
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as error:
            self._recover_corrupted_yaml(path, error)
            return []

        if payload is None:
            return []
        if not isinstance(payload, list):
            self._recover_corrupted_yaml(path, ValueError("top-level YAML is not a list"))
            return []

        sanitized: list[dict[str, Any]] = []
        for index, row in enumerate(payload):
            if isinstance(row, dict):
                sanitized.append(row)
            elif path != self.log_file:
                self._log_event(
                    "YAML_ROW_SKIPPED",
                    {
                        "file": str(path.name),
                        "index": index,
                        "reason": "row is not a mapping",
                    },
                )
        return sanitized

    def _write_yaml_list(self, path: Path, rows: list[dict[str, Any]]) -> None:
        temp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            temp_path.write_text(yaml.safe_dump(rows, allow_unicode=True, sort_keys=False), encoding="utf-8")
            temp_path.replace(path)
        except OSError as error:
            raise ScheduleStorageError(f"Failed to write YAML file: {path}") from error
        finally:
            if temp_path.exists():
                temp_path.unlink(missing_ok=True)

    def _recover_corrupted_yaml(self, path: Path, error: Exception) -> None:
        timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
        backup_path = path.with_name(f"{path.stem}.corrupt.{timestamp}{path.suffix}")
        try:
            if path.exists():
                shutil.copy2(path, backup_path)
        except OSError:
            backup_path = None

        path.write_text("[]\n", encoding="utf-8")
        if path != self.log_file:
            self._log_event(
                "YAML_RECOVERED",
                {
                    "file": str(path.name),
                    "backup": str(backup_path.name) if backup_path else None,
                    "reason": str(error),
                },
            )

    def _log_event(self, event_type: str, payload: dict[str, Any], event_time: datetime | None = None) -> None:
        timestamp = (event_time or datetime.now()).isoformat(timespec="seconds")
        events = self._read_yaml_list(self.log_file)
        events.append({"event_time": timestamp, "event_type": event_type, "payload": payload})
        self._write_yaml_list(self.log_file, events)

    def get_events(self) -> list[dict[str, Any]]:
        return self._read_yaml_list(self.log_file)

    # Rooms

    def get_rooms(self) -> list[RoomRecord]:
        rows = self._read_yaml_list(self.rooms_file)
        return sorted((RoomRecord.from_dict(row) for row in rows), key=lambda room: room.name.lower())

    def get_room(self, room_id: str) -> RoomRecord | None:
        for room in self.get_rooms():
            if room.room_id == room_id:
                return room
        return None

    def find_room_by_name(self, name: str | None) -> RoomRecord | None:
        rooms = self.get_rooms()
        room_id = find_closest_name(name, [(room.room_id, room.name) for room in rooms])
        return next((room for room in rooms if room.room_id == room_id), None)

    def add_room(
        self,
        name: str,
        capacity: int | None = None,
        building: str | None = None,
        floor: str | None = None,
        now: datetime | None = None,
    ) -> RoomRecord:
        name = _normalize_name(name, "room name")
        if capacity is not None and int(capacity) <= 0:
            raise ValueError("capacity must be greater than zero")

        with self._write_lock:
            rows = self._read_yaml_list(self.rooms_file)
            if any(str(row.get("name", "")).lower() == name.lower() for row in rows):
                raise DuplicateLabel(f"A room named '{name}' already exists.")

            record = RoomRecord(
                room_id=str(uuid4()),
                name=name,
                capacity=int(capacity) if capacity is not None else None,
                building=building,
                floor=floor,
            )
            rows.append(record.to_dict())
            self._write_yaml_list(self.rooms_file, rows)
            self._log_event("ROOM_CREATED", record.to_dict(), now)
        return record

    # Time slots

    def get_time_slots(self) -> list[TimeSlotRecord]:
        rows = self._read_yaml_list(self.time_slots_file)
        slots = [TimeSlotRecord.from_dict(row) for row in rows]
        return sorted(slots, key=lambda slot: parse_time(slot.start_time))

    def get_time_slot(self, slot_id: str) -> TimeSlotRecord | None:
        for slot in self.get_time_slots():
            if slot.slot_id == slot_id:
                return slot
        return None

    def add_time_slot(
        self,
        start_time: str,
        end_time: str,
        label: str | None = None,
        now: datetime | None = None,
    ) -> TimeSlotRecord:
        interval = parse_interval(start_time, end_time)
        start_text = format_minutes(interval.start_minutes)
        end_text = format_minutes(interval.end_minutes)
        slot_label = _optional_text(label) or f"{start_text} - {end_text}"

        with self._write_lock:
            existing = self.get_time_slots()
            if any(slot.label.lower() == slot_label.lower() for slot in existing):
                raise DuplicateLabel("A time slot with this label already exists. Time slot labels must be unique.")

            for slot in existing:
                if has_time_overlap(interval, slot.interval):
                    raise Conflict(
                        "Time slot overlaps with an existing one "
                        f"({format_time_for_display(slot.start_time)} - {format_time_for_display(slot.end_time)}).",
                        axis="time_slot",
                    )

            record = TimeSlotRecord(slot_id=str(uuid4()), label=slot_label, start_time=start_text, end_time=end_text)
            rows = self._read_yaml_list(self.time_slots_file)
            rows.append(record.to_dict())
            self._write_yaml_list(self.time_slots_file, rows)
            self._log_event("TIME_SLOT_CREATED", record.to_dict(), now)
        return record

    def delete_time_slot(self, slot_id: str, now: datetime | None = None) -> TimeSlotRecord:
        with self._write_lock:
            rows = self._read_yaml_list(self.time_slots_file)
            found_index = _find_row_index(rows, "slot_id", slot_id)
            if found_index < 0:
                raise KeyError(slot_id)

            in_use = [record for record in self.get_class_schedules() if record.time_slot_id == slot_id]
            if in_use:
                raise SlotInUse(f"Time slot is used by {len(in_use)} class schedule(s) and cannot be deleted.")

            deleted = TimeSlotRecord.from_dict(rows.pop(found_index))
            self._write_yaml_list(self.time_slots_file, rows)
            self._log_event("TIME_SLOT_DELETED", deleted.to_dict(), now)
        return deleted

    # Class schedules

    def get_class_schedules(self, class_id: str | None = None) -> list[ClassScheduleRecord]:
        rows = self._read_yaml_list(self.schedules_file)
        records = [ClassScheduleRecord.from_dict(row) for row in rows]
        if class_id is not None:
            records = [record for record in records if record.class_id == class_id]
        return records

    def get_class_schedule(self, schedule_id: str) -> ClassScheduleRecord | None:
        for record in self.get_class_schedules():
            if record.schedule_id == schedule_id:
                return record
        return None

    def get_schedules_for_teacher(self, teacher_id: str) -> list[ClassScheduleRecord]:
        return [record for record in self.get_class_schedules() if record.teacher_id == teacher_id]

    def _reservations(
        self,
        exclude_schedule_id: str | None = None,
    ) -> tuple[list[Reservation], list[Reservation]]:
        room_reservations: list[Reservation] = []
        teacher_reservations: list[Reservation] = []
        for record in self.get_class_schedules():
            if record.schedule_id == exclude_schedule_id:
                continue
            room = record.room_reservation()
            if room is not None:
                room_reservations.append(room)
            teacher = record.teacher_reservation()
            if teacher is not None:
                teacher_reservations.append(teacher)
        return room_reservations, teacher_reservations

    def _resolve_times(
        self,
        start_time: str | None,
        end_time: str | None,
        time_slot_id: str | None,
    ) -> tuple[str, str]:
        if time_slot_id:
            slot = self.get_time_slot(time_slot_id)
            if slot is None:
                raise ValueError("Invalid time slot ID")
            return slot.start_time, slot.end_time
        if not start_time or not end_time:
            raise ValueError("Either time_slot_id or both start_time and end_time are required")
        return start_time, end_time

    def _check_room_exists(self, room_id: str | None) -> None:
        if room_id and self.get_room(room_id) is None:
            raise ValueError("Invalid room ID")

    def add_class_schedule(
        self,
        class_id: str,
        day: str,
        *,
        class_name: str | None = None,
        start_time: str | None = None,
        end_time: str | None = None,
        time_slot_id: str | None = None,
        room_id: str | None = None,
        teacher_id: str | None = None,
        now: datetime | None = None,
    ) -> ClassScheduleRecord:
        class_id = _normalize_name(class_id, "class_id")
        class_name = _optional_text(class_name)
        effective_now = now or datetime.now()

        with self._write_lock:
            start_text, end_text = self._resolve_times(start_time, end_time, time_slot_id)
            self._check_room_exists(room_id)
            room_reservations, teacher_reservations = self._reservations()
            booking = check_booking(
                day,
                start_text,
                end_text,
                owner_id=class_id,
                owner_name=class_name,
                room_id=room_id,
                teacher_id=teacher_id,
                room_reservations=room_reservations,
                teacher_reservations=teacher_reservations,
            )

            record = ClassScheduleRecord(
                schedule_id=str(uuid4()),
                class_id=class_id,
                class_name=class_name or class_id,
                day=booking.day.value,
                start_time=format_minutes(booking.interval.start_minutes),
                end_time=format_minutes(booking.interval.end_minutes),
                created_at=effective_now,
                updated_at=effective_now,
                teacher_id=teacher_id or None,
                room_id=room_id or None,
                time_slot_id=time_slot_id or None,
            )
            rows = self._read_yaml_list(self.schedules_file)
            rows.append(record.to_dict())
            self._write_yaml_list(self.schedules_file, rows)
            self._log_event("SCHEDULE_CREATED", record.to_dict(), effective_now)
        return record

    def update_class_schedule(
        self,
        schedule_id: str,
        *,
        day: str | None = None,
        start_time: str | None = None,
        end_time: str | None = None,
        time_slot_id: str | None = None,
        room_id: str | None = None,
        teacher_id: str | None = None,
        now: datetime | None = None,
    ) -> ClassScheduleRecord:
        effective_now = now or datetime.now()

        with self._write_lock:
            rows = self._read_yaml_list(self.schedules_file)
            found_index = _find_row_index(rows, "schedule_id", schedule_id)
            if found_index < 0:
                raise KeyError(schedule_id)

            current = ClassScheduleRecord.from_dict(rows[found_index])
            new_slot_id = time_slot_id if time_slot_id is not None else current.time_slot_id
            if time_slot_id is None and (start_time or end_time):
                new_slot_id = None
            if new_slot_id:
                new_start, new_end = self._resolve_times(None, None, new_slot_id)
            else:
                new_start = start_time or current.start_time
                new_end = end_time or current.end_time
            new_room = room_id if room_id is not None else current.room_id
            new_teacher = teacher_id if teacher_id is not None else current.teacher_id
            self._check_room_exists(new_room)

            room_reservations, teacher_reservations = self._reservations(exclude_schedule_id=schedule_id)
            booking = check_booking(
                day or current.day,
                new_start,
                new_end,
                owner_id=current.class_id,
                owner_name=current.class_name,
                room_id=new_room,
                teacher_id=new_teacher,
                room_reservations=room_reservations,
                teacher_reservations=teacher_reservations,
            )

            updated = ClassScheduleRecord(
                schedule_id=current.schedule_id,
                class_id=current.class_id,
                class_name=current.class_name,
                day=booking.day.value,
                start_time=format_minutes(booking.interval.start_minutes),
                end_time=format_minutes(booking.interval.end_minutes),
                created_at=current.created_at,
                updated_at=effective_now,
                teacher_id=new_teacher or None,
                room_id=new_room or None,
                time_slot_id=new_slot_id or None,
            )
            rows[found_index] = updated.to_dict()
            self._write_yaml_list(self.schedules_file, rows)
            self._log_event("SCHEDULE_UPDATED", updated.to_dict(), effective_now)
        return updated

    def delete_class_schedule(self, schedule_id: str, now: datetime | None = None) -> ClassScheduleRecord:
        with self._write_lock:
            rows = self._read_yaml_list(self.schedules_file)
            found_index = _find_row_index(rows, "schedule_id", schedule_id)
            if found_index < 0:
                raise KeyError(schedule_id)

            deleted = ClassScheduleRecord.from_dict(rows.pop(found_index))
            self._write_yaml_list(self.schedules_file, rows)
            self._log_event(
                "SCHEDULE_DELETED",
                {"schedule_id": deleted.schedule_id, "class_id": deleted.class_id, "day": deleted.day},
                now,
            )
        return deleted

    def delete_class_schedules_for_class(self, class_id: str, now: datetime | None = None) -> list[ClassScheduleRecord]:
        with self._write_lock:
            rows = self._read_yaml_list(self.schedules_file)
            kept = [row for row in rows if str(row.get("class_id")) != class_id]
            deleted = [ClassScheduleRecord.from_dict(row) for row in rows if str(row.get("class_id")) == class_id]
            if not deleted:
                return []

            self._write_yaml_list(self.schedules_file, kept)
            for record in deleted:
                self._log_event(
                    "SCHEDULE_DELETED",
                    {"schedule_id": record.schedule_id, "class_id": record.class_id, "day": record.day},
                    now,
                )
        return deleted

    def check_conflicts(
        self,
        entries: Iterable[dict[str, Any]],
        class_id: str | None = None,
        teacher_id: str | None = None,
    ) -> list[ConflictReport]:
        """Report room and teacher conflicts for proposed entries without writing anything.

        Each entry carries ``day``, ``start_time``/``end_time`` (or ``time_slot_id``)
        and an optional ``room_id``.
        """
        room_reservations, teacher_reservations = self._reservations()
        reports: list[ConflictReport] = []
        for entry in entries:
            start_text, end_text = self._resolve_times(
                entry.get("start_time"),
                entry.get("end_time"),
                entry.get("time_slot_id"),
            )
            _, found = collect_conflicts(
                str(entry.get("day", "")),
                start_text,
                end_text,
                owner_id=class_id or "",
                room_id=entry.get("room_id"),
                teacher_id=teacher_id,
                room_reservations=room_reservations,
                teacher_reservations=teacher_reservations,
            )
            reports.extend(found)
        return reports

    def seed_defaults(self, now: datetime | None = None) -> tuple[list[TimeSlotRecord], list[RoomRecord]]:
        effective_now = now or datetime.now()
        created_slots: list[TimeSlotRecord] = []
        created_rooms: list[RoomRecord] = []

        with self._write_lock:
            if not self.get_time_slots():
                for start, end in DEFAULT_TIME_SLOTS:
                    label = f"{format_time_for_display(start)} - {format_time_for_display(end)}"
                    created_slots.append(self.add_time_slot(start, end, label=label, now=effective_now))
            if not self.get_rooms():
                for room in DEFAULT_ROOMS:
                    created_rooms.append(self.add_room(now=effective_now, **room))

            self._log_event(
                "DEFAULTS_SEEDED",
                {"time_slots": len(created_slots), "rooms": len(created_rooms)},
                effective_now,
            )
        return created_slots, created_rooms

    def migrate_legacy_classes(
        self,
        legacy_classes: Iterable[dict[str, Any]],
        now: datetime | None = None,
    ) -> MigrationReport:
        """Convert free-text class schedules into structured schedule entries.

        Each legacy class is a mapping with ``class_id``, ``name``, ``schedule``
        and optional ``teacher_id`` / ``room``. A class's existing schedules are
        removed before its entries are recreated, so the migration can be rerun.
        Entries that fail to parse, match no time slot, or conflict with an
        existing booking are skipped.
        """
        effective_now = now or datetime.now()
        report = MigrationReport()

        with self._write_lock:
            slots = self.get_time_slots()
            slot_pairs = [(slot.slot_id, slot.start_time) for slot in slots]

            for legacy in legacy_classes:
                class_id = str(legacy.get("class_id", "")).strip()
                schedule_text = legacy.get("schedule")
                if not class_id:
                    report.skipped.append({"class_id": "", "schedule": str(schedule_text), "reason": "missing class_id"})
                    continue

                self.delete_class_schedules_for_class(class_id, now=effective_now)
                entries = parse_legacy_schedule(schedule_text)
                if not entries:
                    report.skipped.append({"class_id": class_id, "schedule": str(schedule_text), "reason": "unparseable schedule"})
                    continue

                room = self.find_room_by_name(legacy.get("room"))
                for entry in entries:
                    slot_id = find_closest_time_slot(entry.time, slot_pairs)
                    if slot_id is None:
                        report.skipped.append(
                            {"class_id": class_id, "schedule": f"{entry.day.value} {entry.time}", "reason": "no matching time slot"}
                        )
                        continue
                    try:
                        created = self.add_class_schedule(
                            class_id,
                            entry.day.value,
                            class_name=legacy.get("name"),
                            time_slot_id=slot_id,
                            room_id=room.room_id if room else None,
                            teacher_id=legacy.get("teacher_id"),
                            now=effective_now,
                        )
                    except Conflict as error:
                        report.skipped.append(
                            {"class_id": class_id, "schedule": f"{entry.day.value} {entry.time}", "reason": str(error)}
                        )
                        continue
                    report.created.append(created)

            self._log_event(
                "LEGACY_SCHEDULE_MIGRATED",
                {"created": len(report.created), "skipped": len(report.skipped)},
                effective_now,
            )
        return report


def _find_row_index(rows: list[dict[str, Any]], key: str, value: str) -> int:
    for index, row in enumerate(rows):
        if str(row.get(key)) == value:
            return index
    return -1


def _normalize_name(value: str | None, label: str) -> str:
    if value is None:
        raise ValueError(f"{label} must not be None")

    normalized = str(value).strip()
    if not normalized:
        raise ValueError(f"{label} must not be empty")
    return normalized


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    return str(value).strip() or None
