from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

MINUTES_PER_DAY = 24 * 60


class DayOfWeek(str, Enum):
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"

    @classmethod
    def from_weekday(cls, weekday: int) -> "DayOfWeek":
        """Map ``date.weekday()`` (0=Monday) to a canonical day."""
        return list(cls)[weekday]


class SchedulingError(ValueError):
    pass


class InvalidFormat(SchedulingError):
    def __init__(self, field: str, value: object) -> None:
        super().__init__(f"Invalid format for '{field}': {value!r}")
        self.field = field
        self.value = value


class InvalidRange(SchedulingError):
    def __init__(self, message: str = "End time must be after start time.") -> None:
        super().__init__(message)


class Conflict(SchedulingError):
    def __init__(self, message: str, axis: str, reservation: "Reservation | None" = None) -> None:
        super().__init__(message)
        self.axis = axis
        self.reservation = reservation


class DuplicateLabel(SchedulingError):
    pass


class SlotInUse(SchedulingError):
    pass


@dataclass(frozen=True)
class TimeInterval:
    start_minutes: int
    end_minutes: int

    def __post_init__(self) -> None:
        if self.start_minutes >= self.end_minutes:
            raise InvalidRange()
        if self.start_minutes < 0 or self.end_minutes > MINUTES_PER_DAY:
            raise InvalidRange("Time interval must stay within a single day.")


@dataclass(frozen=True)
class Reservation:
    resource_id: str
    day: DayOfWeek
    interval: TimeInterval
    owner_id: str
    owner_name: str | None = None

    @property
    def display_owner(self) -> str:
        return self.owner_name or self.owner_id or "Unknown Class"


@dataclass(frozen=True)
class ProposedBooking:
    day: DayOfWeek
    interval: TimeInterval


@dataclass(frozen=True)
class ConflictReport:
    axis: str
    resource_id: str
    reservation: Reservation

    def to_dict(self) -> dict[str, str | int]:
        return {
            "type": self.axis,
            "resource_id": self.resource_id,
            "day": self.reservation.day.value,
            "start_minutes": self.reservation.interval.start_minutes,
            "end_minutes": self.reservation.interval.end_minutes,
            "conflicting_class_id": self.reservation.owner_id,
            "conflicting_class": self.reservation.display_owner,
        }


def has_time_overlap(new: TimeInterval, existing: TimeInterval) -> bool:
    """Return True when two time intervals overlap by even one minute.

    Intervals are treated as half-open ranges: [start, end)
    so touching boundaries (e.g. 10:00-11:00 and 11:00-12:00) do not overlap.
    """
    return new.start_minutes < existing.end_minutes and existing.start_minutes < new.end_minutes


def find_conflicts(proposed: Reservation, existing_reservations: Iterable[Reservation]) -> list[Reservation]:
    """Return existing reservations of the same resource and day that overlap ``proposed``.

    Reservations owned by the proposal's own owner are skipped so a class can be
    rescheduled over its previous slot. Input order is preserved.
    """
    conflicts: list[Reservation] = []
    for reservation in existing_reservations:
        if reservation.resource_id != proposed.resource_id or reservation.day != proposed.day:
            continue
        if reservation.owner_id == proposed.owner_id:
            continue
        if has_time_overlap(proposed.interval, reservation.interval):
            conflicts.append(reservation)
    return conflicts


def first_conflict(proposed: Reservation, existing_reservations: Iterable[Reservation]) -> Reservation | None:
    for reservation in find_conflicts(proposed, existing_reservations):
        return reservation
    return None
