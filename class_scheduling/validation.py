from __future__ import annotations

from typing import Iterable

from .booking import Conflict, ConflictReport, ProposedBooking, Reservation, first_conflict
from .normalization import normalize_day, parse_interval


def collect_conflicts(
    day: str,
    start: str,
    end: str,
    *,
    owner_id: str,
    owner_name: str | None = None,
    room_id: str | None = None,
    teacher_id: str | None = None,
    room_reservations: Iterable[Reservation] = (),
    teacher_reservations: Iterable[Reservation] = (),
) -> tuple[ProposedBooking, list[ConflictReport]]:
    canonical_day = normalize_day(day)
    interval = parse_interval(start, end)
    booking = ProposedBooking(day=canonical_day, interval=interval)

    reports: list[ConflictReport] = []
    axes = (("room", room_id, room_reservations), ("teacher", teacher_id, teacher_reservations))
    for axis, resource_id, reservations in axes:
        if not resource_id:
            continue
        proposed = Reservation(resource_id, canonical_day, interval, owner_id, owner_name)
        hit = first_conflict(proposed, reservations)
        if hit is not None:
            reports.append(ConflictReport(axis=axis, resource_id=resource_id, reservation=hit))
    return booking, reports


def check_booking(
    day: str,
    start: str,
    end: str,
    *,
    owner_id: str,
    owner_name: str | None = None,
    room_id: str | None = None,
    teacher_id: str | None = None,
    room_reservations: Iterable[Reservation] = (),
    teacher_reservations: Iterable[Reservation] = (),
) -> ProposedBooking:
    """Validate a proposed weekly booking and return its normalized form.

    Raises InvalidFormat for unparseable day/time strings, InvalidRange when the
    end is not after the start, and Conflict when either the room or the teacher
    already has an overlapping class on that day. The room axis is reported first.
    """
    booking, reports = collect_conflicts(
        day,
        start,
        end,
        owner_id=owner_id,
        owner_name=owner_name,
        room_id=room_id,
        teacher_id=teacher_id,
        room_reservations=room_reservations,
        teacher_reservations=teacher_reservations,
    )
    if reports:
        report = reports[0]
        subject = "room" if report.axis == "room" else "teacher"
        raise Conflict(
            f"The {subject} is already scheduled on {booking.day.value} for {report.reservation.display_owner}.",
            axis=report.axis,
            reservation=report.reservation,
        )
    return booking
