import unittest

from class_scheduling import (
    Conflict,
    DayOfWeek,
    InvalidFormat,
    InvalidRange,
    Reservation,
    TimeInterval,
    find_conflicts,
    first_conflict,
    has_time_overlap,
)
from class_scheduling.validation import check_booking, collect_conflicts


def _reservation(resource_id: str, day: DayOfWeek, start: int, end: int, owner_id: str, owner_name: str | None = None) -> Reservation:
    return Reservation(resource_id, day, TimeInterval(start, end), owner_id, owner_name)


class TestTimeInterval(unittest.TestCase):
    def test_start_after_end_raises_invalid_range(self) -> None:
        with self.assertRaises(InvalidRange):
            TimeInterval(600, 540)

    def test_empty_interval_raises_invalid_range(self) -> None:
        with self.assertRaises(InvalidRange):
            TimeInterval(600, 600)

    def test_interval_outside_day_raises(self) -> None:
        with self.assertRaises(InvalidRange):
            TimeInterval(-10, 30)
        with self.assertRaises(InvalidRange):
            TimeInterval(1400, 1500)


class TestTimeOverlap(unittest.TestCase):
    def test_exactly_touching_boundary_passes(self) -> None:
        self.assertFalse(has_time_overlap(TimeInterval(0, 60), TimeInterval(60, 120)))
        self.assertFalse(has_time_overlap(TimeInterval(60, 120), TimeInterval(0, 60)))

    def test_fully_contained_fails(self) -> None:
        self.assertTrue(has_time_overlap(TimeInterval(0, 120), TimeInterval(30, 60)))
        self.assertTrue(has_time_overlap(TimeInterval(30, 60), TimeInterval(0, 120)))

    def test_disjoint_passes(self) -> None:
        self.assertFalse(has_time_overlap(TimeInterval(0, 30), TimeInterval(60, 90)))

    def test_partially_overlapping_fails(self) -> None:
        self.assertTrue(has_time_overlap(TimeInterval(600, 690), TimeInterval(660, 720)))

    def test_interval_overlaps_itself(self) -> None:
        interval = TimeInterval(540, 541)
        self.assertTrue(has_time_overlap(interval, interval))

    def test_overlap_is_symmetric(self) -> None:
        intervals = [
            TimeInterval(0, 60),
            TimeInterval(30, 90),
            TimeInterval(60, 120),
            TimeInterval(0, 120),
            TimeInterval(100, 101),
        ]
        for first in intervals:
            for second in intervals:
                with self.subTest(first=first, second=second):
                    self.assertEqual(has_time_overlap(first, second), has_time_overlap(second, first))


class TestFindConflicts(unittest.TestCase):
    def setUp(self) -> None:
        self.existing = [
            _reservation("R1", DayOfWeek.MONDAY, 540, 630, "math", "Math 101"),
            _reservation("R1", DayOfWeek.TUESDAY, 540, 630, "art", "Art"),
            _reservation("R2", DayOfWeek.MONDAY, 540, 630, "bio", "Biology"),
            _reservation("R1", DayOfWeek.MONDAY, 600, 660, "chem", "Chemistry"),
        ]

    def test_only_same_resource_and_day_reported_in_input_order(self) -> None:
        proposed = _reservation("R1", DayOfWeek.MONDAY, 600, 620, "new")

        conflicts = find_conflicts(proposed, self.existing)

        self.assertEqual([item.owner_id for item in conflicts], ["math", "chem"])
        self.assertEqual(first_conflict(proposed, self.existing).owner_id, "math")

    def test_own_reservations_are_ignored(self) -> None:
        proposed = _reservation("R1", DayOfWeek.TUESDAY, 540, 630, "art")

        self.assertEqual(find_conflicts(proposed, self.existing), [])
        self.assertIsNone(first_conflict(proposed, self.existing))


class TestCheckBooking(unittest.TestCase):
    def setUp(self) -> None:
        self.rooms = [_reservation("R1", DayOfWeek.MONDAY, 540, 630, "math", "Math 101")]

    def test_accepted_booking_returns_normalized_values(self) -> None:
        booking = check_booking(
            "mon", "11:00", "12:30", owner_id="new", room_id="R1", room_reservations=self.rooms
        )

        self.assertEqual(booking.day, DayOfWeek.MONDAY)
        self.assertEqual(booking.interval, TimeInterval(660, 750))

    def test_room_conflict_names_existing_class(self) -> None:
        with self.assertRaises(Conflict) as context:
            check_booking("Monday", "10:00", "11:00", owner_id="new", room_id="R1", room_reservations=self.rooms)

        self.assertEqual(context.exception.axis, "room")
        self.assertEqual(context.exception.reservation.owner_id, "math")
        self.assertIn("Math 101", str(context.exception))

    def test_same_time_on_different_day_is_accepted(self) -> None:
        booking = check_booking(
            "Tuesday", "09:00", "10:30", owner_id="new", room_id="R1", room_reservations=self.rooms
        )
        self.assertEqual(booking.day, DayOfWeek.TUESDAY)

    def test_invalid_range_rejected_before_conflict_search(self) -> None:
        with self.assertRaises(InvalidRange):
            check_booking("Monday", "10:00", "09:00", owner_id="new", room_id="R1", room_reservations=self.rooms)

    def test_invalid_format_names_field(self) -> None:
        with self.assertRaises(InvalidFormat) as context:
            check_booking("Monday", "25:00", "26:00", owner_id="new")
        self.assertEqual(context.exception.field, "start_time")

        with self.assertRaises(InvalidFormat) as context:
            check_booking("Someday", "09:00", "10:00", owner_id="new")
        self.assertEqual(context.exception.field, "day")

    def test_teacher_conflict_rejected_when_room_is_free(self) -> None:
        teachers = [_reservation("T1", DayOfWeek.MONDAY, 540, 630, "math", "Math 101")]

        with self.assertRaises(Conflict) as context:
            check_booking(
                "Monday",
                "09:30",
                "10:00",
                owner_id="new",
                room_id="R9",
                teacher_id="T1",
                room_reservations=self.rooms,
                teacher_reservations=teachers,
            )

        self.assertEqual(context.exception.axis, "teacher")

    def test_collect_conflicts_reports_both_axes(self) -> None:
        teachers = [_reservation("T1", DayOfWeek.MONDAY, 540, 630, "math", "Math 101")]

        _, reports = collect_conflicts(
            "Monday",
            "09:00",
            "09:30",
            owner_id="new",
            room_id="R1",
            teacher_id="T1",
            room_reservations=self.rooms,
            teacher_reservations=teachers,
        )

        self.assertEqual([report.axis for report in reports], ["room", "teacher"])
        self.assertEqual(reports[0].to_dict()["conflicting_class"], "Math 101")


if __name__ == "__main__":
    unittest.main()
