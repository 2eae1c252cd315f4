import unittest

from class_scheduling import (
    DayOfWeek,
    InvalidFormat,
    InvalidRange,
    normalize_day,
    normalize_time,
    parse_interval,
    parse_legacy_schedule,
    parse_time,
)
from class_scheduling.normalization import find_closest_name, find_closest_time_slot, format_time_for_display


class TestDayNormalization(unittest.TestCase):
    def test_variants_map_to_canonical_day(self) -> None:
        self.assertEqual(normalize_day("MON"), DayOfWeek.MONDAY)
        self.assertEqual(normalize_day("Monday"), DayOfWeek.MONDAY)
        self.assertEqual(normalize_day(" wednesday "), DayOfWeek.WEDNESDAY)
        self.assertEqual(normalize_day("Sun"), DayOfWeek.SUNDAY)

    def test_canonical_day_is_unchanged(self) -> None:
        for day in DayOfWeek:
            with self.subTest(day=day):
                self.assertEqual(normalize_day(day.value).value, day.value)

    def test_unknown_day_raises(self) -> None:
        with self.assertRaises(InvalidFormat):
            normalize_day("Funday")


class TestTimeNormalization(unittest.TestCase):
    def test_canonical_times_are_identity(self) -> None:
        for hour in range(24):
            for minute in range(60):
                text = f"{hour:02d}:{minute:02d}"
                self.assertEqual(normalize_time(text), text)

    def test_twelve_hour_formats(self) -> None:
        self.assertEqual(parse_time("9:00 AM"), 540)
        self.assertEqual(parse_time("9:00AM"), 540)
        self.assertEqual(parse_time("1:30 pm"), 810)
        self.assertEqual(parse_time("12:00 PM"), 720)
        self.assertEqual(parse_time("12:15 AM"), 15)

    def test_short_hour_is_24_hour_clock(self) -> None:
        self.assertEqual(normalize_time("9:05"), "09:05")
        self.assertEqual(normalize_time("1:00"), "01:00")

    def test_invalid_times_raise(self) -> None:
        for text in ["24:00", "9:60", "13:00 PM", "0:30 AM", "nine", "", "9"]:
            with self.subTest(text=text):
                with self.assertRaises(InvalidFormat):
                    parse_time(text)

    def test_display_format(self) -> None:
        self.assertEqual(format_time_for_display("00:00"), "12:00 AM")
        self.assertEqual(format_time_for_display("14:05"), "2:05 PM")

    def test_parse_interval_checks_range(self) -> None:
        self.assertEqual(parse_interval("9:00 AM", "10:30").end_minutes, 630)
        with self.assertRaises(InvalidRange):
            parse_interval("10:00", "09:00")


class TestLegacySchedule(unittest.TestCase):
    def test_shared_time_for_several_days(self) -> None:
        entries = parse_legacy_schedule("Monday & Wednesday, 1:00 PM")

        self.assertEqual([(entry.day, entry.time) for entry in entries], [(DayOfWeek.MONDAY, "13:00"), (DayOfWeek.WEDNESDAY, "13:00")])

    def test_and_joined_abbreviations(self) -> None:
        entries = parse_legacy_schedule("Tue and Thu, 9:30 AM")

        self.assertEqual([entry.day for entry in entries], [DayOfWeek.TUESDAY, DayOfWeek.THURSDAY])
        self.assertTrue(all(entry.time == "09:30" for entry in entries))

    def test_day_at_time_pairs(self) -> None:
        entries = parse_legacy_schedule("Monday at 1:00 PM, FRIDAY at 08:00")

        self.assertEqual([(entry.day, entry.time) for entry in entries], [(DayOfWeek.MONDAY, "13:00"), (DayOfWeek.FRIDAY, "08:00")])

    def test_unparseable_fragments_are_dropped(self) -> None:
        self.assertEqual(parse_legacy_schedule(None), [])
        self.assertEqual(parse_legacy_schedule("whenever"), [])
        entries = parse_legacy_schedule("Monday at 1:00 PM, Someday at 2:00 PM")
        self.assertEqual(len(entries), 1)

    def test_closest_time_slot_within_tolerance(self) -> None:
        slots = [("a", "08:00"), ("b", "09:30"), ("c", "11:00")]

        self.assertEqual(find_closest_time_slot("09:30", slots), "b")
        self.assertEqual(find_closest_time_slot("09:45", slots), "b")
        self.assertIsNone(find_closest_time_slot("14:00", slots))

    def test_closest_name_prefers_exact_match(self) -> None:
        rooms = [("1", "Lab 1"), ("2", "Computer Lab")]

        self.assertEqual(find_closest_name("computer lab", rooms), "2")
        self.assertEqual(find_closest_name("Lab", rooms), "1")
        self.assertIsNone(find_closest_name("Gym", rooms))


if __name__ == "__main__":
    unittest.main()
