import re
from dataclasses import dataclass
from typing import Iterable, Sequence

from .booking import MINUTES_PER_DAY, DayOfWeek, InvalidFormat, TimeInterval

_TIME_RE = re.compile(r"^(?P<hour>\d{1,2}):(?P<minute>[0-5]\d)\s*(?P<meridiem>[AaPp][Mm])?$")
_TIME_IN_TEXT_RE = re.compile(r"(\d{1,2}:\d{2}(?:\s*[AaPp][Mm])?)")
_DAY_JOINER_RE = re.compile(r"\s*(?:&|\band\b)\s*", re.IGNORECASE)
_AT_RE = re.compile(r"\s+at\s+", re.IGNORECASE)

_DAY_LOOKUP: dict[str, DayOfWeek] = {}
for _day in DayOfWeek:
    _DAY_LOOKUP[_day.value.lower()] = _day
    _DAY_LOOKUP[_day.value[:3].lower()] = _day

SLOT_MATCH_TOLERANCE_MINUTES = 30


@dataclass(frozen=True)
class LegacyScheduleEntry:
    day: DayOfWeek
    time: str


def normalize_day(text: str | DayOfWeek, field: str = "day") -> DayOfWeek:
    if isinstance(text, DayOfWeek):
        return text
    if not isinstance(text, str):
        raise InvalidFormat(field, text)
    day = _DAY_LOOKUP.get(text.strip().lower())
    if day is None:
        raise InvalidFormat(field, text)
    return day


def parse_time(text: str, field: str = "time") -> int:
    """Parse "HH:MM", "H:MM", "9:00 AM" or "9:00AM" into minutes since midnight."""
    if not isinstance(text, str):
        raise InvalidFormat(field, text)
    match = _TIME_RE.match(text.strip())
    if not match:
        raise InvalidFormat(field, text)

    hour = int(match.group("hour"))
    minute = int(match.group("minute"))
    meridiem = match.group("meridiem")
    if meridiem:
        if hour < 1 or hour > 12:
            raise InvalidFormat(field, text)
        hour = hour % 12
        if meridiem.lower() == "pm":
            hour += 12
    elif hour > 23:
        raise InvalidFormat(field, text)

    return hour * 60 + minute


def format_minutes(minutes: int) -> str:
    if minutes < 0 or minutes > MINUTES_PER_DAY:
        raise ValueError("minutes must be within a single day")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_time(text: str, field: str = "time") -> str:
    return format_minutes(parse_time(text, field))


def format_time_for_display(text: str) -> str:
    minutes = parse_time(text)
    hours, minute = divmod(minutes, 60)
    period = "PM" if hours >= 12 else "AM"
    display_hours = hours % 12 or 12
    return f"{display_hours}:{minute:02d} {period}"


def parse_interval(start: str, end: str, start_field: str = "start_time", end_field: str = "end_time") -> TimeInterval:
    start_minutes = parse_time(start, start_field)
    end_minutes = parse_time(end, end_field)
    return TimeInterval(start_minutes, end_minutes)


def parse_legacy_schedule(schedule: str | None) -> list[LegacyScheduleEntry]:
    """Split an old free-text schedule into (day, "HH:MM") entries.

    Two shapes are understood: days sharing one time ("Monday & Wednesday, 1:00 PM")
    and comma separated "<day> at <time>" pairs. Fragments that do not normalize
    are dropped.
    """
    if not schedule or not schedule.strip():
        return []

    if "&" in schedule or " and " in schedule.lower():
        time_match = _TIME_IN_TEXT_RE.search(schedule)
        if not time_match:
            return []
        days_part = schedule.split(",")[0]
        pairs = [(day, time_match.group(1)) for day in _DAY_JOINER_RE.split(days_part)]
    else:
        pairs = []
        for fragment in schedule.split(","):
            parts = _AT_RE.split(fragment.strip())
            if len(parts) == 2:
                pairs.append((parts[0], parts[1]))

    entries: list[LegacyScheduleEntry] = []
    for day_text, time_text in pairs:
        try:
            entries.append(LegacyScheduleEntry(day=normalize_day(day_text), time=normalize_time(time_text)))
        except InvalidFormat:
            continue
    return entries


def find_closest_time_slot(
    time_text: str,
    slots: Iterable[tuple[str, str]],
    tolerance_minutes: int = SLOT_MATCH_TOLERANCE_MINUTES,
) -> str | None:
    """Return the id of the slot starting at ``time_text`` or nearest to it.

    ``slots`` yields ``(slot_id, start_time)`` pairs. A nearest match further
    away than ``tolerance_minutes`` is not accepted.
    """
    target = parse_time(time_text)
    closest_id: str | None = None
    closest_distance = MINUTES_PER_DAY
    for slot_id, start_time in slots:
        distance = abs(parse_time(start_time) - target)
        if distance == 0:
            return slot_id
        if distance < closest_distance:
            closest_id = slot_id
            closest_distance = distance
    return closest_id if closest_distance <= tolerance_minutes else None


def find_closest_name(name: str | None, candidates: Sequence[tuple[str, str]]) -> str | None:
    """Match a free-text room name against ``(id, name)`` pairs, exact first then by substring."""
    if not name or not name.strip():
        return None
    wanted = name.strip().lower()
    for candidate_id, candidate_name in candidates:
        if candidate_name.lower() == wanted:
            return candidate_id
    for candidate_id, candidate_name in candidates:
        lowered = candidate_name.lower()
        if wanted in lowered or lowered in wanted:
            return candidate_id
    return None
