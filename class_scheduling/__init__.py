from .booking import (
	Conflict,
	ConflictReport,
	DayOfWeek,
	DuplicateLabel,
	InvalidFormat,
	InvalidRange,
	ProposedBooking,
	Reservation,
	SchedulingError,
	SlotInUse,
	TimeInterval,
	find_conflicts,
	first_conflict,
	has_time_overlap,
)
from .normalization import (
	LegacyScheduleEntry,
	format_time_for_display,
	normalize_day,
	normalize_time,
	parse_interval,
	parse_legacy_schedule,
	parse_time,
)
from .validation import check_booking, collect_conflicts
from .yaml_store import (
	ClassScheduleRecord,
	MigrationReport,
	RoomRecord,
	ScheduleStorageError,
	ScheduleYamlRepository,
	TimeSlotRecord,
)

__all__ = [
	"Conflict",
	"ConflictReport",
	"DayOfWeek",
	"DuplicateLabel",
	"InvalidFormat",
	"InvalidRange",
	"ProposedBooking",
	"Reservation",
	"SchedulingError",
	"SlotInUse",
	"TimeInterval",
	"check_booking",
	"collect_conflicts",
	"find_conflicts",
	"first_conflict",
	"has_time_overlap",
	"LegacyScheduleEntry",
	"format_time_for_display",
	"normalize_day",
	"normalize_time",
	"parse_interval",
	"parse_legacy_schedule",
	"parse_time",
	"ClassScheduleRecord",
	"MigrationReport",
	"RoomRecord",
	"ScheduleStorageError",
	"ScheduleYamlRepository",
	"TimeSlotRecord",
]
