from __future__ import annotations

from pathlib import Path

from mcp.server.fastmcp import FastMCP

from class_scheduling import DayOfWeek, ScheduleYamlRepository

mcp = FastMCP(
    "Class Scheduling MCP Server",
    instructions="Expose rooms, time slots and class schedule conflict checks from the class_scheduling project.",
    json_response=True,
)

DATA_DIR = Path(__file__).parent / "data"
REPOSITORY = ScheduleYamlRepository(DATA_DIR)


@mcp.resource("schedule://days")
async def list_days() -> list[str]:
    """List canonical weekday names."""
    return [day.value for day in DayOfWeek]


@mcp.tool()
def list_rooms() -> list[dict]:
    """Return all rooms."""
    return [room.to_dict() for room in REPOSITORY.get_rooms()]


@mcp.tool()
def list_time_slots() -> list[dict[str, str]]:
    """Return time slots ordered by start time."""
    return [slot.to_dict() for slot in REPOSITORY.get_time_slots()]


@mcp.tool()
def check_schedule_conflicts(
    day: str,
    start_time: str,
    end_time: str,
    room_id: str | None = None,
    teacher_id: str | None = None,
    class_id: str | None = None,
) -> dict:
    """Check a proposed weekly class slot against existing room and teacher bookings."""
    reports = REPOSITORY.check_conflicts(
        [{"day": day, "start_time": start_time, "end_time": end_time, "room_id": room_id}],
        class_id=class_id,
        teacher_id=teacher_id,
    )
    return {"hasConflicts": bool(reports), "conflicts": [report.to_dict() for report in reports]}


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()
