from __future__ import annotations

from pathlib import Path
import sys
import traceback

import yaml

from class_scheduling import ScheduleYamlRepository


def main() -> int:
    if len(sys.argv) < 2:
        print("usage: migrate_legacy_schedules.py <legacy_classes.yaml> [data_dir]", file=sys.stderr)
        return 2

    source = Path(sys.argv[1])
    data_dir = sys.argv[2] if len(sys.argv) > 2 else "data"

    print("[INFO] Legacy class schedule migration")
    legacy_classes = yaml.safe_load(source.read_text(encoding="utf-8")) or []
    if not isinstance(legacy_classes, list):
        print(f"[ERROR] {source} must contain a list of classes", file=sys.stderr)
        return 2

    repo = ScheduleYamlRepository(data_dir)
    slots, rooms = repo.seed_defaults()
    print(f"[OK] Default time slots created: {len(slots)}")
    print(f"[OK] Default rooms created: {len(rooms)}")

    report = repo.migrate_legacy_classes(row for row in legacy_classes if isinstance(row, dict))
    print(f"[OK] Schedules created: {len(report.created)}")
    for skipped in report.skipped:
        print(f"[SKIP] {skipped['class_id']}: {skipped['schedule']} ({skipped['reason']})")

    print(f"[OK] Schedules YAML: {repo.schedules_file.resolve()}")
    print("[DONE] Migration completed.")
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except Exception:
        print("[ERROR] Migration failed.")
        traceback.print_exc()
        raise SystemExit(1)
