from __future__ import annotations

import argparse
import datetime
import logging
import sys
from pathlib import Path
from typing import Dict, List, Tuple

ROOT_DIR = Path(__file__).resolve().parents[2]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from shift_builder.database import SessionLocal, init_database  # noqa: E402
from shift_builder.models import PUBLISHED  # noqa: E402
from shift_builder.repository import ShiftRepository  # noqa: E402
from shift_builder.settings import LOCATIONS  # noqa: E402
from shift_builder.timeutils import WeekBounds, current_week, parse_time_of_day, shift_window  # noqa: E402

logger = logging.getLogger("shift_builder.seed")

DAY_INDEX = {"Mon": 0, "Tue": 1, "Wed": 2, "Thu": 3, "Fri": 4, "Sat": 5, "Sun": 6}

ROSTER: List[Dict] = [
    {
        "name": "Alex Rivera",
        "availability": {day: [("07:00", "17:00")] for day in ("Mon", "Tue", "Wed", "Thu", "Fri")},
        "shifts": [("Mon", "09:00", "17:00"), ("Wed", "09:00", "17:00"), ("Fri", "09:00", "17:00")],
    },
    {
        "name": "Jordan Lee",
        "availability": {day: [("10:00", "22:00")] for day in ("Wed", "Thu", "Fri", "Sat", "Sun")},
        "shifts": [("Thu", "16:00", "22:00"), ("Sat", "10:00", "18:00")],
    },
    {
        "name": "Sam Patel",
        "availability": {"Sat": [("06:00", "14:00")], "Sun": [("06:00", "14:00")]},
        "shifts": [("Sun", "06:00", "14:00")],
    },
    {"name": "Morgan Diaz", "role": "manager", "availability": {}, "shifts": []},
]


def _window(label: Tuple[str, str]) -> Tuple[datetime.time, datetime.time]:
    return parse_time_of_day(label[0]), parse_time_of_day(label[1])


def seed_roster(repository: ShiftRepository, bounds: WeekBounds, *, publish: bool = True) -> int:
    """Create the demo roster with availability and one published week; returns shifts created."""
    created = 0
    for position, entry in enumerate(ROSTER):
        employee = repository.add_employee(entry["name"], entry.get("role", "staff"))
        for day_name, windows in entry["availability"].items():
            for label in windows:
                start_time, end_time = _window(label)
                repository.add_availability(employee.id, start_time, end_time, day_of_week=DAY_INDEX[day_name])
        for day_name, start_label, end_label in entry["shifts"]:
            start, end = shift_window(
                bounds.day(DAY_INDEX[day_name]),
                parse_time_of_day(start_label),
                parse_time_of_day(end_label),
            )
            repository.create_shift(
                employee.id,
                start,
                end,
                LOCATIONS[position % len(LOCATIONS)],
                status=PUBLISHED if publish else "draft",
            )
            created += 1
    logger.info("Seeded %d employee(s) and %d shift(s) for week of %s.", len(ROSTER), created, bounds.start)
    return created


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Seed a demo roster, availability and a published week so 'repeat last week' has a source."
    )
    parser.add_argument(
        "--week-start",
        help="ISO date (YYYY-MM-DD) inside the week to seed. Defaults to last week.",
    )
    parser.add_argument("--drafts", action="store_true", help="Seed the shifts as drafts instead of published.")
    return parser.parse_args()


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="[seed] %(message)s")
    args = parse_args()
    if args.week_start:
        try:
            bounds = WeekBounds.parse(args.week_start)
        except ValueError as exc:
            raise SystemExit(f"Invalid --week-start value: {exc}") from exc
    else:
        bounds = current_week().previous()
    init_database()
    seed_roster(ShiftRepository(SessionLocal), bounds, publish=not args.drafts)


if __name__ == "__main__":
    main()
