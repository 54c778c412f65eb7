from __future__ import annotations

import datetime
import sys
import unittest
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from shift_builder.models import (  # noqa: E402
    DRAFT,
    PUBLISHED,
    AvailabilityRecord,
    EmployeeRecord,
    ShiftRecord,
    TimeOffRecord,
)
from shift_builder.timeutils import LOCAL_TZ, WeekBounds  # noqa: E402
from shift_builder.week_index import build_week_index, covers_whole_day, scheduling_status  # noqa: E402

WEEK = WeekBounds(datetime.date(2025, 1, 6))
ALEX = EmployeeRecord(id=1, name="Alex", role="staff")
JORDAN = EmployeeRecord(id=2, name="Jordan", role="staff")


def local(day: int, hour: int, minute: int = 0) -> datetime.datetime:
    return datetime.datetime(2025, 1, day, hour, minute, tzinfo=LOCAL_TZ)


def shift(shift_id: int, employee_id, day: int, start: int, end: int, status: str = DRAFT) -> ShiftRecord:
    return ShiftRecord(
        id=shift_id,
        employee_id=employee_id,
        start=local(day, start),
        end=local(day, end),
        location="Calder",
        status=status,
    )


class WeekIndexTests(unittest.TestCase):
    def test_groups_shifts_by_employee_and_day(self) -> None:
        index = build_week_index(
            WEEK,
            [ALEX, JORDAN],
            [shift(1, 1, 6, 9, 17), shift(2, 1, 8, 9, 13), shift(3, None, 6, 10, 14), shift(4, 2, 13, 9, 17)],
            [],
            [],
        )

        self.assertEqual([s.id for s in index.shifts_for(1, 0)], [1])
        self.assertEqual([s.id for s in index.shifts_for(1, 2)], [2])
        self.assertEqual([s.id for s in index.open_shifts], [3])
        self.assertIsNone(index.find_shift(4))
        self.assertEqual(index.employee_name(99), "Unknown")

    def test_multi_day_time_off_is_indexed_on_every_day(self) -> None:
        trip = TimeOffRecord(id=1, employee_id=1, start=local(7, 0), end=local(10, 0), reason="Trip")
        index = build_week_index(WEEK, [ALEX], [], [trip], [])

        self.assertEqual(sorted(index.time_offs_by_employee_and_day[1]), [1, 2, 3])
        self.assertTrue(all(item.all_day for item in index.time_offs_for(1, 2)))

    def test_pending_time_off_is_ignored(self) -> None:
        pending = TimeOffRecord(id=1, employee_id=1, start=local(7, 0), end=local(8, 0), status="pending")
        index = build_week_index(WEEK, [ALEX], [], [pending], [])
        self.assertEqual(index.time_offs_by_employee_and_day, {})

    def test_all_day_detection(self) -> None:
        day = datetime.date(2025, 1, 7)
        whole = TimeOffRecord(id=1, employee_id=1, start=local(7, 0), end=local(7, 23, 59))
        morning = TimeOffRecord(id=2, employee_id=1, start=local(7, 8), end=local(7, 12))
        flagged = TimeOffRecord(id=3, employee_id=1, start=local(7, 8), end=local(7, 12), all_day=True)

        self.assertTrue(covers_whole_day(whole, day))
        self.assertFalse(covers_whole_day(morning, day))
        self.assertTrue(covers_whole_day(flagged, day))

    def test_date_specific_availability_replaces_recurring(self) -> None:
        recurring = AvailabilityRecord(
            id=1, employee_id=1, start_time=datetime.time(9), end_time=datetime.time(17), day_of_week=2
        )
        dated = AvailabilityRecord(
            id=2,
            employee_id=1,
            start_time=datetime.time(12),
            end_time=datetime.time(16),
            specific_date=datetime.date(2025, 1, 8),
        )
        later = AvailabilityRecord(
            id=3,
            employee_id=1,
            start_time=datetime.time(9),
            end_time=datetime.time(17),
            day_of_week=3,
            effective_start_date=datetime.date(2025, 2, 1),
        )
        index = build_week_index(WEEK, [ALEX], [], [], [recurring, dated, later])

        self.assertEqual([entry.id for entry in index.availability_for(1, 2)], [2])
        self.assertEqual(index.availability_for(1, 3), [])

    def test_weekly_hours_and_draft_count(self) -> None:
        index = build_week_index(
            WEEK,
            [ALEX],
            [
                shift(1, 1, 6, 9, 17, PUBLISHED),
                shift(2, 1, 7, 9, 13, DRAFT),
                shift(3, None, 8, 9, 17, DRAFT),
            ],
            [],
            [],
        )

        self.assertEqual(index.weekly_hours(), {1: 12.0})
        self.assertEqual(index.draft_count(), 1)

    def test_draft_revision_takes_published_shift_place(self) -> None:
        published = shift(1, 1, 6, 9, 17, PUBLISHED)
        revision = ShiftRecord(
            id=2,
            employee_id=1,
            start=local(6, 12),
            end=local(6, 20),
            location="Beaver",
            replaces_shift_id=1,
        )
        index = build_week_index(WEEK, [ALEX], [published, revision], [], [])

        self.assertEqual([s.id for s in index.shifts], [2])
        self.assertEqual([s.id for s in index.superseded], [1])
        self.assertEqual([s.id for s in index.shifts_for(1, 0)], [2])
        self.assertIsNone(index.find_shift(1))
        self.assertEqual(index.weekly_hours(), {1: 8.0})

    def test_scheduling_status_bands(self) -> None:
        self.assertEqual(scheduling_status(46), "over")
        self.assertEqual(scheduling_status(45), "normal")
        self.assertEqual(scheduling_status(35), "normal")
        self.assertEqual(scheduling_status(34.5), "under")


if __name__ == "__main__":
    unittest.main()
