from __future__ import annotations

import datetime
import sys
import unittest
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from shift_builder.timeutils import (  # noqa: E402
    LOCAL_TZ,
    UTC,
    WeekBounds,
    current_week,
    local_time,
    move_to_day,
    parse_time_of_day,
    shift_by_days,
    shift_window,
    to_utc,
)


class WeekBoundsTests(unittest.TestCase):
    def test_rejects_non_monday_start(self) -> None:
        with self.assertRaises(ValueError):
            WeekBounds(datetime.date(2025, 1, 7))

    def test_for_date_snaps_to_monday(self) -> None:
        bounds = WeekBounds.for_date(datetime.date(2025, 1, 12))
        self.assertEqual(bounds.start, datetime.date(2025, 1, 6))
        self.assertEqual(bounds.end, datetime.date(2025, 1, 12))

    def test_for_datetime_uses_business_local_day(self) -> None:
        # 03:00 UTC on Monday is still Sunday evening in New York.
        late_sunday = datetime.datetime(2025, 1, 13, 3, 0, tzinfo=UTC)
        self.assertEqual(WeekBounds.for_date(late_sunday).start, datetime.date(2025, 1, 6))

    def test_instants_are_half_open_local_midnights(self) -> None:
        bounds = WeekBounds(datetime.date(2025, 1, 6))
        self.assertEqual(bounds.start_instant, datetime.datetime(2025, 1, 6, 5, 0, tzinfo=UTC))
        self.assertEqual(bounds.end_instant, datetime.datetime(2025, 1, 13, 5, 0, tzinfo=UTC))
        self.assertFalse(bounds.contains(bounds.end_instant))
        self.assertTrue(bounds.contains(bounds.end_instant - datetime.timedelta(seconds=1)))

    def test_navigation_and_label(self) -> None:
        bounds = WeekBounds(datetime.date(2025, 1, 6))
        self.assertEqual(bounds.previous().start, datetime.date(2024, 12, 30))
        self.assertEqual(bounds.next().start, datetime.date(2025, 1, 13))
        self.assertEqual(bounds.label, "Jan 6, 2025 - Jan 12, 2025")
        self.assertEqual(current_week(datetime.date(2025, 1, 9)), bounds)

    def test_day_index(self) -> None:
        bounds = WeekBounds(datetime.date(2025, 1, 6))
        self.assertEqual(bounds.day_index(datetime.date(2025, 1, 8)), 2)
        self.assertIsNone(bounds.day_index(datetime.date(2025, 1, 13)))
        with self.assertRaises(ValueError):
            bounds.day(7)


class TimeOfDayTests(unittest.TestCase):
    def test_naive_values_are_business_local(self) -> None:
        self.assertEqual(
            to_utc(datetime.datetime(2025, 1, 6, 9, 0)),
            datetime.datetime(2025, 1, 6, 14, 0, tzinfo=UTC),
        )

    def test_parse_time_of_day_rejects_garbage(self) -> None:
        self.assertEqual(parse_time_of_day("09:30"), datetime.time(9, 30))
        with self.assertRaises(ValueError):
            parse_time_of_day("nine")

    def test_shift_window_wraps_past_midnight(self) -> None:
        start, end = shift_window(datetime.date(2025, 1, 10), datetime.time(22, 0), datetime.time(2, 0))
        self.assertEqual(end - start, datetime.timedelta(hours=4))
        self.assertEqual(end.astimezone(LOCAL_TZ).date(), datetime.date(2025, 1, 11))

    def test_shift_window_rejects_equal_start_and_end(self) -> None:
        with self.assertRaises(ValueError):
            shift_window(datetime.date(2025, 1, 10), datetime.time(9, 0), datetime.time(9, 0))

    def test_move_to_day_keeps_local_clock_time(self) -> None:
        start, end = shift_window(datetime.date(2025, 1, 6), datetime.time(9, 0), datetime.time(17, 0))
        moved_start, moved_end = move_to_day(start, end, datetime.date(2025, 1, 9))
        self.assertEqual(local_time(moved_start), datetime.time(9, 0))
        self.assertEqual(local_time(moved_end), datetime.time(17, 0))
        self.assertEqual(moved_start.astimezone(LOCAL_TZ).date(), datetime.date(2025, 1, 9))

    def test_shift_by_days_keeps_wall_clock_across_dst(self) -> None:
        # US daylight saving starts Sunday 2025-03-09.
        before = datetime.datetime(2025, 3, 3, 9, 0, tzinfo=LOCAL_TZ)
        after = shift_by_days(before, 7)
        self.assertEqual(local_time(after), datetime.time(9, 0))
        self.assertEqual(after - to_utc(before), datetime.timedelta(days=7, hours=-1))


if __name__ == "__main__":
    unittest.main()
