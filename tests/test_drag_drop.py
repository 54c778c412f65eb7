from __future__ import annotations

import datetime
import sys
import unittest
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from shift_builder.database import Base  # noqa: E402
from shift_builder.drag_drop import DragState, DropTarget, apply_drop, decode_drop_target  # noqa: E402
from shift_builder.models import DRAFT, PUBLISHED  # noqa: E402
from shift_builder.repository import ShiftRepository  # noqa: E402
from shift_builder.timeutils import LOCAL_TZ, WeekBounds, local_date, local_time  # noqa: E402
from shift_builder.week_index import load_week_index  # noqa: E402

WEEK = WeekBounds(datetime.date(2025, 1, 6))


def local(day: int, hour: int, minute: int = 0) -> datetime.datetime:
    return datetime.datetime(2025, 1, day, hour, minute, tzinfo=LOCAL_TZ)


class DropTargetTests(unittest.TestCase):
    def test_decodes_cell_and_open_targets(self) -> None:
        self.assertEqual(decode_drop_target("cell-12-3"), DropTarget(day_index=3, employee_id=12))
        self.assertEqual(decode_drop_target("cell-open-2"), DropTarget(day_index=2))
        self.assertEqual(decode_drop_target("open-6"), DropTarget(day_index=6))
        self.assertTrue(decode_drop_target("cell-open-2").is_open)

    def test_ignores_unknown_or_malformed_targets(self) -> None:
        for drop_id in (None, "", "header-1", "cell-x-1", "cell-4", "open-7", "open-", "cell-open-7", "cell-open-"):
            self.assertIsNone(decode_drop_target(drop_id), drop_id)


class ApplyDropTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = create_engine("sqlite:///:memory:", future=True)
        Base.metadata.create_all(self.engine)
        session_factory = sessionmaker(bind=self.engine, expire_on_commit=False, future=True)
        self.repository = ShiftRepository(session_factory)
        self.alex = self.repository.add_employee("Alex")
        self.jordan = self.repository.add_employee("Jordan")
        for day in range(5):
            self.repository.add_availability(self.alex.id, datetime.time(8), datetime.time(18), day_of_week=day)
            self.repository.add_availability(self.jordan.id, datetime.time(8), datetime.time(18), day_of_week=day)
        # Alex is off all Tuesday; Jordan has a partial block Saturday without availability.
        self.repository.add_time_off(self.alex.id, local(7, 0), local(8, 0), "Vacation")
        self.repository.add_time_off(self.jordan.id, local(11, 9), local(11, 11), "Errand")
        self.shift = self.repository.create_shift(self.alex.id, local(6, 9), local(6, 17), status=PUBLISHED)
        self.drag = DragState()

    def tearDown(self) -> None:
        self.engine.dispose()

    def _drop(self, drop_id):
        index = load_week_index(self.repository, WEEK)
        self.drag.start(index.find_shift(self.shift.id))
        return apply_drop(self.repository, index, self.drag, drop_id)

    def test_drop_on_blocked_cell_is_silent_no_op(self) -> None:
        outcome = self._drop(f"cell-{self.alex.id}-1")

        self.assertFalse(outcome.accepted)
        self.assertEqual(outcome.reason, "blocked")
        self.assertIsNone(self.drag.active_shift)
        self.assertEqual(self.repository.get_shift(self.shift.id), self.shift)

    def test_drop_on_unavailable_cell_is_rejected(self) -> None:
        outcome = self._drop(f"cell-{self.jordan.id}-6")

        self.assertFalse(outcome.accepted)
        self.assertEqual(outcome.reason, "unavailable")
        self.assertEqual(self.repository.get_shift(self.shift.id), self.shift)

    def test_partial_time_off_waives_unavailability(self) -> None:
        outcome = self._drop(f"cell-{self.jordan.id}-5")

        self.assertTrue(outcome.accepted)
        self.assertEqual(outcome.shift.employee_id, self.jordan.id)
        self.assertEqual(local_date(outcome.shift.start), datetime.date(2025, 1, 11))

    def test_move_of_published_shift_creates_draft_revision(self) -> None:
        outcome = self._drop(f"cell-{self.jordan.id}-3")

        self.assertTrue(outcome.accepted)
        moved = self.repository.get_shift(outcome.shift.id)
        self.assertNotEqual(moved.id, self.shift.id)
        self.assertEqual(moved.replaces_shift_id, self.shift.id)
        self.assertEqual(self.repository.get_shift(self.shift.id), self.shift)
        self.assertEqual(moved.employee_id, self.jordan.id)
        self.assertEqual(local_date(moved.start), datetime.date(2025, 1, 9))
        self.assertEqual((local_time(moved.start), local_time(moved.end)), (datetime.time(9), datetime.time(17)))
        self.assertEqual(moved.status, DRAFT)

    def test_drop_on_open_row_unassigns(self) -> None:
        outcome = self._drop("cell-open-1")

        self.assertTrue(outcome.accepted)
        self.assertIsNone(outcome.shift.employee_id)
        self.assertEqual(local_date(outcome.shift.start), datetime.date(2025, 1, 7))

    def test_overnight_shift_keeps_wrap(self) -> None:
        self.shift = self.repository.create_shift(self.jordan.id, local(6, 22), local(7, 2))
        outcome = self._drop("open-4")

        self.assertTrue(outcome.accepted)
        self.assertEqual(outcome.shift.end - outcome.shift.start, datetime.timedelta(hours=4))
        self.assertEqual(local_date(outcome.shift.end), datetime.date(2025, 1, 11))

    def test_invalid_target_clears_drag_state(self) -> None:
        outcome = self._drop("somewhere-else")

        self.assertFalse(outcome.accepted)
        self.assertEqual(outcome.reason, "invalid_target")
        self.assertIsNone(self.drag.active_shift)

    def test_drop_without_drag_start(self) -> None:
        index = load_week_index(self.repository, WEEK)
        outcome = apply_drop(self.repository, index, self.drag, "open-1")
        self.assertEqual(outcome.reason, "no_active_shift")


if __name__ == "__main__":
    unittest.main()
