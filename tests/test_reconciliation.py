from __future__ import annotations

import datetime
import sys
import unittest
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from shift_builder.database import Base  # noqa: E402
from shift_builder.models import DRAFT, PUBLISHED  # noqa: E402
from shift_builder.reconciliation import (  # noqa: E402
    ReconciliationLoop,
    run_reconciliation_pass,
    shifts_to_kick,
)
from shift_builder.repository import ShiftRepository  # noqa: E402
from shift_builder.timeutils import LOCAL_TZ, WeekBounds  # noqa: E402
from shift_builder.week_index import load_week_index  # noqa: E402

WEEK = WeekBounds(datetime.date(2025, 1, 6))


def local(day: int, hour: int, minute: int = 0) -> datetime.datetime:
    return datetime.datetime(2025, 1, day, hour, minute, tzinfo=LOCAL_TZ)


class FlakyRepository(ShiftRepository):
    """Fails to unassign the listed shift ids."""

    def __init__(self, session_factory, failing: set[int]) -> None:
        super().__init__(session_factory)
        self.failing = failing

    def unassign_shift(self, shift_id: int):
        if shift_id in self.failing:
            raise SQLAlchemyError("database is locked")
        return super().unassign_shift(shift_id)


class ReconciliationTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = create_engine("sqlite:///:memory:", future=True)
        Base.metadata.create_all(self.engine)
        self.session_factory = sessionmaker(bind=self.engine, expire_on_commit=False, future=True)
        self.repository = ShiftRepository(self.session_factory)
        self.alex = self.repository.add_employee("Alex")

    def tearDown(self) -> None:
        self.engine.dispose()

    def test_kicks_draft_but_keeps_published_shift(self) -> None:
        published = self.repository.create_shift(self.alex.id, local(6, 9), local(6, 17), status=PUBLISHED)
        draft = self.repository.create_shift(self.alex.id, local(6, 10), local(6, 14))
        self.repository.add_time_off(self.alex.id, local(6, 0), local(7, 0), "Sick")

        before = self.repository.get_shift(published.id)
        self.assertEqual((before.employee_id, before.status), (self.alex.id, PUBLISHED))

        report = run_reconciliation_pass(self.repository, load_week_index(self.repository, WEEK))

        self.assertEqual(report.kicked, [draft.id])
        self.assertEqual(report.failed, [])
        kicked = self.repository.get_shift(draft.id)
        self.assertIsNone(kicked.employee_id)
        self.assertEqual(kicked.status, DRAFT)
        kept = self.repository.get_shift(published.id)
        self.assertEqual((kept.employee_id, kept.status), (self.alex.id, PUBLISHED))

    def test_partial_time_off_does_not_kick(self) -> None:
        self.repository.create_shift(self.alex.id, local(6, 13), local(6, 17))
        self.repository.add_time_off(self.alex.id, local(6, 8), local(6, 12), "Appointment")

        index = load_week_index(self.repository, WEEK)
        self.assertEqual(shifts_to_kick(index), [])

    def test_failed_kick_is_logged_and_skipped(self) -> None:
        first = self.repository.create_shift(self.alex.id, local(6, 10), local(6, 14))
        second = self.repository.create_shift(self.alex.id, local(6, 15), local(6, 18))
        self.repository.add_time_off(self.alex.id, local(6, 0), local(7, 0), "Sick")
        flaky = FlakyRepository(self.session_factory, failing={first.id})

        with self.assertLogs("shift_builder.reconciliation", level="ERROR"):
            report = run_reconciliation_pass(flaky, load_week_index(flaky, WEEK))

        self.assertEqual(report.failed, [first.id])
        self.assertEqual(report.kicked, [second.id])
        self.assertEqual(self.repository.get_shift(first.id).employee_id, self.alex.id)
        self.assertIsNone(self.repository.get_shift(second.id).employee_id)

        # The next pass picks up what the failed one left behind.
        flaky.failing.clear()
        retry = run_reconciliation_pass(flaky, load_week_index(flaky, WEEK))
        self.assertEqual(retry.kicked, [first.id])

    def test_loop_runs_only_when_index_changes(self) -> None:
        loop = ReconciliationLoop(self.repository)
        self.repository.create_shift(self.alex.id, local(7, 9), local(7, 17))

        first = loop.observe(load_week_index(self.repository, WEEK))
        self.assertIsNotNone(first)
        self.assertFalse(first.changed)
        self.assertIsNone(loop.observe(load_week_index(self.repository, WEEK)))

        self.repository.add_time_off(self.alex.id, local(7, 0), local(8, 0), "Sick")
        report = loop.observe(load_week_index(self.repository, WEEK))
        self.assertTrue(report.changed)

        settled = loop.observe(load_week_index(self.repository, WEEK))
        self.assertFalse(settled.changed)
        self.assertIsNone(loop.observe(load_week_index(self.repository, WEEK)))

    def test_run_once_loads_week(self) -> None:
        draft = self.repository.create_shift(self.alex.id, local(9, 9), local(9, 17))
        self.repository.add_time_off(self.alex.id, local(9, 0), local(10, 0), all_day=True)

        report = ReconciliationLoop(self.repository).run_once(WEEK)
        self.assertEqual(report.kicked, [draft.id])


if __name__ == "__main__":
    unittest.main()
