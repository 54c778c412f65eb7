"""Moves draft shifts off employees who have gained an all-day time-off.

A pass looks at the current week index and sends every draft shift that sits
on an all-day time-off to the open pool. Published shifts are left for a
person to undo. Each kick is written on its own; a failed kick is logged and
skipped, and the next pass picks it up again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from shift_builder.models import ShiftRecord
from shift_builder.timeutils import WeekBounds
from shift_builder.validation import all_day_time_off
from shift_builder.week_index import WeekIndex, load_week_index

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationReport:
    kicked: List[int] = field(default_factory=list)
    failed: List[int] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.kicked)


def shifts_to_kick(index: WeekIndex) -> List[ShiftRecord]:
    kicks: List[ShiftRecord] = []
    for employee_id, days in sorted(index.shifts_by_employee_and_day.items()):
        for day_index, shifts in sorted(days.items()):
            if not shifts or all_day_time_off(index, employee_id, day_index) is None:
                continue
            kicks.extend(shift for shift in shifts if shift.is_draft)
    return kicks


def run_reconciliation_pass(repository, index: WeekIndex) -> ReconciliationReport:
    report = ReconciliationReport()
    kicks = shifts_to_kick(index)
    if not kicks:
        return report
    logger.info("Auto-kicking %d shift(s) due to time-off conflicts.", len(kicks))
    for shift in kicks:
        try:
            repository.unassign_shift(shift.id)
        except (SQLAlchemyError, LookupError):
            logger.exception("Failed to kick shift %s.", shift.id)
            report.failed.append(shift.id)
            continue
        report.kicked.append(shift.id)
    return report


class ReconciliationLoop:
    """Runs a pass whenever the shift set or the time-off index changes.

    Call :meth:`observe` after every refetch; it returns the report of the
    pass it ran, or ``None`` when nothing changed since the last observation.
    """

    def __init__(self, repository) -> None:
        self._repository = repository
        self._last_signature: Optional[tuple] = None

    def observe(self, index: WeekIndex) -> Optional[ReconciliationReport]:
        signature = (index.bounds, index.signature())
        if signature == self._last_signature:
            return None
        report = run_reconciliation_pass(self._repository, index)
        # Leave the signature unset after a change so the refetched state is checked again.
        self._last_signature = None if report.changed or report.failed else signature
        return report

    def invalidate(self) -> None:
        self._last_signature = None

    def run_once(self, bounds: WeekBounds, role: Optional[str] = None) -> ReconciliationReport:
        index = load_week_index(self._repository, bounds, role="All" if role is None else role)
        return run_reconciliation_pass(self._repository, index)
