"""Typed records passed between the repository and the scheduling rules.

Rows coming back from the database are converted into these records at the
repository boundary so nothing above it handles ORM objects or raw payloads.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Optional

from shift_builder.timeutils import local_date

DRAFT = "draft"
PUBLISHED = "published"


@dataclass(frozen=True)
class EmployeeRecord:
    id: int
    name: str
    role: str = ""
    active: bool = True


@dataclass(frozen=True)
class ShiftRecord:
    """One scheduled work block.

    Attributes:
        employee_id: Assigned employee, or ``None`` for an open shift.
        start: Absolute start instant (UTC).
        end: Absolute end instant (UTC); may fall on the next local day.
        status: ``draft`` or ``published``.
        replaces_shift_id: For a draft revision, the published shift it will
            replace on publish.
    """

    id: int
    employee_id: Optional[int]
    start: datetime.datetime
    end: datetime.datetime
    location: str
    role: Optional[str] = None
    status: str = DRAFT
    replaces_shift_id: Optional[int] = None

    @property
    def is_open(self) -> bool:
        return self.employee_id is None

    @property
    def is_draft(self) -> bool:
        return self.status == DRAFT

    @property
    def is_published(self) -> bool:
        return self.status == PUBLISHED

    @property
    def hours(self) -> float:
        return (self.end - self.start).total_seconds() / 3600

    @property
    def local_day(self) -> datetime.date:
        return local_date(self.start)


@dataclass(frozen=True)
class TimeOffRecord:
    id: int
    employee_id: int
    start: datetime.datetime
    end: datetime.datetime
    reason: Optional[str] = None
    status: str = "approved"
    all_day: Optional[bool] = None

    @property
    def is_approved(self) -> bool:
        return self.status == "approved"


@dataclass(frozen=True)
class AvailabilityRecord:
    """A window an employee is willing to work.

    Exactly one of ``day_of_week`` (0 = Monday, recurring) or
    ``specific_date`` is set.
    """

    id: int
    employee_id: int
    start_time: datetime.time
    end_time: datetime.time
    day_of_week: Optional[int] = None
    specific_date: Optional[datetime.date] = None
    effective_start_date: Optional[datetime.date] = None

    @property
    def is_recurring(self) -> bool:
        return self.specific_date is None

    def applies_on(self, day: datetime.date) -> bool:
        if self.specific_date is not None:
            return self.specific_date == day
        if self.day_of_week != day.weekday():
            return False
        return self.effective_start_date is None or self.effective_start_date <= day
