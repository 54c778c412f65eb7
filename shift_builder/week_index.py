"""Per-week lookups from (employee, day) to shifts, time-off and availability.

The index is rebuilt from scratch after every fetch; nothing derived from a
previous fetch is carried forward.
"""

from __future__ import annotations

import datetime
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from shift_builder.models import AvailabilityRecord, EmployeeRecord, ShiftRecord, TimeOffRecord
from shift_builder.settings import ALL_DAY_TOLERANCE_MINUTES, HOURS_THRESHOLD, TARGET_WEEKLY_HOURS
from shift_builder.timeutils import WeekBounds, local_day_window

ByEmployeeAndDay = Dict[int, Dict[int, list]]


@dataclass(frozen=True)
class DayTimeOff:
    """A time-off entry as it applies to one local calendar day."""

    entry: TimeOffRecord
    day: datetime.date
    all_day: bool

    @property
    def reason(self) -> Optional[str]:
        return self.entry.reason


def covers_whole_day(time_off: TimeOffRecord, day: datetime.date) -> bool:
    """True when the entry spans ``day`` from local midnight to midnight."""
    if time_off.all_day is not None:
        return bool(time_off.all_day)
    day_start, day_end = local_day_window(day)
    tolerance = datetime.timedelta(minutes=ALL_DAY_TOLERANCE_MINUTES)
    return time_off.start <= day_start + tolerance and time_off.end >= day_end - tolerance


def _days_touched(time_off: TimeOffRecord, bounds: WeekBounds) -> List[datetime.date]:
    touched = []
    for day in bounds.days():
        day_start, day_end = local_day_window(day)
        if time_off.start < day_end and time_off.end > day_start:
            touched.append(day)
    return touched


@dataclass
class WeekIndex:
    bounds: WeekBounds
    employees: List[EmployeeRecord] = field(default_factory=list)
    shifts: List[ShiftRecord] = field(default_factory=list)
    open_shifts: List[ShiftRecord] = field(default_factory=list)
    superseded: List[ShiftRecord] = field(default_factory=list)
    shifts_by_employee_and_day: ByEmployeeAndDay = field(default_factory=dict)
    time_offs_by_employee_and_day: ByEmployeeAndDay = field(default_factory=dict)
    availability_by_employee_and_day: ByEmployeeAndDay = field(default_factory=dict)

    def employee_name(self, employee_id: Optional[int]) -> str:
        for employee in self.employees:
            if employee.id == employee_id:
                return employee.name
        return "Unknown"

    def shifts_for(self, employee_id: int, day_index: int) -> List[ShiftRecord]:
        return self.shifts_by_employee_and_day.get(employee_id, {}).get(day_index, [])

    def time_offs_for(self, employee_id: int, day_index: int) -> List[DayTimeOff]:
        return self.time_offs_by_employee_and_day.get(employee_id, {}).get(day_index, [])

    def availability_for(self, employee_id: int, day_index: int) -> List[AvailabilityRecord]:
        return self.availability_by_employee_and_day.get(employee_id, {}).get(day_index, [])

    def find_shift(self, shift_id: int) -> Optional[ShiftRecord]:
        for shift in self.shifts:
            if shift.id == shift_id:
                return shift
        return None

    def weekly_hours(self) -> Dict[int, float]:
        totals: Dict[int, float] = defaultdict(float)
        for shift in self.shifts:
            if shift.employee_id is None:
                continue
            totals[shift.employee_id] += shift.hours
        return {employee_id: round(hours, 2) for employee_id, hours in totals.items()}

    def draft_count(self) -> int:
        """Drafts with an assigned employee; open drafts are not counted."""
        return sum(1 for shift in self.shifts if shift.is_draft and not shift.is_open)

    def signature(self) -> tuple:
        shifts = tuple(
            (shift.id, shift.employee_id, shift.start, shift.end, shift.status) for shift in self.shifts
        )
        time_offs = tuple(
            sorted(
                (employee_id, day_index, item.entry.id, item.all_day)
                for employee_id, days in self.time_offs_by_employee_and_day.items()
                for day_index, items in days.items()
                for item in items
            )
        )
        return shifts, time_offs


def scheduling_status(
    total_hours: float,
    target_hours: float = TARGET_WEEKLY_HOURS,
    threshold: float = HOURS_THRESHOLD,
) -> str:
    if total_hours > target_hours + threshold:
        return "over"
    if total_hours < target_hours - threshold:
        return "under"
    return "normal"


def build_week_index(
    bounds: WeekBounds,
    employees: Iterable[EmployeeRecord],
    shifts: Iterable[ShiftRecord],
    time_offs: Iterable[TimeOffRecord],
    availability: Iterable[AvailabilityRecord],
) -> WeekIndex:
    index = WeekIndex(bounds=bounds, employees=list(employees))

    shifts = list(shifts)
    revised = {shift.replaces_shift_id for shift in shifts if shift.is_draft and shift.replaces_shift_id}
    for shift in shifts:
        day_index = bounds.day_index(shift.start)
        if day_index is None:
            continue
        if shift.is_published and shift.id in revised:
            # Still live for staff; the pending draft revision takes its place in the grid.
            index.superseded.append(shift)
            continue
        index.shifts.append(shift)
        if shift.employee_id is None:
            index.open_shifts.append(shift)
            continue
        index.shifts_by_employee_and_day.setdefault(shift.employee_id, {}).setdefault(day_index, []).append(shift)

    for time_off in time_offs:
        if not time_off.is_approved:
            continue
        for day in _days_touched(time_off, bounds):
            day_index = bounds.day_index(day)
            index.time_offs_by_employee_and_day.setdefault(time_off.employee_id, {}).setdefault(
                day_index, []
            ).append(DayTimeOff(entry=time_off, day=day, all_day=covers_whole_day(time_off, day)))

    entries = list(availability)
    for day_index, day in enumerate(bounds.days()):
        by_employee: Dict[int, Dict[str, List[AvailabilityRecord]]] = defaultdict(
            lambda: {"dated": [], "recurring": []}
        )
        for entry in entries:
            if not entry.applies_on(day):
                continue
            bucket = "recurring" if entry.is_recurring else "dated"
            by_employee[entry.employee_id][bucket].append(entry)
        for employee_id, buckets in by_employee.items():
            # Date-specific windows replace the recurring pattern for that day.
            chosen = buckets["dated"] or buckets["recurring"]
            chosen.sort(key=lambda item: item.start_time)
            index.availability_by_employee_and_day.setdefault(employee_id, {})[day_index] = chosen

    return index


def load_week_index(repository, bounds: WeekBounds, role: Optional[str] = None) -> WeekIndex:
    """Fetch everything the week needs and index it."""
    return build_week_index(
        bounds,
        repository.list_employees(role),
        repository.list_shifts(bounds),
        repository.list_time_offs(bounds),
        repository.list_availability(bounds),
    )
