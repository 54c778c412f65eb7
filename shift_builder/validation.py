from __future__ import annotations

import datetime
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional

from shift_builder.models import AvailabilityRecord, ShiftRecord
from shift_builder.timeutils import WEEKDAY_TOKENS, format_time_of_day, local_time
from shift_builder.week_index import DayTimeOff, WeekIndex


class CellStatus(str, Enum):
    BLOCKED = "blocked"
    UNAVAILABLE = "unavailable"
    OPEN = "open"


class TimeOffConflictError(ValueError):
    """Raised when a shift would be assigned onto an all-day time-off."""


@dataclass(frozen=True)
class ScheduleConflict:
    kind: str
    employee_id: int
    employee_name: str
    shift_date: datetime.date
    shift_ids: tuple
    message: str
    time_off_reason: Optional[str] = None


def classify_day(
    time_offs: Iterable[DayTimeOff],
    availability: Iterable[AvailabilityRecord],
) -> CellStatus:
    """Classify one employee/day from the entries that apply to it.

    All-day time-off is the only hard block. With no availability window the
    day is unavailable, unless a partial time-off is present for that day.
    """
    time_offs = list(time_offs)
    if any(item.all_day for item in time_offs):
        return CellStatus.BLOCKED
    partial = [item for item in time_offs if not item.all_day]
    if not list(availability) and not partial:
        return CellStatus.UNAVAILABLE
    return CellStatus.OPEN


def classify_cell(index: WeekIndex, employee_id: Optional[int], day_index: int) -> CellStatus:
    if employee_id is None:
        return CellStatus.OPEN
    return classify_day(
        index.time_offs_for(employee_id, day_index),
        index.availability_for(employee_id, day_index),
    )


def all_day_time_off(index: WeekIndex, employee_id: Optional[int], day_index: int) -> Optional[DayTimeOff]:
    if employee_id is None:
        return None
    for item in index.time_offs_for(employee_id, day_index):
        if item.all_day:
            return item
    return None


def _overlaps(first: ShiftRecord, second: ShiftRecord) -> bool:
    return first.start < second.end and second.start < first.end


def _time_label(shift: ShiftRecord) -> str:
    return f"{format_time_of_day(local_time(shift.start))}-{format_time_of_day(local_time(shift.end))}"


def find_overlap_conflicts(index: WeekIndex) -> List[ScheduleConflict]:
    """One entry per employee/day holding two or more overlapping shifts, any status."""
    conflicts: List[ScheduleConflict] = []
    for employee_id, days in sorted(index.shifts_by_employee_and_day.items()):
        for day_index, shifts in sorted(days.items()):
            ordered = sorted(shifts, key=lambda item: (item.start, item.end, item.id))
            clashing: Dict[int, ShiftRecord] = {}
            for position, shift in enumerate(ordered):
                for other in ordered[position + 1:]:
                    if _overlaps(shift, other):
                        clashing[shift.id] = shift
                        clashing[other.id] = other
            if not clashing:
                continue
            name = index.employee_name(employee_id)
            day = index.bounds.day(day_index)
            labels = ", ".join(_time_label(item) for item in sorted(clashing.values(), key=lambda s: s.start))
            conflicts.append(
                ScheduleConflict(
                    kind="overlap",
                    employee_id=employee_id,
                    employee_name=name,
                    shift_date=day,
                    shift_ids=tuple(sorted(clashing)),
                    message=f"{name} has overlapping shifts on {WEEKDAY_TOKENS[day.weekday()]} "
                    f"{day.isoformat()} ({labels}).",
                )
            )
    return conflicts


def find_time_off_conflicts(
    index: WeekIndex,
    statuses: Optional[Iterable[str]] = None,
) -> List[ScheduleConflict]:
    """Assigned shifts sitting on a day the employee has all-day time-off."""
    wanted = set(statuses) if statuses is not None else None
    conflicts: List[ScheduleConflict] = []
    for employee_id, days in sorted(index.shifts_by_employee_and_day.items()):
        for day_index, shifts in sorted(days.items()):
            time_off = all_day_time_off(index, employee_id, day_index)
            if time_off is None:
                continue
            for shift in shifts:
                if wanted is not None and shift.status not in wanted:
                    continue
                name = index.employee_name(employee_id)
                reason = time_off.reason or "No reason provided"
                conflicts.append(
                    ScheduleConflict(
                        kind="time_off",
                        employee_id=employee_id,
                        employee_name=name,
                        shift_date=time_off.day,
                        shift_ids=(shift.id,),
                        message=f"{name} has time-off on {time_off.day.isoformat()}: {reason}.",
                        time_off_reason=reason,
                    )
                )
    return conflicts


def find_publish_conflicts(index: WeekIndex) -> List[ScheduleConflict]:
    return find_overlap_conflicts(index) + find_time_off_conflicts(index, statuses={"draft"})


def ensure_assignable(index: WeekIndex, employee_id: Optional[int], start: datetime.datetime) -> None:
    """Raise ``TimeOffConflictError`` if ``employee_id`` is blocked on the day of ``start``."""
    if employee_id is None:
        return
    day_index = index.bounds.day_index(start)
    if day_index is None:
        raise ValueError("Shift start falls outside the indexed week.")
    time_off = all_day_time_off(index, employee_id, day_index)
    if time_off is not None:
        reason = time_off.reason or "No reason provided"
        raise TimeOffConflictError(f"Employee has time-off: {reason}")
