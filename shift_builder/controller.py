"""Operations the schedule screens call.

Each handler sequences validate -> mutate -> refetch over the components in
this package. The controller is bound to one week; navigating builds a new
controller for the neighbouring :class:`WeekBounds`.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from shift_builder.drag_drop import DragState, DropOutcome, apply_drop
from shift_builder.models import EmployeeRecord, ShiftRecord
from shift_builder.publishing import (
    ClearDraftsResult,
    PublishResult,
    WeekPublishStatus,
    clear_drafts,
    create_draft,
    edit_shift,
    is_week_published,
    publish_week,
    week_publish_status,
)
from shift_builder.reconciliation import ReconciliationLoop, ReconciliationReport
from shift_builder.settings import DEFAULT_LOCATION
from shift_builder.timeutils import (
    WEEKDAY_TOKENS,
    WeekBounds,
    current_week,
    format_time_of_day,
    local_date,
    local_time,
    parse_time_of_day,
    shift_window,
)
from shift_builder.validation import CellStatus, ScheduleConflict, all_day_time_off, classify_cell, find_time_off_conflicts
from shift_builder.week_copy import RepeatWeekResult, repeat_last_week
from shift_builder.week_index import DayTimeOff, WeekIndex, load_week_index, scheduling_status


@dataclass
class ShiftPrompt:
    """Pre-filled values for the create-shift dialog."""

    employee_id: Optional[int]
    employee_name: str
    date: datetime.date
    cell_status: CellStatus = CellStatus.OPEN
    has_time_off: bool = False
    time_off_reason: str = ""
    initial_start_time: Optional[str] = None
    initial_end_time: Optional[str] = None
    initial_location: str = DEFAULT_LOCATION


@dataclass
class EditPrompt:
    shift: ShiftRecord
    employee_name: str


@dataclass
class ScheduleView:
    """Week-scoped read model handed to the presentation layer."""

    bounds: WeekBounds
    days: List[Dict[str, object]]
    employees: List[EmployeeRecord]
    open_shifts: List[ShiftRecord]
    shifts_by_employee_and_day: Dict[int, Dict[int, List[ShiftRecord]]]
    time_offs_by_employee_and_day: Dict[int, Dict[int, List[DayTimeOff]]]
    availability_by_employee_and_day: Dict[int, Dict[int, list]]
    weekly_hours_by_employee: Dict[int, float]
    hours_status_by_employee: Dict[int, str]
    is_week_published: bool
    draft_count: int
    date_range: str = ""
    reconciliation: Optional[ReconciliationReport] = None
    conflicts: List[ScheduleConflict] = field(default_factory=list)


def _days_of_week(bounds: WeekBounds, today: datetime.date) -> List[Dict[str, object]]:
    return [
        {
            "date": day,
            "day_name": WEEKDAY_TOKENS[index],
            "day_number": day.day,
            "is_today": day == today,
        }
        for index, day in enumerate(bounds.days())
    ]


class ScheduleController:
    def __init__(
        self,
        repository,
        bounds: Optional[WeekBounds] = None,
        *,
        role: Optional[str] = None,
        actor: str = "manager",
    ) -> None:
        self.repository = repository
        self.bounds = bounds or current_week()
        self.role = role
        self.actor = actor
        self.drag = DragState()
        self.reconciler = ReconciliationLoop(repository)
        self.index: Optional[WeekIndex] = None
        self._last_report: Optional[ReconciliationReport] = None

    # Navigation -------------------------------------------------------------

    def go_to_today(self) -> "ScheduleController":
        return self._for_week(current_week())

    def go_to_previous_week(self) -> "ScheduleController":
        return self._for_week(self.bounds.previous())

    def go_to_next_week(self) -> "ScheduleController":
        return self._for_week(self.bounds.next())

    def _for_week(self, bounds: WeekBounds) -> "ScheduleController":
        return ScheduleController(self.repository, bounds, role=self.role, actor=self.actor)

    # Read model -------------------------------------------------------------

    def refresh(self) -> WeekIndex:
        """Refetch the week and let reconciliation correct any drift."""
        index = load_week_index(self.repository, self.bounds, self.role)
        report = self.reconciler.observe(index)
        if report is not None:
            self._last_report = report
        if report is not None and report.changed:
            index = load_week_index(self.repository, self.bounds, self.role)
            self.reconciler.observe(index)
        self.index = index
        return index

    def _current_index(self) -> WeekIndex:
        if self.index is None:
            return self.refresh()
        return self.index

    def view(self, today: Optional[datetime.date] = None) -> ScheduleView:
        index = self.refresh()
        hours = index.weekly_hours()
        return ScheduleView(
            bounds=self.bounds,
            days=_days_of_week(self.bounds, today or datetime.date.today()),
            employees=index.employees,
            open_shifts=index.open_shifts,
            shifts_by_employee_and_day=index.shifts_by_employee_and_day,
            time_offs_by_employee_and_day=index.time_offs_by_employee_and_day,
            availability_by_employee_and_day=index.availability_by_employee_and_day,
            weekly_hours_by_employee=hours,
            hours_status_by_employee={
                employee.id: scheduling_status(hours.get(employee.id, 0.0)) for employee in index.employees
            },
            is_week_published=is_week_published(index),
            draft_count=index.draft_count(),
            date_range=self.bounds.label,
            reconciliation=self._last_report,
            conflicts=find_time_off_conflicts(index),
        )

    def publish_status(self) -> WeekPublishStatus:
        return week_publish_status(self.refresh())

    # Creation -------------------------------------------------------------

    def handle_cell_click(self, employee_id: Optional[int], day_index: int) -> ShiftPrompt:
        index = self._current_index()
        time_off = all_day_time_off(index, employee_id, day_index)
        return ShiftPrompt(
            employee_id=employee_id,
            employee_name=index.employee_name(employee_id) if employee_id is not None else "Open Shift",
            date=self.bounds.day(day_index),
            cell_status=classify_cell(index, employee_id, day_index),
            has_time_off=time_off is not None,
            time_off_reason=(time_off.reason or "No reason") if time_off else "",
        )

    def handle_save_shift(
        self,
        prompt: ShiftPrompt,
        start_time: str,
        end_time: str,
        location: Optional[str] = None,
        *,
        is_open_shift: bool = False,
        role: Optional[str] = None,
    ) -> ShiftRecord:
        employee_id = None if is_open_shift else prompt.employee_id
        start, end = shift_window(prompt.date, parse_time_of_day(start_time), parse_time_of_day(end_time))
        shift = create_draft(
            self.repository,
            employee_id,
            start,
            end,
            location or prompt.initial_location,
            role,
        )
        self._audit("SHIFT_CREATE", shift.id, {"employee_id": employee_id, "start": start, "end": end})
        self.refresh()
        return shift

    def handle_availability_click(self, employee_id: int, day_index: int, availability_id: int) -> ShiftPrompt:
        index = self._current_index()
        for entry in index.availability_for(employee_id, day_index):
            if entry.id == availability_id:
                break
        else:
            raise LookupError(f"Availability {availability_id} not found for employee {employee_id}.")
        return ShiftPrompt(
            employee_id=employee_id,
            employee_name=index.employee_name(employee_id),
            date=self.bounds.day(day_index),
            cell_status=classify_cell(index, employee_id, day_index),
            initial_start_time=format_time_of_day(entry.start_time),
            initial_end_time=format_time_of_day(entry.end_time),
        )

    def handle_duplicate_shift(self, shift_id: int) -> ShiftPrompt:
        shift = self.repository.get_shift(shift_id)
        index = self._current_index()
        return ShiftPrompt(
            employee_id=shift.employee_id,
            employee_name=index.employee_name(shift.employee_id) if shift.employee_id else "Open Shift",
            date=local_date(shift.start),
            initial_start_time=format_time_of_day(local_time(shift.start)),
            initial_end_time=format_time_of_day(local_time(shift.end)),
            initial_location=shift.location or DEFAULT_LOCATION,
        )

    # Editing --------------------------------------------------------------

    def handle_shift_click(self, shift_id: int) -> EditPrompt:
        shift = self.repository.get_shift(shift_id)
        index = self._current_index()
        name = index.employee_name(shift.employee_id) if shift.employee_id else "Open Shift"
        return EditPrompt(shift=shift, employee_name=name)

    def handle_edit_shift(
        self,
        shift_id: int,
        start_time: str,
        end_time: str,
        location: Optional[str] = None,
        *,
        day: Optional[datetime.date] = None,
    ) -> ShiftRecord:
        current = self.repository.get_shift(shift_id)
        start, end = shift_window(
            day or local_date(current.start), parse_time_of_day(start_time), parse_time_of_day(end_time)
        )
        changes: Dict[str, object] = {"start": start, "end": end}
        if location is not None:
            changes["location"] = location
        shift = edit_shift(self.repository, shift_id, changes)
        self._audit(
            "SHIFT_EDIT",
            shift.id,
            {"previous_status": current.status, "replaces_shift_id": shift.replaces_shift_id, **changes},
        )
        self.refresh()
        return shift

    def handle_delete_shift(self, shift_id: int) -> None:
        self.repository.delete_shift(shift_id)
        self._audit("SHIFT_DELETE", shift_id)
        self.refresh()

    # Week-level -----------------------------------------------------------

    def handle_publish(self, *, strict: bool = True) -> PublishResult:
        result = publish_week(self.repository, self.bounds, strict=strict)
        if result.success:
            self._audit("WEEK_PUBLISH", None, {"week_start": self.bounds.start, "count": result.published_count})
        self.refresh()
        return result

    def handle_clear_drafts(self) -> ClearDraftsResult:
        result = clear_drafts(self.repository, self.bounds)
        if result.cleared_count:
            self._audit("WEEK_CLEAR_DRAFTS", None, {"week_start": self.bounds.start, "count": result.cleared_count})
        self.refresh()
        return result

    def handle_repeat_last_week(self) -> RepeatWeekResult:
        result = repeat_last_week(self.repository, self.bounds)
        if result.created:
            self._audit("WEEK_REPEAT", None, {"week_start": self.bounds.start, "count": result.created})
            self.refresh()
        return result

    def reconcile(self) -> ReconciliationReport:
        self.reconciler.invalidate()
        self.refresh()
        return self._last_report or ReconciliationReport()

    # Drag and drop --------------------------------------------------------

    def handle_drag_start(self, shift_id: int) -> Optional[ShiftRecord]:
        index = self._current_index()
        return self.drag.start(index.find_shift(shift_id))

    def handle_drag_end(self, drop_id: Optional[str]) -> DropOutcome:
        outcome = apply_drop(self.repository, self._current_index(), self.drag, drop_id)
        if outcome.accepted and outcome.shift is not None:
            self._audit("SHIFT_MOVE", outcome.shift.id, {"target": drop_id})
            self.refresh()
        return outcome

    def _audit(self, action: str, target_id: Optional[int], payload: Optional[dict] = None) -> None:
        self.repository.record_audit(self.actor, action, target_id, payload)
