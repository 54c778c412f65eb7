"""Persistence for shifts, time-off, availability and the roster.

The repository owns no scheduling rules. It translates domain calls into
SQLAlchemy statements and converts rows into the typed records from
:mod:`shift_builder.models` before anything leaves this module.
"""

from __future__ import annotations

import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy import delete, or_, select, update

from shift_builder.database import (
    Availability,
    Employee,
    SessionLocal,
    Shift,
    TimeOff,
    record_audit_log,
)
from shift_builder.models import (
    DRAFT,
    PUBLISHED,
    AvailabilityRecord,
    EmployeeRecord,
    ShiftRecord,
    TimeOffRecord,
)
from shift_builder.roles import filter_roster, normalize_role, role_matches, roster_role
from shift_builder.settings import DEFAULT_LOCATION, SHIFT_STATUS_CHOICES, TIME_OFF_STATUS_CHOICES
from shift_builder.timeutils import WeekBounds, from_storage, to_utc

SHIFT_FIELDS = {"employee_id", "start", "end", "location", "role", "status"}


class ShiftNotFoundError(LookupError):
    pass


def _shift_record(shift: Shift) -> ShiftRecord:
    return ShiftRecord(
        id=shift.id,
        employee_id=shift.employee_id,
        start=from_storage(shift.start),
        end=from_storage(shift.end),
        location=shift.location or DEFAULT_LOCATION,
        role=shift.role,
        status=shift.status,
        replaces_shift_id=shift.replaces_shift_id,
    )


def _time_off_record(time_off: TimeOff) -> TimeOffRecord:
    return TimeOffRecord(
        id=time_off.id,
        employee_id=time_off.employee_id,
        start=from_storage(time_off.start),
        end=from_storage(time_off.end),
        reason=time_off.reason,
        status=time_off.status,
        all_day=time_off.all_day,
    )


def _availability_record(entry: Availability) -> AvailabilityRecord:
    return AvailabilityRecord(
        id=entry.id,
        employee_id=entry.employee_id,
        start_time=entry.start_time,
        end_time=entry.end_time,
        day_of_week=entry.day_of_week,
        specific_date=entry.specific_date,
        effective_start_date=entry.effective_start_date,
    )


def _employee_record(employee: Employee) -> EmployeeRecord:
    return EmployeeRecord(
        id=employee.id,
        name=employee.full_name,
        role=normalize_role(employee.role),
        active=employee.status == "active",
    )


def _validate_window(start: Any, end: Any) -> tuple[datetime.datetime, datetime.datetime]:
    if not isinstance(start, datetime.datetime) or not isinstance(end, datetime.datetime):
        raise TypeError("Shift start and end must be datetime instances.")
    start = to_utc(start)
    end = to_utc(end)
    if end <= start:
        raise ValueError("Shift end time must be after start time.")
    return start, end


def _storage_value(value: datetime.datetime) -> datetime.datetime:
    # Stored as UTC; SQLite drops the offset so keep the wall-clock consistent.
    return to_utc(value)


class ShiftRepository:
    """CRUD gateway over a SQLAlchemy session factory."""

    def __init__(self, session_factory: Callable = SessionLocal) -> None:
        self._session_factory = session_factory

    # Roster -----------------------------------------------------------------

    def list_employees(self, role: Optional[str] = None, *, only_active: bool = True) -> List[EmployeeRecord]:
        wanted = roster_role(role) if role != "All" else "All"
        with self._session_factory() as session:
            stmt = select(Employee).order_by(Employee.full_name.asc())
            if only_active:
                stmt = stmt.where(Employee.status == "active")
            return [
                _employee_record(employee)
                for employee in session.scalars(stmt)
                if role_matches(employee.role, wanted)
            ]

    def list_roles(self) -> List[str]:
        with self._session_factory() as session:
            roles = [row[0] for row in session.execute(select(Employee.role).distinct()) if row[0]]
        return filter_roster(roles, "All")

    def add_employee(self, full_name: str, role: str = "staff", status: str = "active") -> EmployeeRecord:
        name = (full_name or "").strip()
        if not name:
            raise ValueError("Employee name is required.")
        with self._session_factory() as session:
            employee = Employee(full_name=name, role=normalize_role(role) or "staff", status=status)
            session.add(employee)
            session.commit()
            session.refresh(employee)
            return _employee_record(employee)

    # Shifts -----------------------------------------------------------------

    def list_shifts(
        self,
        bounds: WeekBounds,
        *,
        status: Optional[str] = None,
        employee_id: Optional[int] = None,
        open_only: bool = False,
    ) -> List[ShiftRecord]:
        stmt = (
            select(Shift)
            .where(Shift.start >= _storage_value(bounds.start_instant))
            .where(Shift.start < _storage_value(bounds.end_instant))
            .order_by(Shift.start, Shift.end, Shift.id)
        )
        if status and status.lower() != "all":
            stmt = stmt.where(Shift.status == status.lower())
        if employee_id:
            stmt = stmt.where(Shift.employee_id == employee_id)
        if open_only:
            stmt = stmt.where(Shift.employee_id.is_(None))
        with self._session_factory() as session:
            return [_shift_record(shift) for shift in session.scalars(stmt)]

    def get_shift(self, shift_id: int) -> ShiftRecord:
        with self._session_factory() as session:
            shift = session.get(Shift, shift_id)
            if not shift:
                raise ShiftNotFoundError(f"Shift with id {shift_id} was not found.")
            return _shift_record(shift)

    def create_shift(
        self,
        employee_id: Optional[int],
        start: datetime.datetime,
        end: datetime.datetime,
        location: Optional[str] = None,
        role: Optional[str] = None,
        *,
        status: str = DRAFT,
        replaces_shift_id: Optional[int] = None,
    ) -> ShiftRecord:
        start, end = _validate_window(start, end)
        status = (status or DRAFT).lower()
        if status not in SHIFT_STATUS_CHOICES:
            raise ValueError(f"Unsupported shift status '{status}'.")
        with self._session_factory() as session:
            shift = Shift(
                employee_id=employee_id,
                start=_storage_value(start),
                end=_storage_value(end),
                location=(location or "").strip() or DEFAULT_LOCATION,
                role=role or None,
                status=status,
                replaces_shift_id=replaces_shift_id,
            )
            session.add(shift)
            session.commit()
            session.refresh(shift)
            return _shift_record(shift)

    def update_shift(self, shift_id: int, fields: Dict[str, Any]) -> ShiftRecord:
        unknown = set(fields) - SHIFT_FIELDS
        if unknown:
            raise ValueError(f"Unsupported shift fields: {', '.join(sorted(unknown))}.")
        with self._session_factory() as session:
            shift = session.get(Shift, shift_id)
            if not shift:
                raise ShiftNotFoundError(f"Shift with id {shift_id} was not found.")
            start = fields.get("start", from_storage(shift.start))
            end = fields.get("end", from_storage(shift.end))
            start, end = _validate_window(start, end)
            if "employee_id" in fields:
                shift.employee_id = fields["employee_id"]
            if "location" in fields:
                shift.location = (fields["location"] or "").strip() or DEFAULT_LOCATION
            if "role" in fields:
                shift.role = fields["role"] or None
            if "status" in fields:
                status = (fields["status"] or DRAFT).lower()
                if status not in SHIFT_STATUS_CHOICES:
                    raise ValueError(f"Unsupported shift status '{status}'.")
                shift.status = status
                if status == DRAFT:
                    shift.published_at = None
            shift.start = _storage_value(start)
            shift.end = _storage_value(end)
            session.commit()
            session.refresh(shift)
            return _shift_record(shift)

    def delete_shift(self, shift_id: int) -> None:
        with self._session_factory() as session:
            shift = session.get(Shift, shift_id)
            if not shift:
                raise ShiftNotFoundError(f"Shift with id {shift_id} was not found.")
            session.delete(shift)
            session.commit()

    def unassign_shift(self, shift_id: int) -> ShiftRecord:
        return self.update_shift(shift_id, {"employee_id": None})

    def delete_drafts(self, bounds: WeekBounds) -> int:
        with self._session_factory() as session:
            result = session.execute(
                delete(Shift)
                .where(Shift.status == DRAFT)
                .where(Shift.start >= _storage_value(bounds.start_instant))
                .where(Shift.start < _storage_value(bounds.end_instant))
            )
            session.commit()
            return int(result.rowcount or 0)

    def find_revision(self, published_id: int) -> Optional[ShiftRecord]:
        """The pending draft revision of a published shift, if one exists."""
        stmt = (
            select(Shift)
            .where(Shift.replaces_shift_id == published_id)
            .where(Shift.status == DRAFT)
            .order_by(Shift.id.desc())
        )
        with self._session_factory() as session:
            shift = session.scalars(stmt).first()
            return _shift_record(shift) if shift else None

    def publish_shifts(self, shift_ids: Iterable[int]) -> int:
        """Promote the given drafts and retire the published shifts they revise.

        Both happen in one transaction so a week never shows a revision next to
        the shift it replaced.
        """
        ids = list(shift_ids)
        if not ids:
            return 0
        with self._session_factory() as session:
            replaced = [
                shift_id
                for shift_id in session.scalars(
                    select(Shift.replaces_shift_id)
                    .where(Shift.id.in_(ids))
                    .where(Shift.status == DRAFT)
                    .where(Shift.replaces_shift_id.is_not(None))
                )
            ]
            result = session.execute(
                update(Shift)
                .where(Shift.id.in_(ids))
                .where(Shift.status == DRAFT)
                .values(
                    status=PUBLISHED,
                    published_at=datetime.datetime.now(datetime.timezone.utc),
                    replaces_shift_id=None,
                )
            )
            if replaced:
                session.execute(
                    delete(Shift).where(Shift.id.in_(replaced)).where(Shift.status == PUBLISHED)
                )
            session.commit()
            return int(result.rowcount or 0)

    # Time-off and availability ---------------------------------------------

    def list_time_offs(self, bounds: WeekBounds) -> List[TimeOffRecord]:
        """Time-off entries overlapping the week window, any approval status."""
        stmt = (
            select(TimeOff)
            .where(TimeOff.start < _storage_value(bounds.end_instant))
            .where(TimeOff.end > _storage_value(bounds.start_instant))
            .order_by(TimeOff.start, TimeOff.id)
        )
        with self._session_factory() as session:
            return [_time_off_record(entry) for entry in session.scalars(stmt)]

    def add_time_off(
        self,
        employee_id: int,
        start: datetime.datetime,
        end: datetime.datetime,
        reason: Optional[str] = None,
        *,
        status: str = "approved",
        all_day: Optional[bool] = None,
    ) -> TimeOffRecord:
        start, end = _validate_window(start, end)
        if status not in TIME_OFF_STATUS_CHOICES:
            raise ValueError(f"Unsupported time-off status '{status}'.")
        with self._session_factory() as session:
            entry = TimeOff(
                employee_id=employee_id,
                start=_storage_value(start),
                end=_storage_value(end),
                reason=reason,
                status=status,
                all_day=all_day,
            )
            session.add(entry)
            session.commit()
            session.refresh(entry)
            return _time_off_record(entry)

    def list_availability(self, bounds: WeekBounds) -> List[AvailabilityRecord]:
        stmt = (
            select(Availability)
            .where(
                or_(
                    Availability.specific_date.is_(None),
                    Availability.specific_date.between(bounds.start, bounds.end),
                )
            )
            .where(
                or_(
                    Availability.effective_start_date.is_(None),
                    Availability.effective_start_date <= bounds.end,
                )
            )
            .order_by(Availability.employee_id, Availability.start_time)
        )
        with self._session_factory() as session:
            return [_availability_record(entry) for entry in session.scalars(stmt)]

    def add_availability(
        self,
        employee_id: int,
        start_time: datetime.time,
        end_time: datetime.time,
        *,
        day_of_week: Optional[int] = None,
        specific_date: Optional[datetime.date] = None,
        effective_start_date: Optional[datetime.date] = None,
    ) -> AvailabilityRecord:
        if (day_of_week is None) == (specific_date is None):
            raise ValueError("Availability needs exactly one of day_of_week or specific_date.")
        if day_of_week is not None and not 0 <= day_of_week < 7:
            raise ValueError("day_of_week must be between 0 (Monday) and 6 (Sunday).")
        with self._session_factory() as session:
            entry = Availability(
                employee_id=employee_id,
                day_of_week=day_of_week,
                specific_date=specific_date,
                start_time=start_time,
                end_time=end_time,
                effective_start_date=effective_start_date,
            )
            session.add(entry)
            session.commit()
            session.refresh(entry)
            return _availability_record(entry)

    # Audit ------------------------------------------------------------------

    def record_audit(
        self,
        actor: str,
        action: str,
        target_id: Optional[int] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        with self._session_factory() as session:
            record_audit_log(session, user_id=actor, action=action, target_id=target_id, payload=payload)
