"""Draft/published lifecycle for shifts.

New shifts always enter as drafts. Drafts become published only through
:func:`publish_week`, which is all-or-nothing per week in strict mode. A
published record is never changed in place: edits to it are kept on a draft
revision that replaces it when the week is published again.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from shift_builder.models import DRAFT, ShiftRecord
from shift_builder.timeutils import WeekBounds, to_utc
from shift_builder.validation import (
    ScheduleConflict,
    ensure_assignable,
    find_publish_conflicts,
)
from shift_builder.week_index import WeekIndex, load_week_index

logger = logging.getLogger(__name__)


@dataclass
class PublishResult:
    success: bool
    message: str
    published_count: int = 0
    conflicts: List[ScheduleConflict] = field(default_factory=list)


@dataclass
class ClearDraftsResult:
    cleared_count: int
    message: str


@dataclass
class WeekPublishStatus:
    total_shifts: int
    draft_shifts: int
    published_shifts: int
    conflicts: int
    can_publish: bool


def _guard_assignment(repository, employee_id: Optional[int], start: datetime.datetime) -> None:
    if employee_id is None:
        return
    index = load_week_index(repository, WeekBounds.for_date(to_utc(start)), role="All")
    ensure_assignable(index, employee_id, start)


def create_draft(
    repository,
    employee_id: Optional[int],
    start: datetime.datetime,
    end: datetime.datetime,
    location: Optional[str] = None,
    role: Optional[str] = None,
) -> ShiftRecord:
    """Create a new shift in draft status; open shifts skip the time-off guard."""
    _guard_assignment(repository, employee_id, start)
    return repository.create_shift(employee_id, start, end, location, role, status=DRAFT)


def demote_on_edit(changes: Dict[str, Any]) -> Dict[str, Any]:
    fields = {key: value for key, value in changes.items() if key != "status"}
    fields["status"] = DRAFT
    return fields


def revise_shift(repository, current: ShiftRecord, changes: Dict[str, Any]) -> ShiftRecord:
    """Persist ``changes`` to ``current`` as a draft.

    Drafts are updated in place. A published shift is left untouched: the
    changes land on its draft revision, which is created on the first edit
    and reused afterwards. Publishing the week swaps the revision in.
    """
    if current.is_draft:
        return repository.update_shift(current.id, demote_on_edit(changes))

    revision = repository.find_revision(current.id)
    if revision is not None:
        return repository.update_shift(revision.id, demote_on_edit(changes))

    revision = repository.create_shift(
        changes.get("employee_id", current.employee_id),
        changes.get("start", current.start),
        changes.get("end", current.end),
        changes.get("location", current.location),
        changes.get("role", current.role),
        status=DRAFT,
        replaces_shift_id=current.id,
    )
    logger.info("Shift %s edited after publish; draft revision %s created.", current.id, revision.id)
    return revision


def edit_shift(repository, shift_id: int, changes: Dict[str, Any]) -> ShiftRecord:
    """Apply ``changes`` as a draft; a published shift stays live until the week is republished."""
    current = repository.get_shift(shift_id)
    employee_id = changes.get("employee_id", current.employee_id)
    start = changes.get("start", current.start)
    if "employee_id" in changes or "start" in changes or "end" in changes:
        _guard_assignment(repository, employee_id, start)
    return revise_shift(repository, current, changes)


def assign_shift(repository, shift_id: int, employee_id: int) -> ShiftRecord:
    return edit_shift(repository, shift_id, {"employee_id": employee_id})


def publish_week(
    repository,
    bounds: WeekBounds,
    *,
    strict: bool = True,
    clear_drafts_after_publish: bool = True,
) -> PublishResult:
    """Promote every draft in ``bounds`` to published.

    In strict mode any overlap (two shifts for one employee on one day) or a
    draft on an all-day time-off rejects the whole week before a single write.
    """
    index = load_week_index(repository, bounds, role="All")
    drafts = [shift for shift in index.shifts if shift.is_draft]
    if not drafts:
        return PublishResult(success=False, message="No draft shifts to publish")

    conflicts = find_publish_conflicts(index)
    if strict and conflicts:
        logger.warning(
            "Publish for week of %s rejected with %d conflict(s).", bounds.start.isoformat(), len(conflicts)
        )
        return PublishResult(
            success=False,
            message=f"Cannot publish: {len(conflicts)} conflict(s) found",
            conflicts=conflicts,
        )

    published = repository.publish_shifts(shift.id for shift in drafts)
    logger.info("Published %d shift(s) for week of %s.", published, bounds.start.isoformat())
    if clear_drafts_after_publish:
        leftovers = repository.delete_drafts(bounds)
        if leftovers:
            logger.info("Cleared %d leftover draft(s) after publish.", leftovers)
    return PublishResult(
        success=True,
        message=f"Published {published} shift(s) successfully",
        published_count=published,
        conflicts=conflicts,
    )


def clear_drafts(repository, bounds: WeekBounds) -> ClearDraftsResult:
    cleared = repository.delete_drafts(bounds)
    logger.info("Cleared %d draft shift(s) for week of %s.", cleared, bounds.start.isoformat())
    if not cleared:
        return ClearDraftsResult(cleared_count=0, message="No draft shifts to clear")
    return ClearDraftsResult(cleared_count=cleared, message=f"Cleared {cleared} draft shift(s)")


def is_week_published(index: WeekIndex) -> bool:
    """At least one published shift and no draft involved in a publish conflict."""
    if not any(shift.is_published for shift in index.shifts + index.superseded):
        return False
    draft_ids = {shift.id for shift in index.shifts if shift.is_draft}
    return not any(draft_ids.intersection(conflict.shift_ids) for conflict in find_publish_conflicts(index))


def week_publish_status(index: WeekIndex) -> WeekPublishStatus:
    drafts = sum(1 for shift in index.shifts if shift.is_draft)
    published = sum(1 for shift in index.shifts + index.superseded if shift.is_published)
    conflicts = find_publish_conflicts(index)
    return WeekPublishStatus(
        total_shifts=len(index.shifts),
        draft_shifts=drafts,
        published_shifts=published,
        conflicts=len(conflicts),
        can_publish=drafts > 0 and not conflicts,
    )
