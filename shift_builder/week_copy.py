from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List

from shift_builder.models import DRAFT, PUBLISHED
from shift_builder.timeutils import WeekBounds, shift_by_days

logger = logging.getLogger(__name__)

DAYS_IN_WEEK = 7


@dataclass
class RepeatWeekResult:
    created: int
    message: str
    shift_ids: List[int] = field(default_factory=list)


def repeat_last_week(repository, bounds: WeekBounds) -> RepeatWeekResult:
    """Copy last week's published shifts into ``bounds`` as drafts.

    Dates move forward exactly seven days with the local time-of-day kept, so
    a 09:00 shift stays 09:00 across a daylight-saving change. Drafts from
    last week are never copied.
    """
    previous = bounds.previous()
    source = repository.list_shifts(previous, status=PUBLISHED)
    if not source:
        return RepeatWeekResult(created=0, message="No published shifts found in last week")

    created: List[int] = []
    for shift in source:
        copy = repository.create_shift(
            shift.employee_id,
            shift_by_days(shift.start, DAYS_IN_WEEK),
            shift_by_days(shift.end, DAYS_IN_WEEK),
            shift.location,
            shift.role,
            status=DRAFT,
        )
        created.append(copy.id)
    logger.info(
        "Copied %d published shift(s) from week of %s into week of %s.",
        len(created),
        previous.start.isoformat(),
        bounds.start.isoformat(),
    )
    return RepeatWeekResult(
        created=len(created),
        message=f"Created {len(created)} draft shift(s) from last week",
        shift_ids=created,
    )
