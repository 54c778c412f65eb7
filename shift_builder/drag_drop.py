from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from shift_builder.models import ShiftRecord
from shift_builder.publishing import revise_shift
from shift_builder.timeutils import move_to_day
from shift_builder.validation import CellStatus, classify_cell
from shift_builder.week_index import WeekIndex

logger = logging.getLogger(__name__)

CELL_PREFIX = "cell-"
OPEN_CELL_PREFIX = "cell-open-"
OPEN_PREFIX = "open-"


@dataclass(frozen=True)
class DropTarget:
    day_index: int
    employee_id: Optional[int] = None

    @property
    def is_open(self) -> bool:
        return self.employee_id is None


@dataclass
class DropOutcome:
    accepted: bool
    reason: str
    shift: Optional[ShiftRecord] = None


def decode_drop_target(drop_id: Optional[str]) -> Optional[DropTarget]:
    """Parse ``cell-{employeeId}-{dayIndex}`` or ``cell-open-{dayIndex}``.

    ``open-{dayIndex}`` is accepted as an alias for the open-shift row; anything
    else is ignored.
    """
    if not drop_id:
        return None
    try:
        if drop_id.startswith(OPEN_CELL_PREFIX):
            target = DropTarget(day_index=int(drop_id[len(OPEN_CELL_PREFIX):]))
        elif drop_id.startswith(CELL_PREFIX):
            employee_part, day_part = drop_id[len(CELL_PREFIX):].rsplit("-", 1)
            target = DropTarget(day_index=int(day_part), employee_id=int(employee_part))
        elif drop_id.startswith(OPEN_PREFIX):
            target = DropTarget(day_index=int(drop_id[len(OPEN_PREFIX):]))
        else:
            return None
    except ValueError:
        return None
    if not 0 <= target.day_index < 7:
        return None
    return target


class DragState:
    """Holds the full record of the shift being dragged."""

    def __init__(self) -> None:
        self.active_shift: Optional[ShiftRecord] = None

    def start(self, shift: Optional[ShiftRecord]) -> Optional[ShiftRecord]:
        self.active_shift = shift
        return shift

    def clear(self) -> Optional[ShiftRecord]:
        shift, self.active_shift = self.active_shift, None
        return shift


def check_drop(index: WeekIndex, target: DropTarget) -> CellStatus:
    if target.is_open:
        return CellStatus.OPEN
    return classify_cell(index, target.employee_id, target.day_index)


def apply_drop(repository, index: WeekIndex, drag_state: DragState, drop_id: Optional[str]) -> DropOutcome:
    """Validate and persist a drop. The drag state is cleared whatever the outcome."""
    shift = drag_state.clear()
    if shift is None:
        return DropOutcome(accepted=False, reason="no_active_shift")
    target = decode_drop_target(drop_id)
    if target is None:
        return DropOutcome(accepted=False, reason="invalid_target", shift=shift)

    status = check_drop(index, target)
    if status is not CellStatus.OPEN:
        logger.warning(
            "Drop of shift %s onto employee %s day %s rejected: %s.",
            shift.id,
            target.employee_id,
            target.day_index,
            status.value,
        )
        return DropOutcome(accepted=False, reason=status.value, shift=shift)

    start, end = move_to_day(shift.start, shift.end, index.bounds.day(target.day_index))
    moved = revise_shift(repository, shift, {"employee_id": target.employee_id, "start": start, "end": end})
    return DropOutcome(accepted=True, reason="moved", shift=moved)
