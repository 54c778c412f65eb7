"""FastAPI wrapper over the scheduling controller.

Every request builds a controller for the week it names, runs one
operation and returns the resulting records as JSON. Week state lives in the
database only; nothing is cached between requests.
"""

from __future__ import annotations

import datetime
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from shift_builder.controller import ScheduleController, ShiftPrompt
from shift_builder.database import SessionLocal, init_database
from shift_builder.repository import ShiftRepository
from shift_builder.timeutils import WeekBounds, local_date
from shift_builder.validation import TimeOffConflictError


@asynccontextmanager
async def lifespan(_: FastAPI):
    init_database()
    yield


app = FastAPI(title="Shift Builder API", version="0.1", lifespan=lifespan)


def get_repository() -> ShiftRepository:
    return ShiftRepository(SessionLocal)


@app.exception_handler(LookupError)
async def not_found_handler(_: Request, exc: LookupError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(TimeOffConflictError)
async def time_off_conflict_handler(_: Request, exc: TimeOffConflictError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(ValueError)
async def bad_request_handler(_: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


def _parse_week_start(value: str) -> WeekBounds:
    try:
        day = datetime.date.fromisoformat(value)
    except ValueError:
        raise HTTPException(status_code=400, detail="week_start must be YYYY-MM-DD")
    return WeekBounds.for_date(day)


def _parse_date(value: Any, field: str) -> datetime.date:
    try:
        return datetime.date.fromisoformat(str(value))
    except ValueError:
        raise HTTPException(status_code=400, detail=f"{field} must be YYYY-MM-DD")


def _require(payload: Dict[str, Any], *keys: str) -> None:
    missing = [key for key in keys if payload.get(key) in (None, "")]
    if missing:
        raise HTTPException(status_code=400, detail=f"{', '.join(missing)} required")


def _actor(payload: Optional[Dict[str, Any]]) -> str:
    return ((payload or {}).get("actor") or "api").strip() or "api"


def _controller(repository: ShiftRepository, bounds: WeekBounds, payload=None, role=None) -> ScheduleController:
    return ScheduleController(repository, bounds, role=role, actor=_actor(payload))


def _controller_for_shift(repository: ShiftRepository, shift_id: int, payload=None) -> ScheduleController:
    shift = repository.get_shift(shift_id)
    return _controller(repository, WeekBounds.for_date(local_date(shift.start)), payload)


def _respond(value: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=jsonable_encoder(value))


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/api/v1/roles")
def roles(repository: ShiftRepository = Depends(get_repository)) -> JSONResponse:
    return _respond(repository.list_roles())


@app.get("/api/v1/weeks/{week_start}")
def week_view(
    week_start: str,
    role: Optional[str] = Query(None),
    repository: ShiftRepository = Depends(get_repository),
) -> JSONResponse:
    bounds = _parse_week_start(week_start)
    view = _controller(repository, bounds, role=role).view()
    return _respond(view)


@app.get("/api/v1/weeks/{week_start}/status")
def week_status(week_start: str, repository: ShiftRepository = Depends(get_repository)) -> JSONResponse:
    bounds = _parse_week_start(week_start)
    return _respond(_controller(repository, bounds).publish_status())


@app.post("/api/v1/weeks/{week_start}/cells")
def cell_click(
    week_start: str,
    payload: Dict[str, Any],
    repository: ShiftRepository = Depends(get_repository),
) -> JSONResponse:
    bounds = _parse_week_start(week_start)
    _require(payload, "day_index")
    prompt = _controller(repository, bounds, payload).handle_cell_click(
        payload.get("employee_id"), int(payload["day_index"])
    )
    return _respond(prompt)


@app.post("/api/v1/shifts")
def create_shift(payload: Dict[str, Any], repository: ShiftRepository = Depends(get_repository)) -> JSONResponse:
    _require(payload, "date", "start_time", "end_time")
    day = _parse_date(payload["date"], "date")
    employee_id = payload.get("employee_id")
    controller = _controller(repository, WeekBounds.for_date(day), payload)
    prompt = ShiftPrompt(employee_id=employee_id, employee_name="", date=day)
    shift = controller.handle_save_shift(
        prompt,
        payload["start_time"],
        payload["end_time"],
        payload.get("location"),
        is_open_shift=bool(payload.get("is_open_shift")) or employee_id is None,
        role=payload.get("role"),
    )
    return _respond(shift, status_code=201)


@app.patch("/api/v1/shifts/{shift_id}")
def edit_shift(
    shift_id: int,
    payload: Dict[str, Any],
    repository: ShiftRepository = Depends(get_repository),
) -> JSONResponse:
    _require(payload, "start_time", "end_time")
    day = _parse_date(payload["date"], "date") if payload.get("date") else None
    controller = _controller_for_shift(repository, shift_id, payload)
    shift = controller.handle_edit_shift(
        shift_id,
        payload["start_time"],
        payload["end_time"],
        payload.get("location"),
        day=day,
    )
    return _respond(shift)


@app.delete("/api/v1/shifts/{shift_id}")
def delete_shift(
    shift_id: int,
    actor: Optional[str] = Query(None),
    repository: ShiftRepository = Depends(get_repository),
) -> JSONResponse:
    controller = _controller_for_shift(repository, shift_id, {"actor": actor})
    controller.handle_delete_shift(shift_id)
    return _respond({"deleted": shift_id})


@app.post("/api/v1/shifts/{shift_id}/duplicate")
def duplicate_shift(shift_id: int, repository: ShiftRepository = Depends(get_repository)) -> JSONResponse:
    prompt = _controller_for_shift(repository, shift_id).handle_duplicate_shift(shift_id)
    return _respond(prompt)


@app.post("/api/v1/shifts/{shift_id}/move")
def move_shift(
    shift_id: int,
    payload: Dict[str, Any],
    repository: ShiftRepository = Depends(get_repository),
) -> JSONResponse:
    controller = _controller_for_shift(repository, shift_id, payload)
    controller.handle_drag_start(shift_id)
    outcome = controller.handle_drag_end(payload.get("drop_id"))
    return _respond(outcome)


@app.post("/api/v1/weeks/{week_start}/publish")
def publish(
    week_start: str,
    payload: Dict[str, Any] | None = None,
    repository: ShiftRepository = Depends(get_repository),
) -> JSONResponse:
    bounds = _parse_week_start(week_start)
    result = _controller(repository, bounds, payload).handle_publish()
    return _respond(result)


@app.post("/api/v1/weeks/{week_start}/clear-drafts")
def clear_week_drafts(
    week_start: str,
    payload: Dict[str, Any] | None = None,
    repository: ShiftRepository = Depends(get_repository),
) -> JSONResponse:
    bounds = _parse_week_start(week_start)
    return _respond(_controller(repository, bounds, payload).handle_clear_drafts())


@app.post("/api/v1/weeks/{week_start}/repeat-last-week")
def repeat_week(
    week_start: str,
    payload: Dict[str, Any] | None = None,
    repository: ShiftRepository = Depends(get_repository),
) -> JSONResponse:
    bounds = _parse_week_start(week_start)
    return _respond(_controller(repository, bounds, payload).handle_repeat_last_week())


@app.post("/api/v1/weeks/{week_start}/reconcile")
def reconcile(week_start: str, repository: ShiftRepository = Depends(get_repository)) -> JSONResponse:
    bounds = _parse_week_start(week_start)
    report = _controller(repository, bounds, role="All").reconcile()
    return _respond({"kicked": report.kicked, "failed": report.failed})
