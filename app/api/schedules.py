from __future__ import annotations

import datetime as dt

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import respond
from app.core.errors import ForbiddenError, InvalidRequestError
from app.core.security import Principal, get_current_principal, require_roles
from app.models import Role
from app.schemas import ApiResponse, CreateSchedulePayload, ScheduleHourPayload, ScheduleResponse
from app.services.db import get_db
from app.services.schedules import ScheduleService
from app.utils.time import normalize_hour

router = APIRouter(prefix="/schedules", tags=["schedules"])


def _owned_schedule(service: ScheduleService, schedule_id: int, principal: Principal):
    schedule = service.get_schedule_by_id(schedule_id)
    if schedule.mechanic_id != principal.id:
        raise ForbiddenError("You can only manage your own schedules")
    return schedule


@router.get("", response_model=ApiResponse[list[ScheduleResponse]])
def list_schedules(
    mechanic_id: int | None = Query(default=None, alias="mechanicId"),
    day: dt.date | None = Query(default=None, alias="date"),
    _: Principal = Depends(get_current_principal),
    session: Session = Depends(get_db),
):
    schedules = ScheduleService(session=session).list_schedules(mechanic_id=mechanic_id, day=day)
    data = [ScheduleResponse.model_validate(schedule) for schedule in schedules]
    return respond("Schedules retrieved successfully", data)


@router.get("/{schedule_id}", response_model=ApiResponse[ScheduleResponse])
def get_schedule(
    schedule_id: int,
    _: Principal = Depends(get_current_principal),
    session: Session = Depends(get_db),
):
    schedule = ScheduleService(session=session).get_schedule_by_id(schedule_id)
    return respond("Schedule retrieved successfully", ScheduleResponse.model_validate(schedule))


@router.post("", status_code=status.HTTP_201_CREATED, response_model=ApiResponse[ScheduleResponse])
def create_schedule(
    payload: CreateSchedulePayload,
    principal: Principal = Depends(require_roles(Role.MECHANIC)),
    session: Session = Depends(get_db),
):
    schedule = ScheduleService(session=session).create_schedule(
        mechanic_id=principal.id, day=payload.date, hours=payload.hours
    )
    return respond(
        "Schedule created successfully",
        ScheduleResponse.model_validate(schedule),
        status_code=status.HTTP_201_CREATED,
    )


@router.post("/{schedule_id}/hours", response_model=ApiResponse[ScheduleResponse])
def add_hour(
    schedule_id: int,
    payload: ScheduleHourPayload,
    principal: Principal = Depends(require_roles(Role.MECHANIC)),
    session: Session = Depends(get_db),
):
    service = ScheduleService(session=session)
    _owned_schedule(service, schedule_id, principal)
    service.add_hour_to_schedule(schedule_id, payload.hour)
    schedule = service.get_schedule_by_id(schedule_id)
    return respond("Hour added successfully", ScheduleResponse.model_validate(schedule))


@router.delete("/{schedule_id}/hours/{hour}", response_model=ApiResponse[ScheduleResponse])
def remove_hour(
    schedule_id: int,
    hour: str,
    principal: Principal = Depends(require_roles(Role.MECHANIC)),
    session: Session = Depends(get_db),
):
    service = ScheduleService(session=session)
    _owned_schedule(service, schedule_id, principal)
    try:
        normalized = normalize_hour(hour)
    except ValueError as exc:
        raise InvalidRequestError(str(exc)) from exc
    service.remove_hour_from_schedule(schedule_id, normalized)
    schedule = service.get_schedule_by_id(schedule_id)
    return respond("Hour removed successfully", ScheduleResponse.model_validate(schedule))
