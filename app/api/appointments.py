from __future__ import annotations

import datetime as dt

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from loguru import logger
from sqlalchemy.orm import Session

from app.api.deps import (
    commit_and_notify,
    get_appointment_manager,
    get_notification_queue,
    get_session_factory,
    respond,
)
from app.core.security import Principal, get_current_principal, require_roles
from app.models import AppointmentStatus, Role
from app.schemas import (
    AppointmentDetail,
    AppointmentForClient,
    AppointmentForMechanic,
    ApiResponse,
    CreateAppointmentPayload,
    RejectAppointmentPayload,
    UpdateAppointmentPayload,
    to_client_view,
    to_detail_view,
    to_mechanic_view,
)
from app.services.appointments import AppointmentManager
from app.services.db import get_db
from app.services.notifications import NotificationQueue, SessionFactory

router = APIRouter(prefix="/appointments", tags=["appointments"])


@router.get("", response_model=ApiResponse[list[AppointmentForClient] | list[AppointmentForMechanic]])
def list_appointments(
    status_filter: AppointmentStatus | None = Query(default=None, alias="status"),
    client_id: int | None = Query(default=None, alias="clientId"),
    mechanic_id: int | None = Query(default=None, alias="mechanicId"),
    day: dt.date | None = Query(default=None, alias="date"),
    principal: Principal = Depends(get_current_principal),
    manager: AppointmentManager = Depends(get_appointment_manager),
):
    logger.debug(
        "Listing appointments for user={user_id} ({role}) status={status} date={day}",
        user_id=principal.id,
        role=principal.role.value,
        status=status_filter,
        day=day,
    )
    appointments = manager.list_appointments(
        user_id=principal.id,
        role=principal.role,
        status=status_filter,
        client_id=client_id,
        mechanic_id=mechanic_id,
        day=day,
    )
    if principal.role is Role.CLIENT:
        data = [to_client_view(appointment) for appointment in appointments]
    else:
        data = [to_mechanic_view(appointment) for appointment in appointments]
    return respond("Appointments retrieved successfully", data)


@router.get("/{appointment_id}", response_model=ApiResponse[AppointmentDetail])
def get_appointment(
    appointment_id: int,
    principal: Principal = Depends(get_current_principal),
    manager: AppointmentManager = Depends(get_appointment_manager),
):
    appointment = manager.get_appointment(appointment_id, user_id=principal.id, role=principal.role)
    return respond("Appointment retrieved successfully", to_detail_view(appointment))


@router.post("", status_code=status.HTTP_201_CREATED, response_model=ApiResponse[AppointmentDetail])
def create_appointment(
    payload: CreateAppointmentPayload,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(require_roles(Role.CLIENT)),
    manager: AppointmentManager = Depends(get_appointment_manager),
    session: Session = Depends(get_db),
    notifier: NotificationQueue = Depends(get_notification_queue),
    session_factory: SessionFactory = Depends(get_session_factory),
):
    appointment = manager.create_appointment(principal.id, payload)
    data = to_detail_view(appointment)
    commit_and_notify(session, notifier, background_tasks, session_factory)
    return respond("Appointment booked successfully", data, status_code=status.HTTP_201_CREATED)


@router.patch("/{appointment_id}", response_model=ApiResponse[AppointmentDetail])
def update_appointment(
    appointment_id: int,
    payload: UpdateAppointmentPayload,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(require_roles(Role.CLIENT, Role.MECHANIC)),
    manager: AppointmentManager = Depends(get_appointment_manager),
    session: Session = Depends(get_db),
    notifier: NotificationQueue = Depends(get_notification_queue),
    session_factory: SessionFactory = Depends(get_session_factory),
):
    appointment = manager.update_appointment(
        appointment_id,
        user_id=principal.id,
        role=principal.role,
        status=payload.status,
        rejection_reason=payload.rejection_reason,
    )
    data = to_detail_view(appointment)
    commit_and_notify(session, notifier, background_tasks, session_factory)
    return respond("Appointment updated successfully", data)


@router.patch("/{appointment_id}/accept", response_model=ApiResponse[AppointmentDetail])
def accept_appointment(
    appointment_id: int,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(require_roles(Role.MECHANIC)),
    manager: AppointmentManager = Depends(get_appointment_manager),
    session: Session = Depends(get_db),
    notifier: NotificationQueue = Depends(get_notification_queue),
    session_factory: SessionFactory = Depends(get_session_factory),
):
    appointment = manager.accept_appointment(appointment_id, principal.id)
    data = to_detail_view(appointment)
    commit_and_notify(session, notifier, background_tasks, session_factory)
    return respond("Appointment accepted successfully", data)


@router.patch("/{appointment_id}/reject", response_model=ApiResponse[AppointmentDetail])
def reject_appointment(
    appointment_id: int,
    payload: RejectAppointmentPayload,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(require_roles(Role.MECHANIC)),
    manager: AppointmentManager = Depends(get_appointment_manager),
    session: Session = Depends(get_db),
    notifier: NotificationQueue = Depends(get_notification_queue),
    session_factory: SessionFactory = Depends(get_session_factory),
):
    appointment = manager.reject_appointment(appointment_id, principal.id, payload.rejection_reason)
    data = to_detail_view(appointment)
    commit_and_notify(session, notifier, background_tasks, session_factory)
    return respond("Appointment rejected successfully", data)


@router.delete("/{appointment_id}", response_model=ApiResponse[None])
def cancel_appointment(
    appointment_id: int,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(require_roles(Role.CLIENT)),
    manager: AppointmentManager = Depends(get_appointment_manager),
    session: Session = Depends(get_db),
    notifier: NotificationQueue = Depends(get_notification_queue),
    session_factory: SessionFactory = Depends(get_session_factory),
):
    manager.cancel_appointment(appointment_id, principal.id)
    commit_and_notify(session, notifier, background_tasks, session_factory)
    return respond("Appointment cancelled successfully")
