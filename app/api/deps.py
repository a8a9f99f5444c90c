from __future__ import annotations

from typing import Any

from fastapi import BackgroundTasks, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.schemas import ApiResponse
from app.services.appointments import AppointmentManager
from app.services.auth import AuthService
from app.services.db import db_session, get_db
from app.services.mail import LogMailSender, MailQueue, MailSender, deliver_mail
from app.services.notifications import NotificationQueue, SessionFactory, deliver_notifications
from app.services.schedules import ScheduleService
from app.services.users import UserService
from app.services.vehicles import VehicleService


def get_session_factory() -> SessionFactory:
    return db_session


def get_notification_queue() -> NotificationQueue:
    # Resolved once per request, so the manager and the route share the queue
    return NotificationQueue()


_default_mail_sender = LogMailSender()


def get_mail_sender() -> MailSender:
    return _default_mail_sender


def get_mail_queue() -> MailQueue:
    return MailQueue()


def get_auth_service(
    session: Session = Depends(get_db),
    mailer: MailQueue = Depends(get_mail_queue),
) -> AuthService:
    return AuthService(session=session, user_service=UserService(session=session), mailer=mailer)


def get_appointment_manager(
    session: Session = Depends(get_db),
    notifier: NotificationQueue = Depends(get_notification_queue),
) -> AppointmentManager:
    return AppointmentManager(
        session=session,
        schedule_service=ScheduleService(session=session),
        user_service=UserService(session=session),
        vehicle_service=VehicleService(session=session),
        notifier=notifier,
    )


def commit_and_notify(
    session: Session,
    notifier: NotificationQueue,
    background_tasks: BackgroundTasks,
    session_factory: SessionFactory,
) -> None:
    """Commit the mutation, then hand queued notifications to a background task."""
    session.commit()
    requests = notifier.drain()
    if requests:
        background_tasks.add_task(deliver_notifications, requests, session_factory)


def commit_and_mail(
    session: Session,
    mailer: MailQueue,
    background_tasks: BackgroundTasks,
    sender: MailSender,
) -> None:
    session.commit()
    messages = mailer.drain()
    if messages:
        background_tasks.add_task(deliver_mail, messages, sender)


def _dump(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", by_alias=True)
    if isinstance(data, list):
        return [_dump(item) for item in data]
    return data


def respond(message: str, data: Any = None, *, status_code: int = 200) -> JSONResponse:
    body = ApiResponse[Any](success=True, message=message, data=_dump(data))
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", by_alias=True))


def respond_error(message: str, *, status_code: int, data: Any = None) -> JSONResponse:
    body = ApiResponse[Any](success=False, message=message, data=data)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", by_alias=True))
