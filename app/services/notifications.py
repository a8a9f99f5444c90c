from __future__ import annotations

from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from app.core.errors import NotFoundError
from app.models import Notification, NotificationType

SessionFactory = Callable[[], AbstractContextManager[Session]]


@dataclass(frozen=True)
class NotificationRequest:
    user_id: int
    type: NotificationType
    title: str
    message: str
    metadata: dict[str, Any] = field(default_factory=dict)


class NotificationQueue:
    """Outbox filled while a request mutates appointments.

    Nothing here touches the database: the queued requests are handed to
    ``deliver_notifications`` once the primary transaction has committed.
    """

    def __init__(self) -> None:
        self._pending: list[NotificationRequest] = []

    def emit(self, request: NotificationRequest) -> None:
        self._pending.append(request)

    @property
    def pending(self) -> list[NotificationRequest]:
        return list(self._pending)

    def drain(self) -> list[NotificationRequest]:
        drained, self._pending = self._pending, []
        return drained


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
    retry=retry_if_exception_type(OperationalError),
    reraise=True,
)
def _store(request: NotificationRequest, session_factory: SessionFactory) -> None:
    with session_factory() as session:
        session.add(
            Notification(
                user_id=request.user_id,
                type=request.type.value,
                title=request.title,
                message=request.message,
                payload=dict(request.metadata),
            )
        )


def deliver_notifications(requests: Iterable[NotificationRequest], session_factory: SessionFactory) -> int:
    """Persist queued notifications, returning how many were stored.

    Failures are logged and dropped; the appointment change that produced
    them has already been committed and stays the source of truth.
    """
    delivered = 0
    for request in requests:
        try:
            _store(request, session_factory)
            delivered += 1
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Failed to deliver {type} notification to user {user_id}: {error}",
                type=request.type.value,
                user_id=request.user_id,
                error=exc,
            )
    return delivered


class NotificationService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list_for_user(self, user_id: int, *, unread_only: bool = False) -> list[Notification]:
        stmt = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            stmt = stmt.where(Notification.is_read.is_(False))
        stmt = stmt.order_by(Notification.created_at.desc(), Notification.id.desc())
        return list(self.session.scalars(stmt))

    def mark_as_read(self, notification_id: int, user_id: int) -> Notification:
        notification = self.session.get(Notification, notification_id)
        # Someone else's notification is reported as missing rather than forbidden
        if not notification or notification.user_id != user_id:
            raise NotFoundError(f"Notification with ID {notification_id} not found")
        notification.is_read = True
        self.session.flush()
        return notification
