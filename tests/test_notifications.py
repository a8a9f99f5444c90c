from contextlib import contextmanager

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from app.core.errors import NotFoundError
from app.models import Notification, NotificationType
from app.services.notifications import (
    NotificationQueue,
    NotificationRequest,
    NotificationService,
    deliver_notifications,
)


def make_request(user_id: int, **overrides) -> NotificationRequest:
    values = {
        "user_id": user_id,
        "type": NotificationType.APPOINTMENT_CREATED,
        "title": "New appointment booked",
        "message": "A client booked an appointment",
        "metadata": {"appointmentId": 7},
    }
    values.update(overrides)
    return NotificationRequest(**values)


def test_queue_drain_empties_outbox():
    queue = NotificationQueue()
    queue.emit(make_request(1))
    queue.emit(make_request(2))

    assert [r.user_id for r in queue.drain()] == [1, 2]
    assert queue.pending == []


def test_deliver_persists_requests(session, seed, scoped_session):
    delivered = deliver_notifications([make_request(seed.mechanic.id)], scoped_session)

    stored = session.scalars(select(Notification)).all()
    assert delivered == 1
    assert [(n.user_id, n.type, n.payload) for n in stored] == [
        (seed.mechanic.id, "appointment_created", {"appointmentId": 7})
    ]


def test_delivery_failure_is_swallowed(seed):
    @contextmanager
    def broken_factory():
        raise RuntimeError("mail server on fire")
        yield  # pragma: no cover

    assert deliver_notifications([make_request(seed.mechanic.id)], broken_factory) == 0


def test_delivery_retries_operational_errors(session, seed, scoped_session):
    calls = {"count": 0}

    @contextmanager
    def flaky_factory():
        calls["count"] += 1
        if calls["count"] == 1:
            raise OperationalError("INSERT INTO notifications", {}, Exception("database is locked"))
        with scoped_session() as inner:
            yield inner

    assert deliver_notifications([make_request(seed.client.id)], flaky_factory) == 1
    assert calls["count"] == 2
    assert len(session.scalars(select(Notification)).all()) == 1


def test_list_and_mark_read(session, seed, scoped_session):
    deliver_notifications(
        [
            make_request(seed.client.id, type=NotificationType.APPOINTMENT_ACCEPTED),
            make_request(seed.client.id, type=NotificationType.APPOINTMENT_REJECTED),
            make_request(seed.mechanic.id),
        ],
        scoped_session,
    )
    service = NotificationService(session=session)

    mine = service.list_for_user(seed.client.id)
    assert len(mine) == 2

    service.mark_as_read(mine[0].id, seed.client.id)
    assert len(service.list_for_user(seed.client.id, unread_only=True)) == 1

    mechanic_notification = service.list_for_user(seed.mechanic.id)[0]
    with pytest.raises(NotFoundError):
        service.mark_as_read(mechanic_notification.id, seed.client.id)
