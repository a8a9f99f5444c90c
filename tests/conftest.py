"""Shared test fixtures and helpers."""

import os
from contextlib import contextmanager
from datetime import date
from types import SimpleNamespace

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_mail_sender, get_session_factory
from app.core.security import create_access_token, hash_password
from app.main import app
from app.models import Base, Role, Schedule, ScheduleSlot, User, Vehicle
from app.services.appointments import AppointmentManager
from app.services.db import get_db
from app.services.mail import MailMessage, MailSender
from app.services.notifications import NotificationQueue
from app.services.schedules import ScheduleService
from app.services.users import UserService
from app.services.vehicles import VehicleService

BOOKING_DATE = date(2026, 1, 22)
PASSWORD = "Secret123!"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def scoped_session(session_factory):
    """Mirror of ``app.services.db.db_session`` bound to the test engine."""

    @contextmanager
    def factory():
        session = session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return factory


@pytest.fixture
def session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def seed(session):
    """Two clients, two mechanics and an admin sharing PASSWORD, their vehicles and schedules."""
    password_hash = hash_password(PASSWORD)

    def account(name, email, role):
        return User(name=name, email=email, role=role.value, password_hash=password_hash, is_email_confirmed=True)

    client = account("Carla Client", "carla@example.com", Role.CLIENT)
    other_client = account("Oscar Other", "oscar@example.com", Role.CLIENT)
    mechanic = account("Mario Mechanic", "mario@example.com", Role.MECHANIC)
    other_mechanic = account("Marta Mechanic", "marta@example.com", Role.MECHANIC)
    admin = account("Ada Admin", "ada@example.com", Role.ADMIN)
    session.add_all([client, other_client, mechanic, other_mechanic, admin])
    session.flush()

    vehicle = Vehicle(client_id=client.id, license_plate="ABC123", brand="Toyota", model="Corolla", year=2018)
    other_vehicle = Vehicle(client_id=other_client.id, license_plate="XYZ789", brand="Ford", model="Focus")
    session.add_all([vehicle, other_vehicle])
    session.flush()

    schedule = Schedule(mechanic_id=mechanic.id, date=BOOKING_DATE)
    schedule.slots = [ScheduleSlot(hour=hour) for hour in ("09:00", "10:00", "11:00")]
    other_schedule = Schedule(mechanic_id=other_mechanic.id, date=BOOKING_DATE)
    other_schedule.slots = [ScheduleSlot(hour="10:00")]
    session.add_all([schedule, other_schedule])
    session.commit()

    return SimpleNamespace(
        booking_date=BOOKING_DATE,
        password=PASSWORD,
        client=client,
        other_client=other_client,
        mechanic=mechanic,
        other_mechanic=other_mechanic,
        admin=admin,
        vehicle=vehicle,
        other_vehicle=other_vehicle,
        schedule=schedule,
        other_schedule=other_schedule,
    )


@pytest.fixture
def notifier():
    return NotificationQueue()


@pytest.fixture
def manager(session, notifier):
    return AppointmentManager(
        session=session,
        schedule_service=ScheduleService(session=session),
        user_service=UserService(session=session),
        vehicle_service=VehicleService(session=session),
        notifier=notifier,
    )


@pytest.fixture
def auth_headers():
    """Build a bearer header for a user, signed with the test secret."""

    def build(user: User) -> dict[str, str]:
        token = create_access_token(user_id=user.id, email=user.email, role=user.role)
        return {"Authorization": f"Bearer {token}"}

    return build


class RecordingMailSender(MailSender):
    def __init__(self) -> None:
        self.sent: list[MailMessage] = []

    def send(self, message: MailMessage) -> None:
        self.sent.append(message)

    def last_token(self, to: str | None = None) -> str:
        messages = [m for m in self.sent if to is None or m.to == to]
        assert messages, f"no mail sent to {to or 'anyone'}"
        return messages[-1].link.split("token=", 1)[1]


@pytest.fixture
def outbox():
    return RecordingMailSender()


@pytest.fixture
def api(seed, scoped_session, outbox):
    def override_get_db():
        with scoped_session() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: scoped_session
    app.dependency_overrides[get_mail_sender] = lambda: outbox
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
