from __future__ import annotations

from loguru import logger
from sqlalchemy import delete, exists, or_, select
from sqlalchemy.orm import Session

from app.core.errors import (
    EmailConflictError,
    ForbiddenError,
    InvalidRequestError,
    NotFoundError,
    StateConflictError,
)
from app.core.security import hash_password, verify_password
from app.models import Appointment, Notification, Role, Schedule, ScheduleSlot, User, Vehicle


class UserService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def find_by_id(self, user_id: int) -> User | None:
        return self.session.get(User, user_id)

    def find_by_id_or_throw(self, user_id: int) -> User:
        user = self.find_by_id(user_id)
        if not user:
            raise NotFoundError(f"User with ID {user_id} not found")
        return user

    def find_by_email(self, email: str) -> User | None:
        logger.debug("Finding user by email={email}", email=email)
        stmt = select(User).where(User.email == email.lower())
        return self.session.scalars(stmt).first()

    def list_users(self, *, role: Role | None = None) -> list[User]:
        stmt = select(User).order_by(User.id)
        if role:
            stmt = stmt.where(User.role == role.value)
        return list(self.session.scalars(stmt))

    def ensure_email_is_available(self, email: str) -> None:
        if self.find_by_email(email):
            logger.warning("Email {email} is already registered", email=email)
            raise EmailConflictError("Email is already registered")

    def create_user(
        self,
        *,
        name: str,
        email: str,
        role: Role = Role.CLIENT,
        password_hash: str | None = None,
        email_confirmed: bool = False,
    ) -> User:
        self.ensure_email_is_available(email)

        user = User(
            name=name,
            email=email.lower(),
            role=role.value,
            password_hash=password_hash,
            is_email_confirmed=email_confirmed,
        )
        self.session.add(user)
        self.session.flush()
        logger.info("Created user id={user_id} role={role}", user_id=user.id, role=user.role)
        return user

    def update_profile(self, user_id: int, *, name: str) -> User:
        user = self.find_by_id_or_throw(user_id)
        if name == user.name:
            raise InvalidRequestError("New name must be different from the current one")
        user.name = name
        self.session.flush()
        return user

    def update_password(self, user_id: int, *, current_password: str, new_password: str) -> None:
        user = self.find_by_id_or_throw(user_id)
        self.ensure_password_is_valid(user, current_password)
        self.set_password(user, new_password)
        logger.info("Password changed for user id={user_id}", user_id=user_id)

    def set_password(self, user: User, new_password: str) -> None:
        if verify_password(new_password, user.password_hash):
            raise StateConflictError("New password must be different from the current one")
        user.password_hash = hash_password(new_password)
        self.session.flush()

    def update_role(self, user_id: int, role: Role, *, acting_user_id: int) -> User:
        if user_id == acting_user_id:
            raise ForbiddenError("Admins cannot change their own role")
        user = self.find_by_id_or_throw(user_id)
        user.role = role.value
        self.session.flush()
        logger.info("User id={user_id} is now {role}", user_id=user_id, role=role.value)
        return user

    def lock(self, user: User) -> None:
        user.is_locked = True
        self.session.flush()
        logger.warning("Locked account id={user_id}", user_id=user.id)

    def delete_user(self, user_id: int, *, acting_user_id: int) -> None:
        if user_id == acting_user_id:
            raise ForbiddenError("Admins cannot delete their own account")
        user = self.find_by_id_or_throw(user_id)

        has_appointments = self.session.scalar(
            select(exists().where(or_(Appointment.client_id == user_id, Appointment.mechanic_id == user_id)))
        )
        if has_appointments:
            raise StateConflictError("Users with appointments cannot be deleted")

        schedule_ids = select(Schedule.id).where(Schedule.mechanic_id == user_id)
        self.session.execute(delete(ScheduleSlot).where(ScheduleSlot.schedule_id.in_(schedule_ids)))
        self.session.execute(delete(Schedule).where(Schedule.mechanic_id == user_id))
        self.session.execute(delete(Vehicle).where(Vehicle.client_id == user_id))
        self.session.execute(delete(Notification).where(Notification.user_id == user_id))
        self.session.delete(user)
        self.session.flush()
        logger.info("Deleted user id={user_id}", user_id=user_id)

    @staticmethod
    def ensure_password_is_valid(user: User, password: str) -> None:
        if not verify_password(password, user.password_hash):
            raise ForbiddenError("Incorrect password")
