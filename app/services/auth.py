from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from loguru import logger
from sqlalchemy.orm import Session

from app.core.config import AppConfig, get_settings
from app.core.errors import (
    ForbiddenError,
    InvalidRequestError,
    StateConflictError,
    UnauthorizedError,
)
from app.core.security import (
    TokenPurpose,
    create_access_token,
    create_token,
    decode_token,
    hash_password,
    verify_password,
)
from app.models import Role, UsedToken, User
from app.services.mail import (
    MailQueue,
    confirmation_mail,
    email_update_mail,
    password_reset_mail,
    revert_email_mail,
    unlock_account_mail,
)
from app.services.users import UserService

EMAIL_CHANGE_COOLDOWN = timedelta(days=30)


class AuthService:
    """Credentials, registration and the e-mailed one-shot token flows.

    Every e-mailed token is bound to a purpose and consumed once: its ``jti``
    is recorded in ``usedtokens`` inside the same transaction that applies
    the change. Mail is only queued; the route sends it after commit.
    """

    def __init__(
        self,
        *,
        session: Session,
        user_service: UserService,
        mailer: MailQueue,
        settings: AppConfig | None = None,
    ) -> None:
        self.session = session
        self.user_service = user_service
        self.mailer = mailer
        self.settings = settings or get_settings()

    # Registration and login

    def register(self, *, name: str, email: str, password: str, role: Role = Role.CLIENT) -> User:
        if self.is_admin_email(email):
            role = Role.ADMIN
        user = self.user_service.create_user(
            name=name,
            email=email,
            role=role,
            password_hash=hash_password(password),
        )
        token = create_token(TokenPurpose.CONFIRM_EMAIL, user_id=user.id, email=user.email)
        self.mailer.emit(confirmation_mail(user.email, token))
        logger.info("Registered user id={user_id} role={role}", user_id=user.id, role=user.role)
        return user

    def login(self, *, email: str, password: str) -> tuple[str, User]:
        """Return a session token and the user.

        Failed attempts are counted on the user row; the caller must commit
        even when this raises so the counter and any lock persist.
        """
        user = self.user_service.find_by_email(email)
        if not user:
            raise UnauthorizedError("Account does not exist")
        if user.is_locked:
            raise ForbiddenError("Account is locked")

        if not verify_password(password, user.password_hash):
            user.failed_login_attempts += 1
            logger.info(
                "Failed login for user id={user_id} ({count} in a row)",
                user_id=user.id,
                count=user.failed_login_attempts,
            )
            if user.failed_login_attempts >= self.settings.login_max_failures:
                self.user_service.lock(user)
                raise ForbiddenError("Account has been locked due to failed attempts")
            self.session.flush()
            raise UnauthorizedError("Invalid credentials")

        user.failed_login_attempts = 0
        if not user.is_email_confirmed:
            self.session.flush()
            raise ForbiddenError("Email not confirmed")

        if user.role != Role.ADMIN.value and self.is_admin_email(user.email):
            logger.info("Promoting user id={user_id} to admin", user_id=user.id)
            user.role = Role.ADMIN.value
        self.session.flush()

        token = create_access_token(user_id=user.id, email=user.email, role=user.role)
        return token, user

    def bootstrap_admin(self) -> User | None:
        email, password = self.settings.bootstrap_admin_email, self.settings.bootstrap_admin_password
        if not email or not password:
            return None
        if self.user_service.find_by_email(email):
            return None
        user = self.user_service.create_user(
            name=self.settings.bootstrap_admin_name,
            email=email,
            role=Role.ADMIN,
            password_hash=hash_password(password),
            email_confirmed=True,
        )
        logger.info("Bootstrapped admin account id={user_id}", user_id=user.id)
        return user

    # Requests that send a link

    def request_password_reset(self, email: str) -> None:
        user = self.user_service.find_by_email(email)
        if not user or not user.is_email_confirmed:
            return
        token = create_token(TokenPurpose.RESET_PASSWORD, user_id=user.id, email=user.email)
        self.mailer.emit(password_reset_mail(user.email, token))

    def request_unlock(self, email: str) -> None:
        user = self.user_service.find_by_email(email)
        if not user or not user.is_locked:
            return
        token = create_token(TokenPurpose.UNLOCK_ACCOUNT, user_id=user.id, email=user.email)
        self.mailer.emit(unlock_account_mail(user.email, token))

    def request_email_update(self, user_id: int, *, password: str, new_email: str) -> None:
        user = self.user_service.find_by_id_or_throw(user_id)
        self.user_service.ensure_password_is_valid(user, password)

        new_email = new_email.lower()
        if new_email == user.email:
            raise StateConflictError("New email must be different from the current one")
        self.user_service.ensure_email_is_available(new_email)
        if user.email_changed_at and _aware(user.email_changed_at) > _now() - EMAIL_CHANGE_COOLDOWN:
            raise StateConflictError("You can only change your email once every 30 days")

        user.new_email = new_email
        self.session.flush()
        token = create_token(TokenPurpose.CONFIRM_EMAIL_UPDATE, user_id=user.id, email=new_email)
        self.mailer.emit(email_update_mail(new_email, token))

    # Token-driven actions

    def confirm_email(self, token: str) -> User:
        _, user = self._redeem(token, TokenPurpose.CONFIRM_EMAIL)
        if user.is_email_confirmed:
            raise InvalidRequestError("Email already confirmed")
        user.is_email_confirmed = True
        self.session.flush()
        return user

    def confirm_email_update(self, token: str) -> User:
        claims, user = self._redeem(token, TokenPurpose.CONFIRM_EMAIL_UPDATE)
        if user.new_email != claims["email"]:
            raise InvalidRequestError("This confirmation link is no longer valid")
        self.user_service.ensure_email_is_available(user.new_email)

        user.old_email, user.email, user.new_email = user.email, user.new_email, None
        user.email_changed_at = _now()
        self.session.flush()

        revert_token = create_token(TokenPurpose.REVERT_EMAIL, user_id=user.id, email=user.old_email)
        self.mailer.emit(revert_email_mail(user.old_email, revert_token))
        logger.info("User id={user_id} changed e-mail address", user_id=user.id)
        return user

    def revert_email(self, token: str) -> str:
        """Restore the previous address and return a token to set a new password."""
        claims, user = self._redeem(token, TokenPurpose.REVERT_EMAIL)
        if not user.old_email or user.old_email != claims["email"]:
            raise InvalidRequestError("This revert link is no longer valid")
        self.user_service.ensure_email_is_available(user.old_email)

        user.email, user.old_email = user.old_email, None
        user.email_changed_at = None
        self.session.flush()
        logger.warning("User id={user_id} reverted an e-mail change", user_id=user.id)
        return create_token(TokenPurpose.RESET_PASSWORD_AFTER_REVERT, user_id=user.id, email=user.email)

    def reset_password(self, token: str, new_password: str) -> None:
        _, user = self._redeem(token, TokenPurpose.RESET_PASSWORD)
        self.user_service.set_password(user, new_password)

    def reset_password_after_revert(self, token: str, new_password: str) -> None:
        _, user = self._redeem(token, TokenPurpose.RESET_PASSWORD_AFTER_REVERT)
        self.user_service.set_password(user, new_password)

    def unlock_account(self, token: str) -> User:
        _, user = self._redeem(token, TokenPurpose.UNLOCK_ACCOUNT)
        if not user.is_locked:
            raise InvalidRequestError("Account is already unlocked")
        user.is_locked = False
        user.failed_login_attempts = 0
        self.session.flush()
        return user

    def is_admin_email(self, email: str) -> bool:
        return email.lower() in self.settings.admin_email_list

    def _redeem(self, token: str, purpose: TokenPurpose) -> tuple[dict[str, Any], User]:
        claims = decode_token(token, purpose)
        jti = claims.get("jti")
        if not jti:
            raise UnauthorizedError("Invalid token")
        if self.session.get(UsedToken, jti) is not None:
            raise UnauthorizedError("Token has already been used")

        user = self.user_service.find_by_id_or_throw(claims["sub"])
        self.session.add(
            UsedToken(
                jti=jti,
                purpose=purpose.value,
                expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
            )
        )
        self.session.flush()
        return claims, user


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
