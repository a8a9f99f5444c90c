from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from functools import lru_cache
from typing import Any, Callable

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from loguru import logger
from nanoid import generate
from passlib.context import CryptContext
from pydantic import BaseModel

from app.core.config import get_settings
from app.core.errors import ForbiddenError, UnauthorizedError
from app.models import Role


class TokenPurpose(str, Enum):
    SESSION = "session"
    CONFIRM_EMAIL = "confirm_email"
    CONFIRM_EMAIL_UPDATE = "confirm_email_update"
    REVERT_EMAIL = "revert_email"
    RESET_PASSWORD = "reset_password"
    RESET_PASSWORD_AFTER_REVERT = "reset_password_after_revert"
    UNLOCK_ACCOUNT = "unlock_account"


# Session lifetime comes from settings; these are the e-mailed one-shot links
TOKEN_LIFETIMES: dict[TokenPurpose, timedelta] = {
    TokenPurpose.CONFIRM_EMAIL: timedelta(days=1),
    TokenPurpose.CONFIRM_EMAIL_UPDATE: timedelta(hours=1),
    TokenPurpose.REVERT_EMAIL: timedelta(days=30),
    TokenPurpose.RESET_PASSWORD: timedelta(minutes=15),
    TokenPurpose.RESET_PASSWORD_AFTER_REVERT: timedelta(minutes=15),
    TokenPurpose.UNLOCK_ACCOUNT: timedelta(hours=1),
}

bearer_scheme = HTTPBearer(auto_error=False)


class Principal(BaseModel):
    id: int
    email: str
    role: Role


# ============================================================================
# Passwords
# ============================================================================


@lru_cache
def _password_context() -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=get_settings().bcrypt_rounds)


def hash_password(password: str) -> str:
    return _password_context().hash(password)


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    if not hashed_password:
        return False
    try:
        return _password_context().verify(plain_password, hashed_password)
    except ValueError as exc:
        logger.warning("Stored password hash could not be verified: {error}", error=exc)
        return False


# ============================================================================
# Tokens
# ============================================================================


def create_token(
    purpose: TokenPurpose,
    *,
    user_id: int,
    email: str,
    extra: dict[str, Any] | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Sign a JWT bound to ``purpose``; every token carries a unique ``jti``."""
    settings = get_settings()
    if expires_delta is None:
        expires_delta = TOKEN_LIFETIMES.get(purpose, timedelta(minutes=settings.session_expires_minutes))
    claims: dict[str, Any] = {
        "sub": str(user_id),
        "email": email,
        "purpose": purpose.value,
        "jti": generate(size=21),
        "exp": datetime.now(timezone.utc) + expires_delta,
    }
    if extra:
        claims.update(extra)
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str, purpose: TokenPurpose) -> dict[str, Any]:
    settings = get_settings()
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError as exc:
        raise UnauthorizedError("Token has expired") from exc
    except JWTError as exc:
        logger.debug("Rejected token: {error}", error=exc)
        raise UnauthorizedError("Invalid token") from exc

    if claims.get("purpose") != purpose.value:
        raise UnauthorizedError("Invalid token purpose")
    try:
        claims["sub"] = int(claims["sub"])
    except (KeyError, TypeError, ValueError) as exc:
        raise UnauthorizedError("Invalid token") from exc
    return claims


def create_access_token(*, user_id: int, email: str, role: Role | str, expires_delta: timedelta | None = None) -> str:
    return create_token(
        TokenPurpose.SESSION,
        user_id=user_id,
        email=email,
        extra={"role": Role(role).value},
        expires_delta=expires_delta,
    )


def decode_access_token(token: str) -> Principal:
    claims = decode_token(token, TokenPurpose.SESSION)
    try:
        return Principal(id=claims["sub"], email=claims["email"], role=claims["role"])
    except (KeyError, ValueError) as exc:
        raise UnauthorizedError("Invalid token") from exc


# ============================================================================
# FastAPI dependencies
# ============================================================================


def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Principal:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthorizedError("Missing bearer token")
    return decode_access_token(credentials.credentials)


def require_roles(*roles: Role) -> Callable[..., Principal]:
    allowed = set(roles)

    def dependency(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in allowed:
            raise ForbiddenError("You do not have permission to perform this action")
        return principal

    return dependency
