from __future__ import annotations

import re
from typing import Annotated

from pydantic import AfterValidator, Field

from app.models import Role
from app.schemas.common import CamelModel

# bcrypt only looks at the first 72 bytes of a password
PASSWORD_MAX_LENGTH = 72
_PASSWORD_RULES = (r"[a-z]", r"[A-Z]", r"\d", r"[^A-Za-z0-9]")


def normalize_email(value: str) -> str:
    cleaned = value.strip().lower()
    local, _, domain = cleaned.partition("@")
    if not local or "." not in domain:
        raise ValueError("email is not valid")
    return cleaned


def ensure_strong_password(value: str) -> str:
    if len(value) < 8 or not all(re.search(rule, value) for rule in _PASSWORD_RULES):
        raise ValueError("Password must be at least 8 characters and include uppercase, lowercase, number, and symbol")
    return value


EmailAddress = Annotated[str, Field(max_length=255), AfterValidator(normalize_email)]
Password = Annotated[str, Field(min_length=1, max_length=PASSWORD_MAX_LENGTH)]
StrongPassword = Annotated[str, Field(max_length=PASSWORD_MAX_LENGTH), AfterValidator(ensure_strong_password)]
Name = Annotated[str, Field(min_length=1, max_length=128)]


class CreateUserPayload(CamelModel):
    name: Name
    email: EmailAddress
    password: StrongPassword
    role: Role = Role.CLIENT


class UpdateProfilePayload(CamelModel):
    name: Name


class UpdatePasswordPayload(CamelModel):
    current_password: Password
    new_password: StrongPassword


class UpdateEmailPayload(CamelModel):
    password: Password
    new_email: EmailAddress


class UpdateRolePayload(CamelModel):
    role: Role
