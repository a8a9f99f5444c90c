from __future__ import annotations

from app.schemas.common import CamelModel, UserDetail
from app.schemas.user import EmailAddress, Name, Password, StrongPassword


class RegisterPayload(CamelModel):
    name: Name
    email: EmailAddress
    password: StrongPassword


class LoginPayload(CamelModel):
    email: EmailAddress
    password: Password


class EmailPayload(CamelModel):
    email: EmailAddress


class NewPasswordPayload(CamelModel):
    new_password: StrongPassword


class LoginResponse(CamelModel):
    access_token: str
    user: UserDetail


class ResetTokenResponse(CamelModel):
    reset_token: str
