from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import commit_and_mail, get_auth_service, get_mail_queue, get_mail_sender, respond
from app.core.security import Principal, get_current_principal, require_roles
from app.models import Role
from app.schemas import (
    ApiResponse,
    CreateUserPayload,
    UpdateEmailPayload,
    UpdatePasswordPayload,
    UpdateProfilePayload,
    UpdateRolePayload,
    UserDetail,
)
from app.services.auth import AuthService
from app.services.db import get_db
from app.services.mail import MailQueue, MailSender
from app.services.users import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=ApiResponse[list[UserDetail]])
def list_users(
    role: Role | None = Query(default=None),
    _: Principal = Depends(get_current_principal),
    session: Session = Depends(get_db),
):
    users = UserService(session=session).list_users(role=role)
    return respond("Users retrieved successfully", [UserDetail.model_validate(user) for user in users])


@router.get("/me", response_model=ApiResponse[UserDetail])
def get_me(
    principal: Principal = Depends(get_current_principal),
    session: Session = Depends(get_db),
):
    user = UserService(session=session).find_by_id_or_throw(principal.id)
    return respond("User retrieved successfully", UserDetail.model_validate(user))


@router.patch("/me", response_model=ApiResponse[UserDetail])
def update_me(
    payload: UpdateProfilePayload,
    principal: Principal = Depends(get_current_principal),
    session: Session = Depends(get_db),
):
    user = UserService(session=session).update_profile(principal.id, name=payload.name)
    session.commit()
    return respond("Profile updated successfully", UserDetail.model_validate(user))


@router.patch("/me/password", response_model=ApiResponse[None])
def update_my_password(
    payload: UpdatePasswordPayload,
    principal: Principal = Depends(get_current_principal),
    session: Session = Depends(get_db),
):
    UserService(session=session).update_password(
        principal.id,
        current_password=payload.current_password,
        new_password=payload.new_password,
    )
    session.commit()
    return respond("Password changed successfully")


@router.patch("/me/email", response_model=ApiResponse[None])
def request_email_update(
    payload: UpdateEmailPayload,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(get_current_principal),
    auth: AuthService = Depends(get_auth_service),
    session: Session = Depends(get_db),
    mailer: MailQueue = Depends(get_mail_queue),
    sender: MailSender = Depends(get_mail_sender),
):
    auth.request_email_update(principal.id, password=payload.password, new_email=payload.new_email)
    commit_and_mail(session, mailer, background_tasks, sender)
    return respond(f"Confirmation email sent to {payload.new_email}")


@router.post("", status_code=status.HTTP_201_CREATED, response_model=ApiResponse[UserDetail])
def create_user(
    payload: CreateUserPayload,
    background_tasks: BackgroundTasks,
    _: Principal = Depends(require_roles(Role.ADMIN)),
    auth: AuthService = Depends(get_auth_service),
    session: Session = Depends(get_db),
    mailer: MailQueue = Depends(get_mail_queue),
    sender: MailSender = Depends(get_mail_sender),
):
    user = auth.register(name=payload.name, email=payload.email, password=payload.password, role=payload.role)
    commit_and_mail(session, mailer, background_tasks, sender)
    return respond("User created successfully", UserDetail.model_validate(user), status_code=status.HTTP_201_CREATED)


@router.patch("/{user_id}/role", response_model=ApiResponse[UserDetail])
def update_role(
    user_id: int,
    payload: UpdateRolePayload,
    principal: Principal = Depends(require_roles(Role.ADMIN)),
    session: Session = Depends(get_db),
):
    user = UserService(session=session).update_role(user_id, payload.role, acting_user_id=principal.id)
    session.commit()
    return respond("Role updated successfully", UserDetail.model_validate(user))


@router.delete("/{user_id}", response_model=ApiResponse[None])
def delete_user(
    user_id: int,
    principal: Principal = Depends(require_roles(Role.ADMIN)),
    session: Session = Depends(get_db),
):
    UserService(session=session).delete_user(user_id, acting_user_id=principal.id)
    session.commit()
    return respond("User deleted successfully")
