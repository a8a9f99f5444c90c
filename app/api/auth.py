from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from fastapi.responses import RedirectResponse
from loguru import logger
from sqlalchemy.orm import Session

from app.api.deps import commit_and_mail, get_auth_service, get_mail_queue, get_mail_sender, respond
from app.core.config import get_settings
from app.core.errors import ForbiddenError, UnauthorizedError
from app.schemas import (
    ApiResponse,
    EmailPayload,
    LoginPayload,
    LoginResponse,
    NewPasswordPayload,
    RegisterPayload,
    ResetTokenResponse,
    UserDetail,
)
from app.services.auth import AuthService
from app.services.db import get_db
from app.services.mail import MailQueue, MailSender

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=ApiResponse[None])
def register(
    payload: RegisterPayload,
    background_tasks: BackgroundTasks,
    auth: AuthService = Depends(get_auth_service),
    session: Session = Depends(get_db),
    mailer: MailQueue = Depends(get_mail_queue),
    sender: MailSender = Depends(get_mail_sender),
):
    logger.debug("Registration request for {email}", email=payload.email)
    auth.register(name=payload.name, email=payload.email, password=payload.password)
    commit_and_mail(session, mailer, background_tasks, sender)
    return respond(f"Confirmation email sent to {payload.email}", status_code=status.HTTP_201_CREATED)


@router.post("/login", response_model=ApiResponse[LoginResponse])
def login(
    payload: LoginPayload,
    auth: AuthService = Depends(get_auth_service),
    session: Session = Depends(get_db),
):
    try:
        token, user = auth.login(email=payload.email, password=payload.password)
    except (UnauthorizedError, ForbiddenError):
        # the failure counter and a possible lock outlive the rejected attempt
        session.commit()
        raise
    session.commit()
    data = LoginResponse(access_token=token, user=UserDetail.model_validate(user))
    return respond("Login successful", data)


@router.post("/request-password-reset", response_model=ApiResponse[None])
def request_password_reset(
    payload: EmailPayload,
    background_tasks: BackgroundTasks,
    auth: AuthService = Depends(get_auth_service),
    session: Session = Depends(get_db),
    mailer: MailQueue = Depends(get_mail_queue),
    sender: MailSender = Depends(get_mail_sender),
):
    auth.request_password_reset(payload.email)
    commit_and_mail(session, mailer, background_tasks, sender)
    return respond("If your email is registered and is confirmed, a link was sent")


@router.post("/reset-password", response_model=ApiResponse[None])
def reset_password(
    payload: NewPasswordPayload,
    token: str = Query(...),
    auth: AuthService = Depends(get_auth_service),
    session: Session = Depends(get_db),
):
    auth.reset_password(token, payload.new_password)
    session.commit()
    return respond("Password changed successfully")


@router.post("/reset-password-after-revert", response_model=ApiResponse[None])
def reset_password_after_revert(
    payload: NewPasswordPayload,
    token: str = Query(...),
    auth: AuthService = Depends(get_auth_service),
    session: Session = Depends(get_db),
):
    auth.reset_password_after_revert(token, payload.new_password)
    session.commit()
    return respond("Password changed successfully")


@router.post("/request-unlock", response_model=ApiResponse[None])
def request_unlock(
    payload: EmailPayload,
    background_tasks: BackgroundTasks,
    auth: AuthService = Depends(get_auth_service),
    session: Session = Depends(get_db),
    mailer: MailQueue = Depends(get_mail_queue),
    sender: MailSender = Depends(get_mail_sender),
):
    auth.request_unlock(payload.email)
    commit_and_mail(session, mailer, background_tasks, sender)
    return respond("If your email is registered and is locked, a link was sent")


@router.get("/confirm-email")
def confirm_email(
    token: str = Query(...),
    auth: AuthService = Depends(get_auth_service),
    session: Session = Depends(get_db),
):
    auth.confirm_email(token)
    session.commit()
    client_urls = get_settings().client_urls
    frontend = client_urls[0] if client_urls else "http://localhost:3001"
    return RedirectResponse(f"{frontend}?emailConfirmed=true", status_code=status.HTTP_302_FOUND)


@router.get("/confirm-email-update", response_model=ApiResponse[None])
def confirm_email_update(
    background_tasks: BackgroundTasks,
    token: str = Query(...),
    auth: AuthService = Depends(get_auth_service),
    session: Session = Depends(get_db),
    mailer: MailQueue = Depends(get_mail_queue),
    sender: MailSender = Depends(get_mail_sender),
):
    auth.confirm_email_update(token)
    commit_and_mail(session, mailer, background_tasks, sender)
    return respond("Email changed successfully")


@router.get("/revert-email", response_model=ApiResponse[ResetTokenResponse])
def revert_email(
    token: str = Query(...),
    auth: AuthService = Depends(get_auth_service),
    session: Session = Depends(get_db),
):
    reset_token = auth.revert_email(token)
    session.commit()
    return respond("Email reverted successfully", ResetTokenResponse(reset_token=reset_token))


@router.get("/unlock-account", response_model=ApiResponse[None])
def unlock_account(
    token: str = Query(...),
    auth: AuthService = Depends(get_auth_service),
    session: Session = Depends(get_db),
):
    auth.unlock_account(token)
    session.commit()
    return respond("Your account has been unlocked. You can now log in")
