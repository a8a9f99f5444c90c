from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import respond
from app.core.security import Principal, get_current_principal
from app.schemas import ApiResponse, NotificationResponse
from app.services.db import get_db
from app.services.notifications import NotificationService

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=ApiResponse[list[NotificationResponse]])
def list_notifications(
    unread_only: bool = Query(default=False, alias="unreadOnly"),
    principal: Principal = Depends(get_current_principal),
    session: Session = Depends(get_db),
):
    notifications = NotificationService(session=session).list_for_user(principal.id, unread_only=unread_only)
    data = [NotificationResponse.model_validate(n) for n in notifications]
    return respond("Notifications retrieved successfully", data)


@router.patch("/{notification_id}/read", response_model=ApiResponse[NotificationResponse])
def mark_notification_read(
    notification_id: int,
    principal: Principal = Depends(get_current_principal),
    session: Session = Depends(get_db),
):
    notification = NotificationService(session=session).mark_as_read(notification_id, principal.id)
    return respond("Notification marked as read", NotificationResponse.model_validate(notification))
