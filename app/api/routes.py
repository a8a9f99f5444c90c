from __future__ import annotations

from fastapi import APIRouter

from app.api import appointments, auth, notifications, schedules, users, vehicles

router = APIRouter()

router.include_router(auth.router)
router.include_router(appointments.router)
router.include_router(schedules.router)
router.include_router(vehicles.router)
router.include_router(notifications.router)
router.include_router(users.router)


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
