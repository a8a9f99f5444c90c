from __future__ import annotations

import datetime as dt

from pydantic import Field, field_validator

from app.models import Appointment, AppointmentStatus
from app.schemas.common import CamelModel, UserDetail, UserSummary
from app.schemas.vehicle import VehicleSummary
from app.utils.time import normalize_hour


class CreateAppointmentPayload(CamelModel):
    mechanic_id: int
    vehicle_id: int
    schedule_id: int
    hour: str
    date: dt.date
    description: str = Field(default="", max_length=2000)

    @field_validator("hour")
    @classmethod
    def _normalize_hour(cls, value: str) -> str:
        return normalize_hour(value)


class UpdateAppointmentPayload(CamelModel):
    status: AppointmentStatus | None = None
    rejection_reason: str | None = Field(default=None, max_length=1000)


class RejectAppointmentPayload(CamelModel):
    rejection_reason: str = Field(..., max_length=1000)


class _AppointmentBase(CamelModel):
    id: int
    schedule_id: int
    date: dt.date
    hour: str
    description: str
    status: AppointmentStatus
    rejection_reason: str | None = None
    created_at: dt.datetime


class AppointmentForClient(_AppointmentBase):
    mechanic: UserSummary
    vehicle: VehicleSummary


class AppointmentForMechanic(_AppointmentBase):
    client: UserDetail
    vehicle: VehicleSummary


class AppointmentDetail(_AppointmentBase):
    client: UserSummary
    mechanic: UserSummary
    vehicle: VehicleSummary


def to_client_view(appointment: Appointment) -> AppointmentForClient:
    return AppointmentForClient.model_validate(appointment)


def to_mechanic_view(appointment: Appointment) -> AppointmentForMechanic:
    return AppointmentForMechanic.model_validate(appointment)


def to_detail_view(appointment: Appointment) -> AppointmentDetail:
    return AppointmentDetail.model_validate(appointment)
