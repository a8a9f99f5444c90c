from __future__ import annotations

import datetime as dt

from pydantic import Field, field_validator

from app.schemas.common import CamelModel
from app.utils.time import normalize_hour


class ScheduleResponse(CamelModel):
    id: int
    mechanic_id: int
    date: dt.date
    available_hours: list[str]


class CreateSchedulePayload(CamelModel):
    date: dt.date
    hours: list[str] = Field(default_factory=list)

    @field_validator("hours")
    @classmethod
    def _normalize_hours(cls, value: list[str]) -> list[str]:
        return sorted({normalize_hour(hour) for hour in value})


class ScheduleHourPayload(CamelModel):
    hour: str

    @field_validator("hour")
    @classmethod
    def _normalize_hour(cls, value: str) -> str:
        return normalize_hour(value)
