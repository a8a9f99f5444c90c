from __future__ import annotations

from pydantic import Field, field_validator

from app.schemas.common import CamelModel


class VehicleSummary(CamelModel):
    id: int
    license_plate: str
    brand: str
    model: str


class VehicleResponse(VehicleSummary):
    client_id: int
    year: int | None = None


class RegisterVehiclePayload(CamelModel):
    license_plate: str = Field(..., min_length=1, max_length=16)
    brand: str = Field(..., min_length=1, max_length=64)
    model: str = Field(..., min_length=1, max_length=64)
    year: int | None = Field(default=None, ge=1900, le=2100)

    @field_validator("license_plate")
    @classmethod
    def _normalize_plate(cls, value: str) -> str:
        cleaned = value.strip().replace(" ", "").upper()
        if not cleaned:
            raise ValueError("licensePlate is required")
        return cleaned
