from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import respond
from app.core.security import Principal, require_roles
from app.models import Role
from app.schemas import ApiResponse, RegisterVehiclePayload, VehicleResponse
from app.services.db import get_db
from app.services.vehicles import VehicleService

router = APIRouter(prefix="/vehicles", tags=["vehicles"])


@router.get("", response_model=ApiResponse[list[VehicleResponse]])
def list_vehicles(
    principal: Principal = Depends(require_roles(Role.CLIENT)),
    session: Session = Depends(get_db),
):
    vehicles = VehicleService(session=session).list_for_client(principal.id)
    return respond("Vehicles retrieved successfully", [VehicleResponse.model_validate(v) for v in vehicles])


@router.get("/{vehicle_id}", response_model=ApiResponse[VehicleResponse])
def get_vehicle(
    vehicle_id: int,
    principal: Principal = Depends(require_roles(Role.CLIENT)),
    session: Session = Depends(get_db),
):
    service = VehicleService(session=session)
    vehicle = service.find_one(vehicle_id)
    service.ensure_owner(vehicle, principal.id)
    return respond("Vehicle retrieved successfully", VehicleResponse.model_validate(vehicle))


@router.post("", status_code=status.HTTP_201_CREATED, response_model=ApiResponse[VehicleResponse])
def register_vehicle(
    payload: RegisterVehiclePayload,
    principal: Principal = Depends(require_roles(Role.CLIENT)),
    session: Session = Depends(get_db),
):
    vehicle = VehicleService(session=session).register_vehicle(
        client_id=principal.id,
        license_plate=payload.license_plate,
        brand=payload.brand,
        model=payload.model,
        year=payload.year,
    )
    return respond(
        "Vehicle registered successfully",
        VehicleResponse.model_validate(vehicle),
        status_code=status.HTTP_201_CREATED,
    )
