from __future__ import annotations

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import ForbiddenError, InvalidRequestError, NotFoundError
from app.models import Vehicle


class VehicleService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def find_one(self, vehicle_id: int) -> Vehicle:
        vehicle = self.session.get(Vehicle, vehicle_id)
        if not vehicle:
            raise NotFoundError(f"Vehicle with ID {vehicle_id} not found")
        return vehicle

    def list_for_client(self, client_id: int) -> list[Vehicle]:
        stmt = select(Vehicle).where(Vehicle.client_id == client_id).order_by(Vehicle.id)
        return list(self.session.scalars(stmt))

    def register_vehicle(
        self,
        *,
        client_id: int,
        license_plate: str,
        brand: str,
        model: str,
        year: int | None = None,
    ) -> Vehicle:
        existing = self.session.scalars(select(Vehicle).where(Vehicle.license_plate == license_plate)).first()
        if existing:
            raise InvalidRequestError(f"A vehicle with license plate {license_plate} is already registered")

        vehicle = Vehicle(client_id=client_id, license_plate=license_plate, brand=brand, model=model, year=year)
        self.session.add(vehicle)
        self.session.flush()
        logger.info("Registered vehicle id={vehicle_id} for client={client_id}", vehicle_id=vehicle.id, client_id=client_id)
        return vehicle

    @staticmethod
    def ensure_owner(vehicle: Vehicle, user_id: int, *, message: str = "You can only access your own vehicles") -> None:
        if vehicle.client_id != user_id:
            raise ForbiddenError(message)
