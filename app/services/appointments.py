from __future__ import annotations

from datetime import date

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.core.errors import ForbiddenError, InvalidRequestError, NotFoundError
from app.models import Appointment, AppointmentStatus, NotificationType, Role
from app.schemas.appointment import CreateAppointmentPayload
from app.services.appointment_status import ensure_cancellable, ensure_modifiable, transition
from app.services.notifications import NotificationQueue, NotificationRequest
from app.services.schedules import ScheduleService
from app.services.users import UserService
from app.services.vehicles import VehicleService

_RELATIONS = (
    selectinload(Appointment.client),
    selectinload(Appointment.mechanic),
    selectinload(Appointment.vehicle),
)


class AppointmentManager:
    """Booking, listing and the pending -> accepted/rejected lifecycle.

    Every mutation runs inside the caller's session, so the slot
    reservation/release and the appointment write commit or roll back
    together. Notifications are only queued here; delivery happens after
    commit and can never undo the mutation.
    """

    def __init__(
        self,
        *,
        session: Session,
        schedule_service: ScheduleService,
        user_service: UserService,
        vehicle_service: VehicleService,
        notifier: NotificationQueue,
    ) -> None:
        self.session = session
        self.schedule_service = schedule_service
        self.user_service = user_service
        self.vehicle_service = vehicle_service
        self.notifier = notifier

    def create_appointment(self, client_id: int, payload: CreateAppointmentPayload) -> Appointment:
        mechanic = self.user_service.find_by_id_or_throw(payload.mechanic_id)
        if not mechanic.is_mechanic:
            raise InvalidRequestError("The selected user is not a mechanic")

        vehicle = self.vehicle_service.find_one(payload.vehicle_id)
        self.vehicle_service.ensure_owner(
            vehicle, client_id, message="You cannot book appointments for vehicles you do not own"
        )

        schedule = self.schedule_service.get_schedule_by_id(payload.schedule_id)
        if payload.hour not in schedule.available_hours:
            raise InvalidRequestError("The selected hour is not available")
        if schedule.mechanic_id != mechanic.id:
            raise InvalidRequestError("The selected schedule does not belong to this mechanic")
        if schedule.date != payload.date:
            raise InvalidRequestError("The selected date does not match the schedule")

        appointment = Appointment(
            client_id=client_id,
            mechanic_id=mechanic.id,
            vehicle_id=vehicle.id,
            schedule_id=schedule.id,
            date=payload.date,
            hour=payload.hour,
            description=payload.description,
            status=AppointmentStatus.PENDING.value,
        )
        self.session.add(appointment)
        # Raises SlotConflictError if a concurrent booking got the slot first;
        # the session rollback then discards the appointment as well.
        self.schedule_service.take_hour(schedule.id, payload.hour)
        self.session.flush()
        logger.info(
            "Booked appointment id={appointment_id} mechanic={mechanic_id} date={day} hour={hour}",
            appointment_id=appointment.id,
            mechanic_id=mechanic.id,
            day=payload.date,
            hour=payload.hour,
        )

        self.notifier.emit(
            NotificationRequest(
                user_id=mechanic.id,
                type=NotificationType.APPOINTMENT_CREATED,
                title="New appointment booked",
                message=(
                    f"A client booked an appointment for vehicle {vehicle.license_plate} "
                    f"on {payload.date.isoformat()} at {payload.hour}"
                ),
                metadata={"appointmentId": appointment.id},
            )
        )
        return self._load(appointment.id)

    def list_appointments(
        self,
        *,
        user_id: int,
        role: Role,
        status: AppointmentStatus | None = None,
        client_id: int | None = None,
        mechanic_id: int | None = None,
        day: date | None = None,
    ) -> list[Appointment]:
        stmt = select(Appointment).options(*_RELATIONS)

        if role is Role.CLIENT:
            stmt = stmt.where(Appointment.client_id == user_id)
        elif role is Role.MECHANIC:
            stmt = stmt.where(Appointment.mechanic_id == user_id)

        if client_id is not None and role is not Role.CLIENT:
            stmt = stmt.where(Appointment.client_id == client_id)
        if mechanic_id is not None and role is not Role.MECHANIC:
            stmt = stmt.where(Appointment.mechanic_id == mechanic_id)
        # No status filter means every status, not just pending ones
        if status is not None:
            stmt = stmt.where(Appointment.status == status.value)
        if day is not None:
            stmt = stmt.where(Appointment.date == day)

        stmt = stmt.order_by(Appointment.date.asc(), Appointment.hour.asc(), Appointment.id.asc())
        return list(self.session.scalars(stmt))

    def get_appointment(self, appointment_id: int, *, user_id: int | None = None, role: Role | None = None) -> Appointment:
        appointment = self._load(appointment_id)
        if role is Role.CLIENT and appointment.client_id != user_id:
            raise ForbiddenError("You cannot view appointments that do not belong to you")
        if role is Role.MECHANIC and appointment.mechanic_id != user_id:
            raise ForbiddenError("You cannot view appointments that have not been assigned to you")
        return appointment

    def update_appointment(
        self,
        appointment_id: int,
        *,
        user_id: int,
        role: Role,
        status: AppointmentStatus | None = None,
        rejection_reason: str | None = None,
    ) -> Appointment:
        appointment = self._load(appointment_id)
        if role is Role.MECHANIC:
            self._ensure_assigned(appointment, user_id)
        elif role is Role.CLIENT:
            self._ensure_owned(appointment, user_id, "You cannot modify appointments that do not belong to you")
        else:
            raise ForbiddenError("Only the client or the assigned mechanic can modify an appointment")

        if status is None:
            ensure_modifiable(appointment.status)
            return appointment
        return self._apply_transition(appointment, status, role, rejection_reason)

    def accept_appointment(self, appointment_id: int, mechanic_id: int) -> Appointment:
        appointment = self._load(appointment_id)
        self._ensure_assigned(appointment, mechanic_id)
        return self._apply_transition(appointment, AppointmentStatus.ACCEPTED, Role.MECHANIC, None)

    def reject_appointment(self, appointment_id: int, mechanic_id: int, rejection_reason: str) -> Appointment:
        appointment = self._load(appointment_id)
        self._ensure_assigned(appointment, mechanic_id)
        return self._apply_transition(appointment, AppointmentStatus.REJECTED, Role.MECHANIC, rejection_reason)

    def cancel_appointment(self, appointment_id: int, client_id: int) -> None:
        appointment = self._load(appointment_id)
        self._ensure_owned(appointment, client_id, "You cannot cancel appointments that do not belong to you")
        ensure_cancellable(appointment.status)

        schedule_id, hour, mechanic_id = appointment.schedule_id, appointment.hour, appointment.mechanic_id
        label = f"{appointment.date.isoformat()} at {hour}"
        self.session.delete(appointment)
        self.session.flush()
        self.schedule_service.add_hour_to_schedule(schedule_id, hour)
        logger.info("Cancelled appointment id={appointment_id}, released {hour}", appointment_id=appointment_id, hour=hour)

        self.notifier.emit(
            NotificationRequest(
                user_id=mechanic_id,
                type=NotificationType.APPOINTMENT_CANCELLED,
                title="Appointment cancelled",
                message=f"The client cancelled the appointment on {label}",
                metadata={"appointmentId": appointment_id},
            )
        )

    def _apply_transition(
        self,
        appointment: Appointment,
        requested: AppointmentStatus,
        role: Role,
        rejection_reason: str | None,
    ) -> Appointment:
        new_status = transition(appointment.status, requested, role, rejection_reason)
        appointment.status = new_status.value

        if new_status is AppointmentStatus.REJECTED:
            appointment.rejection_reason = rejection_reason
            self.schedule_service.add_hour_to_schedule(appointment.schedule_id, appointment.hour)
            notification = NotificationRequest(
                user_id=appointment.client_id,
                type=NotificationType.APPOINTMENT_REJECTED,
                title="Appointment rejected",
                message=f"Your appointment has been rejected. Reason: {rejection_reason}",
                metadata={"appointmentId": appointment.id},
            )
        else:
            notification = NotificationRequest(
                user_id=appointment.client_id,
                type=NotificationType.APPOINTMENT_ACCEPTED,
                title="Appointment accepted",
                message=(
                    f"Your appointment for vehicle {appointment.vehicle.license_plate} "
                    "has been accepted by the mechanic"
                ),
                metadata={"appointmentId": appointment.id},
            )

        self.session.flush()
        logger.info(
            "Appointment id={appointment_id} moved to {status}",
            appointment_id=appointment.id,
            status=new_status.value,
        )
        self.notifier.emit(notification)
        return appointment

    def _load(self, appointment_id: int) -> Appointment:
        stmt = select(Appointment).options(*_RELATIONS).where(Appointment.id == appointment_id)
        appointment = self.session.scalars(stmt).first()
        if not appointment:
            raise NotFoundError("Appointment not found")
        return appointment

    @staticmethod
    def _ensure_assigned(appointment: Appointment, mechanic_id: int) -> None:
        if appointment.mechanic_id != mechanic_id:
            raise ForbiddenError("You cannot modify appointments that have not been assigned to you")

    @staticmethod
    def _ensure_owned(appointment: Appointment, client_id: int, message: str) -> None:
        if appointment.client_id != client_id:
            raise ForbiddenError(message)
