from __future__ import annotations

from datetime import date

from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.orm import Session, selectinload

from app.core.errors import InvalidRequestError, NotFoundError, SlotConflictError
from app.models import Schedule, ScheduleSlot


class ScheduleService:
    """Mechanic availability: one schedule per mechanic and day, one row per free hour."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_schedule_by_id(self, schedule_id: int) -> Schedule:
        stmt = select(Schedule).options(selectinload(Schedule.slots)).where(Schedule.id == schedule_id)
        schedule = self.session.scalars(stmt).first()
        if not schedule:
            raise NotFoundError(f"Schedule with ID {schedule_id} not found")
        return schedule

    def list_schedules(self, *, mechanic_id: int | None = None, day: date | None = None) -> list[Schedule]:
        stmt = select(Schedule).options(selectinload(Schedule.slots)).order_by(Schedule.date, Schedule.id)
        if mechanic_id is not None:
            stmt = stmt.where(Schedule.mechanic_id == mechanic_id)
        if day is not None:
            stmt = stmt.where(Schedule.date == day)
        return list(self.session.scalars(stmt))

    def create_schedule(self, *, mechanic_id: int, day: date, hours: list[str]) -> Schedule:
        existing = self.session.scalars(
            select(Schedule).where(Schedule.mechanic_id == mechanic_id, Schedule.date == day)
        ).first()
        if existing:
            raise InvalidRequestError(f"A schedule for {day.isoformat()} already exists")

        schedule = Schedule(mechanic_id=mechanic_id, date=day)
        schedule.slots = [ScheduleSlot(hour=hour) for hour in sorted(set(hours))]
        self.session.add(schedule)
        self.session.flush()
        logger.info(
            "Created schedule id={schedule_id} mechanic={mechanic_id} date={day} hours={count}",
            schedule_id=schedule.id,
            mechanic_id=mechanic_id,
            day=day,
            count=len(schedule.slots),
        )
        return schedule

    def take_hour(self, schedule_id: int, hour: str) -> None:
        """Reserve ``hour`` by deleting its slot row.

        The delete is conditional on the row still existing, so when two
        bookings race for the same slot only one of them removes a row and the
        other gets ``SlotConflictError``.
        """
        self._ensure_exists(schedule_id)
        result = self.session.execute(
            delete(ScheduleSlot).where(ScheduleSlot.schedule_id == schedule_id, ScheduleSlot.hour == hour)
        )
        if result.rowcount != 1:
            logger.warning("Slot {hour} of schedule {schedule_id} was already taken", hour=hour, schedule_id=schedule_id)
            raise SlotConflictError("The selected hour is no longer available")
        self._expire_slots(schedule_id)

    def remove_hour_from_schedule(self, schedule_id: int, hour: str) -> None:
        self._ensure_exists(schedule_id)
        self.session.execute(
            delete(ScheduleSlot).where(ScheduleSlot.schedule_id == schedule_id, ScheduleSlot.hour == hour)
        )
        self._expire_slots(schedule_id)

    def add_hour_to_schedule(self, schedule_id: int, hour: str) -> None:
        self._ensure_exists(schedule_id)
        present = self.session.scalars(
            select(ScheduleSlot.id).where(ScheduleSlot.schedule_id == schedule_id, ScheduleSlot.hour == hour)
        ).first()
        if present is not None:
            return
        self.session.add(ScheduleSlot(schedule_id=schedule_id, hour=hour))
        self.session.flush()
        self._expire_slots(schedule_id)

    def _ensure_exists(self, schedule_id: int) -> None:
        if self.session.get(Schedule, schedule_id) is None:
            raise NotFoundError(f"Schedule with ID {schedule_id} not found")

    def _expire_slots(self, schedule_id: int) -> None:
        # Bulk deletes bypass the identity map; reload the collection on next access
        schedule = self.session.get(Schedule, schedule_id)
        if schedule is not None:
            self.session.expire(schedule, ["slots"])
