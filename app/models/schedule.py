from __future__ import annotations

from datetime import date

from sqlalchemy import Date, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from .user import User


class Schedule(Base):
    __table_args__ = (UniqueConstraint("mechanic_id", "date", name="uq_schedules_mechanic_id_date"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    mechanic_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    date: Mapped[date] = mapped_column(Date, nullable=False)

    mechanic: Mapped[User] = relationship()
    slots: Mapped[list[ScheduleSlot]] = relationship(
        back_populates="schedule",
        cascade="all, delete-orphan",
        order_by="ScheduleSlot.hour",
    )

    @property
    def available_hours(self) -> list[str]:
        return sorted(slot.hour for slot in self.slots)


class ScheduleSlot(Base):
    """One bookable hour of a schedule. Booking deletes the row, release re-inserts it."""

    __table_args__ = (UniqueConstraint("schedule_id", "hour", name="uq_scheduleslots_schedule_id_hour"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    schedule_id: Mapped[int] = mapped_column(ForeignKey("schedules.id", ondelete="CASCADE"), nullable=False)
    hour: Mapped[str] = mapped_column(String(5), nullable=False)

    schedule: Mapped[Schedule] = relationship(back_populates="slots")
