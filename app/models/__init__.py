from .base import Base
from .user import Role, User
from .vehicle import Vehicle
from .schedule import Schedule, ScheduleSlot
from .appointment import Appointment, AppointmentStatus
from .notification import Notification, NotificationType
from .token import UsedToken

__all__ = [
    "Base",
    "Role",
    "User",
    "Vehicle",
    "Schedule",
    "ScheduleSlot",
    "Appointment",
    "AppointmentStatus",
    "Notification",
    "NotificationType",
    "UsedToken",
]
