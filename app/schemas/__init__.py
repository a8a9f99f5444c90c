from .common import ApiResponse, CamelModel, UserDetail, UserSummary
from .vehicle import RegisterVehiclePayload, VehicleResponse, VehicleSummary
from .appointment import (
    AppointmentDetail,
    AppointmentForClient,
    AppointmentForMechanic,
    CreateAppointmentPayload,
    RejectAppointmentPayload,
    UpdateAppointmentPayload,
    to_client_view,
    to_detail_view,
    to_mechanic_view,
)
from .schedule import CreateSchedulePayload, ScheduleHourPayload, ScheduleResponse
from .user import (
    CreateUserPayload,
    UpdateEmailPayload,
    UpdatePasswordPayload,
    UpdateProfilePayload,
    UpdateRolePayload,
)
from .auth import (
    EmailPayload,
    LoginPayload,
    LoginResponse,
    NewPasswordPayload,
    RegisterPayload,
    ResetTokenResponse,
)
from .notification import NotificationResponse

__all__ = [
    "ApiResponse",
    "CamelModel",
    "UserDetail",
    "UserSummary",
    "RegisterVehiclePayload",
    "VehicleResponse",
    "VehicleSummary",
    "AppointmentDetail",
    "AppointmentForClient",
    "AppointmentForMechanic",
    "CreateAppointmentPayload",
    "RejectAppointmentPayload",
    "UpdateAppointmentPayload",
    "to_client_view",
    "to_detail_view",
    "to_mechanic_view",
    "CreateSchedulePayload",
    "ScheduleHourPayload",
    "ScheduleResponse",
    "CreateUserPayload",
    "UpdateEmailPayload",
    "UpdatePasswordPayload",
    "UpdateProfilePayload",
    "UpdateRolePayload",
    "EmailPayload",
    "LoginPayload",
    "LoginResponse",
    "NewPasswordPayload",
    "RegisterPayload",
    "ResetTokenResponse",
    "NotificationResponse",
]
