"""Appointment state machine.

    pending --(mechanic accepts)--> accepted
    pending --(mechanic rejects, reason required)--> rejected

Cancellation is not a status: a client deletes a pending or accepted
appointment and the record disappears. Every entry point that changes an
appointment goes through ``transition`` or ``ensure_cancellable``.
"""

from __future__ import annotations

from app.core.errors import ForbiddenError, InvalidRequestError, StateConflictError
from app.models import AppointmentStatus, Role

TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset({AppointmentStatus.ACCEPTED, AppointmentStatus.REJECTED}),
    AppointmentStatus.ACCEPTED: frozenset(),
    AppointmentStatus.REJECTED: frozenset(),
}

CANCELLABLE = frozenset({AppointmentStatus.PENDING, AppointmentStatus.ACCEPTED})


def ensure_modifiable(current: AppointmentStatus | str) -> None:
    if AppointmentStatus(current) is not AppointmentStatus.PENDING:
        raise StateConflictError("Only pending appointments can be modified")


def transition(
    current: AppointmentStatus | str,
    requested: AppointmentStatus | str,
    actor_role: Role | str,
    rejection_reason: str | None = None,
) -> AppointmentStatus:
    current = AppointmentStatus(current)
    try:
        requested = AppointmentStatus(requested)
    except ValueError as exc:
        raise InvalidRequestError(f"Unknown appointment status '{requested}'") from exc

    ensure_modifiable(current)
    if requested not in TRANSITIONS[current]:
        raise InvalidRequestError(f"Cannot move an appointment from {current.value} to {requested.value}")
    if Role(actor_role) is not Role.MECHANIC:
        raise ForbiddenError("Only the assigned mechanic can accept or reject an appointment")
    if requested is AppointmentStatus.REJECTED and not (rejection_reason or "").strip():
        raise InvalidRequestError("Rejection reason is required when rejecting an appointment")
    return requested


def ensure_cancellable(current: AppointmentStatus | str) -> None:
    if AppointmentStatus(current) not in CANCELLABLE:
        raise StateConflictError("Only pending or accepted appointments can be cancelled")
