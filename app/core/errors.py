from __future__ import annotations

from fastapi import status


class AppError(Exception):
    """Base class for caller-facing errors raised by the service layer.

    Each subclass pins the HTTP status the global handler answers with, so
    services never import HTTP machinery themselves.
    """

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND


class InvalidRequestError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN


class StateConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT


class SlotConflictError(StateConflictError):
    """The requested hour was taken between the availability check and the reservation."""


class EmailConflictError(StateConflictError):
    pass
