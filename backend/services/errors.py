"""Domain errors raised by services and tools; routes map them to JSON responses."""

from __future__ import annotations


class ServiceError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message}


class Unauthorized(ServiceError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(ServiceError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(ServiceError):
    status_code = 404
    default_message = "Not found"


class ValidationFailed(ServiceError):
    status_code = 400
    default_message = "Invalid request"


class Conflict(ServiceError):
    status_code = 400
    default_message = "Conflict"


class DuplicateRegistration(Conflict):
    default_message = "Already registered for this event"


class EventFull(Conflict):
    default_message = "Event is full"


class Internal(ServiceError):
    pass


class PaymentError(Internal):
    default_message = "Payment processor error"


__all__ = [
    "ServiceError",
    "Unauthorized",
    "Forbidden",
    "NotFound",
    "ValidationFailed",
    "Conflict",
    "DuplicateRegistration",
    "EventFull",
    "Internal",
    "PaymentError",
]
