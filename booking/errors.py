"""
Error taxonomy for the reservation engine.

Each error carries the status code an HTTP layer would surface and an
optional ``details`` dict with the diagnostic breakdown.
"""

from typing import Any

from models.enums import RejectionReason


class ReservationError(Exception):
    status_code = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "status_code": self.status_code,
            "details": self.details,
        }


class ValidationError(ReservationError):
    """Missing or malformed input, or a time outside policy bounds."""

    status_code = 400


class NotFoundError(ReservationError):
    """Vehicle, station or reservation absent, or not owned by the caller."""

    status_code = 404


class ConflictError(ReservationError):
    """Request is well-formed but cannot be honoured in the current state."""

    status_code = 400

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        reason: RejectionReason | None = None,
    ):
        super().__init__(message, details)
        self.reason = reason


class InternalError(ReservationError):
    """Storage or other unexpected failure. The caller only sees a generic message."""

    status_code = 500

    def __init__(self, message: str = "Internal error while processing reservation", details: dict[str, Any] | None = None):
        super().__init__(message, details)


class DuplicateBookingCodeError(InternalError):
    """Raised by storage when a booking code is already taken. Callers retry with a fresh code."""

    def __init__(self, code: str):
        super().__init__(f"Booking code {code} is already in use", details={"booking_code": code})
        self.code = code
