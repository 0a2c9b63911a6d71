"""
Centralized Enum definitions for the project.
"""

from enum import Enum


class BatteryStatus(str, Enum):
    """Physical state of a battery unit at a station"""

    FULL = "full"
    CHARGING = "charging"
    IN_USE = "in_use"
    LOW = "low"
    MAINTENANCE = "maintenance"
    DAMAGED = "damaged"


class StationStatus(str, Enum):
    """Operating status of a swap station"""

    ACTIVE = "active"
    MAINTENANCE = "maintenance"
    CLOSED = "closed"


class ReservationStatus(str, Enum):
    """Possible reservation statuses"""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Statuses that hold a claim on inventory
ACTIVE_RESERVATION_STATUSES = (ReservationStatus.PENDING, ReservationStatus.CONFIRMED)


class RejectionReason(str, Enum):
    """Why the availability calculator refused a request"""

    NO_SUCH_MODEL = "no_such_model"
    NO_AVAILABILITY = "no_availability"


class NotificationType(str, Enum):
    """Event types published on the event bus for driver notifications"""

    BOOKING_CREATED = "booking_created"
    BOOKING_CONFIRMED = "booking_confirmed"
    BOOKING_COMPLETED = "booking_completed"
    BOOKING_CANCELLED = "booking_cancelled"
    BOOKING_AUTO_CANCELLED = "booking_auto_cancelled"
    BOOKING_REMINDER = "booking_reminder"
    BOOKING_FINAL_REMINDER = "booking_final_reminder"
