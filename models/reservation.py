"""
Data models for reservations, wallets and availability decisions.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from .battery import BatteryModel
from .enums import ACTIVE_RESERVATION_STATUSES, RejectionReason, ReservationStatus

BOOKING_CODE_MAX_LENGTH = 20


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Reservation(BaseModel):
    """A driver's claim on one battery of a model at a station for a pickup time.

    Never bound to a specific battery; the unit is picked at swap time.
    """

    reservation_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    booking_code: str = Field(max_length=BOOKING_CODE_MAX_LENGTH)
    user_id: str
    vehicle_id: str
    station_id: str
    battery_model: str
    scheduled_at: datetime
    is_instant: bool = False
    status: ReservationStatus = ReservationStatus.PENDING
    notes: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    confirmed_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None

    @field_validator("scheduled_at")
    @classmethod
    def _ensure_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def requested_model(self) -> BatteryModel:
        return BatteryModel(self.battery_model)

    def is_active(self) -> bool:
        return self.status in ACTIVE_RESERVATION_STATUSES

    def append_note(self, note: str) -> None:
        self.notes = f"{self.notes}\n{note}" if self.notes else note


class Wallet(BaseModel):
    """Per-user balance, created lazily on first debit."""

    user_id: str
    balance: Decimal = Decimal("0")
    updated_at: datetime = Field(default_factory=_utcnow)


class CancellationResult(BaseModel):
    reservation: Reservation
    cancellation_fee: Decimal = Decimal("0")
    wallet_balance: Decimal | None = None  # Only set when a fee was charged


@dataclass(frozen=True)
class InventorySnapshot:
    """Battery counts of one model at one station, read once per request."""

    station_id: str
    model: BatteryModel
    full_count: int
    charging_count: int
    total_of_model: int
    models_present: tuple[str, ...] = ()

    @property
    def has_model(self) -> bool:
        return self.total_of_model > 0


@dataclass(frozen=True)
class AvailabilityWindow:
    """Closed interval [start, end] used to count competing reservations."""

    start: datetime
    end: datetime

    def contains(self, ts: datetime) -> bool:
        return self.start <= ts <= self.end


@dataclass(frozen=True)
class AvailabilityDecision:
    """Outcome of an admission check, with the counts that produced it."""

    admitted: bool
    station_id: str
    model: BatteryModel
    is_instant: bool
    window: AvailabilityWindow | None = None
    reason: RejectionReason | None = None
    full_count: int = 0
    charging_count: int = 0
    reserved_count: int = 0
    message: str = ""

    @property
    def total_available(self) -> int:
        return self.full_count + self.charging_count

    @property
    def headroom(self) -> int:
        return self.total_available - self.reserved_count

    def breakdown(self) -> dict[str, int]:
        return {
            "full": self.full_count,
            "charging": self.charging_count,
            "reserved": self.reserved_count,
            "total_available": self.total_available,
            "headroom": self.headroom,
        }
