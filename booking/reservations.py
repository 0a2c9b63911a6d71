"""
Reservation state machine and the operations exposed to callers.

    pending   -> confirmed | cancelled
    confirmed -> completed | cancelled
    completed, cancelled: terminal

Admission (availability read + insert) runs under the per-(station, model)
lock; cancellation runs inside a store transaction together with any fee
debit. Notifications are published after the state change has committed
and never affect its outcome.
"""

import logging
import re
from datetime import datetime
from decimal import Decimal
from typing import Any

from config.config import ReservationPolicyConfig
from models.battery import BatteryModel
from models.enums import NotificationType, ReservationStatus
from models.reservation import AvailabilityDecision, CancellationResult, Reservation
from utils.event_bus import EventBus
from utils.timeutils import Clock, parse_timestamp

from .availability import AvailabilityCalculator
from .base import BaseService
from .codes import BookingCodeGenerator
from .errors import ConflictError, NotFoundError, ValidationError
from .fees import CancellationPolicy
from .locks import ReservationLockRegistry

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.PENDING: frozenset({ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED}),
    ReservationStatus.CONFIRMED: frozenset({ReservationStatus.COMPLETED, ReservationStatus.CANCELLED}),
    ReservationStatus.COMPLETED: frozenset(),
    ReservationStatus.CANCELLED: frozenset(),
}

_IDENTIFIER_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)


def is_valid_identifier(value: Any) -> bool:
    return isinstance(value, str) and bool(_IDENTIFIER_RE.match(value))


def can_transition(current: ReservationStatus, target: ReservationStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def ensure_transition(reservation: Reservation, target: ReservationStatus) -> None:
    if not can_transition(reservation.status, target):
        raise ConflictError(
            f"Booking {reservation.booking_code} cannot move from "
            f"{reservation.status.value} to {target.value}",
            details={"from": reservation.status.value, "to": target.value},
        )


class ReservationService(BaseService):
    """Creates, edits, cancels, confirms and completes reservations."""

    service_name = "reservation-service"

    def __init__(
        self,
        store,
        event_bus: EventBus | None = None,
        config: ReservationPolicyConfig | None = None,
        clock: Clock | None = None,
        locks: ReservationLockRegistry | None = None,
        codes: BookingCodeGenerator | None = None,
    ):
        super().__init__(event_bus, clock)
        self.store = store
        self.config = config or ReservationPolicyConfig()
        self.locks = locks or ReservationLockRegistry()
        self.codes = codes or BookingCodeGenerator(store, self.config.code_max_attempts)
        self.availability = AvailabilityCalculator(store, config=self.config)
        self.cancellation = CancellationPolicy(self.config)

    # --- Driver operations ---

    async def create_reservation(
        self,
        user_id: str,
        vehicle_id: str,
        station_id: str,
        battery_model: str,
        scheduled_at: datetime | str | None = None,
        is_instant: bool = False,
        notes: str | None = None,
    ) -> Reservation:
        now = self.clock()
        try:
            if not vehicle_id or not station_id or not battery_model or (
                not is_instant and not scheduled_at
            ):
                raise ValidationError(
                    "Vehicle ID, station ID, battery model and scheduled time are required"
                    if not is_instant
                    else "Vehicle ID, station ID and battery model are required"
                )
            if not is_valid_identifier(vehicle_id):
                raise ValidationError("Invalid vehicle ID format")
            if not is_valid_identifier(station_id):
                raise ValidationError("Invalid station ID format")
            model = self._parse_model(battery_model)
            requested_at = None if is_instant else self._parse_scheduled_at(scheduled_at)

            vehicle = await self.store.get_vehicle(vehicle_id, user_id)
            if vehicle is None:
                raise NotFoundError("Vehicle not found or does not belong to user")
            station = await self.store.get_station(station_id)
            if station is None or not station.is_active():
                raise NotFoundError("Station not found or not active")
            if not model.matches(vehicle.battery_model):
                raise ConflictError(
                    f'Battery model "{battery_model}" is not compatible with your vehicle '
                    f'(requires "{vehicle.battery_model}")',
                    details={"requested": battery_model, "required": vehicle.battery_model},
                )

            if is_instant:
                target_time = now + self.config.instant_window
            else:
                self._check_lead_time(requested_at, now)
                target_time = requested_at

            async with self.locks.hold(station_id, model):
                decision = await self.availability.require(
                    station_id, model, target_time, is_instant, now
                )
                reservation = await self.codes.insert_with_code(
                    lambda code: Reservation(
                        booking_code=code,
                        user_id=user_id,
                        vehicle_id=vehicle_id,
                        station_id=station_id,
                        battery_model=battery_model,
                        scheduled_at=target_time,
                        is_instant=is_instant,
                        status=ReservationStatus.PENDING,
                        notes=notes,
                        created_at=now,
                        updated_at=now,
                    ),
                    is_instant,
                    now,
                )
        except Exception as e:
            self.handle_exception(
                e, {"operation": "create_reservation", "user_id": user_id, "station_id": station_id}
            )

        logger.info(
            f"Created {'instant' if is_instant else 'scheduled'} booking {reservation.booking_code} "
            f"for user {user_id} at {station_id} ({model.normalized} @ {target_time.isoformat()})"
        )
        await self.publish_event(
            NotificationType.BOOKING_CREATED,
            reservation,
            {"station_name": station.name, "station_address": station.address,
             "availability": decision.breakdown()},
        )
        return reservation

    async def update_reservation(
        self,
        user_id: str,
        reservation_id: str,
        scheduled_at: datetime | str | None = None,
        notes: str | None = None,
    ) -> Reservation:
        """
        Edit a pending reservation's pickup time and/or notes.

        Availability is re-checked for a new pickup time only when
        ``recheck_availability_on_update`` is enabled.
        """
        now = self.clock()
        try:
            new_time = None if scheduled_at is None else self._parse_scheduled_at(scheduled_at)
            existing = await self._owned(user_id, reservation_id)
            if existing is None or existing.status != ReservationStatus.PENDING:
                raise NotFoundError("Booking not found or cannot be updated")
            if new_time is not None:
                if existing.is_instant:
                    raise ValidationError("Pickup time of an instant booking cannot be changed")
                self._check_lead_time(new_time, now)

            if new_time is not None and self.config.recheck_availability_on_update:
                async with self.locks.hold(existing.station_id, existing.requested_model):
                    await self.availability.require(
                        existing.station_id,
                        existing.requested_model,
                        new_time,
                        False,
                        now,
                        exclude_reservation_id=existing.reservation_id,
                    )
                    updated = await self._apply_update(reservation_id, new_time, notes, now)
            else:
                updated = await self._apply_update(reservation_id, new_time, notes, now)
        except Exception as e:
            self.handle_exception(
                e, {"operation": "update_reservation", "reservation_id": reservation_id}
            )

        logger.info(f"Updated booking {updated.booking_code}")
        return updated

    async def cancel_reservation(self, user_id: str, reservation_id: str) -> CancellationResult:
        now = self.clock()
        try:
            existing = await self._owned(user_id, reservation_id)
            if existing is None or not existing.is_active():
                raise NotFoundError("Booking not found or cannot be cancelled")

            async with self.store.transaction():
                current = await self.store.get_reservation(reservation_id)
                if current is None or not current.is_active() or current.user_id != user_id:
                    raise NotFoundError("Booking not found or cannot be cancelled")
                # Judged on the row read inside the transaction, after any concurrent edit
                self.cancellation.check_lockout(current, now)
                fee = self.cancellation.fee_for(current, now)
                cancelled = await self._transition(current, ReservationStatus.CANCELLED, now)
                balance = await self.cancellation.apply_fee(self.store, user_id, fee, now)
        except Exception as e:
            self.handle_exception(
                e, {"operation": "cancel_reservation", "reservation_id": reservation_id}
            )

        charged = fee if balance is not None else Decimal("0")
        logger.info(f"Cancelled booking {cancelled.booking_code} (fee {charged})")
        await self.publish_event(
            NotificationType.BOOKING_CANCELLED, cancelled, {"cancellation_fee": str(charged)}
        )
        return CancellationResult(
            reservation=cancelled, cancellation_fee=charged, wallet_balance=balance
        )

    async def get_reservation(self, user_id: str, reservation_id: str) -> Reservation:
        try:
            reservation = await self._owned(user_id, reservation_id)
            if reservation is None:
                raise NotFoundError("Booking not found")
        except Exception as e:
            self.handle_exception(
                e, {"operation": "get_reservation", "reservation_id": reservation_id}
            )
        return reservation

    async def list_user_reservations(
        self, user_id: str, status: ReservationStatus | None = None
    ) -> list[Reservation]:
        try:
            reservations = await self.store.list_user_reservations(user_id)
        except Exception as e:
            self.handle_exception(e, {"operation": "list_user_reservations", "user_id": user_id})
        if status is not None:
            reservations = [r for r in reservations if r.status == ReservationStatus(status)]
        return sorted(reservations, key=lambda r: r.scheduled_at, reverse=True)

    async def check_availability(
        self,
        station_id: str,
        battery_model: str,
        scheduled_at: datetime | str | None = None,
        is_instant: bool = False,
    ) -> AvailabilityDecision:
        """Read-only admission preview. Admits nothing."""
        now = self.clock()
        try:
            model = self._parse_model(battery_model)
            if is_instant:
                target_time = now + self.config.instant_window
            else:
                if scheduled_at is None:
                    raise ValidationError("Scheduled time is required")
                target_time = self._parse_scheduled_at(scheduled_at)
            return await self.availability.evaluate(station_id, model, target_time, is_instant, now)
        except Exception as e:
            self.handle_exception(
                e, {"operation": "check_availability", "station_id": station_id}
            )

    # --- Station staff operations ---

    async def confirm_reservation(self, reservation_id: str) -> Reservation:
        return await self._staff_transition(
            reservation_id, ReservationStatus.CONFIRMED, NotificationType.BOOKING_CONFIRMED
        )

    async def complete_reservation(self, reservation_id: str) -> Reservation:
        return await self._staff_transition(
            reservation_id, ReservationStatus.COMPLETED, NotificationType.BOOKING_COMPLETED
        )

    async def staff_cancel_reservation(
        self, reservation_id: str, reason: str | None = None
    ) -> Reservation:
        """Cancel on behalf of the driver: no lockout, no fee."""
        return await self._staff_transition(
            reservation_id,
            ReservationStatus.CANCELLED,
            NotificationType.BOOKING_CANCELLED,
            note=f"Cancelled by station staff: {reason}" if reason else None,
        )

    # --- Internals ---

    async def _staff_transition(
        self,
        reservation_id: str,
        target: ReservationStatus,
        notification: NotificationType,
        note: str | None = None,
    ) -> Reservation:
        now = self.clock()
        try:
            async with self.store.transaction():
                current = await self.store.get_reservation(reservation_id)
                if current is None:
                    raise NotFoundError("Booking not found")
                if note:
                    current.append_note(note)
                updated = await self._transition(current, target, now)
        except Exception as e:
            self.handle_exception(
                e, {"operation": f"transition_to_{target.value}", "reservation_id": reservation_id}
            )

        logger.info(f"Booking {updated.booking_code} is now {target.value}")
        await self.publish_event(notification, updated)
        return updated

    async def _transition(
        self, reservation: Reservation, target: ReservationStatus, now: datetime
    ) -> Reservation:
        ensure_transition(reservation, target)
        reservation.status = target
        if target == ReservationStatus.CONFIRMED:
            reservation.confirmed_at = now
        elif target == ReservationStatus.COMPLETED:
            reservation.completed_at = now
        elif target == ReservationStatus.CANCELLED:
            reservation.cancelled_at = now
        return await self.store.save_reservation(reservation, now)

    async def _apply_update(
        self, reservation_id: str, new_time: datetime | None, notes: str | None, now: datetime
    ) -> Reservation:
        async with self.store.transaction():
            current = await self.store.get_reservation(reservation_id)
            if current is None or current.status != ReservationStatus.PENDING:
                raise NotFoundError("Booking not found or cannot be updated")
            if new_time is not None:
                current.scheduled_at = new_time
            if notes is not None:
                current.notes = notes
            return await self.store.save_reservation(current, now)

    async def _owned(self, user_id: str, reservation_id: str) -> Reservation | None:
        reservation = await self.store.get_reservation(reservation_id)
        if reservation is None or reservation.user_id != user_id:
            return None
        return reservation

    @staticmethod
    def _parse_model(battery_model: str) -> BatteryModel:
        try:
            return BatteryModel(battery_model)
        except ValueError as e:
            raise ValidationError("Battery model is required") from e

    @staticmethod
    def _parse_scheduled_at(value: datetime | str) -> datetime:
        try:
            return parse_timestamp(value)
        except ValueError as e:
            raise ValidationError(
                "Invalid date format for scheduled_at. Please use ISO 8601 format "
                "(e.g., 2024-01-15T14:00:00Z)"
            ) from e

    def _check_lead_time(self, scheduled_at: datetime, now: datetime) -> None:
        if scheduled_at <= now:
            raise ValidationError("Scheduled time must be in the future")
        if scheduled_at < now + self.config.min_lead_time:
            raise ValidationError(
                f"Scheduled time must be at least {self.config.min_lead_time_minutes} minutes from now"
            )
        if scheduled_at > now + self.config.max_lead_time:
            raise ValidationError(
                f"Scheduled time cannot be more than {self.config.max_lead_time_hours} hours from now"
            )
