"""
Periodic sweeps over active reservations: no-show auto-cancellation and
pickup reminders. Both are plain coroutines; scheduling them (e.g. every
five minutes) is left to the caller.
"""

import logging
from datetime import datetime, timedelta

from config.config import ReservationPolicyConfig
from models.enums import NotificationType, ReservationStatus
from models.reservation import Reservation
from utils.event_bus import EventBus
from utils.timeutils import Clock

from .base import BaseService
from .errors import ReservationError
from .reservations import ensure_transition

logger = logging.getLogger(__name__)


class ReservationSweeper(BaseService):
    service_name = "reservation-sweeper"

    def __init__(
        self,
        store,
        event_bus: EventBus | None = None,
        config: ReservationPolicyConfig | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(event_bus, clock)
        self.store = store
        self.config = config or ReservationPolicyConfig()

    def _no_show_note(self, reservation: Reservation) -> str:
        kind = "Instant booking" if reservation.is_instant else "Booking"
        return (
            f"Auto-cancelled: {kind} expired - driver did not arrive within "
            f"{self.config.no_show_grace_minutes} minutes of the scheduled time."
        )

    async def auto_cancel_no_shows(self) -> list[Reservation]:
        """Cancel active reservations whose pickup time passed more than the grace period ago."""
        now = self.clock()
        cutoff = now - self.config.no_show_grace
        candidates = [
            r for r in await self.store.list_active_reservations() if r.scheduled_at <= cutoff
        ]
        if not candidates:
            logger.debug("No expired bookings to cancel")
            return []

        cancelled: list[Reservation] = []
        for candidate in candidates:
            try:
                async with self.store.transaction():
                    current = await self.store.get_reservation(candidate.reservation_id)
                    if current is None or not current.is_active():
                        continue
                    ensure_transition(current, ReservationStatus.CANCELLED)
                    current.status = ReservationStatus.CANCELLED
                    current.cancelled_at = now
                    current.append_note(self._no_show_note(current))
                    saved = await self.store.save_reservation(current, now)
            except ReservationError as e:
                logger.error(f"Failed to auto-cancel booking {candidate.booking_code}: {e.message}")
                continue
            cancelled.append(saved)
            await self.publish_event(
                NotificationType.BOOKING_AUTO_CANCELLED,
                saved,
                {"cancelled_at": now.isoformat(), "previous_status": candidate.status.value},
            )

        logger.info(f"Auto-cancelled {len(cancelled)} expired booking(s)")
        return cancelled

    async def send_reminders(self) -> dict[str, int]:
        """Publish the 30-minute and 10-minute pickup reminders."""
        now = self.clock()
        active = await self.store.list_active_reservations()

        reminders = _due(
            active,
            now + timedelta(minutes=self.config.reminder_minutes),
            timedelta(minutes=self.config.reminder_tolerance_minutes),
        )
        final_reminders = _due(
            active,
            now + timedelta(minutes=self.config.final_reminder_minutes),
            timedelta(minutes=self.config.final_reminder_tolerance_minutes),
        )

        for reservation in reminders:
            await self.publish_event(
                NotificationType.BOOKING_REMINDER,
                reservation,
                {"minutes_before": self.config.reminder_minutes},
            )
        for reservation in final_reminders:
            await self.publish_event(
                NotificationType.BOOKING_FINAL_REMINDER,
                reservation,
                {"minutes_before": self.config.final_reminder_minutes},
            )

        logger.info(f"Sent {len(reminders)} reminders and {len(final_reminders)} final reminders")
        return {"reminders_sent": len(reminders), "final_reminders_sent": len(final_reminders)}


def _due(reservations: list[Reservation], target: datetime, tolerance: timedelta) -> list[Reservation]:
    return [r for r in reservations if target - tolerance <= r.scheduled_at <= target + tolerance]
