"""
Base class for reservation services.
"""

import logging
from typing import Any, NoReturn

from models.enums import NotificationType
from models.events import ReservationEvent
from models.reservation import Reservation
from utils.event_bus import EventBus
from utils.timeutils import Clock, utc_now

from .errors import InternalError, ReservationError

logger_base = logging.getLogger(__name__)


class BaseService:
    """Shared event publishing and exception handling for services."""

    service_name = "service"

    def __init__(self, event_bus: EventBus | None = None, clock: Clock | None = None):
        self.event_bus = event_bus
        self.clock = clock or utc_now

    async def publish_event(
        self,
        event_type: NotificationType,
        reservation: Reservation,
        payload: dict[str, Any] | None = None,
    ) -> None:
        """Best-effort notification. Never raises."""
        if self.event_bus is None:
            logger_base.debug(f"{self.service_name} has no event bus; skipping {event_type.value}")
            return
        try:
            event = ReservationEvent(
                event_type=event_type,
                user_id=reservation.user_id,
                reservation_id=reservation.reservation_id,
                booking_code=reservation.booking_code,
                payload={
                    "station_id": reservation.station_id,
                    "battery_model": reservation.battery_model,
                    "scheduled_at": reservation.scheduled_at.isoformat(),
                    "is_instant": reservation.is_instant,
                    **(payload or {}),
                },
            )
            await self.event_bus.publish(event)
        except Exception as e:
            logger_base.error(
                f"Failed to publish {event_type.value} for booking {reservation.booking_code}: {e}"
            )

    def handle_exception(self, exception: Exception, context: dict[str, Any]) -> NoReturn:
        """Re-raise domain errors as-is; log anything else and raise InternalError."""
        if isinstance(exception, ReservationError):
            raise exception
        logger_base.error(
            f"Unexpected error in {self.service_name} ({type(exception).__name__}: {exception}); context={context}",
            exc_info=True,
        )
        raise InternalError(details={"operation": context.get("operation")}) from exception
