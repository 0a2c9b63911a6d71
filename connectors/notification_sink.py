"""
Module: connectors.notification_sink

In-memory notification delivery for reservation events. Stands in for the
email/push service; records one rendered message per event.
"""

import asyncio
import logging
from typing import Any

from models.enums import NotificationType
from models.events import ReservationEvent
from utils.event_bus import EventBus

logger = logging.getLogger(__name__)

_TITLES = {
    NotificationType.BOOKING_CREATED: "Booking received",
    NotificationType.BOOKING_CONFIRMED: "Booking confirmed",
    NotificationType.BOOKING_COMPLETED: "Battery swap completed",
    NotificationType.BOOKING_CANCELLED: "Booking cancelled",
    NotificationType.BOOKING_AUTO_CANCELLED: "Booking cancelled automatically",
    NotificationType.BOOKING_REMINDER: "Booking reminder",
    NotificationType.BOOKING_FINAL_REMINDER: "Final booking reminder",
}


class NotificationSink:
    """
    Dummy notification connector. Subscribes to every reservation event.
    """

    def __init__(self):
        self.sent: list[dict[str, Any]] = []

    def attach(self, event_bus: EventBus) -> "NotificationSink":
        event_bus.subscribe_all(self.deliver)
        return self

    async def deliver(self, event: ReservationEvent) -> None:
        """Render and record the notification for an event."""
        await asyncio.sleep(0)
        message = {
            "type": event.event_type.value,
            "user_id": event.user_id,
            "title": _TITLES[event.event_type],
            "message": self._render(event),
            "data": {"booking_code": event.booking_code, **event.payload},
        }
        self.sent.append(message)
        logger.info(f"Notification '{message['title']}' sent to user {event.user_id}")

    def for_user(self, user_id: str) -> list[dict[str, Any]]:
        return [m for m in self.sent if m["user_id"] == user_id]

    @staticmethod
    def _render(event: ReservationEvent) -> str:
        code = event.booking_code
        if event.event_type == NotificationType.BOOKING_CANCELLED:
            fee = event.payload.get("cancellation_fee", "0")
            if fee not in ("0", "0.00", 0):
                return f"Booking {code} cancelled. Late cancellation fee: {fee}"
            return f"Booking {code} cancelled successfully"
        if event.event_type in (NotificationType.BOOKING_REMINDER, NotificationType.BOOKING_FINAL_REMINDER):
            minutes = event.payload.get("minutes_before")
            return f"Your booking {code} starts in {minutes} minutes. Please arrive on time."
        if event.event_type == NotificationType.BOOKING_AUTO_CANCELLED:
            return f"Booking {code} was cancelled because you did not arrive in time."
        return f"{_TITLES[event.event_type]}. Booking code: {code}"
