"""
Simple asynchronous event bus for reservation lifecycle notifications.
"""

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from models.enums import NotificationType
from models.events import ReservationEvent

logger_event_bus = logging.getLogger(__name__)

EventCallback = Callable[[ReservationEvent], Coroutine[Any, Any, None]]


class EventBus:
    """Fire-and-forget event bus. Subscriber failures are logged, never raised."""

    def __init__(self):
        self.subscribers: dict[NotificationType, list[EventCallback]] = {}

    def subscribe(self, event_type: NotificationType, callback: EventCallback) -> None:
        """Subscribe to an event type."""
        if not callable(callback):
            raise TypeError("Callback must be a callable async function.")
        event_type = NotificationType(event_type)
        if event_type not in self.subscribers:
            self.subscribers[event_type] = []
        if callback not in self.subscribers[event_type]:
            self.subscribers[event_type].append(callback)
            logger_event_bus.debug(f"Callback {_name(callback)} subscribed to {event_type.value}")
        else:
            logger_event_bus.warning(f"Callback {_name(callback)} already subscribed to {event_type.value}")

    def subscribe_all(self, callback: EventCallback) -> None:
        """Subscribe a callback to every notification type."""
        for event_type in NotificationType:
            self.subscribe(event_type, callback)

    def unsubscribe(self, event_type: NotificationType, callback: EventCallback) -> None:
        """Unsubscribe a specific callback from an event type."""
        event_type = NotificationType(event_type)
        if event_type in self.subscribers:
            try:
                self.subscribers[event_type].remove(callback)
                logger_event_bus.debug(f"Callback {_name(callback)} unsubscribed from {event_type.value}")
                if not self.subscribers[event_type]:
                    del self.subscribers[event_type]
            except ValueError:
                logger_event_bus.warning(f"Callback {_name(callback)} not found for event type {event_type.value}")

    async def publish(self, event: ReservationEvent) -> None:
        """Publish an event to subscribers."""
        if not isinstance(event, ReservationEvent):
            logger_event_bus.error(f"Attempted to publish invalid event type: {type(event)}")
            return

        logger_event_bus.info(f"Event published: {event.event_type.value} for booking {event.booking_code}")
        callbacks = list(self.subscribers.get(event.event_type, []))
        if not callbacks:
            return
        tasks = [asyncio.create_task(callback(event)) for callback in callbacks]
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for callback, result in zip(callbacks, results):
            if isinstance(result, Exception):
                logger_event_bus.error(
                    f"Error in subscriber callback '{_name(callback)}' for event {event.event_type.value}: {result}",
                    exc_info=False,
                )


def _name(callback: Any) -> str:
    return getattr(callback, "__name__", repr(callback))
