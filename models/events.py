"""
Data models for events published on the event bus.
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from .enums import NotificationType


class ReservationEvent(BaseModel):
    """Reservation lifecycle event, consumed by notification subscribers."""

    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    event_type: NotificationType
    user_id: str
    reservation_id: str
    booking_code: str
    payload: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
