"""
Human-facing booking codes.

Format: prefix (``BK`` scheduled, ``INST`` instant) + last 8 digits of the
epoch-millisecond clock + 6 random uppercase alphanumerics, at most 18
characters. Codes are checked against storage before use.
"""

import logging
import secrets
import string
from collections.abc import Callable
from datetime import datetime

from models.reservation import Reservation
from utils.timeutils import utc_now

from .errors import DuplicateBookingCodeError, InternalError

logger = logging.getLogger(__name__)

SCHEDULED_PREFIX = "BK"
INSTANT_PREFIX = "INST"
TIME_DIGITS = 8
SUFFIX_LENGTH = 6
_ALPHABET = string.ascii_uppercase + string.digits


def generate_booking_code(is_instant: bool, now: datetime | None = None) -> str:
    now = now or utc_now()
    prefix = INSTANT_PREFIX if is_instant else SCHEDULED_PREFIX
    millis = str(int(now.timestamp() * 1000))[-TIME_DIGITS:].zfill(TIME_DIGITS)
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(SUFFIX_LENGTH))
    code = f"{prefix}{millis}{suffix}"
    return code


class BookingCodeGenerator:
    """Generates codes and verifies they are unused before handing them out."""

    def __init__(self, store, max_attempts: int = 5):
        self.store = store
        self.max_attempts = max_attempts

    async def next_code(self, is_instant: bool, now: datetime | None = None) -> str:
        for attempt in range(1, self.max_attempts + 1):
            code = generate_booking_code(is_instant, now)
            if not await self.store.booking_code_exists(code):
                return code
            logger.warning(f"Booking code collision on {code} (attempt {attempt}/{self.max_attempts})")
        raise InternalError(
            "Could not allocate a unique booking code",
            details={"attempts": self.max_attempts},
        )

    async def insert_with_code(
        self,
        build: Callable[[str], Reservation],
        is_instant: bool,
        now: datetime | None = None,
    ) -> Reservation:
        """
        Insert ``build(code)`` with a fresh code, regenerating the code when
        storage reports it as taken. The existence check in ``next_code`` is
        only a pre-filter; the insert is what enforces uniqueness.
        """
        for attempt in range(1, self.max_attempts + 1):
            code = await self.next_code(is_instant, now)
            try:
                return await self.store.insert_reservation(build(code))
            except DuplicateBookingCodeError:
                logger.warning(
                    f"Booking code {code} taken at insert (attempt {attempt}/{self.max_attempts})"
                )
        raise InternalError(
            "Could not allocate a unique booking code",
            details={"attempts": self.max_attempts},
        )
