"""
Cancellation policy: late-cancellation lockout and the fee/wallet pathway.
"""

import logging
from datetime import datetime
from decimal import Decimal

from config.config import ReservationPolicyConfig
from models.reservation import Reservation
from utils.timeutils import minutes_between

from .errors import ConflictError

logger = logging.getLogger(__name__)


class CancellationPolicy:
    def __init__(self, config: ReservationPolicyConfig | None = None):
        self.config = config or ReservationPolicyConfig()

    @staticmethod
    def minutes_until(scheduled_at: datetime, now: datetime) -> float:
        return minutes_between(now, scheduled_at)

    def is_locked_out(self, reservation: Reservation, now: datetime) -> bool:
        """Inside the window right before pickup; pickups already past are not locked."""
        minutes = self.minutes_until(reservation.scheduled_at, now)
        return 0 < minutes < self.config.cancellation_lockout_minutes

    def check_lockout(self, reservation: Reservation, now: datetime) -> None:
        if self.is_locked_out(reservation, now):
            raise ConflictError(
                f"Cannot cancel booking within {self.config.cancellation_lockout_minutes} minutes of scheduled time. "
                "Please contact staff.",
                details={
                    "minutes_until_scheduled": round(
                        self.minutes_until(reservation.scheduled_at, now), 2
                    )
                },
            )

    def fee_for(self, reservation: Reservation, now: datetime) -> Decimal:
        # Zero unless a fee is configured; no amount is assumed.
        return self.config.cancellation_fee

    async def apply_fee(
        self, store, user_id: str, fee: Decimal, now: datetime | None = None
    ) -> Decimal | None:
        """
        Debit the fee from the user's wallet inside the caller's transaction.

        Returns the new balance, or None when no fee applies. Raises
        ConflictError on insufficient balance, which aborts the transaction.
        """
        if fee <= 0:
            return None
        await store.upsert_wallet(user_id)
        wallet = await store.debit_wallet(user_id, fee, now)
        logger.info(f"Charged cancellation fee {fee} to user {user_id}; balance {wallet.balance}")
        return wallet.balance
