"""
Availability calculator: admission control for new reservations.

A request is admitted iff the batteries that will exist at pickup, minus the
active reservations competing for them in the same window, leave at least
one unit. This is a pure counting test; requests racing for the last unit
must be serialized by the caller (see ``booking.locks``).
"""

import logging
from dataclasses import replace
from datetime import datetime, timedelta

from config.config import ReservationPolicyConfig
from models.battery import BatteryModel
from models.enums import ACTIVE_RESERVATION_STATUSES, RejectionReason
from models.reservation import AvailabilityDecision, AvailabilityWindow

from .errors import ConflictError
from .inventory import InventorySnapshotReader

logger = logging.getLogger(__name__)


def scheduled_window(scheduled_at: datetime, half_width: timedelta = timedelta(minutes=30)) -> AvailabilityWindow:
    """[scheduled_at - W, scheduled_at + W], both ends inclusive."""
    return AvailabilityWindow(start=scheduled_at - half_width, end=scheduled_at + half_width)


def instant_window(now: datetime, horizon: timedelta = timedelta(minutes=15)) -> AvailabilityWindow:
    """[now, now + horizon], both ends inclusive."""
    return AvailabilityWindow(start=now, end=now + horizon)


class AvailabilityCalculator:
    def __init__(
        self,
        store,
        reader: InventorySnapshotReader | None = None,
        config: ReservationPolicyConfig | None = None,
    ):
        self.store = store
        self.reader = reader or InventorySnapshotReader(store)
        self.config = config or ReservationPolicyConfig()

    async def evaluate(
        self,
        station_id: str,
        battery_model: BatteryModel | str,
        scheduled_at: datetime,
        is_instant: bool,
        now: datetime,
        exclude_reservation_id: str | None = None,
    ) -> AvailabilityDecision:
        """
        Compute the admission decision for one request.

        Args:
            station_id: Station to reserve at.
            battery_model: Requested model, matched case-insensitively after trimming.
            scheduled_at: Pickup time (ignored for the window of instant requests).
            is_instant: Use the instant path (full batteries only, next 15 minutes).
            now: Wall clock, read once by the caller.
            exclude_reservation_id: Reservation to leave out of the competing count.

        Returns:
            AvailabilityDecision with the counts behind it.
        """
        model = battery_model if isinstance(battery_model, BatteryModel) else BatteryModel(battery_model)
        snapshot = await self.reader.read(station_id, model)

        if not snapshot.has_model:
            present = ", ".join(snapshot.models_present) or "none"
            message = (
                f'No batteries of model "{model}" found at this station. '
                f"Available models: {present}."
            )
            logger.info(f"Rejected {station_id}/{model.normalized}: no such model")
            return AvailabilityDecision(
                admitted=False,
                station_id=station_id,
                model=model,
                is_instant=is_instant,
                reason=RejectionReason.NO_SUCH_MODEL,
                message=message,
            )

        if is_instant:
            window = instant_window(now, self.config.instant_window)
            charging_credit = 0
        else:
            window = scheduled_window(scheduled_at, self.config.scheduled_window)
            lead_time = scheduled_at - now
            charging_credit = (
                snapshot.charging_count if lead_time >= self.config.charging_lead_time else 0
            )

        competing = await self.store.list_reservations(
            station_id,
            window.start,
            window.end,
            ACTIVE_RESERVATION_STATUSES,
            is_instant=True if is_instant else None,
        )
        reserved_count = sum(
            1
            for r in competing
            if model.matches(r.battery_model) and r.reservation_id != exclude_reservation_id
        )

        decision = AvailabilityDecision(
            admitted=False,
            station_id=station_id,
            model=model,
            is_instant=is_instant,
            window=window,
            full_count=snapshot.full_count,
            charging_count=charging_credit,
            reserved_count=reserved_count,
        )
        if decision.headroom > 0:
            logger.info(
                f"Admitted {station_id}/{model.normalized} "
                f"({'instant' if is_instant else 'scheduled'}): {decision.breakdown()}"
            )
            return replace(decision, admitted=True, message="Battery available")

        logger.info(f"Rejected {station_id}/{model.normalized}: {decision.breakdown()}")
        return replace(
            decision,
            reason=RejectionReason.NO_AVAILABILITY,
            message=_no_availability_message(decision, scheduled_at, snapshot.total_of_model),
        )

    async def require(
        self,
        station_id: str,
        battery_model: BatteryModel | str,
        scheduled_at: datetime,
        is_instant: bool,
        now: datetime,
        exclude_reservation_id: str | None = None,
    ) -> AvailabilityDecision:
        """Like ``evaluate`` but raises ConflictError on rejection."""
        decision = await self.evaluate(
            station_id, battery_model, scheduled_at, is_instant, now, exclude_reservation_id
        )
        if not decision.admitted:
            details = decision.breakdown() if decision.window else {}
            raise ConflictError(decision.message, details=details, reason=decision.reason)
        return decision


def _no_availability_message(
    decision: AvailabilityDecision, scheduled_at: datetime, total_of_model: int
) -> str:
    model = decision.model
    if decision.is_instant:
        if decision.full_count == 0:
            reason = f"No full batteries available ({total_of_model} total batteries of this model)"
        else:
            reason = (
                f"All {decision.full_count} full batteries are reserved by other instant bookings "
                f"({decision.reserved_count} bookings in next {_span_minutes(decision.window)} min)"
            )
        return f'No battery of model "{model}" is ready right now. {reason}. Please schedule a later pickup.'

    if decision.total_available == 0:
        reason = (
            f"No batteries are ready ({decision.full_count} full, "
            f"{decision.charging_count} charging)"
        )
    else:
        reason = (
            f"All {decision.total_available} available batteries are reserved by other bookings "
            f"({decision.reserved_count} bookings in ±{_span_minutes(decision.window) // 2} min window)"
        )
    return (
        f'No available batteries for model "{model}" at this station at '
        f"{scheduled_at.isoformat()}. {reason}. Please choose another time or station."
    )


def _span_minutes(window: AvailabilityWindow | None) -> int:
    if window is None:
        return 0
    return int((window.end - window.start) / timedelta(minutes=1))
