"""
Demo: battery reservations at a swap station.

Seeds one station, books the last batteries from several concurrent drivers,
cancels one booking and runs the maintenance sweeps.
Run with: python -m demos.reservation_demo
"""

import asyncio
import logging
import uuid
from datetime import timedelta

from booking.errors import ReservationError
from booking.maintenance import ReservationSweeper
from booking.reservations import ReservationService
from config.config import ReservationPolicyConfig
from connectors.memory_store import InMemoryStationStore
from connectors.notification_sink import NotificationSink
from models.battery import Battery, Station, Vehicle
from models.enums import BatteryStatus
from utils.event_bus import EventBus
from utils.logger import get_logger
from utils.timeutils import utc_now

logger = logging.getLogger("reservation-demo")


def seed_store() -> tuple[InMemoryStationStore, str, list[Vehicle]]:
    store = InMemoryStationStore()
    station_id = str(uuid.uuid4())
    store.add_station(Station(station_id=station_id, name="Downtown Swap Hub", address="1 Main St", capacity=10))
    for status in (BatteryStatus.FULL, BatteryStatus.FULL, BatteryStatus.CHARGING, BatteryStatus.DAMAGED):
        store.add_battery(
            Battery(battery_id=str(uuid.uuid4()), station_id=station_id, model="LFP-48V", status=status)
        )
    vehicles = [
        store.add_vehicle(
            Vehicle(vehicle_id=str(uuid.uuid4()), user_id=f"driver-{i}", battery_model="lfp-48v ")
        )
        for i in range(5)
    ]
    return store, station_id, vehicles


async def main() -> None:
    get_logger()  # root handler for every module logger
    config = ReservationPolicyConfig.from_env()
    store, station_id, vehicles = seed_store()
    bus = EventBus()
    sink = NotificationSink().attach(bus)
    service = ReservationService(store, bus, config)
    pickup = utc_now() + timedelta(minutes=90)

    preview = await service.check_availability(station_id, "LFP-48V", pickup)
    logger.info(f"Preview at {pickup:%H:%M}: {preview.breakdown()}")

    results = await asyncio.gather(
        *[
            service.create_reservation(v.user_id, v.vehicle_id, station_id, "LFP-48V", pickup)
            for v in vehicles
        ],
        return_exceptions=True,
    )
    booked = [r for r in results if not isinstance(r, Exception)]
    for result in results:
        if isinstance(result, ReservationError):
            logger.info(f"Rejected: {result.message}")
    logger.info(f"{len(booked)} of {len(vehicles)} concurrent requests admitted")

    if booked:
        first = booked[0]
        outcome = await service.cancel_reservation(first.user_id, first.reservation_id)
        logger.info(f"Cancelled {outcome.reservation.booking_code}, fee {outcome.cancellation_fee}")

    sweeper = ReservationSweeper(store, bus, config)
    await sweeper.send_reminders()
    await sweeper.auto_cancel_no_shows()
    logger.info(f"{len(sink.sent)} notifications delivered")


if __name__ == "__main__":
    asyncio.run(main())
