"""Test doubles and seeding helpers for reservation tests."""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone

from connectors.memory_store import InMemoryStationStore
from models.battery import Battery, Vehicle
from models.enums import BatteryStatus, ReservationStatus
from models.reservation import Reservation

NOW = datetime(2024, 6, 1, 8, 0, tzinfo=timezone.utc)
STATION_ID = "5b0c7d52-4f0e-4d9a-9c43-7a7f5e0f2a11"
OTHER_STATION_ID = "9e2d6a10-0c1b-4b8e-8f5d-2f0c3b7a9d22"
CLOSED_STATION_ID = "1f3a9c44-7b2e-4c5d-8a6f-0e9d8c7b6a33"
MISSING_STATION_ID = "77777777-7777-4777-8777-777777777777"
USER_ID = "driver-1"
VEHICLE_ID = "0a1b2c3d-4e5f-4a6b-8c7d-9e0f1a2b3c44"


class FixedClock:
    """Controllable wall clock."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FailingStore(InMemoryStationStore):
    """Store whose battery query blows up, to exercise InternalError handling."""

    async def list_batteries(self, station_id: str):
        raise RuntimeError("connection reset by peer")


def add_batteries(store: InMemoryStationStore, station_id: str, model: str, *statuses: BatteryStatus) -> None:
    for status in statuses:
        store.add_battery(
            Battery(battery_id=str(uuid.uuid4()), station_id=station_id, model=model, status=status)
        )


def add_driver(store: InMemoryStationStore, user_id: str, battery_model: str = "X") -> Vehicle:
    return store.add_vehicle(
        Vehicle(vehicle_id=str(uuid.uuid4()), user_id=user_id, battery_model=battery_model)
    )


def make_reservation(
    station_id: str,
    battery_model: str,
    scheduled_at: datetime,
    status: ReservationStatus = ReservationStatus.PENDING,
    is_instant: bool = False,
    user_id: str = "other-driver",
) -> Reservation:
    return Reservation(
        booking_code=f"BK{uuid.uuid4().hex[:12].upper()}",
        user_id=user_id,
        vehicle_id=str(uuid.uuid4()),
        station_id=station_id,
        battery_model=battery_model,
        scheduled_at=scheduled_at,
        is_instant=is_instant,
        status=status,
    )


class RendezvousStore(InMemoryStationStore):
    """
    Holds every ``list_reservations`` caller until ``parties`` callers have
    read, or until ``timeout`` passes. Unserialized admissions therefore all
    read the same state; serialized ones proceed one by one after the timeout.
    """

    def __init__(self, parties: int, timeout: float = 0.05):
        super().__init__()
        self.parties = parties
        self.timeout = timeout
        self.readers = 0
        self._all_read = asyncio.Event()

    async def list_reservations(self, *args, **kwargs):
        found = await super().list_reservations(*args, **kwargs)
        self.readers += 1
        if self.readers >= self.parties:
            self._all_read.set()
        try:
            await asyncio.wait_for(self._all_read.wait(), self.timeout)
        except asyncio.TimeoutError:
            pass
        return found
