import sys
from pathlib import Path

import pytest

# Ensure project root is on sys.path to allow `import booking`, `import models`, etc.
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from booking.reservations import ReservationService  # noqa: E402
from config.config import ReservationPolicyConfig  # noqa: E402
from connectors.memory_store import InMemoryStationStore  # noqa: E402
from connectors.notification_sink import NotificationSink  # noqa: E402
from models.battery import Station, Vehicle  # noqa: E402
from models.enums import BatteryStatus, StationStatus  # noqa: E402
from tests.mocks import (  # noqa: E402
    CLOSED_STATION_ID,
    OTHER_STATION_ID,
    STATION_ID,
    USER_ID,
    VEHICLE_ID,
    FixedClock,
    add_batteries,
)
from utils.event_bus import EventBus  # noqa: E402


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def store() -> InMemoryStationStore:
    """Station with 2 full + 1 charging battery of model "X" and one driver."""
    store = InMemoryStationStore()
    store.add_station(Station(station_id=STATION_ID, name="Central", address="1 Main St", capacity=10))
    store.add_station(Station(station_id=OTHER_STATION_ID, name="Harbour", address="2 Dock Rd", capacity=5))
    store.add_station(
        Station(
            station_id=CLOSED_STATION_ID,
            name="Closed",
            address="3 Shut Ln",
            capacity=5,
            status=StationStatus.CLOSED,
        )
    )
    add_batteries(store, STATION_ID, "X", BatteryStatus.FULL, BatteryStatus.FULL, BatteryStatus.CHARGING)
    add_batteries(store, STATION_ID, "Y", BatteryStatus.MAINTENANCE)
    store.add_vehicle(Vehicle(vehicle_id=VEHICLE_ID, user_id=USER_ID, battery_model=" x "))
    return store


@pytest.fixture
def config() -> ReservationPolicyConfig:
    return ReservationPolicyConfig()


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def sink(event_bus) -> NotificationSink:
    return NotificationSink().attach(event_bus)


@pytest.fixture
def service(store, event_bus, config, clock, sink) -> ReservationService:
    return ReservationService(store, event_bus, config, clock)
