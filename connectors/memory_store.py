"""
Module: connectors.memory_store

In-memory station, battery, vehicle, reservation and wallet storage used by
the reservation engine and its tests.
"""

import asyncio
import logging
from collections.abc import Iterable
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from decimal import Decimal

from booking.errors import ConflictError, DuplicateBookingCodeError, InternalError
from models.battery import Battery, Station, Vehicle
from models.enums import ReservationStatus
from models.reservation import Reservation, Wallet

logger = logging.getLogger(__name__)


class InMemoryStationStore:
    """
    Dictionary-backed store. Every call yields to the event loop once to
    model storage latency, so unguarded read-check-write sequences race
    exactly as they would against a real database.
    """

    def __init__(self):
        self._stations: dict[str, Station] = {}
        self._batteries: dict[str, Battery] = {}
        self._vehicles: dict[str, Vehicle] = {}
        self._reservations: dict[str, Reservation] = {}
        self._wallets: dict[str, Wallet] = {}
        self._write_lock = asyncio.Lock()
        self._transaction_owner: asyncio.Task | None = None

    # --- Seeding ---

    def add_station(self, station: Station) -> Station:
        self._stations[station.station_id] = station
        return station

    def add_battery(self, battery: Battery) -> Battery:
        if battery.station_id not in self._stations:
            raise KeyError(f"Unknown station {battery.station_id}")
        self._batteries[battery.battery_id] = battery
        return battery

    def add_vehicle(self, vehicle: Vehicle) -> Vehicle:
        self._vehicles[vehicle.vehicle_id] = vehicle
        return vehicle

    def set_wallet_balance(self, user_id: str, balance: Decimal | int | str) -> Wallet:
        wallet = Wallet(user_id=user_id, balance=Decimal(balance))
        self._wallets[user_id] = wallet
        return wallet

    # --- Lookups ---

    async def get_vehicle(self, vehicle_id: str, user_id: str) -> Vehicle | None:
        """Vehicle by id, only if owned by the user."""
        await asyncio.sleep(0)
        vehicle = self._vehicles.get(vehicle_id)
        if vehicle is None or vehicle.user_id != user_id:
            return None
        return vehicle

    async def get_station(self, station_id: str) -> Station | None:
        await asyncio.sleep(0)
        return self._stations.get(station_id)

    async def list_batteries(self, station_id: str) -> list[Battery]:
        await asyncio.sleep(0)
        return [b for b in self._batteries.values() if b.station_id == station_id]

    async def list_reservations(
        self,
        station_id: str,
        start: datetime,
        end: datetime,
        statuses: Iterable[ReservationStatus],
        is_instant: bool | None = None,
    ) -> list[Reservation]:
        """Reservations at a station with ``start <= scheduled_at <= end``."""
        await asyncio.sleep(0)
        wanted = set(statuses)
        return [
            r.model_copy()
            for r in self._reservations.values()
            if r.station_id == station_id
            and r.status in wanted
            and start <= r.scheduled_at <= end
            and (is_instant is None or r.is_instant == is_instant)
        ]

    async def get_reservation(self, reservation_id: str) -> Reservation | None:
        await asyncio.sleep(0)
        reservation = self._reservations.get(reservation_id)
        return reservation.model_copy() if reservation else None

    async def list_user_reservations(self, user_id: str) -> list[Reservation]:
        await asyncio.sleep(0)
        return [r.model_copy() for r in self._reservations.values() if r.user_id == user_id]

    async def list_active_reservations(self) -> list[Reservation]:
        await asyncio.sleep(0)
        return [r.model_copy() for r in self._reservations.values() if r.is_active()]

    async def booking_code_exists(self, code: str) -> bool:
        await asyncio.sleep(0)
        return any(r.booking_code == code for r in self._reservations.values())

    # --- Writes ---

    async def insert_reservation(self, reservation: Reservation) -> Reservation:
        async with self._writing():
            await asyncio.sleep(0)
            if reservation.reservation_id in self._reservations:
                raise InternalError(
                    details={"reservation_id": reservation.reservation_id, "cause": "duplicate id"}
                )
            if any(r.booking_code == reservation.booking_code for r in self._reservations.values()):
                raise DuplicateBookingCodeError(reservation.booking_code)
            stored = reservation.model_copy()
            self._reservations[stored.reservation_id] = stored
            return stored.model_copy()

    async def save_reservation(self, reservation: Reservation, now: datetime | None = None) -> Reservation:
        """Replace the stored row; ``updated_at`` is stamped with ``now`` (default: wall clock)."""
        async with self._writing():
            await asyncio.sleep(0)
            if reservation.reservation_id not in self._reservations:
                raise InternalError(
                    details={"reservation_id": reservation.reservation_id, "cause": "missing row"}
                )
            stored = reservation.model_copy(update={"updated_at": now or datetime.now(timezone.utc)})
            self._reservations[stored.reservation_id] = stored
            return stored.model_copy()

    async def get_wallet(self, user_id: str) -> Wallet | None:
        await asyncio.sleep(0)
        wallet = self._wallets.get(user_id)
        return wallet.model_copy() if wallet else None

    async def upsert_wallet(self, user_id: str) -> Wallet:
        """Return the user's wallet, creating it with a zero balance if absent."""
        async with self._writing():
            await asyncio.sleep(0)
            if user_id not in self._wallets:
                self._wallets[user_id] = Wallet(user_id=user_id)
                logger.info(f"Created wallet for user {user_id}")
            return self._wallets[user_id].model_copy()

    async def debit_wallet(self, user_id: str, amount: Decimal, now: datetime | None = None) -> Wallet:
        async with self._writing():
            await asyncio.sleep(0)
            wallet = self._wallets.get(user_id)
            if wallet is None:
                raise InternalError(details={"user_id": user_id, "cause": "wallet missing"})
            if wallet.balance < amount:
                raise ConflictError(
                    f"Insufficient wallet balance. Cancellation fee: {amount}, Balance: {wallet.balance}",
                    details={"fee": str(amount), "balance": str(wallet.balance)},
                )
            self._wallets[user_id] = wallet.model_copy(
                update={"balance": wallet.balance - amount, "updated_at": now or datetime.now(timezone.utc)}
            )
            return self._wallets[user_id].model_copy()

    # --- Transactions ---

    @asynccontextmanager
    async def _writing(self):
        # Writes from the transaction's own task are already covered by its lock.
        if self.in_transaction:
            yield
            return
        async with self._write_lock:
            yield

    @asynccontextmanager
    async def transaction(self):
        """
        All-or-nothing unit of work. Reservations and wallets are restored to
        their state at entry if the block raises.
        """
        if self.in_transaction:
            raise InternalError(details={"cause": "nested transaction"})
        async with self._write_lock:
            reservations = {k: v.model_copy() for k, v in self._reservations.items()}
            wallets = {k: v.model_copy() for k, v in self._wallets.items()}
            self._transaction_owner = asyncio.current_task()
            try:
                yield self
            except BaseException:
                self._reservations = reservations
                self._wallets = wallets
                logger.warning("Transaction rolled back")
                raise
            finally:
                self._transaction_owner = None

    @property
    def in_transaction(self) -> bool:
        """True when called from the task that currently holds a transaction."""
        return (
            self._transaction_owner is not None
            and self._transaction_owner is asyncio.current_task()
        )
