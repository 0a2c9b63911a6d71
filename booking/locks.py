"""
Per-(station, battery model) serialization points for admission.
"""

import asyncio
import logging
from collections import defaultdict
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from models.battery import BatteryModel

logger = logging.getLogger(__name__)


class ReservationLockRegistry:
    """
    One asyncio.Lock per (station_id, normalized model). The availability read
    and the reservation insert it justifies run under the same lock, so two
    requests can never both spend the last unit. Unrelated pairs never contend.
    """

    def __init__(self):
        self._locks: dict[tuple[str, str], asyncio.Lock] = defaultdict(asyncio.Lock)

    def lock_for(self, station_id: str, model: BatteryModel | str) -> asyncio.Lock:
        normalized = model.normalized if isinstance(model, BatteryModel) else BatteryModel(model).normalized
        return self._locks[(station_id, normalized)]

    @asynccontextmanager
    async def hold(self, station_id: str, model: BatteryModel | str) -> AsyncIterator[None]:
        lock = self.lock_for(station_id, model)
        if lock.locked():
            logger.debug(f"Waiting for admission lock on {station_id}/{model}")
        async with lock:
            yield

    def __len__(self) -> int:
        return len(self._locks)
