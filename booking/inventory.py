"""
Inventory snapshot reader: current battery counts per station and model.
"""

import logging

from models.battery import BatteryModel
from models.enums import BatteryStatus
from models.reservation import InventorySnapshot

logger = logging.getLogger(__name__)


class InventorySnapshotReader:
    """Reads the batteries of one station once and counts the requested model."""

    def __init__(self, store):
        self.store = store

    async def read(self, station_id: str, model: BatteryModel | str) -> InventorySnapshot:
        model = model if isinstance(model, BatteryModel) else BatteryModel(model)
        batteries = await self.store.list_batteries(station_id)

        of_model = [b for b in batteries if model.matches(b.model)]
        full_count = sum(1 for b in of_model if b.status == BatteryStatus.FULL)
        charging_count = sum(1 for b in of_model if b.status == BatteryStatus.CHARGING)
        models_present = tuple(sorted({b.model for b in batteries}))

        snapshot = InventorySnapshot(
            station_id=station_id,
            model=model,
            full_count=full_count,
            charging_count=charging_count,
            total_of_model=len(of_model),
            models_present=models_present,
        )
        logger.debug(
            f"Snapshot {station_id}/{model.normalized}: "
            f"{full_count} full, {charging_count} charging, {len(of_model)} total"
        )
        return snapshot
