"""
Station inventory data models: battery models, batteries, stations and vehicles.
"""

from dataclasses import dataclass, field

from .enums import BatteryStatus, StationStatus


def normalize_model(value: str) -> str:
    """Trim and lowercase a free-text battery model."""
    return value.strip().lower()


@dataclass(frozen=True, eq=False)
class BatteryModel:
    """
    Free-text battery model compared case-insensitively after trimming.

    The raw text is kept for messages; equality and hashing use the
    normalized form only. No fuzzy matching.
    """

    raw: str
    normalized: str = field(init=False)

    def __post_init__(self):
        if not isinstance(self.raw, str) or not self.raw.strip():
            raise ValueError("Battery model must be a non-empty string")
        object.__setattr__(self, "normalized", normalize_model(self.raw))

    def matches(self, other: "str | BatteryModel") -> bool:
        if isinstance(other, BatteryModel):
            return self.normalized == other.normalized
        return normalize_model(other) == self.normalized

    def __eq__(self, other: object) -> bool:
        if isinstance(other, BatteryModel):
            return self.normalized == other.normalized
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.normalized)

    def __str__(self) -> str:
        return self.raw


@dataclass
class Battery:
    """
    Physical battery unit owned by a station.
    """

    battery_id: str
    station_id: str
    model: str
    status: BatteryStatus
    charge_level: int = 100

    def __post_init__(self):
        if not 0 <= self.charge_level <= 100:
            raise ValueError(
                f"charge_level must be between 0 and 100, got {self.charge_level}"
            )
        self.status = BatteryStatus(self.status)

    @property
    def battery_model(self) -> BatteryModel:
        return BatteryModel(self.model)


@dataclass
class Station:
    """Swap station. Read-only from the reservation engine's perspective."""

    station_id: str
    name: str
    address: str = ""
    capacity: int = 0
    status: StationStatus = StationStatus.ACTIVE

    def is_active(self) -> bool:
        return self.status == StationStatus.ACTIVE


@dataclass
class Vehicle:
    vehicle_id: str
    user_id: str
    battery_model: str
    license_plate: str | None = None
