"""
Configuration classes for the battery-swap reservation engine.
Defines the admission, cancellation and sweep policy in a type-safe, extensible way.
"""

from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal

from utils.env import env_bool, env_decimal, env_int, load_project_dotenv


@dataclass
class ReservationPolicyConfig:
    scheduled_window_minutes: int = 30  # +/- around scheduled_at
    instant_window_minutes: int = 15
    charging_lead_time_minutes: int = 60  # Charge cycle assumed to take 1-2 hours
    min_lead_time_minutes: int = 30
    max_lead_time_hours: int = 12
    cancellation_lockout_minutes: int = 15
    cancellation_fee: Decimal = Decimal("0")
    no_show_grace_minutes: int = 30
    reminder_minutes: int = 30
    reminder_tolerance_minutes: int = 5
    final_reminder_minutes: int = 10
    final_reminder_tolerance_minutes: int = 2
    recheck_availability_on_update: bool = False
    code_max_attempts: int = 5

    def __post_init__(self):
        self.cancellation_fee = Decimal(self.cancellation_fee)
        if self.cancellation_fee < 0:
            raise ValueError("cancellation_fee cannot be negative")
        if self.min_lead_time_minutes > self.max_lead_time_hours * 60:
            raise ValueError("min_lead_time_minutes exceeds max_lead_time_hours")
        if self.code_max_attempts < 1:
            raise ValueError("code_max_attempts must be at least 1")

    @property
    def scheduled_window(self) -> timedelta:
        return timedelta(minutes=self.scheduled_window_minutes)

    @property
    def instant_window(self) -> timedelta:
        return timedelta(minutes=self.instant_window_minutes)

    @property
    def charging_lead_time(self) -> timedelta:
        return timedelta(minutes=self.charging_lead_time_minutes)

    @property
    def min_lead_time(self) -> timedelta:
        return timedelta(minutes=self.min_lead_time_minutes)

    @property
    def max_lead_time(self) -> timedelta:
        return timedelta(hours=self.max_lead_time_hours)

    @property
    def no_show_grace(self) -> timedelta:
        return timedelta(minutes=self.no_show_grace_minutes)

    @classmethod
    def from_env(cls) -> "ReservationPolicyConfig":
        """Build a config from ``BOOKING_*`` environment variables (and the project .env)."""
        load_project_dotenv()
        defaults = cls()
        return cls(
            scheduled_window_minutes=env_int(
                "BOOKING_SCHEDULED_WINDOW_MINUTES", defaults.scheduled_window_minutes
            ),
            instant_window_minutes=env_int(
                "BOOKING_INSTANT_WINDOW_MINUTES", defaults.instant_window_minutes
            ),
            charging_lead_time_minutes=env_int(
                "BOOKING_CHARGING_LEAD_TIME_MINUTES", defaults.charging_lead_time_minutes
            ),
            min_lead_time_minutes=env_int(
                "BOOKING_MIN_LEAD_TIME_MINUTES", defaults.min_lead_time_minutes
            ),
            max_lead_time_hours=env_int(
                "BOOKING_MAX_LEAD_TIME_HOURS", defaults.max_lead_time_hours
            ),
            cancellation_lockout_minutes=env_int(
                "BOOKING_CANCELLATION_LOCKOUT_MINUTES",
                defaults.cancellation_lockout_minutes,
            ),
            cancellation_fee=env_decimal(
                "BOOKING_CANCELLATION_FEE", defaults.cancellation_fee
            ),
            no_show_grace_minutes=env_int(
                "BOOKING_NO_SHOW_GRACE_MINUTES", defaults.no_show_grace_minutes
            ),
            recheck_availability_on_update=env_bool(
                "BOOKING_RECHECK_AVAILABILITY_ON_UPDATE",
                defaults.recheck_availability_on_update,
            ),
            code_max_attempts=env_int(
                "BOOKING_CODE_MAX_ATTEMPTS", defaults.code_max_attempts
            ),
        )


# Example usage:
# config = ReservationPolicyConfig(cancellation_fee=Decimal("20000"))
