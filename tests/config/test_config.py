from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest

from config.config import ReservationPolicyConfig


def test_reservation_policy_defaults():
    """Defaults match the station operating policy."""
    config = ReservationPolicyConfig()
    assert config.scheduled_window == timedelta(minutes=30)
    assert config.instant_window == timedelta(minutes=15)
    assert config.charging_lead_time == timedelta(hours=1)
    assert config.min_lead_time == timedelta(minutes=30)
    assert config.max_lead_time == timedelta(hours=12)
    assert config.cancellation_lockout_minutes == 15
    assert config.cancellation_fee == Decimal("0")
    assert config.no_show_grace == timedelta(minutes=30)
    assert config.recheck_availability_on_update is False
    assert config.code_max_attempts == 5


def test_reservation_policy_custom():
    config = ReservationPolicyConfig(cancellation_fee="12.5", scheduled_window_minutes=45)
    assert config.cancellation_fee == Decimal("12.5")
    assert config.scheduled_window == timedelta(minutes=45)
    # Untouched values keep their defaults
    assert config.instant_window_minutes == 15


@pytest.mark.parametrize(
    "kwargs, message",
    [
        ({"cancellation_fee": Decimal("-1")}, "cannot be negative"),
        ({"min_lead_time_minutes": 120, "max_lead_time_hours": 1}, "exceeds"),
        ({"code_max_attempts": 0}, "at least 1"),
    ],
)
def test_reservation_policy_rejects_invalid_values(kwargs, message):
    with pytest.raises(ValueError, match=message):
        ReservationPolicyConfig(**kwargs)


@patch("config.config.load_project_dotenv")
def test_from_env_reads_overrides(mock_load, monkeypatch):
    monkeypatch.setenv("BOOKING_CANCELLATION_FEE", "20000")
    monkeypatch.setenv("BOOKING_MAX_LEAD_TIME_HOURS", "24")
    monkeypatch.setenv("BOOKING_RECHECK_AVAILABILITY_ON_UPDATE", "true")
    monkeypatch.delenv("BOOKING_MIN_LEAD_TIME_MINUTES", raising=False)

    config = ReservationPolicyConfig.from_env()

    mock_load.assert_called_once()
    assert config.cancellation_fee == Decimal("20000")
    assert config.max_lead_time == timedelta(hours=24)
    assert config.recheck_availability_on_update is True
    assert config.min_lead_time_minutes == 30


@patch("config.config.load_project_dotenv")
def test_from_env_rejects_bad_integer(mock_load, monkeypatch):
    monkeypatch.setenv("BOOKING_NO_SHOW_GRACE_MINUTES", "half an hour")
    with pytest.raises(ValueError, match="BOOKING_NO_SHOW_GRACE_MINUTES"):
        ReservationPolicyConfig.from_env()
