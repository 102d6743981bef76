"""
Tests for YAML configuration loading.
"""

from pathlib import Path

import pytest

from bookingengine.config import AppConfig, BusinessConfig
from bookingengine.domain.models import DoubleBookingPolicy
from bookingengine.domain.timegrid import TimeOfDay

CONFIG_YAML = """
log_level: info
bookings_file: data/bookings.json
businesses:
  - id: salon
    name: Salon Nord
    timezone: Europe/Berlin
    slot_size:
      value: 1
      unit: hours
    allow_double_booking: false
    time_format: 12
    opening_hours:
      - day_of_week: 1
        open_time: "09:00"
        close_time: "18:00"
      - day_of_week: 6
        open_time: "10.00"
        close_time: "14.00"
    services:
      - id: cut
        name: Cut
        duration_minutes: 60
        price_cents: 3500
      - id: consult
        duration_minutes: 15
        hidden: true
    staff:
      - id: anna
        name: Anna
        email: anna@example.com
"""


def _write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(content, encoding="utf-8")
    return path


class TestAppConfig:
    """Tests for AppConfig.load_from_yaml."""

    def test_load_full_config(self, tmp_path):
        config = AppConfig.load_from_yaml(_write(tmp_path, CONFIG_YAML))

        assert config.log_level == "INFO"
        business = config.find_business("salon")
        assert business is not None
        assert business.time_format == "12"
        assert business.opening_hours[1].open_time == "10:00"
        assert config.find_business("bakery") is None

    def test_profile_from_config(self, tmp_path):
        profile = AppConfig.load_from_yaml(_write(tmp_path, CONFIG_YAML)).businesses[0].to_profile()

        schedule = profile.schedule
        assert schedule.double_booking_policy is DoubleBookingPolicy.PREVENTED
        assert schedule.slot_size.minutes == 60
        assert schedule.window_for(0).open_time == TimeOfDay.of(9, 0)  # Monday
        assert schedule.window_for(5).close_time == TimeOfDay.of(14, 0)  # Saturday
        assert not schedule.window_for(6).is_open
        assert profile.services["consult"].hidden
        assert profile.staff_ids == frozenset({"anna"})

    def test_bookings_path_relative_to_config(self, tmp_path):
        path = _write(tmp_path, CONFIG_YAML)
        config = AppConfig.load_from_yaml(path)

        assert config.bookings_path(path) == tmp_path / "data" / "bookings.json"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            AppConfig.load_from_yaml(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(ValueError, match="Invalid YAML"):
            AppConfig.load_from_yaml(_write(tmp_path, "businesses: [unclosed"))

    def test_root_must_be_mapping(self, tmp_path):
        with pytest.raises(ValueError, match="mapping at the root level"):
            AppConfig.load_from_yaml(_write(tmp_path, "- salon\n"))

    def test_unknown_log_level(self):
        with pytest.raises(ValueError):
            AppConfig(log_level="chatty")

    def test_duplicate_business_ids(self):
        with pytest.raises(ValueError, match="Duplicate business id"):
            AppConfig(businesses=[{"id": "salon"}, {"id": "salon"}])


class TestBusinessConfig:
    """Tests for BusinessConfig validation."""

    def test_defaults_open_every_day(self):
        schedule = BusinessConfig(id="salon").to_schedule()

        assert all(window.is_open for window in schedule.week().values())
        assert schedule.slot_size.minutes == 30
        assert schedule.double_booking_policy is DoubleBookingPolicy.ALLOWED

    def test_open_after_close(self):
        with pytest.raises(ValueError, match="must be before close_time"):
            BusinessConfig(
                id="salon",
                opening_hours=[{"day_of_week": 1, "open_time": "18:00", "close_time": "09:00"}],
            )

    def test_unknown_timezone(self):
        """A misspelled timezone is rejected when the config loads."""
        with pytest.raises(ValueError, match="Unknown timezone"):
            BusinessConfig(id="salon", timezone="Mars/Olympus", allow_double_booking=False)

    def test_closed_day_skips_order_check(self):
        business = BusinessConfig(
            id="salon",
            opening_hours=[
                {"day_of_week": 1, "open_time": "00:00", "close_time": "00:00", "is_open": False}
            ],
        )

        assert not business.to_schedule().window_for(0).is_open

    def test_duplicate_days(self):
        with pytest.raises(ValueError, match="Duplicate opening hours"):
            BusinessConfig(
                id="salon",
                opening_hours=[{"day_of_week": 1}, {"day_of_week": 1}],
            )

    @pytest.mark.parametrize("slot_size", [{"value": 0}, {"value": 9, "unit": "hours"}])
    def test_slot_size_out_of_range(self, slot_size):
        with pytest.raises(ValueError):
            BusinessConfig(id="salon", slot_size=slot_size)

    def test_duplicate_services(self):
        with pytest.raises(ValueError, match="Duplicate service id"):
            BusinessConfig(
                id="salon",
                services=[
                    {"id": "cut", "duration_minutes": 30},
                    {"id": "cut", "duration_minutes": 60},
                ],
            )

    def test_service_duration_must_be_positive(self):
        with pytest.raises(ValueError, match="duration_minutes must be greater than zero"):
            BusinessConfig(id="salon", services=[{"id": "cut", "duration_minutes": 0}])

    def test_duplicate_staff_email(self):
        with pytest.raises(ValueError, match="Duplicate staff email"):
            BusinessConfig(
                id="salon",
                staff=[
                    {"id": "anna", "email": "team@example.com"},
                    {"id": "bob", "email": "TEAM@example.com"},
                ],
            )

    def test_find_staff_by_id_or_name(self):
        business = BusinessConfig(id="salon", staff=[{"id": "anna", "name": "Anna Berg"}])

        assert business.find_staff("anna").name == "Anna Berg"
        assert business.find_staff("anna berg").id == "anna"
        assert business.find_staff("bob") is None
