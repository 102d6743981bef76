"""
Tests for the command line interface.
"""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from bookingengine.cli.app import (
    EXIT_NOT_FOUND,
    EXIT_SLOT_CONFLICT,
    EXIT_VALIDATION,
    app,
)

runner = CliRunner()

CONFIG_YAML = """
bookings_file: bookings.json
businesses:
  - id: salon
    name: Salon Nord
    allow_double_booking: false
    opening_hours:
      - day_of_week: 1
        open_time: "08:00"
        close_time: "17:00"
    services:
      - id: cut
        name: Cut
        duration_minutes: 60
        price_cents: 3500
    staff:
      - id: anna
        name: Anna
"""


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG_YAML, encoding="utf-8")
    return path


def _invoke(config_path: Path, *args: str):
    return runner.invoke(app, [*args, "--config", str(config_path)])


def _stored(config_path: Path):
    return json.loads((config_path.parent / "bookings.json").read_text(encoding="utf-8"))["salon"]


class TestCli:
    """Tests for the bookingengine CLI commands."""

    def test_slots_on_open_day(self, config_path):
        result = _invoke(config_path, "slots", "salon", "2024-11-25", "cut")

        assert result.exit_code == 0
        assert "18 slots" in result.output
        assert "08:00" in result.output

    def test_slots_on_closed_day(self, config_path):
        result = _invoke(config_path, "slots", "salon", "2024-11-26", "cut")

        assert result.exit_code == 0
        assert "No available slots" in result.output

    def test_book_then_conflict(self, config_path):
        first = _invoke(config_path, "book", "salon", "2024-11-25", "10:00", "cut", "--customer", "c1")
        second = _invoke(config_path, "book", "salon", "2024-11-25", "10:30", "cut", "--customer", "c2")

        assert first.exit_code == 0
        assert "Booking created" in first.output
        assert second.exit_code == EXIT_SLOT_CONFLICT
        assert len(_stored(config_path)) == 1

    def test_owner_may_double_book(self, config_path):
        _invoke(config_path, "book", "salon", "2024-11-25", "10:00", "cut", "--customer", "c1")
        result = _invoke(
            config_path, "book", "salon", "2024-11-25", "10:30", "cut", "--customer", "c2", "--owner"
        )

        assert result.exit_code == 0
        assert len(_stored(config_path)) == 2

    def test_booked_slot_disappears_from_slots(self, config_path):
        _invoke(config_path, "book", "salon", "2024-11-25", "10:00", "cut", "--customer", "c1")

        result = _invoke(config_path, "slots", "salon", "2024-11-25", "cut")

        assert "15 slots" in result.output

    def test_check_reports_overlap(self, config_path):
        _invoke(config_path, "book", "salon", "2024-11-25", "10:00", "cut", "--customer", "c1")
        booking_id = _stored(config_path)[0]["id"]

        result = _invoke(config_path, "check", "salon", "2024-11-25", "10:30", "cut")

        assert result.exit_code == 0
        assert "Not available" in result.output
        assert booking_id in result.output

    def test_reschedule_and_cancel(self, config_path):
        _invoke(config_path, "book", "salon", "2024-11-25", "10:00", "cut", "--customer", "c1")
        booking_id = _stored(config_path)[0]["id"]

        moved = _invoke(
            config_path, "reschedule", "salon", booking_id, "2024-11-25", "14:00", "cut", "--customer", "c1"
        )
        cancelled = _invoke(config_path, "cancel", "salon", booking_id)

        assert moved.exit_code == 0
        assert "Booking updated" in moved.output
        assert cancelled.exit_code == 0
        assert _stored(config_path) == []

    def test_staff_by_name(self, config_path):
        result = _invoke(
            config_path, "book", "salon", "2024-11-25", "10:00", "cut", "--customer", "c1", "--staff", "Anna"
        )

        assert result.exit_code == 0
        assert _stored(config_path)[0]["staff_id"] == "anna"

    def test_corrupt_bookings_file(self, config_path):
        bookings = config_path.parent / "bookings.json"
        bookings.write_text(json.dumps({"salon": [{"id": "broken"}]}), encoding="utf-8")

        result = _invoke(config_path, "slots", "salon", "2024-11-25", "cut")

        assert result.exit_code == 1
        assert "Invalid booking record" in result.output
        assert json.loads(bookings.read_text(encoding="utf-8")) == {"salon": [{"id": "broken"}]}

    def test_missing_customer(self, config_path):
        result = _invoke(config_path, "book", "salon", "2024-11-25", "10:00", "cut")

        assert result.exit_code == EXIT_VALIDATION
        assert "customer_id" in result.output

    def test_unknown_booking(self, config_path):
        result = _invoke(config_path, "cancel", "salon", "does-not-exist")

        assert result.exit_code == EXIT_NOT_FOUND

    def test_unknown_business(self, config_path):
        result = _invoke(config_path, "hours", "bakery")

        assert result.exit_code == EXIT_NOT_FOUND

    def test_hours_table(self, config_path):
        result = _invoke(config_path, "hours", "salon")

        assert result.exit_code == 0
        assert "Monday" in result.output
        assert "Closed" in result.output
        assert "prevented" in result.output

    def test_missing_config(self, tmp_path):
        result = runner.invoke(app, ["hours", "salon", "--config", str(tmp_path / "nope.yaml")])

        assert result.exit_code == 1
        assert "Config file not found" in result.output

    def test_version(self):
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert "bookingengine" in result.output
