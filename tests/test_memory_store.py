"""
Tests for the in-memory and JSON booking stores.
"""

import asyncio
import json

import pendulum
import pytest

from bookingengine.adapters.memory_store import InMemoryBookingStore, JsonBookingStore
from bookingengine.domain.exceptions import BookingNotFoundError, StorageConflictError
from bookingengine.domain.models import Booking, Service

CUT = Service(id="cut", duration_minutes=60, price_cents=3500, name="Cut")


def _booking(booking_id: str, start: str, staff_id=None) -> Booking:
    return Booking(
        id=booking_id,
        start_time=pendulum.parse(start, tz="Europe/Berlin"),
        service=CUT,
        customer_id="c1",
        staff_id=staff_id,
    )


def _day(date: str):
    start = pendulum.parse(date, tz="Europe/Berlin")
    return start, start.add(days=1)


class TestInMemoryBookingStore:
    """Tests for InMemoryBookingStore."""

    def test_exclusive_insert_rejects_overlap(self):
        store = InMemoryBookingStore({"salon": [_booking("b1", "2024-11-25 10:00")]})

        with pytest.raises(StorageConflictError):
            asyncio.run(store.insert("salon", _booking("b2", "2024-11-25 10:30"), exclusive=True))

        assert [b.id for b in store.all_bookings("salon")] == ["b1"]

    def test_non_exclusive_insert_allows_overlap(self):
        store = InMemoryBookingStore({"salon": [_booking("b1", "2024-11-25 10:00")]})

        asyncio.run(store.insert("salon", _booking("b2", "2024-11-25 10:30"), exclusive=False))

        assert len(store.all_bookings("salon")) == 2

    def test_exclusive_check_is_per_resource(self):
        store = InMemoryBookingStore({"salon": [_booking("b1", "2024-11-25 10:00", staff_id="anna")]})

        asyncio.run(store.insert("salon", _booking("b2", "2024-11-25 10:00", staff_id="bob"), exclusive=True))
        asyncio.run(store.insert("salon", _booking("b3", "2024-11-25 10:00"), exclusive=True))

        assert len(store.all_bookings("salon")) == 3

    def test_exclusive_replace_ignores_itself(self):
        store = InMemoryBookingStore({"salon": [_booking("b1", "2024-11-25 10:00")]})

        asyncio.run(store.replace("salon", _booking("b1", "2024-11-25 10:30"), exclusive=True))

        assert store.all_bookings("salon")[0].start_time == pendulum.parse("2024-11-25 10:30", tz="Europe/Berlin")

    def test_replace_and_remove_unknown(self):
        store = InMemoryBookingStore()

        with pytest.raises(BookingNotFoundError):
            asyncio.run(store.replace("salon", _booking("b1", "2024-11-25 10:00"), exclusive=False))
        with pytest.raises(BookingNotFoundError):
            asyncio.run(store.remove("salon", "b1"))

    def test_list_filters_window_and_resource(self):
        store = InMemoryBookingStore(
            {
                "salon": [
                    _booking("b1", "2024-11-25 10:00"),
                    _booking("b2", "2024-11-25 12:00", staff_id="anna"),
                    _booking("b3", "2024-11-26 10:00"),
                ],
                "bakery": [_booking("b4", "2024-11-25 10:00")],
            }
        )
        start, end = _day("2024-11-25")

        everything = asyncio.run(store.list_bookings("salon", start, end))
        anna = asyncio.run(store.list_bookings("salon", start, end, resource="anna"))

        assert [b.id for b in everything] == ["b1", "b2"]
        assert [b.id for b in anna] == ["b2"]


class TestJsonBookingStore:
    """Tests for JsonBookingStore."""

    def test_bookings_survive_reload(self, tmp_path):
        path = tmp_path / "bookings.json"
        store = JsonBookingStore(path)
        asyncio.run(store.insert("salon", _booking("b1", "2024-11-25 10:00", staff_id="anna"), exclusive=True))

        reloaded = JsonBookingStore(path)

        booking = reloaded.all_bookings("salon")[0]
        assert booking.id == "b1"
        assert booking.staff_id == "anna"
        assert booking.service == CUT
        assert booking.start_time == pendulum.parse("2024-11-25 10:00", tz="Europe/Berlin")

    def test_remove_is_persisted(self, tmp_path):
        path = tmp_path / "bookings.json"
        store = JsonBookingStore(path)
        asyncio.run(store.insert("salon", _booking("b1", "2024-11-25 10:00"), exclusive=False))
        asyncio.run(store.remove("salon", "b1"))

        assert json.loads(path.read_text(encoding="utf-8")) == {"salon": []}

    def test_invalid_record_refuses_to_load(self, tmp_path):
        """A record missing its customer is reported, and the file is left untouched."""
        path = tmp_path / "bookings.json"
        original = json.dumps(
            {
                "salon": [
                    {
                        "id": "a",
                        "start_time": "2024-11-25T10:00:00+01:00",
                        "service": {"id": "cut", "duration_minutes": 60},
                        "customer_id": "c1",
                    },
                    {
                        "id": "b",
                        "start_time": "2024-11-25T12:00:00+01:00",
                        "service": {"id": "cut", "duration_minutes": 60},
                    },
                ]
            }
        )
        path.write_text(original, encoding="utf-8")

        with pytest.raises(ValueError, match="Invalid booking record"):
            JsonBookingStore(path)

        assert path.read_text(encoding="utf-8") == original

    def test_write_replaces_file_in_one_step(self, tmp_path):
        path = tmp_path / "bookings.json"
        store = JsonBookingStore(path)

        asyncio.run(store.insert("salon", _booking("b1", "2024-11-25 10:00"), exclusive=True))

        assert [p.name for p in tmp_path.iterdir()] == ["bookings.json"]
        assert [r["id"] for r in json.loads(path.read_text(encoding="utf-8"))["salon"]] == ["b1"]

    def test_unreadable_file(self, tmp_path):
        path = tmp_path / "bookings.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ValueError, match="Could not read bookings file"):
            JsonBookingStore(path)
