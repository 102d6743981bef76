"""
Booking stores: an in-memory store and a JSON-file store built on it.
"""

import asyncio
import json
import logging
from collections import defaultdict
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pendulum
from pendulum import DateTime

from ..domain.exceptions import BookingNotFoundError, StorageConflictError
from ..domain.models import Booking, Service, TimeRange

logger = logging.getLogger(__name__)


class InMemoryBookingStore:
    """
    Keeps bookings in process memory, keyed by business.

    Writes for one resource are serialized with a per-resource lock, and
    exclusive writes re-check overlap inside that lock. That is the
    commit-time guarantee the service relies on to detect races.
    """

    def __init__(self, bookings: Optional[Dict[str, Iterable[Booking]]] = None):
        self._bookings: Dict[str, Dict[str, Booking]] = defaultdict(dict)
        self._locks: Dict[Tuple[str, str], asyncio.Lock] = {}
        for business_id, items in (bookings or {}).items():
            for booking in items:
                self.seed(business_id, booking)

    def seed(self, business_id: str, booking: Booking) -> None:
        """Store a booking directly, with no checks at all."""
        self._bookings[business_id][booking.id] = booking

    def all_bookings(self, business_id: str) -> List[Booking]:
        return sorted(self._bookings[business_id].values(), key=lambda b: b.start_time)

    async def list_bookings(
        self,
        business_id: str,
        start: DateTime,
        end: DateTime,
        resource: Optional[str] = None,
    ) -> List[Booking]:
        window = TimeRange(start=start, end=end)
        return [
            booking
            for booking in self.all_bookings(business_id)
            if booking.is_active
            and (resource is None or booking.resource == resource)
            and booking.interval.overlaps(window)
        ]

    async def get_booking(self, business_id: str, booking_id: str) -> Optional[Booking]:
        return self._bookings[business_id].get(booking_id)

    async def insert(self, business_id: str, booking: Booking, *, exclusive: bool) -> None:
        async with self._lock(business_id, booking.resource):
            if exclusive:
                self._check_exclusive(business_id, booking)
            self._bookings[business_id][booking.id] = booking
        self._committed(business_id)

    async def replace(self, business_id: str, booking: Booking, *, exclusive: bool) -> None:
        async with self._lock(business_id, booking.resource):
            if booking.id not in self._bookings[business_id]:
                raise BookingNotFoundError(f"Booking '{booking.id}' not found")
            if exclusive:
                self._check_exclusive(business_id, booking)
            self._bookings[business_id][booking.id] = booking
        self._committed(business_id)

    async def remove(self, business_id: str, booking_id: str) -> None:
        if self._bookings[business_id].pop(booking_id, None) is None:
            raise BookingNotFoundError(f"Booking '{booking_id}' not found")
        self._committed(business_id)

    def _lock(self, business_id: str, resource: str) -> asyncio.Lock:
        key = (business_id, resource)
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    def _check_exclusive(self, business_id: str, booking: Booking) -> None:
        for other in self._bookings[business_id].values():
            if (
                other.id != booking.id
                and other.is_active
                and other.resource == booking.resource
                and other.interval.overlaps(booking.interval)
            ):
                logger.warning(
                    "Commit rejected: booking %s overlaps %s on resource %s",
                    booking.id,
                    other.id,
                    booking.resource,
                )
                raise StorageConflictError(
                    f"Booking {booking.id} overlaps existing booking {other.id}"
                )

    def _committed(self, business_id: str) -> None:
        """Hook for subclasses that persist after each write."""


class JsonBookingStore(InMemoryBookingStore):
    """
    In-memory store persisted to a JSON file after every write.

    File format:
    {
        "salon": [
            {
                "id": "...",
                "start_time": "2024-11-25T10:00:00+01:00",
                "service": {"id": "cut", "duration_minutes": 60, "price_cents": 3500, "name": "Cut"},
                "customer_id": "c-1",
                "staff_id": null,
                "note": null
            }
        ]
    }
    """

    def __init__(self, path: Path):
        super().__init__()
        self.path = path
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            raise ValueError(f"Could not read bookings file {self.path}: {exc}") from exc

        for business_id, items in data.items():
            for item in items:
                try:
                    booking = booking_from_dict(item)
                except (KeyError, TypeError, ValueError) as exc:
                    raise ValueError(
                        f"Invalid booking record in {self.path} for business {business_id}: {exc!r}"
                    ) from exc
                self.seed(business_id, booking)

    def _committed(self, business_id: str) -> None:
        data = {
            business: [booking_to_dict(b) for b in self.all_bookings(business)]
            for business in self._bookings
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Readers only ever see a complete file
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        tmp_path.replace(self.path)


def booking_to_dict(booking: Booking) -> Dict[str, Any]:
    return {
        "id": booking.id,
        "start_time": booking.start_time.to_iso8601_string(),
        "service": {
            "id": booking.service.id,
            "duration_minutes": booking.service.duration_minutes,
            "price_cents": booking.service.price_cents,
            "name": booking.service.name,
        },
        "customer_id": booking.customer_id,
        "staff_id": booking.staff_id,
        "note": booking.note,
    }


def booking_from_dict(data: Dict[str, Any]) -> Booking:
    start = pendulum.parse(data["start_time"])
    if not isinstance(start, DateTime):
        raise ValueError(f"Could not parse start_time: {data['start_time']}")
    service = data["service"]
    return Booking(
        id=data["id"],
        start_time=start,
        service=Service(
            id=service["id"],
            duration_minutes=int(service["duration_minutes"]),
            price_cents=int(service.get("price_cents", 0)),
            name=service.get("name", ""),
        ),
        customer_id=data["customer_id"],
        staff_id=data.get("staff_id"),
        note=data.get("note"),
    )
