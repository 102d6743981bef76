"""
Read-only view over existing bookings for a time range.
"""

from typing import Iterable, List, Optional, Tuple

from .models import Booking, TimeRange, resource_key


class BookingLedger:
    """
    Immutable projection of the active bookings a caller loaded for one
    request. The engine never paginates or re-queries; whatever slice is
    supplied is what gets checked.
    """

    def __init__(self, bookings: Iterable[Booking] = ()):
        self._bookings: Tuple[Booking, ...] = tuple(
            sorted((b for b in bookings if b.is_active), key=lambda b: b.start_time)
        )

    def for_resource(self, staff_id: Optional[str]) -> List[Booking]:
        """Bookings occupying the given staff member, or the shared resource."""
        key = resource_key(staff_id)
        return [b for b in self._bookings if b.resource == key]

    def overlapping(
        self,
        interval: TimeRange,
        staff_id: Optional[str],
        exclude_booking_id: Optional[str] = None,
    ) -> List[Booking]:
        """
        Bookings on the same resource whose interval overlaps ``interval``.

        ``exclude_booking_id`` skips the booking being edited.
        """
        return [
            booking
            for booking in self.for_resource(staff_id)
            if booking.id != exclude_booking_id and booking.interval.overlaps(interval)
        ]
