"""
Core business logic for calculating bookable start times.

Pure domain logic without any external dependencies (no API calls, no
database, no I/O). Callers pass in the schedule and a ledger slice they
have already loaded.
"""

import logging
from typing import Dict, List, Optional

from pendulum import Date

from .ledger import BookingLedger
from .models import Service, TimeRange
from .schedule import BusinessSchedule
from .timegrid import TimeOfDay, generate_slots

logger = logging.getLogger(__name__)


class AvailabilityCalculator:
    """
    Calculates available start times for a service on a given day.

    Algorithm:
    1. Resolve the opening window for the day's weekday (closed -> nothing)
    2. Generate candidate start times on the slot grid
    3. Build the interval a booking at each candidate would occupy
    4. Under PREVENTED, drop candidates overlapping a booking on the same resource
    5. Under ALLOWED, keep every candidate regardless of the ledger
    """

    def __init__(self, schedule: BusinessSchedule):
        self.schedule = schedule

    def available_slots(
        self,
        day: Date,
        ledger: BookingLedger,
        service: Service,
        staff_id: Optional[str] = None,
    ) -> List[TimeOfDay]:
        """
        Find all start times at which ``service`` can be booked on ``day``.

        Args:
            day: Calendar date in the business timezone
            ledger: Active bookings covering at least ``day``
            service: Service to be booked (provides the duration)
            staff_id: Staff member to book, or None for the shared resource

        Returns:
            Chronological list of start times; empty when closed or full
        """
        window = self.schedule.window_for_date(day)
        if not window.is_open:
            return []

        candidates = generate_slots(window, self.schedule.slot_size)

        if self.schedule.strict_slot_fit:
            candidates = [
                t for t in candidates
                if t.minutes + service.duration_minutes <= window.close_time.minutes
            ]

        if not self.schedule.prevents_double_booking:
            return candidates

        busy = [booking.interval for booking in ledger.for_resource(staff_id)]
        if not busy:
            return candidates

        available = [
            t for t in candidates
            if not self._overlaps_any(self._interval_at(day, t, service), busy)
        ]

        logger.debug(
            "%s: %d of %d slots free for service %s (staff=%s)",
            day.to_date_string(),
            len(available),
            len(candidates),
            service.id,
            staff_id,
        )
        return available

    def availability_by_day(
        self,
        start_date: Date,
        end_date: Date,
        ledger: BookingLedger,
        service: Service,
        staff_id: Optional[str] = None,
    ) -> Dict[Date, List[TimeOfDay]]:
        """
        Available start times for every day in ``[start_date, end_date]``.

        Days without any free slot are omitted.
        """
        result: Dict[Date, List[TimeOfDay]] = {}
        current = start_date

        while current <= end_date:
            slots = self.available_slots(current, ledger, service, staff_id)
            if slots:
                result[current] = slots
            current = current.add(days=1)

        return result

    def _interval_at(self, day: Date, start: TimeOfDay, service: Service) -> TimeRange:
        return TimeRange.starting_at(
            start.on(day, self.schedule.timezone), service.duration_minutes
        )

    @staticmethod
    def _overlaps_any(interval: TimeRange, busy: List[TimeRange]) -> bool:
        return any(interval.overlaps(other) for other in busy)
