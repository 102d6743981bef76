"""
Domain models for bookings, services and time intervals.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Optional

from pendulum import DateTime

# Resource key for bookings without a staff assignment: the business itself.
SHARED_RESOURCE = "__shared__"


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable half-open time range [start, end).

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    @classmethod
    def starting_at(cls, start: DateTime, minutes: int) -> "TimeRange":
        return cls(start=start, end=start.add(minutes=minutes))

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Touching ranges (one ends when the other starts) do not overlap."""
        return self.start < other.end and other.start < self.end

    def __str__(self) -> str:
        return f"{self.start.format('DD.MM.YYYY HH:mm')} - {self.end.format('HH:mm')}"


class DoubleBookingPolicy(str, Enum):
    ALLOWED = "allowed"
    PREVENTED = "prevented"

    @classmethod
    def from_flag(cls, allow_double_booking: bool) -> "DoubleBookingPolicy":
        return cls.ALLOWED if allow_double_booking else cls.PREVENTED


class BookingState(str, Enum):
    NONEXISTENT = "nonexistent"
    ACTIVE = "active"
    DELETED = "deleted"


@dataclass(frozen=True)
class Service:
    """A bookable service. Bookings reference it; they do not own it."""
    id: str
    duration_minutes: int
    price_cents: int = 0
    name: str = ""
    hidden: bool = False

    def __post_init__(self):
        if self.duration_minutes <= 0:
            raise ValueError(f"Service {self.id}: duration must be positive, got {self.duration_minutes}")
        if self.price_cents < 0:
            raise ValueError(f"Service {self.id}: price must not be negative, got {self.price_cents}")


def resource_key(staff_id: Optional[str]) -> str:
    """Map an optional staff assignment to the resource it occupies."""
    return staff_id if staff_id else SHARED_RESOURCE


@dataclass(frozen=True)
class Booking:
    """
    An appointment occupying [start_time, start_time + service duration).
    """
    id: str
    start_time: DateTime
    service: Service
    customer_id: str
    staff_id: Optional[str] = None
    note: Optional[str] = None
    state: BookingState = BookingState.ACTIVE

    @property
    def end_time(self) -> DateTime:
        return self.start_time.add(minutes=self.service.duration_minutes)

    @property
    def interval(self) -> TimeRange:
        return TimeRange(start=self.start_time, end=self.end_time)

    @property
    def resource(self) -> str:
        return resource_key(self.staff_id)

    @property
    def is_active(self) -> bool:
        return self.state is BookingState.ACTIVE

    def deleted(self) -> "Booking":
        return replace(self, state=BookingState.DELETED)


@dataclass(frozen=True)
class BookingDraft:
    """
    A proposed booking as submitted by a caller. Any field may be missing;
    the lifecycle validates presence before evaluating placement.

    ``replaces_booking_id`` is set for edits so the booking being replaced
    is not checked against itself. ``recurrence`` is carried through
    unchanged and never expanded.
    """
    start_time: Optional[DateTime] = None
    service: Optional[Service] = None
    customer_id: Optional[str] = None
    staff_id: Optional[str] = None
    note: Optional[str] = None
    replaces_booking_id: Optional[str] = None
    recurrence: Optional[Any] = None

    @property
    def resource(self) -> str:
        return resource_key(self.staff_id)

    @property
    def interval(self) -> Optional[TimeRange]:
        if self.start_time is None or self.service is None:
            return None
        return TimeRange.starting_at(self.start_time, self.service.duration_minutes)
