"""
Domain layer - Pure booking logic without external dependencies.
"""

from .availability import AvailabilityCalculator
from .conflicts import ConflictResolver, Decision, RejectReason
from .ledger import BookingLedger
from .lifecycle import BookingLifecycle, PersistCreate, PersistDelete, PersistReplace
from .models import Booking, BookingDraft, BookingState, DoubleBookingPolicy, Service, TimeRange
from .schedule import BusinessSchedule
from .timegrid import DayWindow, SlotSize, TimeOfDay, generate_slots

__all__ = [
    "AvailabilityCalculator",
    "Booking",
    "BookingDraft",
    "BookingLedger",
    "BookingLifecycle",
    "BookingState",
    "BusinessSchedule",
    "ConflictResolver",
    "DayWindow",
    "Decision",
    "DoubleBookingPolicy",
    "PersistCreate",
    "PersistDelete",
    "PersistReplace",
    "RejectReason",
    "Service",
    "SlotSize",
    "TimeOfDay",
    "TimeRange",
    "generate_slots",
]
