"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .booking_request import BookingRequest
from .booking_service import (
    AvailabilityCheck,
    BookingService,
    BookingStore,
    BusinessProfile,
    CallerContext,
    ConfigurationSource,
)

__all__ = [
    "AvailabilityCheck",
    "BookingRequest",
    "BookingService",
    "BookingStore",
    "BusinessProfile",
    "CallerContext",
    "ConfigurationSource",
]
