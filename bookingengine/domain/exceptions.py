"""
Domain-specific exception hierarchy for the booking engine.

Every error carries a stable ``code`` so hosts can map outcomes to their
transport (HTTP status, exit code, RPC error) without string matching.
"""

from __future__ import annotations

from typing import Sequence, Tuple


class BookingEngineError(Exception):
    """Base class for all application-level errors."""

    code = "ERROR"


class ScheduleConfigurationError(BookingEngineError, ValueError):
    """Raised when business hours or slot settings are malformed."""

    code = "SCHEDULE_CONFIGURATION"


class BookingValidationError(BookingEngineError):
    """Raised when a booking request is missing or has malformed fields."""

    code = "VALIDATION"

    def __init__(self, message: str, fields: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.fields: Tuple[str, ...] = tuple(fields)


class SlotConflictError(BookingEngineError):
    """Raised when the proposed interval overlaps an existing booking."""

    code = "SLOT_CONFLICT"

    def __init__(self, message: str, conflicts: Sequence[object] = ()) -> None:
        super().__init__(message)
        self.conflicts = tuple(conflicts)


class ConcurrentConflictError(BookingEngineError):
    """Raised when storage rejects a write that passed the pre-check."""

    code = "CONCURRENT_CONFLICT"


class NotFoundError(BookingEngineError):
    """Raised when a referenced entity does not exist."""

    code = "NOT_FOUND"


class BusinessNotFoundError(NotFoundError):
    code = "BUSINESS_NOT_FOUND"


class ServiceNotFoundError(NotFoundError):
    code = "SERVICE_NOT_FOUND"


class StaffNotFoundError(NotFoundError):
    code = "STAFF_NOT_FOUND"


class BookingNotFoundError(NotFoundError):
    code = "BOOKING_NOT_FOUND"


class StorageConflictError(BookingEngineError):
    """Raised by a booking store when a commit-time exclusivity check fails."""

    code = "STORAGE_CONFLICT"


class ConfigurationSourceError(BookingEngineError):
    """Raised when business configuration cannot be fetched or parsed."""

    code = "CONFIGURATION_SOURCE"
