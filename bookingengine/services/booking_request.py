"""
Caller-facing booking input.

Raw fields arrive as strings from whatever transport the host uses. This
model normalizes them and reports malformed values as
``BookingValidationError`` so callers only ever see the domain taxonomy.
"""

from typing import Any, List, Mapping, Optional

import pendulum
from pendulum import Date, DateTime
from pydantic import BaseModel, ValidationError, field_validator

from ..domain.exceptions import BookingValidationError
from ..domain.timegrid import TimeOfDay

# Placeholder values the public booking funnel sends when no staff was picked.
_EMPTY_STAFF_VALUES = {"", "undefined", "null", "none"}


def parse_date(value: str) -> Date:
    """Parse a ``YYYY-MM-DD`` date string."""
    return pendulum.from_format(value.strip(), "YYYY-MM-DD").date()


class BookingRequest(BaseModel):
    """Booking fields as submitted; every field is optional at this stage."""
    service_id: Optional[str] = None
    customer_id: Optional[str] = None
    staff_id: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    note: Optional[str] = None
    # Accepted from booking forms but never expanded into extra bookings.
    recurrence: Optional[Any] = None

    @field_validator("staff_id")
    @classmethod
    def normalize_staff(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value.strip().lower() in _EMPTY_STAFF_VALUES:
            return None
        return value.strip()

    @field_validator("date")
    @classmethod
    def validate_date(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        try:
            return parse_date(value).to_date_string()
        except ValueError as exc:
            raise ValueError(f"Invalid date '{value}', expected YYYY-MM-DD") from exc

    @field_validator("time")
    @classmethod
    def validate_time(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        return TimeOfDay.parse(value).format()

    @field_validator("note")
    @classmethod
    def strip_note(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "BookingRequest":
        """
        Build a request from a raw mapping.

        Raises:
            BookingValidationError: If any field is malformed
        """
        try:
            return cls.model_validate(dict(payload))
        except ValidationError as exc:
            fields = [".".join(str(part) for part in error["loc"]) for error in exc.errors()]
            messages = "; ".join(error["msg"] for error in exc.errors())
            raise BookingValidationError(f"Invalid booking request: {messages}", fields=fields) from exc

    def missing_fields(self) -> List[str]:
        """Required fields that were not supplied."""
        required = {
            "service_id": self.service_id,
            "customer_id": self.customer_id,
            "date": self.date,
            "time": self.time,
        }
        return [name for name, value in required.items() if not value]

    def require_complete(self) -> None:
        missing = self.missing_fields()
        if missing:
            raise BookingValidationError(
                f"Missing required field(s): {', '.join(missing)}", fields=missing
            )

    def start_time(self, timezone: str) -> Optional[DateTime]:
        """Start of the booking in the business timezone, if date and time are set."""
        if not self.date or not self.time:
            return None
        return TimeOfDay.parse(self.time).on(parse_date(self.date), timezone)
