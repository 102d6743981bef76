"""
Application services for availability lookups and booking writes.

The service loads configuration and a ledger slice through collaborator
protocols, delegates every placement decision to the domain layer, and
applies the resulting persistence effect through the booking store. Keeping
I/O behind protocols lets tests plug in the in-memory store, and lets real
hosts plug in a database.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Mapping, Optional, Protocol, Tuple, Union

from pendulum import Date, DateTime

from ..domain.availability import AvailabilityCalculator
from ..domain.conflicts import ConflictResolver
from ..domain.exceptions import (
    BookingValidationError,
    BusinessNotFoundError,
    ConcurrentConflictError,
    ServiceNotFoundError,
    StaffNotFoundError,
    StorageConflictError,
)
from ..domain.ledger import BookingLedger
from ..domain.lifecycle import BookingLifecycle
from ..domain.models import Booking, BookingDraft, Service, TimeRange, resource_key
from ..domain.schedule import BusinessSchedule
from ..domain.timegrid import TimeOfDay
from .booking_request import BookingRequest, parse_date

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BusinessProfile:
    """Everything the engine needs to know about one business."""
    id: str
    schedule: BusinessSchedule
    services: Mapping[str, Service] = field(default_factory=dict, hash=False)
    staff_ids: FrozenSet[str] = frozenset()
    name: str = ""
    time_format: str = "24"

    def service(self, service_id: str, include_hidden: bool = False) -> Service:
        """
        Look up a service. Hidden services are only visible to owners.

        Raises:
            ServiceNotFoundError: If the service does not exist or is hidden
        """
        service = self.services.get(service_id)
        if service is None or (service.hidden and not include_hidden):
            raise ServiceNotFoundError(f"Service '{service_id}' not found")
        return service

    def require_staff(self, staff_id: Optional[str]) -> None:
        if staff_id is not None and staff_id not in self.staff_ids:
            raise StaffNotFoundError(f"Staff member '{staff_id}' not found")


@dataclass(frozen=True)
class CallerContext:
    """Identity/session input: who is calling and whether they may override."""
    actor_id: Optional[str] = None
    is_owner_override: bool = False

    @classmethod
    def customer(cls, actor_id: Optional[str] = None) -> "CallerContext":
        return cls(actor_id=actor_id, is_owner_override=False)

    @classmethod
    def owner(cls, actor_id: Optional[str] = None) -> "CallerContext":
        return cls(actor_id=actor_id, is_owner_override=True)


@dataclass(frozen=True)
class AvailabilityCheck:
    """Result of checking one specific slot."""
    available: bool
    start: DateTime
    end: DateTime
    overlapping: Tuple[Booking, ...] = ()


class ConfigurationSource(Protocol):
    """Yields business configuration for a business identifier."""

    async def get_business(self, business_id: str) -> Optional[BusinessProfile]:
        """Return the profile, or None if the business does not exist."""


class BookingStore(Protocol):
    """
    Storage collaborator for bookings.

    ``insert`` and ``replace`` with ``exclusive=True`` must re-check overlap
    on the booking's resource at commit time and raise
    ``StorageConflictError`` if another write got there first.
    """

    async def list_bookings(
        self,
        business_id: str,
        start: DateTime,
        end: DateTime,
        resource: Optional[str] = None,
    ) -> List[Booking]:
        """Active bookings overlapping [start, end), optionally for one resource."""

    async def get_booking(self, business_id: str, booking_id: str) -> Optional[Booking]:
        """Return the booking, or None."""

    async def insert(self, business_id: str, booking: Booking, *, exclusive: bool) -> None:
        """Persist a new booking."""

    async def replace(self, business_id: str, booking: Booking, *, exclusive: bool) -> None:
        """Replace the whole record of an existing booking."""

    async def remove(self, business_id: str, booking_id: str) -> None:
        """Delete a booking."""


DateLike = Union[Date, str]


def _as_date(value: DateLike) -> Date:
    if not isinstance(value, str):
        return value
    try:
        return parse_date(value)
    except ValueError as exc:
        raise BookingValidationError(f"Invalid date '{value}', expected YYYY-MM-DD", fields=["date"]) from exc


class BookingService:
    """
    Implements the engine's operation contracts on top of its collaborators.
    """

    def __init__(
        self,
        config_source: ConfigurationSource,
        store: BookingStore,
        lifecycle: Optional[BookingLifecycle] = None,
    ) -> None:
        self._config_source = config_source
        self._store = store
        self._resolver = ConflictResolver()
        self._lifecycle = lifecycle or BookingLifecycle(self._resolver)

    async def get_business(self, business_id: str) -> BusinessProfile:
        """
        Raises:
            BusinessNotFoundError: If the configuration source has no such business
        """
        profile = await self._config_source.get_business(business_id)
        if profile is None:
            raise BusinessNotFoundError(f"Business '{business_id}' not found")
        return profile

    async def get_available_slots(
        self,
        business_id: str,
        day: DateLike,
        service_id: str,
        staff_id: Optional[str] = None,
        caller: Optional[CallerContext] = None,
    ) -> List[TimeOfDay]:
        """
        Bookable start times for a service on one day.

        Raises:
            BusinessNotFoundError, ServiceNotFoundError, StaffNotFoundError
        """
        caller = caller or CallerContext.customer()
        profile = await self.get_business(business_id)
        service = profile.service(service_id, include_hidden=caller.is_owner_override)
        profile.require_staff(staff_id)

        day = _as_date(day)
        ledger = await self._load_ledger_for_day(business_id, profile.schedule, day, service, staff_id)

        return AvailabilityCalculator(profile.schedule).available_slots(day, ledger, service, staff_id)

    async def get_availability_by_day(
        self,
        business_id: str,
        start_date: DateLike,
        end_date: DateLike,
        service_id: str,
        staff_id: Optional[str] = None,
        caller: Optional[CallerContext] = None,
    ) -> Dict[Date, List[TimeOfDay]]:
        """Available start times per day over an inclusive date range."""
        caller = caller or CallerContext.customer()
        profile = await self.get_business(business_id)
        service = profile.service(service_id, include_hidden=caller.is_owner_override)
        profile.require_staff(staff_id)

        start_date = _as_date(start_date)
        end_date = _as_date(end_date)
        tz = profile.schedule.timezone

        bookings = await self._store.list_bookings(
            business_id,
            TimeOfDay(0).on(start_date, tz),
            TimeOfDay(0).on(end_date.add(days=1), tz).add(minutes=service.duration_minutes),
            resource=resource_key(staff_id),
        )
        return AvailabilityCalculator(profile.schedule).availability_by_day(
            start_date, end_date, BookingLedger(bookings), service, staff_id
        )

    async def check_availability(
        self,
        business_id: str,
        service_id: str,
        date: str,
        time: str,
        staff_id: Optional[str] = None,
        caller: Optional[CallerContext] = None,
    ) -> AvailabilityCheck:
        """
        Check a single slot and report the bookings it would overlap.

        ``available`` follows the business policy: under ALLOWED (or owner
        override) a slot is available even when ``overlapping`` is not empty.
        """
        caller = caller or CallerContext.customer()
        request = BookingRequest.from_payload(
            {"service_id": service_id, "staff_id": staff_id, "date": date, "time": time}
        )
        profile = await self.get_business(business_id)
        service = profile.service(service_id, include_hidden=caller.is_owner_override)
        profile.require_staff(request.staff_id)

        start = request.start_time(profile.schedule.timezone)
        if start is None:
            raise BookingValidationError("Date and time are required", fields=["date", "time"])
        draft = BookingDraft(start_time=start, service=service, staff_id=request.staff_id)
        interval = draft.interval
        ledger = await self._load_ledger(business_id, interval, request.staff_id)

        decision = self._resolver.evaluate(draft, ledger, profile.schedule, caller.is_owner_override)
        overlapping = tuple(ledger.overlapping(interval, request.staff_id))
        return AvailabilityCheck(
            available=decision.accepted,
            start=interval.start,
            end=interval.end,
            overlapping=overlapping,
        )

    async def create_booking(
        self,
        business_id: str,
        request: BookingRequest,
        caller: Optional[CallerContext] = None,
    ) -> Booking:
        """
        Raises:
            BookingValidationError, SlotConflictError, ConcurrentConflictError,
            NotFoundError
        """
        caller = caller or CallerContext.customer()
        request.require_complete()
        profile = await self.get_business(business_id)
        draft = self._draft_from_request(profile, request, caller)
        ledger = await self._load_ledger(business_id, draft.interval, draft.staff_id)

        effect = self._lifecycle.create(draft, ledger, profile.schedule, caller.is_owner_override)

        try:
            await self._store.insert(
                business_id, effect.booking, exclusive=self._exclusive(profile, caller)
            )
        except StorageConflictError as exc:
            logger.warning("Concurrent booking detected for %s: %s", effect.booking.interval, exc)
            raise ConcurrentConflictError(
                "The slot was taken while the booking was being saved, please try again"
            ) from exc

        return effect.booking

    async def update_booking(
        self,
        business_id: str,
        booking_id: str,
        request: BookingRequest,
        caller: Optional[CallerContext] = None,
    ) -> Booking:
        """
        Replace a booking wholesale (date, time, service and staff may all change).

        Raises:
            BookingValidationError, SlotConflictError, ConcurrentConflictError,
            NotFoundError
        """
        caller = caller or CallerContext.customer()
        request.require_complete()
        profile = await self.get_business(business_id)
        existing = await self._store.get_booking(business_id, booking_id)
        draft = self._draft_from_request(profile, request, caller)
        ledger = await self._load_ledger(business_id, draft.interval, draft.staff_id)

        effect = self._lifecycle.update(
            existing, draft, ledger, profile.schedule, caller.is_owner_override
        )

        try:
            await self._store.replace(
                business_id, effect.booking, exclusive=self._exclusive(profile, caller)
            )
        except StorageConflictError as exc:
            logger.warning("Concurrent booking detected for %s: %s", effect.booking.interval, exc)
            raise ConcurrentConflictError(
                "The slot was taken while the booking was being saved, please try again"
            ) from exc

        return effect.booking

    async def delete_booking(self, business_id: str, booking_id: str) -> Booking:
        """
        Raises:
            BusinessNotFoundError, BookingNotFoundError
        """
        await self.get_business(business_id)
        existing = await self._store.get_booking(business_id, booking_id)
        effect = self._lifecycle.delete(existing)
        await self._store.remove(business_id, booking_id)
        return effect.booking

    async def _load_ledger(
        self,
        business_id: str,
        interval: Optional[TimeRange],
        staff_id: Optional[str],
    ) -> BookingLedger:
        if interval is None:
            return BookingLedger()
        bookings = await self._store.list_bookings(
            business_id, interval.start, interval.end, resource=resource_key(staff_id)
        )
        return BookingLedger(bookings)

    async def _load_ledger_for_day(
        self,
        business_id: str,
        schedule: BusinessSchedule,
        day: Date,
        service: Service,
        staff_id: Optional[str],
    ) -> BookingLedger:
        # Late slots may run past midnight, so the slice extends by one duration.
        start = TimeOfDay(0).on(day, schedule.timezone)
        end = TimeOfDay(0).on(day.add(days=1), schedule.timezone).add(minutes=service.duration_minutes)
        bookings = await self._store.list_bookings(
            business_id, start, end, resource=resource_key(staff_id)
        )
        return BookingLedger(bookings)

    @staticmethod
    def _draft_from_request(
        profile: BusinessProfile,
        request: BookingRequest,
        caller: CallerContext,
    ) -> BookingDraft:
        service = profile.service(request.service_id, include_hidden=caller.is_owner_override)
        profile.require_staff(request.staff_id)
        return BookingDraft(
            start_time=request.start_time(profile.schedule.timezone),
            service=service,
            customer_id=request.customer_id,
            staff_id=request.staff_id,
            note=request.note,
            recurrence=request.recurrence,
        )

    @staticmethod
    def _exclusive(profile: BusinessProfile, caller: CallerContext) -> bool:
        return profile.schedule.prevents_double_booking and not caller.is_owner_override
