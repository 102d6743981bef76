"""
Booking lifecycle: NONEXISTENT -> ACTIVE -> (ACTIVE, replaced) -> DELETED.

The lifecycle validates input and asks the ``ConflictResolver`` where a
booking may go. It never touches storage. Each accepted transition is
returned as a persistence effect that the caller applies through its storage
collaborator.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Callable, List, Optional, Union

from .conflicts import ConflictResolver
from .exceptions import BookingNotFoundError, BookingValidationError, SlotConflictError
from .ledger import BookingLedger
from .models import Booking, BookingDraft, BookingState
from .schedule import BusinessSchedule

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("service", "customer_id", "start_time")


@dataclass(frozen=True)
class PersistCreate:
    booking: Booking


@dataclass(frozen=True)
class PersistReplace:
    booking: Booking
    previous: Booking


@dataclass(frozen=True)
class PersistDelete:
    booking: Booking


Effect = Union[PersistCreate, PersistReplace, PersistDelete]


def _new_booking_id() -> str:
    return uuid.uuid4().hex


def state_of(booking: Optional[Booking]) -> BookingState:
    return BookingState.NONEXISTENT if booking is None else booking.state


class BookingLifecycle:
    """Thin state machine around create, update and delete."""

    def __init__(
        self,
        resolver: Optional[ConflictResolver] = None,
        id_factory: Callable[[], str] = _new_booking_id,
    ) -> None:
        self._resolver = resolver or ConflictResolver()
        self._id_factory = id_factory

    def create(
        self,
        draft: BookingDraft,
        ledger: BookingLedger,
        schedule: BusinessSchedule,
        is_owner_override: bool = False,
    ) -> PersistCreate:
        """
        Validate and place a new booking.

        Raises:
            BookingValidationError: If service, customer or start time is missing
            SlotConflictError: If the slot is taken on the same resource
        """
        self._validate(draft)
        self._place(draft, ledger, schedule, is_owner_override)

        booking = self._build(self._id_factory(), draft)
        logger.info("Accepted new booking %s at %s", booking.id, booking.interval)
        return PersistCreate(booking=booking)

    def update(
        self,
        existing: Optional[Booking],
        draft: BookingDraft,
        ledger: BookingLedger,
        schedule: BusinessSchedule,
        is_owner_override: bool = False,
    ) -> PersistReplace:
        """
        Replace an active booking wholesale. The booking is excluded from its
        own overlap check, so resubmitting the same slot always passes.

        Raises:
            BookingNotFoundError: If the booking does not exist or was deleted
            BookingValidationError: If a required field is missing
            SlotConflictError: If the new slot is taken on the same resource
        """
        current = self._require_active(existing)
        self._validate(draft)

        draft = BookingDraft(
            start_time=draft.start_time,
            service=draft.service,
            customer_id=draft.customer_id,
            staff_id=draft.staff_id,
            note=draft.note,
            replaces_booking_id=current.id,
            recurrence=draft.recurrence,
        )
        self._place(draft, ledger, schedule, is_owner_override)

        booking = self._build(current.id, draft)
        logger.info("Accepted update of booking %s to %s", booking.id, booking.interval)
        return PersistReplace(booking=booking, previous=current)

    def delete(self, existing: Optional[Booking]) -> PersistDelete:
        """
        Remove a booking. No conflict check is needed for removal.

        Raises:
            BookingNotFoundError: If the booking does not exist or was deleted
        """
        current = self._require_active(existing)
        logger.info("Deleting booking %s", current.id)
        return PersistDelete(booking=current.deleted())

    def _place(
        self,
        draft: BookingDraft,
        ledger: BookingLedger,
        schedule: BusinessSchedule,
        is_owner_override: bool,
    ) -> None:
        decision = self._resolver.evaluate(draft, ledger, schedule, is_owner_override)
        if not decision.accepted:
            raise SlotConflictError(
                f"Slot at {draft.interval} is already booked",
                conflicts=decision.conflicts,
            )

    @staticmethod
    def _validate(draft: BookingDraft) -> None:
        missing: List[str] = [name for name in REQUIRED_FIELDS if not getattr(draft, name)]
        if missing:
            raise BookingValidationError(
                f"Missing required field(s): {', '.join(missing)}", fields=missing
            )

    @staticmethod
    def _require_active(existing: Optional[Booking]) -> Booking:
        if existing is None or state_of(existing) is not BookingState.ACTIVE:
            raise BookingNotFoundError("Booking not found")
        return existing

    @staticmethod
    def _build(booking_id: str, draft: BookingDraft) -> Booking:
        if draft.start_time is None or draft.service is None or not draft.customer_id:
            raise BookingValidationError(
                f"Booking {booking_id} is incomplete", fields=REQUIRED_FIELDS
            )
        return Booking(
            id=booking_id,
            start_time=draft.start_time,
            service=draft.service,
            customer_id=draft.customer_id,
            staff_id=draft.staff_id or None,
            note=draft.note or None,
        )
