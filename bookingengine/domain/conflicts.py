"""
Decides whether a proposed booking may coexist with existing bookings.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from .ledger import BookingLedger
from .models import Booking, BookingDraft
from .schedule import BusinessSchedule

logger = logging.getLogger(__name__)


class RejectReason(str, Enum):
    SLOT_CONFLICT = "SLOT_CONFLICT"


@dataclass(frozen=True)
class Decision:
    accepted: bool
    reason: Optional[RejectReason] = None
    conflicts: Tuple[Booking, ...] = ()

    @classmethod
    def accept(cls) -> "Decision":
        return cls(accepted=True)

    @classmethod
    def reject(cls, reason: RejectReason, conflicts: Tuple[Booking, ...] = ()) -> "Decision":
        return cls(accepted=False, reason=reason, conflicts=conflicts)


class ConflictResolver:
    """
    Pure placement check for a single proposed booking.

    Rules, first match wins:
    1. Double booking allowed -> accept, no checking at all
    2. Owner override -> accept
    3. Overlap with another booking on the same resource -> reject
    4. Otherwise accept
    """

    def evaluate(
        self,
        proposed: BookingDraft,
        ledger: BookingLedger,
        schedule: BusinessSchedule,
        is_owner_override: bool = False,
    ) -> Decision:
        if not schedule.prevents_double_booking:
            return Decision.accept()

        if is_owner_override:
            logger.debug("Owner override: skipping conflict check for %s", proposed.start_time)
            return Decision.accept()

        interval = proposed.interval
        if interval is None:
            raise ValueError("Proposed booking needs a start time and a service to be evaluated")

        conflicts = ledger.overlapping(
            interval,
            proposed.staff_id,
            exclude_booking_id=proposed.replaces_booking_id,
        )
        if conflicts:
            logger.info(
                "Rejected %s on resource %s: overlaps %s",
                interval,
                proposed.resource,
                ", ".join(b.id for b in conflicts),
            )
            return Decision.reject(RejectReason.SLOT_CONFLICT, tuple(conflicts))

        return Decision.accept()
