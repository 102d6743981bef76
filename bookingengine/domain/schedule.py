"""
Business schedule: weekly opening windows plus slot and double-booking policy.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, Mapping, Tuple

import pendulum
from pendulum import Date
from pendulum.tz.exceptions import InvalidTimezone

from .exceptions import ScheduleConfigurationError
from .models import DoubleBookingPolicy
from .timegrid import DayWindow, SlotSize, TimeOfDay


def weekday_from_sunday_index(day_of_week: int) -> int:
    """
    Convert a Sunday=0 weekday (as stored by the booking front end) to the
    internal Monday=0 convention.
    """
    if day_of_week not in range(7):
        raise ScheduleConfigurationError(f"day_of_week must be between 0 and 6, got {day_of_week}")
    return (day_of_week - 1) % 7


def weekday_to_sunday_index(weekday: int) -> int:
    return (weekday + 1) % 7


@dataclass(frozen=True)
class BusinessSchedule:
    """
    Immutable schedule for one business.

    Holds zero to seven day windows keyed by weekday (0=Monday). A weekday
    with no window is closed. The whole schedule is replaced on save; there
    is no API to edit a single day in place.
    """
    windows: Tuple[DayWindow, ...] = ()
    slot_size: SlotSize = field(default_factory=SlotSize)
    double_booking_policy: DoubleBookingPolicy = DoubleBookingPolicy.ALLOWED
    timezone: str = "Europe/Berlin"
    # When set, slots whose service would run past closing time are dropped.
    strict_slot_fit: bool = False

    def __post_init__(self):
        windows = tuple(self.windows)
        seen = set()
        for window in windows:
            if window.weekday in seen:
                raise ScheduleConfigurationError(
                    f"Duplicate opening hours for {window.weekday_name}"
                )
            seen.add(window.weekday)
        try:
            pendulum.timezone(self.timezone)
        except InvalidTimezone as exc:
            raise ScheduleConfigurationError(f"Unknown timezone '{self.timezone}'") from exc
        object.__setattr__(self, "windows", tuple(sorted(windows, key=lambda w: w.weekday)))

    @property
    def _by_weekday(self) -> Mapping[int, DayWindow]:
        return {window.weekday: window for window in self.windows}

    def window_for(self, weekday: int) -> DayWindow:
        """Return the window for a weekday; absent weekdays are closed."""
        if weekday not in range(7):
            raise ValueError(f"Weekday must be between 0 and 6, got {weekday}")
        return self._by_weekday.get(weekday, DayWindow.closed(weekday))

    def window_for_date(self, day: Date) -> DayWindow:
        return self.window_for(day.weekday())

    def is_open_on(self, day: Date) -> bool:
        return self.window_for_date(day).is_open

    def week(self) -> Dict[int, DayWindow]:
        """All seven weekdays, closed ones included."""
        return {weekday: self.window_for(weekday) for weekday in range(7)}

    def replace_windows(self, windows: Iterable[DayWindow]) -> "BusinessSchedule":
        """Return a copy with the full set of windows replaced."""
        return replace(self, windows=tuple(windows))

    @property
    def prevents_double_booking(self) -> bool:
        return self.double_booking_policy is DoubleBookingPolicy.PREVENTED

    @classmethod
    def from_opening_hours(
        cls,
        rows: Iterable[Mapping[str, object]],
        *,
        slot_size: SlotSize | None = None,
        allow_double_booking: bool = True,
        timezone: str = "Europe/Berlin",
        strict_slot_fit: bool = False,
    ) -> "BusinessSchedule":
        """
        Build a schedule from opening-hour rows.

        Each row has ``day_of_week`` (Sunday=0), ``open_time`` and
        ``close_time`` as ``HH:MM`` strings. An optional ``is_open: false``
        marks the day closed.

        Raises:
            ScheduleConfigurationError: If any row is malformed
        """
        windows = []
        for row in rows:
            try:
                day_of_week = int(row["day_of_week"])  # type: ignore[arg-type]
                weekday = weekday_from_sunday_index(day_of_week)
                if not row.get("is_open", True):
                    windows.append(DayWindow.closed(weekday))
                    continue
                windows.append(
                    DayWindow(
                        weekday=weekday,
                        is_open=True,
                        open_time=TimeOfDay.parse(str(row["open_time"])),
                        close_time=TimeOfDay.parse(str(row["close_time"])),
                    )
                )
            except (KeyError, TypeError, ValueError) as exc:
                raise ScheduleConfigurationError(f"Invalid opening hours row {dict(row)}: {exc}") from exc

        return cls(
            windows=tuple(windows),
            slot_size=slot_size or SlotSize(),
            double_booking_policy=DoubleBookingPolicy.from_flag(allow_double_booking),
            timezone=timezone,
            strict_slot_fit=strict_slot_fit,
        )


# New businesses open 08:00-17:00 every day with 30 minute slots.
DEFAULT_OPENING_HOURS = tuple(
    {"day_of_week": day, "open_time": "08:00", "close_time": "17:00"} for day in range(7)
)
