"""
Time grid model: a business day as discrete, evenly spaced start times.

Pure value types. Nothing here knows about bookings or calendars.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

import pendulum
from pendulum import Date, DateTime

from .exceptions import ScheduleConfigurationError

MINUTES_PER_DAY = 24 * 60
MAX_SLOT_MINUTES = 480

WEEKDAY_NAMES = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)


@dataclass(frozen=True, order=True)
class TimeOfDay:
    """
    Minutes since midnight, 0-1439.

    Invariant: 0 <= minutes < 1440.
    """
    minutes: int

    def __post_init__(self):
        if not 0 <= self.minutes < MINUTES_PER_DAY:
            raise ValueError(f"TimeOfDay must be within 0-1439 minutes, got {self.minutes}")

    @classmethod
    def of(cls, hour: int, minute: int = 0) -> "TimeOfDay":
        """Build from hour and minute components."""
        if not 0 <= hour <= 23 or not 0 <= minute <= 59:
            raise ValueError(f"Invalid time {hour}:{minute}")
        return cls(hour * 60 + minute)

    @classmethod
    def parse(cls, value: str) -> "TimeOfDay":
        """
        Parse ``HH:MM`` (24-hour). ``HH.MM`` is accepted as well, since some
        pickers submit a dot separator.

        Raises:
            ValueError: If the string is not a valid time of day
        """
        text = value.strip()
        separator = "." if "." in text else ":"
        parts = text.split(separator)
        if len(parts) != 2 or not all(part.isdigit() for part in parts):
            raise ValueError(f"Invalid time '{value}', expected HH:MM")
        return cls.of(int(parts[0]), int(parts[1]))

    @property
    def hour(self) -> int:
        return self.minutes // 60

    @property
    def minute(self) -> int:
        return self.minutes % 60

    def format(self, time_format: str = "24") -> str:
        """Format as ``14:30`` or, with ``time_format="12"``, ``2:30 PM``."""
        if time_format == "12":
            suffix = "PM" if self.hour >= 12 else "AM"
            display_hour = self.hour % 12 or 12
            return f"{display_hour}:{self.minute:02d} {suffix}"
        return f"{self.hour:02d}:{self.minute:02d}"

    def on(self, day: Date, timezone: str) -> DateTime:
        """Combine with a calendar date in the business timezone."""
        return pendulum.datetime(
            day.year, day.month, day.day, self.hour, self.minute, tz=timezone
        )

    def __str__(self) -> str:
        return self.format()


@dataclass(frozen=True)
class SlotSize:
    """Granularity of candidate start times, independent of service duration."""
    value: int = 30
    unit: str = "minutes"

    def __post_init__(self):
        if self.unit not in ("minutes", "hours"):
            raise ScheduleConfigurationError(f"Unknown slot size unit '{self.unit}'")
        if not 1 <= self.minutes <= MAX_SLOT_MINUTES:
            raise ScheduleConfigurationError(
                f"Slot size must be between 1 and {MAX_SLOT_MINUTES} minutes, "
                f"got {self.value} {self.unit}"
            )

    @property
    def minutes(self) -> int:
        return self.value * 60 if self.unit == "hours" else self.value


@dataclass(frozen=True)
class DayWindow:
    """
    Opening window for one weekday (0=Monday, 6=Sunday).

    Invariant: an open window opens strictly before it closes.
    """
    weekday: int
    is_open: bool = False
    open_time: TimeOfDay = TimeOfDay(0)
    close_time: TimeOfDay = TimeOfDay(0)

    def __post_init__(self):
        if self.weekday not in range(7):
            raise ScheduleConfigurationError(f"Weekday must be between 0 and 6, got {self.weekday}")
        if self.is_open and self.open_time >= self.close_time:
            raise ScheduleConfigurationError(
                f"{WEEKDAY_NAMES[self.weekday]}: opening time {self.open_time} "
                f"must be before closing time {self.close_time}"
            )

    @classmethod
    def closed(cls, weekday: int) -> "DayWindow":
        return cls(weekday=weekday, is_open=False)

    @classmethod
    def open(cls, weekday: int, open_time: str, close_time: str) -> "DayWindow":
        """Build an open window from ``HH:MM`` strings."""
        return cls(
            weekday=weekday,
            is_open=True,
            open_time=TimeOfDay.parse(open_time),
            close_time=TimeOfDay.parse(close_time),
        )

    @property
    def weekday_name(self) -> str:
        return WEEKDAY_NAMES[self.weekday]


def generate_slots(window: DayWindow, slot_size: SlotSize) -> List[TimeOfDay]:
    """
    Generate every candidate start time within an opening window.

    Yields each ``t`` with ``open_time <= t < close_time`` that lies a whole
    number of slot steps after ``open_time``. Slots are not truncated at
    closing time: a slot is returned even when a service started there would
    run past ``close_time``.
    """
    if not window.is_open:
        return []

    step = slot_size.minutes
    return [
        TimeOfDay(minutes)
        for minutes in range(window.open_time.minutes, window.close_time.minutes, step)
    ]
