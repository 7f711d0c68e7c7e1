"""
present_time.py

What the "present time" row shows:

    logical real time = RTC reading with year + year_offset
    displayed present = logical real time +/- time difference

year_offset only works around the RTC's 2000-2099 range and is always a
multiple of 28, so weekdays and leap years line up.  The time difference is
the narrative part: set by a time travel, it keeps a constant delta to real
time until a return from travel zeroes it.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from calendar_engine import CYCLE_MINUTES, CivilTime, date_to_minutes, minutes_to_date, wrap_minutes
from rtc import HW_YEAR_MIN, RTCReading

LEAP_CYCLE_YEARS = 28
REBASE_LIMIT = 2050            # keep hardware years at or below this


@dataclass
class TimeDifference:
    minutes: int = 0
    up: bool = False           # True: add to real time, False: subtract

    def __bool__(self) -> bool:
        return self.minutes != 0

    def apply(self, real_minutes: int) -> int:
        delta = self.minutes if self.up else -self.minutes
        return wrap_minutes(real_minutes + delta)

    def unapply(self, shown_minutes: int) -> int:
        delta = self.minutes if self.up else -self.minutes
        return wrap_minutes(shown_minutes - delta)

    def set_between(self, real_minutes: int, target_minutes: int) -> None:
        if real_minutes < target_minutes:
            self.minutes, self.up = target_minutes - real_minutes, True
        else:
            self.minutes, self.up = real_minutes - target_minutes, False

    def flip_for_rollover(self) -> None:
        """Re-express the delta across the 9999 -> 1 wrap."""
        if self.minutes:
            self.minutes = CYCLE_MINUTES - self.minutes
            self.up = not self.up

    def clear(self) -> None:
        self.minutes = 0


def fit_hardware_year(year: int) -> tuple[int, int]:
    """
    Map a logical *year* into the hardware range in 28-year steps.
    Returns (hardware_year, year_offset) with hw + offset == year.
    """
    hw = year
    while hw > REBASE_LIMIT:
        hw -= LEAP_CYCLE_YEARS
    while hw < HW_YEAR_MIN:
        hw += LEAP_CYCLE_YEARS
    return hw, year - hw


@dataclass
class PresentTime:
    year_offset: int = 0
    diff: TimeDifference = field(default_factory=TimeDifference)

    def logical_year(self, dt: RTCReading) -> int:
        return dt.year + self.year_offset

    def real_minutes(self, dt: RTCReading) -> int:
        return date_to_minutes(self.logical_year(dt), dt.month, dt.day, dt.hour, dt.minute)

    def displayed(self, dt: RTCReading) -> CivilTime:
        return minutes_to_date(self.diff.apply(self.real_minutes(dt)))
