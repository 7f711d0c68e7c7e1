"""
alarms.py

Alarm, reminder and countdown timer, plus the once-per-minute checks that
ring them (and the hourly chime).  All comparisons are against either real
time or the displayed present time, depending on config.ALARM_RTC.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from calendar_engine import CivilTime, days_in_month, is_leap_year, weekday

if TYPE_CHECKING:
    from state import ClockState

log = logging.getLogger(__name__)

# Weekday selectors: 0 daily, 1 Mon-Fri, 2 weekend, 3..9 Monday..Sunday
ALARM_WEEKDAYS = ("MON-SUN", "MON-FRI", "SAT-SUN",
                  "MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY",
                  "FRIDAY", "SATURDAY", "SUNDAY")

_MONTH_NAMES = ("JAN", "FEB", "MAR", "APR", "MAY", "JUN",
                "JUL", "AUG", "SEP", "OCT", "NOV", "DEC")


@dataclass
class Alarm:
    hour: int = 255            # 255 = never set
    minute: int = 255
    weekdays: int = 0
    enabled: bool = False

    def is_set(self) -> bool:
        return 0 <= self.hour <= 23 and 0 <= self.minute <= 59

    def is_valid(self) -> bool:
        return (self.is_set() or (self.hour, self.minute) == (255, 255)) \
            and 0 <= self.weekdays < len(ALARM_WEEKDAYS)

    def matches_day(self, wd: int) -> bool:
        """*wd*: 0 = Monday .. 6 = Sunday."""
        if self.weekdays == 0:
            return True
        if self.weekdays == 1:
            return wd <= 4
        if self.weekdays == 2:
            return wd >= 5
        return wd == self.weekdays - 3

    def describe(self) -> str:
        if not self.is_set():
            return "ALARM   UNSET"
        return f"{ALARM_WEEKDAYS[self.weekdays]:<8} {self.hour:02d}{self.minute:02d}"


@dataclass
class Reminder:
    month: int = 0             # 0 = every month
    day: int = 0               # month == day == 0: off
    hour: int = 0
    minute: int = 0

    def is_off(self) -> bool:
        return not self.month and not self.day

    def is_valid(self) -> bool:
        if self.is_off():
            return True
        return (
            0 <= self.month <= 12
            and 1 <= self.day <= 31
            and (not self.month or self.day <= days_in_month(self.month, 2000))
            and 0 <= self.hour <= 23
            and 0 <= self.minute <= 59
        )

    def clear(self) -> None:
        self.month = self.day = self.hour = self.minute = 0

    def describe(self) -> str:
        if self.is_off():
            return "REMINDER  OFF"
        if self.month:
            return f"{_MONTH_NAMES[self.month - 1]}{self.day:02d}    {self.hour:02d}{self.minute:02d}"
        return f"   {self.day:02d}    {self.hour:02d}{self.minute:02d}"

    def minutes_until(self, now: CivilTime) -> int:
        """Minutes from *now* to the next occurrence (days only in the same month/year grid)."""
        def mins_into_year(month: int, day: int, hour: int, minute: int, year: int) -> int:
            days = sum(days_in_month(m, year) for m in range(1, month)) + day - 1
            return (days * 24 + hour) * 60 + minute

        yr = now.year
        loc = mins_into_year(now.month, now.day, now.hour, now.minute, yr)
        month = self.month or now.month
        tgt = mins_into_year(month, self.day, self.hour, self.minute, yr)
        if tgt < loc:
            year_len = (366 if is_leap_year(yr) else 365) * 24 * 60
            if self.month or now.month == 12:
                tgt = mins_into_year(self.month or 1, self.day, self.hour, self.minute, yr + 1) + year_len
            else:
                tgt = mins_into_year(now.month + 1, self.day, self.hour, self.minute, yr)
        return tgt - loc

    def describe_remaining(self, now: CivilTime) -> str:
        if self.is_off():
            return self.describe()
        left = self.minutes_until(now)
        days, rem = divmod(left, 24 * 60)
        hours, mins = divmod(rem, 60)
        return f"     {days:3d}d{hours:2d}{mins:02d}"


@dataclass
class Countdown:
    duration_ms: int = 0       # 0 = off
    started_ms: int = 0

    def start(self, minutes: int, now_ms: int) -> None:
        self.duration_ms = minutes * 60 * 1000
        self.started_ms = now_ms

    def stop(self) -> None:
        self.duration_ms = 0

    def remaining_ms(self, now_ms: int) -> int:
        if not self.duration_ms:
            return 0
        return max(0, self.duration_ms - (now_ms - self.started_ms))

    def describe(self, now_ms: int) -> str:
        if not self.duration_ms:
            return "TIMER     OFF"
        mins, secs = divmod(self.remaining_ms(now_ms) // 1000, 60)
        return f"TIMER    {mins:02d}{secs:02d}"


# ── minute checks ──────────────────────────────────────────────────────────
@dataclass
class AlarmLatches:
    alarm_done: bool = False
    hourly_done: bool = False
    reminder_done: bool = False


def check_due(state: "ClockState", compare: Optional[CivilTime] = None) -> None:
    """
    Ring alarm, reminder, hourly chime and countdown at most once each.
    Call once per poll pass with the time to compare against.
    """
    latches = state.alarm_latches
    now_ms = state.clock.millis()

    cd = state.countdown
    if cd.duration_ms and cd.remaining_ms(now_ms) == 0:
        cd.stop()
        log.info("Countdown expired")
        state.audio.play_file("timer")

    if compare is None:
        return

    busy = state.travel_busy()
    alarm = state.alarm
    alarm_now = (alarm.enabled and alarm.is_set()
                 and (alarm.hour, alarm.minute) == (compare.hour, compare.minute)
                 and alarm.matches_day(weekday(compare.year, compare.month, compare.day)))

    if compare.minute == 0:
        if state.night_mode or busy or alarm_now:
            latches.hourly_done = True
        if not latches.hourly_done:
            state.audio.play_file("hour")
            latches.hourly_done = True
    else:
        latches.hourly_done = False

    if alarm_now:
        if not latches.alarm_done:
            log.info("Alarm %02d:%02d", alarm.hour, alarm.minute)
            state.audio.play_file("alarm")
            latches.alarm_done = True
    else:
        latches.alarm_done = False

    rem = state.reminder
    rem_now = (not rem.is_off()
               and (rem.month in (0, compare.month))
               and (rem.day, rem.hour, rem.minute) == (compare.day, compare.hour, compare.minute))
    if rem_now:
        if not latches.reminder_done:
            log.info("Reminder due")
            state.audio.play_file("reminder")
            latches.reminder_done = True
    else:
        latches.reminder_done = False
