"""
rtc.py

Hardware real-time-clock model.

The RTC keeps a compressed two-digit year (2000-2099).  The logical,
user-visible year is hardware year + year offset (see present_time.py).
Reads can return garbage (a known bus glitch: every field decodes as 165);
read_rtc() retries those and eventually settles for what it got.
"""

from __future__ import annotations

import datetime
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import config

log = logging.getLogger(__name__)

HW_YEAR_MIN = 2000


@dataclass
class RTCReading:
    year: int
    month: int
    day: int
    hour: int
    minute: int
    second: int = 0

    def is_plausible(self) -> bool:
        """Structural check only; day-vs-month is not validated here."""
        return (
            1 <= self.month <= 12
            and 1 <= self.day <= 31
            and 0 <= self.hour <= 23
            and 0 <= self.minute <= 59
        )


class SystemRTC:
    """
    Software stand-in for the battery-backed RTC chip: host wall-clock plus
    a skew set by adjust().  Only the two-digit year survives, like on the
    chip, so anything past 2099 wraps to 2000.
    """

    def __init__(self):
        self._skew = 0.0
        self.lost_power = False

    def now(self) -> RTCReading:
        t = datetime.datetime.fromtimestamp(time.time() + self._skew)
        return RTCReading(
            HW_YEAR_MIN + (t.year - HW_YEAR_MIN) % 100,
            t.month, t.day, t.hour, t.minute, t.second,
        )

    def adjust(self, reading: RTCReading) -> None:
        year = HW_YEAR_MIN + (reading.year - HW_YEAR_MIN) % 100
        target = datetime.datetime(
            year, reading.month, reading.day,
            reading.hour, reading.minute, reading.second,
        )
        self._skew = target.timestamp() - time.time()
        self.lost_power = False


def read_rtc(rtc, wait: Optional[Callable[[int], None]] = None,
             max_retries: Optional[int] = None) -> RTCReading:
    """
    Read the RTC, retrying implausible readings with a growing backoff.
    After *max_retries* the last (possibly still bad) reading is returned.
    """
    wait = wait or (lambda ms: time.sleep(ms / 1000.0))
    if max_retries is None:
        max_retries = getattr(config, "RTC_MAX_RETRIES", 30)

    dt = rtc.now()
    retries = 0
    while not dt.is_plausible() and retries < max_retries:
        wait(50 if retries < 5 else 100)
        dt = rtc.now()
        retries += 1

    if retries:
        log.warning("read_rtc: %d retries needed to read RTC", retries)
    return dt
