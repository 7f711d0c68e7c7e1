"""
displays.py

The three clock rows as intent-level objects.  Logic code only ever calls
show / show_text / set_brightness / on / off / lamp_test; renderer.py turns
the resulting state into pixels.
"""

from __future__ import annotations

from typing import Optional

import config
from calendar_engine import CivilTime

_MONTHS = ("JAN", "FEB", "MAR", "APR", "MAY", "JUN",
           "JUL", "AUG", "SEP", "OCT", "NOV", "DEC")


class ClockDisplay:
    def __init__(self, name: str, default_brightness: int = 10):
        self.name = name
        self.time = CivilTime()
        self.year_offset = 0
        self.default_brightness = default_brightness
        self.brightness = default_brightness
        self.is_on = False
        self.text: Optional[str] = None     # overrides the date/time when set
        self.lamp = False
        self.colon = True
        self.night_mode = False
        self.mode24 = getattr(config, "MODE_24", False)

    # ── content ────────────────────────────────────────────────────────
    def set_time(self, ct: CivilTime, year_offset: int = 0) -> None:
        self.time = ct.copy()
        self.year_offset = year_offset

    def show(self) -> None:
        self.text = None
        self.lamp = False

    def show_text(self, text: str) -> None:
        self.text = text
        self.lamp = False

    def lamp_test(self) -> None:
        self.lamp = True

    # ── power / brightness ─────────────────────────────────────────────
    def on(self) -> None:
        self.is_on = True

    def off(self) -> None:
        self.is_on = False

    def set_brightness(self, level: int) -> None:
        self.brightness = max(0, min(15, level))

    def reset_brightness(self) -> None:
        self.brightness = self.default_brightness

    def set_night_mode(self, nm: bool) -> None:
        self.night_mode = nm

    def effective_brightness(self) -> int:
        if self.night_mode:
            return min(self.brightness, getattr(config, "NIGHT_BRIGHT", 0))
        return self.brightness

    # ── formatting ─────────────────────────────────────────────────────
    def segments(self) -> tuple[str, str, str, str, str, bool]:
        """(month, day, year, hour, minute, pm) as the row would show them."""
        t = self.time
        hour, pm = t.hour, t.hour >= 12
        if not self.mode24:
            hour = hour % 12 or 12
        return (_MONTHS[t.month - 1], f"{t.day:02d}", f"{t.year:04d}",
                f"{hour:02d}", f"{t.minute:02d}", pm)

    def render_text(self) -> str:
        if self.lamp:
            return "8" * 13
        if self.text is not None:
            return self.text
        mon, day, year, hour, minute, pm = self.segments()
        ampm = "" if self.mode24 else (" PM" if pm else " AM")
        sep = ":" if self.colon else " "
        return f"{mon} {day} {year}  {hour}{sep}{minute}{ampm}"


def all_off(*displays: ClockDisplay) -> None:
    for d in displays:
        d.off()


def animate(*displays: ClockDisplay) -> None:
    """Re-show the clock content and switch the rows on."""
    for d in displays:
        d.show()
        d.on()
