"""
buttons.py

Edge-detecting key state machine.  Feed it the raw level (down / up) every
poll pass; it debounces and reports Pressed, Held (once, after
KEY_HOLD_MS) and Released.  A release that follows a hold is flagged so
the keypad doesn't also record the digit.
"""

from __future__ import annotations

import enum
from typing import List, Optional

import config


class ButtonEvent(enum.Enum):
    PRESSED  = "pressed"
    HELD     = "held"
    RELEASED = "released"


class Button:
    def __init__(self, key: str, debounce_ms: Optional[int] = None, hold_ms: Optional[int] = None):
        self.key = key
        self.debounce_ms = getattr(config, "KEY_DEBOUNCE_MS", 50) if debounce_ms is None else debounce_ms
        self.hold_ms = getattr(config, "KEY_HOLD_MS", 2000) if hold_ms is None else hold_ms

        self.down = False             # debounced level
        self.was_held = False         # current/last press turned into a hold
        self._raw = False
        self._raw_since = 0
        self._down_since = 0

    def update(self, raw_down: bool, now_ms: int) -> List[ButtonEvent]:
        events: List[ButtonEvent] = []

        if raw_down != self._raw:
            self._raw = raw_down
            self._raw_since = now_ms

        if self._raw != self.down and now_ms - self._raw_since >= self.debounce_ms:
            self.down = self._raw
            if self.down:
                self._down_since = now_ms
                self.was_held = False
                events.append(ButtonEvent.PRESSED)
            else:
                events.append(ButtonEvent.RELEASED)

        if self.down and not self.was_held and now_ms - self._down_since >= self.hold_ms:
            self.was_held = True
            events.append(ButtonEvent.HELD)

        return events
