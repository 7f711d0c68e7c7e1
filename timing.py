# =========  timing.py  =========
"""
Millisecond clock helpers.

Every wait in the emulator (phase delays, display holds, keypad timeout,
resync backoff) is a timestamp comparison against one of these clocks,
evaluated once per poll pass.  Tests swap in a ManualClock.
"""

import time


class Clock:
    """Monotonic milliseconds since construction."""

    def __init__(self):
        self._t0 = time.monotonic()

    def millis(self) -> int:
        return int((time.monotonic() - self._t0) * 1000)

    def sleep(self, ms: int) -> None:
        time.sleep(ms / 1000.0)


class ManualClock(Clock):
    """
    A clock that only moves when told to.  sleep() advances it instead of
    blocking, so retry loops run instantly under test.
    """

    def __init__(self, start_ms: int = 0):
        self._now = start_ms

    def millis(self) -> int:
        return self._now

    def advance(self, ms: int) -> int:
        self._now += ms
        return self._now

    def sleep(self, ms: int) -> None:
        self._now += ms
