"""
idle_cycle.py

Decorative mode: every AUTO_INTERVALS[AUTO_INTERVAL] minutes the destination
and departed rows switch to the next pair of preset dates.  The rows blank
on second 59 and come back with the new minute.

Any time travel (and any date entered on the keypad) pauses the rotation
for AUTO_PAUSE_MS; pausing again restarts that window from scratch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

import config
from calendar_engine import CivilTime
from displays import all_off, animate
from rtc import RTCReading

if TYPE_CHECKING:
    from state import ClockState

log = logging.getLogger(__name__)

# ── preset dates ───────────────────────────────────────────────────────────
DESTINATION_TIMES = (
    CivilTime(1985, 10, 26,  1, 21),
    CivilTime(1985, 10, 26,  1, 24),
    CivilTime(1955, 11,  5,  6,  0),
    CivilTime(1985, 10, 27, 11,  0),
    CivilTime(2015, 10, 21, 16, 29),
    CivilTime(1955, 11, 12,  6,  0),
    CivilTime(1885,  1,  1,  0,  0),
    CivilTime(1885,  9,  2, 12,  0),
)
DEPARTED_TIMES = (
    CivilTime(1985, 10, 26,  1, 20),
    CivilTime(1955, 11, 12, 22,  4),
    CivilTime(1985, 10, 26,  1, 34),
    CivilTime(1885,  9,  7,  9, 10),
    CivilTime(1985, 10, 26, 11, 35),
    CivilTime(1985, 10, 27,  2, 42),
    CivilTime(1955, 11, 12, 21, 44),
    CivilTime(1955, 11, 13, 12,  0),
)


@dataclass
class IdleCycle:
    interval_idx: int = 0
    index: int = 0                 # current preset pair
    paused: bool = False
    pause_start_ms: int = 0
    done: bool = False             # already rotated in this second-59 window
    show_after_second: Optional[int] = None


def interval(state: "ClockState") -> int:
    intervals = getattr(config, "AUTO_INTERVALS", (0,))
    idx = state.idle.interval_idx
    return intervals[idx] if 0 <= idx < len(intervals) else 0


def pause(state: "ClockState") -> None:
    if interval(state):
        state.idle.paused = True
        state.idle.pause_start_ms = state.clock.millis()
        log.debug("auto interval paused for %d ms", getattr(config, "AUTO_PAUSE_MS", 0))


def is_paused(state: "ClockState") -> bool:
    idle = state.idle
    return idle.paused and (state.clock.millis() - idle.pause_start_ms
                            < getattr(config, "AUTO_PAUSE_MS", 30 * 60 * 1000))


def show_preset(state: "ClockState", index: int) -> None:
    state.idle.index = index % len(DESTINATION_TIMES)
    state.destination.set_time(DESTINATION_TIMES[state.idle.index])
    state.departed.set_time(DEPARTED_TIMES[state.idle.index])


def poll(state: "ClockState", dt: RTCReading) -> None:
    idle = state.idle

    if idle.show_after_second is not None and dt.second != idle.show_after_second:
        idle.show_after_second = None
        state.refresh_present(dt)
        if state.powered:
            animate(*state.displays)

    mins = interval(state)
    min_next = (dt.minute + 1) % 60
    if (dt.second == 59 and mins and min_next % mins == 0
            and not is_paused(state) and not state.travel_busy()):
        if not idle.done:
            idle.done = True
            idle.paused = False
            show_preset(state, idle.index + 1)
            log.debug("auto interval: preset %d", idle.index)
            all_off(*state.displays)
            idle.show_after_second = dt.second
    else:
        idle.done = False
