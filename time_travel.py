"""
time_travel.py

The time-travel sequence as a polled state machine:

    IDLE --travel(long=False)--------------------------> TRAVELED --hold--> IDLE
    IDLE --travel(long=True)--> LONG_P1 .. LONG_P5 ----> TRAVELED --hold--> IDLE
    any  --return_from_travel()------------------------> RETURNED --hold--> IDLE

Every transition is a timestamp comparison in poll(); nothing here blocks.
A new command while a long sequence runs calls cancel(), which drops
straight back to IDLE with the displays restored.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Tuple

import config
import idle_cycle
import storage
from calendar_engine import CivilTime, minutes_to_date
from displays import all_off, animate

if TYPE_CHECKING:
    from state import ClockState

log = logging.getLogger(__name__)

_GLITCH_TEXT_DEST = "MALFUNCTION"
_GLITCH_TEXT_DEPT = "KHDW2011GIDUW"
_GLITCH_ZEROS     = "00000000000000"


class TravelState(enum.Enum):
    IDLE     = "idle"
    LONG_P1  = "long_p1"       # start sound, displays unchanged
    LONG_P2  = "long_p2"       # random on/off flicker
    LONG_P3  = "long_p3"       # blank
    LONG_P4  = "long_p4"       # brightness glitch + corrupted text
    LONG_P5  = "long_p5"       # lamp-test / zeros glitch
    TRAVELED = "traveled"      # dark hold after arrival
    RETURNED = "returned"      # dark hold after return


LONG_PHASES = (TravelState.LONG_P1, TravelState.LONG_P2, TravelState.LONG_P3,
               TravelState.LONG_P4, TravelState.LONG_P5)


def phase_delay(phase: TravelState) -> int:
    n = LONG_PHASES.index(phase) + 1
    return getattr(config, f"TT_P1_DELAY_P{n}")


@dataclass
class TravelSequence:
    phase: TravelState = TravelState.IDLE
    phase_start_ms: int = 0
    hold_start_ms: int = 0
    last_effect_ms: int = 0
    saved_brightness: Optional[Tuple[int, int, int]] = None

    def in_long(self) -> bool:
        return self.phase in LONG_PHASES

    def busy(self) -> bool:
        return self.phase is not TravelState.IDLE


# ── entry points ───────────────────────────────────────────────────────────
def travel(state: "ClockState", long: bool = False) -> None:
    """Start a time travel to the destination time."""
    seq = state.travel
    cancel(state)
    idle_cycle.pause(state)

    if long:
        log.debug("long time travel phase 1")
        _play(state, "travelstart")
        seq.saved_brightness = tuple(d.brightness for d in state.displays)
        seq.phase = TravelState.LONG_P1
        seq.phase_start_ms = state.clock.millis()
        return

    _arrive(state)


def return_from_travel(state: "ClockState") -> None:
    """Back to actual present time: zero the time difference."""
    seq = state.travel
    cancel(state)
    idle_cycle.pause(state)

    seq.phase = TravelState.RETURNED
    seq.hold_start_ms = state.clock.millis()
    if state.present_time.diff:
        _play(state, "timetravel")
    all_off(*state.displays)

    real, shown = _present_now(state)
    _copy_present_to_departed(state, shown)

    state.present_time.diff.clear()
    state.persist_travel()
    _show_present(state, real)
    log.info("Returned to present")


def cancel(state: "ClockState") -> bool:
    """Abort a running long sequence; True if one was running."""
    seq = state.travel
    if not seq.in_long():
        return False
    log.debug("time travel sequence cancelled in %s", seq.phase.value)
    _restore_brightness(state)
    seq.phase = TravelState.IDLE
    state.audio.stop()
    animate(*state.displays)
    return True


# ── polling ────────────────────────────────────────────────────────────────
def poll(state: "ClockState") -> None:
    seq = state.travel
    now = state.clock.millis()

    if seq.in_long():
        if now - seq.phase_start_ms >= phase_delay(seq.phase):
            _next_phase(state)
        elif seq.phase is not TravelState.LONG_P1:
            frame = getattr(config, "TT_EFFECT_FRAME_MS", 60)
            if now - seq.last_effect_ms >= frame:
                seq.last_effect_ms = now
                effect_frame(state)
        return

    if seq.phase in (TravelState.TRAVELED, TravelState.RETURNED):
        if now - seq.hold_start_ms >= getattr(config, "TIMETRAVEL_DELAY", 1500):
            seq.phase = TravelState.IDLE
            animate(*state.displays)
            log.debug("Display on after time travel")


def _next_phase(state: "ClockState") -> None:
    seq = state.travel
    idx = LONG_PHASES.index(seq.phase)
    if idx + 1 == len(LONG_PHASES):
        log.debug("long time travel re-entry")
        _restore_brightness(state)
        _arrive(state)
        return

    seq.phase = LONG_PHASES[idx + 1]
    seq.phase_start_ms = state.clock.millis()
    if seq.phase is TravelState.LONG_P2:
        all_off(*state.displays)
    log.debug("long time travel %s", seq.phase.value)


def effect_frame(state: "ClockState") -> None:
    """One random frame of the current long phase's effect."""
    rng = state.rng
    dest, pres, dept = state.destination, state.present, state.departed
    phase = state.travel.phase

    if phase is TravelState.LONG_P2:
        for d, r in zip((pres, dest, dept), rng.integers(0, 10, 3)):
            if r > 8:
                d.off()
            else:
                d.on()

    elif phase is TravelState.LONG_P3:
        all_off(dest, pres, dept)

    elif phase is TravelState.LONG_P4:
        for d in (dest, pres, dept):
            d.show()
            d.on()
            d.set_brightness((1 + int(rng.integers(0, 10))) & 0x0b)
        if rng.integers(0, 10) < 7:
            dest.show_text(_GLITCH_TEXT_DEST)
        if rng.integers(0, 10) < 3:
            dept.show_text(_GLITCH_TEXT_DEPT)

    elif phase is TravelState.LONG_P5:
        tt = int(rng.integers(0, 10))
        if tt < 3:
            pres.lamp_test()
            pres.on()
        elif tt < 7:
            pres.show()
            pres.on()
        else:
            pres.off()

        tt = int(rng.integers(0, 10))
        if tt < 2:
            dest.lamp_test()
            dest.on()
        elif tt < 6:
            dest.show()
            dest.on()
        else:
            dest.set_brightness(1 + int(rng.integers(0, 10)))

        tt = int(rng.integers(0, 10))
        if tt < 4:
            dept.lamp_test()
            dept.on()
        elif tt < 8:
            dept.show_text(_GLITCH_ZEROS)
            dept.on()
        else:
            dept.off()


# ── helpers ────────────────────────────────────────────────────────────────
def _arrive(state: "ClockState") -> None:
    """
    Present time -> departed time (frozen there), destination time becomes
    the new present time (keeps running as a clock).
    """
    seq = state.travel
    seq.phase = TravelState.TRAVELED
    seq.hold_start_ms = state.clock.millis()
    _play(state, "timetravel")
    all_off(*state.displays)

    real, shown = _present_now(state)
    _copy_present_to_departed(state, shown)

    dest_minutes = state.destination.time.to_minutes()
    state.present_time.diff.set_between(real, dest_minutes)

    state.persist_travel()
    _show_present(state, real)
    log.info("Time travel to %s (diff %s%d min)", state.destination.time,
             "+" if state.present_time.diff.up else "-", state.present_time.diff.minutes)


def _present_now(state: "ClockState") -> Tuple[int, CivilTime]:
    """
    Real minutes and displayed present time.  When the RTC keeps returning
    garbage the present row, last set from a good reading, stands in.
    """
    dt = state.read_rtc()
    if dt.is_plausible():
        try:
            return state.present_time.real_minutes(dt), state.present_time.displayed(dt)
        except ValueError as exc:
            log.debug("RTC reading unusable: %s", exc)
    log.warning("RTC unreadable, using present display %s", state.present.time)
    shown = state.present.time.copy()
    return state.present_time.diff.unapply(shown.to_minutes()), shown


def _show_present(state: "ClockState", real: int) -> None:
    ct = minutes_to_date(state.present_time.diff.apply(real))
    state.present.set_time(ct, state.present_time.year_offset)


def _copy_present_to_departed(state: "ClockState", shown: CivilTime) -> None:
    state.departed.set_time(shown, 0)
    if state.persistent:
        state.store.save_clock(storage.DEPT_TIME, state.departed.time, 0)


def _restore_brightness(state: "ClockState") -> None:
    seq = state.travel
    if seq.saved_brightness is not None:
        for d, b in zip(state.displays, seq.saved_brightness):
            d.set_brightness(b)
        seq.saved_brightness = None


def _play(state: "ClockState", name: str) -> None:
    if getattr(config, "PLAY_TT_SOUNDS", True):
        state.audio.play_file(name)
