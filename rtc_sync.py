"""
rtc_sync.py

Keeps the RTC honest:

  * boot(): load the persisted present/destination/departed/alarm/reminder
    records (defaults on failure), first network sync.
  * poll(): read the RTC every pass; once a day at RESYNC_AT resync from
    the network, catching a hand-set ("faked") RTC; when the network is
    down keep the hardware year in range locally; handle 9999 -> 1.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional

import config
import idle_cycle
import storage
from alarms import Alarm, Reminder
from calendar_engine import MAX_YEAR
from present_time import REBASE_LIMIT, PresentTime, fit_hardware_year
from rtc import RTCReading

if TYPE_CHECKING:
    from state import ClockState

log = logging.getLogger(__name__)

FAKE_RTC_MINUTES = 30
ROLLOVER_HW_YEAR = 2017        # hardware year used for logical year 1
ROLLOVER_OFFSET = -2016


@dataclass
class SyncState:
    resync_done: bool = False        # latched for the RESYNC_AT second
    last_ok: Optional[bool] = None
    last_sync_ms: int = 0
    syncs: int = 0
    failures: int = 0


# ── network ────────────────────────────────────────────────────────────────
def sync_from_network(state: "ClockState") -> bool:
    """Set RTC and year offset from the network time source."""
    sync = state.sync
    reading = state.ntp.fetch(wait=state.wait) if state.ntp is not None else None
    sync.last_ok = reading is not None
    if reading is None:
        sync.failures += 1
        return False

    hw_year, offset = fit_hardware_year(reading.year)
    state.present_time.year_offset = offset
    state.rtc.adjust(RTCReading(hw_year, reading.month, reading.day,
                                reading.hour, reading.minute, reading.second))
    sync.syncs += 1
    sync.last_sync_ms = state.clock.millis()
    log.info("RTC set from network: %04d-%02d-%02d %02d:%02d:%02d (year offset %d)",
             reading.year, reading.month, reading.day,
             reading.hour, reading.minute, reading.second, offset)
    return True


# ── boot ───────────────────────────────────────────────────────────────────
def _load_clock(state: "ClockState", name: str, display, default) -> bool:
    loaded = state.store.load_clock(name)
    if loaded is None:
        log.warning("%s: using default %s", name, default)
        display.set_time(default)
        state.store.save_clock(name, default)
        return False
    display.set_time(*loaded)
    return True


def boot(state: "ClockState") -> List[str]:
    """Bring the time model up; returns the warnings to flash (BATT, RESET)."""
    warnings: List[str] = []

    loaded = state.store.load_present()
    state.present_time = loaded or PresentTime()
    if not state.persistent:
        state.present_time.diff.clear()

    if getattr(state.rtc, "lost_power", False):
        log.warning("RTC lost power, time travel state reset")
        state.present_time = PresentTime()
        warnings.append("BATT")

    stored_offset = loaded.year_offset if loaded else None
    if sync_from_network(state) and state.present_time.year_offset != stored_offset:
        state.persist_present()

    ok = _load_clock(state, storage.DEST_TIME, state.destination, idle_cycle.DESTINATION_TIMES[0])
    ok = _load_clock(state, storage.DEPT_TIME, state.departed, idle_cycle.DEPARTED_TIMES[0]) and ok
    if not ok:
        warnings.append("RESET")

    state.alarm = state.store.load_alarm() or Alarm()
    state.reminder = state.store.load_reminder() or Reminder()

    if idle_cycle.interval(state):
        idle_cycle.show_preset(state, 0)

    dt = state.read_rtc()
    if dt.is_plausible() and state.present_time.logical_year(dt) > MAX_YEAR:
        dt = rollover(state, dt)
    state.refresh_present(dt)
    state.warnings = warnings
    return warnings


# ── periodic ───────────────────────────────────────────────────────────────
def _real_minutes(pt: PresentTime, dt: RTCReading) -> Optional[int]:
    try:
        return pt.real_minutes(dt)
    except ValueError:
        return None


def resync(state: "ClockState", dt: RTCReading) -> RTCReading:
    """Daily network resync; returns the fresh RTC reading."""
    pt = state.present_time
    before = _real_minutes(pt, dt) if pt.diff else None
    stored_offset = state.store.load_year_offset()

    if not sync_from_network(state):
        log.warning("RTC re-adjustment via network failed")
        return rebase_local(state, dt)

    dt = state.read_rtc()
    faked = False
    if before is not None:
        after = _real_minutes(pt, dt)
        faked = after is not None and abs(after - before) > FAKE_RTC_MINUTES
        if faked:
            log.warning("RTC was off by %d minutes, back to actual present", after - before)
            pt.diff.clear()

    if pt.year_offset != stored_offset or faked:
        state.persist_present()
    return dt


def rebase_local(state: "ClockState", dt: RTCReading) -> RTCReading:
    """Without network: pull a hardware year above REBASE_LIMIT back in 28-year steps."""
    if not dt.is_plausible() or dt.year <= REBASE_LIMIT:
        return dt

    stored_offset = state.store.load_year_offset()
    hw_year, shift = fit_hardware_year(dt.year)
    pt = state.present_time
    pt.year_offset += shift
    state.rtc.adjust(RTCReading(hw_year, dt.month, dt.day, dt.hour, dt.minute, dt.second))
    log.info("hardware year %d rebased to %d (year offset %d)", dt.year, hw_year, pt.year_offset)

    if pt.year_offset != stored_offset:
        state.persist_present()
    return state.read_rtc()


def rollover(state: "ClockState", dt: RTCReading) -> RTCReading:
    """Logical year ran past 9999: continue at year 1."""
    log.info("Rollover 9999->1 detected, adjusting RTC and year offset")
    pt = state.present_time
    pt.diff.flip_for_rollover()
    pt.year_offset = ROLLOVER_OFFSET

    # year 1 is no leap year
    day = 28 if (dt.month, dt.day) == (2, 29) else dt.day
    state.rtc.adjust(RTCReading(ROLLOVER_HW_YEAR, dt.month, day, dt.hour, dt.minute, dt.second))
    state.persist_present()
    return state.read_rtc()


def poll(state: "ClockState") -> RTCReading:
    dt = state.read_rtc()

    if (dt.hour, dt.minute, dt.second) == tuple(getattr(config, "RESYNC_AT", (3, 1, 10))):
        if not state.sync.resync_done:
            state.sync.resync_done = True
            dt = resync(state, dt)
    else:
        state.sync.resync_done = False

    if dt.is_plausible() and state.present_time.logical_year(dt) > MAX_YEAR:
        dt = rollover(state, dt)

    state.refresh_present(dt)
    return dt
