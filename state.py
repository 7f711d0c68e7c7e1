"""
state.py

ClockState: everything the poll functions share.  One instance is created
by the application and handed to every module's poll(); nothing else keeps
module-level mutable state.
"""

from __future__ import annotations

import logging
from typing import List, Optional

import numpy as np

import config
import rtc as rtc_mod
from alarms import Alarm, AlarmLatches, Countdown, Reminder
from audio import Audio, MusicPlayer
from displays import ClockDisplay
from idle_cycle import IdleCycle
from keypad import EntryFeedback, KeypadBuffer
from ntp_client import NetworkTimeSource
from present_time import PresentTime
from rtc import RTCReading, SystemRTC
from rtc_sync import SyncState
from storage import JsonStore
from time_travel import TravelSequence
from timing import Clock

log = logging.getLogger(__name__)


class ClockState:
    def __init__(
        self,
        clock: Optional[Clock] = None,
        rtc=None,
        ntp: Optional[NetworkTimeSource] = None,
        store: Optional[JsonStore] = None,
        audio: Optional[Audio] = None,
        music: Optional[MusicPlayer] = None,
        persistent: Optional[bool] = None,
        seed: Optional[int] = None,
    ):
        # collaborators ---------------------------------------------------
        self.clock = clock or Clock()
        self.rtc   = rtc or SystemRTC()
        self.ntp   = ntp if ntp is not None else NetworkTimeSource(clock=self.clock)
        self.store = store or JsonStore()
        self.audio = audio or Audio()
        self.music = music or MusicPlayer()

        # the three rows --------------------------------------------------
        self.destination = ClockDisplay("destination", getattr(config, "DEST_TIME_BRIGHT", 10))
        self.present     = ClockDisplay("present", getattr(config, "PRES_TIME_BRIGHT", 10))
        self.departed    = ClockDisplay("departed", getattr(config, "LAST_TIME_BRIGHT", 10))
        self.displays    = (self.destination, self.present, self.departed)

        # time model ------------------------------------------------------
        self.present_time = PresentTime()
        self.persistent = getattr(config, "TIMES_PERSISTENT", True) if persistent is None else persistent
        self.sync   = SyncState()
        self.travel = TravelSequence()
        self.idle   = IdleCycle(interval_idx=getattr(config, "AUTO_INTERVAL", 0))
        self.last_reading: Optional[RTCReading] = None

        # keypad ----------------------------------------------------------
        self.keypad   = KeypadBuffer()
        self.feedback = EntryFeedback()
        self.beep_mode = getattr(config, "BEEP_MODE", 1)
        self.last_key_ms = 0

        # alarm / reminder / timer ----------------------------------------
        self.alarm     = Alarm()
        self.reminder  = Reminder()
        self.countdown = Countdown()
        self.alarm_latches = AlarmLatches()

        # display modes ---------------------------------------------------
        self.night_mode = False
        self.have_rc = False            # room-condition sensor attached
        self.have_wc = False            # second time zone configured
        self.rc_mode = False
        self.wc_mode = False

        # boot ------------------------------------------------------------
        self.powered = False            # displays released after startup
        self.startup_ms: Optional[int] = None
        self.warnings: List[str] = []

        self.rng = np.random.default_rng(seed)

    # ── RTC access ─────────────────────────────────────────────────────
    def wait(self, ms: int) -> None:
        """Blocking wait that keeps the music player fed."""
        self.music.poll()
        self.clock.sleep(ms)

    def read_rtc(self) -> RTCReading:
        dt = rtc_mod.read_rtc(self.rtc, wait=self.wait)
        self.last_reading = dt
        return dt

    def refresh_present(self, dt: RTCReading) -> None:
        """Put the displayed present time for *dt* on the present row."""
        if not dt.is_plausible():
            return
        try:
            ct = self.present_time.displayed(dt)
        except ValueError as exc:
            log.debug("present time not updated: %s", exc)
            return
        self.present.set_time(ct, self.present_time.year_offset)

    # ── persistence policy ─────────────────────────────────────────────
    def persist_travel(self) -> None:
        """Travel state is saved only in persistent mode."""
        if self.persistent:
            self.store.save_present(self.present_time)

    def persist_present(self) -> None:
        """Year offset always survives; the time difference only when persistent."""
        if self.persistent:
            self.store.save_present(self.present_time)
        else:
            self.store.save_year_offset(self.present_time.year_offset)

    # ── queries ────────────────────────────────────────────────────────
    def travel_busy(self) -> bool:
        return self.travel.busy()

    def beep_on(self) -> bool:
        """Key beeps for beep modes 0 (never), 1 (always), 2/3 (a while after the last key)."""
        if self.beep_mode == 0:
            return False
        if self.beep_mode == 1:
            return True
        secs = getattr(config, "BEEPM2_SECS" if self.beep_mode == 2 else "BEEPM3_SECS", 30)
        return self.clock.millis() - self.last_key_ms < secs * 1000
