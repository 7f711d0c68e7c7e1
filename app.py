#!/usr/bin/env python3
"""
app.py – time circuits main loop

One poll() pass advances every component in a fixed order: RTC/resync,
startup, keys, keypad feedback, time travel, auto interval, alarms.
Drawing happens after the pass.  Input is dispatched by events.py.
"""
from __future__ import annotations

import logging
from typing import Dict, Optional

import pygame

import alarms
import config
import idle_cycle
import keypad
import rtc_sync
import time_travel
from buttons import Button, ButtonEvent
from calendar_engine import CivilTime
from displays import all_off, animate
from events import EventManager
from overlays import draw_overlay
from renderer import render_frame
from rtc import RTCReading
from state import ClockState

log = logging.getLogger(__name__)

DIGITS = "0123456789"


# ── main application ───────────────────────────────────────────────────────
class TimeCircuits:
    def __init__(self, state: Optional[ClockState] = None, headless: bool = False):
        # window ----------------------------------------------------------
        pygame.init()
        self.headless = headless
        self.screen: Optional[pygame.Surface] = None
        if not headless:
            pygame.mouse.set_visible(False)
            self.screen = self._set_mode()
            pygame.display.set_caption("Time Circuits")
        self.fps_clock = pygame.time.Clock()

        # core state ------------------------------------------------------
        self.state = state or ClockState()
        self.buttons: Dict[str, Button] = {k: Button(k) for k in DIGITS}
        self.enter_button = Button("enter")
        self.levels: Dict[str, bool] = {}
        self.force_overlay = getattr(config, "SHOW_OVERLAYS", False)
        self.running = False

    @staticmethod
    def _set_mode() -> pygame.Surface:
        return pygame.display.set_mode(
            (0, 0) if config.FULLSCREEN else config.WINDOWED_SIZE,
            pygame.FULLSCREEN if config.FULLSCREEN else 0,
        )

    # ── boot ---------------------------------------------------------------
    def start(self) -> None:
        s = self.state
        warnings = rtc_sync.boot(s)
        all_off(*s.displays)
        if warnings:
            s.destination.show_text(" ".join(warnings))
            s.destination.on()
        if getattr(config, "PLAY_INTRO", False):
            s.audio.play_file("intro")
        s.audio.play_file("startup")
        s.startup_ms = s.clock.millis()
        log.info("Time circuits started%s", f" ({', '.join(warnings)})" if warnings else "")

    def _poll_startup(self) -> None:
        s = self.state
        if s.startup_ms is None:
            return
        waited = s.clock.millis() - s.startup_ms >= getattr(config, "STARTUP_DELAY", 1050)
        if waited and s.audio.is_done():
            s.startup_ms = None
            s.powered = True
            animate(*s.displays)

    # ── input --------------------------------------------------------------
    def _poll_buttons(self) -> None:
        s = self.state
        now = s.clock.millis()
        for key, button in self.buttons.items():
            for ev in button.update(self.levels.get(key, False), now):
                if not s.powered:
                    continue
                if ev is ButtonEvent.PRESSED:
                    keypad.key_pressed(s, key)
                elif ev is ButtonEvent.HELD:
                    keypad.hold(s, key)
                elif not button.was_held:
                    keypad.key_released(s, key)

        for ev in self.enter_button.update(self.levels.get("enter", False), now):
            if ev is ButtonEvent.PRESSED and s.powered:
                keypad.enter(s)

    def handle(self, act: dict) -> None:
        s = self.state
        t = act["type"]
        if t == "quit":
            self.running = False
        elif t == "toggle_overlay":
            self.force_overlay ^= True
        elif t == "toggle_fullscreen":
            config.FULLSCREEN ^= True
            if not self.headless:
                self.screen = self._set_mode()
                pygame.mouse.set_visible(False)
        elif t == "key_down":
            self.levels[act["key"]] = True
        elif t == "key_up":
            self.levels[act["key"]] = False
        elif t == "enter_down":
            self.levels["enter"] = True
        elif t == "enter_up":
            self.levels["enter"] = False
        elif not s.powered:
            return
        elif t == "key":
            keypad.key_pressed(s, act["key"])
            keypad.key_released(s, act["key"])
        elif t == "hold":
            keypad.hold(s, act["key"])
        elif t == "enter":
            keypad.enter(s)
        elif t == "travel":
            time_travel.travel(s, long=getattr(config, "TT_LONG", True))
        elif t == "return":
            time_travel.return_from_travel(s)

    # ── one pass -----------------------------------------------------------
    def _compare_time(self, dt: RTCReading) -> Optional[CivilTime]:
        s = self.state
        if not getattr(config, "ALARM_RTC", True):
            return s.present.time
        if not dt.is_plausible():
            return None
        return CivilTime(s.present_time.logical_year(dt), dt.month, dt.day, dt.hour, dt.minute)

    def poll(self) -> RTCReading:
        s = self.state
        s.music.poll()
        dt = rtc_sync.poll(s)
        self._poll_startup()

        colon = s.clock.millis() % 1000 < 500
        for d in s.displays:
            d.colon = colon

        self._poll_buttons()
        keypad.poll(s)
        time_travel.poll(s)
        if s.powered:
            idle_cycle.poll(s, dt)
        alarms.check_due(s, self._compare_time(dt) if s.powered else None)
        return dt

    # ── main loop ---------------------------------------------------------
    def draw(self) -> None:
        if self.screen is None:
            return
        render_frame(self.screen, self.state)
        if self.force_overlay:
            draw_overlay(self.screen, self.state)
        pygame.display.flip()

    def run(self) -> None:
        self.start()
        self.running = True
        try:
            while self.running:
                for e in pygame.event.get():
                    EventManager.handle(e)

                # drain keyboard + external queue (non-blocking)
                while (act := EventManager.poll()):
                    self.handle(act)

                self.poll()
                self.draw()
                self.fps_clock.tick(config.FPS)
        finally:
            self.state.music.stop()
            pygame.quit()


if __name__ == "__main__":
    TimeCircuits().run()
