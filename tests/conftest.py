"""
Pytest configuration and shared fixtures.

pygame runs headless (SDL dummy drivers).  The clock state under test gets
a manual millisecond clock, a scripted RTC, a fake network time source and
a store in a temp directory, so nothing touches the network, the sound
card or the real data directory.
"""

import os

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

import pytest
import pygame
from typing import Generator, List, Optional

from audio import Audio, MusicPlayer
from rtc import RTCReading
from state import ClockState
from storage import JsonStore
from timing import ManualClock

GLITCH = RTCReading(2165, 165, 165, 165, 165, 165)


@pytest.fixture(scope="session", autouse=True)
def pygame_init() -> Generator[None, None, None]:
    """
    Initialize pygame for the test session.
    This runs once before all tests and cleans up after.
    """
    pygame.init()
    yield
    pygame.quit()


class ScriptedRTC:
    """RTC double: returns `reading` (after `glitches` garbage reads)."""

    def __init__(self, reading: RTCReading, glitches: int = 0):
        self.reading = reading
        self.glitches = glitches
        self.lost_power = False
        self.adjusted: List[RTCReading] = []

    def now(self) -> RTCReading:
        if self.glitches:
            self.glitches -= 1
            return GLITCH
        r = self.reading
        return RTCReading(r.year, r.month, r.day, r.hour, r.minute, r.second)

    def adjust(self, reading: RTCReading) -> None:
        self.adjusted.append(reading)
        self.reading = reading

    def set(self, *fields: int) -> None:
        self.reading = RTCReading(*fields)


class FakeNTP:
    """Network time source double: always answers with `reading` (None = offline)."""

    def __init__(self, reading: Optional[RTCReading] = None):
        self.reading = reading
        self.calls = 0
        self.wait = None

    def fetch(self, wait=None) -> Optional[RTCReading]:
        self.calls += 1
        self.wait = wait
        return self.reading


@pytest.fixture
def manual_clock() -> ManualClock:
    return ManualClock(start_ms=1_000_000)


@pytest.fixture
def rtc() -> ScriptedRTC:
    return ScriptedRTC(RTCReading(2023, 1, 1, 0, 0, 0))


@pytest.fixture
def ntp() -> FakeNTP:
    return FakeNTP()


@pytest.fixture
def store(tmp_path) -> JsonStore:
    return JsonStore(str(tmp_path / "data"))


@pytest.fixture
def make_state(manual_clock, rtc, ntp, store, tmp_path):
    """Factory for a ClockState wired to the test doubles."""

    def _make(persistent: bool = True, auto_interval: int = 0) -> ClockState:
        state = ClockState(
            clock=manual_clock,
            rtc=rtc,
            ntp=ntp,
            store=store,
            audio=Audio(enabled=False),
            music=MusicPlayer(music_dir=str(tmp_path / "music"), enabled=False),
            persistent=persistent,
            seed=1985,
        )
        state.idle.interval_idx = auto_interval
        return state

    return _make


@pytest.fixture
def state(make_state) -> ClockState:
    """A booted-looking state: present row set from the RTC, displays on."""
    s = make_state()
    s.refresh_present(s.read_rtc())
    s.powered = True
    for d in s.displays:
        d.on()
    return s
