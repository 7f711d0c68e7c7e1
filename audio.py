"""
audio.py

Sound intents: play a named sound, ask whether it has finished, stop.
Playback goes through pygame.mixer; if the mixer cannot start (no audio
device) the objects keep their bookkeeping so the rest of the emulator
behaves the same, just silently.
"""

from __future__ import annotations

import logging
import os
import random
import re
from collections import deque
from typing import Deque, List, Optional

import pygame

import config

log = logging.getLogger(__name__)

_SOUND_EXTS = (".mp3", ".ogg", ".wav")
_MUSIC_RE = re.compile(r"^(\d{3})\.(?:mp3|ogg|wav)$", re.IGNORECASE)


def _mixer_ready() -> bool:
    try:
        if not pygame.mixer.get_init():
            pygame.mixer.init()
    except pygame.error as exc:
        log.warning("Audio unavailable: %s", exc)
        return False
    return True


class Audio:
    def __init__(self, sound_dir: Optional[str] = None, enabled: bool = True):
        self.sound_dir = sound_dir or getattr(config, "SOUND_DIR", "sounds")
        self.enabled = enabled and _mixer_ready()
        self.played: Deque[str] = deque(maxlen=32)
        self._cache: dict[str, pygame.mixer.Sound] = {}
        self._channel: Optional[pygame.mixer.Channel] = None

    def _load(self, name: str) -> Optional[pygame.mixer.Sound]:
        if name in self._cache:
            return self._cache[name]
        for ext in _SOUND_EXTS:
            fp = os.path.join(self.sound_dir, name + ext)
            if os.path.isfile(fp):
                try:
                    snd = pygame.mixer.Sound(fp)
                except pygame.error as exc:
                    log.warning("Cannot load %s: %s", fp, exc)
                    return None
                self._cache[name] = snd
                return snd
        return None

    def play_file(self, name: str) -> None:
        self.played.append(name)
        log.debug("play %s", name)
        if not self.enabled:
            return
        snd = self._load(name)
        if snd is None:
            return
        if self._channel is not None:
            self._channel.stop()
        self._channel = snd.play()

    def play_key(self, key: str) -> None:
        self.play_file(f"key{key}")

    def is_done(self) -> bool:
        return self._channel is None or not self._channel.get_busy()

    def stop(self) -> None:
        if self._channel is not None:
            self._channel.stop()
            self._channel = None

    @property
    def last(self) -> Optional[str]:
        return self.played[-1] if self.played else None


class MusicPlayer:
    """Plays <MUSIC_DIR>/000.mp3, 001.mp3, ... in order or shuffled."""

    def __init__(self, music_dir: Optional[str] = None, enabled: bool = True):
        self.music_dir = music_dir or getattr(config, "MUSIC_DIR", "music")
        self.enabled = enabled and _mixer_ready()
        self.files: List[str] = self._discover()
        self.order: List[int] = list(range(len(self.files)))
        self.shuffle = False
        self.active = False
        self.pos = 0

    def _discover(self) -> List[str]:
        if not os.path.isdir(self.music_dir):
            return []
        names = sorted(n for n in os.listdir(self.music_dir) if _MUSIC_RE.match(n))
        return [os.path.join(self.music_dir, n) for n in names]

    @property
    def have_music(self) -> bool:
        return bool(self.files)

    @property
    def current(self) -> int:
        return self.order[self.pos] if self.order else 0

    def _start(self) -> None:
        if not self.enabled or not self.files:
            return
        try:
            pygame.mixer.music.load(self.files[self.current])
            pygame.mixer.music.play()
        except pygame.error as exc:
            log.warning("Music playback failed: %s", exc)

    def play(self) -> None:
        self.active = True
        self._start()

    def stop(self) -> bool:
        was = self.active
        self.active = False
        if self.enabled:
            pygame.mixer.music.stop()
        return was

    def make_shuffle(self, on: bool) -> None:
        self.shuffle = on
        cur = self.current
        self.order = list(range(len(self.files)))
        if on:
            random.shuffle(self.order)
        self.pos = self.order.index(cur) if cur in self.order else 0

    def goto(self, num: int) -> int:
        """Jump to song *num* (clamped to the last one); returns the number used."""
        if not self.files:
            return 0
        num = min(num, len(self.files) - 1)
        self.pos = self.order.index(num)
        if self.active:
            self._start()
        return num

    def next(self) -> None:
        if self.files:
            self.pos = (self.pos + 1) % len(self.order)
            if self.active:
                self._start()

    def prev(self) -> None:
        if self.files:
            self.pos = (self.pos - 1) % len(self.order)
            if self.active:
                self._start()

    def poll(self) -> None:
        """Advance to the next song when the current one ended."""
        if self.enabled and self.active and self.files and not pygame.mixer.music.get_busy():
            self.next()
