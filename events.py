#!/usr/bin/env python3
"""
events.py  – central hub

• Translates raw Pygame events to high-level action dicts.
• Exposes a thread-safe queue so *any* external source (web remote, GPIO,
  tests) can inject the same actions.

Actions
-------
    {"type": "key_down",  "key": "0".."9"}   keyboard level change
    {"type": "key_up",    "key": "0".."9"}
    {"type": "enter_down"} / {"type": "enter_up"}
    {"type": "key",   "key": "7"}            a complete tap (web remote)
    {"type": "hold",  "key": "0"}            a complete hold (web remote)
    {"type": "enter"} {"type": "travel"} {"type": "return"}
    {"type": "toggle_overlay"} {"type": "toggle_fullscreen"} {"type": "quit"}
"""

from __future__ import annotations
import queue
from pygame.locals import *

Action = dict      # alias for readability

_DIGIT_KEYS = {K_0 + i: str(i) for i in range(10)}
_DIGIT_KEYS.update({
    K_KP0: "0", K_KP1: "1", K_KP2: "2", K_KP3: "3", K_KP4: "4",
    K_KP5: "5", K_KP6: "6", K_KP7: "7", K_KP8: "8", K_KP9: "9",
})
_ENTER_KEYS = (K_RETURN, K_KP_ENTER)


class EventManager:
    _fifo: "queue.Queue[Action]" = queue.Queue()      # global, thread-safe

    # ── SDL / keyboard path ────────────────────────────────────────────
    @classmethod
    def handle(cls, event) -> None:
        """Translate one Pygame event → action and enqueue it."""
        act = cls._translate_pygame(event)
        if act:
            cls._fifo.put(act)

    # ── external / programmatic path ───────────────────────────────────
    @classmethod
    def post(cls, action: Action) -> None:
        """
        Any thread may call this to inject an already-formed action dict, e.g.:
            EventManager.post({"type":"key","key":"4"})
        """
        cls._fifo.put(action)

    # ── main-loop consumer ─────────────────────────────────────────────
    @classmethod
    def poll(cls) -> Action | None:
        """Return next queued action or None (non-blocking)."""
        try:
            return cls._fifo.get_nowait()
        except queue.Empty:
            return None

    @classmethod
    def clear(cls) -> None:
        while cls.poll() is not None:
            pass

    # ── internal translator ───────────────────────────────────────────
    @staticmethod
    def _translate_pygame(event) -> Action | None:
        if event.type == QUIT:
            return {"type": "quit"}

        if event.type == KEYDOWN:
            if event.key in _DIGIT_KEYS:
                return {"type": "key_down", "key": _DIGIT_KEYS[event.key]}
            if event.key in _ENTER_KEYS:
                return {"type": "enter_down"}
            if event.key in (K_ESCAPE, K_q):
                return {"type": "quit"}
            if event.key == K_i:
                return {"type": "toggle_overlay"}
            if event.key == K_f:
                return {"type": "toggle_fullscreen"}
            if event.key == K_t:
                return {"type": "travel"}
            if event.key == K_r:
                return {"type": "return"}

        if event.type == KEYUP:
            if event.key in _DIGIT_KEYS:
                return {"type": "key_up", "key": _DIGIT_KEYS[event.key]}
            if event.key in _ENTER_KEYS:
                return {"type": "enter_up"}

        return None
