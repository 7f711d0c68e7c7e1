"""
overlays.py

Diagnostic overlay for the time circuits emulator: RTC reading, year
offset, time difference, travel phase, keypad buffer, auto-interval and
timers.  The same lines are served as text by the web remote.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import pygame

import config
import idle_cycle

if TYPE_CHECKING:
    from state import ClockState

# ── colours ────────────────────────────────────────────────────────────────
WHITE = (255, 255, 255)
YEL   = (200, 200, 50)
BG    = (0, 0, 0, 180)

pygame.font.init()


# ── helpers ────────────────────────────────────────────────────────────────
def _compute_font_sizes(h: int) -> tuple[int, int]:
    return max(12, h // 45), max(16, h // 30)


def _fmt_hms(sec: float) -> str:
    sec = int(max(0, sec))
    m, s = divmod(sec, 60)
    h, m = divmod(m, 60)
    return f"{h:02d}:{m:02d}:{s:02d}"


def _fmt_diff(minutes: int, up: bool) -> str:
    d, rem = divmod(minutes, 24 * 60)
    h, m = divmod(rem, 60)
    return f"{'+' if up else '-'}{d}d {h:02d}:{m:02d}"


def overlay_lines(state: "ClockState") -> list[str]:
    now_ms = state.clock.millis()
    pt = state.present_time
    dt = state.last_reading

    lines: list[str] = []
    if dt is not None:
        lines.append(f"RTC       {dt.year:04d}-{dt.month:02d}-{dt.day:02d} "
                     f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d}")
    lines += [
        f"Year offs {pt.year_offset:+d}",
        f"Time diff {_fmt_diff(pt.diff.minutes, pt.diff.up) if pt.diff else 'none'}",
        f"Travel    {state.travel.phase.value}",
        f"Keypad    [{state.keypad.digits}]",
    ]

    mins = idle_cycle.interval(state)
    if not mins:
        lines.append("Auto int  off")
    elif idle_cycle.is_paused(state):
        left = getattr(config, "AUTO_PAUSE_MS", 0) - (now_ms - state.idle.pause_start_ms)
        lines.append(f"Auto int  {mins} min, paused {_fmt_hms(left / 1000)}")
    else:
        lines.append(f"Auto int  {mins} min, preset {state.idle.index}")

    sync = state.sync
    last = "never" if sync.last_ok is None else ("ok" if sync.last_ok else "failed")
    lines.append(f"NTP       {last} ({sync.syncs} ok / {sync.failures} failed)")
    lines.append(f"Alarm     {state.alarm.describe()}{'' if state.alarm.enabled else ' (off)'}")
    lines.append(f"Reminder  {state.reminder.describe()}")
    lines.append(state.countdown.describe(now_ms))
    if state.night_mode:
        lines.append("Night mode")
    if not state.persistent:
        lines.append("Time travels not persistent")
    return lines


# ── main entry point ───────────────────────────────────────────────────────
def draw_overlay(surface: pygame.Surface, state: "ClockState") -> None:
    sw, sh = surface.get_width(), surface.get_height()
    tiny_pt, small_pt = _compute_font_sizes(sh)
    FT = pygame.font.SysFont("monospace", tiny_pt)
    FS = pygame.font.SysFont("monospace", small_pt)

    # ── wall clock ───────────────────────────────────────────────────────
    run_ms       = pygame.time.get_ticks()
    run_m, run_s = divmod(run_ms // 1000, 60)
    clocksurf    = FS.render(f"{time.strftime('%H:%M:%S')}  +{run_m:02d}:{run_s:02d}", True, YEL)
    clockbg      = pygame.Surface(
        (clocksurf.get_width() + small_pt // 3, clocksurf.get_height() + small_pt // 5),
        pygame.SRCALPHA,
    )
    clockbg.fill(BG)
    clockbg.blit(clocksurf, (small_pt // 6, small_pt // 10))
    surface.blit(clockbg, (10, 10))

    # ── state panel ──────────────────────────────────────────────────────
    lines  = overlay_lines(state)
    widest = max(FT.size(t)[0] for t in lines)
    pbg = pygame.Surface(
        (widest + 20, len(lines) * (FT.get_linesize() + 2) + 10),
        pygame.SRCALPHA,
    )
    pbg.fill(BG)
    y = 5
    for t in lines:
        pbg.blit(FT.render(t, True, WHITE), (10, y))
        y += FT.get_linesize() + 2
    surface.blit(pbg, (sw - pbg.get_width() - 10, 10))
