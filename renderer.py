"""
renderer.py

Draws the three clock rows onto the pygame window from the ClockDisplay
state.  During the glitch phases of a long time travel a frame of blocky
static is blended under the rows.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import pygame

from displays import ClockDisplay
from time_travel import TravelState

if TYPE_CHECKING:
    from state import ClockState

# ── colours ────────────────────────────────────────────────────────────────
ROW_COLOURS = {
    "destination": (255, 40, 30),
    "present":     (40, 255, 60),
    "departed":    (255, 190, 20),
}
LABELS = {
    "destination": "DESTINATION TIME",
    "present":     "PRESENT TIME",
    "departed":    "LAST TIME DEPARTED",
}
LABEL_COLOUR = (200, 200, 200)
UNLIT = (28, 10, 10)
BG = (8, 8, 8)

STATIC_BLOCK_SIZE = 6
STATIC_GAUSS_SIGMA = 40
STATIC_SCANLINE_INTENSITY = 0.6

_fonts: dict[int, tuple[pygame.font.Font, pygame.font.Font]] = {}


def _get_fonts(h: int) -> tuple[pygame.font.Font, pygame.font.Font]:
    row_h = h // 3
    if row_h not in _fonts:
        _fonts[row_h] = (pygame.font.SysFont("monospace", max(24, row_h // 2), bold=True),
                         pygame.font.SysFont("monospace", max(10, row_h // 10)))
    return _fonts[row_h]


def _dim(colour: tuple[int, int, int], level: int) -> tuple[int, int, int]:
    """Scale *colour* for brightness 0..15 (0 is faint, not black)."""
    f = 0.15 + 0.85 * level / 15
    return tuple(int(c * f) for c in colour)


def static_frame(rng: np.random.Generator, w: int, h: int) -> np.ndarray:
    """One frame of blocky mid-grey static, shape (w, h, 3) for surfarray."""
    bs = STATIC_BLOCK_SIZE
    small_w = (w + bs - 1) // bs
    small_h = (h + bs - 1) // bs

    base = rng.normal(40, STATIC_GAUSS_SIGMA, (small_w, small_h))
    img = np.clip(base, 0, 255).astype(np.uint8)[..., None]
    img = np.repeat(img, 3, axis=2)
    img = np.repeat(np.repeat(img, bs, axis=0), bs, axis=1)[:w, :h]
    img[:, ::2] = (img[:, ::2] * STATIC_SCANLINE_INTENSITY).astype(np.uint8)
    return img


def draw_row(surface: pygame.Surface, disp: ClockDisplay, rect: pygame.Rect) -> None:
    big, small = _get_fonts(surface.get_height())
    colour = ROW_COLOURS.get(disp.name, (255, 255, 255))

    label = small.render(LABELS.get(disp.name, disp.name.upper()), True, LABEL_COLOUR)
    surface.blit(label, (rect.centerx - label.get_width() // 2, rect.bottom - label.get_height() - 6))

    text = disp.render_text()
    if disp.is_on:
        fg = _dim(colour, disp.effective_brightness())
    else:
        fg = UNLIT
        text = "".join("8" if ch.isalnum() else ch for ch in text)
    txt = big.render(text, True, fg)
    surface.blit(txt, (rect.centerx - txt.get_width() // 2,
                       rect.top + (rect.height - txt.get_height()) // 2 - label.get_height() // 2))


def render_frame(screen: pygame.Surface, state: "ClockState") -> None:
    """Clear the window and draw destination / present / departed."""
    sw, sh = screen.get_size()
    screen.fill(BG)

    if state.travel.phase in (TravelState.LONG_P4, TravelState.LONG_P5):
        noise = pygame.surfarray.make_surface(static_frame(state.rng, sw, sh))
        screen.blit(noise, (0, 0))

    row_h = sh // 3
    for i, disp in enumerate(state.displays):
        draw_row(screen, disp, pygame.Rect(0, i * row_h, sw, row_h))
