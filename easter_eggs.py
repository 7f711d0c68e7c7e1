"""
easter_eggs.py

Special destination dates.  Each entry pairs a trigger (checked against a
freshly entered date) with what happens: a text shown on the destination
row, or a named sound.  Texts are stored XOR-chained so they don't show up
in a grep of the source.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Sequence


def decode(enc: Sequence[int]) -> str:
    """out[i] = enc[i] ^ enc[i-1], with 0xff before the first byte."""
    return "".join(chr(b ^ (0xFF if i == 0 else enc[i - 1])) for i, b in enumerate(enc))


@dataclass(frozen=True)
class Egg:
    name: str
    trigger: Callable[[int, int, int, int], bool]    # (year, month, day, hour)
    text: Optional[Sequence[int]] = None             # encoded destination text
    sound: Optional[str] = None
    followup: Optional[Sequence[int]] = None         # second text, after EE1_DELAY2
    followup_sound: Optional[str] = None

    def decode_text(self) -> Optional[str]:
        return decode(self.text) if self.text else None

    def decode_followup(self) -> Optional[str]:
        return decode(self.followup) if self.followup else None


def _on(year: int, month: int, day: int, hours: Optional[range] = None):
    def trigger(y: int, m: int, d: int, h: int) -> bool:
        return (y, m, d) == (year, month, day) and (hours is None or h in hours)
    return trigger


EGGS = (
    Egg("y2k", _on(1999, 12, 31),
        text=(181, 244, 186, 138, 187, 138, 179, 131, 179, 131, 179, 131, 179),
        followup=(181, 224, 179, 231, 199, 140, 197, 129, 197, 140, 194, 133),
        followup_sound="ee1"),
    Egg("clocktower", _on(1955, 11, 5, range(9, 13)), sound="ee2"),
    Egg("wildwest", _on(1885, 9, 2), sound="ee3"),
    Egg("future", _on(2015, 10, 21), sound="ee4"),
)


def match(year: int, month: int, day: int, hour: int = -1) -> Optional[Egg]:
    """The egg for an entered date, if any.  *hour* is -1 for date-only entries."""
    for egg in EGGS:
        if egg.trigger(year, month, day, hour):
            return egg
    return None
