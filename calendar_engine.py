"""
calendar_engine.py

Civil (proleptic Gregorian) calendar <-> linear minute count.

The minute count starts at 0001-01-01 00:00 and covers years 1..9999.
To avoid walking up to 9999 years per conversion, a table holds the
cumulative minutes at the start of every 1000-year block; only the years
inside one block are iterated.
"""

from __future__ import annotations

from dataclasses import dataclass

# ── Ranges ──────────────────────────────────────────────────────────────────
MIN_YEAR = 1
MAX_YEAR = 9999

MINS_PER_HOUR = 60
MINS_PER_DAY  = 24 * MINS_PER_HOUR
HOURS_PER_YEAR      = 8760
HOURS_PER_LEAP_YEAR = 8760 + 24

# ── Month tables ────────────────────────────────────────────────────────────
_MONTH_DAYS = (31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31)

_MON_YDAY = (
    (0, 31, 59, 90, 120, 151, 181, 212, 243, 273, 304, 334, 365),
    (0, 31, 60, 91, 121, 152, 182, 213, 244, 274, 305, 335, 366),
)


def is_leap_year(year: int) -> bool:
    """Divisible by 4, not by 100 unless also by 400."""
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


def days_in_month(month: int, year: int) -> int:
    if month == 2 and is_leap_year(year):
        return 29
    return _MONTH_DAYS[month - 1]


def _year_minutes(year: int) -> int:
    return (HOURS_PER_LEAP_YEAR if is_leap_year(year) else HOURS_PER_YEAR) * MINS_PER_HOUR


def _block_start(block: int) -> int:
    """First year of 1000-year block *block* (block 0 starts at year 1)."""
    return max(MIN_YEAR, block * 1000)


def _days_before(year: int) -> int:
    y = year - 1
    return 365 * y + y // 4 - y // 100 + y // 400


# ── Block table ─────────────────────────────────────────────────────────────
# MINS_1K_YEARS[k] = minutes from 0001-01-01 to the first day of block k.
# The last entry (k = 10) is the start of year 10000, i.e. the length of the
# whole representable range.
MINS_1K_YEARS: tuple[int, ...] = tuple(
    _days_before(_block_start(k)) * MINS_PER_DAY for k in range(11)
)

# Length of the 1..9999 cycle in minutes; used for the 9999 -> 1 rollover.
CYCLE_MINUTES = MINS_1K_YEARS[-1]


# ── Data structures ─────────────────────────────────────────────────────────
@dataclass
class CivilTime:
    year: int = 1985
    month: int = 10
    day: int = 26
    hour: int = 1
    minute: int = 21

    def is_valid(self) -> bool:
        return (
            MIN_YEAR <= self.year <= MAX_YEAR
            and 1 <= self.month <= 12
            and 1 <= self.day <= days_in_month(self.month, self.year)
            and 0 <= self.hour <= 23
            and 0 <= self.minute <= 59
        )

    def as_tuple(self) -> tuple[int, int, int, int, int]:
        return (self.year, self.month, self.day, self.hour, self.minute)

    def to_minutes(self) -> int:
        return date_to_minutes(*self.as_tuple())

    def copy(self) -> "CivilTime":
        return CivilTime(*self.as_tuple())

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d} {self.hour:02d}:{self.minute:02d}"


# ── Conversions ─────────────────────────────────────────────────────────────
def date_to_minutes(year: int, month: int, day: int, hour: int, minute: int) -> int:
    """Minutes elapsed since 0001-01-01 00:00."""
    if not CivilTime(year, month, day, hour, minute).is_valid():
        raise ValueError(f"invalid civil time {year}-{month}-{day} {hour}:{minute}")

    block = year // 1000
    total = MINS_1K_YEARS[block]
    for y in range(_block_start(block), year):
        total += _year_minutes(y)

    total += _MON_YDAY[is_leap_year(year)][month - 1] * MINS_PER_DAY
    total += (day - 1) * MINS_PER_DAY
    total += hour * MINS_PER_HOUR
    return total + minute


def minutes_to_date(total: int) -> CivilTime:
    """Inverse of date_to_minutes()."""
    if not 0 <= total < CYCLE_MINUTES:
        raise ValueError(f"minute count {total} outside 1..9999")

    block = 9
    while total < MINS_1K_YEARS[block]:
        block -= 1
    total -= MINS_1K_YEARS[block]
    year = _block_start(block)

    while total >= (ym := _year_minutes(year)):
        total -= ym
        year += 1

    leap = is_leap_year(year)
    month = 1
    while month < 12 and total >= _MON_YDAY[leap][month] * MINS_PER_DAY:
        month += 1
    total -= _MON_YDAY[leap][month - 1] * MINS_PER_DAY

    day, total = divmod(total, MINS_PER_DAY)
    hour, minute = divmod(total, MINS_PER_HOUR)
    return CivilTime(year, month, day + 1, hour, minute)


def wrap_minutes(total: int) -> int:
    """Fold a minute count back into the 1..9999 cycle."""
    return total % CYCLE_MINUTES


def weekday(year: int, month: int, day: int) -> int:
    """0 = Monday .. 6 = Sunday (0001-01-01 was a Monday)."""
    return (date_to_minutes(year, month, day, 0, 0) // MINS_PER_DAY) % 7
