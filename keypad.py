"""
keypad.py

Keypad command interpreter.

Digits collect in a KeypadBuffer; ENTER hands the buffer to parse(), which
picks the grammar by length alone:

    12  MMDDYYYYhhmm     destination date and time
    10  77MMDDhhmm       reminder
     8  MMDDYYYY         destination date
     6  11hhmm           alarm
        77MMDD           reminder date (time defaults to 09:00)
        888nnn           music player: go to song nnn
     5  64738            restart, nothing else
     4  44mm             countdown (44 00 switches it off)
        hhmm             destination time
     3  000..003         beep mode
        111 112 113      room-condition / world-clock / both
        222 555          shuffle off / on
        440 770 777 888  timer off, reminder off, reminder due in, song 0
     2  11 44 77 88 55   show alarm, timer, reminder, player status

Free-form date fields are clamped into range.  Fixed-command fields that
are out of range make the whole entry invalid.

execute() applies a parsed command to the ClockState and returns an
EntryResult; enter() does both and starts the destination-row feedback
that poll_feedback() finishes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Union

import config
import easter_eggs
import idle_cycle
import storage
import time_travel
from calendar_engine import MAX_YEAR, CivilTime, days_in_month
from displays import all_off

if TYPE_CHECKING:
    from state import ClockState

log = logging.getLogger(__name__)

MAX_DIGITS = 12
RESTART_CODE = "64738"


class RestartRequested(Exception):
    """The restart code was entered; the process should re-execute itself."""


# ── buffer ─────────────────────────────────────────────────────────────────
class KeypadBuffer:
    def __init__(self):
        self.digits = ""
        self.last_key_ms = 0

    def add(self, key: str, now_ms: int) -> None:
        # full buffer: keep overwriting the last digit
        if len(self.digits) >= MAX_DIGITS:
            self.digits = self.digits[:MAX_DIGITS - 1]
        self.digits += key
        self.last_key_ms = now_ms

    def expire(self, now_ms: int) -> bool:
        """Drop a stale partial entry; True if something was dropped."""
        timeout = getattr(config, "KEYPAD_TIMEOUT_MS", 2 * 60 * 1000)
        if self.digits and now_ms - self.last_key_ms >= timeout:
            log.debug("keypad buffer %r timed out", self.digits)
            self.digits = ""
            return True
        return False

    def clear(self) -> None:
        self.digits = ""

    def __len__(self) -> int:
        return len(self.digits)


# ── parsed commands ────────────────────────────────────────────────────────
@dataclass
class SetDestination:
    year: Optional[int] = None
    month: Optional[int] = None
    day: Optional[int] = None
    hour: Optional[int] = None
    minute: Optional[int] = None


@dataclass
class SetAlarm:
    hour: int
    minute: int


@dataclass
class SetReminder:
    month: int
    day: int
    hour: Optional[int] = None
    minute: Optional[int] = None


@dataclass
class SetCountdown:
    minutes: int


@dataclass
class GotoSong:
    num: int


@dataclass
class Code:
    code: int


@dataclass
class Query:
    code: int


@dataclass
class Restart:
    pass


@dataclass
class Invalid:
    reason: str


Command = Union[SetDestination, SetAlarm, SetReminder, SetCountdown, GotoSong,
                Code, Query, Restart, Invalid]

CODES = {0, 1, 2, 3, 111, 112, 113, 222, 555, 440, 770, 777, 888}
QUERIES = {11, 44, 77, 88, 55}


def _two(digits: str, idx: int) -> int:
    return int(digits[idx:idx + 2])


def _reminder_ok(month: int, day: int) -> bool:
    return month <= 12 and 1 <= day <= 31 and (not month or day <= days_in_month(month, 2000))


def parse(digits: str) -> Command:
    """Turn a digit string into a command.  Never raises."""
    if not digits.isdigit():
        return Invalid("empty" if not digits else "not digits")
    n = len(digits)

    if n == 12:
        return SetDestination(int(digits[4:8]), _two(digits, 0), _two(digits, 2),
                              _two(digits, 8), _two(digits, 10))
    if n == 8:
        return SetDestination(int(digits[4:8]), _two(digits, 0), _two(digits, 2))

    if n == 10:
        if _two(digits, 0) != 77:
            return Invalid("unknown 10-digit prefix")
        month, day, hour, minute = (_two(digits, i) for i in (2, 4, 6, 8))
        if not _reminder_ok(month, day) or hour > 23 or minute > 59:
            return Invalid("reminder out of range")
        return SetReminder(month, day, hour, minute)

    if n == 6:
        prefix = _two(digits, 0)
        if prefix == 11:
            hour, minute = _two(digits, 2), _two(digits, 4)
            if hour > 23 or minute > 59:
                return Invalid("alarm out of range")
            return SetAlarm(hour, minute)
        if prefix == 77:
            month, day = _two(digits, 2), _two(digits, 4)
            if not _reminder_ok(month, day):
                return Invalid("reminder out of range")
            return SetReminder(month, day)
        if digits.startswith("888"):
            return GotoSong(int(digits[3:]))
        return Invalid("unknown 6-digit prefix")

    if n == 5:
        return Restart() if digits == RESTART_CODE else Invalid("unknown 5-digit code")

    if n == 4:
        if _two(digits, 0) == 44:
            return SetCountdown(_two(digits, 2))
        return SetDestination(hour=_two(digits, 0), minute=_two(digits, 2))

    if n == 3:
        code = int(digits)
        return Code(code) if code in CODES else Invalid(f"unknown code {digits}")

    if n == 2:
        code = int(digits)
        return Query(code) if code in QUERIES else Invalid(f"unknown query {digits}")

    return Invalid(f"bad length {n}")


# ── execution ──────────────────────────────────────────────────────────────
@dataclass
class EntryResult:
    valid: Optional[bool]                 # None: no audible cue
    text: Optional[str] = None            # shown on the destination row
    egg: Optional[easter_eggs.Egg] = None
    sound: Optional[str] = None           # replaces the enter cue
    delay_ms: Optional[int] = None


_INVALID = EntryResult(False)


def _clamped(cur: CivilTime, cmd: SetDestination) -> CivilTime:
    year = cur.year if cmd.year is None else min(max(cmd.year, 1), MAX_YEAR)
    month = cur.month if cmd.month is None else min(max(cmd.month, 1), 12)
    day = cur.day if cmd.day is None else cmd.day
    day = min(max(day, 1), days_in_month(month, year))
    hour = cur.hour if cmd.hour is None else min(cmd.hour, 23)
    minute = cur.minute if cmd.minute is None else min(cmd.minute, 59)
    return CivilTime(year, month, day, hour, minute)


def _set_destination(state: "ClockState", cmd: SetDestination) -> EntryResult:
    ct = _clamped(state.destination.time, cmd)
    state.destination.set_time(ct)
    if state.persistent:
        state.store.save_clock(storage.DEST_TIME, ct)
    log.info("Destination set to %s", ct)

    state.rc_mode = state.wc_mode = False
    idle_cycle.pause(state)
    state.last_key_ms = state.clock.millis()

    egg = None
    if cmd.year is not None:
        egg = easter_eggs.match(ct.year, ct.month, ct.day, -1 if cmd.hour is None else ct.hour)
    if egg is None:
        return EntryResult(True)
    log.debug("special date %s", egg.name)
    if egg.sound:
        return EntryResult(None, sound=egg.sound)
    return EntryResult(True, text=egg.decode_text(), egg=egg)


def _timer_text(minutes: int) -> str:
    return f"TIMER    {minutes:02d}00" if minutes else "TIMER     OFF"


def _set_code(state: "ClockState", code: int) -> EntryResult:
    now = state.clock.millis()
    if code == 113 and not (state.have_rc and state.have_wc):
        code = 111 if state.have_rc else 112

    if code == 111:
        if not state.have_rc:
            return _INVALID
        state.rc_mode = not state.rc_mode
        return EntryResult(True)
    if code == 112:
        if not state.have_wc:
            return _INVALID
        state.wc_mode = not state.wc_mode
        return EntryResult(True)
    if code == 113:
        state.rc_mode = not state.rc_mode
        state.wc_mode = state.rc_mode
        return EntryResult(True)

    if code in (222, 555):
        if not state.music.have_music:
            return _INVALID
        state.music.make_shuffle(code == 555)
        return EntryResult(True, text=f"SHUFFLE   {' ON' if code == 555 else 'OFF'}")
    if code == 888:
        if not state.music.have_music:
            return _INVALID
        state.music.goto(0)
        return EntryResult(True, text="NEXT      000")

    if code == 440:
        state.countdown.stop()
        return EntryResult(True, text=_timer_text(0))
    if code == 770:
        state.reminder.clear()
        state.store.save_reminder(state.reminder)
        return EntryResult(True, text=state.reminder.describe())
    if code == 777:
        dt = state.read_rtc()
        if not dt.is_plausible():
            return EntryResult(True)
        now_ct = CivilTime(state.present_time.logical_year(dt), dt.month, dt.day, dt.hour, dt.minute)
        return EntryResult(True, text=state.reminder.describe_remaining(now_ct))

    # 000..003
    if code >= 2 and state.beep_mode == 1:
        state.last_key_ms = now
    state.beep_mode = code
    return EntryResult(None, text=f"BEEP MODE   {code}",
                       delay_ms=getattr(config, "ENTER_DELAY", 600))


def _query(state: "ClockState", code: int) -> EntryResult:
    if code == 11:
        return EntryResult(True, text=state.alarm.describe())
    if code == 44:
        return EntryResult(True, text=state.countdown.describe(state.clock.millis()))
    if code == 77:
        return EntryResult(True, text=state.reminder.describe())
    # 88 / 55
    if not state.music.have_music:
        return _INVALID
    if state.music.active:
        return EntryResult(True, text=f"PLAYING   {state.music.current:03d}")
    return EntryResult(True, text="STOPPED")


def execute(state: "ClockState", cmd: Command) -> EntryResult:
    """Apply *cmd*; invalid commands leave the state untouched."""
    if isinstance(cmd, Invalid):
        log.debug("invalid entry: %s", cmd.reason)
        return _INVALID

    if isinstance(cmd, SetDestination):
        return _set_destination(state, cmd)

    if isinstance(cmd, SetAlarm):
        alarm = state.alarm
        if (alarm.hour, alarm.minute) != (cmd.hour, cmd.minute) or not alarm.enabled:
            alarm.hour, alarm.minute, alarm.enabled = cmd.hour, cmd.minute, True
            state.store.save_alarm(alarm)
        return EntryResult(True, text=alarm.describe())

    if isinstance(cmd, SetReminder):
        rem = state.reminder
        hour = rem.hour if cmd.hour is None else cmd.hour
        minute = rem.minute if cmd.minute is None else cmd.minute
        if cmd.hour is None and not rem.hour and not rem.minute:
            hour = 9
        if (rem.month, rem.day, rem.hour, rem.minute) != (cmd.month, cmd.day, hour, minute):
            rem.month, rem.day, rem.hour, rem.minute = cmd.month, cmd.day, hour, minute
            state.store.save_reminder(rem)
        return EntryResult(True, text=rem.describe())

    if isinstance(cmd, SetCountdown):
        if cmd.minutes:
            state.countdown.start(cmd.minutes, state.clock.millis())
        else:
            state.countdown.stop()
        return EntryResult(True, text=_timer_text(cmd.minutes))

    if isinstance(cmd, GotoSong):
        if not state.music.have_music:
            return _INVALID
        num = state.music.goto(cmd.num)
        return EntryResult(True, text=f"NEXT      {num:03d}")

    if isinstance(cmd, Code):
        return _set_code(state, cmd.code)

    if isinstance(cmd, Query):
        return _query(state, cmd.code)

    raise TypeError(f"cannot execute {cmd!r}")


# ── key events ─────────────────────────────────────────────────────────────
@dataclass
class EntryFeedback:
    active: bool = False
    stage: str = "dark"            # dark -> text -> followup
    since_ms: int = 0
    delay_ms: int = 0
    text: Optional[str] = None
    egg: Optional[easter_eggs.Egg] = None


def key_pressed(state: "ClockState", key: str) -> None:
    if state.beep_on():
        state.audio.play_key(key)


def key_released(state: "ClockState", key: str) -> None:
    state.keypad.add(key, state.clock.millis())


def enter(state: "ClockState") -> EntryResult:
    """ENTER: evaluate and clear the buffer, start the destination-row feedback."""
    time_travel.cancel(state)
    digits = state.keypad.digits
    state.keypad.clear()
    cmd = parse(digits)
    log.debug("entry %r -> %s", digits, type(cmd).__name__)

    if isinstance(cmd, Restart):
        _restart(state)

    state.destination.off()
    result = execute(state, cmd)

    if result.sound:
        state.audio.play_file(result.sound)
    elif result.valid:
        state.audio.play_file("enter")
    elif result.valid is False:
        state.audio.play_file("baddate")
        if state.music.active:
            result.text = "ERROR"

    if result.delay_ms is not None:
        delay = result.delay_ms
    elif result.valid is False:
        delay = getattr(config, "BADDATE_DELAY", 400)
    else:
        delay = getattr(config, "ENTER_DELAY", 600)

    state.feedback = EntryFeedback(True, "dark", state.clock.millis(), delay,
                                   result.text, result.egg)
    return result


def _restart(state: "ClockState") -> None:
    log.info("Restart code entered")
    state.music.stop()
    state.audio.stop()
    all_off(*state.displays)
    state.destination.reset_brightness()
    state.destination.show_text("REBOOTING")
    state.destination.on()
    raise RestartRequested()


def poll_feedback(state: "ClockState") -> None:
    """Bring the destination row back after an entry (text stages first)."""
    fb = state.feedback
    now = state.clock.millis()
    if not fb.active or now - fb.since_ms < fb.delay_ms:
        return

    dest = state.destination
    if fb.stage == "dark" and fb.text:
        dest.show_text(fb.text)
        dest.reset_brightness()
        dest.on()
        fb.stage = "text"
        fb.since_ms = now
        if fb.egg is not None and fb.egg.followup:
            fb.delay_ms = getattr(config, "EE1_DELAY2", 3000)
        else:
            fb.delay_ms = getattr(config, "SPEC_DELAY", 3000)
        return

    if fb.stage == "text" and fb.egg is not None and fb.egg.followup:
        dest.show_text(fb.egg.decode_followup())
        if fb.egg.followup_sound:
            state.audio.play_file(fb.egg.followup_sound)
        fb.stage = "followup"
        fb.since_ms = now
        fb.delay_ms = getattr(config, "EE1_DELAY3", 2000)
        return

    fb.active = False
    if not state.travel_busy():
        dest.show()
        dest.on()


def hold(state: "ClockState", key: str) -> None:
    """A digit key held down: shortcut actions."""
    if key == "0":
        time_travel.travel(state, long=getattr(config, "TT_LONG", True))
    elif key == "9":
        time_travel.return_from_travel(state)
    elif key == "1":
        alarm = state.alarm
        if not alarm.is_set():
            state.audio.play_file("baddate")
            return
        alarm.enabled = not alarm.enabled
        state.store.save_alarm(alarm)
        state.audio.play_file("alarmon" if alarm.enabled else "alarmoff")
    elif key == "4":
        state.night_mode = not state.night_mode
        for d in state.displays:
            d.set_night_mode(state.night_mode)
        state.audio.play_file("nmon" if state.night_mode else "nmoff")
    elif key in ("3", "6"):
        state.audio.play_file(f"key{key}")
    elif key in ("2", "5", "8"):
        music = state.music
        if not music.have_music:
            state.audio.play_file("baddate")
        elif key == "2":
            music.prev()
        elif key == "8":
            music.next()
        elif music.active:
            music.stop()
        else:
            music.play()


def poll(state: "ClockState") -> None:
    state.keypad.expire(state.clock.millis())
    poll_feedback(state)
