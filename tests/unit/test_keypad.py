"""
Unit tests for keypad parsing, command execution and entry feedback.
"""

import pytest

import config
import keypad
from audio import MusicPlayer
from calendar_engine import CivilTime
from keypad import (
    Code, GotoSong, Invalid, Query, Restart, SetAlarm, SetCountdown,
    SetDestination, SetReminder, parse,
)
from time_travel import TravelState


def _type(state, digits):
    for k in digits:
        keypad.key_pressed(state, k)
        keypad.key_released(state, k)


def _enter(state, digits):
    _type(state, digits)
    return keypad.enter(state)


def _with_music(state, tmp_path, songs=2):
    music_dir = tmp_path / "songs"
    music_dir.mkdir()
    for n in range(songs):
        (music_dir / f"{n:03d}.mp3").write_bytes(b"")
    state.music = MusicPlayer(music_dir=str(music_dir), enabled=False)
    return state.music


class TestParse:
    """Tests for the length-driven grammar."""

    @pytest.mark.parametrize("digits,cmd", [
        ("102619850121", SetDestination(1985, 10, 26, 1, 21)),
        ("10261985", SetDestination(1985, 10, 26)),
        ("0121", SetDestination(hour=1, minute=21)),
        ("0000", SetDestination(hour=0, minute=0)),
        ("4430", SetCountdown(30)),
        ("4400", SetCountdown(0)),
        ("111230", SetAlarm(12, 30)),
        ("770415", SetReminder(4, 15)),
        ("7712250800", SetReminder(12, 25, 8, 0)),
        ("888012", GotoSong(12)),
        ("64738", Restart()),
        ("440", Code(440)),
        ("003", Code(3)),
        ("77", Query(77)),
    ])
    def test_valid(self, digits, cmd):
        """Test recognised entries map to their commands."""
        assert parse(digits) == cmd

    @pytest.mark.parametrize("digits", [
        "", "1", "12345", "123", "99", "1234567", "123456789", "12345678901",
        "112460", "111260", "770230", "771301", "7704152400", "8812345678", "123456",
    ])
    def test_invalid(self, digits):
        """Test unknown lengths, codes and out-of-range fixed fields."""
        assert isinstance(parse(digits), Invalid)

    def test_monthly_reminder(self):
        """Test month 00 means every month."""
        assert parse("770015") == SetReminder(0, 15)


class TestDestination:
    """Tests for entering destination times."""

    def test_full_entry(self, state):
        """Test a 12-digit entry sets the destination and persists it."""
        res = _enter(state, "102619850121")
        assert res.valid is True
        assert state.destination.time == CivilTime(1985, 10, 26, 1, 21)
        assert state.store.load_clock("dest_time")[0] == CivilTime(1985, 10, 26, 1, 21)
        assert state.audio.last == "enter"

    def test_fields_clamped(self, state):
        """Test out-of-range date fields are clamped instead of rejected."""
        _enter(state, "133219852575")
        assert state.destination.time == CivilTime(1985, 12, 31, 23, 59)

    def test_year_zero_clamped(self, state):
        """Test year 0000 becomes year 1."""
        _enter(state, "01010000")
        assert state.destination.time.year == 1

    def test_day_clamped_to_month(self, state):
        """Test February 30th in a non-leap year becomes the 28th."""
        _enter(state, "02302023")
        assert (state.destination.time.month, state.destination.time.day) == (2, 28)

    def test_time_only_keeps_date(self, state):
        """Test a 4-digit entry changes only the time of day."""
        state.destination.set_time(CivilTime(1955, 11, 5, 6, 0))
        _enter(state, "2204")
        assert state.destination.time == CivilTime(1955, 11, 5, 22, 4)

    def test_not_saved_when_not_persistent(self, make_state):
        """Test non-persistent mode keeps the destination in memory only."""
        s = make_state(persistent=False)
        _enter(s, "10261985")
        assert s.store.load_clock("dest_time") is None

    def test_entry_pauses_rotation(self, make_state):
        """Test a new destination pauses the auto interval."""
        s = make_state(auto_interval=1)
        _enter(s, "0121")
        assert s.idle.paused


class TestFeedback:
    """Tests for the destination row after ENTER."""

    def test_dark_then_back(self, state):
        """Test the destination row is dark for ENTER_DELAY."""
        _enter(state, "0121")
        assert not state.destination.is_on

        state.clock.advance(config.ENTER_DELAY - 1)
        keypad.poll(state)
        assert not state.destination.is_on

        state.clock.advance(1)
        keypad.poll(state)
        assert state.destination.is_on
        assert state.destination.text is None
        assert not state.feedback.active

    def test_text_shown_then_cleared(self, state):
        """Test a confirmation text stays up for SPEC_DELAY."""
        _enter(state, "4410")
        state.clock.advance(config.ENTER_DELAY)
        keypad.poll(state)
        assert state.destination.text == "TIMER    1000"
        assert state.destination.is_on

        state.clock.advance(config.SPEC_DELAY)
        keypad.poll(state)
        assert state.destination.text is None

    def test_invalid_entry(self, state):
        """Test an invalid entry plays the error sound with the short delay."""
        res = _enter(state, "12345")
        assert res.valid is False
        assert state.audio.last == "baddate"
        assert state.feedback.delay_ms == config.BADDATE_DELAY
        assert state.destination.time == CivilTime()

    def test_invalid_with_music_shows_error(self, state, tmp_path):
        """Test invalid entries show ERROR while music plays."""
        _with_music(state, tmp_path).play()
        _enter(state, "99")
        state.clock.advance(config.BADDATE_DELAY)
        keypad.poll(state)
        assert state.destination.text == "ERROR"


class TestEasterEggs:
    """Tests for special destination dates."""

    def test_y2k_text_sequence(self, state):
        """Test 1999-12-31 shows two texts and plays the follow-up sound."""
        _enter(state, "12311999")
        assert state.audio.last == "enter"

        state.clock.advance(config.ENTER_DELAY)
        keypad.poll(state)
        first = state.destination.text
        assert first is not None
        assert state.audio.last == "enter"

        state.clock.advance(config.EE1_DELAY2)
        keypad.poll(state)
        assert state.destination.text is not None
        assert state.destination.text != first
        assert state.audio.last == "ee1"

        state.clock.advance(config.EE1_DELAY3)
        keypad.poll(state)
        assert state.destination.text is None
        t = state.destination.time
        assert (t.year, t.month, t.day) == (1999, 12, 31)

    def test_sound_egg_replaces_enter_cue(self, state):
        """Test 1955-11-05 10:00 plays its own sound instead of the enter beep."""
        res = _enter(state, "110519551000")
        assert res.valid is None
        assert state.audio.last == "ee2"
        assert "enter" not in state.audio.played

    def test_sound_egg_needs_hour(self, state):
        """Test a date-only entry doesn't match an hour-bound egg."""
        _enter(state, "11051955")
        assert state.audio.last == "enter"

    @pytest.mark.parametrize("digits,sound", [("09021885", "ee3"), ("10212015", "ee4")])
    def test_date_eggs(self, state, digits, sound):
        """Test date-only eggs."""
        _enter(state, digits)
        assert state.audio.last == sound


class TestCommands:
    """Tests for alarm, reminder, timer and mode codes."""

    def test_set_alarm(self, state):
        """Test 11hhmm sets and enables the alarm."""
        res = _enter(state, "111230")
        assert (state.alarm.hour, state.alarm.minute, state.alarm.enabled) == (12, 30, True)
        assert res.text == "MON-SUN  1230"
        assert state.store.load_alarm().hour == 12

    def test_bad_alarm_unchanged(self, state):
        """Test an out-of-range alarm leaves the alarm alone."""
        _enter(state, "112460")
        assert not state.alarm.is_set()
        assert state.audio.last == "baddate"

    def test_reminder_default_time(self, state):
        """Test 77MMDD with no previous time defaults to 09:00."""
        res = _enter(state, "770415")
        rem = state.reminder
        assert (rem.month, rem.day, rem.hour, rem.minute) == (4, 15, 9, 0)
        assert res.text == "APR15    0900"

    def test_reminder_keeps_time(self, state):
        """Test a date-only reminder keeps an earlier time."""
        _enter(state, "7712250730")
        _enter(state, "770101")
        rem = state.reminder
        assert (rem.month, rem.day, rem.hour, rem.minute) == (1, 1, 7, 30)

    def test_reminder_invalid_date(self, state):
        """Test February 30th is rejected."""
        res = _enter(state, "770230")
        assert res.valid is False
        assert state.reminder.is_off()

    def test_reminder_off(self, state):
        """Test 770 switches the reminder off."""
        _enter(state, "770415")
        res = _enter(state, "770")
        assert state.reminder.is_off()
        assert res.text == "REMINDER  OFF"
        assert state.store.load_reminder().is_off()

    def test_reminder_due_in(self, state):
        """Test 777 shows the time left until the reminder."""
        _enter(state, "7701020000")
        res = _enter(state, "777")
        assert res.valid is True
        assert res.text == "       1d 000"

    def test_reminder_due_in_garbage_rtc(self, state, rtc):
        """Test 777 is accepted without text when the RTC can't be read."""
        _enter(state, "7701020000")
        rtc.glitches = 10_000
        res = _enter(state, "777")
        assert res.valid is True
        assert res.text is None

    def test_countdown(self, state):
        """Test 44mm starts the timer and 440 stops it."""
        _enter(state, "4405")
        assert state.countdown.remaining_ms(state.clock.millis()) == 5 * 60 * 1000
        res = _enter(state, "440")
        assert not state.countdown.duration_ms
        assert res.text == "TIMER     OFF"

    def test_queries(self, state):
        """Test 2-digit queries show their status texts."""
        assert _enter(state, "11").text == "ALARM   UNSET"
        assert _enter(state, "77").text == "REMINDER  OFF"
        assert _enter(state, "44").text == "TIMER     OFF"

    def test_player_query_without_music(self, state):
        """Test 88 is invalid when there are no songs."""
        assert _enter(state, "88").valid is False

    def test_goto_song(self, state, tmp_path):
        """Test 888nnn jumps to a song, clamped to the last one."""
        _with_music(state, tmp_path, songs=3)
        assert _enter(state, "888001").text == "NEXT      001"
        assert state.music.current == 1
        assert _enter(state, "888042").text == "NEXT      002"

    def test_shuffle(self, state, tmp_path):
        """Test 555 / 222 toggle shuffle."""
        music = _with_music(state, tmp_path)
        _enter(state, "555")
        assert music.shuffle
        _enter(state, "222")
        assert not music.shuffle

    def test_modes_need_hardware(self, state):
        """Test 111 / 112 / 113 without sensors or second zone are invalid."""
        for code in ("111", "112", "113"):
            assert _enter(state, code).valid is False

    def test_113_falls_back(self, state):
        """Test 113 toggles room-condition mode when only that is available."""
        state.have_rc = True
        _enter(state, "113")
        assert state.rc_mode and not state.wc_mode

    def test_restart(self, state):
        """Test 64738 raises RestartRequested after blanking the rows."""
        _type(state, "64738")
        with pytest.raises(keypad.RestartRequested):
            keypad.enter(state)
        assert state.destination.text == "REBOOTING"
        assert not state.present.is_on

    def test_unknown_command_type(self, state):
        """Test execute() refuses unknown objects."""
        with pytest.raises(TypeError):
            keypad.execute(state, object())


class TestBuffer:
    """Tests for the digit buffer."""

    def test_overflow_replaces_last_digit(self):
        """Test a full buffer keeps overwriting its last digit."""
        buf = keypad.KeypadBuffer()
        for k in "1234567890123":
            buf.add(k, 0)
        assert buf.digits == "123456789013"

    def test_timeout(self):
        """Test a stale partial entry is dropped."""
        buf = keypad.KeypadBuffer()
        buf.add("1", 1000)
        assert not buf.expire(1000 + config.KEYPAD_TIMEOUT_MS - 1)
        assert buf.expire(1000 + config.KEYPAD_TIMEOUT_MS)
        assert len(buf) == 0

    def test_enter_clears(self, state):
        """Test ENTER always empties the buffer."""
        _enter(state, "99")
        assert state.keypad.digits == ""


class TestBeepModes:
    """Tests for key-beep modes."""

    def test_mode_off(self, state):
        """Test mode 0 keeps keys silent."""
        _enter(state, "000")
        state.audio.played.clear()
        keypad.key_pressed(state, "5")
        assert not state.audio.played

    def test_mode_on(self, state):
        """Test mode 1 beeps every key."""
        keypad.key_pressed(state, "5")
        assert state.audio.last == "key5"

    def test_mode_silent_cue(self, state):
        """Test switching beep mode gives no enter sound."""
        res = _enter(state, "002")
        assert res.valid is None
        assert res.text == "BEEP MODE   2"
        assert state.audio.last != "enter"

    def test_timed_mode(self, state):
        """Test mode 2 beeps only for BEEPM2_SECS after the last entry."""
        _enter(state, "002")
        state.audio.played.clear()
        state.clock.advance(config.BEEPM2_SECS * 1000 - 1)
        keypad.key_pressed(state, "1")
        assert state.audio.last == "key1"

        state.clock.advance(1)
        state.audio.played.clear()
        keypad.key_pressed(state, "1")
        assert not state.audio.played


class TestHold:
    """Tests for held-key shortcuts."""

    def test_hold_zero_travels(self, state):
        """Test holding 0 starts a time travel."""
        keypad.hold(state, "0")
        expected = TravelState.LONG_P1 if config.TT_LONG else TravelState.TRAVELED
        assert state.travel.phase is expected

    def test_hold_nine_returns(self, state):
        """Test holding 9 returns from a travel."""
        keypad.hold(state, "9")
        assert state.travel.phase is TravelState.RETURNED

    def test_hold_one_toggles_alarm(self, state):
        """Test holding 1 toggles a set alarm, and errors on an unset one."""
        keypad.hold(state, "1")
        assert state.audio.last == "baddate"

        _enter(state, "110700")
        keypad.hold(state, "1")
        assert not state.alarm.enabled
        assert state.audio.last == "alarmoff"
        keypad.hold(state, "1")
        assert state.alarm.enabled
        assert state.audio.last == "alarmon"

    def test_hold_four_night_mode(self, state):
        """Test holding 4 toggles night mode on every row."""
        keypad.hold(state, "4")
        assert state.night_mode
        assert all(d.night_mode for d in state.displays)
        assert state.audio.last == "nmon"
        keypad.hold(state, "4")
        assert state.audio.last == "nmoff"

    def test_music_holds(self, state, tmp_path):
        """Test 2 / 5 / 8 drive the music player."""
        keypad.hold(state, "5")
        assert state.audio.last == "baddate"

        music = _with_music(state, tmp_path, songs=3)
        keypad.hold(state, "5")
        assert music.active
        keypad.hold(state, "8")
        assert music.current == 1
        keypad.hold(state, "2")
        assert music.current == 0
        keypad.hold(state, "5")
        assert not music.active
