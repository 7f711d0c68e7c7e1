# config.py
"""
Configuration settings for the time circuits emulator.
"""
import os

FPS   = 30

# ── Basic Application Settings ──────────────────────────────────────────────

SHOW_OVERLAYS = False

# Display settings
FULLSCREEN = False
WINDOWED_SIZE = (960, 540)
MODE_24 = False               # 24-hour display instead of AM/PM

# Where persisted records (destination, departed, present, alarm, reminder) live
DATA_DIR  = os.path.join(os.path.dirname(os.path.abspath(__file__)), "data")
SOUND_DIR = "sounds"
MUSIC_DIR = "music"

# Persistent time travels: when False all travel state is memory-only
TIMES_PERSISTENT = True

# Play the intro / startup sound on boot
PLAY_INTRO = False

# ── Network time ───────────────────────────────────────────────────────────

NTP_SERVER = "pool.ntp.org"
TIME_ZONE  = "CST6CDT,M3.2.0,M11.1.0"   # POSIX TZ rule
NTP_TIMEOUT_SEC  = 0.5
NTP_MAX_RETRIES  = 20
NTP_MAX_WAIT_MS  = 3000

# Daily re-sync: (hour, minute, second) of real time
RESYNC_AT = (3, 1, 10)

# ── Hardware RTC ───────────────────────────────────────────────────────────

RTC_MAX_RETRIES = 30          # garbage reads retried this often, then accepted
ALARM_RTC = True              # alarm/hourly sound follow real time, not display

# ── Time travel sequence (milliseconds) ────────────────────────────────────

TT_LONG = True                # "0" held: long sequence instead of instant
TT_P1_DELAY_P1 = 1400         # initial delay, displays still normal
TT_P1_DELAY_P2 = 4100         # flicker
TT_P1_DELAY_P3 = 400          # blank
TT_P1_DELAY_P4 = 730          # glitch
TT_P1_DELAY_P5 = 3600         # glitch, second variant
TT_EFFECT_FRAME_MS = 60       # pacing of random effect frames
TIMETRAVEL_DELAY = 1500       # displays stay dark after arrival
STARTUP_DELAY = 1050
PLAY_TT_SOUNDS = True

# ── Idle cycle ("decorative mode") ─────────────────────────────────────────

AUTO_INTERVALS = (0, 5, 10, 15, 30, 60)   # minutes; 0 = off
AUTO_INTERVAL  = 1                        # index into AUTO_INTERVALS
AUTO_PAUSE_MS  = 30 * 60 * 1000

# ── Keypad ─────────────────────────────────────────────────────────────────

KEYPAD_TIMEOUT_MS = 2 * 60 * 1000
KEY_DEBOUNCE_MS   = 50
KEY_HOLD_MS       = 2000

ENTER_DELAY   = 600           # destination display dark after ENTER
BADDATE_DELAY = 400
SPEC_DELAY    = 3000          # how long special texts stay up
EE1_DELAY2    = 3000
EE1_DELAY3    = 2000

BEEP_MODE      = 1            # 0 off, 1 on, 2/3 on for 30/60 s after entry
BEEPM2_SECS    = 30
BEEPM3_SECS    = 60

# ── Brightness (0-15) ──────────────────────────────────────────────────────

DEST_TIME_BRIGHT = 10
PRES_TIME_BRIGHT = 10
LAST_TIME_BRIGHT = 10
NIGHT_BRIGHT     = 0

# ── Web remote ─────────────────────────────────────────────────────────────

WEB_REMOTE = True
WEB_PORT   = 8080
DIAG_REFRESH_INTERVAL = 1.0
