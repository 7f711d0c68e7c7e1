"""
storage.py

JSON records persisted between runs (one file per record under
config.DATA_DIR):

    dest_time.json   destination time   {year, month, day, hour, minute, year_offset}
    dept_time.json   last departed time  (same layout)
    pres_time.json   present time        {year_offset, time_difference, time_diff_up}
    alarm.json       {hour, minute, weekdays, enabled}
    reminder.json    {month, day, hour, minute}

Every load validates and returns None on any problem; callers substitute a
documented default.  Saves are best effort: a failed write is logged and
the in-memory value stays authoritative.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Optional, Tuple

import config
from alarms import Alarm, Reminder
from calendar_engine import CivilTime
from present_time import PresentTime, TimeDifference

log = logging.getLogger(__name__)

DEST_TIME = "dest_time"
DEPT_TIME = "dept_time"
PRES_TIME = "pres_time"
ALARM     = "alarm"
REMINDER  = "reminder"


class JsonStore:
    def __init__(self, root_dir: str | None = None) -> None:
        self.root_dir = os.path.abspath(root_dir or config.DATA_DIR)

    def _path(self, name: str) -> str:
        return os.path.join(self.root_dir, f"{name}.json")

    # ------------------------------------------------------------ raw I/O
    def load(self, name: str) -> Optional[Dict[str, Any]]:
        try:
            with open(self._path(name), "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            log.debug("%s: no saved record", name)
            return None
        except (OSError, ValueError) as exc:
            log.warning("%s: unreadable record (%s)", name, exc)
            return None
        return data if isinstance(data, dict) else None

    def save(self, name: str, data: Dict[str, Any]) -> bool:
        tmp = self._path(name) + ".tmp"
        try:
            os.makedirs(self.root_dir, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp, self._path(name))
        except OSError as exc:
            log.warning("%s: save failed (%s)", name, exc)
            return False
        return True

    # ------------------------------------------------------- clock records
    def load_clock(self, name: str) -> Optional[Tuple[CivilTime, int]]:
        data = self.load(name)
        if data is None:
            return None
        try:
            ct = CivilTime(int(data["year"]), int(data["month"]), int(data["day"]),
                           int(data["hour"]), int(data["minute"]))
            yoffs = int(data.get("year_offset", 0))
        except (KeyError, TypeError, ValueError):
            log.warning("%s: malformed record", name)
            return None
        if not ct.is_valid() or yoffs % 28:
            log.warning("%s: invalid values %s", name, data)
            return None
        return ct, yoffs

    def save_clock(self, name: str, ct: CivilTime, year_offset: int = 0) -> bool:
        return self.save(name, {
            "year": ct.year, "month": ct.month, "day": ct.day,
            "hour": ct.hour, "minute": ct.minute, "year_offset": year_offset,
        })

    # ------------------------------------------------------- present time
    def load_present(self) -> Optional[PresentTime]:
        data = self.load(PRES_TIME)
        if data is None:
            return None
        try:
            yoffs = int(data["year_offset"])
            diff  = int(data.get("time_difference", 0))
            up    = bool(data.get("time_diff_up", False))
        except (KeyError, TypeError, ValueError):
            log.warning("%s: malformed record", PRES_TIME)
            return None
        if yoffs % 28 or diff < 0:
            log.warning("%s: invalid values %s", PRES_TIME, data)
            return None
        return PresentTime(yoffs, TimeDifference(diff, up))

    def save_present(self, present: PresentTime) -> bool:
        return self.save(PRES_TIME, {
            "year_offset": present.year_offset,
            "time_difference": present.diff.minutes,
            "time_diff_up": present.diff.up,
        })

    def load_year_offset(self) -> Optional[int]:
        loaded = self.load_present()
        return loaded.year_offset if loaded else None

    def save_year_offset(self, year_offset: int) -> bool:
        """Update only the year offset, keeping the stored time difference."""
        loaded = self.load_present() or PresentTime()
        loaded.year_offset = year_offset
        return self.save_present(loaded)

    # ---------------------------------------------------- alarm/reminder
    def load_alarm(self) -> Optional[Alarm]:
        data = self.load(ALARM)
        if data is None:
            return None
        try:
            alarm = Alarm(int(data["hour"]), int(data["minute"]),
                          int(data.get("weekdays", 0)), bool(data.get("enabled", False)))
        except (KeyError, TypeError, ValueError):
            return None
        return alarm if alarm.is_valid() else None

    def save_alarm(self, alarm: Alarm) -> bool:
        return self.save(ALARM, {
            "hour": alarm.hour, "minute": alarm.minute,
            "weekdays": alarm.weekdays, "enabled": alarm.enabled,
        })

    def load_reminder(self) -> Optional[Reminder]:
        data = self.load(REMINDER)
        if data is None:
            return None
        try:
            rem = Reminder(int(data["month"]), int(data["day"]),
                           int(data["hour"]), int(data["minute"]))
        except (KeyError, TypeError, ValueError):
            return None
        return rem if rem.is_valid() else None

    def save_reminder(self, rem: Reminder) -> bool:
        return self.save(REMINDER, {
            "month": rem.month, "day": rem.day, "hour": rem.hour, "minute": rem.minute,
        })
