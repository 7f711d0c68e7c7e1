"""
ntp_client.py

Network time source: one SNTP request over UDP, converted to local civil
time with a POSIX TZ rule (e.g. "CET-1CEST,M3.5.0,M10.5.0/3").

NetworkTimeSource.fetch() is the single fallible call the resync manager
uses.  It retries with a short backoff and gives up once the retry count
or the total wait budget runs out.
"""

from __future__ import annotations

import logging
import os
import socket
import struct
import time
from typing import Callable, Optional

import config
from rtc import RTCReading
from timing import Clock

log = logging.getLogger(__name__)

NTP_PORT = 123
NTP_DELTA = 2208988800          # seconds 1900-01-01 -> 1970-01-01


class NTPError(Exception):
    """No usable answer from the time server."""


def query_ntp(server: str, timeout: float = 0.5) -> float:
    """Return UNIX epoch seconds from *server*; raises NTPError."""
    packet = bytearray(48)
    packet[0] = 0x1b            # LI 0, version 3, mode 3 (client)
    try:
        address = socket.getaddrinfo(server, NTP_PORT, socket.AF_INET, socket.SOCK_DGRAM)[0][-1]
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.settimeout(timeout)
            sock.sendto(packet, address)
            msg = sock.recv(48)
    except OSError as exc:
        raise NTPError(f"{server}: {exc}") from exc

    if len(msg) < 48:
        raise NTPError(f"{server}: short reply ({len(msg)} bytes)")
    secs, frac = struct.unpack("!II", msg[40:48])
    if secs == 0:
        raise NTPError(f"{server}: unsynchronised server")
    return secs - NTP_DELTA + frac / 2**32


def to_local(epoch: float, tz_rule: str) -> time.struct_time:
    """Civil time for *epoch* under POSIX TZ rule *tz_rule*."""
    if not tz_rule or not hasattr(time, "tzset"):
        return time.localtime(epoch)

    old = os.environ.get("TZ")
    os.environ["TZ"] = tz_rule
    time.tzset()
    try:
        return time.localtime(epoch)
    finally:
        if old is None:
            del os.environ["TZ"]
        else:
            os.environ["TZ"] = old
        time.tzset()


class NetworkTimeSource:
    def __init__(self, server: Optional[str] = None, tz_rule: Optional[str] = None,
                 clock: Optional[Clock] = None):
        self.server  = getattr(config, "NTP_SERVER", "") if server is None else server
        self.tz_rule = getattr(config, "TIME_ZONE", "") if tz_rule is None else tz_rule
        self.clock   = clock or Clock()
        self.max_retries = getattr(config, "NTP_MAX_RETRIES", 20)
        self.max_wait_ms = getattr(config, "NTP_MAX_WAIT_MS", 3000)
        self.timeout     = getattr(config, "NTP_TIMEOUT_SEC", 0.5)

    def fetch(self, wait: Optional[Callable[[int], None]] = None) -> Optional[RTCReading]:
        """
        Local civil time from the server, or None when unavailable.  *wait*
        does the backoff between tries; defaults to sleeping on the clock.
        """
        if not self.server:
            log.debug("NTP skipped, no server configured")
            return None

        wait = wait or self.clock.sleep
        start = self.clock.millis()
        retries = 0
        while True:
            try:
                epoch = query_ntp(self.server, self.timeout)
                break
            except NTPError as exc:
                retries += 1
                spent = self.clock.millis() - start
                if retries > self.max_retries or spent >= self.max_wait_ms:
                    log.warning("Couldn't get NTP time after %d tries: %s", retries, exc)
                    return None
                wait(300 if retries >= 3 else 50)

        t = to_local(epoch, self.tz_rule)
        log.debug("NTP time from %s: %s", self.server, time.strftime("%Y-%m-%d %H:%M:%S", t))
        return RTCReading(t.tm_year, t.tm_mon, t.tm_mday, t.tm_hour, t.tm_min, t.tm_sec)
