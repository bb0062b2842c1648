"""Wall-clock helpers: time-set checks, timestamp formatting and Wi-Fi retry policy."""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime

DEFAULT_NTP_SERVER = "pool.ntp.org"
DEFAULT_MAX_RETRY = 5
TIMEZONE = "MST7MDT,M3.2.0,M11.1.0"
MIN_VALID_YEAR = 2016
DATE_PATH_FORMAT = "timelapse_data/%Y/%m/%d"


class TimeNotSetError(RuntimeError):
    """The system clock has not been synchronised yet."""


@dataclass(frozen=True)
class TimeSyncConfig:
    """Network and time server settings used for clock synchronisation."""

    ssid: str
    password: str
    ntp_server: str = DEFAULT_NTP_SERVER
    gmt_offset_sec: int = 0
    daylight_offset_sec: int = 0
    max_retry: int = DEFAULT_MAX_RETRY

    def __post_init__(self) -> None:
        if not self.ssid:
            raise ValueError("an SSID is required")
        if self.password is None:
            raise ValueError("a password is required")
        if self.max_retry < 0:
            raise ValueError(f"max_retry must not be negative, got {self.max_retry}")


@dataclass
class RetryTracker:
    """Counts reconnection attempts after the station loses its access point."""

    max_retry: int = DEFAULT_MAX_RETRY
    retries: int = 0
    connected: bool = False
    failed: bool = False

    def on_disconnect(self) -> bool:
        """Record a disconnect; return True if another attempt should be made."""
        self.connected = False
        if self.retries < self.max_retry:
            self.retries += 1
            return True
        self.failed = True
        return False

    def on_connected(self) -> None:
        """Record a successful connection and reset the retry count."""
        self.retries = 0
        self.connected = True


def _local(now) -> datetime:
    if now is None:
        now = time.time()
    if isinstance(now, datetime):
        return now
    return datetime.fromtimestamp(now)


def is_time_set(now=None) -> bool:
    """True once the clock shows a plausible, synchronised date."""
    return _local(now).year >= MIN_VALID_YEAR


def get_local_time(now=None) -> datetime:
    """Return the local time, raising TimeNotSetError before synchronisation."""
    moment = _local(now)
    if moment.year < MIN_VALID_YEAR:
        raise TimeNotSetError("system time has not been set")
    return moment


def format_timestamp(fmt: str, now=None) -> str:
    """Format the local time with a strftime pattern."""
    if fmt is None:
        raise ValueError("a format is required")
    return get_local_time(now).strftime(fmt)


def get_date_path(now=None) -> str:
    """Directory for the current day's recordings."""
    return format_timestamp(DATE_PATH_FORMAT, now)