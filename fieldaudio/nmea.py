"""Parsing of NMEA GGA sentences into a GPS fix."""

from __future__ import annotations

import re
import time
from dataclasses import dataclass

GGA_PREFIX = "$GPGGA"
MAX_FIELDS = 15
MIN_SATELLITES = 4

_FIELD_LATITUDE = 2
_FIELD_LONGITUDE = 4
_FIELD_FIX_QUALITY = 6
_FIELD_SATELLITES = 7
_FIELD_ALTITUDE = 9

_FLOAT_PREFIX = re.compile(r"\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)")
_INT_PREFIX = re.compile(r"\s*([+-]?\d+)")


def _now_us() -> int:
    return time.monotonic_ns() // 1000


def _leading_float(text: str) -> float:
    """Numeric prefix of the text as a float, 0.0 when there is none."""
    match = _FLOAT_PREFIX.match(text)
    return float(match.group(1)) if match else 0.0


def _leading_int(text: str) -> int:
    """Integer prefix of the text, 0 when there is none."""
    match = _INT_PREFIX.match(text)
    return int(match.group(1)) if match else 0


@dataclass
class GpsFix:
    """Latest position and altitude reported by the receiver."""

    latitude: float = 0.0
    longitude: float = 0.0
    altitude: float = 0.0
    speed: float = 0.0
    fix_quality: int = 0
    satellites: int = 0
    timestamp: int = 0

    def has_good_fix(self) -> bool:
        """True when the fix is valid and enough satellites are in view."""
        return self.fix_quality > 0 and self.satellites >= MIN_SATELLITES


def parse_gga(sentence: str, fix: GpsFix | None = None, timestamp: int | None = None) -> GpsFix:
    """Update the fix from one GGA sentence; other sentences leave it untouched.

    Empty fields are skipped rather than counted, so a sentence with blank
    fields shifts the positions of the fields after them.
    """
    target = GpsFix() if fix is None else fix
    if not sentence.startswith(GGA_PREFIX):
        return target

    tokens = [token for token in sentence.split(",") if token]
    for index, token in enumerate(tokens[:MAX_FIELDS]):
        if index == _FIELD_LATITUDE:
            target.latitude = _leading_float(token) / 100.0
        elif index == _FIELD_LONGITUDE:
            target.longitude = _leading_float(token) / 100.0
        elif index == _FIELD_FIX_QUALITY:
            target.fix_quality = _leading_int(token)
        elif index == _FIELD_SATELLITES:
            target.satellites = _leading_int(token)
        elif index == _FIELD_ALTITUDE:
            target.altitude = _leading_float(token)

    target.timestamp = _now_us() if timestamp is None else timestamp
    return target


def parse_stream(text: str, fix: GpsFix | None = None, timestamp: int | None = None) -> GpsFix:
    """Feed every line of a block of receiver output to the GGA parser."""
    target = GpsFix() if fix is None else fix
    for line in re.split(r"[\r\n]+", text):
        if line:
            parse_gga(line, target, timestamp)
    return target