"""Atmospheric state, altitude fusion and bass compensation settings."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field

SEA_LEVEL_PRESSURE = 1013.25
TEMPERATURE_LAPSE_RATE = 0.0065
GAS_CONSTANT = 287.05
GRAVITY = 9.80665
ZERO_CELSIUS = 273.15
REFERENCE_TEMPERATURE = 293.15
SOUND_SPEED_AT_ZERO = 331.3

KALMAN_Q = 0.1
KALMAN_R = 0.5
GPS_NOISE_FACTOR = 4.0
BIAS_NOISE_FACTOR = 0.1

BASS_COMPENSATION_RATE = 0.5
BASS_COMPENSATION_ALTITUDE = 300.0
PRESSURE_EFFECT_THRESHOLD = 10.0

BMP390_FRAME_SIZE = 6


def _now_us() -> int:
    return time.monotonic_ns() // 1000


def _identity(size: int) -> list[list[float]]:
    return [[1.0 if row == col else 0.0 for col in range(size)] for row in range(size)]


@dataclass
class EnvironmentalData:
    """One set of environmental readings with derived values."""

    temperature: float = 0.0
    humidity: float = 0.0
    pressure: float = 0.0
    altitude: float = 0.0
    sound_speed: float = 0.0
    timestamp: int = 0


@dataclass
class CompensationSettings:
    """Playback adjustments derived from the atmosphere."""

    bass_boost: float = 0.0
    frequency_shift: float = 0.0
    loudness_compensation: float = 0.0
    pressure_factor: float = 0.0
    timestamp: int = 0


@dataclass
class KalmanState:
    """Altitude filter over altitude, vertical velocity and two sensor biases."""

    altitude: float = 0.0
    velocity: float = 0.0
    bias_baro: float = 0.0
    bias_gps: float = 0.0
    covariance: list[list[float]] = field(default_factory=lambda: _identity(4))

    def predict(self, dt: float) -> None:
        """Advance the state by dt seconds and grow its uncertainty."""
        self.altitude += self.velocity * dt
        p = self.covariance
        p[0][0] += KALMAN_Q * dt * dt
        p[1][1] += KALMAN_Q * dt
        p[2][2] += KALMAN_Q * BIAS_NOISE_FACTOR
        p[3][3] += KALMAN_Q * BIAS_NOISE_FACTOR

    def update_barometer(self, altitude: float) -> None:
        """Correct the state with a barometric altitude measurement."""
        p = self.covariance
        innovation = altitude - (self.altitude + self.bias_baro)
        s = p[0][0] + p[2][2] + KALMAN_R
        gain = [p[0][0] / s, p[1][0] / s, p[2][0] / s, 0.0]

        self.altitude += gain[0] * innovation
        self.velocity += gain[1] * innovation
        self.bias_baro += gain[2] * innovation

        for i, k in enumerate(gain):
            p[i][i] *= 1.0 - k

    def update_gps(self, altitude: float) -> None:
        """Correct the state with a GPS altitude measurement."""
        p = self.covariance
        innovation = altitude - (self.altitude + self.bias_gps)
        s = p[0][0] + p[3][3] + KALMAN_R * GPS_NOISE_FACTOR
        gain = [p[0][0] / s, p[1][0] / s, 0.0, p[3][0] / s]

        self.altitude += gain[0] * innovation
        self.velocity += gain[1] * innovation
        self.bias_gps += gain[3] * innovation

        for i, k in enumerate(gain):
            if i != 2:
                p[i][i] *= 1.0 - k


def altitude_from_pressure(pressure: float, temperature: float) -> float:
    """Altitude in metres from pressure (hPa) and temperature (degrees C)."""
    temp_kelvin = temperature + ZERO_CELSIUS
    ratio = pressure / SEA_LEVEL_PRESSURE
    exponent = GAS_CONSTANT * TEMPERATURE_LAPSE_RATE / GRAVITY
    return (temp_kelvin / TEMPERATURE_LAPSE_RATE) * (1.0 - ratio**exponent)


def sound_speed(temperature: float, humidity: float) -> float:
    """Speed of sound in m/s with a small humidity correction."""
    temp_kelvin = temperature + ZERO_CELSIUS
    base_speed = SOUND_SPEED_AT_ZERO * math.sqrt(temp_kelvin / ZERO_CELSIUS)
    return base_speed * (1.0 + (humidity / 100.0) * 0.001)


def convert_bmp390_raw(data) -> tuple[float, float]:
    """Convert a 6-byte pressure/temperature frame to (temperature, pressure)."""
    raw = bytes(data)
    if len(raw) != BMP390_FRAME_SIZE:
        raise ValueError(f"BMP390 frame must be {BMP390_FRAME_SIZE} bytes, got {len(raw)}")
    press_raw = int.from_bytes(raw[0:3], "big")
    temp_raw = int.from_bytes(raw[3:6], "big")
    return temp_raw / 100.0 - 40.0, press_raw / 100.0


def calculate_compensation(
    env: EnvironmentalData, altitude: float, timestamp: int | None = None
) -> CompensationSettings:
    """Derive compensation settings from the environment and fused altitude."""
    temp_ratio = math.sqrt((ZERO_CELSIUS + env.temperature) / REFERENCE_TEMPERATURE)
    deviation = math.fabs(env.pressure - SEA_LEVEL_PRESSURE)
    return CompensationSettings(
        bass_boost=altitude / BASS_COMPENSATION_ALTITUDE * BASS_COMPENSATION_RATE,
        frequency_shift=(temp_ratio - 1.0) * 100.0,
        loudness_compensation=(env.humidity - 50.0) / 100.0 * 0.5,
        pressure_factor=deviation / 100.0 if deviation > PRESSURE_EFFECT_THRESHOLD else 0.0,
        timestamp=_now_us() if timestamp is None else timestamp,
    )