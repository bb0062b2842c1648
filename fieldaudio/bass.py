"""Band energies of the bass range of a block of I2S samples."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field

from fieldaudio.atmosphere import BASS_COMPENSATION_ALTITUDE, BASS_COMPENSATION_RATE
from fieldaudio.audio import SPL_FULL_SCALE

SAMPLE_RATE = 44100
FFT_SIZE = 1024
BASS_FREQ_MIN = 20
BASS_FREQ_MAX = 200
NUM_BASS_BANDS = 16


def _now_us() -> int:
    return time.monotonic_ns() // 1000


def _band_bins() -> list[range]:
    span = BASS_FREQ_MAX - BASS_FREQ_MIN
    bands = []
    for band in range(NUM_BASS_BANDS):
        freq_start = BASS_FREQ_MIN + band * span / NUM_BASS_BANDS
        freq_end = BASS_FREQ_MIN + (band + 1) * span / NUM_BASS_BANDS
        start_bin = int(freq_start * FFT_SIZE / SAMPLE_RATE)
        end_bin = min(int(freq_end * FFT_SIZE / SAMPLE_RATE), FFT_SIZE // 2)
        bands.append(range(start_bin, max(end_bin, start_bin)))
    return bands


_BAND_BINS = _band_bins()
REQUIRED_SAMPLES = max((band.stop for band in _BAND_BINS if band), default=0)


@dataclass
class BassAnalysis:
    """Energy per bass band, the strongest bin and the altitude attenuation."""

    bass_energy: list[float] = field(default_factory=lambda: [0.0] * NUM_BASS_BANDS)
    total_bass_power: float = 0.0
    peak_bass_freq: float = 0.0
    bass_attenuation: float = 0.0
    timestamp: int = 0


def analyze_bass(samples, altitude: float, timestamp: int | None = None) -> BassAnalysis:
    """Analyse 32-bit I2S words carrying 18-bit audio for bass content."""
    words = list(samples)
    if len(words) < REQUIRED_SAMPLES:
        raise ValueError(f"need at least {REQUIRED_SAMPLES} samples, got {len(words)}")

    energies = []
    total_energy = 0.0
    peak_magnitude = 0.0
    peak_freq = 0.0
    for bins in _BAND_BINS:
        band_energy = 0.0
        for j in bins:
            magnitude = math.fabs(int(words[j]) >> 14) / SPL_FULL_SCALE
            band_energy += magnitude * magnitude
            if magnitude > peak_magnitude:
                peak_magnitude = magnitude
                peak_freq = j * SAMPLE_RATE / FFT_SIZE
        energies.append(math.sqrt(band_energy))
        total_energy += band_energy

    return BassAnalysis(
        bass_energy=energies,
        total_bass_power=math.sqrt(total_energy),
        peak_bass_freq=peak_freq,
        bass_attenuation=altitude / BASS_COMPENSATION_ALTITUDE * BASS_COMPENSATION_RATE,
        timestamp=_now_us() if timestamp is None else timestamp,
    )