"""Spectral analysis of audio frames: windows, FFT, features and beat tracking."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from enum import IntEnum

import numpy as np

SAMPLE_RATE_8K = 8000
SAMPLE_RATE_16K = 16000
SAMPLE_RATE_22K = 22050
SAMPLE_RATE_44K = 44100
SAMPLE_RATE_48K = 48000

FFT_SIZE_256 = 256
FFT_SIZE_512 = 512
FFT_SIZE_1024 = 1024
FFT_SIZE_2048 = 2048

MIN_FFT_SIZE = 64
MAX_FFT_SIZE = 4096
MIN_SAMPLE_RATE = 8000
MAX_SAMPLE_RATE = 96000

NUM_MEL_FILTERS = 26
NUM_MFCC = 13
NUM_CHROMA = 12
MFCC_LOW_FREQ = 80.0
CHROMA_LOW_FREQ = 80.0
CHROMA_HIGH_FREQ = 2000.0
ROLLOFF_THRESHOLD = 0.85

SPL_REFERENCE_PRESSURE = 20e-6
SPL_FULL_SCALE = 131072.0

BEAT_HISTORY = 16
BEAT_INTERVALS = 8
BEAT_THRESHOLD_FACTOR = 1.3
BEAT_MIN_GAP_US = 200_000
DEFAULT_TEMPO = 120.0


class WindowType(IntEnum):
    """Window functions; any unknown value means no windowing."""

    HANN = 0
    HAMMING = 1
    BLACKMAN = 2
    RECTANGULAR = 3


def _window_type(value) -> WindowType:
    try:
        return WindowType(value)
    except ValueError:
        return WindowType.RECTANGULAR


def _now_us() -> int:
    return time.monotonic_ns() // 1000


def _as_array(values) -> np.ndarray:
    return np.asarray(values, dtype=np.float64)


def _bin_frequencies(size: int, sample_rate: int) -> np.ndarray:
    return np.arange(size, dtype=np.float64) * sample_rate / (2.0 * size)


@dataclass
class AudioConfig:
    """Parameters of the analysis pipeline."""

    sample_rate: int = SAMPLE_RATE_44K
    fft_size: int = FFT_SIZE_1024
    window_type: WindowType = WindowType.HANN
    hop_size: int = 512
    normalize: bool = False


@dataclass
class AudioFeatures:
    """Features extracted from one magnitude spectrum."""

    energy: float = 0.0
    spectral_centroid: float = 0.0
    spectral_rolloff: float = 0.0
    spectral_spread: float = 0.0
    spectral_skewness: float = 0.0
    spectral_kurtosis: float = 0.0
    zero_crossing_rate: float = 0.0
    mfcc: np.ndarray = field(default_factory=lambda: np.zeros(NUM_MFCC))
    chroma: np.ndarray = field(default_factory=lambda: np.zeros(NUM_CHROMA))
    tempo: float = 0.0
    timestamp: int = 0


@dataclass
class BeatDetector:
    """Energy-based beat detector with a running tempo estimate."""

    energy_history: list[float] = field(default_factory=lambda: [0.0] * BEAT_HISTORY)
    beat_intervals: list[float] = field(default_factory=lambda: [0.0] * BEAT_INTERVALS)
    history_index: int = 0
    beat_count: int = 0
    tempo: float = DEFAULT_TEMPO
    confidence: float = 0.0
    last_beat_time: int = 0

    def process(self, features: AudioFeatures) -> bool:
        """Feed one frame's features; return True when a beat is detected."""
        self.energy_history[self.history_index] = features.energy
        self.history_index = (self.history_index + 1) % BEAT_HISTORY

        avg_energy = sum(self.energy_history) / BEAT_HISTORY
        now = features.timestamp

        if not (
            features.energy > BEAT_THRESHOLD_FACTOR * avg_energy
            and now - self.last_beat_time > BEAT_MIN_GAP_US
        ):
            return False

        if self.beat_count > 0:
            interval = (now - self.last_beat_time) / 1_000_000.0
            self.beat_intervals[self.beat_count % BEAT_INTERVALS] = interval
            count = min(self.beat_count, BEAT_INTERVALS)
            avg_interval = sum(self.beat_intervals[:count]) / count
            self.tempo = 60.0 / avg_interval if avg_interval else math.inf

        self.last_beat_time = now
        self.beat_count += 1
        self.confidence = (features.energy - avg_energy) / avg_energy
        return True


def window_coefficients(window_type, length: int) -> np.ndarray:
    """Return the coefficients of a window of the given type and length."""
    kind = _window_type(window_type)
    if length < 0:
        raise ValueError(f"invalid window length: {length}")
    if kind is WindowType.RECTANGULAR:
        return np.ones(length)
    if length < 2:
        raise ValueError(f"window length must be at least 2, got {length}")
    phase = 2.0 * math.pi * np.arange(length) / (length - 1)
    if kind is WindowType.HANN:
        return 0.5 * (1.0 - np.cos(phase))
    if kind is WindowType.HAMMING:
        return 0.54 - 0.46 * np.cos(phase)
    return 0.42 - 0.50 * np.cos(phase) + 0.08 * np.cos(2.0 * phase)


def apply_window(samples, window_type) -> np.ndarray:
    """Multiply the samples by a window of the given type."""
    data = _as_array(samples)
    return data * window_coefficients(window_type, len(data))


def compute_fft(samples) -> np.ndarray:
    """Return the magnitude spectrum (first half of the bins) of real samples."""
    data = _as_array(samples)
    size = len(data)
    if size < 2 or size & (size - 1):
        raise ValueError(f"FFT size must be a power of two, got {size}")
    return np.abs(np.fft.fft(data))[: size // 2]


def spectral_centroid(spectrum, sample_rate: int) -> float:
    """Magnitude-weighted mean frequency, ignoring the DC bin."""
    spec = _as_array(spectrum)
    freqs = _bin_frequencies(len(spec), sample_rate)
    magnitude_sum = spec[1:].sum()
    if magnitude_sum <= 0:
        return 0.0
    return float((freqs[1:] * spec[1:]).sum() / magnitude_sum)


def spectral_rolloff(spectrum, sample_rate: int, threshold: float = ROLLOFF_THRESHOLD) -> float:
    """Frequency below which the given fraction of spectral magnitude lies."""
    spec = _as_array(spectrum)
    size = len(spec)
    energy_threshold = threshold * spec[1:].sum()
    cumulative = 0.0
    for index, value in enumerate(spec[1:], start=1):
        cumulative += value
        if cumulative >= energy_threshold:
            return index * sample_rate / (2.0 * size)
    return sample_rate / 2.0


def freq_to_mel(freq: float) -> float:
    """Convert a frequency in Hz to the mel scale."""
    return 2595.0 * math.log10(1.0 + freq / 700.0)


def mel_to_freq(mel: float) -> float:
    """Convert a mel value back to a frequency in Hz."""
    return 700.0 * (10.0 ** (mel / 2595.0) - 1.0)


def compute_mfcc(spectrum, sample_rate: int) -> np.ndarray:
    """Return 13 mel-frequency cepstral coefficients from a magnitude spectrum."""
    spec = _as_array(spectrum)
    size = len(spec)
    mel_low = freq_to_mel(MFCC_LOW_FREQ)
    mel_high = freq_to_mel(sample_rate / 2.0)
    bin_width = size // NUM_MEL_FILTERS

    filterbank = np.zeros(NUM_MEL_FILTERS)
    for m in range(NUM_MEL_FILTERS):
        mel_center = mel_low + (mel_high - mel_low) * m / (NUM_MEL_FILTERS - 1)
        bin_center = int(mel_to_freq(mel_center) * 2 * size / sample_rate)
        total = 0.0
        if bin_width > 0:
            first = max(bin_center - bin_width, 0)
            last = min(bin_center + bin_width, size - 1)
            for i in range(first, last + 1):
                weight = 1.0 - abs(i - bin_center) / bin_width
                if weight > 0:
                    total += spec[i] * weight
        filterbank[m] = math.log10(total + 1e-10)

    i = np.arange(NUM_MFCC)[:, None]
    j = np.arange(NUM_MEL_FILTERS)[None, :]
    basis = np.cos(math.pi * i * (j + 0.5) / NUM_MEL_FILTERS)
    return basis @ filterbank


def _round_half_away(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def compute_chroma(spectrum, sample_rate: int) -> np.ndarray:
    """Return a normalised 12-bin pitch class profile."""
    spec = _as_array(spectrum)
    size = len(spec)
    chroma = np.zeros(NUM_CHROMA)
    for index, value in enumerate(spec[1:], start=1):
        freq = index * sample_rate / (2.0 * size)
        if CHROMA_LOW_FREQ < freq < CHROMA_HIGH_FREQ:
            midi_note = 12.0 * math.log2(freq / 440.0) + 69.0
            chroma[_round_half_away(midi_note) % NUM_CHROMA] += value
    total = chroma.sum()
    if total > 0:
        chroma /= total
    return chroma


def extract_features(spectrum, sample_rate: int, timestamp: int | None = None) -> AudioFeatures:
    """Extract energy, spectral shape, MFCC and chroma features."""
    spec = _as_array(spectrum)
    freqs = _bin_frequencies(len(spec), sample_rate)
    centroid = spectral_centroid(spec, sample_rate)

    magnitude_sum = spec[1:].sum()
    if magnitude_sum > 0:
        spread = math.sqrt(((freqs[1:] - centroid) ** 2 * spec[1:]).sum() / magnitude_sum)
    else:
        spread = 0.0

    return AudioFeatures(
        energy=float(math.sqrt((spec[1:] ** 2).sum())),
        spectral_centroid=centroid,
        spectral_rolloff=spectral_rolloff(spec, sample_rate, ROLLOFF_THRESHOLD),
        spectral_spread=spread,
        mfcc=compute_mfcc(spec, sample_rate),
        chroma=compute_chroma(spec, sample_rate),
        timestamp=_now_us() if timestamp is None else timestamp,
    )


def calculate_spl(samples, calibration_offset: float) -> float:
    """Sound pressure level in dB of 32-bit I2S words carrying 18-bit audio."""
    words = list(samples)
    if not words:
        return 0.0
    sum_squares = sum(((int(word) >> 14) / SPL_FULL_SCALE) ** 2 for word in words)
    rms = max(math.sqrt(sum_squares / len(words)), 1e-10)
    return 20.0 * math.log10(rms / SPL_REFERENCE_PRESSURE) + calibration_offset


def frequency_filter(spectrum, low_freq: float, high_freq: float, sample_rate: int) -> np.ndarray:
    """Zero every bin outside the given band."""
    spec = _as_array(spectrum)
    size = len(spec)
    low_bin = max(int(low_freq * 2 * size / sample_rate), 0)
    high_bin = min(int(high_freq * 2 * size / sample_rate), size - 1)
    filtered = np.zeros(size)
    if high_bin >= low_bin:
        filtered[low_bin : high_bin + 1] = spec[low_bin : high_bin + 1]
    return filtered


def compute_psd(magnitudes, sample_rate: int) -> np.ndarray:
    """Power spectral density: squared magnitude over the sample rate."""
    return _as_array(magnitudes) ** 2 / sample_rate


class AudioProcessor:
    """Analysis pipeline bound to one configuration with a cached window."""

    def __init__(self, config: AudioConfig):
        if not MIN_FFT_SIZE <= config.fft_size <= MAX_FFT_SIZE:
            raise ValueError(f"invalid FFT size: {config.fft_size}")
        if config.fft_size & (config.fft_size - 1):
            raise ValueError(f"FFT size must be a power of two: {config.fft_size}")
        if not MIN_SAMPLE_RATE <= config.sample_rate <= MAX_SAMPLE_RATE:
            raise ValueError(f"invalid sample rate: {config.sample_rate}")
        self.config = config
        self._window_type = _window_type(config.window_type)
        self._window = window_coefficients(self._window_type, config.fft_size)

    def apply_window(self, samples, window_type) -> np.ndarray:
        """Window the samples, reusing the cached window when it fits."""
        data = _as_array(samples)
        if len(data) == self.config.fft_size and _window_type(window_type) is self._window_type:
            return data * self._window
        return apply_window(data, window_type)

    def compute_psd(self, magnitudes) -> np.ndarray:
        """Power spectral density at the configured sample rate."""
        return compute_psd(magnitudes, self.config.sample_rate)