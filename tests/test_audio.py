import math

import numpy as np
import pytest

from fieldaudio.audio import (
    AudioConfig,
    AudioFeatures,
    AudioProcessor,
    BeatDetector,
    WindowType,
    apply_window,
    calculate_spl,
    compute_chroma,
    compute_fft,
    compute_mfcc,
    compute_psd,
    extract_features,
    freq_to_mel,
    frequency_filter,
    mel_to_freq,
    spectral_centroid,
    spectral_rolloff,
    window_coefficients,
)


def test_hann_window_endpoints_and_symmetry():
    w = window_coefficients(WindowType.HANN, 64)
    assert w[0] == pytest.approx(0.0, abs=1e-12)
    assert w[-1] == pytest.approx(0.0, abs=1e-12)
    assert np.allclose(w, w[::-1])
    assert w.max() <= 1.0


def test_hamming_window_endpoints():
    w = window_coefficients(WindowType.HAMMING, 32)
    assert w[0] == pytest.approx(0.54 - 0.46)
    assert np.allclose(w, w[::-1])


def test_blackman_window_endpoints():
    w = window_coefficients(WindowType.BLACKMAN, 32)
    assert w[0] == pytest.approx(0.42 - 0.50 + 0.08, abs=1e-12)
    assert np.allclose(w, w[::-1])


def test_unknown_window_is_rectangular():
    samples = [1.0, -2.0, 3.0, 4.5]
    assert list(apply_window(samples, 99)) == samples


def test_tapered_window_needs_two_points():
    with pytest.raises(ValueError):
        window_coefficients(WindowType.HANN, 1)


def test_processor_window_matches_module_function():
    proc = AudioProcessor(AudioConfig(sample_rate=16000, fft_size=256, window_type=WindowType.HAMMING))
    samples = np.linspace(-1.0, 1.0, 256)
    assert np.allclose(proc.apply_window(samples, WindowType.HAMMING), apply_window(samples, WindowType.HAMMING))
    assert np.allclose(proc.apply_window(samples[:128], WindowType.HANN), apply_window(samples[:128], WindowType.HANN))


@pytest.mark.parametrize(
    "config",
    [
        AudioConfig(sample_rate=16000, fft_size=32),
        AudioConfig(sample_rate=16000, fft_size=8192),
        AudioConfig(sample_rate=16000, fft_size=300),
        AudioConfig(sample_rate=4000, fft_size=256),
        AudioConfig(sample_rate=192000, fft_size=256),
    ],
)
def test_processor_rejects_invalid_config(config):
    with pytest.raises(ValueError):
        AudioProcessor(config)


def test_fft_peak_at_sine_bin():
    n = 256
    k = 20
    samples = np.sin(2 * np.pi * k * np.arange(n) / n)
    spectrum = compute_fft(samples)
    assert len(spectrum) == n // 2
    assert int(np.argmax(spectrum)) == k


def test_fft_requires_power_of_two():
    with pytest.raises(ValueError):
        compute_fft([0.0] * 100)


def test_mel_round_trip():
    for freq in (0.0, 80.0, 440.0, 8000.0):
        assert mel_to_freq(freq_to_mel(freq)) == pytest.approx(freq, abs=1e-6)
    assert freq_to_mel(0.0) == 0.0


def test_centroid_and_rolloff_of_single_bin():
    spectrum = [0.0] * 8
    spectrum[2] = 5.0
    assert spectral_centroid(spectrum, 16000) == pytest.approx(2000.0)
    assert spectral_rolloff(spectrum, 16000, 0.85) == pytest.approx(2000.0)


def test_centroid_of_silence_is_zero():
    assert spectral_centroid([0.0] * 16, 16000) == 0.0


def test_rolloff_above_total_returns_nyquist():
    assert spectral_rolloff([1.0] * 16, 16000, 1.5) == pytest.approx(8000.0)


def test_chroma_of_a440():
    spectrum = np.zeros(512)
    spectrum[440] = 3.0
    chroma = compute_chroma(spectrum, 1024)
    assert chroma[9] == pytest.approx(1.0)
    assert chroma.sum() == pytest.approx(1.0)


def test_chroma_normalised_and_silent():
    rng = np.random.default_rng(1)
    chroma = compute_chroma(rng.random(512), 8000)
    assert len(chroma) == 12
    assert chroma.sum() == pytest.approx(1.0)
    assert np.all(compute_chroma(np.zeros(512), 8000) == 0.0)


def test_mfcc_of_silence():
    mfcc = compute_mfcc(np.zeros(512), 16000)
    assert len(mfcc) == 13
    assert mfcc[0] == pytest.approx(-10.0 * 26)
    assert np.allclose(mfcc[1:], 0.0, atol=1e-9)


def test_extract_features():
    rng = np.random.default_rng(7)
    spectrum = rng.random(256)
    features = extract_features(spectrum, 16000, timestamp=1234)
    assert features.timestamp == 1234
    assert features.energy == pytest.approx(math.sqrt(float((spectrum[1:] ** 2).sum())))
    assert features.spectral_centroid == pytest.approx(spectral_centroid(spectrum, 16000))
    assert features.spectral_spread >= 0.0
    assert len(features.mfcc) == 13
    assert features.chroma.sum() == pytest.approx(1.0)


def test_spl_empty_is_zero():
    assert calculate_spl([], 94.0) == 0.0


def test_spl_doubling_amplitude_adds_six_db():
    quiet = calculate_spl([1000 << 14] * 64, 0.0)
    loud = calculate_spl([2000 << 14] * 64, 0.0)
    assert loud - quiet == pytest.approx(20 * math.log10(2))


def test_spl_calibration_offset_is_additive():
    samples = [(-500) << 14, 700 << 14, 300 << 14]
    assert calculate_spl(samples, 94.0) - calculate_spl(samples, 0.0) == pytest.approx(94.0)


def test_spl_full_scale():
    assert calculate_spl([131072 << 14] * 4, 0.0) == pytest.approx(20 * math.log10(1 / 20e-6))


def test_frequency_filter_keeps_band():
    spectrum = np.arange(1.0, 17.0)
    filtered = frequency_filter(spectrum, 2000, 4000, 16000)
    expected = [0.0, 0.0, 0.0, 0.0, 5.0, 6.0, 7.0, 8.0, 9.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0]
    assert [float(v) for v in filtered] == expected


def test_frequency_filter_clamps_high_bin():
    spectrum = np.ones(8)
    filtered = frequency_filter(spectrum, 0, 100000, 16000)
    assert [float(v) for v in filtered] == [1.0] * 8


def test_psd():
    mags = np.array([1.0, 2.0, 3.0])
    assert np.allclose(compute_psd(mags, 100), mags**2 / 100)
    proc = AudioProcessor(AudioConfig(sample_rate=8000, fft_size=64))
    assert np.allclose(proc.compute_psd(mags), compute_psd(mags, 8000))


def _prime(detector):
    for i in range(16):
        assert detector.process(AudioFeatures(energy=1.0, timestamp=i * 10_000)) is False


def test_beat_detector_defaults():
    detector = BeatDetector()
    assert detector.tempo == 120.0
    assert detector.beat_count == 0


def test_beat_detected_on_spike():
    detector = BeatDetector()
    _prime(detector)
    assert detector.process(AudioFeatures(energy=10.0, timestamp=1_000_000)) is True
    assert detector.beat_count == 1
    assert detector.last_beat_time == 1_000_000
    assert detector.tempo == 120.0
    assert detector.confidence > 0


def test_beat_minimum_gap():
    detector = BeatDetector()
    _prime(detector)
    assert detector.process(AudioFeatures(energy=10.0, timestamp=1_000_000)) is True
    assert detector.process(AudioFeatures(energy=50.0, timestamp=1_150_000)) is False
    assert detector.beat_count == 1


def test_tempo_from_regular_beats():
    detector = BeatDetector()
    _prime(detector)
    start = 1_000_000
    for beat in range(9):
        t = start + beat * 400_000
        assert detector.process(AudioFeatures(energy=10.0, timestamp=t)) is True
        for step in (100_000, 200_000, 300_000):
            assert detector.process(AudioFeatures(energy=1.0, timestamp=t + step)) is False
    assert detector.beat_count == 9
    assert detector.tempo == pytest.approx(60.0 / 0.4)