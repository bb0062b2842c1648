# fieldaudio

A library for measuring sound in the field. It covers spectral feature
extraction, sound pressure level, acoustic shadow detection across a group of
listening nodes, and atmospheric bass compensation. It also keeps track of
recordings stored on a card-like directory.

## Install

```
pip install fieldaudio
```

To run the tests:

```
pip install "fieldaudio[test]"
pytest
```

## Modules

- `fieldaudio.audio`
  - Window functions: `window_coefficients` and `apply_window`, with a Hann,
    Hamming, Blackman or rectangular `WindowType`.
  - Magnitude spectra with `compute_fft`, which takes a power-of-two length.
  - `spectral_centroid`, `spectral_rolloff`, and 13 MFCCs (`compute_mfcc`).
  - A 12-bin chroma vector (`compute_chroma`).
  - `extract_features`, which returns an `AudioFeatures` holding energy,
    centroid, roll-off, spread, MFCC and chroma.
  - `freq_to_mel` and `mel_to_freq`.
  - `calculate_spl`, which gives sound pressure level from 32-bit I2S words
    that carry 18-bit audio.
  - `frequency_filter` and `compute_psd`.
  - `BeatDetector`, an energy-based detector with a running tempo estimate.
  - `AudioProcessor`, which checks an `AudioConfig` and caches the window for
    the configured FFT size.
- `fieldaudio.shadow`
  - `AudioPacket`, the binary packet that nodes exchange, with `pack` and
    `unpack`.
  - `build_packet` and `format_mac`.
  - `ShadowDetector`, which keeps a registry of nodes (`register`, `receive`).
    Its `detect` method returns a `ShadowReport` that compares each fresh level
    with the network average.
- `fieldaudio.atmosphere`
  - `altitude_from_pressure` and `sound_speed`.
  - `convert_bmp390_raw`, which takes a 6-byte pressure/temperature frame.
  - `KalmanState`, an altitude filter with `predict`, `update_barometer` and
    `update_gps`.
  - `calculate_compensation`, which returns `CompensationSettings`.
- `fieldaudio.nmea`
  - `parse_gga` and `parse_stream`, which turn `$GPGGA` sentences into a
    `GpsFix`.
  - `GpsFix.has_good_fix`.
- `fieldaudio.bass`
  - `analyze_bass`, which returns a `BassAnalysis` with 16 band energies
    between 20 Hz and 200 Hz, the peak bin and the altitude attenuation.
- `fieldaudio.wav`
  - `create_wav_header` for 16-bit PCM audio.
  - `WavHeader.pack` and `WavHeader.unpack`, which handle the 44-byte header.
- `fieldaudio.storage`
  - `SdCard`, a file store rooted at a host directory. It has `mount`,
    `unmount`, `write_file`, `append_file`, `read_file`, `delete_file`,
    `create_dir`, `get_free_space` and `save_jpeg`.
  - It raises `NotMountedError` or `StorageError` when an operation cannot be
    done.
- `fieldaudio.manifest`
  - `Manifest`, a JSON index of recorded videos (`VideoEntry`) kept at
    `timelapse_data/manifest.json` on an `SdCard`.
  - Its methods are `add_video`, `save`, `load`, `get` and
    `cleanup_old_entries`.
- `fieldaudio.clock`
  - `is_time_set`, `get_local_time`, `format_timestamp` and `get_date_path`.
    For example, `get_date_path` gives `timelapse_data/2024/05/17`.
  - `TimeNotSetError`.
  - `TimeSyncConfig`, a holder for network settings.
  - `RetryTracker`, which counts reconnection attempts.

## Example

```python
import numpy as np
from fieldaudio.audio import AudioConfig, AudioProcessor, compute_fft, extract_features

config = AudioConfig(sample_rate=44100, fft_size=1024)
processor = AudioProcessor(config)

t = np.arange(1024) / 44100
samples = np.sin(2 * np.pi * 440 * t)
spectrum = compute_fft(processor.apply_window(samples, config.window_type))
features = extract_features(spectrum, 44100, timestamp=0)
print(features.spectral_centroid, features.chroma)
```

```python
from fieldaudio.shadow import ShadowDetector

detector = ShadowDetector(threshold=6.0, max_nodes=20, stale_after=1_000_000)
detector.register(bytes.fromhex("020000000001"), 70.0, now=0)
detector.register(bytes.fromhex("020000000002"), 90.0, now=0)
report = detector.detect(local_spl=72.0, now=100)
print(report.average_spl, [node.mac.hex() for node, _ in report.shadowed_nodes])
```

## What it does not do

fieldaudio works on data you give it. It does not talk to any hardware:

- It does not read microphones, barometers, humidity sensors, GPS receivers or
  cameras.
- It does not send or receive radio packets. `AudioPacket` only encodes and
  decodes bytes.
- It does not join a Wi-Fi network or query a time server. `TimeSyncConfig`
  and `RetryTracker` only hold settings and counts.
- `SdCard` stores files in an ordinary directory and does not mount a physical
  card.

There is no command-line program and no long-running service. Everything is
used as a library.