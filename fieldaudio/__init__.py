"""Acoustic field measurement: spectra, SPL, shadows, atmosphere, WAV headers and recording storage."""

__version__ = "0.1.0"

__all__ = [
    "atmosphere",
    "audio",
    "bass",
    "clock",
    "manifest",
    "nmea",
    "shadow",
    "storage",
    "wav",
]