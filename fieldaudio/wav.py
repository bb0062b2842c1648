"""Canonical 44-byte PCM WAV header."""

from __future__ import annotations

import struct
from dataclasses import dataclass

_HEADER_FORMAT = struct.Struct("<4sI4s4sIHHIIHH4sI")
HEADER_SIZE = _HEADER_FORMAT.size

PCM_FORMAT = 1
FMT_CHUNK_SIZE = 16
BITS_PER_SAMPLE = 16


@dataclass
class WavHeader:
    """Fields of a RIFF/WAVE header with a single fmt and data chunk."""

    file_size: int
    num_channels: int
    sample_rate: int
    byte_rate: int
    block_align: int
    bits_per_sample: int
    data_size: int
    fmt_size: int = FMT_CHUNK_SIZE
    audio_format: int = PCM_FORMAT

    def pack(self) -> bytes:
        """Encode the header as 44 little-endian bytes."""
        try:
            return _HEADER_FORMAT.pack(
                b"RIFF",
                self.file_size,
                b"WAVE",
                b"fmt ",
                self.fmt_size,
                self.audio_format,
                self.num_channels,
                self.sample_rate,
                self.byte_rate,
                self.block_align,
                self.bits_per_sample,
                b"data",
                self.data_size,
            )
        except struct.error as exc:
            raise ValueError(f"cannot encode WAV header: {exc}") from exc

    @classmethod
    def unpack(cls, data) -> WavHeader:
        """Decode a header from the first 44 bytes of a WAV file."""
        raw = bytes(data[:HEADER_SIZE])
        if len(raw) != HEADER_SIZE:
            raise ValueError(f"WAV header must be {HEADER_SIZE} bytes, got {len(raw)}")
        (
            riff,
            file_size,
            wave,
            fmt,
            fmt_size,
            audio_format,
            channels,
            sample_rate,
            byte_rate,
            block_align,
            bits,
            data_tag,
            data_size,
        ) = _HEADER_FORMAT.unpack(raw)
        if (riff, wave, fmt, data_tag) != (b"RIFF", b"WAVE", b"fmt ", b"data"):
            raise ValueError("not a canonical RIFF/WAVE header")
        return cls(
            file_size=file_size,
            num_channels=channels,
            sample_rate=sample_rate,
            byte_rate=byte_rate,
            block_align=block_align,
            bits_per_sample=bits,
            data_size=data_size,
            fmt_size=fmt_size,
            audio_format=audio_format,
        )


def create_wav_header(sample_rate: int, channels: int, data_size: int) -> WavHeader:
    """Build a header for 16-bit PCM audio of the given layout and length."""
    bytes_per_sample = BITS_PER_SAMPLE // 8
    return WavHeader(
        file_size=data_size + HEADER_SIZE - 8,
        num_channels=channels,
        sample_rate=sample_rate,
        byte_rate=sample_rate * channels * bytes_per_sample,
        block_align=channels * bytes_per_sample,
        bits_per_sample=BITS_PER_SAMPLE,
        data_size=data_size,
    )