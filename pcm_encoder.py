"""Serialize decoded audio to canonical 16-bit PCM WAV bytes."""

from __future__ import annotations

import struct
from dataclasses import dataclass

import numpy as np

from audio_io import AudioBuffer

HEADER_LENGTH = 44
MAX_AMPLITUDE = 0x7FFF
BITS_PER_SAMPLE = 16

# RIFF size, WAVE/fmt ids, fmt size, tag, channels, rate, byte rate, block
# align, bits, data id, data size.
_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")


class EncodingError(ValueError):
    """Raised when a buffer cannot be written as 16-bit PCM WAV."""


@dataclass(frozen=True)
class WavHeader:
    riff_size: int
    format_tag: int
    channels: int
    sample_rate: int
    byte_rate: int
    block_align: int
    bits_per_sample: int
    data_size: int


def audio_buffer_to_wav(buffer: AudioBuffer) -> bytes:
    """Return ``buffer`` as a 44-byte header followed by interleaved ``<i2`` data.

    Only mono and stereo buffers are accepted. Samples are clamped to
    ``[-1, 1]``, scaled by 32767 and rounded half up.
    """
    n_channels = buffer.num_channels
    if n_channels not in (1, 2):
        raise EncodingError(f"Expecting mono or stereo audio, got {n_channels} channels")

    sample_rate = buffer.sample_rate
    data_size = buffer.num_frames * n_channels * 2
    header = _HEADER.pack(
        b"RIFF",
        data_size + 36,
        b"WAVE",
        b"fmt ",
        16,
        1,  # linear PCM
        n_channels,
        sample_rate,
        sample_rate * n_channels * 2,
        n_channels * 2,  # block align; 2 for mono, 4 for stereo
        BITS_PER_SAMPLE,
        b"data",
        data_size,
    )

    samples = np.clip(np.asarray(buffer.samples, dtype=np.float64), -1.0, 1.0)
    pcm = np.floor(samples * MAX_AMPLITUDE + 0.5).astype("<i2")
    # (channels, frames) -> frame-major interleaving
    return header + pcm.T.tobytes()


def parse_wav_header(data: bytes) -> WavHeader:
    """Read back the canonical 44-byte header written by :func:`audio_buffer_to_wav`."""
    if len(data) < HEADER_LENGTH:
        raise EncodingError(f"WAV data too short for a header ({len(data)} bytes)")
    (riff, riff_size, wave_id, fmt_id, _fmt_size, tag, channels, rate,
     byte_rate, align, bits, data_id, data_size) = _HEADER.unpack_from(data)
    if (riff, wave_id, fmt_id, data_id) != (b"RIFF", b"WAVE", b"fmt ", b"data"):
        raise EncodingError("Not a canonical PCM WAV header")
    return WavHeader(riff_size, tag, channels, rate, byte_rate, align, bits, data_size)
