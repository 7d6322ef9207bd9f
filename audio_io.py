"""
Audio decode/resample capability used by the sample processor.

The core modules only rely on the :class:`AudioDecoder` protocol, so tests can
swap in an in-memory decoder. :class:`SoundFileDecoder` is the default
implementation:

- decoding goes through ``soundfile`` (WAV, AIFF, FLAC, OGG, ...)
- resampling goes through ``librosa.resample``

NOTE: Requires the following libraries:
- soundfile (pip install soundfile)
- librosa (pip install librosa)
"""

from __future__ import annotations

import io
import logging
import math
from dataclasses import dataclass
from typing import Protocol

import numpy as np
import soundfile as sf

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AudioBuffer:
    """Decoded audio: ``samples`` has shape ``(channels, frames)``."""

    samples: np.ndarray
    sample_rate: int

    @property
    def num_channels(self) -> int:
        return int(self.samples.shape[0])

    @property
    def num_frames(self) -> int:
        return int(self.samples.shape[1])

    @property
    def duration(self) -> float:
        return self.num_frames / self.sample_rate if self.sample_rate else 0.0

    @classmethod
    def from_channels(cls, channels, sample_rate: int) -> "AudioBuffer":
        """Build a buffer from a list of per-channel sample sequences."""
        data = np.asarray(channels, dtype=np.float32)
        if data.ndim == 1:
            data = data[np.newaxis, :]
        return cls(data, int(sample_rate))


class AudioDecoder(Protocol):
    def decode(self, data: bytes) -> AudioBuffer:
        ...

    def render(
        self, buffer: AudioBuffer, target_sample_rate: int, target_channels: int
    ) -> AudioBuffer:
        ...


def convert_channels(samples: np.ndarray, target_channels: int) -> np.ndarray:
    """Up- or down-mix ``samples`` to ``target_channels``."""
    current = samples.shape[0]
    if current == target_channels:
        return samples
    if target_channels == 1:
        return samples.mean(axis=0, keepdims=True)
    if current == 1:
        return np.repeat(samples, target_channels, axis=0)
    # Fold everything down, then spread it over the requested channels.
    mono = samples.mean(axis=0, keepdims=True)
    return np.repeat(mono, target_channels, axis=0)


class SoundFileDecoder:
    """Decode with soundfile and resample with librosa."""

    def __init__(self, res_type: str = "soxr_hq"):
        self.res_type = res_type

    def decode(self, data: bytes) -> AudioBuffer:
        samples, sample_rate = sf.read(io.BytesIO(data), dtype="float32", always_2d=True)
        # soundfile returns (frames, channels)
        return AudioBuffer(np.ascontiguousarray(samples.T), int(sample_rate))

    def render(
        self, buffer: AudioBuffer, target_sample_rate: int, target_channels: int
    ) -> AudioBuffer:
        """Return ``buffer`` resampled to ``target_sample_rate`` and mixed to
        ``target_channels``. Zero keeps the original value."""
        import librosa

        rate = target_sample_rate or buffer.sample_rate
        channels = target_channels or buffer.num_channels
        samples = convert_channels(buffer.samples, channels)

        if rate != buffer.sample_rate and buffer.num_frames:
            length = math.ceil(buffer.duration * rate)
            logger.debug(
                "Resampling %d Hz -> %d Hz (%d frames)", buffer.sample_rate, rate, length
            )
            samples = librosa.resample(
                samples,
                orig_sr=buffer.sample_rate,
                target_sr=rate,
                res_type=self.res_type,
                axis=-1,
            )
            samples = librosa.util.fix_length(samples, size=length, axis=-1)

        return AudioBuffer(np.asarray(samples, dtype=np.float32), int(rate))
