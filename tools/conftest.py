"""Shared helpers for the test suite."""

import math
import os
import struct
import sys

import numpy as np
import pytest

# Add the parent directory to the path so we can import the modules
parent_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if parent_dir not in sys.path:
    sys.path.insert(0, parent_dir)

from audio_io import AudioBuffer, convert_channels  # noqa: E402
from pcm_encoder import audio_buffer_to_wav  # noqa: E402
from sample_processor import ProcessedSample  # noqa: E402
from wav_metadata import SampleAsset  # noqa: E402


def riff(*chunks):
    """Return a RIFF/WAVE buffer made of ``(chunk_id, body)`` pairs."""
    body = b"WAVE"
    for chunk_id, data in chunks:
        body += chunk_id + struct.pack("<I", len(data)) + data
        if len(data) % 2:
            body += b"\x00"
    return b"RIFF" + struct.pack("<I", len(body)) + body


def fmt_body(channels=1, sample_rate=48000, bits=16):
    block_align = channels * bits // 8
    return struct.pack(
        "<HHIIHH", 1, channels, sample_rate, sample_rate * block_align, block_align, bits
    )


def smpl_body(note, loop=None):
    loops = 1 if loop else 0
    body = struct.pack("<9I", 0, 0, 0, note, 0, 0, 0, loops, 0)
    if loop:
        body += struct.pack("<6I", 0, 0, loop[0], loop[1], 0, 0)
    return body


class FakeDecoder:
    """In-memory decoder: ``buffers`` maps raw bytes to an AudioBuffer."""

    def __init__(self, buffers):
        self.buffers = buffers
        self.render_calls = []

    def decode(self, data):
        try:
            return self.buffers[data]
        except KeyError:
            raise ValueError("undecodable data") from None

    def render(self, buffer, target_sample_rate, target_channels):
        self.render_calls.append((target_sample_rate, target_channels))
        frames = math.ceil(buffer.duration * target_sample_rate)
        samples = convert_channels(buffer.samples, target_channels)
        idx = np.minimum(
            (np.arange(frames) * buffer.sample_rate) // target_sample_rate,
            buffer.num_frames - 1,
        )
        return AudioBuffer(samples[:, idx], target_sample_rate)


def make_processed(
    filename,
    root_note=None,
    frames=1000,
    sample_rate=1000,
    loop=(0.1, 0.9),
    has_loop=False,
):
    buffer = AudioBuffer.from_channels([[0.0] * frames], sample_rate)
    asset = SampleAsset(
        filename=filename,
        byte_length=44 + frames * 2,
        sample_rate=sample_rate,
        channels=1,
        duration=buffer.duration,
        root_note=root_note,
        loop_start=loop[0],
        loop_end=loop[1],
        has_loop_data=has_loop,
        bit_depth=16,
    )
    return ProcessedSample(asset, audio_buffer_to_wav(buffer), sample_rate, frames)


@pytest.fixture
def silence():
    """One second of mono silence at 48 kHz."""
    return AudioBuffer.from_channels([[0.0] * 48000], 48000)
