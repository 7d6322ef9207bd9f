#!/usr/bin/env python3
"""Tests for the 16-bit PCM WAV writer."""

import struct

import numpy as np
import pytest

from audio_io import AudioBuffer
from pcm_encoder import HEADER_LENGTH, EncodingError, audio_buffer_to_wav, parse_wav_header


def _pcm(data):
    return list(struct.unpack(f"<{(len(data) - HEADER_LENGTH) // 2}h", data[HEADER_LENGTH:]))


def test_one_second_of_mono_silence(silence):
    data = audio_buffer_to_wav(silence)
    assert len(data) == HEADER_LENGTH + 48000 * 2
    assert data[:4] == b"RIFF"
    assert struct.unpack_from("<I", data, 4)[0] == 48000 * 2 + 36
    assert data[8:16] == b"WAVEfmt "
    assert data[36:40] == b"data"
    assert struct.unpack_from("<I", data, 40)[0] == 48000 * 2
    assert set(data[HEADER_LENGTH:]) == {0}


def test_header_fields():
    buffer = AudioBuffer.from_channels([[0.0] * 10, [0.0] * 10], 22050)
    header = parse_wav_header(audio_buffer_to_wav(buffer))
    assert header.format_tag == 1
    assert header.channels == 2
    assert header.sample_rate == 22050
    assert header.byte_rate == 22050 * 2 * 2
    assert header.block_align == 4
    assert header.bits_per_sample == 16
    assert header.data_size == 10 * 2 * 2
    assert header.riff_size == header.data_size + 36


def test_block_align_follows_channel_count(silence):
    header = parse_wav_header(audio_buffer_to_wav(silence))
    assert header.block_align == 2
    assert header.byte_rate == 48000 * 2


@pytest.mark.parametrize("rate,channels,frames", [(44100, 1, 441), (48000, 2, 17), (11025, 2, 0)])
def test_header_round_trip(rate, channels, frames):
    buffer = AudioBuffer(np.zeros((channels, frames), dtype=np.float32), rate)
    data = audio_buffer_to_wav(buffer)
    header = parse_wav_header(data)
    assert (header.sample_rate, header.channels, header.data_size) == (
        rate, channels, frames * channels * 2
    )
    assert len(data) == HEADER_LENGTH + header.data_size


def test_stereo_is_interleaved():
    buffer = AudioBuffer.from_channels([[1.0, -1.0], [0.5, 0.0]], 44100)
    assert _pcm(audio_buffer_to_wav(buffer)) == [32767, 16384, -32767, 0]


def test_samples_are_clamped_and_rounded():
    buffer = AudioBuffer.from_channels([[2.0, -3.0, 0.25, -0.25, 0.1]], 44100)
    assert _pcm(audio_buffer_to_wav(buffer)) == [32767, -32767, 8192, -8192, 3277]


@pytest.mark.parametrize("channels", [0, 3, 6])
def test_unsupported_channel_counts(channels):
    buffer = AudioBuffer(np.zeros((channels, 4), dtype=np.float32), 44100)
    with pytest.raises(EncodingError):
        audio_buffer_to_wav(buffer)


def test_parse_wav_header_rejects_garbage():
    with pytest.raises(EncodingError):
        parse_wav_header(b"RIFF")
    with pytest.raises(EncodingError):
        parse_wav_header(b"\x00" * 44)
