"""Read and write sampler metadata stored in WAV ``smpl`` chunks."""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

from audio_io import AudioBuffer
from note_utils import parse_filename

logger = logging.getLogger(__name__)

RIFF_HEADER_SIZE = 12
CHUNK_HEADER_SIZE = 8
SMPL_HEADER_SIZE = 36
SMPL_LOOP_SIZE = 24

# Loop points used when a file has no loop metadata, as fractions of duration.
DEFAULT_LOOP_START = 0.1
DEFAULT_LOOP_END = 0.9


class ParseError(ValueError):
    """Raised when a RIFF/WAVE buffer has a malformed chunk structure."""


@dataclass(frozen=True)
class SmplInfo:
    midi_note: int
    loop_start: Optional[float] = None
    loop_end: Optional[float] = None

    @property
    def has_loop(self) -> bool:
        return self.loop_start is not None and self.loop_end is not None


@dataclass(frozen=True)
class WavFormat:
    format_tag: int
    channels: int
    sample_rate: int
    bits_per_sample: int


@dataclass(frozen=True)
class SampleAsset:
    """One ingested sound and the metadata derived from it.

    ``root_note`` is ``None`` when neither the ``smpl`` chunk nor the filename
    gives a usable note. ``bit_depth`` is informational only.
    """

    filename: str
    byte_length: int
    sample_rate: int
    channels: int
    duration: float
    root_note: Optional[int]
    loop_start: float
    loop_end: float
    has_loop_data: bool
    bit_depth: Optional[int] = None

    @property
    def file_size(self) -> int:
        return self.byte_length


def iter_chunks(data: bytes) -> Iterator[Tuple[bytes, int, int]]:
    """Yield ``(chunk_id, body_offset, size)`` for every chunk after the header.

    Odd-sized chunks are followed by one pad byte which is skipped.
    """
    if len(data) < RIFF_HEADER_SIZE or data[:4] != b"RIFF" or data[8:12] != b"WAVE":
        raise ParseError("Not a RIFF/WAVE buffer")

    offset = RIFF_HEADER_SIZE
    while offset < len(data) - CHUNK_HEADER_SIZE:
        chunk_id = data[offset:offset + 4]
        size = struct.unpack_from("<I", data, offset + 4)[0]
        logger.debug("Chunk %r at %d (%d bytes)", chunk_id, offset, size)
        yield chunk_id, offset + CHUNK_HEADER_SIZE, size
        offset += CHUNK_HEADER_SIZE + size + (size & 1)


def find_chunk(data: bytes, chunk_id: bytes) -> Optional[bytes]:
    """Return the body of the first ``chunk_id`` chunk, or ``None``.

    A body that runs past the end of the buffer is truncated to what is there.
    """
    for cid, body, size in iter_chunks(data):
        if cid == chunk_id:
            return data[body:body + size]
    return None


def parse_smpl_chunk(body: bytes, sample_rate: int) -> SmplInfo:
    """Decode a ``smpl`` chunk body.

    Only the unity note and the first loop are used. Loop frames are converted
    to seconds with ``sample_rate``.
    """
    if len(body) < 24:
        raise ParseError(f"smpl chunk too short ({len(body)} bytes)")

    midi_note = struct.unpack_from("<I", body, 20)[0]
    num_loops = struct.unpack_from("<I", body, 28)[0] if len(body) >= 32 else 0

    if num_loops > 0 and len(body) >= SMPL_HEADER_SIZE + SMPL_LOOP_SIZE and sample_rate:
        start_frames, end_frames = struct.unpack_from("<II", body, SMPL_HEADER_SIZE + 8)
        return SmplInfo(midi_note, start_frames / sample_rate, end_frames / sample_rate)
    return SmplInfo(midi_note)


def read_smpl_metadata(data: bytes, sample_rate: int) -> Optional[SmplInfo]:
    """Return the ``smpl`` metadata in ``data`` or ``None`` if there is none."""
    try:
        body = find_chunk(data, b"smpl")
        if body is None:
            return None
        return parse_smpl_chunk(body, sample_rate)
    except ParseError as exc:
        logger.debug("No smpl metadata: %s", exc)
    except struct.error as exc:
        logger.warning("Truncated chunk while scanning for smpl: %s", exc)
    return None


def read_format(data: bytes) -> Optional[WavFormat]:
    """Return the ``fmt `` chunk fields, or ``None`` if it cannot be found."""
    try:
        body = find_chunk(data, b"fmt ")
    except (ParseError, struct.error):
        return None
    if body is None or len(body) < 16:
        return None
    tag, channels, rate, _byte_rate, _align, bits = struct.unpack_from("<HHIIHH", body)
    return WavFormat(tag, channels, rate, bits)


def _clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


def read_wav_metadata(filename: str, data: bytes, audio: AudioBuffer) -> SampleAsset:
    """Build a :class:`SampleAsset` from raw file bytes and the decoded audio.

    The root note comes from the ``smpl`` chunk when it holds a value between
    0 and 127, otherwise from the filename. Loop points default to 10%/90% of
    the duration.
    """
    duration = audio.duration
    sample_rate = audio.sample_rate

    midi_note: Optional[int] = None
    loop_start = duration * DEFAULT_LOOP_START
    loop_end = duration * DEFAULT_LOOP_END
    has_loop_data = False

    smpl = read_smpl_metadata(data, sample_rate)
    if smpl is not None:
        if 0 <= smpl.midi_note <= 127:
            midi_note = smpl.midi_note
        else:
            logger.warning(
                "Ignoring out of range unity note %d in %s", smpl.midi_note, filename
            )
        if smpl.has_loop:
            loop_start, loop_end = smpl.loop_start, smpl.loop_end
            has_loop_data = True

    if midi_note is None:
        try:
            _, value = parse_filename(filename)
        except ValueError as exc:
            logger.info("No root note for %s: %s", filename, exc)
        else:
            if 0 <= value <= 127:
                midi_note = value
                logger.debug("Root note for %s inferred from filename: %d", filename, value)
            else:
                logger.warning("Filename number %d in %s is not a MIDI note", value, filename)

    loop_start = _clamp(loop_start, 0.0, duration)
    loop_end = _clamp(loop_end, loop_start, duration)

    fmt = read_format(data)
    return SampleAsset(
        filename=filename,
        byte_length=len(data),
        sample_rate=sample_rate,
        channels=audio.num_channels,
        duration=duration,
        root_note=midi_note,
        loop_start=loop_start,
        loop_end=loop_end,
        has_loop_data=has_loop_data,
        bit_depth=fmt.bits_per_sample if fmt else None,
    )


def build_smpl_chunk(
    sample_rate: int,
    midi_note: int,
    loop_start: Optional[int] = None,
    loop_end: Optional[int] = None,
) -> bytes:
    """Return a complete ``smpl`` chunk (header included).

    ``loop_start``/``loop_end`` are frame positions; when both are given a
    single forward loop is written.
    """
    has_loop = loop_start is not None and loop_end is not None
    sample_period = int(1e9 / sample_rate) if sample_rate else 0
    body = struct.pack(
        "<9I",
        0,  # manufacturer
        0,  # product
        sample_period,
        midi_note,
        0,  # pitch fraction
        0,  # SMPTE format
        0,  # SMPTE offset
        1 if has_loop else 0,
        0,  # sampler data
    )
    if has_loop:
        body += struct.pack("<6I", 0, 0, loop_start, loop_end, 0, 0)
    return b"smpl" + struct.pack("<I", len(body)) + body


def embed_smpl_chunk(
    data: bytes,
    midi_note: int,
    loop_start: Optional[int] = None,
    loop_end: Optional[int] = None,
) -> bytes:
    """Return ``data`` with its ``smpl`` chunk replaced by a new one.

    The new chunk is appended after the existing chunks and the RIFF size
    field is updated.
    """
    fmt = read_format(data)
    sample_rate = fmt.sample_rate if fmt else 0

    out = bytearray(data[:RIFF_HEADER_SIZE])
    for cid, body, size in iter_chunks(data):
        if cid == b"smpl":
            continue
        end = min(body + size + (size & 1), len(data))
        out += data[body - CHUNK_HEADER_SIZE:end]

    out += build_smpl_chunk(sample_rate, midi_note, loop_start, loop_end)
    struct.pack_into("<I", out, 4, len(out) - 8)
    return bytes(out)
