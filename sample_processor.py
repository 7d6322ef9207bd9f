"""Turn raw sample files into canonical WAV data plus metadata."""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from audio_io import AudioDecoder
from note_utils import sanitize_name
from pcm_encoder import HEADER_LENGTH, audio_buffer_to_wav
from wav_metadata import SampleAsset, embed_smpl_chunk, read_wav_metadata

logger = logging.getLogger(__name__)

AUDIO_EXTS = ('.wav', '.aif', '.aiff', '.flac', '.ogg')


@dataclass(frozen=True)
class ProcessedSample:
    asset: SampleAsset
    wav_data: bytes
    sample_rate: int
    frame_count: int

    @property
    def sample_name(self) -> str:
        """File name used for the sample inside a preset."""
        base = sanitize_name(os.path.splitext(os.path.basename(self.asset.filename))[0])
        return f"{base.strip() or 'sample'}.wav"


@dataclass
class BatchResult:
    processed: List[ProcessedSample] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


def process_sample(
    filename: str,
    data: bytes,
    decoder: AudioDecoder,
    sample_rate: int = 0,
    channels: int = 0,
    embed_metadata: bool = False,
) -> ProcessedSample:
    """Decode ``data``, read its metadata and encode it as 16-bit PCM WAV.

    ``sample_rate``/``channels`` of 0 keep the decoded values. With
    ``embed_metadata`` the root note and loop are written to a ``smpl`` chunk
    after the canonical header.
    """
    audio = decoder.decode(data)
    asset = read_wav_metadata(filename, data, audio)

    target_rate = sample_rate or audio.sample_rate
    target_channels = channels or audio.num_channels
    if target_rate != audio.sample_rate or target_channels != audio.num_channels:
        logger.info(
            "Rendering %s: %d Hz/%d ch -> %d Hz/%d ch",
            filename, audio.sample_rate, audio.num_channels, target_rate, target_channels,
        )
        audio = decoder.render(audio, target_rate, target_channels)

    wav_data = audio_buffer_to_wav(audio)
    frame_count = (len(wav_data) - HEADER_LENGTH) // (audio.num_channels * 2)

    if embed_metadata and asset.root_note is not None:
        loop = (None, None)
        if asset.has_loop_data:
            loop = (
                int(round(asset.loop_start * audio.sample_rate)),
                int(round(asset.loop_end * audio.sample_rate)),
            )
        wav_data = embed_smpl_chunk(wav_data, asset.root_note, *loop)

    logger.info(
        "Processed %s: root note %s, loop %.3f-%.3f s%s",
        filename,
        asset.root_note if asset.root_note is not None else "unknown",
        asset.loop_start,
        asset.loop_end,
        "" if asset.has_loop_data else " (default)",
    )
    return ProcessedSample(asset, wav_data, audio.sample_rate, frame_count)


def process_batch(
    files: Iterable[Tuple[str, bytes]],
    decoder: AudioDecoder,
    sample_rate: int = 0,
    channels: int = 0,
    embed_metadata: bool = False,
    max_workers: Optional[int] = None,
) -> BatchResult:
    """Process several files in parallel.

    Returns once every file is done; results keep the input order and files
    that failed are listed in ``failed`` instead.
    """
    files = list(files)
    result = BatchResult()
    if not files:
        return result

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = [
            (name, pool.submit(process_sample, name, data, decoder,
                               sample_rate, channels, embed_metadata))
            for name, data in files
        ]
        for name, future in futures:
            try:
                result.processed.append(future.result())
            except Exception as exc:
                logger.error("Failed to process %s: %s", name, exc)
                result.failed.append((name, str(exc)))

    logger.info("Processed %d file(s), %d failed", len(result.processed), len(result.failed))
    return result


def load_folder(folder: str, recursive: bool = False) -> List[Tuple[str, bytes]]:
    """Read every audio file in ``folder`` as ``(filename, bytes)``, sorted by name."""
    paths = []
    for root, dirs, names in os.walk(folder):
        dirs.sort()
        for name in names:
            if name.startswith('.') or os.path.splitext(name)[1].lower() not in AUDIO_EXTS:
                continue
            paths.append(os.path.join(root, name))
        if not recursive:
            break

    files = []
    for path in sorted(paths):
        with open(path, 'rb') as f:
            files.append((os.path.basename(path), f.read()))
    return files
