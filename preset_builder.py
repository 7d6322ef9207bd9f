"""Build OP-XY ``patch.json`` descriptors from processed samples."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from note_utils import NamingError, parse_filename
from preset_templates import (
    DRUM,
    ENGINE_OVERRIDE_KEYS,
    MULTISAMPLER,
    get_template,
)
from sample_processor import ProcessedSample

logger = logging.getLogger(__name__)

MAX_SAMPLES = 24
DRUM_BASE_NOTE = 53
DEFAULT_ROOT_NOTE = 60


@dataclass(frozen=True)
class NoteAssignment:
    """A processed sample and the key it is assigned to.

    ``note`` is an explicit key (drum slot or user choice); ``None`` means the
    sample's root note decides.
    """

    sample: ProcessedSample
    note: Optional[int] = None

    @property
    def root_note(self) -> int:
        if self.note is not None:
            return self.note
        if self.sample.asset.root_note is not None:
            return self.sample.asset.root_note
        return DEFAULT_ROOT_NOTE


def calculate_key_ranges(regions: List[dict]) -> List[dict]:
    """Set ``lokey``/``hikey`` so each region covers halfway to its neighbours.

    Regions are returned sorted by ``pitch.keycenter``; the lowest starts at 0
    and the highest ends at 127. Regions sharing a key center share its range.
    """
    if not regions:
        return []

    sorted_regions = sorted(regions, key=lambda r: r['pitch.keycenter'])
    roots = sorted({r['pitch.keycenter'] for r in sorted_regions})
    ranges = {}
    last = len(roots) - 1
    for i, root in enumerate(roots):
        lokey = 0 if i == 0 else (roots[i - 1] + root) // 2 + 1
        hikey = 127 if i == last else (root + roots[i + 1]) // 2
        ranges[root] = (lokey, hikey)

    for region in sorted_regions:
        region['lokey'], region['hikey'] = ranges[region['pitch.keycenter']]
    return sorted_regions


def _seconds_to_frames(seconds: float, sample: ProcessedSample) -> int:
    frames = int(round(seconds * sample.sample_rate))
    return min(max(frames, 0), sample.frame_count)


def build_multisample_region(sample: ProcessedSample, root_note: int, name: str) -> dict:
    asset = sample.asset
    return {
        'framecount': sample.frame_count,
        'gain': 0,
        'hikey': root_note,
        'lokey': root_note,
        'loop.crossfade': 0,
        'loop.enabled': True,
        'loop.end': _seconds_to_frames(asset.loop_end, sample),
        'loop.onrelease': True,
        'loop.start': _seconds_to_frames(asset.loop_start, sample),
        'pitch.keycenter': root_note,
        'reverse': False,
        'sample': name,
        'sample.end': sample.frame_count,
        'sample.start': 0,
        'tune': 0,
    }


def build_drum_region(sample: ProcessedSample, key: int, name: str) -> dict:
    return {
        'fade.in': 0,
        'fade.out': 0,
        'framecount': sample.frame_count,
        'hikey': key,
        'lokey': key,
        'pan': 0,
        'pitch.keycenter': DEFAULT_ROOT_NOTE,
        'playmode': 'oneshot',
        'reverse': False,
        'sample': name,
        'sample.end': sample.frame_count,
        'sample.start': 0,
        'transpose': 0,
        'tune': 0,
    }


def assemble_preset(
    preset_type: str,
    regions: List[dict],
    engine: Optional[Dict[str, object]] = None,
) -> dict:
    """Merge ``regions`` into a fresh copy of the template for ``preset_type``."""
    preset = get_template(preset_type)
    for key, value in (engine or {}).items():
        if key not in ENGINE_OVERRIDE_KEYS:
            logger.warning("Ignoring unsupported engine setting: %s", key)
            continue
        preset['engine'][key] = value
    preset['regions'] = [dict(region) for region in regions]
    return preset


class PresetBuilder:
    """Collects note assignments for one preset and builds its descriptor.

    Multisampler presets use the samples' root notes and derived key ranges;
    drum presets place each sample on a fixed slot starting at
    ``DRUM_BASE_NOTE``.
    """

    def __init__(self, preset_type: str = MULTISAMPLER, engine: Optional[dict] = None):
        get_template(preset_type)  # validates the type
        self.preset_type = preset_type
        self.engine = dict(engine or {})
        self._slots: List[Optional[NoteAssignment]] = []

    @property
    def assignments(self) -> List[NoteAssignment]:
        return [a for a in self._slots if a is not None]

    def __len__(self) -> int:
        return len(self.assignments)

    def add_sample(self, sample: ProcessedSample, note: Optional[int] = None) -> int:
        """Append ``sample`` and return its slot index."""
        if self.preset_type == DRUM:
            for idx in range(MAX_SAMPLES):
                if idx >= len(self._slots) or self._slots[idx] is None:
                    self.set_slot(idx, sample)
                    return idx
            raise ValueError(f"All {MAX_SAMPLES} drum slots are in use")

        if note is not None and not 0 <= note <= 127:
            raise ValueError(f"MIDI note out of range: {note}")
        if len(self.assignments) >= MAX_SAMPLES:
            raise ValueError(f"A multisample holds at most {MAX_SAMPLES} samples")
        if note is None and sample.asset.root_note is None:
            logger.warning(
                "No root note for %s, using %d", sample.asset.filename, DEFAULT_ROOT_NOTE
            )
        self._slots.append(NoteAssignment(sample, note))
        return len(self._slots) - 1

    def set_slot(self, index: int, sample: ProcessedSample) -> None:
        """Place ``sample`` on drum slot ``index`` (replacing what was there)."""
        if self.preset_type != DRUM:
            raise ValueError("Slots are only used by drum presets")
        if not 0 <= index < MAX_SAMPLES:
            raise ValueError(f"Drum slot out of range: {index}")
        while len(self._slots) <= index:
            self._slots.append(None)
        self._slots[index] = NoteAssignment(sample, DRUM_BASE_NOTE + index)
        logger.debug(
            "Slot %d (key %d) <- %s", index, DRUM_BASE_NOTE + index, sample.asset.filename
        )

    def clear_sample(self, index: int) -> None:
        """Remove the sample at ``index``. Drum slots stay in place."""
        if not 0 <= index < len(self._slots):
            raise IndexError(f"No sample at index {index}")
        if self.preset_type == DRUM:
            self._slots[index] = None
        else:
            del self._slots[index]

    def clear(self) -> None:
        self._slots = []

    def _named_assignments(self) -> List[Tuple[str, NoteAssignment]]:
        """Give every assignment a unique ``.wav`` file name."""
        used = set()
        named = []
        for assignment in self.assignments:
            base = os.path.splitext(assignment.sample.sample_name)[0] or 'sample'
            name = f"{base}.wav"
            counter = 1
            while name.lower() in used:
                counter += 1
                name = f"{base} ({counter}).wav"
            used.add(name.lower())
            named.append((name, assignment))
        return named

    def build_regions(self) -> List[dict]:
        named = self._named_assignments()
        if self.preset_type == DRUM:
            return [build_drum_region(a.sample, a.note, name) for name, a in named]
        regions = [
            build_multisample_region(a.sample, a.root_note, name) for name, a in named
        ]
        return calculate_key_ranges(regions)

    def build(self) -> dict:
        """Return a new descriptor for the current assignments."""
        regions = self.build_regions()
        logger.info("Building %s preset with %d region(s)", self.preset_type, len(regions))
        return assemble_preset(self.preset_type, regions, self.engine)

    def sample_files(self) -> List[Tuple[str, bytes]]:
        """Return ``(file name, wav bytes)`` for every region, in region order."""
        by_name = {name: a.sample.wav_data for name, a in self._named_assignments()}
        return [(region['sample'], by_name[region['sample']]) for region in self.build_regions()]


def default_preset_name(samples: List[ProcessedSample]) -> str:
    """Pick a preset name from the first sample's file name.

    ``Piano C3.wav`` gives ``Piano``; names without a note are used whole.
    """
    for sample in samples:
        try:
            name, _ = parse_filename(sample.asset.filename)
        except NamingError:
            name = os.path.splitext(sample.sample_name)[0]
        name = name.strip()
        if name:
            return name
    return 'preset'
