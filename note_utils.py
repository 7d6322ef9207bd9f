"""Note name and MIDI number helpers used when mapping samples to keys."""

from __future__ import annotations

import logging
import os
import re
from typing import Tuple

logger = logging.getLogger(__name__)

# MIDI value of each letter at octave 0, in the OP-XY convention (C3 = 60).
NOTE_OFFSET = [33, 35, 24, 26, 28, 29, 31]  # A, B, C, D, E, F, G
NOTE_NAMES = ['C', 'C#', 'D', 'D#', 'E', 'F', 'F#', 'G', 'G#', 'A', 'A#', 'B']

NOTE_TOKEN_RE = re.compile(r"^[A-G](?:b|#)?\d$", re.IGNORECASE)
FILENAME_RE = re.compile(r"(.+?)[\s\-]*([A-G](?:b|#)?\d|\d{1,3})$", re.IGNORECASE)
_INVALID_NAME_CHARS = re.compile(r"[^a-zA-Z0-9 #\-().]+")
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class NoteFormatError(ValueError):
    """Raised when a note token such as ``C#3`` cannot be parsed."""


class NamingError(ValueError):
    """Raised when a filename carries no trailing note or number."""


def sanitize_name(name: str) -> str:
    """Remove every character that is not allowed in preset and sample names."""
    return _INVALID_NAME_CHARS.sub("", name)


def note_string_to_midi_value(note: str) -> int:
    """Convert a note name such as ``C3``, ``F#2`` or ``Eb4`` to a MIDI value.

    The letter is case-insensitive, ``#`` raises and ``b`` lowers the note by
    one semitone. ``C3`` is 60.
    """

    string = note.replace(" ", "", 1)
    if len(string) < 2:
        raise NoteFormatError(f"Bad note format: {note!r}")

    note_idx = ord(string[0].upper()) - ord("A")
    if note_idx < 0 or note_idx > 6:
        raise NoteFormatError(f"Bad note: {note!r}")

    sharpen = 0
    if string[1] == "#":
        sharpen = 1
    elif string[1].lower() == "b":
        sharpen = -1

    m = _LEADING_INT.match(string[1 + abs(sharpen):])
    if not m:
        raise NoteFormatError(f"Missing octave in note: {note!r}")
    return int(m.group(1)) * 12 + NOTE_OFFSET[note_idx] + sharpen


def midi_note_to_string(value: int) -> str:
    """Convert a MIDI value to a note name (e.g. ``60 -> 'C3'``).

    Sharps are always used, so ``Eb3`` comes back as ``D#3``.
    """
    if value < 0:
        raise ValueError(f"MIDI value must not be negative: {value}")
    return f"{NOTE_NAMES[value % 12]}{value // 12 - 2}"


def parse_filename(filename: str) -> Tuple[str, int]:
    """Return ``(base_name, midi_value)`` parsed from ``filename``.

    The name must end with a note (``Piano C3.wav``) or a 1-3 digit number
    (``Tom 07.wav``). A note is tried first; numbers are returned as they are,
    without checking the MIDI range.
    """
    name_without_ext = os.path.splitext(os.path.basename(filename))[0]
    m = FILENAME_RE.search(name_without_ext)
    if not m:
        raise NamingError(f"Filename '{filename}' does not match the expected pattern.")

    base_name = sanitize_name(m.group(1))
    note_or_number = m.group(2)
    if NOTE_TOKEN_RE.match(note_or_number):
        value = note_string_to_midi_value(note_or_number)
    else:
        value = int(note_or_number, 10)
    logger.debug("Parsed %s -> base %r, note %s", filename, base_name, value)
    return base_name, value
