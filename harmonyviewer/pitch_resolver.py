"""Pitch resolver: map notehead handles to MIDI note numbers via toolkit lookups."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any, Protocol

from harmonyviewer.score_models import NoteHead

logger = logging.getLogger(__name__)

# ── MIDI constants ──────────────────────────────────────────────────────────
SEMITONES_PER_OCTAVE = 12
MIDI_MIN = 0
MIDI_MAX = 127

#: Natural pitch classes by letter name.
PITCH_CLASSES: dict[str, int] = {"C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11}

#: Semitone offsets for MEI accidental values (written or gestural).
ACCIDENTAL_OFFSETS: dict[str, int] = {"s": 1, "f": -1, "ss": 2, "x": 2, "ff": -2, "n": 0}


class AttributeLookup(Protocol):
    """Anything that can report toolkit attributes for an element id."""

    def element_attr(self, element_id: str) -> dict[str, Any]: ...


def pitch_class_to_midi(pitch_class: int, octave: int) -> int:
    """
    Convert a pitch class (0-11) and an octave number to an absolute MIDI note.

    MIDI octave numbering: C-1 = 0, C0 = 12, C1 = 24, ... C4 (Middle C) = 60.
    """
    return (octave + 1) * SEMITONES_PER_OCTAVE + pitch_class


def pitch_code(pname: str, octave: int | str, accidental: str | None = None) -> int:
    """
    Return the MIDI note number for a pitch-class letter and octave.

    ``pitch_code("c", 4) == 60`` and ``pitch_code("b", 3) == 59``.

    Raises:
        ValueError: If the letter, octave or accidental is invalid, or the
                    result falls outside 0-127.
    """
    letter = str(pname).strip().upper()
    if letter not in PITCH_CLASSES:
        raise ValueError(f"Unknown pitch name: {pname!r}")

    code = pitch_class_to_midi(PITCH_CLASSES[letter], int(octave))
    if accidental:
        if accidental not in ACCIDENTAL_OFFSETS:
            raise ValueError(f"Unknown accidental: {accidental!r}")
        code += ACCIDENTAL_OFFSETS[accidental]

    if not MIDI_MIN <= code <= MIDI_MAX:
        raise ValueError(f"Pitch out of MIDI range: {code}")
    return code


def _attr_pitch(attrs: dict[str, Any]) -> int:
    accidental = attrs.get("accid.ges") or attrs.get("accid")
    return pitch_code(attrs["pname"], attrs["oct"], accidental)


def resolve_pitches(noteheads: Iterable[NoteHead], toolkit: AttributeLookup) -> tuple[int, ...]:
    """
    Resolve a step's noteheads to a sorted, de-duplicated tuple of pitch codes.

    Elements without an id or whose attributes are missing/invalid are
    skipped; a step may legitimately resolve to no pitches at all.
    """
    pitches: set[int] = set()
    for head in noteheads:
        if not head.note_id:
            logger.debug("Notehead without owning note id; skipping")
            continue
        attrs = toolkit.element_attr(head.note_id)
        try:
            pitches.add(_attr_pitch(attrs))
        except (KeyError, TypeError, ValueError) as exc:
            logger.debug("Unresolvable pitch for %s: %s", head.note_id, exc)
    return tuple(sorted(pitches))
