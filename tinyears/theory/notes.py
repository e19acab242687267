from __future__ import annotations

"""Note table, introduction order, and instrument progression.

Covers the chromatic octave C4..B4 that the game circles are drawn from,
plus pitch helpers for mapping note strings to MIDI.
"""

from dataclasses import dataclass
from typing import Dict, List


@dataclass(frozen=True)
class NoteConfig:
    frequency: float
    color: str
    label: str


NOTE_CONFIGS: Dict[str, NoteConfig] = {
    "C4": NoteConfig(261.63, "#FF4444", "C"),
    "C#4": NoteConfig(277.18, "#FF6B44", "C#"),
    "D4": NoteConfig(293.66, "#FF9544", "D"),
    "Eb4": NoteConfig(311.13, "#FFB844", "Eb"),
    "E4": NoteConfig(329.63, "#FFD644", "E"),
    "F4": NoteConfig(349.23, "#44DD88", "F"),
    "F#4": NoteConfig(369.99, "#44DDBB", "F#"),
    "G4": NoteConfig(392.0, "#4488FF", "G"),
    "Ab4": NoteConfig(415.3, "#7744FF", "Ab"),
    "A4": NoteConfig(440.0, "#9944FF", "A"),
    "Bb4": NoteConfig(466.16, "#CC44FF", "Bb"),
    "B4": NoteConfig(493.88, "#FF44CC", "B"),
}

# Widest intervals first, then fill the gaps; accidentals last.
NOTE_INTRODUCTION_ORDER: List[str] = [
    "C4",
    "G4",
    "E4",
    "A4",
    "D4",
    "F4",
    "B4",
    "Bb4",
    "F#4",
    "Eb4",
    "C#4",
    "Ab4",
]

# Piano first (most familiar), then pitched percussion, then strings.
INSTRUMENTS: List[str] = ["piano", "xylophone", "guitar-acoustic"]


PITCH_CLASS_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

_ENHARMONIC: Dict[str, str] = {
    "Db": "C#",
    "Eb": "D#",
    "Gb": "F#",
    "Ab": "G#",
    "Bb": "A#",
    "B#": "C",
    "E#": "F",
    "Cb": "B",
    "Fb": "E",
}

# spellings that cross the octave boundary: B#4 is C5, Cb4 is B3
_OCTAVE_SHIFT: Dict[str, int] = {"B#": 1, "Cb": -1}


def _normalize_name(name: str) -> str:
    return _ENHARMONIC.get(name, name)


def note_name_to_midi(name: str, octave: int) -> int:
    """Convert note name and octave to MIDI number (C4 = 60)."""
    norm = _normalize_name(name)
    if norm not in PITCH_CLASS_NAMES:
        raise ValueError(f"Unsupported note name: {name}")
    octave += _OCTAVE_SHIFT.get(name, 0)
    midi = (octave + 1) * 12 + PITCH_CLASS_NAMES.index(norm)
    if midi < 0 or midi > 127:
        raise ValueError("MIDI out of range")
    return midi


def note_str_to_midi(note: str) -> int:
    """Parse a note string like 'C4', 'Eb4', 'F#4' into a MIDI number."""
    if not note or len(note) < 2:
        raise ValueError(f"Invalid note string: {note}")
    name = note[0].upper()
    idx = 1
    if note[idx] in ("#", "b"):
        name += note[idx]
        idx += 1
    try:
        octave = int(note[idx:])
    except ValueError as e:
        raise ValueError(f"Invalid octave in note string: {note}") from e
    return note_name_to_midi(name, octave)


def note_label(note: str) -> str:
    """Short display label for a note ('Eb4' -> 'Eb'); unknown notes pass through."""
    cfg = NOTE_CONFIGS.get(note)
    return cfg.label if cfg is not None else note
