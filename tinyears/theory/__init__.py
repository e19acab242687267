from .notes import (
    INSTRUMENTS,
    NOTE_CONFIGS,
    NOTE_INTRODUCTION_ORDER,
    note_label,
    note_str_to_midi,
)

__all__ = [
    "INSTRUMENTS",
    "NOTE_CONFIGS",
    "NOTE_INTRODUCTION_ORDER",
    "note_label",
    "note_str_to_midi",
]
