"""tinyears package initialization.

Adaptive note-recognition engine for a toddler music game: a mastery tracker
that grows and shrinks the active note set, and a session phase machine.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .engine.models import NoteProgress, PhaseState, ProgressState  # noqa: E402
from .engine.mastery import Curriculum, MasteryThresholds, create_initial_state  # noqa: E402
from .engine.phases import InvalidPhaseError  # noqa: E402

__all__ = [
    "__version__",
    "Curriculum",
    "InvalidPhaseError",
    "MasteryThresholds",
    "NoteProgress",
    "PhaseState",
    "ProgressState",
    "create_initial_state",
]
