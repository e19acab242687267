"""Pure game logic: the mastery tracker and the session phase machine."""

from .models import (  # noqa: F401
    EXPLORING,
    LISTENING,
    PHASES,
    QUIZZING,
    SUMMARIZING,
    NoteProgress,
    PhaseState,
    ProgressState,
)
from .mastery import (  # noqa: F401
    DEFAULT_CURRICULUM,
    Curriculum,
    MasteryThresholds,
    NoActiveNotesError,
)
from .phases import InvalidPhaseError  # noqa: F401
