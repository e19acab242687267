from __future__ import annotations

"""Immutable state values shared by the mastery tracker and phase machine.

Both machines take one of these snapshots and return a new one; nothing here
is ever mutated in place. `ProgressState` round-trips through plain JSON so the
progress store can persist it without knowing its shape.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, FrozenSet, Optional, Tuple


LISTENING = "listening"
EXPLORING = "exploring"
QUIZZING = "quizzing"
SUMMARIZING = "summarizing"

PHASES: Tuple[str, ...] = (LISTENING, EXPLORING, QUIZZING, SUMMARIZING)


@dataclass(frozen=True)
class NoteProgress:
    """Performance record for one note on one instrument."""

    attempts: int = 0
    correct: int = 0
    streak: int = 0
    # oldest first, capped at the rolling window
    recent_results: Tuple[bool, ...] = ()

    def to_json(self) -> Dict[str, Any]:
        return {
            "attempts": self.attempts,
            "correct": self.correct,
            "streak": self.streak,
            "recent_results": list(self.recent_results),
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "NoteProgress":
        return cls(
            attempts=int(data.get("attempts", 0)),
            correct=int(data.get("correct", 0)),
            streak=int(data.get("streak", 0)),
            recent_results=tuple(bool(r) for r in data.get("recent_results", [])),
        )


EMPTY_PROGRESS = NoteProgress()


@dataclass(frozen=True)
class ProgressState:
    """Learner progress across notes and instruments.

    `note_progress` maps note -> instrument -> NoteProgress. `active_notes` is
    ordered by introduction: the last entry is the most recently promoted note.
    """

    note_progress: Dict[str, Dict[str, NoteProgress]] = field(default_factory=dict)
    active_notes: Tuple[str, ...] = ()
    active_instruments: Tuple[str, ...] = ()
    current_stage: int = 1
    sessions_played: int = 0
    introduced_combos: FrozenSet[Tuple[str, str]] = frozenset()

    def progress_for(self, note: str, instrument: str) -> NoteProgress:
        """Stored progress for a combination, or a zeroed record when absent."""
        return self.note_progress.get(note, {}).get(instrument, EMPTY_PROGRESS)

    def has_progress(self, note: str, instrument: str) -> bool:
        return instrument in self.note_progress.get(note, {})

    def to_json(self) -> Dict[str, Any]:
        return {
            "note_progress": {
                note: {inst: p.to_json() for inst, p in per_inst.items()}
                for note, per_inst in self.note_progress.items()
            },
            "active_notes": list(self.active_notes),
            "active_instruments": list(self.active_instruments),
            "current_stage": self.current_stage,
            "sessions_played": self.sessions_played,
            "introduced_combos": [list(c) for c in sorted(self.introduced_combos)],
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "ProgressState":
        note_progress = {
            str(note): {str(inst): NoteProgress.from_json(p) for inst, p in (per_inst or {}).items()}
            for note, per_inst in (data.get("note_progress") or {}).items()
        }
        combos = frozenset((str(c[0]), str(c[1])) for c in data.get("introduced_combos", []) or [])
        return cls(
            note_progress=note_progress,
            active_notes=tuple(str(n) for n in data.get("active_notes", [])),
            active_instruments=tuple(str(i) for i in data.get("active_instruments", [])),
            current_stage=max(1, int(data.get("current_stage", 1))),
            sessions_played=max(0, int(data.get("sessions_played", 0))),
            introduced_combos=combos,
        )


# --- Phase payloads ---


@dataclass(frozen=True)
class ListenPayload:
    sequence: Tuple[str, ...]
    index: int = 0
    complete: bool = False


@dataclass(frozen=True)
class ExplorePayload:
    tap_count: int
    started_at: datetime
    complete: bool = False


@dataclass(frozen=True)
class QuizResult:
    round: int
    question: str
    answer: str
    correct: bool

    def to_json(self) -> Dict[str, Any]:
        return {"round": self.round, "question": self.question, "answer": self.answer, "correct": self.correct}


@dataclass(frozen=True)
class QuizPayload:
    # eligible pool, not the realized question order
    sequence: Tuple[str, ...]
    current_question: str
    round: int
    total_rounds: int
    results: Tuple[QuizResult, ...] = ()
    complete: bool = False
    current_instrument: Optional[str] = None


@dataclass(frozen=True)
class SummaryPayload:
    correct_count: int
    total_count: int
    accuracy: float
    results: Tuple[QuizResult, ...]
    explore_tap_count: int


@dataclass(frozen=True)
class PhaseState:
    """One session's phase and its per-phase payloads.

    `phase is None` means uninitialized. Payloads of earlier phases in the same
    session are kept so the summary can read quiz results and explore taps.
    """

    phase: Optional[str] = None
    listen: Optional[ListenPayload] = None
    explore: Optional[ExplorePayload] = None
    quiz: Optional[QuizPayload] = None
    summary: Optional[SummaryPayload] = None
