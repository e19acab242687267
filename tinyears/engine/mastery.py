from __future__ import annotations

"""Mastery tracker: per-note statistics, mastery, and curriculum growth.

Every function is pure. State goes in, a new `ProgressState` comes out, and
progress dicts for untouched notes are shared between the old and new values.

Adaptive loop in one paragraph: each answer lands in a bounded window of the
last 10 results for that note/instrument. A combination is mastered when the
window is at least 80% correct and the current streak is at least 3. When every
active note is mastered on every instrument it is eligible for, the next note
from the introduction order is promoted. When any active combination falls
below 50%, the most recently promoted note is demoted (its history is kept).
"""

import random
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..theory.notes import INSTRUMENTS, NOTE_INTRODUCTION_ORDER
from .models import NoteProgress, ProgressState


RandomSource = Callable[[], float]


class NoActiveNotesError(ValueError):
    """Weighted selection was asked to pick from an empty active set."""


@dataclass(frozen=True)
class MasteryThresholds:
    promotion_accuracy: float = 0.8
    promotion_streak: int = 3
    demotion_accuracy: float = 0.5
    rolling_window: int = 10
    max_active_notes: int = 6
    min_active_notes: int = 2
    newest_instrument_probability: float = 0.6
    # floor so mastered notes still recur occasionally
    min_selection_weight: float = 0.1


@dataclass(frozen=True)
class Curriculum:
    introduction_order: Tuple[str, ...] = tuple(NOTE_INTRODUCTION_ORDER)
    instruments: Tuple[str, ...] = tuple(INSTRUMENTS)
    thresholds: MasteryThresholds = field(default_factory=MasteryThresholds)


DEFAULT_CURRICULUM = Curriculum()


@dataclass(frozen=True)
class PromotionCheck:
    should_promote: bool
    next_note: Optional[str] = None


@dataclass(frozen=True)
class DemotionCheck:
    should_demote: bool
    note_to_remove: Optional[str] = None


@dataclass(frozen=True)
class DifficultyChange:
    state: ProgressState
    promoted: Optional[str] = None
    demoted: Optional[str] = None


def create_initial_state(curriculum: Curriculum = DEFAULT_CURRICULUM) -> ProgressState:
    """Fresh state: first two introduction notes active on the first instrument."""
    notes = tuple(curriculum.introduction_order[:2])
    instruments = tuple(curriculum.instruments[:1])
    return ProgressState(
        note_progress={note: {inst: NoteProgress() for inst in instruments} for note in notes},
        active_notes=notes,
        active_instruments=instruments,
        current_stage=1,
        sessions_played=0,
        introduced_combos=frozenset(),
    )


def record_answer(
    state: ProgressState,
    note: str,
    instrument: str,
    was_correct: bool,
    *,
    curriculum: Curriculum = DEFAULT_CURRICULUM,
) -> ProgressState:
    """Record one answer for a note/instrument and return the updated state."""
    previous = state.progress_for(note, instrument)
    window = curriculum.thresholds.rolling_window
    recent = (previous.recent_results + (bool(was_correct),))[-window:]
    updated = NoteProgress(
        attempts=previous.attempts + 1,
        correct=previous.correct + (1 if was_correct else 0),
        streak=previous.streak + 1 if was_correct else 0,
        recent_results=recent,
    )
    per_instrument = {**state.note_progress.get(note, {}), instrument: updated}
    return replace(state, note_progress={**state.note_progress, note: per_instrument})


def rolling_accuracy(progress: NoteProgress) -> float:
    """Fraction of correct answers in the rolling window (0 when empty)."""
    results = progress.recent_results
    if not results:
        return 0.0
    return sum(1 for r in results if r) / len(results)


def is_mastered(progress: NoteProgress, *, curriculum: Curriculum = DEFAULT_CURRICULUM) -> bool:
    th = curriculum.thresholds
    return rolling_accuracy(progress) >= th.promotion_accuracy and progress.streak >= th.promotion_streak


# ============ Instrument progression ============


def eligible_instruments(
    state: ProgressState, note: str, *, curriculum: Curriculum = DEFAULT_CURRICULUM
) -> List[str]:
    """Instruments a note may be quizzed on.

    The first instrument is always eligible. Each following instrument is
    unlocked only by mastery on the one before it; the scan stops at the first
    instrument that is not mastered, so no instrument is ever skipped.
    """
    instruments = curriculum.instruments
    if not instruments:
        return []
    eligible = [instruments[0]]
    for previous, candidate in zip(instruments, instruments[1:]):
        if not is_mastered(state.progress_for(note, previous), curriculum=curriculum):
            break
        eligible.append(candidate)
    return eligible


def select_quiz_instrument(
    state: ProgressState,
    note: str,
    *,
    rng: RandomSource = random.random,
    curriculum: Curriculum = DEFAULT_CURRICULUM,
) -> str:
    """Pick the timbre for a question: usually the newest eligible instrument."""
    eligible = eligible_instruments(state, note, curriculum=curriculum)
    if len(eligible) == 1:
        return eligible[0]
    newest = eligible[-1]
    mastered = eligible[:-1]
    if rng() < curriculum.thresholds.newest_instrument_probability:
        return newest
    return mastered[min(int(rng() * len(mastered)), len(mastered) - 1)]


# ============ Question selection ============


def selection_weights(
    state: ProgressState, instrument: str, *, curriculum: Curriculum = DEFAULT_CURRICULUM
) -> List[float]:
    """Per-active-note weights: 1.0 for untested notes, else 1 - accuracy (floored)."""
    floor = curriculum.thresholds.min_selection_weight
    weights: List[float] = []
    for note in state.active_notes:
        progress = state.progress_for(note, instrument)
        if progress.attempts == 0:
            weights.append(1.0)
        else:
            weights.append(max(floor, 1.0 - rolling_accuracy(progress)))
    return weights


def weighted_note_selection(
    state: ProgressState,
    instrument: Optional[str] = None,
    *,
    rng: RandomSource = random.random,
    curriculum: Curriculum = DEFAULT_CURRICULUM,
) -> str:
    """Draw the next question note, favouring weaker notes.

    Raises:
        NoActiveNotesError: if there are no active notes.
    """
    notes = state.active_notes
    if not notes:
        raise NoActiveNotesError("No active notes to select from")
    if len(notes) == 1:
        return notes[0]
    if instrument is None:
        instrument = curriculum.instruments[0]

    weights = selection_weights(state, instrument, curriculum=curriculum)
    remaining = rng() * sum(weights)
    for note, weight in zip(notes, weights):
        remaining -= weight
        if remaining <= 0:
            return note
    return notes[-1]


# ============ Summaries ============


def note_overall_accuracy(state: ProgressState, note: str) -> float:
    """Mean rolling accuracy of a note over the active instruments it has records for."""
    per_instrument = state.note_progress.get(note)
    if not per_instrument:
        return 0.0
    values = [rolling_accuracy(per_instrument[i]) for i in state.active_instruments if i in per_instrument]
    return sum(values) / len(values) if values else 0.0


def increment_sessions(state: ProgressState) -> ProgressState:
    return replace(state, sessions_played=state.sessions_played + 1)


# ============ Promotion ============


def _all_active_mastered(state: ProgressState, curriculum: Curriculum) -> bool:
    for note in state.active_notes:
        for instrument in eligible_instruments(state, note, curriculum=curriculum):
            if not state.has_progress(note, instrument):
                return False
            if not is_mastered(state.progress_for(note, instrument), curriculum=curriculum):
                return False
    return True


def check_promotion(state: ProgressState, *, curriculum: Curriculum = DEFAULT_CURRICULUM) -> PromotionCheck:
    """Whether the next note from the introduction order should be added."""
    if len(state.active_notes) >= curriculum.thresholds.max_active_notes:
        return PromotionCheck(False)

    next_note = next((n for n in curriculum.introduction_order if n not in state.active_notes), None)
    if next_note is None:
        return PromotionCheck(False)

    if not _all_active_mastered(state, curriculum):
        return PromotionCheck(False)
    return PromotionCheck(True, next_note)


def apply_promotion(state: ProgressState, *, curriculum: Curriculum = DEFAULT_CURRICULUM) -> ProgressState:
    check = check_promotion(state, curriculum=curriculum)
    if not check.should_promote or check.next_note is None:
        return state

    note = check.next_note
    # a previously demoted note keeps its history
    per_instrument: Dict[str, NoteProgress] = dict(state.note_progress.get(note, {}))
    for instrument in state.active_instruments:
        per_instrument.setdefault(instrument, NoteProgress())

    return replace(
        state,
        active_notes=state.active_notes + (note,),
        note_progress={**state.note_progress, note: per_instrument},
        current_stage=state.current_stage + 1,
    )


# ============ Demotion ============


def check_demotion(state: ProgressState, *, curriculum: Curriculum = DEFAULT_CURRICULUM) -> DemotionCheck:
    """Whether the growth frontier should be peeled back.

    Any active note/instrument with results and accuracy below the demotion
    threshold triggers removal of the last active note, whichever note failed.
    """
    th = curriculum.thresholds
    if len(state.active_notes) <= th.min_active_notes:
        return DemotionCheck(False)

    struggling = any(
        state.progress_for(note, inst).recent_results
        and rolling_accuracy(state.progress_for(note, inst)) < th.demotion_accuracy
        for note in state.active_notes
        for inst in state.active_instruments
    )
    if not struggling:
        return DemotionCheck(False)
    return DemotionCheck(True, state.active_notes[-1])


def apply_demotion(
    state: ProgressState, note_to_remove: str, *, curriculum: Curriculum = DEFAULT_CURRICULUM
) -> ProgressState:
    """Drop a note from the active set; its progress stays for re-promotion."""
    if len(state.active_notes) <= curriculum.thresholds.min_active_notes:
        return state
    if note_to_remove not in state.active_notes:
        return state
    return replace(
        state,
        active_notes=tuple(n for n in state.active_notes if n != note_to_remove),
        current_stage=max(1, state.current_stage - 1),
    )


# ============ Adaptive step ============


def apply_adaptive_difficulty(state: ProgressState, *, curriculum: Curriculum = DEFAULT_CURRICULUM) -> ProgressState:
    """Promote if possible, otherwise demote if needed, otherwise no change.

    Promotion short-circuits; a demotion condition that appears after a
    promotion is left for the next evaluation.
    """
    return evaluate_session(state, curriculum=curriculum).state


def evaluate_session(state: ProgressState, *, curriculum: Curriculum = DEFAULT_CURRICULUM) -> DifficultyChange:
    """Adaptive step that also reports which note entered or left the set."""
    promotion = check_promotion(state, curriculum=curriculum)
    if promotion.should_promote:
        return DifficultyChange(apply_promotion(state, curriculum=curriculum), promoted=promotion.next_note)

    demotion = check_demotion(state, curriculum=curriculum)
    if demotion.should_demote and demotion.note_to_remove is not None:
        new_state = apply_demotion(state, demotion.note_to_remove, curriculum=curriculum)
        if new_state is not state:
            return DifficultyChange(new_state, demoted=demotion.note_to_remove)
    return DifficultyChange(state)


# ============ First-encounter hints ============


def is_combo_introduced(state: ProgressState, note: str, instrument: str) -> bool:
    return (note, instrument) in state.introduced_combos


def mark_combo_introduced(state: ProgressState, note: str, instrument: str) -> ProgressState:
    if is_combo_introduced(state, note, instrument):
        return state
    return replace(state, introduced_combos=state.introduced_combos | {(note, instrument)})


def mastery_table(
    state: ProgressState, notes: Optional[Sequence[str]] = None, *, curriculum: Curriculum = DEFAULT_CURRICULUM
) -> List[Dict[str, object]]:
    """Flat rows of note/instrument progress, for display and export."""
    rows: List[Dict[str, object]] = []
    for note in notes if notes is not None else state.active_notes:
        for instrument, progress in state.note_progress.get(note, {}).items():
            rows.append(
                {
                    "note": note,
                    "instrument": instrument,
                    "attempts": progress.attempts,
                    "correct": progress.correct,
                    "streak": progress.streak,
                    "accuracy": rolling_accuracy(progress),
                    "mastered": is_mastered(progress, curriculum=curriculum),
                }
            )
    return rows
