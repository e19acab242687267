from __future__ import annotations

"""Phase state machine for one learning session.

A session cycles Listening -> Exploring -> Quizzing -> Summarizing. Each
transition is a pure function over `PhaseState`. Calling a phase-specific
transition in the wrong phase raises `InvalidPhaseError`; that is a caller bug,
not a runtime condition to recover from.

Timers (listen interval, explore timeout, quiz feedback pauses) belong to the
caller; nothing here sleeps or schedules.
"""

import random
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

from .models import (
    EXPLORING,
    LISTENING,
    QUIZZING,
    SUMMARIZING,
    ExplorePayload,
    ListenPayload,
    PhaseState,
    QuizPayload,
    QuizResult,
    SummaryPayload,
)


DEFAULT_EXPLORE_MAX_TAPS = 6

RandomSource = Callable[[], float]

_NEXT_PHASE = {
    LISTENING: EXPLORING,
    EXPLORING: QUIZZING,
    QUIZZING: SUMMARIZING,
    SUMMARIZING: LISTENING,
}


class InvalidPhaseError(RuntimeError):
    """A phase-specific transition was called against another phase."""

    def __init__(self, operation: str, expected: str, actual: Optional[str]) -> None:
        super().__init__(f"Cannot {operation} in phase: {actual} (expected {expected})")
        self.operation = operation
        self.expected = expected
        self.actual = actual


@dataclass(frozen=True)
class PhaseStep:
    state: PhaseState
    status: str


@dataclass(frozen=True)
class QuizAnswer:
    state: PhaseState
    correct: bool
    correct_note: str
    status: str


def _require(state: PhaseState, phase: str, operation: str) -> None:
    if state.phase != phase:
        raise InvalidPhaseError(operation, phase, state.phase)


def _pick_uniform(notes: Sequence[str], rng: RandomSource) -> str:
    return notes[min(int(rng() * len(notes)), len(notes) - 1)]


def create_phase_state() -> PhaseState:
    return PhaseState()


# ============ Listening ============


def start_listening(state: PhaseState, notes: Sequence[str]) -> PhaseState:
    """Begin a session by playing through `notes` in order."""
    if not notes:
        raise ValueError("notes must be a non-empty sequence")
    # a new session starts from a clean slate
    return PhaseState(phase=LISTENING, listen=ListenPayload(sequence=tuple(notes)))


def advance_listening(state: PhaseState) -> PhaseStep:
    """Move to the next note; `complete` once the sequence is exhausted."""
    _require(state, LISTENING, "advance listening")
    listen = state.listen
    assert listen is not None
    next_index = listen.index + 1
    complete = next_index >= len(listen.sequence)
    payload = replace(listen, index=listen.index if complete else next_index, complete=complete)
    return PhaseStep(replace(state, listen=payload), "complete" if complete else "playing")


def current_listen_note(state: PhaseState) -> Optional[str]:
    if state.phase != LISTENING or state.listen is None:
        return None
    return state.listen.sequence[state.listen.index]


# ============ Exploring ============


def start_exploring(state: PhaseState, now: Optional[datetime] = None) -> PhaseState:
    started = now if now is not None else datetime.now(timezone.utc)
    return replace(state, phase=EXPLORING, explore=ExplorePayload(tap_count=0, started_at=started))


def record_explore_tap(state: PhaseState, max_taps: int = DEFAULT_EXPLORE_MAX_TAPS) -> PhaseStep:
    _require(state, EXPLORING, "record explore tap")
    explore = state.explore
    assert explore is not None
    taps = explore.tap_count + 1
    complete = taps >= max_taps
    payload = replace(explore, tap_count=taps, complete=complete)
    return PhaseStep(replace(state, explore=payload), "complete" if complete else "exploring")


# ============ Quizzing ============


def start_quizzing(
    state: PhaseState,
    notes: Sequence[str],
    total_rounds: int,
    *,
    rng: RandomSource = random.random,
) -> PhaseState:
    """Enter the quiz with a uniformly chosen first question.

    Callers normally replace the question right away with a weighted pick via
    `set_quiz_question`.
    """
    if not notes:
        raise ValueError("notes must be a non-empty sequence")
    if total_rounds < 1:
        raise ValueError("total_rounds must be at least 1")
    pool = tuple(notes)
    quiz = QuizPayload(
        sequence=pool,
        current_question=_pick_uniform(pool, rng),
        round=1,
        total_rounds=int(total_rounds),
    )
    return replace(state, phase=QUIZZING, quiz=quiz)


def set_quiz_question(state: PhaseState, note: str, instrument: Optional[str] = None) -> PhaseState:
    """Override the current question (and the instrument it is played on)."""
    _require(state, QUIZZING, "set quiz question")
    assert state.quiz is not None
    return replace(state, quiz=replace(state.quiz, current_question=note, current_instrument=instrument))


def answer_quiz(
    state: PhaseState,
    tapped: str,
    *,
    rng: RandomSource = random.random,
) -> QuizAnswer:
    """Grade a tap against the current question and advance the round.

    On the last round the quiz is marked complete; the round counter and the
    question stay where they are.
    """
    _require(state, QUIZZING, "answer quiz")
    quiz = state.quiz
    assert quiz is not None
    question = quiz.current_question
    correct = tapped == question
    results = quiz.results + (QuizResult(round=quiz.round, question=question, answer=tapped, correct=correct),)

    if quiz.round >= quiz.total_rounds:
        payload = replace(quiz, results=results, complete=True)
        status = "complete"
    else:
        payload = replace(
            quiz,
            results=results,
            round=quiz.round + 1,
            current_question=_pick_uniform(quiz.sequence, rng),
        )
        status = "continue"
    return QuizAnswer(replace(state, quiz=payload), correct, question, status)


def current_quiz_question(state: PhaseState) -> Optional[str]:
    if state.phase != QUIZZING or state.quiz is None:
        return None
    return state.quiz.current_question


# ============ Summarizing ============


def start_summarizing(state: PhaseState) -> PhaseState:
    results = state.quiz.results if state.quiz is not None else ()
    correct = sum(1 for r in results if r.correct)
    total = len(results)
    summary = SummaryPayload(
        correct_count=correct,
        total_count=total,
        accuracy=correct / total if total > 0 else 0.0,
        results=results,
        explore_tap_count=state.explore.tap_count if state.explore is not None else 0,
    )
    return replace(state, phase=SUMMARIZING, summary=summary)


def session_results(state: PhaseState) -> Optional[SummaryPayload]:
    if state.phase != SUMMARIZING:
        return None
    return state.summary


# ============ Queries ============


def is_phase_complete(state: PhaseState) -> bool:
    if state.phase == LISTENING:
        return bool(state.listen and state.listen.complete)
    if state.phase == EXPLORING:
        return bool(state.explore and state.explore.complete)
    if state.phase == QUIZZING:
        return bool(state.quiz and state.quiz.complete)
    if state.phase == SUMMARIZING:
        # ready to restart
        return True
    return False


def next_phase(phase: Optional[str]) -> str:
    return _NEXT_PHASE.get(phase, LISTENING) if phase is not None else LISTENING
