from __future__ import annotations

"""Game session: drives the phase machine and mastery tracker together.

This is the caller the engine expects. It owns both state snapshots, forwards
note/instrument picks to the audio player, and persists progress at the end
of each quiz. It never sleeps; timers are the front end's job, and the delays
they should use are exposed via `timings`.
"""

import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import uuid4

from ..audio.synthesis import AudioPlayer
from ..engine import mastery, phases
from ..engine.mastery import DEFAULT_CURRICULUM, Curriculum, RandomSource
from ..engine.models import EXPLORING, LISTENING, QUIZZING, SUMMARIZING, PhaseState, ProgressState, SummaryPayload
from ..storage.history import append_session_rows, rows_from_results
from ..storage.store import ProgressStore
from .events import EventBus
from .explain import trace as xtrace


@dataclass(frozen=True)
class SessionTimings:
    quiz_rounds: int = 5
    explore_max_taps: int = 6
    explore_timeout_ms: int = 15000
    listen_interval_ms: int = 1500
    correct_feedback_ms: int = 800
    incorrect_feedback_ms: int = 1200
    question_pause_ms: int = 1000
    promotion_message_ms: int = 2500

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "SessionTimings":
        s = cfg.get("session", {})
        defaults = cls()
        return cls(**{k: int(s.get(k, getattr(defaults, k))) for k in defaults.__dataclass_fields__})


@dataclass(frozen=True)
class TapOutcome:
    """What a tap did, for the front end to render feedback."""

    phase: Optional[str]
    note: str
    played: bool = False
    correct: Optional[bool] = None
    correct_note: Optional[str] = None
    instrument: Optional[str] = None
    quiz_complete: bool = False
    feedback_ms: int = 0


@dataclass
class RuntimeState:
    session_id: str = field(default_factory=lambda: str(uuid4()))
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    # instrument each answered question was played on, parallel to quiz results
    answered_instruments: List[Optional[str]] = field(default_factory=list)


class GameSession:
    def __init__(
        self,
        player: AudioPlayer,
        *,
        store: Optional[ProgressStore] = None,
        history_dir: Optional[Path] = None,
        curriculum: Curriculum = DEFAULT_CURRICULUM,
        timings: Optional[SessionTimings] = None,
        rng: RandomSource = random.random,
        events: Optional[EventBus] = None,
    ) -> None:
        self.player = player
        self.store = store
        self.history_dir = Path(history_dir) if history_dir is not None else None
        self.curriculum = curriculum
        self.timings = timings or SessionTimings()
        self.rng = rng
        self.events = events or EventBus()

        loaded = store.load() if store is not None else None
        self.progress: ProgressState = loaded or mastery.create_initial_state(curriculum)
        self.game: PhaseState = phases.create_phase_state()
        self.runtime = RuntimeState()
        self.last_change: Optional[mastery.DifficultyChange] = None

    # ---- helpers ----

    @property
    def phase(self) -> Optional[str]:
        return self.game.phase

    @property
    def active_notes(self) -> tuple:
        return self.progress.active_notes

    @property
    def base_instrument(self) -> str:
        return self.curriculum.instruments[0]

    def _set_game(self, state: PhaseState) -> None:
        changed = state.phase != self.game.phase
        self.game = state
        if changed:
            xtrace("phase_changed", {"phase": state.phase})
            self.events.emit("phase_changed", {"phase": state.phase})

    # ---- lifecycle ----

    def start(self) -> Optional[str]:
        """Begin a session with Listening; returns the first note played."""
        self.runtime = RuntimeState()
        self.last_change = None
        self._set_game(phases.start_listening(phases.create_phase_state(), self.progress.active_notes))
        return self._play_listen_note()

    def restart(self) -> Optional[str]:
        """Discard the current session and reseed Listening from the (possibly changed) active notes."""
        return self.start()

    def _play_listen_note(self) -> Optional[str]:
        note = phases.current_listen_note(self.game)
        if note is not None:
            self.player.play_note(note, self.base_instrument)
        return note

    # ---- Listening ----

    def tick_listen(self) -> Optional[str]:
        """Listen-interval timer callback. Returns the note now playing, if any."""
        if self.game.phase != LISTENING:
            return None
        step = phases.advance_listening(self.game)
        if step.status == "complete":
            self._set_game(phases.start_exploring(step.state))
            return None
        self._set_game(step.state)
        return self._play_listen_note()

    # ---- Exploring ----

    def explore_timeout(self) -> None:
        """Explore timeout callback: move on even if the tap threshold was not reached."""
        if self.game.phase == EXPLORING:
            self._enter_quiz(self.game)

    def _enter_quiz(self, state: PhaseState) -> None:
        self._set_game(
            phases.start_quizzing(state, self.progress.active_notes, self.timings.quiz_rounds, rng=self.rng)
        )
        self.runtime.answered_instruments = []
        self.next_question()

    # ---- Quizzing ----

    def next_question(self) -> Optional[tuple]:
        """Pick a weighted question and its timbre, store it, and play it."""
        if self.game.phase != QUIZZING or self.game.quiz is None or self.game.quiz.complete:
            return None
        note = mastery.weighted_note_selection(
            self.progress, self.base_instrument, rng=self.rng, curriculum=self.curriculum
        )
        instrument = mastery.select_quiz_instrument(self.progress, note, rng=self.rng, curriculum=self.curriculum)
        self._set_game(phases.set_quiz_question(self.game, note, instrument))
        if not mastery.is_combo_introduced(self.progress, note, instrument):
            self.progress = mastery.mark_combo_introduced(self.progress, note, instrument)
            self.events.emit("first_encounter", {"note": note, "instrument": instrument})
        self.player.play_note(note, instrument)
        payload = {"note": note, "instrument": instrument, "round": self.game.quiz.round}
        xtrace("question", payload)
        self.events.emit("question", payload)
        return note, instrument

    def tap(self, note: str) -> TapOutcome:
        """Circle-tap callback."""
        phase = self.game.phase
        if phase == LISTENING or phase is None:
            return TapOutcome(phase=phase, note=note)

        if phase == EXPLORING:
            self.player.play_note(note, self.base_instrument)
            step = phases.record_explore_tap(self.game, self.timings.explore_max_taps)
            if step.status == "complete":
                self._enter_quiz(step.state)
            else:
                self._set_game(step.state)
            return TapOutcome(phase=phase, note=note, played=True, instrument=self.base_instrument)

        if phase == QUIZZING:
            return self._answer(note)

        # Summarizing: free play
        self.player.play_note(note, self.base_instrument)
        return TapOutcome(phase=phase, note=note, played=True, instrument=self.base_instrument)

    def _answer(self, note: str) -> TapOutcome:
        quiz = self.game.quiz
        assert quiz is not None
        if quiz.complete:
            return TapOutcome(phase=QUIZZING, note=note, quiz_complete=True)
        instrument = quiz.current_instrument or self.base_instrument
        self.player.play_note(note, instrument)

        answer = phases.answer_quiz(self.game, note, rng=self.rng)
        self._set_game(answer.state)
        self.runtime.answered_instruments.append(instrument)
        self.progress = mastery.record_answer(
            self.progress, answer.correct_note, instrument, answer.correct, curriculum=self.curriculum
        )

        if answer.correct:
            self.player.play_reward()
            feedback_ms = self.timings.correct_feedback_ms
        else:
            # let the child hear what it should have been
            self.player.play_note(answer.correct_note, instrument)
            feedback_ms = self.timings.incorrect_feedback_ms

        self.events.emit(
            "answered",
            {"correct": answer.correct, "correct_note": answer.correct_note, "answer": note, "instrument": instrument},
        )
        return TapOutcome(
            phase=QUIZZING,
            note=note,
            played=True,
            correct=answer.correct,
            correct_note=answer.correct_note,
            instrument=instrument,
            quiz_complete=answer.status == "complete",
            feedback_ms=feedback_ms,
        )

    def after_feedback(self) -> Optional[SummaryPayload]:
        """Feedback + pause elapsed: ask the next question or finish the quiz."""
        if self.game.phase != QUIZZING or self.game.quiz is None:
            return None
        if self.game.quiz.complete:
            return self.finish_quiz()
        self.next_question()
        return None

    # ---- Summarizing ----

    def finish_quiz(self) -> SummaryPayload:
        """Enter Summarizing, adjust the curriculum, and persist."""
        if self.game.phase == SUMMARIZING and self.game.summary is not None:
            return self.game.summary
        self._set_game(phases.start_summarizing(self.game))
        summary = self.game.summary
        assert summary is not None

        self.progress = mastery.increment_sessions(self.progress)
        change = mastery.evaluate_session(self.progress, curriculum=self.curriculum)
        self.progress = change.state
        self.last_change = change
        if change.promoted:
            xtrace("promoted", {"note": change.promoted, "stage": self.progress.current_stage})
            self.events.emit("promoted", {"note": change.promoted})
        if change.demoted:
            xtrace("demoted", {"note": change.demoted, "stage": self.progress.current_stage})
            self.events.emit("demoted", {"note": change.demoted})

        if self.store is not None:
            self.store.save(self.progress)
        self._write_history(summary)
        self.events.emit("summary", summary)
        return summary

    def _write_history(self, summary: SummaryPayload) -> None:
        if self.history_dir is None or not summary.results:
            return
        rows = rows_from_results(
            self.runtime.session_id,
            self.runtime.started_at,
            summary.results,
            self.runtime.answered_instruments,
            default_instrument=self.base_instrument,
        )
        try:
            append_session_rows(rows, self.history_dir)
        except (OSError, ValueError, ImportError) as e:
            print(f"WARNING: Failed to write session history: {e}")
