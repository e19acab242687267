from __future__ import annotations

"""CLI entry point for tinyears.

`play` runs one session in the terminal: the notes are announced and played,
then typed note names stand in for taps on the circles.
"""

import argparse
import sys
from pathlib import Path
from typing import Dict, List, Optional

from . import __version__
from .analytics import AnalyticsConfig, summarize_notes
from .app import explain
from .app.session_manager import GameSession, SessionTimings
from .audio.playback import make_player_from_config
from .audio.synthesis import AudioPlayer, SilentPlayer
from .config.config import curriculum_from_config, load_config, validate_config
from .engine import mastery
from .engine.models import EXPLORING, LISTENING, QUIZZING
from .storage.history import load_history
from .storage.store import ProgressStore
from .theory.notes import note_label
from .util.randomness import make_rng, seed_if_needed


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="tinyears: adaptive note-recognition game")
    p.add_argument("--config", type=str, default=None, help="Path to YAML config")
    p.add_argument("--explain", action="store_true", help="Print one-line traces of engine decisions")
    p.add_argument("--version", action="store_true", help="Print version and exit")
    p.add_argument("command", nargs="?", default="play", choices=["play", "progress", "reset"])
    return p.parse_args(argv)


def _resolve_answer(raw: str, notes: List[str]) -> Optional[str]:
    """Accept 'G4', 'g4' or the label 'G' for an active note."""
    value = raw.strip()
    for note in notes:
        if value.lower() in (note.lower(), note_label(note).lower()):
            return note
    return None


def _ask_note(notes: List[str]) -> Optional[str]:
    labels = " ".join(note_label(n) for n in notes)
    while True:
        try:
            raw = input(f"Which note? [{labels}] (q to quit): ")
        except EOFError:
            return None
        if raw.strip().lower() == "q":
            return None
        note = _resolve_answer(raw, notes)
        if note is not None:
            return note
        print("Not one of the circles, try again.")


def _print_progress(session: GameSession) -> None:
    state = session.progress
    print(f"Stage {state.current_stage}, {state.sessions_played} sessions played.")
    overall = "  ".join(f"{note_label(n)} {mastery.note_overall_accuracy(state, n):.0%}" for n in state.active_notes)
    print(f"Active notes: {' '.join(state.active_notes)}")
    print(f"Overall accuracy: {overall}")
    for row in mastery.mastery_table(state, curriculum=session.curriculum):
        flag = "*" if row["mastered"] else " "
        print(
            f"{flag} {row['note']:<4} {row['instrument']:<16} "
            f"{row['correct']}/{row['attempts']}  acc {row['accuracy']:.0%}  streak {row['streak']}"
        )

    if session.history_dir is None:
        return
    history = summarize_notes(load_history(session.history_dir), AnalyticsConfig())
    if history.empty:
        return
    print("History (all sessions):")
    for row in history.itertuples(index=False):
        flag = "*" if row.solid else " "
        print(
            f"{flag} {row.note:<4} {row.instrument:<16} {row.correct}/{row.asked} over {row.sessions} sessions  "
            f"acc {row.accuracy:.0%}  recent {row.recent_accuracy:.0%}"
        )


def play(session: GameSession, player: AudioPlayer) -> int:
    t = session.timings

    def _on_promoted(payload: Dict) -> None:
        print(f"New note! {note_label(payload['note'])} joins the game.")
        player.sleep_ms(t.promotion_message_ms)

    session.events.subscribe("promoted", _on_promoted)
    session.events.subscribe("demoted", lambda p: print(f"Let's practise fewer notes for now ({note_label(p['note'])} rests)."))
    session.events.subscribe("first_encounter", lambda p: print(f"(First time hearing {note_label(p['note'])} on {p['instrument']}!)"))

    print("Listen...")
    note = session.start()
    while session.phase == LISTENING:
        if note:
            print(f"  {note_label(note)}")
        player.sleep_ms(t.listen_interval_ms)
        note = session.tick_listen()

    notes = list(session.active_notes)
    print(f"Explore! Try the circles ({t.explore_max_taps} taps).")
    while session.phase == EXPLORING:
        tapped = _ask_note(notes)
        if tapped is None:
            return 0
        session.tap(tapped)

    print("Quiz time!")
    while session.phase == QUIZZING:
        quiz = session.game.quiz
        assert quiz is not None
        print(f"Round {quiz.round}/{quiz.total_rounds} ({quiz.current_instrument})")
        tapped = _ask_note(notes)
        if tapped is None:
            return 0
        outcome = session.tap(tapped)
        if outcome.correct:
            print("Yes!")
        else:
            print(f"That was {note_label(outcome.correct_note or '')}.")
        player.sleep_ms(outcome.feedback_ms + t.question_pause_ms)
        session.after_feedback()

    summary = session.game.summary
    if summary is not None:
        print(f"{summary.correct_count}/{summary.total_count} correct ({summary.accuracy:.0%}).")
    return 0


def cli(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    if args.version:
        print(f"tinyears {__version__}")
        return 0

    explain.enable(args.explain)
    seed = seed_if_needed()

    cfg = validate_config(load_config(args.config))
    storage_cfg: Dict = cfg["storage"]
    curriculum = curriculum_from_config(cfg)
    store = ProgressStore(storage_cfg["progress_path"], rolling_window=curriculum.thresholds.rolling_window)

    if args.command == "reset":
        if store.reset():
            print("Progress reset.")
            return 0
        return 1

    player = make_player_from_config(cfg) if args.command == "play" else SilentPlayer()
    session = GameSession(
        player,
        store=store,
        history_dir=Path(storage_cfg["history_dir"]) if storage_cfg.get("history_enabled") else None,
        curriculum=curriculum,
        timings=SessionTimings.from_config(cfg),
        rng=make_rng(seed),
    )

    if args.command == "progress":
        _print_progress(session)
        return 0

    try:
        return play(session, player)
    finally:
        player.close()


def main() -> None:
    sys.exit(cli())


if __name__ == "__main__":
    main()
