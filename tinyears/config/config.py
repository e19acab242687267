from __future__ import annotations

"""Configuration loading and validation for tinyears.

This module loads YAML configuration, applies defaults, and validates the
curriculum and session timing values before the game starts.
"""

from pathlib import Path
from typing import Any, Dict, Optional

import sys

import yaml

from ..engine.mastery import Curriculum, MasteryThresholds
from ..theory.notes import INSTRUMENTS, NOTE_CONFIGS, NOTE_INTRODUCTION_ORDER


ALLOWED_BACKENDS = {"silent", "fluidsynth"}
ALLOWED_INSTRUMENTS = set(INSTRUMENTS)

_SESSION_DEFAULTS: Dict[str, int] = {
    "quiz_rounds": 5,
    "explore_max_taps": 6,
    "explore_timeout_ms": 15000,
    "listen_interval_ms": 1500,
    "correct_feedback_ms": 800,
    "incorrect_feedback_ms": 1200,
    "question_pause_ms": 1000,
    "promotion_message_ms": 2500,
}


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        print(f"ERROR: Config file not found: {path}", file=sys.stderr)
        sys.exit(1)
    if not isinstance(data, dict):
        print(f"ERROR: Config file {path} must hold a mapping of sections", file=sys.stderr)
        sys.exit(1)
    return data


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML or defaults.

    Args:
        path: Optional path to a YAML config. If None, use package defaults.

    Returns:
        A dictionary with configuration values.
    """
    if path:
        return _load_yaml(Path(path))
    return _load_yaml(Path(__file__).with_name("defaults.yml"))


def _positive_int(section: Dict[str, Any], key: str, default: int) -> None:
    try:
        value = int(section.get(key, default))
    except (TypeError, ValueError):
        value = 0
    if value < 1:
        print(f"WARNING: Invalid {key} '{section.get(key)}', using {default}.")
        value = default
    section[key] = value


def _unit_float(section: Dict[str, Any], key: str, default: float) -> None:
    try:
        value = float(section.get(key, default))
    except (TypeError, ValueError):
        value = -1.0
    if not 0.0 <= value <= 1.0:
        print(f"WARNING: Invalid {key} '{section.get(key)}', using {default}.")
        value = default
    section[key] = value


def validate_config(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Apply defaults and validate configuration values.

    Unknown notes and instruments are dropped with a warning; numeric values
    out of range fall back to their defaults.

    Args:
        cfg: The raw configuration dictionary.

    Returns:
        The validated and merged configuration dictionary.
    """
    cfg.setdefault("curriculum", {})
    cfg.setdefault("session", {})
    cfg.setdefault("storage", {})
    cfg.setdefault("audio", {})

    curriculum = cfg["curriculum"]
    session = cfg["session"]
    storage = cfg["storage"]
    audio = cfg["audio"]

    curriculum.setdefault("introduction_order", list(NOTE_INTRODUCTION_ORDER))
    curriculum.setdefault("instruments", list(INSTRUMENTS))
    _unit_float(curriculum, "promotion_accuracy", 0.8)
    _positive_int(curriculum, "promotion_streak", 3)
    _unit_float(curriculum, "demotion_accuracy", 0.5)
    _positive_int(curriculum, "rolling_window", 10)
    _positive_int(curriculum, "max_active_notes", 6)

    for key, default in _SESSION_DEFAULTS.items():
        _positive_int(session, key, default)

    storage.setdefault("progress_path", "./tinyears_progress.json")
    storage.setdefault("history_dir", "./tinyears_history")
    storage.setdefault("history_enabled", True)

    audio.setdefault("backend", "silent")
    audio.setdefault("soundfont_path", "./soundfonts/GrandPiano.sf2")
    audio.setdefault("sample_rate", 44100)
    audio.setdefault("gain", 0.5)

    # Notes: known, unique, order preserved
    order = []
    for note in curriculum.get("introduction_order") or []:
        note = str(note)
        if note not in NOTE_CONFIGS:
            print(f"WARNING: Unknown note '{note}' in introduction_order, skipping.")
            continue
        if note not in order:
            order.append(note)
    if len(order) < 2:
        print("WARNING: introduction_order needs at least two notes, using the default order.")
        order = list(NOTE_INTRODUCTION_ORDER)
    curriculum["introduction_order"] = order

    instruments = []
    for inst in curriculum.get("instruments") or []:
        inst = str(inst)
        if inst not in ALLOWED_INSTRUMENTS:
            print(f"WARNING: Unsupported instrument '{inst}', skipping.")
            continue
        if inst not in instruments:
            instruments.append(inst)
    if not instruments:
        print("WARNING: No usable instruments configured, using the default progression.")
        instruments = list(INSTRUMENTS)
    curriculum["instruments"] = instruments

    if curriculum["max_active_notes"] < 2:
        print("WARNING: max_active_notes must be at least 2, using 2.")
        curriculum["max_active_notes"] = 2

    backend = audio.get("backend")
    if backend not in ALLOWED_BACKENDS:
        print(f"WARNING: Unsupported audio backend '{backend}', falling back to 'silent'.")
        audio["backend"] = "silent"

    if audio["backend"] == "fluidsynth":
        sf_path = Path(audio.get("soundfont_path", ""))
        if not sf_path.exists():
            print(
                f"WARNING: SoundFont not found at '{sf_path}', falling back to silent playback.",
                file=sys.stderr,
            )
            audio["backend"] = "silent"

    return cfg


def curriculum_from_config(cfg: Dict[str, Any]) -> Curriculum:
    """Build the engine curriculum from a validated config."""
    c = cfg.get("curriculum", {})
    thresholds = MasteryThresholds(
        promotion_accuracy=float(c.get("promotion_accuracy", 0.8)),
        promotion_streak=int(c.get("promotion_streak", 3)),
        demotion_accuracy=float(c.get("demotion_accuracy", 0.5)),
        rolling_window=int(c.get("rolling_window", 10)),
        max_active_notes=int(c.get("max_active_notes", 6)),
    )
    return Curriculum(
        introduction_order=tuple(c.get("introduction_order", NOTE_INTRODUCTION_ORDER)),
        instruments=tuple(c.get("instruments", INSTRUMENTS)),
        thresholds=thresholds,
    )
