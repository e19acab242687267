from __future__ import annotations

"""Durable JSON persistence for the learner's progress.

Storage failures never reach the game: `load` answers None (the caller then
starts from a fresh state) and `save`/`reset` answer False, with a warning on
stderr.
"""

import json
import sys
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from ..app.explain import trace as xtrace
from ..engine.models import ProgressState
from .schema import DEFAULT_ROLLING_WINDOW, validate_snapshot


class ProgressStore:
    """Single-slot key-value store for one `ProgressState` snapshot."""

    def __init__(self, path: str | Path, rolling_window: int = DEFAULT_ROLLING_WINDOW) -> None:
        self.path = Path(path)
        self.rolling_window = rolling_window

    def load(self) -> Optional[ProgressState]:
        """Return the saved state, or None for first-time players and bad files."""
        if not self.path.exists():
            return None
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
            state = validate_snapshot(data, self.rolling_window)
        except (OSError, ValueError, ValidationError) as e:
            print(f"WARNING: Failed to load progress from {self.path}: {e}", file=sys.stderr)
            return None
        xtrace("progress_loaded", {"path": str(self.path), "active": list(state.active_notes)})
        return state

    def save(self, state: ProgressState) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            with tmp.open("w", encoding="utf-8") as f:
                json.dump(state.to_json(), f, indent=2)
            tmp.replace(self.path)
        except (OSError, TypeError, ValueError) as e:
            print(f"WARNING: Failed to save progress to {self.path}: {e}", file=sys.stderr)
            return False
        xtrace("progress_saved", {"path": str(self.path), "stage": state.current_stage})
        return True

    def reset(self) -> bool:
        """Delete stored progress, returning the player to first-time state."""
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            print(f"WARNING: Failed to reset progress at {self.path}: {e}", file=sys.stderr)
            return False
        return True

    def exists(self) -> bool:
        return self.path.exists()
