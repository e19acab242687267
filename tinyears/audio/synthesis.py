from __future__ import annotations

"""Audio player interface used by the game session.

The engine never touches audio; the session forwards the note and instrument
names the engine returns to one of these players.
"""

import time
from typing import List, Tuple


class AudioPlayer:
    """Abstract-like player interface for playback engines."""

    def play_note(self, note: str, instrument: str) -> None:
        """Play a single note name (e.g. 'C4') on a named instrument."""
        raise NotImplementedError

    def play_reward(self) -> None:
        """Short celebratory sound after a correct answer."""
        raise NotImplementedError

    def is_instrument_loaded(self, instrument: str) -> bool:
        raise NotImplementedError

    def sleep_ms(self, ms: int) -> None:
        time.sleep(ms / 1000.0)

    def close(self) -> None:
        """Release resources."""
        pass


class SilentPlayer(AudioPlayer):
    """Records what would have been played. Never sleeps."""

    def __init__(self, loaded: Tuple[str, ...] | None = None) -> None:
        self.loaded = loaded
        self.played: List[Tuple[str, str]] = []
        self.rewards = 0
        self.slept_ms = 0

    def play_note(self, note: str, instrument: str) -> None:
        self.played.append((note, instrument))

    def play_reward(self) -> None:
        self.rewards += 1

    def is_instrument_loaded(self, instrument: str) -> bool:
        return self.loaded is None or instrument in self.loaded

    def sleep_ms(self, ms: int) -> None:
        self.slept_ms += int(ms)
