from __future__ import annotations

"""FluidSynth-based audio playback implementation."""

from typing import Any, Dict, List
import sys

from ..theory.notes import note_str_to_midi
from .synthesis import AudioPlayer, SilentPlayer


# General MIDI programs, one channel per instrument
GM_PROGRAMS: Dict[str, int] = {
    "piano": 0,
    "xylophone": 13,
    "guitar-acoustic": 24,
}

REWARD_ARPEGGIO: List[int] = [72, 76, 79, 84]


class FluidSynthPlayer(AudioPlayer):
    """Concrete player using pyfluidsynth and a General MIDI SoundFont."""

    def __init__(
        self,
        soundfont_path: str,
        sample_rate: int = 44100,
        gain: float = 0.5,
        note_ms: int = 700,
    ) -> None:
        try:
            import fluidsynth  # type: ignore
        except ImportError as e:  # pragma: no cover - runtime dependency
            raise RuntimeError("pyfluidsynth is not installed (pip install tinyears[audio])") from e

        self.note_ms = note_ms
        self._fs = fluidsynth.Synth(samplerate=sample_rate, gain=gain)
        # Prefer CoreAudio on macOS to avoid SDL warnings
        try:
            if sys.platform == "darwin":
                self._fs.start(driver="coreaudio")
            else:
                self._fs.start()
        except Exception:
            self._fs.start()
        self._sfid = self._fs.sfload(soundfont_path)
        self._channels: Dict[str, int] = {}
        for channel, (instrument, program) in enumerate(GM_PROGRAMS.items()):
            self._fs.program_select(channel, self._sfid, 0, program)
            self._channels[instrument] = channel
        self._reward_channel = len(self._channels)
        self._fs.program_select(self._reward_channel, self._sfid, 0, GM_PROGRAMS["xylophone"])

    def is_instrument_loaded(self, instrument: str) -> bool:
        return instrument in self._channels

    def play_note(self, note: str, instrument: str) -> None:
        if not self.is_instrument_loaded(instrument):
            print(f"WARNING: instrument '{instrument}' not loaded, using piano.", file=sys.stderr)
            instrument = "piano"
        channel = self._channels[instrument]
        midi = note_str_to_midi(note)
        self._fs.noteon(channel, midi, 100)
        self.sleep_ms(self.note_ms)
        self._fs.noteoff(channel, midi)

    def play_reward(self) -> None:
        for m in REWARD_ARPEGGIO:
            self._fs.noteon(self._reward_channel, m, 90)
            self.sleep_ms(90)
        self.sleep_ms(250)
        for m in REWARD_ARPEGGIO:
            self._fs.noteoff(self._reward_channel, m)

    def close(self) -> None:
        try:
            self._fs.delete()
        except Exception:
            pass


def make_player_from_config(cfg: Dict[str, Any]) -> AudioPlayer:
    """Factory for a player from a validated config dict."""
    audio = cfg.get("audio", {})
    backend = audio.get("backend", "silent")
    if backend == "silent":
        return SilentPlayer()
    if backend == "fluidsynth":
        return FluidSynthPlayer(
            soundfont_path=audio.get("soundfont_path"),
            sample_rate=int(audio.get("sample_rate", 44100)),
            gain=float(audio.get("gain", 0.5)),
        )
    raise ValueError(f"Unsupported backend: {backend}")
