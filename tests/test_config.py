import io
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path

import yaml

from tinyears.app.session_manager import SessionTimings
from tinyears.config.config import curriculum_from_config, load_config, validate_config
from tinyears.engine.mastery import DEFAULT_CURRICULUM
from tinyears.theory.notes import INSTRUMENTS, NOTE_INTRODUCTION_ORDER


def quiet_validate(cfg):
    with redirect_stdout(io.StringIO()) as out, redirect_stderr(io.StringIO()) as err:
        result = validate_config(cfg)
    return result, out.getvalue() + err.getvalue()


class DefaultConfigTests(unittest.TestCase):
    def test_defaults_match_engine_defaults(self) -> None:
        cfg, warnings = quiet_validate(load_config())
        self.assertEqual(warnings, "")
        self.assertEqual(curriculum_from_config(cfg), DEFAULT_CURRICULUM)
        self.assertEqual(cfg["audio"]["backend"], "silent")
        self.assertTrue(cfg["storage"]["history_enabled"])

    def test_default_timings(self) -> None:
        cfg, _ = quiet_validate(load_config())
        timings = SessionTimings.from_config(cfg)
        self.assertEqual(timings.quiz_rounds, 5)
        self.assertEqual(timings.explore_max_taps, 6)
        self.assertEqual(timings.explore_timeout_ms, 15000)
        self.assertEqual(timings.listen_interval_ms, 1500)

    def test_empty_config_gets_defaults(self) -> None:
        cfg, _ = quiet_validate({})
        self.assertEqual(cfg["curriculum"]["introduction_order"], NOTE_INTRODUCTION_ORDER)
        self.assertEqual(cfg["curriculum"]["instruments"], INSTRUMENTS)
        self.assertEqual(cfg["session"]["quiz_rounds"], 5)
        self.assertEqual(cfg["storage"]["progress_path"], "./tinyears_progress.json")


class LoadConfigTests(unittest.TestCase):
    def test_load_from_path(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "cfg.yml"
            path.write_text(yaml.safe_dump({"session": {"quiz_rounds": 3}}), encoding="utf-8")
            cfg, _ = quiet_validate(load_config(str(path)))
        self.assertEqual(cfg["session"]["quiz_rounds"], 3)
        self.assertEqual(cfg["session"]["explore_max_taps"], 6)

    def test_missing_file_exits(self) -> None:
        with redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit):
                load_config("/nonexistent/tinyears.yml")

    def test_non_mapping_file_exits(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "cfg.yml"
            path.write_text("- C4\n- G4\n", encoding="utf-8")
            with redirect_stderr(io.StringIO()) as err:
                with self.assertRaises(SystemExit):
                    load_config(str(path))
        self.assertIn("ERROR:", err.getvalue())


class RepairTests(unittest.TestCase):
    def test_bad_numbers_fall_back(self) -> None:
        cfg, warnings = quiet_validate(
            {
                "curriculum": {"rolling_window": 0, "promotion_accuracy": 1.5, "promotion_streak": "three"},
                "session": {"quiz_rounds": -2},
            }
        )
        self.assertEqual(cfg["curriculum"]["rolling_window"], 10)
        self.assertEqual(cfg["curriculum"]["promotion_accuracy"], 0.8)
        self.assertEqual(cfg["curriculum"]["promotion_streak"], 3)
        self.assertEqual(cfg["session"]["quiz_rounds"], 5)
        self.assertIn("WARNING: Invalid rolling_window", warnings)

    def test_unknown_notes_dropped(self) -> None:
        cfg, warnings = quiet_validate({"curriculum": {"introduction_order": ["C4", "X9", "G4", "C4", "E4"]}})
        self.assertEqual(cfg["curriculum"]["introduction_order"], ["C4", "G4", "E4"])
        self.assertIn("Unknown note 'X9'", warnings)

    def test_too_few_notes_use_default_order(self) -> None:
        cfg, _ = quiet_validate({"curriculum": {"introduction_order": ["C4", "C4"]}})
        self.assertEqual(cfg["curriculum"]["introduction_order"], NOTE_INTRODUCTION_ORDER)

    def test_instruments(self) -> None:
        cfg, _ = quiet_validate({"curriculum": {"instruments": ["kazoo", "xylophone"]}})
        self.assertEqual(cfg["curriculum"]["instruments"], ["xylophone"])
        cfg, _ = quiet_validate({"curriculum": {"instruments": ["kazoo"]}})
        self.assertEqual(cfg["curriculum"]["instruments"], INSTRUMENTS)

    def test_max_active_notes_floor(self) -> None:
        cfg, _ = quiet_validate({"curriculum": {"max_active_notes": 1}})
        self.assertEqual(cfg["curriculum"]["max_active_notes"], 2)
        self.assertEqual(curriculum_from_config(cfg).thresholds.max_active_notes, 2)

    def test_audio_backend_fallbacks(self) -> None:
        cfg, _ = quiet_validate({"audio": {"backend": "alsa"}})
        self.assertEqual(cfg["audio"]["backend"], "silent")
        cfg, warnings = quiet_validate({"audio": {"backend": "fluidsynth", "soundfont_path": "/nonexistent.sf2"}})
        self.assertEqual(cfg["audio"]["backend"], "silent")
        self.assertIn("SoundFont not found", warnings)

    def test_custom_curriculum(self) -> None:
        cfg, _ = quiet_validate(
            {"curriculum": {"introduction_order": ["E4", "A4", "C4"], "instruments": ["piano"], "rolling_window": 5}}
        )
        curriculum = curriculum_from_config(cfg)
        self.assertEqual(curriculum.introduction_order, ("E4", "A4", "C4"))
        self.assertEqual(curriculum.instruments, ("piano",))
        self.assertEqual(curriculum.thresholds.rolling_window, 5)


if __name__ == "__main__":
    unittest.main()
