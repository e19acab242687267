import io
import json
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from tinyears.engine import mastery
from tinyears.engine.models import QuizResult
from tinyears.storage import (
    HISTORY_DTYPES,
    ProgressStore,
    SessionNoteRow,
    append_session_rows,
    load_history,
    rows_from_results,
    validate_rows,
    validate_snapshot,
)


def played_state():
    state = mastery.create_initial_state()
    state = mastery.record_answer(state, "C4", "piano", True)
    state = mastery.record_answer(state, "G4", "piano", False)
    state = mastery.mark_combo_introduced(state, "C4", "piano")
    return mastery.increment_sessions(state)


class ProgressStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self._tmp.name)
        self.store = ProgressStore(self.dir / "progress.json")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_missing_file_loads_none(self) -> None:
        self.assertFalse(self.store.exists())
        self.assertIsNone(self.store.load())

    def test_save_and_load(self) -> None:
        state = played_state()
        self.assertTrue(self.store.save(state))
        self.assertTrue(self.store.exists())
        self.assertEqual(self.store.load(), state)
        self.assertFalse((self.dir / "progress.json.tmp").exists())

    def test_file_uses_snake_case_keys(self) -> None:
        self.store.save(played_state())
        data = json.loads((self.dir / "progress.json").read_text(encoding="utf-8"))
        self.assertEqual(
            set(data),
            {"note_progress", "active_notes", "active_instruments", "current_stage", "sessions_played", "introduced_combos"},
        )
        self.assertEqual(data["introduced_combos"], [["C4", "piano"]])
        self.assertEqual(data["note_progress"]["C4"]["piano"]["recent_results"], [True])

    def test_save_creates_parent_dirs(self) -> None:
        store = ProgressStore(self.dir / "a" / "b" / "progress.json")
        self.assertTrue(store.save(played_state()))
        self.assertTrue(store.exists())

    def test_corrupt_json_loads_none(self) -> None:
        (self.dir / "progress.json").write_text("{not json", encoding="utf-8")
        with redirect_stderr(io.StringIO()) as err:
            self.assertIsNone(self.store.load())
        self.assertIn("WARNING", err.getvalue())

    def test_invalid_snapshot_loads_none(self) -> None:
        bad = {"active_notes": [], "active_instruments": ["piano"]}
        (self.dir / "progress.json").write_text(json.dumps(bad), encoding="utf-8")
        with redirect_stderr(io.StringIO()):
            self.assertIsNone(self.store.load())

    def test_save_failure_returns_false(self) -> None:
        blocker = self.dir / "blocker"
        blocker.write_text("", encoding="utf-8")
        store = ProgressStore(blocker / "progress.json")
        with redirect_stderr(io.StringIO()) as err:
            self.assertFalse(store.save(played_state()))
        self.assertIn("Failed to save", err.getvalue())

    def test_reset(self) -> None:
        self.store.save(played_state())
        self.assertTrue(self.store.reset())
        self.assertFalse(self.store.exists())
        self.assertIsNone(self.store.load())
        # resetting again is fine
        self.assertTrue(self.store.reset())

    def test_load_traces_when_explaining(self) -> None:
        from tinyears.app import explain

        self.store.save(played_state())
        explain.enable(True)
        try:
            with redirect_stdout(io.StringIO()) as out:
                self.store.load()
        finally:
            explain.enable(False)
        self.assertIn("[EXPLAIN] progress_loaded", out.getvalue())


class SnapshotValidationTests(unittest.TestCase):
    def test_valid_snapshot(self) -> None:
        state = played_state()
        self.assertEqual(validate_snapshot(state.to_json()), state)

    def test_minimal_snapshot_gets_defaults(self) -> None:
        state = validate_snapshot({"active_notes": ["C4", "G4"], "active_instruments": ["piano"]})
        self.assertEqual(state.current_stage, 1)
        self.assertEqual(state.sessions_played, 0)
        self.assertEqual(state.note_progress, {})
        self.assertEqual(state.introduced_combos, frozenset())

    def test_rejects_bad_snapshots(self) -> None:
        base = played_state().to_json()
        cases = [
            {**base, "active_notes": ["C4", "C4"]},
            {**base, "active_instruments": []},
            {**base, "current_stage": 0},
            {**base, "introduced_combos": [["C4"]]},
            {**base, "note_progress": {"C4": {"piano": {"attempts": 1, "correct": 2}}}},
            {
                **base,
                "note_progress": {
                    "C4": {"piano": {"attempts": 15, "correct": 10, "streak": 10, "recent_results": [False] * 5 + [True] * 10}}
                },
            },
        ]
        for data in cases:
            with self.subTest(data=data):
                with self.assertRaises(ValidationError):
                    validate_snapshot(data)

    def test_window_follows_configured_length(self) -> None:
        data = {
            "active_notes": ["C4", "G4"],
            "active_instruments": ["piano"],
            "note_progress": {"C4": {"piano": {"attempts": 11, "correct": 11, "streak": 11, "recent_results": [True] * 11}}},
        }
        with self.assertRaises(ValidationError):
            validate_snapshot(data)
        state = validate_snapshot(data, rolling_window=12)
        self.assertEqual(len(state.progress_for("C4", "piano").recent_results), 11)

    def test_store_rejects_overlong_window(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "progress.json"
            data = played_state().to_json()
            data["note_progress"]["C4"]["piano"]["recent_results"] = [True] * 11
            path.write_text(json.dumps(data), encoding="utf-8")
            with redirect_stderr(io.StringIO()):
                self.assertIsNone(ProgressStore(path).load())
            self.assertIsNotNone(ProgressStore(path, rolling_window=20).load())


class HistoryTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self._tmp.name)
        self.start = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def results(self):
        return [
            QuizResult(round=1, question="C4", answer="C4", correct=True),
            QuizResult(round=2, question="G4", answer="C4", correct=False),
            QuizResult(round=3, question="C4", answer="C4", correct=True),
            QuizResult(round=4, question="C4", answer="G4", correct=False),
        ]

    def test_rows_grouped_by_note_and_instrument(self) -> None:
        rows = rows_from_results("s1", self.start, self.results(), ["piano", "piano", "piano", "xylophone"])
        got = {(r.note, r.instrument): (r.asked, r.correct) for r in rows}
        self.assertEqual(got, {("C4", "piano"): (2, 2), ("G4", "piano"): (1, 0), ("C4", "xylophone"): (1, 0)})

    def test_missing_instrument_uses_default(self) -> None:
        rows = rows_from_results("s1", self.start, self.results()[:1], [None])
        self.assertEqual(rows[0].instrument, "piano")

    def test_row_validation(self) -> None:
        with self.assertRaises(ValidationError):
            SessionNoteRow(session_id="s", session_start=self.start, note="C4", instrument="piano", asked=1, correct=2)
        with self.assertRaises(ValidationError):
            SessionNoteRow(session_id="s", session_start=self.start, note="C4", instrument="piano", asked=0, correct=0)
        naive = SessionNoteRow(
            session_id="s", session_start=datetime(2024, 5, 1, 9, 0), note="C4", instrument="piano", asked=1, correct=1
        )
        self.assertEqual(naive.session_start.tzinfo, timezone.utc)

    def test_validate_rows_dtypes(self) -> None:
        df = validate_rows(rows_from_results("s1", self.start, self.results(), ["piano"] * 4))
        self.assertEqual(list(df.columns), list(HISTORY_DTYPES))
        self.assertEqual(str(df["asked"].dtype), "UInt16")
        self.assertTrue(validate_rows([]).empty)
        with self.assertRaises(TypeError):
            validate_rows("nope")  # type: ignore[arg-type]

    def test_append_and_load(self) -> None:
        self.assertTrue(load_history(self.dir).empty)
        rows = rows_from_results("s1", self.start, self.results(), ["piano"] * 4)
        append_session_rows(rows, self.dir)
        append_session_rows(rows, self.dir)
        df = load_history(self.dir)
        self.assertEqual(len(df), 2)

        later = datetime(2024, 5, 2, 9, 0, tzinfo=timezone.utc)
        append_session_rows(rows_from_results("s2", later, self.results()[:1], ["piano"]), self.dir)
        df = load_history(self.dir)
        self.assertEqual(len(df), 3)
        self.assertEqual(set(df["session_id"]), {"s1", "s2"})
        c4 = df[(df["session_id"] == "s1") & (df["note"] == "C4")].iloc[0]
        self.assertEqual((int(c4["asked"]), int(c4["correct"])), (3, 2))


if __name__ == "__main__":
    unittest.main()
