from __future__ import annotations

"""Parquet-backed session history: one row per (session, note, instrument)."""

from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

import pandas as pd

from ..engine.models import QuizResult
from .schema import HISTORY_DTYPES, SessionNoteRow


DATA_FILE = "session_note_stats.parquet"


def _empty_df() -> pd.DataFrame:
    return pd.DataFrame({k: pd.Series(dtype=v) for k, v in HISTORY_DTYPES.items()})


def _fix_dtypes(df: pd.DataFrame) -> pd.DataFrame:
    for col, dt in HISTORY_DTYPES.items():
        if col not in df.columns:
            df[col] = pd.Series(pd.NA, index=df.index)
        df[col] = df[col].astype(dt)
    return df[list(HISTORY_DTYPES.keys())]


def rows_from_results(
    session_id: str,
    session_start: datetime,
    results: Iterable[QuizResult],
    instruments: Iterable[Optional[str]],
    default_instrument: str = "piano",
) -> List[SessionNoteRow]:
    """Aggregate quiz results into per note/instrument rows.

    `instruments` runs parallel to `results`: the timbre each question was
    played on (None falls back to `default_instrument`).
    """
    buckets: dict[Tuple[str, str], List[int]] = {}
    for result, inst in zip(results, instruments):
        key = (result.question, inst or default_instrument)
        bucket = buckets.setdefault(key, [0, 0])
        bucket[0] += 1
        bucket[1] += 1 if result.correct else 0
    return [
        SessionNoteRow(
            session_id=session_id,
            session_start=session_start,
            note=note,
            instrument=inst,
            asked=asked,
            correct=correct,
        )
        for (note, inst), (asked, correct) in buckets.items()
    ]


def validate_rows(rows: List[SessionNoteRow]) -> pd.DataFrame:
    if not isinstance(rows, list):
        raise TypeError("rows must be a list[SessionNoteRow]")
    parsed = [r if isinstance(r, SessionNoteRow) else SessionNoteRow.model_validate(r) for r in rows]
    df = pd.DataFrame([r.model_dump() for r in parsed])
    if df.empty:
        return _empty_df()
    return _fix_dtypes(df)


def append_session_rows(rows: List[SessionNoteRow], data_dir: Path) -> None:
    """Append validated rows to the history file, creating it if needed."""
    data_dir = Path(data_dir)
    data_dir.mkdir(parents=True, exist_ok=True)
    f = data_dir / DATA_FILE
    df_new = validate_rows(rows)
    if f.exists():
        df_old = _fix_dtypes(pd.read_parquet(f, engine="pyarrow"))
        combined = pd.concat([df_old, df_new], ignore_index=True)
    else:
        combined = df_new
    combined = _fix_dtypes(combined).drop_duplicates()
    combined.to_parquet(f, engine="pyarrow", index=False)


def load_history(data_dir: Path) -> pd.DataFrame:
    f = Path(data_dir) / DATA_FILE
    if not f.exists():
        return _empty_df()
    return _fix_dtypes(pd.read_parquet(f, engine="pyarrow"))
