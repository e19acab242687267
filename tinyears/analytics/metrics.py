from __future__ import annotations

"""Metric computations over the session history table."""

import numpy as np
import pandas as pd

from .config import AnalyticsConfig
from .smoothing import ewma_by_session

GROUP_COLS = ["note", "instrument"]


def compute_note_metrics(df: pd.DataFrame) -> pd.DataFrame:
    """Add per-row and cumulative accuracy.

    Returns a copy sorted by session_start with added columns:
    - session_idx: stable session order
    - acc: correct / asked for the row
    - cum_acc: running accuracy per note/instrument
    """
    out = df.sort_values(["session_start", "session_id"], kind="stable").reset_index(drop=True)
    out["session_idx"] = pd.factorize(out["session_id"])[0]
    asked = out["asked"].astype("float32")
    correct = out["correct"].astype("float32")
    out["acc"] = np.where(asked > 0, correct / asked.where(asked > 0, 1.0), 0.0).astype("float32")
    cum_asked = asked.groupby([out[c] for c in GROUP_COLS], observed=True).cumsum()
    cum_correct = correct.groupby([out[c] for c in GROUP_COLS], observed=True).cumsum()
    out["cum_acc"] = (cum_correct / cum_asked.where(cum_asked > 0, 1.0)).astype("float32")
    return out


def summarize_notes(df: pd.DataFrame, cfg: AnalyticsConfig | None = None) -> pd.DataFrame:
    """Totals per note/instrument with overall and smoothed recent accuracy."""
    cfg = cfg or AnalyticsConfig()
    columns = ["note", "instrument", "sessions", "asked", "correct", "accuracy", "recent_accuracy", "solid"]
    if df.empty:
        return pd.DataFrame({c: pd.Series(dtype="object") for c in columns})

    metrics = ewma_by_session(compute_note_metrics(df), "acc", cfg.smoothing_span, GROUP_COLS)
    grouped = metrics.groupby(GROUP_COLS, observed=True, sort=True)
    summary = grouped.agg(
        sessions=("session_id", "nunique"),
        asked=("asked", "sum"),
        correct=("correct", "sum"),
        recent_accuracy=("acc_smooth", "last"),
    ).reset_index()
    asked = summary["asked"].astype("float64")
    summary["accuracy"] = (summary["correct"].astype("float64") / asked.where(asked > 0, 1.0)).astype("float32")
    summary["solid"] = summary["recent_accuracy"] >= cfg.mastery_accuracy
    return summary[columns]
