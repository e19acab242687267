from __future__ import annotations

"""Pydantic models for persisted progress snapshots and session history rows."""

from datetime import datetime, timezone
from typing import Dict, List

from pydantic import BaseModel, Field, ValidationInfo, field_validator, model_validator

from ..engine.models import ProgressState


DEFAULT_ROLLING_WINDOW = 10

HISTORY_DTYPES = {
    "session_id": "string",
    "session_start": "datetime64[ns, UTC]",
    "note": "string",
    "instrument": "string",
    "asked": "UInt16",
    "correct": "UInt16",
}


class NoteProgressModel(BaseModel):
    attempts: int = Field(default=0, ge=0)
    correct: int = Field(default=0, ge=0)
    streak: int = Field(default=0, ge=0)
    recent_results: List[bool] = Field(default_factory=list)

    @field_validator("recent_results")
    @classmethod
    def _within_window(cls, v: List[bool], info: ValidationInfo) -> List[bool]:
        window = (info.context or {}).get("rolling_window", DEFAULT_ROLLING_WINDOW)
        if len(v) > window:
            raise ValueError(f"recent_results holds {len(v)} results, window is {window}")
        return v

    @model_validator(mode="after")
    def _correct_le_attempts(self) -> "NoteProgressModel":
        if self.correct > self.attempts:
            raise ValueError("correct must be <= attempts")
        return self


class ProgressSnapshot(BaseModel):
    note_progress: Dict[str, Dict[str, NoteProgressModel]] = Field(default_factory=dict)
    active_notes: List[str] = Field(min_length=1)
    active_instruments: List[str] = Field(min_length=1)
    current_stage: int = Field(default=1, ge=1)
    sessions_played: int = Field(default=0, ge=0)
    introduced_combos: List[List[str]] = Field(default_factory=list)

    @field_validator("active_notes")
    @classmethod
    def _unique_notes(cls, v: List[str]) -> List[str]:
        if len(set(v)) != len(v):
            raise ValueError("active_notes must be unique")
        return v

    @field_validator("introduced_combos")
    @classmethod
    def _pairs(cls, v: List[List[str]]) -> List[List[str]]:
        for combo in v:
            if len(combo) != 2:
                raise ValueError("introduced_combos entries must be [note, instrument] pairs")
        return v


class SessionNoteRow(BaseModel):
    session_id: str
    session_start: datetime
    note: str
    instrument: str
    asked: int = Field(ge=1, le=65535)
    correct: int = Field(ge=0, le=65535)

    @model_validator(mode="after")
    def _correct_le_asked(self) -> "SessionNoteRow":
        if self.correct > self.asked:
            raise ValueError("correct must be <= asked")
        return self

    @field_validator("session_start")
    @classmethod
    def _ensure_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)


def validate_snapshot(data: object, rolling_window: int = DEFAULT_ROLLING_WINDOW) -> ProgressState:
    """Validate a decoded JSON snapshot and build the state value.

    `rolling_window` caps the length of every stored `recent_results`.

    Raises:
        pydantic.ValidationError: if the snapshot is malformed.
    """
    snapshot = ProgressSnapshot.model_validate(data, context={"rolling_window": rolling_window})
    return ProgressState.from_json(snapshot.model_dump())
