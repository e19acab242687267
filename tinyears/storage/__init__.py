from .schema import HISTORY_DTYPES, ProgressSnapshot, SessionNoteRow, validate_snapshot
from .store import ProgressStore
from .history import append_session_rows, load_history, rows_from_results, validate_rows

__all__ = [
    "HISTORY_DTYPES",
    "ProgressSnapshot",
    "SessionNoteRow",
    "validate_snapshot",
    "ProgressStore",
    "append_session_rows",
    "load_history",
    "rows_from_results",
    "validate_rows",
]
