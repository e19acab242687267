from .config import AnalyticsConfig
from .metrics import compute_note_metrics, summarize_notes
from .smoothing import ewma_by_session

__all__ = [
    "AnalyticsConfig",
    "compute_note_metrics",
    "summarize_notes",
    "ewma_by_session",
]
