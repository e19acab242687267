from __future__ import annotations

"""Analytics configuration (hyperparameters) using Pydantic."""

from pydantic import BaseModel, Field


class AnalyticsConfig(BaseModel):
    """Hyperparameters for history metrics and smoothing.

    - smoothing_span: EWMA span in sessions (>1)
    - mastery_accuracy: accuracy at which a note counts as solid in summaries
    """

    smoothing_span: int = Field(5, gt=1)
    mastery_accuracy: float = Field(0.8, ge=0, le=1)
