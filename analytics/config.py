from __future__ import annotations

"""Analytics configuration using Pydantic."""

from typing import Any, Dict

from pydantic import BaseModel, Field


class AnalyticsConfig(BaseModel):
    """Knobs for trend smoothing.

    - smoothing_span: EWMA span in matches (>1)
    - min_matches_for_trend: fewer matches than this and no smoothed trend is reported
    """

    smoothing_span: int = Field(5, gt=1)
    min_matches_for_trend: int = Field(2, ge=1)

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "AnalyticsConfig":
        return cls.model_validate(cfg.get("analytics", {}) or {})
