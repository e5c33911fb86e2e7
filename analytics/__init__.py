from .config import AnalyticsConfig
from .frame import export_matches, matches_frame, questions_frame
from .report import format_match, format_stats
from .smoothing import ewma_by_match
from .stats import ScoreBucket, Stats, TrendPoint, compute, operator_from_text

__all__ = [
    "AnalyticsConfig",
    "compute",
    "operator_from_text",
    "Stats",
    "ScoreBucket",
    "TrendPoint",
    "matches_frame",
    "questions_frame",
    "export_matches",
    "ewma_by_match",
    "format_match",
    "format_stats",
]
