"""
Progress System

Turns key result snapshots into progress, pace, forecast and completion,
and rolls key results up into objectives and plans.
"""

from okr.services.progress.input_validator import InvalidKeyResultInput, KeyResultValidator
from okr.services.progress.progress_engine import compute_kr_progress
from okr.services.progress.quarter_progress import compute_quarter_progress
from okr.services.progress.rollup import compute_objective_progress, compute_plan_progress
from okr.services.progress.series import build_daily_series, build_weekly_series
from okr.services.progress.progress_cache import ProgressCache
from okr.services.progress.data_source import ProgressDataSource

__all__ = [
    "InvalidKeyResultInput",
    "KeyResultValidator",
    "compute_kr_progress",
    "compute_quarter_progress",
    "compute_objective_progress",
    "compute_plan_progress",
    "build_daily_series",
    "build_weekly_series",
    "ProgressCache",
    "ProgressDataSource",
]
