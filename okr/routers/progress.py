"""
FastAPI router for Progress system endpoints.

Provides endpoints for key result progress, quarter progress, progress
series, objective and plan roll-ups, and cache invalidation. Callers post
fully-formed snapshots; nothing is read from storage here.
"""

import logging
from datetime import datetime, timezone
from typing import Annotated, Optional

from fastapi import APIRouter, Depends

from okr.config import Settings
from okr.dependencies import get_progress_cache, get_settings
from okr.pipelines.progress import (
    compute_key_result_pipeline,
    invalidate_key_result_pipeline,
    objective_progress_pipeline,
    resolve_year,
)
from okr.schemas.progress import (
    CacheInvalidationResponse,
    KeyResultProgressRequest,
    ObjectiveComputeRequest,
    ObjectiveProgress,
    ObjectiveRollupRequest,
    PlanProgress,
    PlanRollupRequest,
    ProgressResult,
    QuarterProgressRequest,
    SeriesRequest,
    SeriesResponse,
)
from okr.services.progress.progress_cache import ProgressCache
from okr.services.progress.quarter_progress import compute_quarter_progress
from okr.services.progress.rollup import compute_objective_progress, compute_plan_progress
from okr.services.progress.series import build_daily_series, build_weekly_series

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/progress", tags=["progress"])


def _as_of(value: Optional[datetime]) -> datetime:
    return value or datetime.now(timezone.utc)


@router.post("/key-results/compute", response_model=ProgressResult)
async def compute_key_result_progress(
    body: KeyResultProgressRequest,
    cache: Annotated[ProgressCache, Depends(get_progress_cache)],
    settings: Annotated[Settings, Depends(get_settings)],
):
    """Compute progress, pace, forecast and completion for a key result."""
    return compute_key_result_pipeline(
        cache,
        body.key_result,
        body.check_ins,
        body.tasks,
        body.year,
        _as_of(body.as_of),
        settings.PACE_MARGIN,
    )


@router.post("/key-results/quarter", response_model=ProgressResult)
async def compute_key_result_quarter_progress(
    body: QuarterProgressRequest,
    settings: Annotated[Settings, Depends(get_settings)],
):
    """Compute progress of one quarter target."""
    as_of = _as_of(body.as_of)
    return compute_quarter_progress(
        body.key_result,
        body.quarter,
        body.check_ins,
        body.tasks,
        resolve_year(body.key_result, body.year, as_of),
        as_of,
        pace_margin=settings.PACE_MARGIN,
    )


@router.post("/key-results/series", response_model=SeriesResponse)
async def get_key_result_series(
    body: SeriesRequest,
    settings: Annotated[Settings, Depends(get_settings)],
):
    """Build daily and weekly progress series up to the as-of date."""
    as_of = _as_of(body.as_of)
    daily = build_daily_series(
        body.key_result,
        body.check_ins,
        resolve_year(body.key_result, body.year, as_of),
        body.start,
        body.end,
        as_of=as_of,
        pace_margin=settings.PACE_MARGIN,
    )
    return SeriesResponse(
        key_result_id=body.key_result.id,
        daily=daily,
        weekly=build_weekly_series(daily),
    )


@router.post("/objectives/rollup", response_model=ObjectiveProgress)
async def rollup_objective(
    body: ObjectiveRollupRequest,
    settings: Annotated[Settings, Depends(get_settings)],
):
    """Roll precomputed key result progress up into an objective."""
    return compute_objective_progress(
        body.objective_id, body.key_results, pace_margin=settings.PACE_MARGIN
    )


@router.post("/objectives/compute", response_model=ObjectiveProgress)
async def compute_objective(
    body: ObjectiveComputeRequest,
    cache: Annotated[ProgressCache, Depends(get_progress_cache)],
    settings: Annotated[Settings, Depends(get_settings)],
):
    """Compute every key result of an objective and roll them up."""
    return objective_progress_pipeline(
        cache,
        body.objective_id,
        body.key_results,
        body.year,
        _as_of(body.as_of),
        settings.PACE_MARGIN,
    )


@router.post("/plans/rollup", response_model=PlanProgress)
async def rollup_plan(
    body: PlanRollupRequest,
    settings: Annotated[Settings, Depends(get_settings)],
):
    """Roll objective progress up into a plan."""
    return compute_plan_progress(
        body.plan_id, body.objectives, pace_margin=settings.PACE_MARGIN
    )


@router.delete("/key-results/{key_result_id}/cache", response_model=CacheInvalidationResponse)
async def invalidate_key_result_cache(
    key_result_id: str,
    cache: Annotated[ProgressCache, Depends(get_progress_cache)],
):
    """Drop cached progress for a key result after new check-ins."""
    removed = invalidate_key_result_pipeline(cache, key_result_id)
    return CacheInvalidationResponse(key_result_id=key_result_id, removed=removed)
