"""
Objective and plan roll-ups.

Weighted averages of computed progress, clamped with the engine's clamp.
Decreasing key results contribute their per-key-result progress like any
other key result.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from okr.schemas.progress import (
    KeyResultContribution,
    KeyResultRollupEntry,
    ObjectiveProgress,
    ObjectiveRollupEntry,
    PaceStatus,
    PlanProgress,
)
from okr.services.progress.progress_engine import PACE_MARGIN, clamp, classify_pace

logger = logging.getLogger(__name__)

DEFAULT_WEIGHT = 1.0

PACE_SEVERITY = {
    PaceStatus.AHEAD: 0,
    PaceStatus.ON_TRACK: 1,
    PaceStatus.AT_RISK: 2,
    PaceStatus.BEHIND: 3,
}


def effective_weight(weight: Optional[float]) -> float:
    """Missing or non-positive weights count as 1."""
    if weight is None or weight <= 0:
        return DEFAULT_WEIGHT
    return weight


def worst_pace(statuses: Sequence[PaceStatus]) -> Optional[PaceStatus]:
    """Most severe pace status, or None for an empty sequence."""
    if not statuses:
        return None
    return max(statuses, key=lambda status: PACE_SEVERITY[PaceStatus(status)])


def weighted_average(pairs: Sequence[Tuple[float, float]]) -> float:
    """Average of (value, weight) pairs; 0 when there is nothing to average."""
    total_weight = sum(weight for _, weight in pairs)
    if total_weight <= 0:
        return 0.0
    return sum(value * weight for value, weight in pairs) / total_weight


def _rollup(
    entries: Sequence,
    pace_margin: float,
) -> Tuple[float, float, PaceStatus]:
    """Shared roll-up of (progress, expected_progress, pace_status, weight) entries."""
    if not entries:
        return 0.0, 0.0, PaceStatus.BEHIND

    weights = [effective_weight(entry.weight) for entry in entries]
    progress = clamp(weighted_average([(e.progress, w) for e, w in zip(entries, weights)]))
    expected = clamp(
        weighted_average([(e.expected_progress, w) for e, w in zip(entries, weights)]),
        0.0,
        1.0,
    )

    known = [entry.pace_status for entry in entries if entry.pace_status is not None]
    pace_status = worst_pace(known) or classify_pace(progress, expected, pace_margin)
    return progress, expected, PaceStatus(pace_status)


def compute_objective_progress(
    objective_id: str,
    entries: Sequence[KeyResultRollupEntry],
    *,
    pace_margin: float = PACE_MARGIN,
) -> ObjectiveProgress:
    """
    Roll key result progress up into objective progress.

    Args:
        objective_id: Objective identifier
        entries: Key result progress (0-100) with optional weights
        pace_margin: Used only when no entry carries a pace status

    Returns:
        ObjectiveProgress with progress clamped to [0, 100]; 0 without
        key results
    """
    progress, expected, pace_status = _rollup(entries, pace_margin)

    contributions: List[KeyResultContribution] = [
        KeyResultContribution(
            key_result_id=entry.key_result_id,
            progress=clamp(entry.progress),
            weight=effective_weight(entry.weight),
            pace_status=entry.pace_status,
        )
        for entry in entries
    ]

    logger.debug(f"Objective {objective_id}: {len(entries)} KRs, progress={progress:.1f}")

    return ObjectiveProgress(
        objective_id=objective_id,
        progress=progress,
        expected_progress=expected,
        pace_status=pace_status,
        kr_count=len(entries),
        key_results=contributions,
    )


def compute_plan_progress(
    plan_id: str,
    entries: Sequence[ObjectiveRollupEntry],
    *,
    pace_margin: float = PACE_MARGIN,
) -> PlanProgress:
    """
    Roll objective progress up into plan progress.

    Args:
        plan_id: Plan identifier
        entries: Objective progress (0-100) with optional weights
        pace_margin: Used only when no entry carries a pace status

    Returns:
        PlanProgress with progress clamped to [0, 100]
    """
    progress, expected, pace_status = _rollup(entries, pace_margin)

    return PlanProgress(
        plan_id=plan_id,
        progress=progress,
        expected_progress=expected,
        pace_status=pace_status,
        objective_count=len(entries),
        objectives=list(entries),
    )

