"""
Quarter target progress.

Progress and pace of a single quarterly sub-target, measured over the
quarter (or, for cumulative key results, from the start of the year to the
end of the quarter).
"""

import logging
from datetime import datetime, time, timedelta
from typing import Sequence

from okr.schemas.progress import (
    CheckIn,
    KeyResult,
    KrAggregation,
    ProgressResult,
    QuarterTarget,
    Task,
)
from okr.services.progress.input_validator import (
    InvalidKeyResultInput,
    KeyResultValidator,
)
from okr.services.progress.progress_engine import (
    AsOf,
    PACE_MARGIN,
    check_in_quarter,
    check_ins_in_window,
    classify_pace,
    compute_delta,
    compute_expected_value,
    compute_forecast,
    compute_progress,
    count_tasks,
    elapsed_days,
    expected_progress_in_window,
    is_target_reached,
    latest_check_in,
    maintain_tolerance,
    normalize_as_of,
    quarter_window,
    resolve_quarter_values,
    to_naive_utc,
    value_series,
    year_window,
)

logger = logging.getLogger(__name__)


def find_quarter_target(key_result: KeyResult, quarter: int) -> QuarterTarget:
    """
    Look up a key result's target for a quarter.

    Raises:
        InvalidKeyResultInput: If the quarter is invalid or has no target
    """
    if quarter not in KeyResultValidator.QUARTERS:
        raise InvalidKeyResultInput(
            f"Quarter {quarter} is outside 1-4", key_result_id=key_result.id
        )

    for quarter_target in key_result.quarter_targets:
        if quarter_target.quarter == quarter:
            return quarter_target

    raise InvalidKeyResultInput(
        f"Key result has no target for Q{quarter}", key_result_id=key_result.id
    )


def compute_quarter_progress(
    key_result: KeyResult,
    quarter: int,
    check_ins: Sequence[CheckIn],
    tasks: Sequence[Task],
    year: int,
    as_of: AsOf,
    *,
    pace_margin: float = PACE_MARGIN,
) -> ProgressResult:
    """
    Compute progress of one quarter target.

    Reset-quarterly key results measure the quarter's own value from 0.
    Cumulative key results measure the running value from start_value,
    with the window opening at the start of the year.

    Args:
        key_result: Key result snapshot with its quarter targets
        quarter: Quarter number (1-4)
        check_ins: Check-ins in any order
        tasks: Tasks, counted when linked to the quarter target
        year: Calendar year of the key result
        as_of: Date or datetime the computation is anchored to
        pace_margin: Band used by the pace classification

    Returns:
        ProgressResult measured against the quarter's target_value
    """
    KeyResultValidator.validate(key_result, check_ins, year)
    quarter_target = find_quarter_target(key_result, quarter)

    as_of_moment = normalize_as_of(as_of)
    quarter_start, quarter_end = quarter_window(year, quarter)
    is_cumulative = key_result.aggregation == KrAggregation.CUMULATIVE
    window_start_day = year_window(year)[0] if is_cumulative else quarter_start

    window_start = datetime.combine(window_start_day, time.min)
    window_end = min(
        as_of_moment,
        datetime.combine(quarter_end, time.min) - timedelta(microseconds=1),
    )
    windowed = check_ins_in_window(check_ins, window_start, window_end)

    if is_cumulative:
        baseline = key_result.start_value
        latest = latest_check_in(windowed)
        if latest is not None:
            current_value = latest.value
        elif quarter_target.current_value is not None:
            current_value = quarter_target.current_value
        else:
            current_value = baseline
        series_check_ins = windowed
    else:
        baseline = 0.0
        targets_by_id = {qt.id: qt for qt in key_result.quarter_targets if qt.id is not None}
        series_check_ins = [
            ci for ci in windowed if check_in_quarter(ci, targets_by_id) == quarter
        ]
        current_value = resolve_quarter_values(key_result, series_check_ins)[quarter]

    direction = key_result.direction
    target = quarter_target.target_value
    tolerance = maintain_tolerance(baseline, target, key_result.tolerance_band)

    progress = compute_progress(direction, current_value, baseline, target, key_result.tolerance_band)
    expected = expected_progress_in_window(as_of_moment.date(), window_start_day, quarter_end)
    days_elapsed = elapsed_days(as_of_moment.date(), window_start_day, quarter_end)
    days_remaining = (quarter_end - window_start_day).days - days_elapsed

    if is_cumulative:
        points = value_series(key_result, series_check_ins, window_start)
    else:
        points = [
            ((to_naive_utc(ci.occurred_at) - window_start).total_seconds() / 86400, ci.value)
            for ci in series_check_ins
        ]

    if quarter_target.id is not None:
        linked_tasks = [task for task in tasks if task.quarter_target_id == quarter_target.id]
    else:
        linked_tasks = []
    tasks_completed, tasks_total = count_tasks(linked_tasks)
    latest = latest_check_in(series_check_ins)

    logger.debug(
        f"KR {key_result.id} Q{quarter}: current={current_value} progress={progress:.1f}"
    )

    return ProgressResult(
        progress=progress,
        current_value=current_value,
        pace_status=classify_pace(progress, expected, pace_margin),
        expected_progress=expected,
        forecast=compute_forecast(points, current_value, days_remaining),
        is_complete=is_target_reached(direction, current_value, target, tolerance),
        start_value=baseline,
        target_value=target,
        expected_value=compute_expected_value(direction, expected, baseline, target),
        delta=compute_delta(direction, current_value, target),
        days_elapsed=days_elapsed,
        days_remaining=days_remaining,
        check_in_count=len(series_check_ins),
        last_check_in_at=to_naive_utc(latest.occurred_at) if latest else None,
        tasks_completed=tasks_completed,
        tasks_total=tasks_total,
    )
