"""
Progress & pace computation engine.

Pure, deterministic functions that turn a key result snapshot, its
check-ins, its quarter targets and an as-of date into a ProgressResult:

- current value (cumulative or summed per quarter)
- progress percentage, clamped to [0, 100]
- expected progress along a straight line through the year
- pace status against that expectation
- linear forecast of the end-of-year value
- completion flag

Nothing here performs I/O or keeps state.
"""

import calendar
import logging
import math
import statistics
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from okr.schemas.progress import (
    CheckIn,
    KeyResult,
    KrAggregation,
    KrDirection,
    PaceStatus,
    ProgressResult,
    QuarterTarget,
    Task,
)
from okr.services.progress.input_validator import KeyResultValidator

logger = logging.getLogger(__name__)

AsOf = Union[date, datetime]

# Pace band around the linear expectation, as a fraction of the period.
PACE_MARGIN = 0.10

# Maintain direction: band around the target as a share of |target - start|,
# never narrower than MAINTAIN_MIN_TOLERANCE.
MAINTAIN_TOLERANCE_RATIO = 0.05
MAINTAIN_MIN_TOLERANCE = 0.5

PROGRESS_MIN = 0.0
PROGRESS_MAX = 100.0

COMPLETED_TASK_STATUS = "completed"


# =============================================================================
# Numeric and calendar helpers
# =============================================================================

def clamp(value: float, low: float = PROGRESS_MIN, high: float = PROGRESS_MAX) -> float:
    """Clamp value into [low, high]."""
    return min(high, max(low, value))


def to_naive_utc(value: datetime) -> datetime:
    """Convert aware datetimes to naive UTC; naive ones are taken as UTC."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def normalize_as_of(as_of: AsOf) -> datetime:
    """
    Turn an as-of value into a naive UTC datetime.

    A plain date means the end of that day, so check-ins recorded at any
    time on that day count.
    """
    if isinstance(as_of, datetime):
        return to_naive_utc(as_of)
    return datetime.combine(as_of, time.max)


def days_in_year(year: int) -> int:
    return 366 if calendar.isleap(year) else 365


def year_window(year: int) -> Tuple[date, date]:
    """First day of the year and first day of the next one."""
    return date(year, 1, 1), date(year + 1, 1, 1)


def quarter_of(moment: datetime) -> int:
    return (moment.month - 1) // 3 + 1


def quarter_window(year: int, quarter: int) -> Tuple[date, date]:
    """First day of the quarter and first day after it."""
    start = date(year, 3 * (quarter - 1) + 1, 1)
    if quarter == 4:
        return start, year_window(year)[1]
    return start, date(year, 3 * quarter + 1, 1)


def elapsed_days(as_of_day: date, start: date, end: date) -> int:
    """Whole days from start to as_of_day, bounded by the window length."""
    total = (end - start).days
    return int(clamp((as_of_day - start).days, 0, total))


def expected_progress_in_window(as_of_day: date, start: date, end: date) -> float:
    """
    Share of the window [start, end) elapsed by as_of_day, in [0, 1].

    Before the window this is 0, after it 1.
    """
    total = (end - start).days
    if total <= 0:
        return 1.0
    return clamp(elapsed_days(as_of_day, start, end) / total, 0.0, 1.0)


def compute_expected_progress(as_of: AsOf, year: int) -> float:
    """Fraction of the year elapsed as of the given date, in [0, 1]."""
    start, end = year_window(year)
    return expected_progress_in_window(normalize_as_of(as_of).date(), start, end)


# =============================================================================
# Check-in windowing and current value
# =============================================================================

def check_ins_in_window(
    check_ins: Iterable[CheckIn],
    start: datetime,
    end: datetime,
) -> List[CheckIn]:
    """
    Check-ins with start <= occurred_at <= end, oldest first.

    Ordering uses timestamps only; equal timestamps keep input order.
    """
    selected = [
        check_in for check_in in check_ins
        if start <= to_naive_utc(check_in.occurred_at) <= end
    ]
    return sorted(selected, key=lambda check_in: to_naive_utc(check_in.occurred_at))


def latest_check_in(check_ins: Sequence[CheckIn]) -> Optional[CheckIn]:
    """Most recent check-in of a chronologically sorted sequence."""
    return check_ins[-1] if check_ins else None


def check_in_quarter(
    check_in: CheckIn,
    targets_by_id: Dict[str, QuarterTarget],
) -> int:
    """Quarter a check-in counts toward: its linked target, else its timestamp."""
    if check_in.quarter_target_id is not None and check_in.quarter_target_id in targets_by_id:
        return targets_by_id[check_in.quarter_target_id].quarter
    return quarter_of(to_naive_utc(check_in.occurred_at))


def resolve_quarter_values(
    key_result: KeyResult,
    check_ins: Sequence[CheckIn],
) -> Dict[int, float]:
    """
    Resolve each quarter's value under reset-quarterly aggregation.

    A quarter's value is its latest scoped check-in, else the stored
    quarter target value, else 0.

    Args:
        key_result: Key result with its quarter targets
        check_ins: Windowed check-ins, oldest first

    Returns:
        dict mapping quarter number (1-4) to its resolved value
    """
    targets_by_quarter = {qt.quarter: qt for qt in key_result.quarter_targets}
    targets_by_id = {qt.id: qt for qt in key_result.quarter_targets if qt.id is not None}

    latest_by_quarter: Dict[int, float] = {}
    for check_in in check_ins:
        latest_by_quarter[check_in_quarter(check_in, targets_by_id)] = check_in.value

    values = {}
    for quarter in (1, 2, 3, 4):
        if quarter in latest_by_quarter:
            values[quarter] = latest_by_quarter[quarter]
        elif quarter in targets_by_quarter and targets_by_quarter[quarter].current_value is not None:
            values[quarter] = targets_by_quarter[quarter].current_value
        else:
            values[quarter] = 0.0
    return values


def resolve_current_value(key_result: KeyResult, check_ins: Sequence[CheckIn]) -> float:
    """
    Resolve the aggregate value progress is measured from.

    Args:
        key_result: Key result snapshot
        check_ins: Windowed check-ins, oldest first

    Returns:
        Latest reading (cumulative) or the sum of quarter values
        (reset-quarterly)
    """
    if key_result.aggregation == KrAggregation.RESET_QUARTERLY:
        return float(sum(resolve_quarter_values(key_result, check_ins).values()))

    latest = latest_check_in(check_ins)
    if latest is not None:
        return latest.value
    if key_result.current_value is not None:
        return key_result.current_value
    return key_result.start_value


# =============================================================================
# Progress, completion and pace
# =============================================================================

def maintain_tolerance(
    start: float,
    target: float,
    tolerance_band: Optional[float] = None,
) -> float:
    """Absolute band around the target that counts as maintained."""
    if tolerance_band is not None:
        return tolerance_band
    span = abs(target - start) if target != start else abs(target)
    return max(MAINTAIN_TOLERANCE_RATIO * span, MAINTAIN_MIN_TOLERANCE)


def compute_progress(
    direction: KrDirection,
    current: float,
    start: float,
    target: float,
    tolerance_band: Optional[float] = None,
) -> float:
    """
    Progress toward the target as a percentage in [0, 100].

    Increase and decrease share one formula: (current - start) / range.
    A decreasing target gives a negative range, so moving down toward it
    still raises the ratio. A zero range reads 100 once the target is
    reached and 0 before. Maintain reads 100 inside the tolerance band and
    falls linearly to 0 at twice the band.
    """
    if direction == KrDirection.MAINTAIN:
        band = maintain_tolerance(start, target, tolerance_band)
        deviation = abs(current - target)
        if deviation <= band:
            return PROGRESS_MAX
        return clamp(PROGRESS_MAX * (1 - (deviation - band) / band))

    value_range = target - start
    if value_range == 0:
        return PROGRESS_MAX if is_target_reached(direction, current, target) else PROGRESS_MIN

    return clamp((current - start) / value_range * 100)


def is_target_reached(
    direction: KrDirection,
    current: float,
    target: float,
    tolerance: float = 0.0,
) -> bool:
    """Whether current has reached target in the direction-correct sense."""
    if direction == KrDirection.DECREASE:
        return current <= target
    if direction == KrDirection.MAINTAIN:
        return abs(current - target) <= tolerance
    return current >= target


def classify_pace(
    progress: float,
    expected_progress: float,
    margin: float = PACE_MARGIN,
) -> PaceStatus:
    """
    Classify progress (0-100) against expected progress (0-1).

    ahead:    actual >= expected + margin
    on_track: expected <= actual < expected + margin
    at_risk:  expected - margin <= actual < expected
    behind:   actual < expected - margin
    """
    actual = progress / 100
    if actual >= expected_progress + margin:
        return PaceStatus.AHEAD
    if actual >= expected_progress:
        return PaceStatus.ON_TRACK
    if actual >= expected_progress - margin:
        return PaceStatus.AT_RISK
    return PaceStatus.BEHIND


def compute_expected_value(
    direction: KrDirection,
    expected_progress: float,
    start: float,
    target: float,
) -> float:
    """Value a straight line from start to target would have reached."""
    if direction == KrDirection.MAINTAIN:
        return target
    return start + (target - start) * expected_progress


def compute_delta(direction: KrDirection, current: float, target: float) -> float:
    """Distance from target; positive means past it in the good direction."""
    if direction == KrDirection.DECREASE:
        return target - current
    return current - target


# =============================================================================
# Forecast
# =============================================================================

def value_series(
    key_result: KeyResult,
    check_ins: Sequence[CheckIn],
    origin: datetime,
) -> List[Tuple[float, float]]:
    """
    (days since origin, aggregate value) after each check-in.

    Under reset-quarterly aggregation the value is the running annual total.
    Quarters without check-ins add their stored value as a constant offset.
    """
    if key_result.aggregation != KrAggregation.RESET_QUARTERLY:
        return [
            ((to_naive_utc(ci.occurred_at) - origin).total_seconds() / 86400, ci.value)
            for ci in check_ins
        ]

    targets_by_id = {qt.id: qt for qt in key_result.quarter_targets if qt.id is not None}
    quarters_with_check_ins = {check_in_quarter(ci, targets_by_id) for ci in check_ins}
    offset = sum(
        qt.current_value or 0.0
        for qt in key_result.quarter_targets
        if qt.quarter not in quarters_with_check_ins
    )

    running: Dict[int, float] = {}
    points = []
    for check_in in check_ins:
        running[check_in_quarter(check_in, targets_by_id)] = check_in.value
        days = (to_naive_utc(check_in.occurred_at) - origin).total_seconds() / 86400
        points.append((days, offset + sum(running.values())))
    return points


def compute_forecast(
    points: Sequence[Tuple[float, float]],
    current_value: float,
    days_remaining: float,
) -> float:
    """
    Project the value at period end from a least-squares slope.

    Falls back to current_value with fewer than two distinct timestamps or
    when the projection is not finite.
    """
    if days_remaining <= 0 or len({x for x, _ in points}) < 2:
        return current_value

    xs = [x for x, _ in points]
    ys = [y for _, y in points]
    try:
        slope, _ = statistics.linear_regression(xs, ys)
    except statistics.StatisticsError:
        return current_value

    forecast = current_value + slope * days_remaining
    if not math.isfinite(forecast):
        return current_value
    return forecast


# =============================================================================
# Key result progress
# =============================================================================

def count_tasks(tasks: Sequence[Task]) -> Tuple[int, int]:
    """(completed, total) for a list of tasks."""
    completed = sum(1 for task in tasks if task.status == COMPLETED_TASK_STATUS)
    return completed, len(tasks)


def compute_kr_progress(
    key_result: KeyResult,
    check_ins: Sequence[CheckIn],
    tasks: Sequence[Task],
    year: int,
    as_of: AsOf,
    *,
    pace_margin: float = PACE_MARGIN,
) -> ProgressResult:
    """
    Compute progress, pace, forecast and completion for a key result.

    Only check-ins between the start of the year and as_of take part.

    Args:
        key_result: Key result snapshot (with quarter targets)
        check_ins: Check-ins in any order
        tasks: Linked tasks, reported as counts only
        year: Calendar year of the key result
        as_of: Date or datetime the computation is anchored to
        pace_margin: Band used by the pace classification

    Returns:
        ProgressResult with progress clamped to [0, 100]

    Raises:
        InvalidKeyResultInput: When the snapshot breaks the input contract
    """
    KeyResultValidator.validate(key_result, check_ins, year)

    as_of_moment = normalize_as_of(as_of)
    year_start, year_end = year_window(year)
    window_start = datetime.combine(year_start, time.min)
    window_end = min(as_of_moment, datetime.combine(year_end, time.min) - timedelta(microseconds=1))

    windowed = check_ins_in_window(check_ins, window_start, window_end)
    current_value = resolve_current_value(key_result, windowed)

    direction = key_result.direction
    start = key_result.start_value
    target = key_result.target_value
    tolerance = maintain_tolerance(start, target, key_result.tolerance_band)

    progress = compute_progress(direction, current_value, start, target, key_result.tolerance_band)
    expected = expected_progress_in_window(as_of_moment.date(), year_start, year_end)
    pace_status = classify_pace(progress, expected, pace_margin)

    days_elapsed = elapsed_days(as_of_moment.date(), year_start, year_end)
    days_remaining = (year_end - year_start).days - days_elapsed

    forecast = compute_forecast(
        value_series(key_result, windowed, window_start),
        current_value,
        days_remaining,
    )
    tasks_completed, tasks_total = count_tasks(tasks)
    latest = latest_check_in(windowed)

    logger.debug(
        f"KR {key_result.id}: current={current_value} progress={progress:.1f} "
        f"expected={expected:.3f} pace={pace_status.value}"
    )

    return ProgressResult(
        progress=progress,
        current_value=current_value,
        pace_status=pace_status,
        expected_progress=expected,
        forecast=forecast,
        is_complete=is_target_reached(direction, current_value, target, tolerance),
        start_value=start,
        target_value=target,
        expected_value=compute_expected_value(direction, expected, start, target),
        delta=compute_delta(direction, current_value, target),
        days_elapsed=days_elapsed,
        days_remaining=days_remaining,
        check_in_count=len(windowed),
        last_check_in_at=to_naive_utc(latest.occurred_at) if latest else None,
        tasks_completed=tasks_completed,
        tasks_total=tasks_total,
    )
