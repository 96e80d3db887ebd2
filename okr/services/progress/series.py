"""
Daily and weekly progress series for burn-up and pace charts.
"""

import logging
from collections import Counter
from datetime import date, datetime, time, timedelta
from typing import List, Optional, Sequence

from okr.schemas.progress import CheckIn, KeyResult, SeriesPoint
from okr.services.progress.input_validator import KeyResultValidator
from okr.services.progress.progress_engine import (
    AsOf,
    PACE_MARGIN,
    check_ins_in_window,
    classify_pace,
    compute_progress,
    expected_progress_in_window,
    normalize_as_of,
    quarter_window,
    resolve_current_value,
    to_naive_utc,
    year_window,
)

logger = logging.getLogger(__name__)


def replay_key_result(key_result: KeyResult, day: date) -> KeyResult:
    """
    Key result as seen at the end of a past day.

    Stored aggregates are present-day values, so the overall current_value
    is dropped (the replay starts from start_value) and a quarter's stored
    value only counts once that quarter has begun.
    """
    quarter_targets = [
        qt if quarter_window(day.year, qt.quarter)[0] <= day
        else qt.model_copy(update={"current_value": None})
        for qt in key_result.quarter_targets
    ]
    return key_result.model_copy(
        update={"current_value": None, "quarter_targets": quarter_targets}
    )


def build_daily_series(
    key_result: KeyResult,
    check_ins: Sequence[CheckIn],
    year: int,
    start: Optional[date] = None,
    end: Optional[date] = None,
    *,
    as_of: Optional[AsOf] = None,
    pace_margin: float = PACE_MARGIN,
) -> List[SeriesPoint]:
    """
    Replay the engine at the end of each day.

    Args:
        key_result: Key result snapshot
        check_ins: Check-ins in any order
        year: Calendar year of the key result
        start: First day (defaults to January 1st, clipped to the year)
        end: Last day (defaults to December 31st, clipped to the year)
        as_of: When given, no day after it is replayed
        pace_margin: Band used by the pace classification

    Returns:
        One point per day; empty when start is after end
    """
    KeyResultValidator.validate(key_result, check_ins, year)

    year_start, year_end = year_window(year)
    last_day = year_end - timedelta(days=1)
    first = max(start or year_start, year_start)
    last = min(end or last_day, last_day)
    if as_of is not None:
        last = min(last, normalize_as_of(as_of).date())

    if first > last:
        return []

    window_start = datetime.combine(year_start, time.min)
    window_end = datetime.combine(last, time.max)
    windowed = check_ins_in_window(check_ins, window_start, window_end)
    per_day = Counter(to_naive_utc(ci.occurred_at).date() for ci in windowed)

    series: List[SeriesPoint] = []
    index = 0
    seen: List[CheckIn] = []
    day = first
    while day <= last:
        day_end = datetime.combine(day, time.max)
        while index < len(windowed) and to_naive_utc(windowed[index].occurred_at) <= day_end:
            seen.append(windowed[index])
            index += 1

        current_value = resolve_current_value(replay_key_result(key_result, day), seen)
        progress = compute_progress(
            key_result.direction,
            current_value,
            key_result.start_value,
            key_result.target_value,
            key_result.tolerance_band,
        )
        expected = expected_progress_in_window(day, year_start, year_end)

        series.append(SeriesPoint(
            day=day,
            current_value=current_value,
            progress=progress,
            expected_progress=expected,
            pace_status=classify_pace(progress, expected, pace_margin),
            check_in_count=per_day.get(day, 0),
        ))
        day += timedelta(days=1)

    logger.debug(f"Built {len(series)} daily points for KR {key_result.id}")
    return series


def build_weekly_series(daily: Sequence[SeriesPoint]) -> List[SeriesPoint]:
    """
    Collapse a daily series into ISO weeks (Monday start).

    Each week keeps its last day's values, dated at the week's Monday, and
    the sum of its check-in counts.
    """
    weekly: List[SeriesPoint] = []

    for point in daily:
        week_start = point.day - timedelta(days=point.day.weekday())
        if weekly and weekly[-1].day == week_start:
            count = weekly[-1].check_in_count + point.check_in_count
            weekly[-1] = point.model_copy(update={"day": week_start, "check_in_count": count})
        else:
            weekly.append(point.model_copy(update={"day": week_start}))

    return weekly
