"""
Progress system pipeline functions.

Stateless orchestration logic: fetch snapshots, consult the progress cache,
invoke the engine, invalidate on new check-ins.

The HTTP routes post whole snapshots and go through
compute_key_result_pipeline and objective_progress_pipeline.
load_key_result_progress_pipeline and record_check_in_pipeline are the entry
points for a host service that plugs its storage in as a ProgressDataSource;
this package ships no concrete source.
"""

import asyncio
import hashlib
import logging
from datetime import datetime
from typing import List, Optional, Sequence

from common.utils.exceptions import NotFoundException
from okr.schemas.progress import (
    CheckIn,
    KeyResult,
    KeyResultRollupEntry,
    KeyResultSnapshot,
    ObjectiveProgress,
    ProgressResult,
    Task,
)
from okr.services.progress.data_source import ProgressDataSource
from okr.services.progress.progress_cache import ProgressCache
from okr.services.progress.progress_engine import (
    AsOf,
    PACE_MARGIN,
    compute_kr_progress,
    normalize_as_of,
    to_naive_utc,
)
from okr.services.progress.rollup import compute_objective_progress

logger = logging.getLogger(__name__)


def latest_check_in_at(check_ins: Sequence[CheckIn], as_of: AsOf) -> Optional[datetime]:
    """Timestamp of the newest check-in at or before as_of."""
    as_of_moment = normalize_as_of(as_of)
    timestamps = [
        to_naive_utc(ci.occurred_at) for ci in check_ins
        if to_naive_utc(ci.occurred_at) <= as_of_moment
    ]
    return max(timestamps) if timestamps else None


def resolve_year(key_result: KeyResult, year: Optional[int], as_of: AsOf) -> int:
    """Explicit year, else the key result's year, else the as-of year."""
    if year is not None:
        return year
    if key_result.year is not None:
        return key_result.year
    return normalize_as_of(as_of).year


def snapshot_fingerprint(
    key_result: KeyResult,
    check_ins: Sequence[CheckIn],
    tasks: Sequence[Task],
    as_of: AsOf,
    pace_margin: float,
) -> str:
    """
    Digest of everything a computation reads.

    Covers the key result definition, the check-ins at or before as_of, the
    task statuses and the pace margin.
    """
    as_of_moment = normalize_as_of(as_of)
    visible = sorted(
        (to_naive_utc(ci.occurred_at).isoformat(), ci.value, ci.quarter_target_id or "")
        for ci in check_ins
        if to_naive_utc(ci.occurred_at) <= as_of_moment
    )
    task_states = sorted((task.status, task.quarter_target_id or "") for task in tasks)

    digest = hashlib.sha256(key_result.model_dump_json().encode("utf-8"))
    digest.update(repr((visible, task_states, pace_margin)).encode("utf-8"))
    return digest.hexdigest()


def compute_key_result_pipeline(
    cache: Optional[ProgressCache],
    key_result: KeyResult,
    check_ins: Sequence[CheckIn],
    tasks: Sequence[Task],
    year: Optional[int],
    as_of: AsOf,
    pace_margin: float = PACE_MARGIN,
) -> ProgressResult:
    """
    Compute a key result's progress through the cache.

    Args:
        cache: Progress cache (None disables caching)
        key_result: Key result snapshot
        check_ins: Its check-ins
        tasks: Its linked tasks
        year: Calendar year (falls back to the key result's year)
        as_of: Date or datetime the computation is anchored to
        pace_margin: Band used by the pace classification

    Returns:
        ProgressResult
    """
    resolved_year = resolve_year(key_result, year, as_of)
    as_of_day = normalize_as_of(as_of).date()
    latest = latest_check_in_at(check_ins, as_of)
    fingerprint = snapshot_fingerprint(key_result, check_ins, tasks, as_of, pace_margin)

    if cache is not None:
        cached = cache.get(key_result.id, latest, resolved_year, as_of_day, fingerprint)
        if cached is not None:
            return cached

    result = compute_kr_progress(
        key_result,
        check_ins,
        tasks,
        resolved_year,
        as_of,
        pace_margin=pace_margin,
    )

    if cache is not None:
        cache.set(key_result.id, latest, resolved_year, as_of_day, result, fingerprint)

    return result


async def load_key_result_progress_pipeline(
    source: ProgressDataSource,
    cache: Optional[ProgressCache],
    key_result_id: str,
    year: Optional[int],
    as_of: AsOf,
    pace_margin: float = PACE_MARGIN,
) -> ProgressResult:
    """
    Fetch a key result's snapshot in parallel, then compute its progress.

    Raises:
        NotFoundException: If the key result does not exist
    """
    key_result, check_ins, tasks = await asyncio.gather(
        source.get_key_result(key_result_id),
        source.get_check_ins(key_result_id),
        source.get_tasks(key_result_id),
    )

    if key_result is None:
        raise NotFoundException("Key result not found", code="KEY_RESULT_NOT_FOUND")

    return compute_key_result_pipeline(
        cache, key_result, check_ins, tasks, year, as_of, pace_margin
    )


def objective_progress_pipeline(
    cache: Optional[ProgressCache],
    objective_id: str,
    snapshots: Sequence[KeyResultSnapshot],
    year: Optional[int],
    as_of: AsOf,
    pace_margin: float = PACE_MARGIN,
) -> ObjectiveProgress:
    """
    Compute every key result of an objective, then roll them up.

    Key result weights come from the snapshots.
    """
    entries: List[KeyResultRollupEntry] = []

    for snapshot in snapshots:
        key_result = snapshot.key_result
        result = compute_key_result_pipeline(
            cache,
            key_result,
            snapshot.check_ins,
            snapshot.tasks,
            year,
            as_of,
            pace_margin,
        )
        entries.append(
            KeyResultRollupEntry.from_result(key_result.id, result, key_result.weight)
        )

    return compute_objective_progress(objective_id, entries, pace_margin=pace_margin)


async def record_check_in_pipeline(
    source: ProgressDataSource,
    cache: Optional[ProgressCache],
    key_result_id: str,
    check_in: CheckIn,
) -> CheckIn:
    """
    Store a new check-in and invalidate the key result's cached progress.

    Returns:
        The stored check-in
    """
    stored = await source.add_check_in(key_result_id, check_in)

    if cache is not None:
        cache.invalidate(key_result_id)

    logger.info(f"Recorded check-in for key result {key_result_id}")
    return stored


def invalidate_key_result_pipeline(
    cache: Optional[ProgressCache],
    key_result_id: str,
) -> int:
    """Drop a key result's cached progress. Returns the number removed."""
    if cache is None:
        return 0
    return cache.invalidate(key_result_id)
