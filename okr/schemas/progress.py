"""
Pydantic models for the Progress system.

Defines the typed input snapshots consumed by the progress engine
(key results, quarter targets, check-ins, tasks), the computed records it
returns, and the request/response bodies of the progress API.

Attributes are snake_case; JSON uses camelCase aliases and either form is
accepted on input.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional, List

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class KrType(str, Enum):
    """Informational key result classification."""
    METRIC = "metric"
    COUNT = "count"
    MILESTONE = "milestone"
    RATE = "rate"
    AVERAGE = "average"


class KrDirection(str, Enum):
    """How movement toward the target is interpreted."""
    INCREASE = "increase"
    DECREASE = "decrease"
    MAINTAIN = "maintain"


class KrAggregation(str, Enum):
    """How quarterly values compose into the annual value."""
    CUMULATIVE = "cumulative"
    RESET_QUARTERLY = "reset_quarterly"


class PaceStatus(str, Enum):
    """Actual progress relative to the linear expectation."""
    AHEAD = "ahead"
    ON_TRACK = "on_track"
    AT_RISK = "at_risk"
    BEHIND = "behind"


class OkrModel(BaseModel):
    """Base model with camelCase aliases."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class SnapshotModel(OkrModel):
    """Immutable input record. Non-finite numbers are rejected."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        allow_inf_nan=False,
    )


# =============================================================================
# Input snapshots
# =============================================================================

class QuarterTarget(SnapshotModel):
    """Per-quarter sub-goal and running value for a key result."""
    id: Optional[str] = None
    quarter: int = Field(..., ge=1, le=4)
    target_value: float
    current_value: Optional[float] = None


class KeyResult(SnapshotModel):
    """A quantitative sub-goal tracked by a start/target/current triple."""
    id: str
    kr_type: KrType = KrType.METRIC
    direction: KrDirection = KrDirection.INCREASE
    aggregation: KrAggregation = KrAggregation.CUMULATIVE
    start_value: float = 0.0
    target_value: float
    current_value: Optional[float] = None
    year: Optional[int] = Field(None, ge=1, le=9998)
    weight: float = 1.0
    tolerance_band: Optional[float] = Field(None, gt=0)
    unit: Optional[str] = None
    quarter_targets: List[QuarterTarget] = Field(default_factory=list)


class CheckIn(SnapshotModel):
    """A timestamped observation of a key result's value."""
    id: Optional[str] = None
    value: float
    occurred_at: datetime = Field(
        ...,
        validation_alias=AliasChoices(
            "occurredAt", "occurred_at", "recordedAt", "recorded_at"
        ),
    )
    quarter_target_id: Optional[str] = None
    note: Optional[str] = None


class Task(SnapshotModel):
    """A task linked to a key result. Only counted, never weighted."""
    id: Optional[str] = None
    status: str = "todo"
    completed_at: Optional[datetime] = None
    quarter_target_id: Optional[str] = None


# =============================================================================
# Computed records
# =============================================================================

class ProgressResult(OkrModel):
    """Computed progress for a key result or quarter target."""
    progress: float
    current_value: float
    pace_status: PaceStatus
    expected_progress: float
    forecast: float
    is_complete: bool
    start_value: float
    target_value: float
    expected_value: float
    delta: float
    days_elapsed: int
    days_remaining: int
    check_in_count: int = 0
    last_check_in_at: Optional[datetime] = None
    tasks_completed: int = 0
    tasks_total: int = 0


class KeyResultRollupEntry(OkrModel):
    """A key result's computed progress as seen by the objective roll-up."""
    key_result_id: str
    progress: float
    weight: Optional[float] = None
    expected_progress: float = 0.0
    pace_status: Optional[PaceStatus] = None

    @classmethod
    def from_result(
        cls,
        key_result_id: str,
        result: ProgressResult,
        weight: Optional[float] = None,
    ) -> "KeyResultRollupEntry":
        return cls(
            key_result_id=key_result_id,
            progress=result.progress,
            weight=weight,
            expected_progress=result.expected_progress,
            pace_status=result.pace_status,
        )


class KeyResultContribution(OkrModel):
    """Per key result line of an objective roll-up."""
    key_result_id: str
    progress: float
    weight: float
    pace_status: Optional[PaceStatus] = None


class ObjectiveProgress(OkrModel):
    """Objective progress as a weighted average of its key results."""
    objective_id: str
    progress: float
    expected_progress: float
    pace_status: PaceStatus
    kr_count: int
    key_results: List[KeyResultContribution] = Field(default_factory=list)


class ObjectiveRollupEntry(OkrModel):
    """An objective's progress as seen by the plan roll-up."""
    objective_id: str
    progress: float
    weight: Optional[float] = None
    expected_progress: float = 0.0
    pace_status: Optional[PaceStatus] = None


class PlanProgress(OkrModel):
    """Plan progress as a weighted average of its objectives."""
    plan_id: str
    progress: float
    expected_progress: float
    pace_status: PaceStatus
    objective_count: int
    objectives: List[ObjectiveRollupEntry] = Field(default_factory=list)


class SeriesPoint(OkrModel):
    """One day (or week) of a key result's progress history."""
    day: date
    current_value: float
    progress: float
    expected_progress: float
    pace_status: PaceStatus
    check_in_count: int


# =============================================================================
# API request / response bodies
# =============================================================================

class KeyResultSnapshot(OkrModel):
    """A key result together with its history."""
    key_result: KeyResult
    check_ins: List[CheckIn] = Field(default_factory=list)
    tasks: List[Task] = Field(default_factory=list)


class KeyResultProgressRequest(KeyResultSnapshot):
    """Request body for computing a key result's progress."""
    year: Optional[int] = Field(None, ge=1, le=9998)
    as_of: Optional[datetime] = None


class QuarterProgressRequest(KeyResultProgressRequest):
    """Request body for computing a quarter target's progress."""
    quarter: int = Field(..., ge=1, le=4)


class SeriesRequest(KeyResultSnapshot):
    """Request body for building a daily/weekly progress series."""
    year: Optional[int] = Field(None, ge=1, le=9998)
    start: Optional[date] = None
    end: Optional[date] = None
    as_of: Optional[datetime] = None


class SeriesResponse(OkrModel):
    """Daily and weekly progress series."""
    key_result_id: str
    daily: List[SeriesPoint]
    weekly: List[SeriesPoint]


class ObjectiveRollupRequest(OkrModel):
    """Request body for rolling up precomputed key result progress."""
    objective_id: str
    key_results: List[KeyResultRollupEntry] = Field(default_factory=list)


class ObjectiveComputeRequest(OkrModel):
    """Request body for computing an objective from key result snapshots."""
    objective_id: str
    key_results: List[KeyResultSnapshot] = Field(default_factory=list)
    year: Optional[int] = Field(None, ge=1, le=9998)
    as_of: Optional[datetime] = None


class PlanRollupRequest(OkrModel):
    """Request body for rolling up objectives into a plan."""
    plan_id: str
    objectives: List[ObjectiveRollupEntry] = Field(default_factory=list)


class CacheInvalidationResponse(OkrModel):
    """Response for cache invalidation."""
    key_result_id: str
    removed: int
