"""Shared test fixtures for OKR progress tests."""

import pytest
from datetime import date, datetime
from unittest.mock import AsyncMock

from okr.schemas.progress import CheckIn, KeyResult, QuarterTarget, Task
from okr.services.progress.data_source import ProgressDataSource
from okr.services.progress.progress_cache import ProgressCache


YEAR = 2025
# 181 of 365 days elapsed
MID_YEAR = date(2025, 7, 1)


@pytest.fixture
def year():
    return YEAR


@pytest.fixture
def as_of():
    return MID_YEAR


@pytest.fixture
def make_key_result():
    def _make(**overrides):
        fields = {
            "id": "kr-1",
            "kr_type": "metric",
            "direction": "increase",
            "aggregation": "cumulative",
            "start_value": 0,
            "target_value": 100,
        }
        fields.update(overrides)
        return KeyResult(**fields)
    return _make


@pytest.fixture
def make_check_in():
    def _make(value, occurred_at, **overrides):
        if isinstance(occurred_at, date) and not isinstance(occurred_at, datetime):
            occurred_at = datetime(occurred_at.year, occurred_at.month, occurred_at.day, 12)
        return CheckIn(value=value, occurred_at=occurred_at, **overrides)
    return _make


@pytest.fixture
def quarterly_key_result(make_key_result):
    """Reset-quarterly key result: Q1 stored 20, Q2 without stored value."""
    return make_key_result(
        id="kr-quarterly",
        aggregation="reset_quarterly",
        target_value=100,
        quarter_targets=[
            QuarterTarget(id="q1", quarter=1, target_value=25, current_value=20),
            QuarterTarget(id="q2", quarter=2, target_value=25),
        ],
    )


@pytest.fixture
def sample_tasks():
    return [
        Task(id="t1", status="completed", completed_at=datetime(2025, 2, 1)),
        Task(id="t2", status="in_progress"),
        Task(id="t3", status="todo", quarter_target_id="q2"),
    ]


@pytest.fixture
def progress_cache():
    return ProgressCache(ttl_seconds=300)


@pytest.fixture
def mock_data_source():
    source = AsyncMock(spec=ProgressDataSource)
    source.get_check_ins.return_value = []
    source.get_tasks.return_value = []
    return source
