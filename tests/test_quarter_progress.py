"""Unit tests for quarter target progress."""

import pytest
from datetime import date

from okr.schemas.progress import PaceStatus, QuarterTarget
from okr.services.progress.input_validator import InvalidKeyResultInput
from okr.services.progress.quarter_progress import (
    compute_quarter_progress,
    find_quarter_target,
)


class TestFindQuarterTarget:
    def test_returns_matching_target(self, quarterly_key_result):
        assert find_quarter_target(quarterly_key_result, 2).id == "q2"

    def test_missing_quarter_raises(self, quarterly_key_result):
        with pytest.raises(InvalidKeyResultInput) as exc_info:
            find_quarter_target(quarterly_key_result, 3)

        assert exc_info.value.status_code == 422
        assert exc_info.value.key_result_id == "kr-quarterly"

    def test_out_of_range_quarter_raises(self, quarterly_key_result):
        with pytest.raises(InvalidKeyResultInput):
            find_quarter_target(quarterly_key_result, 5)


class TestResetQuarterly:
    def test_quarter_measured_from_zero(
        self, quarterly_key_result, make_check_in, sample_tasks, year,
    ):
        check_ins = [make_check_in(20, date(2025, 5, 10), quarter_target_id="q2")]

        result = compute_quarter_progress(
            quarterly_key_result, 2, check_ins, sample_tasks, year, date(2025, 5, 16),
        )

        assert result.current_value == 20
        assert result.progress == pytest.approx(80)
        assert result.start_value == 0
        assert result.target_value == 25
        assert result.expected_progress == pytest.approx(45 / 91)
        assert result.days_elapsed == 45
        assert result.days_remaining == 46
        assert result.is_complete is False

    def test_only_linked_tasks_are_counted(
        self, quarterly_key_result, sample_tasks, year,
    ):
        result = compute_quarter_progress(
            quarterly_key_result, 2, [], sample_tasks, year, date(2025, 5, 16),
        )

        assert result.tasks_total == 1
        assert result.tasks_completed == 0

    def test_other_quarters_check_ins_are_ignored(
        self, quarterly_key_result, make_check_in, year,
    ):
        check_ins = [
            make_check_in(99, date(2025, 2, 1), quarter_target_id="q1"),
            make_check_in(10, date(2025, 5, 1), quarter_target_id="q2"),
        ]

        result = compute_quarter_progress(
            quarterly_key_result, 2, check_ins, [], year, date(2025, 5, 16),
        )

        assert result.current_value == 10
        assert result.check_in_count == 1

    def test_stored_value_after_quarter_end(self, quarterly_key_result, year):
        result = compute_quarter_progress(
            quarterly_key_result, 1, [], [], year, date(2025, 5, 16),
        )

        assert result.current_value == 20
        assert result.progress == pytest.approx(80)
        assert result.expected_progress == 1
        assert result.pace_status == PaceStatus.BEHIND


class TestCumulative:
    @pytest.fixture
    def cumulative_key_result(self, make_key_result):
        return make_key_result(
            quarter_targets=[
                QuarterTarget(id="q1", quarter=1, target_value=30, current_value=12),
            ],
        )

    def test_window_opens_at_year_start(self, cumulative_key_result, make_check_in, year):
        check_ins = [make_check_in(15, date(2025, 2, 1))]

        result = compute_quarter_progress(
            cumulative_key_result, 1, check_ins, [], year, date(2025, 3, 1),
        )

        assert result.current_value == 15
        assert result.progress == pytest.approx(50)
        assert result.expected_progress == pytest.approx(59 / 90)

    def test_stored_quarter_value_without_check_ins(self, cumulative_key_result, year):
        result = compute_quarter_progress(
            cumulative_key_result, 1, [], [], year, date(2025, 3, 1),
        )

        assert result.current_value == 12
        assert result.progress == pytest.approx(40)

    def test_invalid_key_result_is_rejected(self, make_key_result, make_check_in, year):
        kr = make_key_result(quarter_targets=[QuarterTarget(quarter=1, target_value=30)])
        check_ins = [make_check_in(15, date(2025, 2, 1), quarter_target_id="missing")]

        with pytest.raises(InvalidKeyResultInput):
            compute_quarter_progress(kr, 1, check_ins, [], year, date(2025, 3, 1))
