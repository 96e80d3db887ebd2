"""Unit tests for daily and weekly progress series."""

import pytest
from datetime import date

from okr.schemas.progress import PaceStatus, QuarterTarget
from okr.services.progress.series import build_daily_series, build_weekly_series


class TestDailySeries:
    def test_one_point_per_day(self, make_key_result, year):
        series = build_daily_series(make_key_result(), [], year)

        assert len(series) == 365
        assert series[0].day == date(2025, 1, 1)
        assert series[-1].day == date(2025, 12, 31)

    def test_leap_year(self, make_key_result):
        assert len(build_daily_series(make_key_result(), [], 2024)) == 366

    def test_values_follow_check_ins(self, make_key_result, make_check_in, year):
        check_ins = [
            make_check_in(30, date(2025, 1, 3)),
            make_check_in(60, date(2025, 1, 6)),
        ]

        series = build_daily_series(
            make_key_result(), check_ins, year, date(2025, 1, 1), date(2025, 1, 10),
        )

        assert len(series) == 10
        assert [p.current_value for p in series[:6]] == [0, 0, 30, 30, 30, 60]
        assert series[2].check_in_count == 1
        assert series[3].check_in_count == 0
        assert series[5].progress == pytest.approx(60)

    def test_expected_progress_and_pace(self, make_key_result, year):
        series = build_daily_series(
            make_key_result(), [], year, date(2025, 1, 1), date(2025, 3, 1),
        )

        assert series[0].expected_progress == 0
        assert series[0].pace_status == PaceStatus.ON_TRACK
        assert series[-1].pace_status == PaceStatus.BEHIND

    def test_range_is_clipped_to_year(self, make_key_result, year):
        series = build_daily_series(
            make_key_result(), [], year, date(2024, 12, 1), date(2025, 1, 5),
        )

        assert series[0].day == date(2025, 1, 1)
        assert len(series) == 5

    def test_start_after_end_is_empty(self, make_key_result, year):
        assert build_daily_series(
            make_key_result(), [], year, date(2025, 6, 1), date(2025, 5, 1),
        ) == []


class TestWeeklySeries:
    def test_weeks_start_on_monday(self, make_key_result, make_check_in, year):
        check_ins = [
            make_check_in(10, date(2025, 1, 2)),
            make_check_in(20, date(2025, 1, 4)),
            make_check_in(40, date(2025, 1, 8)),
        ]
        daily = build_daily_series(
            make_key_result(), check_ins, year, date(2025, 1, 1), date(2025, 1, 12),
        )

        weekly = build_weekly_series(daily)

        # 2025-01-01 is a Wednesday
        assert [p.day for p in weekly] == [date(2024, 12, 30), date(2025, 1, 6)]
        assert [p.current_value for p in weekly] == [20, 40]
        assert [p.check_in_count for p in weekly] == [2, 1]

    def test_empty(self):
        assert build_weekly_series([]) == []


class TestHistoricalReplay:
    def test_days_before_first_check_in_replay_start_value(
        self, make_key_result, make_check_in, year,
    ):
        kr = make_key_result(start_value=10, target_value=110, current_value=80)
        check_ins = [make_check_in(60, date(2025, 6, 1))]

        early = build_daily_series(kr, check_ins, year, date(2025, 1, 1), date(2025, 1, 3))
        around = build_daily_series(kr, check_ins, year, date(2025, 5, 31), date(2025, 6, 1))

        assert [p.current_value for p in early] == [10, 10, 10]
        assert early[0].progress == 0
        assert early[0].pace_status == PaceStatus.ON_TRACK
        assert [p.current_value for p in around] == [10, 60]

    def test_stored_quarter_value_counts_once_quarter_begins(self, make_key_result, year):
        kr = make_key_result(
            aggregation="reset_quarterly",
            current_value=99,
            quarter_targets=[QuarterTarget(id="q2", quarter=2, target_value=25, current_value=15)],
        )

        series = build_daily_series(kr, [], year, date(2025, 3, 31), date(2025, 4, 1))

        assert [p.current_value for p in series] == [0, 15]

    def test_as_of_stops_the_replay(self, make_key_result, make_check_in, year):
        check_ins = [make_check_in(30, date(2025, 1, 3))]

        series = build_daily_series(
            make_key_result(), check_ins, year, as_of=date(2025, 1, 5),
        )

        assert [p.day for p in series][-1] == date(2025, 1, 5)
        assert len(series) == 5

    def test_as_of_before_year_is_empty(self, make_key_result, year):
        assert build_daily_series(make_key_result(), [], year, as_of=date(2024, 12, 31)) == []
