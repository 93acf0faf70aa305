"""Tests for cycle/period length smoothing and batch re-estimation."""

from __future__ import annotations

import pytest

from cyclesync.menstrual.config_loader import CycleEngineConfig
from cyclesync.menstrual.dates import add_years, round_half_up
from cyclesync.menstrual.estimator import AdaptiveEstimator, smooth
from cyclesync.menstrual.tests.conftest import days_ago, make_period
from cyclesync.models.cycle import CycleProfile


@pytest.fixture
def estimator(cycle_config: CycleEngineConfig) -> AdaptiveEstimator:
    return AdaptiveEstimator(cycle_config)


class TestRounding:
    @pytest.mark.parametrize(
        "value, expected",
        [(28.6, 29), (5.3, 5), (2.5, 3), (3.5, 4), (-0.5, 0), (-0.6, -1)],
    )
    def test_round_half_up(self, value: float, expected: int) -> None:
        assert round_half_up(value) == expected

    def test_add_years_handles_leap_day(self) -> None:
        leap = days_ago(0).replace(year=2024, month=2, day=29)
        assert add_years(leap, 1).date().isoformat() == "2025-02-28"

    def test_smooth(self) -> None:
        assert smooth(28, 30, 0.7) == 29
        assert smooth(5, 6, 0.7) == 5
        assert smooth(28, 45, 0.7) == 33


class TestIncrementalUpdates:
    def test_valid_gap_updates_cycle_length(
        self, estimator: AdaptiveEstimator, profile: CycleProfile
    ) -> None:
        assert estimator.observe_cycle_gap(profile, 30)
        assert profile.cycle_length == 29

    @pytest.mark.parametrize("gap", [10, 20, 46, 90])
    def test_outlier_gap_is_ignored(
        self, estimator: AdaptiveEstimator, profile: CycleProfile, gap: int
    ) -> None:
        assert not estimator.observe_cycle_gap(profile, gap)
        assert profile.cycle_length == 28

    def test_boundary_gaps_are_accepted(
        self, estimator: AdaptiveEstimator, profile: CycleProfile
    ) -> None:
        assert estimator.observe_cycle_gap(profile, 21)
        assert estimator.observe_cycle_gap(profile, 45)

    def test_period_days_update(
        self, estimator: AdaptiveEstimator, profile: CycleProfile
    ) -> None:
        assert estimator.observe_period_days(profile, 6)
        assert profile.period_length == 5
        assert estimator.observe_period_days(profile, 9)
        assert profile.period_length == 6

    def test_period_days_outlier(
        self, estimator: AdaptiveEstimator, profile: CycleProfile
    ) -> None:
        assert not estimator.observe_period_days(profile, 40)
        assert not estimator.observe_period_days(profile, 0)
        assert profile.period_length == 5

    def test_reset(self, estimator: AdaptiveEstimator, profile: CycleProfile) -> None:
        profile.cycle_length, profile.period_length = 35, 8
        estimator.reset(profile)
        assert (profile.cycle_length, profile.period_length) == (28, 5)


class TestBatchReestimate:
    def test_mean_of_recent_gaps(
        self, estimator: AdaptiveEstimator, profile: CycleProfile
    ) -> None:
        periods = [
            make_period(days_ago(200)),
            make_period(days_ago(56)),
            make_period(days_ago(26)),
            make_period(days_ago(0)),
        ]
        # Only the last three count: gaps of 30 and 26
        assert estimator.reestimate_cycle_length(profile, periods)
        assert profile.cycle_length == 28

    def test_invalid_gaps_are_skipped(
        self, estimator: AdaptiveEstimator, profile: CycleProfile
    ) -> None:
        periods = [
            make_period(days_ago(100)),
            make_period(days_ago(35)),
            make_period(days_ago(0)),
        ]
        # 65-day gap is ignored, 35-day gap is used
        assert estimator.reestimate_cycle_length(profile, periods)
        assert profile.cycle_length == 35

    def test_no_valid_gap_leaves_estimate(
        self, estimator: AdaptiveEstimator, profile: CycleProfile
    ) -> None:
        periods = [make_period(days_ago(10)), make_period(days_ago(0))]
        assert not estimator.reestimate_cycle_length(profile, periods)
        assert profile.cycle_length == 28

    def test_single_period_is_a_noop(
        self, estimator: AdaptiveEstimator, profile: CycleProfile
    ) -> None:
        assert not estimator.reestimate_cycle_length(profile, [make_period(days_ago(3))])

    def test_gaps_are_rounded(
        self, estimator: AdaptiveEstimator, profile: CycleProfile
    ) -> None:
        periods = [
            make_period(days_ago(29.6)),
            make_period(days_ago(0)),
        ]
        estimator.reestimate_cycle_length(profile, periods)
        assert profile.cycle_length == 30
