"""Tests for cycle day, phase, fertile window and next-period prediction."""

from __future__ import annotations

from datetime import timedelta

import pytest

from cyclesync.menstrual.ledger import PeriodLedger
from cyclesync.menstrual.predictor import CyclePredictor
from cyclesync.menstrual.tests.conftest import (
    AS_OF,
    OWNER_ID,
    days_ago,
    make_period,
    profile_on_cycle_day,
)
from cyclesync.models.cycle import CyclePhase, CycleProfile, ExpectedPeriod


class TestCycleDay:
    def test_no_history(self, predictor: CyclePredictor, profile: CycleProfile) -> None:
        assert predictor.current_cycle_day(profile, AS_OF) is None
        assert predictor.current_phase(profile, AS_OF) is None

    @pytest.mark.parametrize("day", [1, 7, 14, 27])
    def test_day_within_cycle(self, predictor: CyclePredictor, day: int) -> None:
        assert predictor.current_cycle_day(profile_on_cycle_day(day), AS_OF) == day

    def test_elapsed_days_are_rounded_up(self, predictor: CyclePredictor) -> None:
        profile = CycleProfile(user_id=OWNER_ID, last_period_start=days_ago(3.1))
        assert predictor.current_cycle_day(profile, AS_OF) == 4

    def test_exact_multiple_maps_to_cycle_length(self, predictor: CyclePredictor) -> None:
        profile = CycleProfile(user_id=OWNER_ID, last_period_start=days_ago(28))
        assert predictor.current_cycle_day(profile, AS_OF) == 28

    def test_wraps_into_next_cycle(self, predictor: CyclePredictor) -> None:
        profile = CycleProfile(user_id=OWNER_ID, last_period_start=days_ago(31.5))
        assert predictor.current_cycle_day(profile, AS_OF) == 4


class TestPhases:
    @pytest.mark.parametrize(
        "day, phase",
        [
            (1, CyclePhase.menstrual),
            (3, CyclePhase.menstrual),
            (5, CyclePhase.menstrual),
            (6, CyclePhase.follicular),
            (13, CyclePhase.follicular),
            (14, CyclePhase.ovulation),
            (16, CyclePhase.ovulation),
            (17, CyclePhase.luteal),
            (20, CyclePhase.luteal),
            (28, CyclePhase.luteal),
        ],
    )
    def test_phase_boundaries(
        self, predictor: CyclePredictor, day: int, phase: CyclePhase
    ) -> None:
        info = predictor.current_phase(profile_on_cycle_day(day), AS_OF)
        assert info is not None
        assert info.phase is phase
        assert info.day == day

    def test_menstrual_phase_follows_period_length(self, predictor: CyclePredictor) -> None:
        profile = profile_on_cycle_day(7, period_length=7)
        assert predictor.current_phase(profile, AS_OF).phase is CyclePhase.menstrual

    def test_phase_names(self, predictor: CyclePredictor) -> None:
        assert predictor.current_phase(profile_on_cycle_day(2), AS_OF).name == "Period"
        assert (
            predictor.current_phase(profile_on_cycle_day(15), AS_OF).name
            == "Ovulation Window"
        )

    def test_boundaries_do_not_scale_with_cycle_length(
        self, predictor: CyclePredictor
    ) -> None:
        profile = profile_on_cycle_day(15, cycle_length=40)
        assert predictor.current_phase(profile, AS_OF).phase is CyclePhase.ovulation


class TestFertileWindow:
    def test_fixed_offsets(self, predictor: CyclePredictor) -> None:
        start = days_ago(5)
        window = predictor.fertile_window(
            CycleProfile(user_id=OWNER_ID, last_period_start=start, cycle_length=35)
        )
        assert window.start == start + timedelta(days=10)
        assert window.ovulation_day == start + timedelta(days=14)
        assert window.end == start + timedelta(days=16)

    def test_none_without_history(
        self, predictor: CyclePredictor, profile: CycleProfile
    ) -> None:
        assert predictor.fertile_window(profile) is None


class TestNextPeriod:
    def test_calculated_from_cycle_length(self, predictor: CyclePredictor) -> None:
        start = days_ago(10)
        profile = CycleProfile(
            user_id=OWNER_ID, last_period_start=start, cycle_length=30, period_length=6
        )
        forecast = predictor.next_period(profile)
        assert forecast.start_date == start + timedelta(days=30)
        assert forecast.end_date == start + timedelta(days=35)
        assert forecast.is_manually_set is False

    def test_manual_override_wins(self, predictor: CyclePredictor) -> None:
        override = AS_OF + timedelta(days=3)
        profile = CycleProfile(
            user_id=OWNER_ID,
            last_period_start=days_ago(10),
            expected_next_period=ExpectedPeriod(
                start_date=override, is_manually_set=True
            ),
        )
        forecast = predictor.next_period(profile)
        assert forecast.start_date == override
        assert forecast.end_date is None
        assert forecast.is_manually_set is True

    def test_manual_override_without_history(self, predictor: CyclePredictor) -> None:
        override = AS_OF + timedelta(days=3)
        profile = CycleProfile(
            user_id=OWNER_ID,
            expected_next_period=ExpectedPeriod(
                start_date=override, is_manually_set=True
            ),
        )
        assert predictor.next_period(profile).start_date == override

    def test_none_without_history(
        self, predictor: CyclePredictor, profile: CycleProfile
    ) -> None:
        assert predictor.next_period(profile) is None


class TestPeriodSummaries:
    def test_last_period_days_ago_floors(self, predictor: CyclePredictor) -> None:
        profile = CycleProfile(
            user_id=OWNER_ID,
            last_period_start=days_ago(10.7),
            last_period_end=days_ago(6),
        )
        last = predictor.last_period(profile, AS_OF)
        assert last.days_ago == 10
        assert last.end_date == days_ago(6)

    def test_ongoing_day_count(
        self, predictor: CyclePredictor, profile: CycleProfile
    ) -> None:
        PeriodLedger(profile).insert(make_period(days_ago(2.3), flow="heavy"))
        ongoing = predictor.ongoing_period(profile, AS_OF)
        assert ongoing.day_count == 4
        assert ongoing.flow.value == "heavy"

    def test_closed_latest_period_is_not_ongoing(
        self, predictor: CyclePredictor, profile: CycleProfile
    ) -> None:
        PeriodLedger(profile).insert(make_period(days_ago(9), days_ago(4)))
        assert predictor.ongoing_period(profile, AS_OF) is None


class TestView:
    def test_default_view_for_new_profile(
        self, predictor: CyclePredictor, profile: CycleProfile
    ) -> None:
        view = predictor.build_view(profile, AS_OF)
        assert view.cycle_length == 28
        assert view.period_length == 5
        assert view.is_tracking is True
        assert view.current_phase is None
        assert view.last_period is None
        assert view.next_period is None
        assert view.has_ongoing_period is False
        assert view.recent_periods == []
        assert view.share_with == []

    def test_view_lists_recent_periods_newest_first(
        self, predictor: CyclePredictor, profile: CycleProfile
    ) -> None:
        ledger = PeriodLedger(profile)
        for offset in (150, 120, 90, 60, 30, 2):
            start = days_ago(offset)
            end = None if offset == 2 else start + timedelta(days=4)
            ledger.insert(make_period(start, end))
        profile.last_period_start = days_ago(2)
        view = predictor.build_view(profile, AS_OF)
        assert [p.start_date for p in view.recent_periods][:2] == [days_ago(2), days_ago(30)]
        assert view.has_ongoing_period is True
        assert view.ongoing_period.start_date == days_ago(2)
        assert view.current_phase.phase is CyclePhase.menstrual
