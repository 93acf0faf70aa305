"""Tests for the period ledger and symptom log."""

from __future__ import annotations

from datetime import timedelta
from uuid import uuid4

import pytest

from cyclesync.menstrual.config_loader import CycleEngineConfig
from cyclesync.menstrual.errors import ConflictError, NotFoundError, ValidationError
from cyclesync.menstrual.ledger import PeriodLedger
from cyclesync.menstrual.symptom_log import SymptomLog
from cyclesync.menstrual.tests.conftest import AS_OF, days_ago, make_period
from cyclesync.models.cycle import CycleProfile, SymptomType


@pytest.fixture
def ledger(profile: CycleProfile, cycle_config: CycleEngineConfig) -> PeriodLedger:
    return PeriodLedger(profile, cycle_config)


class TestOrdering:
    def test_insert_keeps_start_order(self, ledger: PeriodLedger) -> None:
        late = make_period(days_ago(10), days_ago(6))
        early = make_period(days_ago(70), days_ago(66))
        middle = make_period(days_ago(40), days_ago(36))
        for p in (late, early, middle):
            ledger.insert(p)
        assert [p.period_id for p in ledger.ordered()] == [
            early.period_id,
            middle.period_id,
            late.period_id,
        ]
        assert ledger.latest() is late

    def test_recent_is_newest_first_and_capped(self, ledger: PeriodLedger) -> None:
        for i in range(8):
            start = days_ago(30 * (8 - i))
            ledger.insert(make_period(start, start + timedelta(days=4)))
        recent = ledger.recent(6)
        assert len(recent) == 6
        assert recent[0].start_date == days_ago(30)
        assert recent == sorted(recent, key=lambda p: p.start_date, reverse=True)

    def test_ongoing_only_reports_latest_open_period(self, ledger: PeriodLedger) -> None:
        ledger.insert(make_period(days_ago(40), days_ago(35)))
        assert ledger.ongoing() is None
        open_period = make_period(days_ago(2))
        ledger.insert(open_period)
        assert ledger.ongoing() is open_period
        assert ledger.has_open_period()

    def test_open_period_found_when_not_latest(self, ledger: PeriodLedger) -> None:
        open_period = make_period(days_ago(80))
        ledger.insert(open_period)
        ledger.insert(make_period(days_ago(60), days_ago(56)))
        assert ledger.ongoing() is None
        assert ledger.open_period() is open_period
        assert ledger.has_open_period()


class TestOverlap:
    def test_closed_intervals_touching_overlap(self, ledger: PeriodLedger) -> None:
        existing = make_period(days_ago(20), days_ago(15))
        ledger.insert(existing)
        assert ledger.find_overlap(days_ago(15), days_ago(10)) is existing

    def test_disjoint_intervals_do_not_overlap(self, ledger: PeriodLedger) -> None:
        ledger.insert(make_period(days_ago(20), days_ago(15)))
        assert ledger.find_overlap(days_ago(14), days_ago(10)) is None

    def test_open_existing_period_spans_seven_days(self, ledger: PeriodLedger) -> None:
        existing = make_period(days_ago(10))
        ledger.insert(existing)
        assert ledger.find_overlap(days_ago(4), days_ago(1)) is existing
        assert ledger.find_overlap(days_ago(2.5), days_ago(1)) is None

    def test_open_new_period_spans_seven_days(self, ledger: PeriodLedger) -> None:
        existing = make_period(days_ago(20), days_ago(16))
        ledger.insert(existing)
        assert ledger.find_overlap(days_ago(26), None) is existing
        assert ledger.find_overlap(days_ago(30), None) is None

    def test_ensure_no_overlap_reports_existing_start(self, ledger: PeriodLedger) -> None:
        ledger.insert(make_period(days_ago(20), days_ago(15)))
        with pytest.raises(ConflictError) as excinfo:
            ledger.ensure_no_overlap(days_ago(18), days_ago(12))
        assert excinfo.value.extra["overlaps_with_start"] == days_ago(20).date().isoformat()
        assert excinfo.value.kind == "conflict"


class TestRemoval:
    def test_remove_unknown_id_raises(self, ledger: PeriodLedger) -> None:
        with pytest.raises(NotFoundError):
            ledger.remove(uuid4())

    def test_removing_sole_period_clears_cache(
        self, ledger: PeriodLedger, profile: CycleProfile
    ) -> None:
        only = make_period(days_ago(5), days_ago(1))
        ledger.insert(only)
        profile.last_period_start, profile.last_period_end = only.start_date, only.end_date
        ledger.remove(only.period_id)
        assert profile.last_period_start is None
        assert profile.last_period_end is None

    def test_prefers_most_recent_completed_period(
        self, ledger: PeriodLedger, profile: CycleProfile
    ) -> None:
        older = make_period(days_ago(60), days_ago(55))
        newer = make_period(days_ago(30), days_ago(25))
        ongoing = make_period(days_ago(1))
        for p in (older, newer, ongoing):
            ledger.insert(p)
        ledger.remove(older.period_id)
        assert profile.last_period_start == newer.start_date
        assert profile.last_period_end == newer.end_date

    def test_falls_back_to_open_period(
        self, ledger: PeriodLedger, profile: CycleProfile
    ) -> None:
        completed = make_period(days_ago(30), days_ago(25))
        ongoing = make_period(days_ago(1))
        ledger.insert(completed)
        ledger.insert(ongoing)
        ledger.remove(completed.period_id)
        assert profile.last_period_start == ongoing.start_date
        assert profile.last_period_end is None

    def test_clear_returns_count(self, ledger: PeriodLedger, profile: CycleProfile) -> None:
        ledger.insert(make_period(days_ago(60), days_ago(55)))
        ledger.insert(make_period(days_ago(30), days_ago(25)))
        profile.last_period_start = days_ago(30)
        assert ledger.clear() == 2
        assert len(ledger) == 0
        assert profile.last_period_start is None


class TestSymptomLog:
    def test_append_defaults_severity(self, profile: CycleProfile) -> None:
        symptom = SymptomLog(profile).append(AS_OF, "cramps")
        assert symptom.severity == 3
        assert symptom.type is SymptomType.cramps
        assert profile.symptoms[symptom.symptom_id] is symptom

    def test_multiple_symptoms_same_day(self, profile: CycleProfile) -> None:
        log = SymptomLog(profile)
        log.append(AS_OF, "cramps")
        log.append(AS_OF, "cramps", severity=5)
        assert len(profile.symptoms) == 2

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"symptom_type": "sneezing"},
            {"symptom_type": "cramps", "severity": 0},
            {"symptom_type": "cramps", "severity": 6},
            {"symptom_type": "cramps", "notes": "x" * 201},
        ],
    )
    def test_rejects_invalid_input(self, profile: CycleProfile, kwargs: dict) -> None:
        with pytest.raises(ValidationError):
            SymptomLog(profile).append(AS_OF, **kwargs)
        assert profile.symptoms == {}

    def test_between_is_inclusive_and_newest_first(self, profile: CycleProfile) -> None:
        log = SymptomLog(profile)
        for d in (1, 5, 10, 40):
            log.append(days_ago(d), "fatigue")
        found = log.between(days_ago(10), days_ago(1))
        assert [s.date for s in found] == [days_ago(1), days_ago(5), days_ago(10)]

    def test_recent_window_and_limit(self, profile: CycleProfile) -> None:
        log = SymptomLog(profile)
        for hours in range(0, 24 * 6, 12):
            log.append(AS_OF - timedelta(hours=hours), "bloating")
        log.append(days_ago(8), "acne")
        recent = log.recent(AS_OF, window_days=7, limit=10)
        assert len(recent) == 10
        assert recent[0].date == AS_OF
        assert all(s.type is SymptomType.bloating for s in recent)
