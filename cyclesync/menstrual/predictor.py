"""Phase & prediction calculator.

Pure functions of a ``CycleProfile`` and a reference instant ``as_of``:
nothing here mutates the profile or reads the clock on its own.

Phase boundaries are fixed cycle days and do not scale with
``cycle_length``:

    day <= period_length  menstrual
    day <= 13             follicular
    day <= 16             ovulation
    otherwise             luteal

The fertile window is likewise a fixed offset from the last period start
(+10 to +16 days, ovulation at +14).  This is a known limitation for long
or short cycles and is kept as-is.

Usage::

    predictor = CyclePredictor()
    view = predictor.build_view(profile, as_of=utc_now())
    view.current_phase.phase   # CyclePhase.follicular
"""

from __future__ import annotations

import math
from datetime import datetime

from cyclesync.menstrual.config_loader import CycleEngineConfig, get_cycle_config
from cyclesync.menstrual.dates import add_days, days_between
from cyclesync.menstrual.ledger import PeriodLedger
from cyclesync.models.base import utc_now
from cyclesync.models.cycle import (
    PHASE_NAMES,
    CyclePhase,
    CycleProfile,
    CycleView,
    FertileWindow,
    LastPeriod,
    NextPeriod,
    OngoingPeriod,
    PhaseInfo,
    ShareTarget,
)


class CyclePredictor:
    """Derive phase, fertile window and next-period forecast from a profile."""

    def __init__(self, config: CycleEngineConfig | None = None) -> None:
        self._config = config or get_cycle_config()

    def current_cycle_day(
        self, profile: CycleProfile, as_of: datetime | None = None
    ) -> int | None:
        """1-indexed day within the current cycle, or None without history.

        A remainder of 0 maps to ``cycle_length``; the result is never 0.
        """
        if profile.last_period_start is None:
            return None
        today = as_of or utc_now()
        diff_days = math.ceil(abs(days_between(today, profile.last_period_start)))
        return diff_days % profile.cycle_length or profile.cycle_length

    def phase_for_day(self, profile: CycleProfile, cycle_day: int) -> CyclePhase:
        if cycle_day <= profile.period_length:
            return CyclePhase.menstrual
        if cycle_day <= self._config.follicular_last_day:
            return CyclePhase.follicular
        if cycle_day <= self._config.ovulation_last_day:
            return CyclePhase.ovulation
        return CyclePhase.luteal

    def current_phase(
        self, profile: CycleProfile, as_of: datetime | None = None
    ) -> PhaseInfo | None:
        cycle_day = self.current_cycle_day(profile, as_of)
        if not cycle_day:
            return None
        phase = self.phase_for_day(profile, cycle_day)
        return PhaseInfo(phase=phase, name=PHASE_NAMES[phase], day=cycle_day)

    def fertile_window(self, profile: CycleProfile) -> FertileWindow | None:
        start = profile.last_period_start
        if start is None:
            return None
        return FertileWindow(
            start=add_days(start, self._config.fertile_start_offset),
            end=add_days(start, self._config.fertile_end_offset),
            ovulation_day=add_days(start, self._config.ovulation_offset),
        )

    def next_period(self, profile: CycleProfile) -> NextPeriod | None:
        """Manual override if set, otherwise the calculated forecast."""
        expected = profile.expected_next_period
        if expected.is_manually_set and expected.start_date is not None:
            return NextPeriod(
                start_date=expected.start_date,
                end_date=expected.end_date,
                is_manually_set=True,
            )
        if profile.last_period_start is None:
            return None
        predicted_start = add_days(profile.last_period_start, profile.cycle_length)
        return NextPeriod(
            start_date=predicted_start,
            end_date=add_days(predicted_start, profile.period_length - 1),
            is_manually_set=False,
        )

    def last_period(
        self, profile: CycleProfile, as_of: datetime | None = None
    ) -> LastPeriod | None:
        if profile.last_period_start is None:
            return None
        today = as_of or utc_now()
        return LastPeriod(
            start_date=profile.last_period_start,
            end_date=profile.last_period_end,
            days_ago=math.floor(days_between(today, profile.last_period_start)),
        )

    def ongoing_period(
        self, profile: CycleProfile, as_of: datetime | None = None
    ) -> OngoingPeriod | None:
        ongoing = PeriodLedger(profile, self._config).ongoing()
        if ongoing is None:
            return None
        today = as_of or utc_now()
        return OngoingPeriod(
            start_date=ongoing.start_date,
            flow=ongoing.flow,
            day_count=math.ceil(days_between(today, ongoing.start_date)) + 1,
        )

    # ------------------------------------------------------------------
    # Composite views
    # ------------------------------------------------------------------

    def snapshot_fields(
        self, profile: CycleProfile, as_of: datetime | None = None
    ) -> dict:
        """Field values shared by every derived view of ``profile``."""
        today = as_of or utc_now()
        ongoing = self.ongoing_period(profile, today)
        return {
            "cycle_length": profile.cycle_length,
            "period_length": profile.period_length,
            "is_tracking": profile.is_tracking,
            "current_phase": self.current_phase(profile, today),
            "last_period": self.last_period(profile, today),
            "next_period": self.next_period(profile),
            "has_ongoing_period": ongoing is not None,
            "ongoing_period": ongoing,
            "fertile_window": self.fertile_window(profile),
            "recent_periods": PeriodLedger(profile, self._config).recent(
                self._config.recent_periods
            ),
        }

    def build_view(
        self,
        profile: CycleProfile,
        as_of: datetime | None = None,
        share_with: list[ShareTarget] | None = None,
    ) -> CycleView:
        """The owner's full view, including who the cycle is shared with."""
        if share_with is None:
            share_with = [ShareTarget(user_id=uid) for uid in profile.share_with]
        return CycleView(**self.snapshot_fields(profile, as_of), share_with=share_with)
