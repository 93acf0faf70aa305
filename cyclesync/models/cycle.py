"""Pydantic models for cycle tracking: profiles, periods, symptoms, derived views."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import Field, field_validator

from cyclesync.models.base import CycleSyncBase, TimestampMixin, as_utc


# ---------- Enums ----------

class FlowIntensity(str, Enum):
    light = "light"
    medium = "medium"
    heavy = "heavy"


class SymptomType(str, Enum):
    cramps = "cramps"
    headache = "headache"
    mood_swings = "mood_swings"
    bloating = "bloating"
    fatigue = "fatigue"
    breast_tenderness = "breast_tenderness"
    acne = "acne"
    back_pain = "back_pain"
    nausea = "nausea"
    cravings = "cravings"
    anxiety = "anxiety"
    other = "other"


class CyclePhase(str, Enum):
    menstrual = "menstrual"
    follicular = "follicular"
    ovulation = "ovulation"
    luteal = "luteal"


class CycleEventType(str, Enum):
    period_started = "period_started"
    period_started_early = "period_started_early"
    period_ended = "period_ended"
    period_logged = "period_logged"
    expected_period_set = "expected_period_set"


PHASE_NAMES: dict[CyclePhase, str] = {
    CyclePhase.menstrual: "Period",
    CyclePhase.follicular: "Follicular Phase",
    CyclePhase.ovulation: "Ovulation Window",
    CyclePhase.luteal: "Luteal Phase",
}


def _utc_or_none(value: datetime | None) -> datetime | None:
    return as_utc(value) if value is not None else None


# ---------- Stored records ----------

class Period(CycleSyncBase):
    period_id: uuid.UUID = Field(default_factory=uuid.uuid4)
    start_date: datetime
    end_date: datetime | None = None
    flow: FlowIntensity = FlowIntensity.medium

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_dates(cls, value: datetime | None) -> datetime | None:
        return _utc_or_none(value)

    @property
    def is_ongoing(self) -> bool:
        return self.end_date is None


class Symptom(CycleSyncBase):
    symptom_id: uuid.UUID = Field(default_factory=uuid.uuid4)
    date: datetime
    type: SymptomType
    severity: int = Field(default=3, ge=1, le=5)
    notes: str | None = Field(default=None, max_length=200)

    @field_validator("date")
    @classmethod
    def normalize_date(cls, value: datetime) -> datetime:
        return as_utc(value)


class ExpectedPeriod(CycleSyncBase):
    """User-asserted forecast; all-empty when no override is active."""

    start_date: datetime | None = None
    end_date: datetime | None = None
    is_manually_set: bool = False

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_dates(cls, value: datetime | None) -> datetime | None:
        return _utc_or_none(value)


class CycleProfile(CycleSyncBase, TimestampMixin):
    """One user's cycle document.

    ``periods`` and ``symptoms`` are keyed by record id. ``periods`` is kept
    in ascending ``start_date`` order by the ledger.
    """

    user_id: uuid.UUID
    cycle_length: int = Field(default=28, ge=21, le=45)
    period_length: int = Field(default=5, ge=1, le=10)
    periods: dict[uuid.UUID, Period] = Field(default_factory=dict)
    symptoms: dict[uuid.UUID, Symptom] = Field(default_factory=dict)
    last_period_start: datetime | None = None
    last_period_end: datetime | None = None
    expected_next_period: ExpectedPeriod = Field(default_factory=ExpectedPeriod)
    share_with: list[uuid.UUID] = Field(default_factory=list)
    is_tracking: bool = True
    version: int = 0

    @field_validator("last_period_start", "last_period_end")
    @classmethod
    def normalize_dates(cls, value: datetime | None) -> datetime | None:
        return _utc_or_none(value)


# ---------- Derived views ----------

class PhaseInfo(CycleSyncBase):
    phase: CyclePhase
    name: str
    day: int


class LastPeriod(CycleSyncBase):
    start_date: datetime
    end_date: datetime | None = None
    days_ago: int


class NextPeriod(CycleSyncBase):
    start_date: datetime
    end_date: datetime | None = None
    is_manually_set: bool = False


class FertileWindow(CycleSyncBase):
    start: datetime
    end: datetime
    ovulation_day: datetime


class OngoingPeriod(CycleSyncBase):
    start_date: datetime
    flow: FlowIntensity
    day_count: int


class ShareTarget(CycleSyncBase):
    user_id: uuid.UUID
    name: str | None = None


class CycleSnapshot(CycleSyncBase):
    """Derived state common to the owner's view and a shared view."""

    cycle_length: int
    period_length: int
    is_tracking: bool
    current_phase: PhaseInfo | None = None
    last_period: LastPeriod | None = None
    next_period: NextPeriod | None = None
    has_ongoing_period: bool = False
    ongoing_period: OngoingPeriod | None = None
    fertile_window: FertileWindow | None = None
    recent_periods: list[Period] = Field(default_factory=list)


class CycleView(CycleSnapshot):
    share_with: list[ShareTarget] = Field(default_factory=list)


class SharedCycleView(CycleSnapshot):
    owner: ShareTarget
    recent_symptoms: list[Symptom] = Field(default_factory=list)


# ---------- Operation results ----------

class StartPeriodResult(CycleSyncBase):
    period: Period
    came_early: bool
    current_phase: PhaseInfo | None = None
    next_period: NextPeriod | None = None


class EndPeriodResult(CycleSyncBase):
    period: Period
    period_length: int


class DeletePeriodResult(CycleSyncBase):
    remaining_periods: int


class ClearPeriodsResult(CycleSyncBase):
    deleted_count: int


class CycleSettings(CycleSyncBase):
    cycle_length: int
    period_length: int
    is_tracking: bool


class ClearExpectedResult(CycleSyncBase):
    next_period: NextPeriod | None = None


class SharingResult(CycleSyncBase):
    share_with: list[ShareTarget] = Field(default_factory=list)


class CycleNotification(CycleSyncBase):
    type: CycleEventType
    title: str
    message: str
    data: dict[str, Any] = Field(default_factory=dict)


# ---------- Request bodies ----------

class StartPeriodRequest(CycleSyncBase):
    date: datetime | None = None
    flow: FlowIntensity | None = None


class EndPeriodRequest(CycleSyncBase):
    date: datetime | None = None


class LogPeriodRequest(CycleSyncBase):
    start_date: datetime
    end_date: datetime | None = None
    flow: FlowIntensity | None = None


class SymptomCreate(CycleSyncBase):
    date: datetime | None = None
    type: SymptomType
    severity: int | None = Field(default=None, ge=1, le=5)
    notes: str | None = Field(default=None, max_length=200)


class SettingsUpdate(CycleSyncBase):
    cycle_length: int | None = Field(default=None, ge=21, le=45)
    period_length: int | None = Field(default=None, ge=1, le=10)
    is_tracking: bool | None = None


class ExpectedPeriodRequest(CycleSyncBase):
    start_date: datetime
    end_date: datetime | None = None


class SharingUpdate(CycleSyncBase):
    share_with: list[uuid.UUID]
