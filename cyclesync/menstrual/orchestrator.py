"""Cycle update orchestrator — the only code path that mutates a profile.

Every mutation is a compare-and-swap transaction against the profile
store:

1. load the profile (or start from defaults when creation is allowed);
2. apply the change to that private copy; a ``CycleError`` aborts here
   and nothing is written;
3. save with the loaded version; a ``VersionConflict`` means another
   request for the same user won the race, so reload and reapply.

Notifications to viewers in ``share_with`` are sent after the save and
never fail the operation.

Usage::

    service = CycleOrchestrator(
        store=InMemoryProfileStore(),
        relationships=InMemoryRelationshipService(),
        notifications=InMemoryNotificationService(),
    )
    result = await service.start_period(user_id, flow="heavy")
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta
from typing import Callable, Iterable, TypeVar

from cyclesync.menstrual.collaborators import NotificationService, RelationshipService
from cyclesync.menstrual.config_loader import CycleEngineConfig, get_cycle_config
from cyclesync.menstrual.dates import add_years, days_between, round_half_up
from cyclesync.menstrual.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    VersionConflict,
)
from cyclesync.menstrual.estimator import AdaptiveEstimator
from cyclesync.menstrual.ledger import PeriodLedger
from cyclesync.menstrual.predictor import CyclePredictor
from cyclesync.menstrual.sharing import SharingGate
from cyclesync.menstrual.store import ProfileStore
from cyclesync.menstrual.symptom_log import SymptomLog
from cyclesync.models.base import as_utc, utc_now
from cyclesync.models.cycle import (
    ClearExpectedResult,
    ClearPeriodsResult,
    CycleEventType,
    CycleNotification,
    CycleProfile,
    CycleSettings,
    CycleView,
    DeletePeriodResult,
    EndPeriodResult,
    ExpectedPeriod,
    FlowIntensity,
    Period,
    SharedCycleView,
    SharingResult,
    StartPeriodResult,
    Symptom,
    SymptomType,
)

logger = logging.getLogger("cyclesync.menstrual.orchestrator")

T = TypeVar("T")

EVENT_MESSAGES: dict[CycleEventType, str] = {
    CycleEventType.period_started: "{name}'s period has started",
    CycleEventType.period_started_early: "{name}'s period started earlier than expected",
    CycleEventType.period_ended: "{name}'s period has ended",
    CycleEventType.period_logged: "{name} logged a past period",
    CycleEventType.expected_period_set: "{name} updated their expected period",
}


def _parse_flow(flow: FlowIntensity | str | None) -> FlowIntensity:
    if flow is None:
        return FlowIntensity.medium
    try:
        return FlowIntensity(flow)
    except ValueError:
        raise ValidationError(f"Unknown flow intensity: {flow!r}") from None


class CycleOrchestrator:
    """Top-level cycle operations for a single user at a time."""

    def __init__(
        self,
        store: ProfileStore,
        relationships: RelationshipService,
        notifications: NotificationService,
        config: CycleEngineConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._relationships = relationships
        self._notifications = notifications
        self._config = config or get_cycle_config()
        self._clock = clock
        self._estimator = AdaptiveEstimator(self._config)
        self._predictor = CyclePredictor(self._config)
        self._gate = SharingGate(relationships, self._config)

    @property
    def predictor(self) -> CyclePredictor:
        return self._predictor

    # ------------------------------------------------------------------
    # Transaction plumbing
    # ------------------------------------------------------------------

    def _new_profile(self, user_id: uuid.UUID) -> CycleProfile:
        return CycleProfile(
            user_id=user_id,
            cycle_length=self._config.default_cycle_length,
            period_length=self._config.default_period_length,
        )

    async def _mutate(
        self,
        user_id: uuid.UUID,
        apply: Callable[[CycleProfile], T],
        create_missing: bool = True,
    ) -> tuple[CycleProfile, T]:
        """Apply ``apply`` to the user's profile under compare-and-swap."""
        attempts = self._config.max_cas_retries
        for attempt in range(1, attempts + 1):
            profile = await self._store.load(user_id)
            if profile is None:
                if not create_missing:
                    raise NotFoundError("Cycle data not found")
                profile = self._new_profile(user_id)

            result = apply(profile)

            try:
                saved = await self._store.save(profile)
            except VersionConflict as exc:
                logger.warning(
                    "Concurrent update for %s (attempt %d/%d): %s",
                    user_id, attempt, attempts, exc,
                )
                continue
            return saved, result

        raise ConflictError("Cycle data was modified concurrently, please retry")

    async def _publish(
        self, profile: CycleProfile, event: CycleEventType, as_of: datetime
    ) -> None:
        """Tell every viewer in ``share_with`` about ``event``. Never raises."""
        if not profile.share_with:
            return
        try:
            names = await self._relationships.display_names([profile.user_id])
        except Exception as exc:
            logger.warning("Name lookup failed for %s: %s", profile.user_id, exc)
            names = {}
        name = names.get(profile.user_id) or "Someone"
        phase = self._predictor.current_phase(profile, as_of)
        notification = CycleNotification(
            type=event,
            title=f"{name}'s Cycle Update",
            message=EVENT_MESSAGES[event].format(name=name),
            data={
                "event": event.value,
                "owner_id": str(profile.user_id),
                "cycle_phase": phase.phase.value if phase else None,
            },
        )
        for viewer_id in profile.share_with:
            try:
                await self._notifications.notify(viewer_id, notification)
            except Exception:
                logger.warning(
                    "Failed to notify %s of %s from %s",
                    viewer_id, event.value, profile.user_id,
                    exc_info=True,
                )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_cycle(self, user_id: uuid.UUID) -> CycleView:
        """The owner's derived view. Users without a profile see defaults."""
        profile = await self._store.load(user_id) or self._new_profile(user_id)
        targets = await self._gate.share_targets(profile.share_with)
        return self._predictor.build_view(profile, self._clock(), share_with=targets)

    async def get_symptoms(
        self,
        user_id: uuid.UUID,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> list[Symptom]:
        now = self._clock()
        start = as_utc(start_date) if start_date else now - timedelta(
            days=self._config.symptom_lookback_days
        )
        end = as_utc(end_date) if end_date else now
        profile = await self._store.load(user_id)
        if profile is None:
            return []
        return SymptomLog(profile).between(start, end)

    async def get_shared_cycle(
        self, viewer_id: uuid.UUID, owner_id: uuid.UUID
    ) -> SharedCycleView:
        await self._gate.require_connection(viewer_id, owner_id)
        profile = self._gate.require_shared(await self._store.load(owner_id), viewer_id)
        return await self._gate.shared_view(profile, self._predictor, self._clock())

    # ------------------------------------------------------------------
    # Periods
    # ------------------------------------------------------------------

    async def start_period(
        self,
        user_id: uuid.UUID,
        date: datetime | None = None,
        flow: FlowIntensity | str | None = None,
    ) -> StartPeriodResult:
        now = self._clock()
        start = as_utc(date) if date else now
        intensity = _parse_flow(flow)

        def apply(profile: CycleProfile) -> tuple[Period, bool]:
            ledger = PeriodLedger(profile, self._config)
            if ledger.has_open_period():
                raise ConflictError(
                    "There is already an ongoing period. Please end it first."
                )
            latest = ledger.latest()
            if latest is not None and start < latest.start_date:
                raise ConflictError(
                    "A later period is already recorded; log past periods instead."
                )
            ledger.ensure_no_overlap(start, None)

            if profile.last_period_start is not None:
                gap = round_half_up(days_between(start, profile.last_period_start))
                self._estimator.observe_cycle_gap(profile, gap)

            expected = profile.expected_next_period
            came_early = (
                expected.is_manually_set
                and expected.start_date is not None
                and start.date() < expected.start_date.date()
            )

            period = Period(start_date=start, flow=intensity)
            ledger.insert(period)
            profile.last_period_start = start
            profile.expected_next_period = ExpectedPeriod()
            return period, came_early

        profile, (period, came_early) = await self._mutate(user_id, apply)
        event = (
            CycleEventType.period_started_early
            if came_early
            else CycleEventType.period_started
        )
        logger.info("Period started for %s (%s)", user_id, event.value)
        await self._publish(profile, event, now)

        return StartPeriodResult(
            period=period,
            came_early=came_early,
            current_phase=self._predictor.current_phase(profile, now),
            next_period=self._predictor.next_period(profile),
        )

    async def end_period(
        self, user_id: uuid.UUID, date: datetime | None = None
    ) -> EndPeriodResult:
        now = self._clock()
        end = as_utc(date) if date else now

        def apply(profile: CycleProfile) -> Period:
            ledger = PeriodLedger(profile, self._config)
            ongoing = ledger.open_period()
            if ongoing is None:
                raise ConflictError("No ongoing period to end")
            period_days = round_half_up(days_between(end, ongoing.start_date)) + 1
            if period_days < 1 or end < ongoing.start_date:
                raise ValidationError("End date cannot be before start date")

            ongoing.end_date = end
            if ledger.is_latest(ongoing):
                profile.last_period_start = ongoing.start_date
                profile.last_period_end = end
            else:
                ledger.refresh_last_period()
            self._estimator.observe_period_days(profile, period_days)
            return ongoing

        profile, period = await self._mutate(user_id, apply, create_missing=False)
        logger.info("Period ended for %s", user_id)
        await self._publish(profile, CycleEventType.period_ended, now)
        return EndPeriodResult(period=period, period_length=profile.period_length)

    async def log_period(
        self,
        user_id: uuid.UUID,
        start_date: datetime,
        end_date: datetime | None = None,
        flow: FlowIntensity | str | None = None,
    ) -> Period:
        now = self._clock()
        start = as_utc(start_date)
        end = as_utc(end_date) if end_date else None
        intensity = _parse_flow(flow)

        if end is not None and end < start:
            raise ValidationError("End date cannot be before start date")
        horizon = self._config.log_horizon_years
        if not add_years(now, -horizon) <= start <= add_years(now, horizon):
            raise ValidationError(f"Date must be within {horizon} year(s) of today")

        def apply(profile: CycleProfile) -> Period:
            ledger = PeriodLedger(profile, self._config)
            ledger.ensure_no_overlap(start, end)
            open_period = ledger.open_period()
            if end is None:
                if open_period is not None:
                    raise ConflictError(
                        "There is already an ongoing period. Please end it first."
                    )
                latest = ledger.latest()
                if latest is not None and start < latest.start_date:
                    raise ConflictError(
                        "Only the most recent period can be left without an end date"
                    )
            elif open_period is not None and start > open_period.start_date:
                raise ConflictError(
                    "Cannot log a period after the ongoing one. Please end it first."
                )

            period = Period(start_date=start, end_date=end, flow=intensity)
            ledger.insert(period)
            if ledger.is_latest(period):
                profile.last_period_start = start
                profile.last_period_end = end

            self._estimator.reestimate_cycle_length(profile, ledger.ordered())
            if end is not None:
                period_days = round_half_up(days_between(end, start)) + 1
                self._estimator.observe_period_days(profile, period_days)
            return period

        profile, period = await self._mutate(user_id, apply)
        logger.info("Period logged for %s starting %s", user_id, start.date())
        await self._publish(profile, CycleEventType.period_logged, now)
        return period

    async def delete_period(
        self, user_id: uuid.UUID, period_id: uuid.UUID
    ) -> DeletePeriodResult:
        def apply(profile: CycleProfile) -> int:
            ledger = PeriodLedger(profile, self._config)
            ledger.remove(period_id)
            return len(ledger)

        _, remaining = await self._mutate(user_id, apply, create_missing=False)
        logger.info("Period %s deleted for %s", period_id, user_id)
        return DeletePeriodResult(remaining_periods=remaining)

    async def clear_periods(self, user_id: uuid.UUID) -> ClearPeriodsResult:
        """Full reset: empty ledger, no override, default lengths."""

        def apply(profile: CycleProfile) -> int:
            deleted = PeriodLedger(profile, self._config).clear()
            profile.expected_next_period = ExpectedPeriod()
            self._estimator.reset(profile)
            return deleted

        _, deleted = await self._mutate(user_id, apply, create_missing=False)
        logger.info("Cleared %d period(s) for %s", deleted, user_id)
        return ClearPeriodsResult(deleted_count=deleted)

    # ------------------------------------------------------------------
    # Symptoms and settings
    # ------------------------------------------------------------------

    async def log_symptom(
        self,
        user_id: uuid.UUID,
        symptom_type: SymptomType | str,
        date: datetime | None = None,
        severity: int | None = None,
        notes: str | None = None,
    ) -> Symptom:
        observed_at = as_utc(date) if date else self._clock()

        def apply(profile: CycleProfile) -> Symptom:
            return SymptomLog(profile).append(observed_at, symptom_type, severity, notes)

        _, symptom = await self._mutate(user_id, apply)
        return symptom

    async def update_settings(
        self,
        user_id: uuid.UUID,
        cycle_length: int | None = None,
        period_length: int | None = None,
        is_tracking: bool | None = None,
    ) -> CycleSettings:
        cfg = self._config
        if cycle_length is not None and not cfg.cycle_length_in_range(cycle_length):
            raise ValidationError(
                f"Cycle length must be between {cfg.min_cycle_days} and {cfg.max_cycle_days}"
            )
        if period_length is not None and not cfg.period_length_in_range(period_length):
            raise ValidationError(
                f"Period length must be between {cfg.min_period_days} and {cfg.max_period_days}"
            )

        def apply(profile: CycleProfile) -> None:
            if cycle_length is not None:
                profile.cycle_length = cycle_length
            if period_length is not None:
                profile.period_length = period_length
            if is_tracking is not None:
                profile.is_tracking = is_tracking

        profile, _ = await self._mutate(user_id, apply)
        return CycleSettings(
            cycle_length=profile.cycle_length,
            period_length=profile.period_length,
            is_tracking=profile.is_tracking,
        )

    # ------------------------------------------------------------------
    # Manual forecast
    # ------------------------------------------------------------------

    async def set_expected_period(
        self,
        user_id: uuid.UUID,
        start_date: datetime,
        end_date: datetime | None = None,
    ) -> ExpectedPeriod:
        now = self._clock()
        start = as_utc(start_date)
        end = as_utc(end_date) if end_date else None

        if end is not None and end < start:
            raise ValidationError("End date cannot be before start date")
        if start.date() < now.date():
            raise ValidationError(
                "Expected period start date must be today or in the future"
            )
        max_ahead = self._config.expected_max_days_ahead
        if start > now + timedelta(days=max_ahead):
            raise ValidationError(
                f"Expected period date must be within {max_ahead} days from today"
            )

        def apply(profile: CycleProfile) -> ExpectedPeriod:
            profile.expected_next_period = ExpectedPeriod(
                start_date=start, end_date=end, is_manually_set=True
            )
            return profile.expected_next_period

        profile, expected = await self._mutate(user_id, apply)
        logger.info("Expected period set for %s: %s", user_id, start.date())
        await self._publish(profile, CycleEventType.expected_period_set, now)
        return expected

    async def clear_expected_period(self, user_id: uuid.UUID) -> ClearExpectedResult:
        def apply(profile: CycleProfile) -> None:
            profile.expected_next_period = ExpectedPeriod()

        profile, _ = await self._mutate(user_id, apply, create_missing=False)
        return ClearExpectedResult(next_period=self._predictor.next_period(profile))

    # ------------------------------------------------------------------
    # Sharing
    # ------------------------------------------------------------------

    async def update_sharing(
        self, user_id: uuid.UUID, candidate_ids: Iterable[uuid.UUID]
    ) -> SharingResult:
        allowed = await self._gate.filter_candidates(user_id, candidate_ids)

        def apply(profile: CycleProfile) -> None:
            profile.share_with = list(allowed)

        profile, _ = await self._mutate(user_id, apply)
        logger.info("Sharing updated for %s: %d viewer(s)", user_id, len(allowed))
        return SharingResult(share_with=await self._gate.share_targets(profile.share_with))
