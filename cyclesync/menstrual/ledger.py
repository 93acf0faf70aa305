"""Period ledger: the ordered, non-overlapping set of a user's periods.

The ledger wraps a ``CycleProfile`` and owns every write to
``profile.periods`` and to the ``last_period_start`` / ``last_period_end``
cache.  Invariants it maintains:

- periods iterate in ascending ``start_date`` order;
- at most one period is ongoing (``end_date is None``);
- no two effective intervals intersect, where an open period's effective
  end is ``start_date + open_period_span_days``.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from cyclesync.menstrual.config_loader import CycleEngineConfig, get_cycle_config
from cyclesync.menstrual.dates import add_days
from cyclesync.menstrual.errors import ConflictError, NotFoundError
from cyclesync.models.cycle import CycleProfile, Period


class PeriodLedger:
    """Ordered period collection for one profile."""

    def __init__(
        self, profile: CycleProfile, config: CycleEngineConfig | None = None
    ) -> None:
        self._profile = profile
        self._config = config or get_cycle_config()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._profile.periods)

    def ordered(self) -> list[Period]:
        return list(self._profile.periods.values())

    def get(self, period_id: uuid.UUID) -> Period | None:
        return self._profile.periods.get(period_id)

    def latest(self) -> Period | None:
        periods = self.ordered()
        return periods[-1] if periods else None

    def ongoing(self) -> Period | None:
        """The latest period, if it has not ended."""
        latest = self.latest()
        return latest if latest is not None and latest.is_ongoing else None

    def open_period(self) -> Period | None:
        """Any period without an end date, latest or not."""
        return next((p for p in self.ordered() if p.is_ongoing), None)

    def has_open_period(self) -> bool:
        return self.open_period() is not None

    def recent(self, count: int) -> list[Period]:
        """The ``count`` most recent periods, newest first."""
        if count <= 0:
            return []
        return list(reversed(self.ordered()[-count:]))

    def effective_end(self, start: datetime, end: datetime | None) -> datetime:
        return end if end is not None else add_days(start, self._config.open_period_span_days)

    def find_overlap(self, start: datetime, end: datetime | None) -> Period | None:
        """Return the first period whose effective interval meets ``[start, end]``."""
        new_end = self.effective_end(start, end)
        for existing in self.ordered():
            existing_end = self.effective_end(existing.start_date, existing.end_date)
            if start <= existing_end and new_end >= existing.start_date:
                return existing
        return None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def ensure_no_overlap(self, start: datetime, end: datetime | None) -> None:
        conflict = self.find_overlap(start, end)
        if conflict is not None:
            existing_start = conflict.start_date.date().isoformat()
            raise ConflictError(
                f"You already have a period logged starting {existing_start}. "
                "Delete it first or choose different dates.",
                overlaps_with_start=existing_start,
            )

    def insert(self, period: Period) -> None:
        """Add a period and restore start-date order."""
        periods = self.ordered()
        periods.append(period)
        periods.sort(key=lambda p: p.start_date)
        self._profile.periods = {p.period_id: p for p in periods}

    def is_latest(self, period: Period) -> bool:
        latest = self.latest()
        return latest is not None and latest.period_id == period.period_id

    def remove(self, period_id: uuid.UUID) -> Period:
        period = self._profile.periods.pop(period_id, None)
        if period is None:
            raise NotFoundError("Period not found")
        self.refresh_last_period()
        return period

    def clear(self) -> int:
        count = len(self._profile.periods)
        self._profile.periods = {}
        self._profile.last_period_start = None
        self._profile.last_period_end = None
        return count

    def refresh_last_period(self) -> None:
        """Recompute the last-period cache after a removal.

        Prefers the most recent completed period; falls back to the most
        recent period of any kind with no end; clears both when empty.
        """
        periods = self.ordered()
        completed = [p for p in periods if not p.is_ongoing]
        if completed:
            self._profile.last_period_start = completed[-1].start_date
            self._profile.last_period_end = completed[-1].end_date
        elif periods:
            self._profile.last_period_start = periods[-1].start_date
            self._profile.last_period_end = None
        else:
            self._profile.last_period_start = None
            self._profile.last_period_end = None
