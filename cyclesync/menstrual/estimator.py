"""Adaptive cycle/period length estimator.

Two update rules:

- Incremental smoothing when a period start or end is observed live::

      new = round(0.7 * old + 0.3 * observed)

  Observations outside the configured range are treated as outliers and
  leave the estimate untouched.
- Batch re-estimate after a manual log: the mean of in-range start-to-start
  gaps across the most recent periods, since historical entries may arrive
  out of order.
"""

from __future__ import annotations

import logging
import statistics

from cyclesync.menstrual.config_loader import CycleEngineConfig, get_cycle_config
from cyclesync.menstrual.dates import days_between, round_half_up
from cyclesync.models.cycle import CycleProfile, Period

logger = logging.getLogger("cyclesync.menstrual.estimator")


def smooth(previous: int, observed: int, weight: float) -> int:
    """Exponentially smooth ``observed`` into ``previous``."""
    return round_half_up(previous * weight + observed * round(1 - weight, 10))


class AdaptiveEstimator:
    """Update a profile's ``cycle_length`` and ``period_length``."""

    def __init__(self, config: CycleEngineConfig | None = None) -> None:
        self._config = config or get_cycle_config()

    def observe_cycle_gap(self, profile: CycleProfile, days: int) -> bool:
        """Fold a start-to-start gap into ``cycle_length``.

        Returns:
            True if the estimate was updated, False if ``days`` was an outlier.
        """
        if not self._config.cycle_length_in_range(days):
            logger.debug("Ignoring cycle gap outlier: %d days", days)
            return False
        profile.cycle_length = smooth(
            profile.cycle_length, days, self._config.smoothing_weight
        )
        return True

    def observe_period_days(self, profile: CycleProfile, days: int) -> bool:
        """Fold an observed period duration into ``period_length``."""
        if not self._config.period_length_in_range(days):
            logger.debug("Ignoring period length outlier: %d days", days)
            return False
        profile.period_length = smooth(
            profile.period_length, days, self._config.smoothing_weight
        )
        return True

    def reestimate_cycle_length(
        self, profile: CycleProfile, ordered_periods: list[Period]
    ) -> bool:
        """Replace ``cycle_length`` with the mean of recent valid gaps.

        Args:
            profile:         Profile to update.
            ordered_periods: All periods, oldest first.

        Returns:
            True if at least one valid gap was found.
        """
        window = ordered_periods[-self._config.batch_window_periods:]
        if len(window) < 2:
            return False
        gaps = [
            round_half_up(days_between(later.start_date, earlier.start_date))
            for earlier, later in zip(window, window[1:])
        ]
        valid = [g for g in gaps if self._config.cycle_length_in_range(g)]
        if not valid:
            return False
        profile.cycle_length = round_half_up(statistics.mean(valid))
        return True

    def reset(self, profile: CycleProfile) -> None:
        profile.cycle_length = self._config.default_cycle_length
        profile.period_length = self._config.default_period_length
