"""Day arithmetic shared by the ledger, estimator and predictor.

Instants are UTC datetimes. Day differences are fractional
(``seconds / 86400``) and rounded half-up, never banker's rounding.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta

SECONDS_PER_DAY = 24 * 60 * 60


def days_between(later: datetime, earlier: datetime) -> float:
    """Signed fractional number of days from ``earlier`` to ``later``."""
    return (later - earlier).total_seconds() / SECONDS_PER_DAY


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def add_days(value: datetime, days: int) -> datetime:
    return value + timedelta(days=days)


def add_years(value: datetime, years: int) -> datetime:
    """Shift by calendar years; Feb 29 falls back to Feb 28."""
    try:
        return value.replace(year=value.year + years)
    except ValueError:
        return value.replace(year=value.year + years, day=28)
