"""Load, validate, and hot-reload the cycle engine configuration.

The config lives in ``cycle_config.yaml`` alongside this module.  At startup
it is loaded once and cached.  Call ``reload_cycle_config()`` to re-read from
disk after an admin update — no restart required.

Usage::

    from cyclesync.menstrual.config_loader import get_cycle_config

    config = get_cycle_config()
    config.smoothing_weight          # 0.7
    config.cycle_length_in_range(30) # True
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger("cyclesync.menstrual.config")

# Path to the YAML file sitting next to this module
_CONFIG_PATH = Path(__file__).parent / "cycle_config.yaml"


@dataclass
class CycleEngineConfig:
    """Complete, validated cycle engine configuration.

    Attributes:
        version:                    Config schema version string.
        default_cycle_length:       Cycle length for a fresh profile.
        min_cycle_days:             Smallest accepted cycle length / gap.
        max_cycle_days:             Largest accepted cycle length / gap.
        batch_window_periods:       Periods considered by the batch re-estimate.
        default_period_length:      Period length for a fresh profile.
        min_period_days:            Smallest accepted period length.
        max_period_days:            Largest accepted period length.
        smoothing_weight:           Weight of the previous estimate.
        open_period_span_days:      Effective length of an open period.
        log_horizon_years:          How far back/ahead a period may be logged.
        fertile_start_offset:       Days from period start to fertile start.
        ovulation_offset:           Days from period start to ovulation.
        fertile_end_offset:         Days from period start to fertile end.
        follicular_last_day:        Last cycle day of the follicular phase.
        ovulation_last_day:         Last cycle day of the ovulation window.
        expected_max_days_ahead:    Horizon for a manual forecast.
        recent_periods:             Periods listed in a cycle view.
        symptom_lookback_days:      Default range for symptom queries.
        shared_symptom_window_days: Trailing window of symptoms for viewers.
        shared_symptom_limit:       Maximum symptoms returned to viewers.
        max_cas_retries:            Compare-and-swap attempts per mutation.
    """

    version: str = "1.0"
    default_cycle_length: int = 28
    min_cycle_days: int = 21
    max_cycle_days: int = 45
    batch_window_periods: int = 3
    default_period_length: int = 5
    min_period_days: int = 1
    max_period_days: int = 10
    smoothing_weight: float = 0.7
    open_period_span_days: int = 7
    log_horizon_years: int = 1
    fertile_start_offset: int = 10
    ovulation_offset: int = 14
    fertile_end_offset: int = 16
    follicular_last_day: int = 13
    ovulation_last_day: int = 16
    expected_max_days_ahead: int = 60
    recent_periods: int = 6
    symptom_lookback_days: int = 30
    shared_symptom_window_days: int = 7
    shared_symptom_limit: int = 10
    max_cas_retries: int = 5
    _raw: dict = field(default_factory=dict, repr=False)

    def cycle_length_in_range(self, days: int) -> bool:
        return self.min_cycle_days <= days <= self.max_cycle_days

    def period_length_in_range(self, days: int) -> bool:
        return self.min_period_days <= days <= self.max_period_days


# ---------------------------------------------------------------------------
# Loader / validation
# ---------------------------------------------------------------------------


class ConfigValidationError(ValueError):
    """Raised when cycle_config.yaml fails validation."""


def _load_yaml(path: Path) -> dict:
    """Read and parse a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigValidationError: If the YAML is malformed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Cycle config not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            return yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigValidationError(f"YAML parse error in {path}: {exc}") from exc


def _validate_and_build(raw: dict) -> CycleEngineConfig:
    """Validate the raw YAML dict and construct a CycleEngineConfig.

    Missing keys fall back to the dataclass defaults; present keys must be
    numeric and consistent with each other.

    Raises:
        ConfigValidationError: If any value is invalid.
    """
    errors: list[str] = []
    defaults = CycleEngineConfig()

    def _int(section: str, key: str, default: int) -> int:
        value = (raw.get(section) or {}).get(key, default)
        try:
            number = int(value)
        except (TypeError, ValueError):
            errors.append(f"{section}.{key} must be an integer, got {value!r}")
            return default
        if number < 0:
            errors.append(f"{section}.{key} must not be negative, got {number}")
        return number

    cl_min = _int("cycle_length", "min_days", defaults.min_cycle_days)
    cl_max = _int("cycle_length", "max_days", defaults.max_cycle_days)
    cl_default = _int("cycle_length", "default", defaults.default_cycle_length)
    pl_min = _int("period_length", "min_days", defaults.min_period_days)
    pl_max = _int("period_length", "max_days", defaults.max_period_days)
    pl_default = _int("period_length", "default", defaults.default_period_length)

    if not (cl_min <= cl_default <= cl_max):
        errors.append(
            f"cycle_length.default = {cl_default} is outside [{cl_min}, {cl_max}]"
        )
    if pl_min < 1 or not (pl_min <= pl_default <= pl_max):
        errors.append(
            f"period_length.default = {pl_default} is outside [{pl_min}, {pl_max}]"
        )

    weight_raw: Any = (raw.get("smoothing") or {}).get(
        "previous_weight", defaults.smoothing_weight
    )
    try:
        weight = float(weight_raw)
    except (TypeError, ValueError):
        errors.append(f"smoothing.previous_weight must be a number, got {weight_raw!r}")
        weight = defaults.smoothing_weight
    if not (0.0 <= weight <= 1.0):
        errors.append(f"smoothing.previous_weight = {weight} is out of range [0.0, 1.0]")

    fertile_start = _int("fertile_window", "start_offset_days", defaults.fertile_start_offset)
    ovulation = _int("fertile_window", "ovulation_offset_days", defaults.ovulation_offset)
    fertile_end = _int("fertile_window", "end_offset_days", defaults.fertile_end_offset)
    if not (fertile_start <= ovulation <= fertile_end):
        errors.append(
            "fertile_window offsets must satisfy start <= ovulation <= end "
            f"(got {fertile_start}, {ovulation}, {fertile_end})"
        )

    follicular_last = _int("phases", "follicular_last_day", defaults.follicular_last_day)
    ovulation_last = _int("phases", "ovulation_last_day", defaults.ovulation_last_day)
    if follicular_last >= ovulation_last:
        errors.append("phases.follicular_last_day must be before phases.ovulation_last_day")

    config = CycleEngineConfig(
        version=str(raw.get("version", "1.0")),
        default_cycle_length=cl_default,
        min_cycle_days=cl_min,
        max_cycle_days=cl_max,
        batch_window_periods=_int(
            "cycle_length", "batch_window_periods", defaults.batch_window_periods
        ),
        default_period_length=pl_default,
        min_period_days=pl_min,
        max_period_days=pl_max,
        smoothing_weight=weight,
        open_period_span_days=_int(
            "ledger", "open_period_span_days", defaults.open_period_span_days
        ),
        log_horizon_years=_int("ledger", "log_horizon_years", defaults.log_horizon_years),
        fertile_start_offset=fertile_start,
        ovulation_offset=ovulation,
        fertile_end_offset=fertile_end,
        follicular_last_day=follicular_last,
        ovulation_last_day=ovulation_last,
        expected_max_days_ahead=_int(
            "expected_period", "max_days_ahead", defaults.expected_max_days_ahead
        ),
        recent_periods=_int("views", "recent_periods", defaults.recent_periods),
        symptom_lookback_days=_int(
            "views", "symptom_lookback_days", defaults.symptom_lookback_days
        ),
        shared_symptom_window_days=_int(
            "views", "shared_symptom_window_days", defaults.shared_symptom_window_days
        ),
        shared_symptom_limit=_int(
            "views", "shared_symptom_limit", defaults.shared_symptom_limit
        ),
        max_cas_retries=_int("storage", "max_cas_retries", defaults.max_cas_retries),
        _raw=raw,
    )

    if config.batch_window_periods < 2:
        errors.append("cycle_length.batch_window_periods must be at least 2")
    if config.max_cas_retries < 1:
        errors.append("storage.max_cas_retries must be at least 1")

    if errors:
        raise ConfigValidationError(
            f"cycle_config.yaml has {len(errors)} validation error(s):\n"
            + "\n".join(f"  • {e}" for e in errors)
        )

    return config


def load_cycle_config(path: Path | None = None) -> CycleEngineConfig:
    """Load and validate the cycle config from disk.

    Args:
        path: Override path to YAML. Uses the bundled cycle_config.yaml by default.
    """
    target = path or _CONFIG_PATH
    raw = _load_yaml(target)
    config = _validate_and_build(raw)
    logger.info("Loaded cycle config v%s from %s", config.version, target)
    return config


# ---------------------------------------------------------------------------
# Global singleton with hot-reload support
# ---------------------------------------------------------------------------

_config: CycleEngineConfig | None = None
_config_lock = threading.Lock()


def get_cycle_config() -> CycleEngineConfig:
    """Return the global CycleEngineConfig singleton, loading it on first call."""
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:  # double-checked locking
                _config = load_cycle_config()
    return _config


def reload_cycle_config(path: Path | None = None) -> CycleEngineConfig:
    """Reload the config from disk and replace the global singleton.

    If validation fails, the old config is retained and the error is re-raised.
    """
    global _config
    new_config = load_cycle_config(path)  # validate before acquiring lock
    with _config_lock:
        old_version = _config.version if _config else "none"
        _config = new_config
    logger.info("Reloaded cycle config: %s → %s", old_version, new_config.version)
    return new_config
