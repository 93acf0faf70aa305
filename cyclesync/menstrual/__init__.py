"""Menstrual cycle tracking for CycleSync.

This subpackage implements the period ledger, adaptive length estimation,
phase and next-period prediction, and the sharing gate.  Cycle data is
special category health data: it is only ever shown to accounts the owner
has explicitly added to their share list.

Modules:
    ledger        — Ordered, non-overlapping period collection
    symptom_log   — Append-only symptom observations
    estimator     — Smoothed cycle/period length updates
    predictor     — Phase, fertile window and next-period forecast
    sharing       — Share-list filtering and read access checks
    store         — Compare-and-swap profile storage
    orchestrator  — The operations exposed to the API
"""

from cyclesync.menstrual.errors import (
    ConflictError,
    CycleError,
    NotFoundError,
    SharingPermissionError,
    ValidationError,
)
from cyclesync.menstrual.orchestrator import CycleOrchestrator
from cyclesync.menstrual.predictor import CyclePredictor
from cyclesync.menstrual.store import InMemoryProfileStore, ProfileStore

__all__ = [
    "ConflictError",
    "CycleError",
    "CycleOrchestrator",
    "CyclePredictor",
    "InMemoryProfileStore",
    "NotFoundError",
    "ProfileStore",
    "SharingPermissionError",
    "ValidationError",
]
