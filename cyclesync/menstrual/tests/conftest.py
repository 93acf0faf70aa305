"""Shared fixtures for cycle engine tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import UUID

import pytest

from cyclesync.menstrual.collaborators import (
    InMemoryNotificationService,
    InMemoryRelationshipService,
)
from cyclesync.menstrual.config_loader import CycleEngineConfig, load_cycle_config
from cyclesync.menstrual.orchestrator import CycleOrchestrator
from cyclesync.menstrual.predictor import CyclePredictor
from cyclesync.menstrual.store import InMemoryProfileStore
from cyclesync.models.cycle import CycleProfile, Period

# Canonical test users
OWNER_ID = UUID("12345678-1234-5678-1234-567812345678")
PARTNER_ID = UUID("87654321-4321-8765-4321-876543218765")
STRANGER_ID = UUID("00000000-0000-4000-8000-000000000001")

# Fixed "now" for every test
AS_OF = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


def days_ago(days: float) -> datetime:
    return AS_OF - timedelta(days=days)


def make_period(
    start: datetime, end: datetime | None = None, flow: str = "medium"
) -> Period:
    return Period(start_date=start, end_date=end, flow=flow)


def profile_on_cycle_day(day: int, **overrides) -> CycleProfile:
    """A profile whose current cycle day (as of AS_OF) equals ``day``."""
    return CycleProfile(
        user_id=OWNER_ID,
        last_period_start=AS_OF - timedelta(days=day - 0.5),
        **overrides,
    )


# ---------------------------------------------------------------------------
# Config / engine fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cycle_config() -> CycleEngineConfig:
    """The bundled cycle_config.yaml."""
    return load_cycle_config()


@pytest.fixture
def predictor(cycle_config: CycleEngineConfig) -> CyclePredictor:
    return CyclePredictor(cycle_config)


@pytest.fixture
def profile() -> CycleProfile:
    return CycleProfile(user_id=OWNER_ID)


# ---------------------------------------------------------------------------
# Orchestrator with in-memory collaborators
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> InMemoryProfileStore:
    return InMemoryProfileStore()


@pytest.fixture
def relationships() -> InMemoryRelationshipService:
    service = InMemoryRelationshipService(
        names={OWNER_ID: "Alex", PARTNER_ID: "Sam", STRANGER_ID: "Jo"}
    )
    service.connect(OWNER_ID, PARTNER_ID)
    return service


@pytest.fixture
def notifications() -> InMemoryNotificationService:
    return InMemoryNotificationService()


@pytest.fixture
def service(
    store: InMemoryProfileStore,
    relationships: InMemoryRelationshipService,
    notifications: InMemoryNotificationService,
    cycle_config: CycleEngineConfig,
) -> CycleOrchestrator:
    return CycleOrchestrator(
        store=store,
        relationships=relationships,
        notifications=notifications,
        config=cycle_config,
        clock=lambda: AS_OF,
    )
