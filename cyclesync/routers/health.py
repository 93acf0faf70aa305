"""Liveness probe, mounted at /health outside the authenticated API."""

from __future__ import annotations

import logging

from fastapi import APIRouter

from cyclesync.config import get_settings
from cyclesync.menstrual.config_loader import get_cycle_config
from cyclesync.models.base import utc_now
from cyclesync.services.database import fetchval

router = APIRouter(tags=["system"])
logger = logging.getLogger("cyclesync.health")


async def _database_reachable() -> bool:
    try:
        return await fetchval("SELECT 1") == 1
    except Exception as exc:
        logger.warning("Health check DB probe failed: %s", exc)
        return False


@router.get("/health")
async def health_check() -> dict:
    """Always 200 while the process is up; ``status`` degrades without a DB."""
    settings = get_settings()
    db_ok = await _database_reachable()
    engine = get_cycle_config()
    return {
        "status": "healthy" if db_ok else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "database": "connected" if db_ok else "unreachable",
        "cycle_engine": {
            "config_version": engine.version,
            "default_cycle_length": engine.default_cycle_length,
            "default_period_length": engine.default_period_length,
        },
        "timestamp": utc_now().isoformat(),
    }
