"""CycleSync API — FastAPI application entry point.

Run locally:
    uvicorn cyclesync.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cyclesync.config import get_settings
from cyclesync.menstrual.config_loader import get_cycle_config, reload_cycle_config
from cyclesync.menstrual.errors import CycleError
from cyclesync.menstrual.orchestrator import CycleOrchestrator
from cyclesync.middleware.clerk_auth import ClerkAuthMiddleware
from cyclesync.middleware.rate_limit import RateLimitMiddleware
from cyclesync.middleware.security import SecurityHeadersMiddleware
from cyclesync.routers import cycle, health
from cyclesync.services.connections import PostgresRelationshipService
from cyclesync.services.database import close_pool, init_pool
from cyclesync.services.notifications import PostgresNotificationService
from cyclesync.services.profile_store import PostgresProfileStore

# ---------- Logging ----------

logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger("cyclesync")


# ---------- Lifespan ----------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup / shutdown hooks."""
    settings = get_settings()
    logger.info(
        "Starting CycleSync API v%s [%s]",
        settings.app_version,
        settings.environment,
    )
    if settings.cycle_config_path:
        engine_config = reload_cycle_config(Path(settings.cycle_config_path))
    else:
        engine_config = get_cycle_config()

    await init_pool(settings)
    http_client = httpx.AsyncClient(timeout=settings.push_timeout_seconds)
    app.state.cycle_service = CycleOrchestrator(
        store=PostgresProfileStore(),
        relationships=PostgresRelationshipService(),
        notifications=PostgresNotificationService(settings, http_client=http_client),
        config=engine_config,
    )
    yield
    await http_client.aclose()
    await close_pool()
    logger.info("CycleSync API shut down")


# ---------- Error handling ----------

async def cycle_error_handler(request: Request, exc: CycleError) -> JSONResponse:
    logger.info(
        "%s %s -> %s: %s", request.method, request.url.path, exc.kind, exc.message
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CycleError, cycle_error_handler)


# ---------- App factory ----------

def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="CycleSync API",
        description=(
            "Cycle tracking backend — period ledger, phase and next-period "
            "prediction, and opt-in sharing with connected accounts."
        ),
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    register_exception_handlers(app)

    # ---------- Middleware (last added runs first) ----------

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RateLimitMiddleware, settings=settings)
    app.add_middleware(ClerkAuthMiddleware, settings=settings)

    # CORS — added last so it is outermost and answers preflight before auth
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-RateLimit-Limit", "X-RateLimit-Remaining", "Retry-After"],
    )

    # ---------- Health check (outside v1 prefix — always at /health) ----------
    app.include_router(health.router)

    # ---------- API v1 routes ----------
    app.include_router(cycle.router, prefix="/api/v1")

    return app


app = create_app()
