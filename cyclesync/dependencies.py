"""Shared FastAPI dependencies injected into route handlers."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, HTTPException, Request

from cyclesync.config import Settings, get_settings
from cyclesync.menstrual.orchestrator import CycleOrchestrator


@dataclass(frozen=True)
class AuthContext:
    """Authenticated user context extracted from Clerk JWT."""

    clerk_user_id: str  # Clerk user ID (e.g. "user_2x...")
    user_id: uuid.UUID | None = None  # Our internal UUID, set via session token claim
    email: str | None = None
    session_id: str | None = None


async def get_current_user(request: Request) -> AuthContext:
    """Extract the authenticated user from the request state.

    The Clerk auth middleware sets ``request.state.auth`` before routes run.
    """
    auth: AuthContext | None = getattr(request.state, "auth", None)
    if auth is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return auth


async def get_current_user_id(
    auth: Annotated[AuthContext, Depends(get_current_user)],
) -> uuid.UUID:
    if auth.user_id is None:
        raise HTTPException(status_code=403, detail="Account not provisioned")
    return auth.user_id


def get_cycle_service(request: Request) -> CycleOrchestrator:
    """The orchestrator built at startup (see ``cyclesync.main.lifespan``)."""
    service: CycleOrchestrator | None = getattr(request.app.state, "cycle_service", None)
    if service is None:
        raise RuntimeError("Cycle service not initialized")
    return service


# Annotated shortcuts for route signatures
CurrentUser = Annotated[AuthContext, Depends(get_current_user)]
CurrentUserId = Annotated[uuid.UUID, Depends(get_current_user_id)]
CycleService = Annotated[CycleOrchestrator, Depends(get_cycle_service)]
AppSettings = Annotated[Settings, Depends(get_settings)]
