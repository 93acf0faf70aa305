"""Profile storage with compare-and-swap saves.

A store hands out independent copies of a profile.  ``save`` succeeds only
if the stored version still equals ``profile.version``; on success the
version is bumped.  A version of 0 means "not stored yet".
"""

from __future__ import annotations

import asyncio
import uuid
from typing import Protocol

from cyclesync.menstrual.errors import VersionConflict
from cyclesync.models.base import utc_now
from cyclesync.models.cycle import CycleProfile


class ProfileStore(Protocol):
    async def load(self, user_id: uuid.UUID) -> CycleProfile | None: ...

    async def save(self, profile: CycleProfile) -> CycleProfile: ...


class InMemoryProfileStore:
    """Dict-backed store; profiles are kept as JSON so callers never share state."""

    def __init__(self) -> None:
        self._rows: dict[uuid.UUID, str] = {}
        self._lock = asyncio.Lock()

    async def load(self, user_id: uuid.UUID) -> CycleProfile | None:
        raw = self._rows.get(user_id)
        if raw is None:
            return None
        return CycleProfile.model_validate_json(raw)

    async def save(self, profile: CycleProfile) -> CycleProfile:
        async with self._lock:
            raw = self._rows.get(profile.user_id)
            current = CycleProfile.model_validate_json(raw).version if raw else 0
            if current != profile.version:
                raise VersionConflict(
                    f"Profile {profile.user_id} is at version {current}, "
                    f"expected {profile.version}"
                )
            profile.version = current + 1
            profile.updated_at = utc_now()
            self._rows[profile.user_id] = profile.model_dump_json()
        return profile
