"""Postgres-backed profile store.

Each profile is one row of ``cycle_profiles``::

    user_id     UUID PRIMARY KEY
    version     INTEGER NOT NULL
    profile     JSONB NOT NULL
    created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
    updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()

Saves are conditional on ``version`` so concurrent writers for the same
user cannot both succeed.
"""

from __future__ import annotations

import logging
import uuid

from cyclesync.menstrual.errors import VersionConflict
from cyclesync.models.base import utc_now
from cyclesync.models.cycle import CycleProfile
from cyclesync.services.database import fetchrow

logger = logging.getLogger("cyclesync.db.profiles")


class PostgresProfileStore:
    async def load(self, user_id: uuid.UUID) -> CycleProfile | None:
        row = await fetchrow(
            "SELECT profile, version FROM cycle_profiles WHERE user_id = $1",
            user_id,
            user_id=user_id,
        )
        if not row:
            return None
        profile = CycleProfile.model_validate_json(row["profile"])
        profile.version = row["version"]
        return profile

    async def save(self, profile: CycleProfile) -> CycleProfile:
        profile.updated_at = utc_now()
        payload = profile.model_dump_json(exclude={"version"})

        if profile.version == 0:
            new_version = await fetchrow(
                """
                INSERT INTO cycle_profiles (user_id, version, profile)
                VALUES ($1, 1, $2::jsonb)
                ON CONFLICT (user_id) DO NOTHING
                RETURNING version
                """,
                profile.user_id, payload,
                user_id=profile.user_id,
            )
        else:
            new_version = await fetchrow(
                """
                UPDATE cycle_profiles
                SET profile = $2::jsonb, version = version + 1, updated_at = NOW()
                WHERE user_id = $1 AND version = $3
                RETURNING version
                """,
                profile.user_id, payload, profile.version,
                user_id=profile.user_id,
            )

        if not new_version:
            raise VersionConflict(
                f"Profile {profile.user_id} changed since version {profile.version}"
            )
        profile.version = new_version["version"]
        logger.debug("Saved profile %s at version %d", profile.user_id, profile.version)
        return profile
