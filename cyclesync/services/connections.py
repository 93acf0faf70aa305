"""Relationship lookups against the ``connections`` and ``users`` tables.

A connection row links ``user_id`` (initiator) and ``connected_user_id``;
it counts in either direction once ``status = 'accepted'``.
"""

from __future__ import annotations

import uuid
from typing import Iterable

from cyclesync.services.database import fetch, fetchval


class PostgresRelationshipService:
    async def list_accepted_peers(self, user_id: uuid.UUID) -> set[uuid.UUID]:
        rows = await fetch(
            """
            SELECT CASE WHEN user_id = $1 THEN connected_user_id ELSE user_id END AS peer_id
            FROM connections
            WHERE status = 'accepted' AND (user_id = $1 OR connected_user_id = $1)
            """,
            user_id,
            user_id=user_id,
        )
        return {r["peer_id"] for r in rows}

    async def is_connected(self, user_id: uuid.UUID, other_id: uuid.UUID) -> bool:
        found = await fetchval(
            """
            SELECT EXISTS (
                SELECT 1 FROM connections
                WHERE status = 'accepted'
                  AND ((user_id = $1 AND connected_user_id = $2)
                    OR (user_id = $2 AND connected_user_id = $1))
            )
            """,
            user_id, other_id,
            user_id=user_id,
        )
        return bool(found)

    async def display_names(
        self, user_ids: Iterable[uuid.UUID]
    ) -> dict[uuid.UUID, str]:
        ids = list(user_ids)
        if not ids:
            return {}
        rows = await fetch(
            """
            SELECT user_id, display_name FROM users
            WHERE user_id = ANY($1::uuid[]) AND deleted_at IS NULL
            """,
            ids,
        )
        return {r["user_id"]: r["display_name"] for r in rows if r["display_name"]}
