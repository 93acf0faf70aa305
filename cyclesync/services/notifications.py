"""Cycle notification delivery.

Each notification is persisted to the ``notifications`` table (the in-app
inbox and the source for real-time fan-out) and, when a push gateway is
configured, posted to it with httpx.  Errors propagate; the orchestrator
logs and swallows them.
"""

from __future__ import annotations

import json
import logging
import uuid

import httpx

from cyclesync.config import Settings, get_settings
from cyclesync.models.cycle import CycleNotification
from cyclesync.services.database import execute

logger = logging.getLogger("cyclesync.notifications")


class PostgresNotificationService:
    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._http = http_client

    async def notify(
        self, user_id: uuid.UUID, notification: CycleNotification
    ) -> None:
        await execute(
            """
            INSERT INTO notifications (
                notification_id, user_id, notification_type, title, body, payload
            ) VALUES (gen_random_uuid(), $1, 'cycle', $2, $3, $4::jsonb)
            """,
            user_id,
            notification.title,
            notification.message,
            json.dumps({"type": notification.type.value, **notification.data}),
        )
        await self._push(user_id, notification)

    async def _push(self, user_id: uuid.UUID, notification: CycleNotification) -> None:
        url = self._settings.push_gateway_url
        if not url:
            return
        body = {
            "user_id": str(user_id),
            "title": notification.title,
            "message": notification.message,
            "data": {"type": "cycle_update", **notification.data},
        }
        if self._http is not None:
            response = await self._http.post(url, json=body)
        else:
            async with httpx.AsyncClient(
                timeout=self._settings.push_timeout_seconds
            ) as client:
                response = await client.post(url, json=body)
        response.raise_for_status()
        logger.debug("Push sent to %s for %s", user_id, notification.type.value)
