"""Interfaces the cycle engine consumes, plus in-memory implementations.

The orchestrator receives these at construction; it never looks them up.
Postgres / httpx backed implementations live in ``cyclesync.services``.
"""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from typing import Iterable, Protocol

from cyclesync.models.cycle import CycleNotification

logger = logging.getLogger("cyclesync.menstrual.collaborators")


class RelationshipService(Protocol):
    """Accepted, bidirectional connections between accounts."""

    async def list_accepted_peers(self, user_id: uuid.UUID) -> set[uuid.UUID]: ...

    async def is_connected(self, user_id: uuid.UUID, other_id: uuid.UUID) -> bool: ...

    async def display_names(
        self, user_ids: Iterable[uuid.UUID]
    ) -> dict[uuid.UUID, str]: ...


class NotificationService(Protocol):
    """Persisted + real-time + push delivery. Callers treat it as fire-and-forget."""

    async def notify(
        self, user_id: uuid.UUID, notification: CycleNotification
    ) -> None: ...


class InMemoryRelationshipService:
    """Connection graph held in a dict; used by tests and local runs."""

    def __init__(self, names: dict[uuid.UUID, str] | None = None) -> None:
        self._peers: dict[uuid.UUID, set[uuid.UUID]] = defaultdict(set)
        self._names: dict[uuid.UUID, str] = dict(names or {})

    def connect(self, user_id: uuid.UUID, other_id: uuid.UUID) -> None:
        self._peers[user_id].add(other_id)
        self._peers[other_id].add(user_id)

    def disconnect(self, user_id: uuid.UUID, other_id: uuid.UUID) -> None:
        self._peers[user_id].discard(other_id)
        self._peers[other_id].discard(user_id)

    def set_name(self, user_id: uuid.UUID, name: str) -> None:
        self._names[user_id] = name

    async def list_accepted_peers(self, user_id: uuid.UUID) -> set[uuid.UUID]:
        return set(self._peers.get(user_id, ()))

    async def is_connected(self, user_id: uuid.UUID, other_id: uuid.UUID) -> bool:
        return other_id in self._peers.get(user_id, ())

    async def display_names(
        self, user_ids: Iterable[uuid.UUID]
    ) -> dict[uuid.UUID, str]:
        return {uid: self._names[uid] for uid in user_ids if uid in self._names}


class InMemoryNotificationService:
    """Records every notification instead of delivering it."""

    def __init__(self) -> None:
        self.sent: list[tuple[uuid.UUID, CycleNotification]] = []

    async def notify(
        self, user_id: uuid.UUID, notification: CycleNotification
    ) -> None:
        logger.debug("Notify %s: %s", user_id, notification.type.value)
        self.sent.append((user_id, notification))
