"""Sharing gate: who may read a user's derived cycle state.

Read access needs both an accepted connection (checked against the
relationship collaborator) and explicit inclusion in the owner's
``share_with`` list.  Share lists are always intersected with the
owner's accepted connections when written.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Iterable

from cyclesync.menstrual.collaborators import RelationshipService
from cyclesync.menstrual.config_loader import CycleEngineConfig, get_cycle_config
from cyclesync.menstrual.errors import SharingPermissionError
from cyclesync.menstrual.predictor import CyclePredictor
from cyclesync.menstrual.symptom_log import SymptomLog
from cyclesync.models.cycle import CycleProfile, SharedCycleView, ShareTarget

logger = logging.getLogger("cyclesync.menstrual.sharing")


class SharingGate:
    def __init__(
        self,
        relationships: RelationshipService,
        config: CycleEngineConfig | None = None,
    ) -> None:
        self._relationships = relationships
        self._config = config or get_cycle_config()

    async def filter_candidates(
        self, owner_id: uuid.UUID, candidate_ids: Iterable[uuid.UUID]
    ) -> list[uuid.UUID]:
        """Keep candidates that are accepted connections of the owner.

        Unknown or unconnected ids are dropped without error. Order is
        preserved and duplicates removed.
        """
        accepted = await self._relationships.list_accepted_peers(owner_id)
        kept: list[uuid.UUID] = []
        dropped = 0
        for candidate in candidate_ids:
            if candidate in accepted and candidate not in kept:
                kept.append(candidate)
            elif candidate not in kept:
                dropped += 1
        if dropped:
            logger.info(
                "Dropped %d share target(s) without an accepted connection for %s",
                dropped,
                owner_id,
            )
        return kept

    async def require_connection(
        self, viewer_id: uuid.UUID, owner_id: uuid.UUID
    ) -> None:
        if not await self._relationships.is_connected(viewer_id, owner_id):
            raise SharingPermissionError(
                "You are not connected with this user", code="NOT_CONNECTED"
            )

    @staticmethod
    def require_shared(profile: CycleProfile | None, viewer_id: uuid.UUID) -> CycleProfile:
        if profile is None or viewer_id not in profile.share_with:
            raise SharingPermissionError(
                "User is not sharing cycle data with you", code="NOT_SHARING"
            )
        return profile

    async def share_targets(self, user_ids: list[uuid.UUID]) -> list[ShareTarget]:
        """Attach display names to a list of user ids, keeping order."""
        if not user_ids:
            return []
        names = await self._relationships.display_names(user_ids)
        return [ShareTarget(user_id=uid, name=names.get(uid)) for uid in user_ids]

    async def shared_view(
        self,
        profile: CycleProfile,
        predictor: CyclePredictor,
        as_of: datetime,
    ) -> SharedCycleView:
        """The owner's derived view as a permitted viewer sees it."""
        names = await self._relationships.display_names([profile.user_id])
        symptoms = SymptomLog(profile).recent(
            as_of,
            window_days=self._config.shared_symptom_window_days,
            limit=self._config.shared_symptom_limit,
        )
        return SharedCycleView(
            **predictor.snapshot_fields(profile, as_of),
            owner=ShareTarget(user_id=profile.user_id, name=names.get(profile.user_id)),
            recent_symptoms=symptoms,
        )
