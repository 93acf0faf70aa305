"""Error taxonomy for cycle operations.

Every error carries a machine-readable ``kind`` and a human-readable
message. ``extra`` holds optional structured context that the HTTP layer
copies into the response body.
"""

from __future__ import annotations

from typing import Any


class CycleError(Exception):
    """Base class for recoverable cycle-operation failures."""

    kind = "cycle_error"
    status_code = 400

    def __init__(self, message: str, **extra: Any) -> None:
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind, "detail": self.message, **self.extra}


class ValidationError(CycleError):
    """Malformed or out-of-range input."""

    kind = "validation_error"
    status_code = 400


class ConflictError(CycleError):
    """The operation would violate a temporal invariant of the ledger."""

    kind = "conflict"
    status_code = 409


class NotFoundError(CycleError):
    kind = "not_found"
    status_code = 404


class SharingPermissionError(CycleError):
    """The viewer may not read the owner's cycle."""

    kind = "permission_denied"
    status_code = 403


class VersionConflict(Exception):
    """Raised by a profile store when a compare-and-swap save loses a race."""
