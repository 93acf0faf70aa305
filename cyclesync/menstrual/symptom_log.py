"""Append-only symptom log.

Symptoms are stored unordered, keyed by id; readers sort newest first.
Several entries on the same day are allowed.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from cyclesync.menstrual.errors import ValidationError
from cyclesync.models.base import as_utc
from cyclesync.models.cycle import CycleProfile, Symptom, SymptomType

MAX_NOTES_LENGTH = 200
DEFAULT_SEVERITY = 3


class SymptomLog:
    def __init__(self, profile: CycleProfile) -> None:
        self._profile = profile

    def append(
        self,
        date: datetime,
        symptom_type: SymptomType | str,
        severity: int | None = None,
        notes: str | None = None,
    ) -> Symptom:
        """Validate and record one observation."""
        try:
            kind = SymptomType(symptom_type)
        except ValueError:
            raise ValidationError(f"Unknown symptom type: {symptom_type!r}") from None
        if severity is None:
            severity = DEFAULT_SEVERITY
        if not 1 <= severity <= 5:
            raise ValidationError("Severity must be between 1 and 5")
        if notes is not None:
            notes = notes.strip()
            if len(notes) > MAX_NOTES_LENGTH:
                raise ValidationError(
                    f"Notes must be at most {MAX_NOTES_LENGTH} characters"
                )

        symptom = Symptom(date=as_utc(date), type=kind, severity=severity, notes=notes)
        self._profile.symptoms[symptom.symptom_id] = symptom
        return symptom

    def between(self, start: datetime, end: datetime) -> list[Symptom]:
        """Symptoms dated within ``[start, end]``, newest first."""
        start, end = as_utc(start), as_utc(end)
        matches = [
            s for s in self._profile.symptoms.values() if start <= s.date <= end
        ]
        return sorted(matches, key=lambda s: s.date, reverse=True)

    def recent(self, as_of: datetime, window_days: int, limit: int) -> list[Symptom]:
        """Symptoms from the trailing ``window_days``, newest first, capped."""
        cutoff = as_utc(as_of) - timedelta(days=window_days)
        matches = [s for s in self._profile.symptoms.values() if s.date >= cutoff]
        matches.sort(key=lambda s: s.date, reverse=True)
        return matches[:limit]
