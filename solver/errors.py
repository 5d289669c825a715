"""Fehler-Taxonomie der Planungs-Engine.

Teilergebnisse (übersprungene Stunden, offene Vertretungen, verwaiste
Pool-Verweise) sind KEINE Fehler, sondern stehen in den Report-Modellen.
"""

from typing import Optional

from models.timeslot import GridCell
from storage.backend import PersistenceError


class SchedulingError(Exception):
    """Basisklasse aller Engine-Fehler."""


class ValidationError(SchedulingError):
    """Pflichtfeld fehlt oder Eingabe ist ungültig – vor jeder Mutation geprüft."""


class ConflictError(SchedulingError):
    """Verfügbarkeitsprüfung vor dem Schreiben fehlgeschlagen."""

    def __init__(self, message: str, kind: Optional[str] = None,
                 entity_id: Optional[str] = None,
                 cell: Optional[GridCell] = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.entity_id = entity_id
        self.cell = cell


__all__ = [
    "SchedulingError",
    "ValidationError",
    "ConflictError",
    "PersistenceError",
]
