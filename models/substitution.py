"""Datenmodell für einen Vertretungs-Datensatz (Pydantic v2)."""

import uuid
import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field


class SubstitutionRecord(BaseModel):
    """Vertretung für eine abwesende Lehrkraft in genau einem Slot.

    Wird nie gelöscht, sondern archiviert (is_archived=True).
    """

    id: str = Field(default_factory=lambda: f"sub-{uuid.uuid4()}")
    date: dt.date
    slot_id: int
    section_id: str
    subject: str = ""
    absent_teacher_id: str
    substitute_teacher_id: Optional[str] = None   # None = noch offen
    block_id: Optional[str] = None
    is_archived: bool = False

    @property
    def is_active(self) -> bool:
        return not self.is_archived

    @property
    def is_pending(self) -> bool:
        return self.is_active and not self.substitute_teacher_id
