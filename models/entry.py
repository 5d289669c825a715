"""Datenmodell für einen Eintrag im Stundenplan-Raster (Pydantic v2)."""

import uuid
import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field

from models.timeslot import GridCell


def new_entry_id() -> str:
    return str(uuid.uuid4())


class ScheduleEntry(BaseModel):
    """Eine einzelne Unterrichtsstunde im Raster (Draft oder Live)."""

    id: str = Field(default_factory=new_entry_id)
    day: str
    slot_id: int
    section_id: str
    teacher_id: str
    subject: str
    room: Optional[str] = None
    block_id: Optional[str] = None     # Gemeinsame ID einer Pool-Bereitstellung
    block_name: Optional[str] = None
    date: Optional[dt.date] = None        # Gesetzt = datumsgebundener Overlay-Eintrag
    is_manual: bool = False            # Von Hand gesetzt/verschoben

    @property
    def cell(self) -> GridCell:
        return GridCell(self.day, self.slot_id)

    def relocated(self, cell: GridCell) -> "ScheduleEntry":
        """Kopie an anderer Zelle mit neuer ID (gleiche Referenzen)."""
        return self.model_copy(update={
            "id": new_entry_id(),
            "day": cell.day,
            "slot_id": cell.slot_id,
            "is_manual": True,
        })
