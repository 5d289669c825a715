"""Datenmodell für Pool-Vorlagen (Parallel-Unterricht mehrerer Klassen, Pydantic v2)."""

import uuid

from pydantic import BaseModel, Field


class BlockAllocation(BaseModel):
    """Eine Lehrer/Fach/Raum-Zuordnung innerhalb eines Pools."""

    teacher_id: str = ""
    subject: str = ""
    room: str = ""


class CombinedBlock(BaseModel):
    """Pool: Mehrere Klassen belegen synchron denselben (Tag, Slot).

    Beispiel Sprachen IX:
    - Klassen IX-A, IX-B, IX-C belegen alle denselben Slot.
    - Jede Klasse erhält reihum (Index modulo Anzahl) eine Zuordnung.

    WICHTIG: Alle beteiligten Klassen UND Lehrkräfte müssen im Slot frei sein!
    """

    id: str = Field(default_factory=lambda: f"block-{uuid.uuid4()}")
    title: str
    heading: str
    grade_id: str
    section_ids: list[str]
    weekly_periods: int = Field(0, ge=0)
    allocations: list[BlockAllocation]

    @property
    def teacher_ids(self) -> list[str]:
        """Lehrkräfte in Zuordnungsreihenfolge, ohne Duplikate."""
        seen: list[str] = []
        for a in self.allocations:
            if a.teacher_id and a.teacher_id not in seen:
                seen.append(a.teacher_id)
        return seen

    def allocation_for(self, index: int) -> BlockAllocation:
        """Zuordnung für die index-te Klasse (Round-Robin, Index wird umgebrochen)."""
        return self.allocations[index % len(self.allocations)]

    def pairings(self) -> list[tuple[str, BlockAllocation]]:
        """(section_id, allocation)-Paare für eine Bereitstellung."""
        if not self.allocations:
            return []
        return [(sid, self.allocation_for(i)) for i, sid in enumerate(self.section_ids)]

    @property
    def deployed_teacher_ids(self) -> list[str]:
        """Lehrkräfte, die bei einer Bereitstellung tatsächlich eine Klasse erhalten.

        Überzählige Zuordnungen (mehr Zuordnungen als Klassen) fehlen hier.
        """
        seen: list[str] = []
        for _, a in self.pairings():
            if a.teacher_id and a.teacher_id not in seen:
                seen.append(a.teacher_id)
        return seen
