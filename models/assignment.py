"""Lehrauftrag einer Lehrkraft pro Jahrgang (Pydantic v2)."""

from typing import Optional

from pydantic import BaseModel, Field


class SubjectLoad(BaseModel):
    """Wochenstunden eines Fachs innerhalb eines Lehrauftrags."""

    subject: str
    periods: int = Field(ge=0)
    room: Optional[str] = None


class Assignment(BaseModel):
    """Lehrauftrag (teacher_id, grade_id).

    group_periods ist abgeleitet: Summe der weekly_periods aller Pools des
    Jahrgangs, in denen die Lehrkraft vorkommt. Wird bei jeder Pool-Änderung
    neu berechnet.
    """

    teacher_id: str
    grade_id: str
    loads: list[SubjectLoad] = []
    group_periods: int = 0
    target_section_ids: list[str] = []
    anchor_subject: Optional[str] = None   # Fach der Klassenlehrer-Stunde (1. Stunde)

    @property
    def id(self) -> str:
        return f"{self.teacher_id}:{self.grade_id}"

    @property
    def base_periods(self) -> int:
        return sum(load.periods for load in self.loads)

    @property
    def total_periods(self) -> int:
        return self.base_periods + self.group_periods
