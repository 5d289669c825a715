import re
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class WingType(str, Enum):
    PRIMARY = "PRIMARY"
    SECONDARY_BOYS = "SECONDARY_BOYS"
    SECONDARY_GIRLS = "SECONDARY_GIRLS"
    SENIOR_SECONDARY_BOYS = "SENIOR_SECONDARY_BOYS"
    SENIOR_SECONDARY_GIRLS = "SENIOR_SECONDARY_GIRLS"

    @property
    def is_primary(self) -> bool:
        return self is WingType.PRIMARY


class SubjectCategory(str, Enum):
    CORE = "CORE"
    LANGUAGE_2ND = "LANGUAGE_2ND"
    LANGUAGE_2ND_SENIOR = "LANGUAGE_2ND_SENIOR"
    LANGUAGE_3RD = "LANGUAGE_3RD"
    RME = "RME"


_TIME_RE = re.compile(r"^\d{2}:\d{2}$")


# ─── ZEITRASTER (pro Flügel) ───

class TimeSlot(BaseModel):
    """Eine Zeile im Tagesraster eines Flügels (Stunde oder Pause)."""
    # Physische Slot-ID, 1-basiert und pro Flügel eindeutig
    id: int = Field(ge=1)
    # Anzeigename, z.B. "Period 1" oder "Recess"
    label: str
    # Beginn im Format "HH:MM"
    start_time: str
    # Ende im Format "HH:MM"
    end_time: str
    # Pausen werden nie belegt
    is_break: bool = False

    @field_validator("start_time", "end_time")
    @classmethod
    def _check_time_format(cls, v: str) -> str:
        if not _TIME_RE.match(v):
            raise ValueError(f"Uhrzeit '{v}' nicht im Format HH:MM")
        return v


class WingConfig(BaseModel):
    """Flügel (Campus-Abteilung) mit eigenem Zeitraster."""
    id: str
    name: str
    wing_type: WingType
    slots: list[TimeSlot] = Field(
        description="Geordnetes Tagesraster inkl. Pausen")

    @model_validator(mode="after")
    def _check_slot_ids(self):
        ids = [s.id for s in self.slots]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Flügel '{self.id}': Slot-IDs nicht eindeutig")
        return self

    @property
    def lesson_slots(self) -> list[TimeSlot]:
        """Alle belegbaren Slots (ohne Pausen) in Rasterreihenfolge."""
        return [s for s in self.slots if not s.is_break]


# ─── JAHRGÄNGE + KLASSEN ───

class GradeConfig(BaseModel):
    """Ein Jahrgang, z.B. "IX"."""
    id: str
    name: str
    wing_id: str


class SectionConfig(BaseModel):
    """Eine einzelne Klasse innerhalb eines Jahrgangs, z.B. "IX-A"."""
    id: str
    name: str
    grade_id: str
    wing_id: str


class SubjectConfig(BaseModel):
    name: str
    category: SubjectCategory = SubjectCategory.CORE


# ─── ENGINE ───

class EngineConfig(BaseModel):
    """Einstellungen der Planungs-Engine."""
    # Unterrichtstage in fester Iterationsreihenfolge
    days: list[str] = Field(
        default=["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday"],
        min_length=1,
        description="Unterrichtstage (Reihenfolge = Suchreihenfolge)")
    # Obergrenze Gesamtbelastung pro Lehrkraft und Woche (inkl. Vertretungen)
    max_weekly_periods: int = Field(35, ge=1,
        description="Max. Wochenstunden inkl. Vertretungen")
    # Präfix für Klassenräume, wenn eine Last keinen Raum vorgibt
    default_room_prefix: str = Field("ROOM",
        description="Präfix für den Standard-Klassenraum")
    # Klassenlehrer-Anker in der 1. Stunde setzen
    anchor_enabled: bool = Field(True,
        description="Klassenlehrer-Anker (1. Stunde) beim Auto-Fill setzen")


# ─── GESAMT-CONFIG ───

class SchoolConfig(BaseModel):
    """Gesamtkonfiguration der Schule."""
    school_name: str = Field("Muster-Schule")
    wings: list[WingConfig]
    grades: list[GradeConfig]
    sections: list[SectionConfig]
    # Räume sind reine Namen ohne Kapazitätsmodell
    rooms: list[str] = []
    subjects: list[SubjectConfig] = []
    engine: EngineConfig = Field(default_factory=EngineConfig)

    @model_validator(mode="after")
    def _check_references(self):
        """Referenzen Klasse → Jahrgang/Flügel und Jahrgang → Flügel prüfen."""
        wing_ids = [w.id for w in self.wings]
        grade_ids = [g.id for g in self.grades]
        section_ids = [s.id for s in self.sections]
        for label, ids in (("Flügel", wing_ids), ("Jahrgang", grade_ids),
                           ("Klasse", section_ids)):
            if len(ids) != len(set(ids)):
                raise ValueError(f"{label}-IDs nicht eindeutig")
        for g in self.grades:
            if g.wing_id not in wing_ids:
                raise ValueError(
                    f"Jahrgang '{g.id}' verweist auf unbekannten Flügel '{g.wing_id}'")
        for s in self.sections:
            if s.grade_id not in grade_ids:
                raise ValueError(
                    f"Klasse '{s.id}' verweist auf unbekannten Jahrgang '{s.grade_id}'")
            if s.wing_id not in wing_ids:
                raise ValueError(
                    f"Klasse '{s.id}' verweist auf unbekannten Flügel '{s.wing_id}'")
        return self

    # ─── Lookups ───

    def wing(self, wing_id: str) -> Optional[WingConfig]:
        return next((w for w in self.wings if w.id == wing_id), None)

    def grade(self, grade_id: str) -> Optional[GradeConfig]:
        return next((g for g in self.grades if g.id == grade_id), None)

    def section(self, section_id: str) -> Optional[SectionConfig]:
        return next((s for s in self.sections if s.id == section_id), None)

    def sections_for_grade(self, grade_id: str) -> list[SectionConfig]:
        return [s for s in self.sections if s.grade_id == grade_id]

    def slots_for_wing(self, wing_id: str,
                       include_breaks: bool = False) -> list[TimeSlot]:
        """Tagesraster eines Flügels; unbekannter Flügel → leere Liste."""
        wing = self.wing(wing_id)
        if wing is None:
            return []
        return list(wing.slots) if include_breaks else wing.lesson_slots

    def wing_type_for_section(self, section_id: str) -> Optional[WingType]:
        section = self.section(section_id)
        if section is None:
            return None
        wing = self.wing(section.wing_id)
        return wing.wing_type if wing else None

    def default_room(self, section_id: str) -> str:
        """Standard-Klassenraum einer Klasse, z.B. "ROOM IX-A"."""
        section = self.section(section_id)
        name = section.name if section else section_id
        return f"{self.engine.default_room_prefix} {name}"
