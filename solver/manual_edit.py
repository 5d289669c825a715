"""ManualEditor – einzelne Stunden von Hand setzen und Draft-Bereiche leeren.

Von Hand gesetzte Stunden tragen is_manual=True und bleiben beim Leeren
eines Jahrgangs (keep_manual=True) erhalten, damit ein erneuter Auto-Fill
um sie herum plant.
"""

import logging
from enum import Enum
from typing import Optional

from models.entry import ScheduleEntry
from models.school_data import SchoolData
from models.timeslot import GridCell
from solver.availability import AvailabilityOracle, EntityKind
from solver.errors import ConflictError, ValidationError
from storage.store import GridMode, ScheduleStore

logger = logging.getLogger(__name__)


class FillPhase(str, Enum):
    """Herkunft eines Eintrags, analog zu den Auto-Fill-Phasen."""

    ANCHORS = "anchors"
    BLOCKS = "blocks"
    LOADS = "loads"


class ManualEditor:
    """Verwendung:
        editor = ManualEditor(school_data, store)
        editor.place_entry(ScheduleEntry(day="Sunday", slot_id=2, ...))
    """

    def __init__(self, data: SchoolData, store: ScheduleStore) -> None:
        self.data = data
        self.config = data.config
        self.store = store

    def place_entry(
        self, entry: ScheduleEntry, mode: GridMode = GridMode.DRAFT, force: bool = False
    ) -> ScheduleEntry:
        """Setzt eine Stunde; ein bestehender Eintrag der Klasse in der Zelle wird ersetzt.

        Raises:
            ValidationError: unbekannte Klasse/Lehrkraft oder kein Unterrichtsslot
            ConflictError:   Lehrkraft oder Raum in der Zelle belegt (außer force=True)
        """
        section = self.config.section(entry.section_id)
        if section is None:
            raise ValidationError(f"Unbekannte Klasse '{entry.section_id}'")
        if self.data.teacher(entry.teacher_id) is None:
            raise ValidationError(f"Unbekannte Lehrkraft '{entry.teacher_id}'")
        if not entry.subject.strip():
            raise ValidationError("Fach fehlt")
        if entry.day not in self.config.engine.days:
            raise ValidationError(f"'{entry.day}' ist kein Unterrichtstag")
        slot_ids = {s.id for s in self.config.slots_for_wing(section.wing_id)}
        if entry.slot_id not in slot_ids:
            raise ValidationError(f"{entry.cell} ist kein Unterrichtsslot für {section.name}")

        replaced = self._section_group(entry.cell, entry.section_id, mode)
        replaced_ids = [e.id for e in replaced]
        if not force:
            oracle = AvailabilityOracle(self.store, mode)
            for kind, value in ((EntityKind.TEACHER, entry.teacher_id),
                                (EntityKind.ROOM, entry.room)):
                clash = oracle.find_clash(kind, value, entry.day, entry.slot_id,
                                          exclude_ids=replaced_ids)
                if clash is not None:
                    raise ConflictError(
                        f"{kind.value} '{value}' ist in {entry.cell} bereits belegt",
                        kind=kind.value, entity_id=value, cell=entry.cell,
                    )

        manual = entry.model_copy(update={"is_manual": True})
        self.store.replace_entries(mode, replaced_ids, [manual])
        logger.info(
            f"Manuell gesetzt: {section.name} {entry.cell} {entry.subject} "
            f"({entry.teacher_id}, {mode.value})"
        )
        return manual

    def _section_group(self, cell: GridCell, section_id: str,
                       mode: GridMode) -> list[ScheduleEntry]:
        """Eintrag der Klasse in der Zelle, bei Pools die ganze Pool-Gruppe."""
        cell_entries = [e for e in self.store.cell_entries(mode, cell) if e.date is None]
        own = [e for e in cell_entries if e.section_id == section_id]
        block_ids = {e.block_id for e in own if e.block_id}
        return own + [
            e for e in cell_entries
            if e.block_id in block_ids and e.section_id != section_id
        ]

    def clear_cell(self, cell: GridCell, section_id: str,
                   mode: GridMode = GridMode.DRAFT) -> list[ScheduleEntry]:
        """Leert die Zelle einer Klasse; Pool-Stunden werden für alle Klassen entfernt."""
        doomed = self._section_group(cell, section_id, mode)
        if doomed:
            self.store.replace_entries(mode, [e.id for e in doomed], [])
            logger.info(f"Zelle {cell} geleert ({len(doomed)} Einträge, {mode.value})")
        return doomed

    def clear_section_draft(self, section_id: str) -> list[ScheduleEntry]:
        removed = self.store.delete_entries(GridMode.DRAFT, lambda e: e.section_id == section_id)
        logger.info(f"Draft von {section_id} geleert ({len(removed)} Einträge)")
        return removed

    def clear_grade_draft(
        self, grade_id: str, keep_manual: bool = True, phase: Optional[FillPhase] = None
    ) -> list[ScheduleEntry]:
        """Vorbereitung für einen erneuten Auto-Fill des Jahrgangs."""
        sections = {s.id for s in self.config.sections_for_grade(grade_id)}

        def doomed(e: ScheduleEntry) -> bool:
            if e.section_id not in sections:
                return False
            if keep_manual and e.is_manual:
                return False
            return phase is None or self.phase_of(e) is phase

        removed = self.store.delete_entries(GridMode.DRAFT, doomed)
        logger.info(
            f"Draft Jahrgang {grade_id} geleert: {len(removed)} Einträge"
            + (f" (Phase {phase.value})" if phase else "")
        )
        return removed

    def phase_of(self, entry: ScheduleEntry) -> FillPhase:
        if entry.block_id:
            return FillPhase.BLOCKS
        teacher = self.data.class_teacher_for(entry.section_id)
        section = self.config.section(entry.section_id)
        if teacher is not None and section is not None and teacher.id == entry.teacher_id:
            assignment = self.store.assignment(teacher.id, section.grade_id)
            slots = self.config.slots_for_wing(section.wing_id)
            if (assignment is not None and assignment.anchor_subject == entry.subject
                    and slots and entry.slot_id == slots[0].id):
                return FillPhase.ANCHORS
        return FillPhase.LOADS
