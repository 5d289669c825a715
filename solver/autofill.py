"""AutoFillEngine – füllt das Wochenraster eines Jahrgangs (First-Fit).

Phasen:
  0. Klassenlehrer-Anker: 1. Unterrichtsstunde jedes Tages
  1. Pools (härteste Constraint): alle Klassen + Lehrkräfte synchron frei
  2. Einzelne Lehraufträge pro Klasse

Zellen werden in fester Reihenfolge geprüft (Tage wie konfiguriert, dann
Slots des Flügels). Die erste passende Zelle gewinnt; es gibt keine
Optimierung. Nicht platzierbare Stunden landen im FillReport.

Vorbedingung (nicht erzwungen): vor einem erneuten Lauf die Draft-Einträge
des Jahrgangs löschen, siehe solver.manual_edit.clear_grade_draft.
"""

import logging
from typing import Iterator, Optional

from pydantic import BaseModel

from config.schema import SectionConfig, TimeSlot
from models.assignment import Assignment, SubjectLoad
from models.combined_block import CombinedBlock
from models.entry import ScheduleEntry
from models.school_data import SchoolData
from models.timeslot import GridCell
from solver.availability import AvailabilityOracle, EntityKind
from storage.backend import PersistenceError
from storage.store import GridMode, ScheduleStore

logger = logging.getLogger(__name__)


# ─── Report-Modelle ───────────────────────────────────────────────────────────

class SkippedPeriod(BaseModel):
    """Stunden, die nicht platziert werden konnten."""

    phase: str                      # "anchor" | "block" | "load"
    section_id: Optional[str] = None
    teacher_id: Optional[str] = None
    subject: str = ""
    block_id: Optional[str] = None
    count: int = 1
    reason: str = "Kein freier Slot"


class FillReport(BaseModel):
    """Ergebnis eines Auto-Fill-Laufs (Einträge, nicht Zellen)."""

    grade_name: str
    total_requested: int = 0
    placed: int = 0
    skipped: list[SkippedPeriod] = []

    @property
    def skipped_count(self) -> int:
        return sum(s.count for s in self.skipped)

    @property
    def is_complete(self) -> bool:
        return not self.skipped

    def print_rich(self) -> None:
        from rich.console import Console
        from rich.table import Table

        console = Console()
        color = "green" if self.is_complete else "yellow"
        console.print(
            f"[bold]{self.grade_name}[/bold]: [{color}]{self.placed}/"
            f"{self.total_requested} Stunden platziert[/{color}]"
        )
        if not self.skipped:
            return
        table = Table(title="Nicht platziert", show_lines=False)
        table.add_column("Phase", style="cyan")
        table.add_column("Klasse / Pool")
        table.add_column("Lehrkraft")
        table.add_column("Fach")
        table.add_column("Anz.", justify="right")
        table.add_column("Grund", style="yellow")
        for s in self.skipped:
            table.add_row(
                s.phase,
                s.section_id or s.block_id or "–",
                s.teacher_id or "–",
                s.subject or "–",
                str(s.count),
                s.reason,
            )
        console.print(table)


# ─── Engine ───────────────────────────────────────────────────────────────────

class AutoFillEngine:
    """First-Fit-Füller für einen ganzen Jahrgang.

    Verwendung:
        engine = AutoFillEngine(school_data, store)
        report = engine.fill_grade("grade-ix")

    Für kooperatives Scheduling liefert iter_fill() nach jeder platzierten
    Einheit (Anker, Pool-Stunde, Einzelstunde) die geplanten Einträge. In den
    Draft geschrieben wird erst am Ende, in einem einzigen insert_entries.
    """

    def __init__(self, data: SchoolData, store: ScheduleStore) -> None:
        self.data = data
        self.config = data.config
        self.store = store

    def fill_grade(self, grade_id: str, use_anchors: Optional[bool] = None) -> FillReport:
        gen = self.iter_fill(grade_id, use_anchors)
        while True:
            try:
                next(gen)
            except StopIteration as stop:
                return stop.value

    def iter_fill(
        self, grade_id: str, use_anchors: Optional[bool] = None
    ) -> Iterator[list[ScheduleEntry]]:
        """Generator; Rückgabewert (StopIteration.value) ist der FillReport."""
        grade = self.config.grade(grade_id)
        if grade is None:
            logger.warning(f"Auto-Fill: unbekannter Jahrgang '{grade_id}'")
            return FillReport(grade_name=grade_id)

        if use_anchors is None:
            use_anchors = self.config.engine.anchor_enabled
        sections = self.config.sections_for_grade(grade_id)
        report = FillReport(grade_name=grade.name)
        # Live-Einträge des Jahrgangs werden beim Veröffentlichen ersetzt
        self._oracle = AvailabilityOracle(
            self.store, GridMode.DRAFT, shadow_sections=[s.id for s in sections]
        )
        self._report = report
        self._pending: list[ScheduleEntry] = []

        anchors_placed: dict[str, int] = {}
        if use_anchors:
            for section in sections:
                placed = yield from self._place_anchors(section)
                anchors_placed[section.id] = placed

        for block in self.store.blocks(grade_id):
            yield from self._place_block(block)

        for assignment in self.store.assignments(grade_id=grade_id):
            yield from self._place_assignment(assignment, sections, anchors_placed)

        if self._pending:
            try:
                self.store.insert_entries(GridMode.DRAFT, self._pending)
            except PersistenceError:
                logger.error(
                    f"Auto-Fill {grade.name}: {len(self._pending)} Einträge nicht gespeichert, "
                    f"Draft unverändert"
                )
                raise

        logger.info(
            f"Auto-Fill {grade.name}: {report.placed}/{report.total_requested} platziert, "
            f"{report.skipped_count} übersprungen"
        )
        if report.skipped:
            logger.warning(
                f"Auto-Fill {grade.name}: {len(report.skipped)} Positionen nicht vollständig platziert"
            )
        return report

    # ─── Phase 0: Anker ──────────────────────────────────────────────────────

    def _place_anchors(self, section: SectionConfig) -> Iterator[list[ScheduleEntry]]:
        teacher = self.data.class_teacher_for(section.id)
        if teacher is None or not teacher.is_teaching_staff:
            return 0
        assignment = self.store.assignment(teacher.id, section.grade_id)
        if assignment is None or not assignment.anchor_subject:
            return 0
        slots = self.config.slots_for_wing(section.wing_id)
        if not slots:
            return 0

        room = self.config.default_room(section.id)
        first = slots[0]
        placed = 0
        for day in self.config.engine.days:
            self._report.total_requested += 1
            cell = GridCell(day, first.id)
            if not self._oracle.is_cell_free(cell, section.id, teacher.id, room):
                self._report.skipped.append(SkippedPeriod(
                    phase="anchor", section_id=section.id, teacher_id=teacher.id,
                    subject=assignment.anchor_subject,
                    reason=f"{cell} belegt",
                ))
                continue
            entry = ScheduleEntry(
                day=day, slot_id=first.id, section_id=section.id,
                teacher_id=teacher.id, subject=assignment.anchor_subject, room=room,
            )
            self._stage([entry])
            placed += 1
            yield [entry]
        return placed

    # ─── Phase 1: Pools ──────────────────────────────────────────────────────

    def _required_block_periods(self, block: CombinedBlock) -> int:
        if block.weekly_periods > 0:
            return block.weekly_periods
        group = [
            a.group_periods
            for a in self.store.assignments(grade_id=block.grade_id)
            if a.teacher_id in block.teacher_ids
        ]
        return max(group, default=0)

    def _place_block(self, block: CombinedBlock) -> Iterator[list[ScheduleEntry]]:
        required = self._required_block_periods(block)
        pairings = block.pairings() if block.allocations else []
        if required == 0 or not pairings:
            return
        self._report.total_requested += required * len(pairings)

        grade = self.config.grade(block.grade_id)
        slots = self.config.slots_for_wing(grade.wing_id) if grade else []
        missing = required
        for _ in range(required):
            # reines First-Fit, keine Verteilung auf Tage
            cell = self._first_fit(slots, set(), lambda c: self._block_fits(block, c))
            if cell is None:
                break
            entries = [
                ScheduleEntry(
                    day=cell.day, slot_id=cell.slot_id, section_id=section_id,
                    teacher_id=alloc.teacher_id, subject=alloc.subject,
                    room=alloc.room or self.config.default_room(section_id),
                    block_id=block.id, block_name=block.title,
                )
                for section_id, alloc in pairings
            ]
            self._stage(entries)
            missing -= 1
            yield entries

        if missing:
            self._report.skipped.append(SkippedPeriod(
                phase="block", block_id=block.id, subject=block.title,
                count=missing * len(pairings),
                reason="Kein gemeinsamer freier Slot",
            ))

    def _block_fits(self, block: CombinedBlock, cell: GridCell) -> bool:
        oracle = self._oracle
        for section_id in block.section_ids:
            if not oracle.is_free(EntityKind.SECTION, section_id, cell.day, cell.slot_id):
                return False
        for teacher_id in block.deployed_teacher_ids:
            if not oracle.is_free(EntityKind.TEACHER, teacher_id, cell.day, cell.slot_id):
                return False
        for section_id, alloc in block.pairings():
            room = alloc.room or self.config.default_room(section_id)
            if not oracle.is_free(EntityKind.ROOM, room, cell.day, cell.slot_id):
                return False
        return True

    # ─── Phase 2: Lehraufträge ───────────────────────────────────────────────

    def _place_assignment(
        self,
        assignment: Assignment,
        sections: list[SectionConfig],
        anchors_placed: dict[str, int],
    ) -> Iterator[list[ScheduleEntry]]:
        teacher = self.data.teacher(assignment.teacher_id)
        targets = [
            s for s in sections
            if not assignment.target_section_ids or s.id in assignment.target_section_ids
        ]
        for section in targets:
            for load in assignment.loads:
                count = load.periods
                if (teacher is not None
                        and teacher.class_teacher_of == section.id
                        and load.subject == assignment.anchor_subject):
                    count = max(0, count - anchors_placed.get(section.id, 0))
                if count == 0:
                    continue
                self._report.total_requested += count
                if teacher is None or not teacher.is_teaching_staff:
                    self._report.skipped.append(SkippedPeriod(
                        phase="load", section_id=section.id,
                        teacher_id=assignment.teacher_id, subject=load.subject,
                        count=count, reason="Lehrkraft unbekannt oder nicht aktiv",
                    ))
                    continue
                yield from self._place_load(section, assignment.teacher_id, load, count)

    def _place_load(
        self, section: SectionConfig, teacher_id: str, load: SubjectLoad, count: int
    ) -> Iterator[list[ScheduleEntry]]:
        slots = self.config.slots_for_wing(section.wing_id)
        room = load.room or self.config.default_room(section.id)
        # Tage, an denen das Fach in dieser Klasse schon liegt
        subject_days = {
            e.day for e in self.store.section_entries(GridMode.DRAFT, section.id) + self._pending
            if e.section_id == section.id and e.subject == load.subject
        }

        def fits(cell: GridCell) -> bool:
            return self._oracle.is_cell_free(cell, section.id, teacher_id, room)

        placed = 0
        for _ in range(count):
            cell = self._first_fit(slots, subject_days, fits)
            if cell is None:
                break
            entry = ScheduleEntry(
                day=cell.day, slot_id=cell.slot_id, section_id=section.id,
                teacher_id=teacher_id, subject=load.subject, room=room,
            )
            self._stage([entry])
            subject_days.add(cell.day)
            placed += 1
            yield [entry]

        if placed < count:
            self._report.skipped.append(SkippedPeriod(
                phase="load", section_id=section.id, teacher_id=teacher_id,
                subject=load.subject, count=count - placed,
            ))

    # ─── Hilfsfunktionen ─────────────────────────────────────────────────────

    def _first_fit(self, slots: list[TimeSlot], avoid_days: set[str], fits) -> Optional[GridCell]:
        """Erste passende Zelle; Tage aus avoid_days nur im zweiten Durchlauf."""
        days = self.config.engine.days
        preferred = [d for d in days if d not in avoid_days]
        fallback = [d for d in days if d in avoid_days]
        for day_list in (preferred, fallback):
            for day in day_list:
                for slot in slots:
                    cell = GridCell(day, slot.id)
                    if fits(cell):
                        return cell
        return None

    def _stage(self, entries: list[ScheduleEntry]) -> None:
        """Merkt eine Einheit zum Schreiben vor und erweitert den Oracle."""
        self._pending.extend(entries)
        self._oracle = self._oracle.overlay(entries)
        self._report.placed += len(entries)
