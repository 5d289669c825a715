"""BlockPoolManager – Pool-Vorlagen verwalten und synchron bereitstellen.

Ein Pool belegt für alle beteiligten Klassen denselben (Tag, Slot). Die
Klassen werden reihum mit den Zuordnungen gepaart: Klasse i erhält
allocations[i % len(allocations)]. Gibt es mehr Zuordnungen als Klassen,
bleiben die überzähligen bei dieser Bereitstellung ungenutzt und gelten
im Pool-Slot nicht als belegt. Ohne Raum gilt der Standardraum der Klasse.

group_periods der Lehraufträge wird bei jeder Pool-Änderung sofort neu
berechnet (nie lazy).
"""

import logging
from typing import Iterable, Optional

from models.assignment import Assignment
from models.combined_block import CombinedBlock
from models.entry import ScheduleEntry
from models.school_data import SchoolData
from models.timeslot import GridCell
from solver.errors import ValidationError
from storage.backend import PersistenceError
from storage.store import GridMode, ScheduleStore

logger = logging.getLogger(__name__)


class BlockPoolManager:
    """Verwendung:
        pools = BlockPoolManager(school_data, store)
        pools.save_block(block)
        pools.deploy_block(block, GridCell("Sunday", 3))
    """

    def __init__(self, data: SchoolData, store: ScheduleStore) -> None:
        self.data = data
        self.store = store

    # ─── Validierung ─────────────────────────────────────────────────────────

    def validate(self, block: CombinedBlock) -> None:
        """Wirft ValidationError bei unvollständiger oder widersprüchlicher Vorlage."""
        for field in ("title", "heading", "grade_id"):
            if not str(getattr(block, field) or "").strip():
                raise ValidationError(f"Pool: Pflichtfeld '{field}' fehlt")
        if not block.section_ids:
            raise ValidationError(f"Pool '{block.title}': keine Klassen ausgewählt")
        if not block.allocations:
            raise ValidationError(f"Pool '{block.title}': keine Zuordnungen")

        config = self.data.config
        if config.grade(block.grade_id) is None:
            raise ValidationError(f"Pool '{block.title}': unbekannter Jahrgang '{block.grade_id}'")
        for section_id in block.section_ids:
            section = config.section(section_id)
            if section is None or section.grade_id != block.grade_id:
                raise ValidationError(
                    f"Pool '{block.title}': Klasse '{section_id}' gehört nicht zu {block.grade_id}"
                )

        teachers: set[str] = set()
        rooms: set[str] = set()
        for i, alloc in enumerate(block.allocations, start=1):
            if not alloc.teacher_id.strip() or not alloc.subject.strip():
                raise ValidationError(
                    f"Pool '{block.title}': Zuordnung {i} ohne Lehrkraft oder Fach"
                )
            if alloc.teacher_id in teachers:
                raise ValidationError(
                    f"Pool '{block.title}': Lehrkraft {alloc.teacher_id} mehrfach zugeordnet"
                )
            teachers.add(alloc.teacher_id)
            room = alloc.room.strip().lower()
            if room:
                if room in rooms:
                    raise ValidationError(
                        f"Pool '{block.title}': Raum '{alloc.room}' mehrfach vergeben"
                    )
                rooms.add(room)

    # ─── Vorlagen ────────────────────────────────────────────────────────────

    def save_block(self, block: CombinedBlock) -> CombinedBlock:
        """Legt eine Vorlage an oder aktualisiert sie und rechnet group_periods neu."""
        self.validate(block)
        previous = self.store.block(block.id)
        self.store.save_block(block)
        try:
            self._recompute_for(block, previous)
        except PersistenceError:
            logger.error(f"Pool '{block.title}': Lehraufträge nicht gespeichert, Vorlage zurückgesetzt")
            if previous is not None:
                self.store.save_block(previous)
            else:
                self.store.delete_block(block.id)
            raise
        logger.info(
            f"Pool '{block.title}' gespeichert ({len(block.section_ids)} Klassen, "
            f"{len(block.allocations)} Zuordnungen, {block.weekly_periods} Std./Woche)"
        )
        return block

    def remove_block(self, block_id: str) -> Optional[CombinedBlock]:
        """Löscht nur die Vorlage. Bereitgestellte Einträge behalten ihre block_id."""
        removed = self.store.delete_block(block_id)
        if removed is None:
            return None
        try:
            self._recompute_for(None, removed)
        except PersistenceError:
            logger.error(f"Pool '{removed.title}': Lehraufträge nicht gespeichert, Vorlage wiederhergestellt")
            self.store.save_block(removed)
            raise
        orphans = sum(len(self.store.block_entries(m, block_id)) for m in GridMode)
        logger.info(f"Pool '{removed.title}' gelöscht")
        if orphans:
            logger.warning(
                f"Pool '{removed.title}': {orphans} bereitgestellte Einträge verweisen "
                f"jetzt auf keine Vorlage mehr"
            )
        return removed

    # ─── group_periods ───────────────────────────────────────────────────────

    def group_periods_for(self, teacher_id: str, grade_id: str) -> int:
        return sum(
            b.weekly_periods for b in self.store.blocks(grade_id)
            if teacher_id in b.teacher_ids
        )

    def recompute_group_periods(
        self, grade_id: str, teacher_ids: Iterable[str]
    ) -> list[Assignment]:
        """Schreibt group_periods für die Lehrkräfte in einem Upsert."""
        updated: list[Assignment] = []
        for teacher_id in sorted(set(teacher_ids)):
            total = self.group_periods_for(teacher_id, grade_id)
            current = self.store.assignment(teacher_id, grade_id)
            if current is None:
                if total == 0:
                    continue
                current = Assignment(teacher_id=teacher_id, grade_id=grade_id)
            if current.group_periods != total:
                updated.append(current.model_copy(update={"group_periods": total}))
        self.store.upsert_assignments(updated)
        for a in updated:
            logger.debug(f"group_periods {a.teacher_id}/{grade_id} → {a.group_periods}")
        return updated

    def _recompute_for(self, block: Optional[CombinedBlock],
                       previous: Optional[CombinedBlock]) -> None:
        scope: dict[str, set[str]] = {}
        for b in (block, previous):
            if b is not None:
                scope.setdefault(b.grade_id, set()).update(b.teacher_ids)
        for grade_id, teacher_ids in scope.items():
            self.recompute_group_periods(grade_id, teacher_ids)

    # ─── Bereitstellung ──────────────────────────────────────────────────────

    def deploy_block(
        self, block: CombinedBlock, cell: GridCell, mode: GridMode = GridMode.DRAFT
    ) -> list[ScheduleEntry]:
        """Schreibt eine Pool-Stunde für alle Klassen in die Zelle.

        Bestehende Einträge der beteiligten Klassen in dieser Zelle werden
        überschrieben (kein Zusammenführen).
        """
        self.validate(block)
        slot_ids = {
            s.id for s in self.data.config.slots_for_wing(
                self.data.config.grade(block.grade_id).wing_id)
        }
        if cell.slot_id not in slot_ids:
            raise ValidationError(f"Pool '{block.title}': {cell} ist kein Unterrichtsslot")

        entries = [
            ScheduleEntry(
                day=cell.day, slot_id=cell.slot_id, section_id=section_id,
                teacher_id=alloc.teacher_id, subject=alloc.subject,
                room=alloc.room or self.data.config.default_room(section_id),
                block_id=block.id, block_name=block.title, is_manual=True,
            )
            for section_id, alloc in block.pairings()
        ]
        involved = set(block.section_ids)
        overwritten = [
            e.id for e in self.store.cell_entries(mode, cell)
            if e.section_id in involved and e.date is None
        ]
        self.store.replace_entries(mode, overwritten, entries)
        logger.info(
            f"Pool '{block.title}' in {cell} bereitgestellt ({len(entries)} Einträge, "
            f"{len(overwritten)} überschrieben, {mode.value})"
        )
        return entries

    def dismantle_block(self, block_id: str, mode: GridMode = GridMode.DRAFT) -> list[ScheduleEntry]:
        """Löscht alle bereitgestellten Einträge eines Pools im Raster."""
        removed = self.store.delete_entries(mode, lambda e: e.block_id == block_id)
        if removed:
            logger.info(f"Pool {block_id}: {len(removed)} Einträge entfernt ({mode.value})")
        return removed

    def orphaned_entries(self, mode: GridMode) -> list[ScheduleEntry]:
        """Einträge, deren block_id auf keine Vorlage mehr verweist."""
        return [
            e for e in self.store.entries(mode)
            if e.block_id and self.store.block(e.block_id) is None
        ]
