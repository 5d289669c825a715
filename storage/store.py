"""ScheduleStore: Draft- und Live-Raster, Vertretungen, Pools und Lehraufträge.

Alle Mutationen folgen derselben Reihenfolge: erst in den Durable Store
schreiben, erst nach Erfolg den In-Memory-Zustand ändern. Schlägt ein
Schreibzugriff fehl, bleibt der In-Memory-Zustand unverändert.
"""

import logging
from enum import Enum
from typing import Callable, Iterable, Optional

from models.assignment import Assignment
from models.combined_block import CombinedBlock
from models.entry import ScheduleEntry
from models.substitution import SubstitutionRecord
from models.timeslot import GridCell
from storage.backend import DurableStore, InMemoryStore, PersistenceError

logger = logging.getLogger(__name__)


class GridMode(str, Enum):
    """Welches Raster eine Operation liest bzw. schreibt."""

    LIVE = "live"
    DRAFT = "draft"


ENTRY_TABLES: dict[GridMode, str] = {
    GridMode.LIVE: "timetable_entries",
    GridMode.DRAFT: "timetable_drafts",
}
SUBSTITUTION_TABLE = "substitution_ledger"
BLOCK_TABLE = "combined_blocks"
ASSIGNMENT_TABLE = "teacher_assignments"


def _assignment_record(a: Assignment) -> dict:
    return {**a.model_dump(mode="json"), "id": a.id}


class ScheduleStore:
    """Zwei getrennte, benannte Raster (Draft/Live) hinter einer Schnittstelle.

    Verwendung:
        store = ScheduleStore.open(JsonFileStore(Path("output/store")))
        store.entries(GridMode.DRAFT)
    """

    def __init__(self, backend: Optional[DurableStore] = None) -> None:
        self.backend: DurableStore = backend if backend is not None else InMemoryStore()
        self._entries: dict[GridMode, dict[str, ScheduleEntry]] = {m: {} for m in GridMode}
        self._substitutions: dict[str, SubstitutionRecord] = {}
        self._blocks: dict[str, CombinedBlock] = {}
        self._assignments: dict[str, Assignment] = {}

    @classmethod
    def open(cls, backend: DurableStore) -> "ScheduleStore":
        """Lädt alle Tabellen aus dem Backend."""
        store = cls(backend)
        for mode, table in ENTRY_TABLES.items():
            for record in backend.load(table):
                entry = ScheduleEntry.model_validate(record)
                store._entries[mode][entry.id] = entry
        for record in backend.load(SUBSTITUTION_TABLE):
            sub = SubstitutionRecord.model_validate(record)
            store._substitutions[sub.id] = sub
        for record in backend.load(BLOCK_TABLE):
            block = CombinedBlock.model_validate(record)
            store._blocks[block.id] = block
        for record in backend.load(ASSIGNMENT_TABLE):
            asgn = Assignment.model_validate(record)
            store._assignments[asgn.id] = asgn
        logger.debug(
            f"Store geladen: {len(store._entries[GridMode.LIVE])} live, "
            f"{len(store._entries[GridMode.DRAFT])} draft, "
            f"{len(store._substitutions)} Vertretungen, {len(store._blocks)} Pools"
        )
        return store

    # ─── Raster lesen ─────────────────────────────────────────────────────────

    def entries(self, mode: GridMode) -> list[ScheduleEntry]:
        return list(self._entries[mode].values())

    def entry(self, mode: GridMode, entry_id: str) -> Optional[ScheduleEntry]:
        return self._entries[mode].get(entry_id)

    def cell_entries(self, mode: GridMode, cell: GridCell) -> list[ScheduleEntry]:
        return [
            e for e in self._entries[mode].values()
            if e.day == cell.day and e.slot_id == cell.slot_id
        ]

    def section_entries(self, mode: GridMode, section_id: str) -> list[ScheduleEntry]:
        return [e for e in self._entries[mode].values() if e.section_id == section_id]

    def block_entries(self, mode: GridMode, block_id: str) -> list[ScheduleEntry]:
        return [e for e in self._entries[mode].values() if e.block_id == block_id]

    def draft_section_ids(self) -> set[str]:
        """Alle Klassen, für die der Draft Einträge enthält."""
        return {e.section_id for e in self._entries[GridMode.DRAFT].values()}

    # ─── Raster schreiben ─────────────────────────────────────────────────────

    def replace_entries(
        self,
        mode: GridMode,
        remove_ids: Iterable[str],
        add: Iterable[ScheduleEntry],
    ) -> None:
        """Löscht und fügt in einem logischen Schritt ein.

        Schlägt das Einfügen fehl, werden die gelöschten Datensätze
        kompensierend wieder eingefügt und der PersistenceError weitergereicht.
        """
        rows = self._entries[mode]
        remove = {i for i in remove_ids if i in rows}
        additions = list(add)
        if not remove and not additions:
            return

        table = ENTRY_TABLES[mode]
        removed_records = [rows[i].model_dump(mode="json") for i in remove]
        if remove:
            self.backend.delete_where(table, lambda r: r["id"] in remove)
        if additions:
            try:
                self.backend.bulk_insert(table, [e.model_dump(mode="json") for e in additions])
            except PersistenceError:
                if removed_records:
                    try:
                        self.backend.bulk_insert(table, removed_records)
                    except PersistenceError as comp_err:
                        logger.error(
                            f"Kompensation in '{table}' fehlgeschlagen – "
                            f"Durable Store evtl. inkonsistent: {comp_err}"
                        )
                raise

        for i in remove:
            del rows[i]
        for e in additions:
            rows[e.id] = e

    def insert_entries(self, mode: GridMode, entries: Iterable[ScheduleEntry]) -> None:
        self.replace_entries(mode, [], entries)

    def delete_entries(
        self, mode: GridMode, predicate: Callable[[ScheduleEntry], bool]
    ) -> list[ScheduleEntry]:
        """Löscht alle passenden Einträge und gibt sie zurück."""
        doomed = [e for e in self._entries[mode].values() if predicate(e)]
        self.replace_entries(mode, [e.id for e in doomed], [])
        return doomed

    # ─── Vertretungen ─────────────────────────────────────────────────────────

    def substitutions(self, include_archived: bool = False) -> list[SubstitutionRecord]:
        return [
            s for s in self._substitutions.values()
            if include_archived or not s.is_archived
        ]

    def substitution(self, record_id: str) -> Optional[SubstitutionRecord]:
        return self._substitutions.get(record_id)

    def upsert_substitutions(self, records: Iterable[SubstitutionRecord]) -> None:
        batch = list(records)
        if not batch:
            return
        self.backend.upsert(SUBSTITUTION_TABLE, [r.model_dump(mode="json") for r in batch])
        for r in batch:
            self._substitutions[r.id] = r

    # ─── Pools ────────────────────────────────────────────────────────────────

    def blocks(self, grade_id: Optional[str] = None) -> list[CombinedBlock]:
        return [
            b for b in self._blocks.values()
            if grade_id is None or b.grade_id == grade_id
        ]

    def block(self, block_id: str) -> Optional[CombinedBlock]:
        return self._blocks.get(block_id)

    def save_block(self, block: CombinedBlock) -> None:
        self.backend.upsert(BLOCK_TABLE, [block.model_dump(mode="json")])
        self._blocks[block.id] = block

    def delete_block(self, block_id: str) -> Optional[CombinedBlock]:
        if block_id not in self._blocks:
            return None
        self.backend.delete_where(BLOCK_TABLE, lambda r: r["id"] == block_id)
        return self._blocks.pop(block_id)

    # ─── Lehraufträge ─────────────────────────────────────────────────────────

    def assignments(
        self, teacher_id: Optional[str] = None, grade_id: Optional[str] = None
    ) -> list[Assignment]:
        return [
            a for a in self._assignments.values()
            if (teacher_id is None or a.teacher_id == teacher_id)
            and (grade_id is None or a.grade_id == grade_id)
        ]

    def assignment(self, teacher_id: str, grade_id: str) -> Optional[Assignment]:
        return self._assignments.get(f"{teacher_id}:{grade_id}")

    def upsert_assignments(self, assignments: Iterable[Assignment]) -> None:
        batch = list(assignments)
        if not batch:
            return
        self.backend.upsert(ASSIGNMENT_TABLE, [_assignment_record(a) for a in batch])
        for a in batch:
            self._assignments[a.id] = a

    def __repr__(self) -> str:
        return (
            f"ScheduleStore(live={len(self._entries[GridMode.LIVE])}, "
            f"draft={len(self._entries[GridMode.DRAFT])}, "
            f"subs={len(self._substitutions)}, blocks={len(self._blocks)})"
        )
