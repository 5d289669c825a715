"""SwapEngine – Verschieben bzw. Tauschen von Zellinhalten zwischen zwei Slots.

Ein Eintrag mit block_id wird immer zusammen mit allen Einträgen desselben
Pools in derselben Zelle bewegt (synchrone Pool-Gruppe). Die Engine räumt
in den beiden beteiligten Zellen die Einträge der wandernden Klassen;
Konflikte mit Dritten werden gemeldet, aber nicht verhindert. Aufrufer
filtern vorher mit check_swap().
"""

import logging

from pydantic import BaseModel

from models.entry import ScheduleEntry
from models.timeslot import GridCell
from solver.availability import AvailabilityOracle, EntityKind
from storage.store import GridMode, ScheduleStore

logger = logging.getLogger(__name__)


class SwapResult(BaseModel):
    """Ergebnis eines Tauschs bzw. einer Verschiebung."""

    removed_ids: list[str] = []
    displaced_ids: list[str] = []   # verdrängte Einträge der wandernden Klassen
    created: list[ScheduleEntry] = []
    is_swap: bool = False
    conflicts: list[str] = []     # Kollisionen mit Dritten (nicht verhindert)

    @property
    def is_noop(self) -> bool:
        return not self.removed_ids and not self.created


class SwapEngine:
    """Verwendung:
        engine = SwapEngine(store)
        engine.execute_move_or_swap(GridCell("Sunday", 2), GridCell("Monday", 4),
                                    EntityKind.SECTION, "grade-ix-a")
    """

    def __init__(self, store: ScheduleStore) -> None:
        self.store = store

    def group_at(
        self, cell: GridCell, kind: EntityKind, entity_id: str,
        mode: GridMode = GridMode.DRAFT,
    ) -> list[ScheduleEntry]:
        """Eintrag der Entität in der Zelle, erweitert um seine Pool-Gruppe."""
        key = kind.normalize(entity_id)
        cell_entries = [e for e in self.store.cell_entries(mode, cell) if e.date is None]
        match = next((e for e in cell_entries if kind.key_of(e) == key), None)
        if match is None:
            return []
        if not match.block_id:
            return [match]
        return [e for e in cell_entries if e.block_id == match.block_id]

    def _plan(
        self, source: GridCell, target: GridCell, kind: EntityKind,
        entity_id: str, mode: GridMode,
    ) -> tuple[list[ScheduleEntry], list[ScheduleEntry], list[ScheduleEntry], list[ScheduleEntry]]:
        """Gruppen beider Zellen, verdrängte Einträge und neue Einträge eines Tauschs."""
        source_group = self.group_at(source, kind, entity_id, mode)
        target_group = self.group_at(target, kind, entity_id, mode)
        created = [e.relocated(target) for e in source_group]
        created += [e.relocated(source) for e in target_group]
        # Klassen, die in eine Zelle wandern, räumen dort ihre übrigen Einträge
        moving = {e.id for e in source_group + target_group}
        displaced = [
            e for cell, group in ((target, source_group), (source, target_group))
            for e in self.store.cell_entries(mode, cell)
            if e.date is None and e.id not in moving
            and e.section_id in {g.section_id for g in group}
        ]
        return source_group, target_group, displaced, created

    def check_swap(
        self, source: GridCell, target: GridCell, kind: EntityKind,
        entity_id: str, mode: GridMode = GridMode.DRAFT,
    ) -> list[str]:
        """Kollisionen, die der Tausch außerhalb der beiden Zellen erzeugen würde."""
        if source == target:
            return []
        source_group, target_group, displaced, created = self._plan(
            source, target, kind, entity_id, mode)
        moving = {e.id for e in source_group + target_group + displaced}
        oracle = AvailabilityOracle(self.store, mode)
        conflicts: list[str] = []
        for entry in created:
            for check_kind in EntityKind:
                clash = oracle.find_clash(
                    check_kind, check_kind.key_of(entry), entry.day, entry.slot_id,
                    exclude_ids=moving,
                )
                if clash is not None:
                    conflicts.append(
                        f"{check_kind.value} '{check_kind.key_of(entry)}' in {entry.cell} "
                        f"bereits belegt"
                    )
        return sorted(set(conflicts))

    def execute_move_or_swap(
        self,
        source: GridCell,
        target: GridCell,
        kind: EntityKind,
        entity_id: str,
        mode: GridMode = GridMode.DRAFT,
    ) -> SwapResult:
        """Tauscht die Gruppen beider Zellen; eine leere Seite ergibt eine Verschiebung.

        Alte Einträge werden gelöscht und durch neue (neue IDs, is_manual=True)
        ersetzt. Übrige Einträge der wandernden Klassen in der Zielzelle werden
        mitgelöscht, damit keine Klasse doppelt belegt ist. Bei
        PersistenceError bleibt der Zustand unverändert.
        """
        if source == target:
            return SwapResult()

        conflicts = self.check_swap(source, target, kind, entity_id, mode)
        source_group, target_group, displaced, created = self._plan(
            source, target, kind, entity_id, mode)
        if not created:
            logger.debug(f"Swap {source} ↔ {target}: nichts zu bewegen für {kind.value} {entity_id}")
            return SwapResult()

        removed_ids = [e.id for e in source_group + target_group + displaced]
        self.store.replace_entries(mode, removed_ids, created)

        is_swap = bool(source_group and target_group)
        logger.info(
            f"{'Tausch' if is_swap else 'Verschiebung'} {source} → {target} "
            f"({kind.value} {entity_id}, {len(created)} Einträge, {mode.value})"
        )
        for e in displaced:
            logger.warning(f"Swap verdrängt {e.subject} ({e.teacher_id}) aus {e.section_id} in {e.cell}")
        for msg in conflicts:
            logger.warning(f"Swap erzeugt Kollision: {msg}")
        return SwapResult(
            removed_ids=removed_ids,
            displaced_ids=[e.id for e in displaced],
            created=created,
            is_swap=is_swap,
            conflicts=conflicts,
        )

    def find_free_targets(
        self, source: GridCell, kind: EntityKind, entity_id: str,
        cells: list[GridCell], mode: GridMode = GridMode.DRAFT,
    ) -> list[GridCell]:
        """Zellen, in die ohne Kollision mit Dritten getauscht werden kann."""
        return [
            cell for cell in cells
            if cell != source and not self.check_swap(source, cell, kind, entity_id, mode)
        ]


def entry_signature(entry: ScheduleEntry) -> tuple:
    """Vergleichsschlüssel ohne Surrogat-ID und Manuell-Flag."""
    return (entry.day, entry.slot_id, entry.section_id, entry.teacher_id,
            entry.subject, entry.room or "", entry.block_id or "",
            entry.block_name or "", entry.date.isoformat() if entry.date else "")


def grid_signature(entries: list[ScheduleEntry]) -> list[tuple]:
    return sorted(entry_signature(e) for e in entries)
