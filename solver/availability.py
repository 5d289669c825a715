"""AvailabilityOracle – reine Lese-Prüfungen auf Raster + Vertretungen.

Jede mutierende Komponente fragt den Oracle vor dem Schreiben; der Oracle
selbst erzwingt nichts und wirft nie.

Sichtbares Raster:
  - LIVE:  alle Live-Einträge
  - DRAFT: alle Draft-Einträge + Live-Einträge der Klassen, die der Draft
           (noch) nicht berührt. Berührte Klassen werden beim Veröffentlichen
           komplett ersetzt, ihre Live-Einträge sind daher verdeckt.
"""

from collections import defaultdict
from datetime import date
from enum import Enum
from typing import Callable, Iterable, Optional, Union

from models.entry import ScheduleEntry
from models.substitution import SubstitutionRecord
from models.timeslot import GridCell, weekday_name
from storage.store import GridMode, ScheduleStore


class EntityKind(str, Enum):
    """Art der Ressource, deren Exklusivität geprüft wird."""

    SECTION = "section"
    TEACHER = "teacher"
    ROOM = "room"

    def normalize(self, value: Optional[str]) -> str:
        """Vergleichsschlüssel; Räume werden ohne Groß/Klein verglichen."""
        if not value:
            return ""
        value = value.strip()
        return value.lower() if self is EntityKind.ROOM else value

    def key_of(self, entry: ScheduleEntry) -> str:
        return self.normalize(_ENTRY_KEYS[self](entry))


_ENTRY_KEYS: dict[EntityKind, Callable[[ScheduleEntry], Optional[str]]] = {
    EntityKind.SECTION: lambda e: e.section_id,
    EntityKind.TEACHER: lambda e: e.teacher_id,
    EntityKind.ROOM: lambda e: e.room,
}

Clash = Union[ScheduleEntry, SubstitutionRecord]
_IndexKey = tuple[EntityKind, str, str, int]


class AvailabilityOracle:
    """Konfliktprüfung für Klassen, Lehrkräfte und Räume.

    Verwendung:
        oracle = AvailabilityOracle(store, GridMode.DRAFT)
        oracle.is_free(EntityKind.TEACHER, "T01", "Sunday", 3)
    """

    def __init__(
        self,
        store: ScheduleStore,
        mode: GridMode,
        shadow_sections: Iterable[str] = (),
    ) -> None:
        self.store = store
        self.mode = mode
        self.shadow_sections = set(shadow_sections)
        self._index: dict[_IndexKey, list[ScheduleEntry]] = defaultdict(list)
        self._by_cell: dict[tuple[str, int], list[ScheduleEntry]] = defaultdict(list)
        for entry in self.visible_entries():
            self._add_to_index(entry)

    # ─── Sichtbares Raster ───────────────────────────────────────────────────

    def visible_entries(self) -> list[ScheduleEntry]:
        """Einträge, gegen die geprüft wird (ohne Overlay)."""
        if self.mode is GridMode.LIVE:
            return self.store.entries(GridMode.LIVE)
        hidden = self.store.draft_section_ids() | self.shadow_sections
        live = [
            e for e in self.store.entries(GridMode.LIVE)
            if e.section_id not in hidden
        ]
        return live + self.store.entries(GridMode.DRAFT)

    def overlay(self, entries: Iterable[ScheduleEntry]) -> "AvailabilityOracle":
        """Neuer Oracle, der zusätzlich noch nicht geschriebene Einträge sieht."""
        clone = object.__new__(AvailabilityOracle)
        clone.store = self.store
        clone.mode = self.mode
        clone.shadow_sections = set(self.shadow_sections)
        clone._index = defaultdict(list, {k: list(v) for k, v in self._index.items()})
        clone._by_cell = defaultdict(list, {k: list(v) for k, v in self._by_cell.items()})
        for entry in entries:
            clone._add_to_index(entry)
        return clone

    def _add_to_index(self, entry: ScheduleEntry) -> None:
        self._by_cell[(entry.day, entry.slot_id)].append(entry)
        for kind in EntityKind:
            key = kind.key_of(entry)
            if key:
                self._index[(kind, key, entry.day, entry.slot_id)].append(entry)

    # ─── Abfragen ────────────────────────────────────────────────────────────

    def find_clash(
        self,
        kind: EntityKind,
        entity_id: Optional[str],
        day: str,
        slot_id: int,
        exclude_entry_id: Optional[str] = None,
        on_date: Optional[date] = None,
        exclude_ids: Iterable[str] = (),
    ) -> Optional[Clash]:
        """Erster Eintrag bzw. erste Vertretung, die die Ressource belegt."""
        key = kind.normalize(entity_id)
        if not key:
            return None
        skip = set(exclude_ids)
        if exclude_entry_id:
            skip.add(exclude_entry_id)

        for entry in self._index.get((kind, key, day, slot_id), []):
            if entry.id in skip:
                continue
            # Datumsgebundene Overlays gelten nur an genau diesem Datum
            if entry.date is not None and entry.date != on_date:
                continue
            return entry

        if kind is EntityKind.TEACHER:
            block_clash = self._block_membership_clash(key, day, slot_id, skip)
            if block_clash is not None:
                return block_clash
            for sub in self._active_substitutions(day, slot_id, on_date):
                if sub.substitute_teacher_id == key:
                    return sub
        return None

    def is_free(
        self,
        kind: EntityKind,
        entity_id: Optional[str],
        day: str,
        slot_id: int,
        exclude_entry_id: Optional[str] = None,
        on_date: Optional[date] = None,
        exclude_ids: Iterable[str] = (),
    ) -> bool:
        return self.find_clash(kind, entity_id, day, slot_id,
                               exclude_entry_id, on_date, exclude_ids) is None

    def is_cell_free(
        self,
        cell: GridCell,
        section_id: Optional[str] = None,
        teacher_id: Optional[str] = None,
        room: Optional[str] = None,
        on_date: Optional[date] = None,
    ) -> bool:
        """Kurzform: alle angegebenen Ressourcen sind in der Zelle frei."""
        checks = (
            (EntityKind.SECTION, section_id),
            (EntityKind.TEACHER, teacher_id),
            (EntityKind.ROOM, room),
        )
        return all(
            self.is_free(kind, value, cell.day, cell.slot_id, on_date=on_date)
            for kind, value in checks
        )

    def busy_teachers(self, day: str, slot_id: int,
                      on_date: Optional[date] = None) -> set[str]:
        """Alle Lehrkräfte, die in der Zelle belegt sind."""
        busy: set[str] = set()
        for e in self._by_cell.get((day, slot_id), []):
            if e.teacher_id and (e.date is None or e.date == on_date):
                busy.add(e.teacher_id.strip())
        for entry in self._cell_block_entries(day, slot_id):
            block = self.store.block(entry.block_id)
            if block is not None:
                busy.update(block.deployed_teacher_ids)
        for sub in self._active_substitutions(day, slot_id, on_date):
            busy.add(sub.substitute_teacher_id)
        return busy

    # ─── Interna ─────────────────────────────────────────────────────────────

    def _cell_block_entries(self, day: str, slot_id: int,
                            skip: frozenset = frozenset()) -> list[ScheduleEntry]:
        """Ein Eintrag je Pool in der Zelle; Pools mit übersprungenen Einträgen entfallen."""
        seen: dict[str, ScheduleEntry] = {}
        skipped_blocks: set[str] = set()
        for e in self._by_cell.get((day, slot_id), []):
            if not e.block_id or e.date is not None:
                continue
            if e.id in skip:
                skipped_blocks.add(e.block_id)
            seen.setdefault(e.block_id, e)
        return [e for bid, e in seen.items() if bid not in skipped_blocks]

    def _block_membership_clash(
        self, teacher_id: str, day: str, slot_id: int,
        skip: set[str],
    ) -> Optional[ScheduleEntry]:
        """Pool-Lehrkräfte mit zugeordneter Klasse sind im Pool-Slot belegt, auch ohne eigenen Eintrag."""
        for entry in self._cell_block_entries(day, slot_id, frozenset(skip)):
            block = self.store.block(entry.block_id)
            if block is not None and teacher_id in block.deployed_teacher_ids:
                return entry
        return None

    def _active_substitutions(
        self, day: str, slot_id: int, on_date: Optional[date]
    ) -> list[SubstitutionRecord]:
        result = []
        for sub in self.store.substitutions():
            if sub.slot_id != slot_id or not sub.substitute_teacher_id:
                continue
            if on_date is not None:
                if sub.date != on_date:
                    continue
            elif weekday_name(sub.date) != day:
                continue
            result.append(sub)
        return result
