"""Tests für die SwapEngine (Verschieben, Tauschen, Pool-Gruppen)."""

from collections import Counter

import pytest

from models.entry import ScheduleEntry
from models.timeslot import GridCell
from solver.availability import EntityKind
from solver.swap import SwapEngine, grid_signature
from storage.backend import InMemoryStore, PersistenceError
from storage.store import ENTRY_TABLES, GridMode, ScheduleStore

SUN1 = GridCell("Sunday", 1)
MON2 = GridCell("Monday", 2)


class _FailingStore(InMemoryStore):
    def __init__(self) -> None:
        super().__init__()
        self.fail = False

    def _flush(self, table: str) -> None:
        if self.fail:
            raise PersistenceError("simuliert")


def _entry(section_id="s1", cell=SUN1, teacher_id="T1", subject="Math", **kw) -> ScheduleEntry:
    return ScheduleEntry(day=cell.day, slot_id=cell.slot_id, section_id=section_id,
                         teacher_id=teacher_id, subject=subject, **kw)


def _make_store(*entries, backend=None) -> ScheduleStore:
    store = ScheduleStore(backend)
    store.insert_entries(GridMode.DRAFT, entries)
    return store


class TestMove:
    def test_move_into_empty_cell(self):
        original = _entry()
        store = _make_store(original)
        result = SwapEngine(store).execute_move_or_swap(SUN1, MON2, EntityKind.SECTION, "s1")

        assert not result.is_swap
        assert result.removed_ids == [original.id]
        (moved,) = store.entries(GridMode.DRAFT)
        assert moved.cell == MON2
        assert moved.id != original.id
        assert moved.is_manual
        assert (moved.teacher_id, moved.subject) == ("T1", "Math")

    def test_same_cell_is_noop(self):
        store = _make_store(_entry())
        before = store.entries(GridMode.DRAFT)
        result = SwapEngine(store).execute_move_or_swap(SUN1, SUN1, EntityKind.SECTION, "s1")
        assert result.is_noop
        assert store.entries(GridMode.DRAFT) == before

    def test_nothing_to_move_is_noop(self):
        store = _make_store(_entry("s2"))
        result = SwapEngine(store).execute_move_or_swap(SUN1, MON2, EntityKind.SECTION, "s1")
        assert result.is_noop
        assert len(store.entries(GridMode.DRAFT)) == 1

    def test_move_by_teacher(self):
        store = _make_store(_entry("s1", teacher_id="T1"), _entry("s2", teacher_id="T2"))
        SwapEngine(store).execute_move_or_swap(SUN1, MON2, EntityKind.TEACHER, "T2")
        cells = {e.section_id: e.cell for e in store.entries(GridMode.DRAFT)}
        assert cells == {"s1": SUN1, "s2": MON2}


class TestSwap:
    def test_swap_exchanges_lessons(self):
        store = _make_store(_entry(subject="Math", teacher_id="T1"),
                            _entry(cell=MON2, subject="English", teacher_id="T2"))
        result = SwapEngine(store).execute_move_or_swap(SUN1, MON2, EntityKind.SECTION, "s1")

        assert result.is_swap
        by_cell = {e.cell: e.subject for e in store.entries(GridMode.DRAFT)}
        assert by_cell == {SUN1: "English", MON2: "Math"}

    def test_swap_then_inverse_restores_grid(self):
        store = _make_store(_entry(subject="Math", teacher_id="T1", room="ROOM IX-A"),
                            _entry(cell=MON2, subject="English", teacher_id="T2"),
                            _entry("s2", teacher_id="T3"))
        before = grid_signature(store.entries(GridMode.DRAFT))
        engine = SwapEngine(store)

        engine.execute_move_or_swap(SUN1, MON2, EntityKind.SECTION, "s1")
        assert grid_signature(store.entries(GridMode.DRAFT)) != before
        engine.execute_move_or_swap(MON2, SUN1, EntityKind.SECTION, "s1")
        assert grid_signature(store.entries(GridMode.DRAFT)) == before

    def test_block_group_moves_together(self):
        store = _make_store(
            _entry("s1", teacher_id="T1", subject="French", block_id="b1", block_name="Lang"),
            _entry("s2", teacher_id="T2", subject="Urdu", block_id="b1", block_name="Lang"),
            _entry("s3", teacher_id="T3"),
        )
        result = SwapEngine(store).execute_move_or_swap(SUN1, MON2, EntityKind.SECTION, "s1")

        assert len(result.created) == 2
        cells = {e.section_id: e.cell for e in store.entries(GridMode.DRAFT)}
        assert cells == {"s1": MON2, "s2": MON2, "s3": SUN1}
        assert {e.block_id for e in result.created} == {"b1"}

    def test_live_mode(self):
        store = ScheduleStore()
        store.insert_entries(GridMode.LIVE, [_entry()])
        SwapEngine(store).execute_move_or_swap(SUN1, MON2, EntityKind.SECTION, "s1",
                                               mode=GridMode.LIVE)
        assert store.entries(GridMode.LIVE)[0].cell == MON2
        assert store.entries(GridMode.DRAFT) == []


class TestConflicts:
    def test_block_move_displaces_other_lessons_of_group_sections(self):
        """Wandert ein Pool, räumt jede Pool-Klasse ihren Eintrag in der Zielzelle."""
        other = _entry("s2", cell=MON2, teacher_id="T4")
        store = _make_store(
            _entry("s1", teacher_id="T1", subject="French", block_id="b1"),
            _entry("s2", teacher_id="T2", subject="Urdu", block_id="b1"),
            other,
        )
        engine = SwapEngine(store)
        assert engine.check_swap(SUN1, MON2, EntityKind.SECTION, "s1") == []

        result = engine.execute_move_or_swap(SUN1, MON2, EntityKind.SECTION, "s1")

        assert result.displaced_ids == [other.id]
        assert other.id in result.removed_ids
        draft = store.entries(GridMode.DRAFT)
        per_cell = Counter((e.section_id, e.day, e.slot_id) for e in draft)
        assert max(per_cell.values()) == 1
        assert {(e.section_id, e.subject) for e in draft if e.cell == MON2} == {
            ("s1", "French"), ("s2", "Urdu")}

    def test_lessons_of_uninvolved_sections_stay(self):
        bystander = _entry("s3", cell=MON2, teacher_id="T4")
        store = _make_store(_entry("s1", teacher_id="T1"), bystander)
        result = SwapEngine(store).execute_move_or_swap(SUN1, MON2, EntityKind.SECTION, "s1")
        assert result.displaced_ids == []
        assert bystander in store.entries(GridMode.DRAFT)

    def test_third_party_teacher_clash_reported_not_prevented(self):
        store = _make_store(_entry("s1", teacher_id="T1"),
                            _entry("s2", cell=MON2, teacher_id="T1"))
        engine = SwapEngine(store)
        conflicts = engine.check_swap(SUN1, MON2, EntityKind.SECTION, "s1")

        result = engine.execute_move_or_swap(SUN1, MON2, EntityKind.SECTION, "s1")
        assert result.conflicts == conflicts == ["teacher 'T1' in Mon P2 bereits belegt"]
        assert len(store.entries(GridMode.DRAFT)) == 2

    def test_teacher_clash_elsewhere(self):
        store = _make_store(_entry("s1", teacher_id="T1"),
                            _entry("s2", cell=MON2, teacher_id="T1"))
        conflicts = SwapEngine(store).check_swap(SUN1, MON2, EntityKind.SECTION, "s1")
        assert conflicts == ["teacher 'T1' in Mon P2 bereits belegt"]

    def test_find_free_targets(self):
        store = _make_store(_entry("s1", teacher_id="T1"),
                            _entry("s2", cell=MON2, teacher_id="T1"))
        cells = [SUN1, MON2, GridCell("Monday", 4)]
        free = SwapEngine(store).find_free_targets(SUN1, EntityKind.SECTION, "s1", cells)
        assert free == [GridCell("Monday", 4)]

    def test_persistence_error_leaves_grid_unchanged(self):
        backend = _FailingStore()
        store = _make_store(_entry(), backend=backend)
        before = store.entries(GridMode.DRAFT)
        backend.fail = True
        with pytest.raises(PersistenceError):
            SwapEngine(store).execute_move_or_swap(SUN1, MON2, EntityKind.SECTION, "s1")
        assert store.entries(GridMode.DRAFT) == before
        backend.fail = False
        assert len(backend.load(ENTRY_TABLES[GridMode.DRAFT])) == 1
