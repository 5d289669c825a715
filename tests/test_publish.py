"""Tests für den PublishCoordinator (Draft → Live)."""

import pytest

from models.entry import ScheduleEntry
from solver.publish import PublishCoordinator
from solver.swap import grid_signature
from storage.backend import InMemoryStore, PersistenceError
from storage.store import ENTRY_TABLES, GridMode, ScheduleStore


class _FailingStore(InMemoryStore):
    def __init__(self) -> None:
        super().__init__()
        self.fail_tables: set[str] = set()

    def _flush(self, table: str) -> None:
        if table in self.fail_tables:
            raise PersistenceError(f"simuliert: {table}")


def _entry(section_id, slot_id=1, teacher_id="T1", subject="Math") -> ScheduleEntry:
    return ScheduleEntry(day="Sunday", slot_id=slot_id, section_id=section_id,
                         teacher_id=teacher_id, subject=subject)


def _make_store(backend=None) -> ScheduleStore:
    """Live: S1, S2. Draft: S1 (neu), S3."""
    store = ScheduleStore(backend)
    store.insert_entries(GridMode.LIVE, [
        _entry("S1", 1, "T1", "Old Math"), _entry("S1", 2, "T1", "Old Physics"),
        _entry("S2", 1, "T2"),
    ])
    store.insert_entries(GridMode.DRAFT, [
        _entry("S1", 1, "T3", "English"), _entry("S3", 2, "T4", "Art"),
    ])
    return store


class TestPublish:
    def test_replaces_only_touched_sections(self):
        store = _make_store()
        draft_before = grid_signature(store.entries(GridMode.DRAFT))
        s2_before = store.section_entries(GridMode.LIVE, "S2")

        report = PublishCoordinator(store).publish()

        assert report.section_ids == ["S1", "S3"]
        assert report.removed_live == 2
        assert report.published == 2
        live = store.entries(GridMode.LIVE)
        touched = [e for e in live if e.section_id in ("S1", "S3")]
        assert grid_signature(touched) == draft_before
        assert store.section_entries(GridMode.LIVE, "S2") == s2_before
        assert store.entries(GridMode.DRAFT) == []

    def test_mode_switches_to_live(self):
        publisher = PublishCoordinator(_make_store())
        assert publisher.mode is GridMode.DRAFT
        publisher.publish()
        assert publisher.mode is GridMode.LIVE

    def test_empty_draft_changes_nothing(self):
        store = ScheduleStore()
        store.insert_entries(GridMode.LIVE, [_entry("S1")])
        report = PublishCoordinator(store).publish()
        assert report.section_ids == []
        assert len(store.entries(GridMode.LIVE)) == 1

    def test_publish_subset(self):
        store = _make_store()
        report = PublishCoordinator(store).publish(section_ids=["S3"])
        assert report.section_ids == ["S3"]
        assert store.draft_section_ids() == {"S1"}
        assert {e.section_id for e in store.entries(GridMode.LIVE)} == {"S1", "S2", "S3"}

    def test_touched_sections(self):
        assert PublishCoordinator(_make_store()).touched_sections() == ["S1", "S3"]


class TestPublishFailures:
    def test_live_write_failure_leaves_both_grids(self):
        backend = _FailingStore()
        store = _make_store(backend)
        live_before = grid_signature(store.entries(GridMode.LIVE))
        draft_before = grid_signature(store.entries(GridMode.DRAFT))
        backend.fail_tables.add(ENTRY_TABLES[GridMode.LIVE])

        publisher = PublishCoordinator(store)
        with pytest.raises(PersistenceError):
            publisher.publish()
        assert grid_signature(store.entries(GridMode.LIVE)) == live_before
        assert grid_signature(store.entries(GridMode.DRAFT)) == draft_before
        assert publisher.mode is GridMode.DRAFT

    def test_draft_clear_failure_rolls_back_live(self):
        backend = _FailingStore()
        store = _make_store(backend)
        live_before = grid_signature(store.entries(GridMode.LIVE))
        draft_before = grid_signature(store.entries(GridMode.DRAFT))
        backend.fail_tables.add(ENTRY_TABLES[GridMode.DRAFT])

        with pytest.raises(PersistenceError):
            PublishCoordinator(store).publish()
        assert grid_signature(store.entries(GridMode.LIVE)) == live_before
        assert grid_signature(store.entries(GridMode.DRAFT)) == draft_before
        persisted = [ScheduleEntry.model_validate(r)
                     for r in backend.load(ENTRY_TABLES[GridMode.LIVE])]
        assert grid_signature(persisted) == live_before
