"""Tests für den BlockPoolManager (Validierung, group_periods, Bereitstellung)."""

import pytest

from config.schema import (
    EngineConfig,
    GradeConfig,
    SchoolConfig,
    SectionConfig,
    TimeSlot,
    WingConfig,
    WingType,
)
from models.assignment import Assignment, SubjectLoad
from models.combined_block import BlockAllocation, CombinedBlock
from models.entry import ScheduleEntry
from models.school_data import SchoolData
from models.teacher import Teacher, UserRole
from models.timeslot import GridCell
from solver.blocks import BlockPoolManager
from solver.errors import ValidationError
from storage.backend import InMemoryStore, PersistenceError
from storage.store import ASSIGNMENT_TABLE, GridMode, ScheduleStore

SUN1 = GridCell("Sunday", 1)


class _FailingStore(InMemoryStore):
    def __init__(self) -> None:
        super().__init__()
        self.fail_tables: set[str] = set()

    def _flush(self, table: str) -> None:
        if table in self.fail_tables:
            raise PersistenceError(f"simuliert: {table}")


def _make_data() -> SchoolData:
    slots = [
        TimeSlot(id=1, label="P1", start_time="08:00", end_time="08:40"),
        TimeSlot(id=2, label="Recess", start_time="08:40", end_time="09:00", is_break=True),
        TimeSlot(id=3, label="P2", start_time="09:00", end_time="09:40"),
    ]
    config = SchoolConfig(
        wings=[WingConfig(id="w-sec", name="Sek", wing_type=WingType.SECONDARY_BOYS, slots=slots),
               WingConfig(id="w-pri", name="Pri", wing_type=WingType.PRIMARY, slots=slots)],
        grades=[GradeConfig(id="g9", name="IX", wing_id="w-sec"),
                GradeConfig(id="g4", name="IV", wing_id="w-pri")],
        sections=[
            SectionConfig(id="s1", name="IX-A", grade_id="g9", wing_id="w-sec"),
            SectionConfig(id="s2", name="IX-B", grade_id="g9", wing_id="w-sec"),
            SectionConfig(id="s3", name="IX-C", grade_id="g9", wing_id="w-sec"),
            SectionConfig(id="p1", name="IV-A", grade_id="g4", wing_id="w-pri"),
        ],
        engine=EngineConfig(days=["Sunday", "Monday"]),
    )
    teachers = [Teacher(id=t, name=t, role=UserRole.TEACHER_SECONDARY)
                for t in ("T1", "T2", "T3")]
    return SchoolData(config=config, teachers=teachers)


def _make_block(block_id="b1", sections=("s1", "s2"), teachers=("T1", "T2"),
                periods=2, rooms=None, **kw) -> CombinedBlock:
    rooms = rooms or [""] * len(teachers)
    return CombinedBlock(
        id=block_id, title=kw.pop("title", "Sprachen"), heading=kw.pop("heading", "FR/UR"),
        grade_id=kw.pop("grade_id", "g9"), section_ids=list(sections), weekly_periods=periods,
        allocations=[BlockAllocation(teacher_id=t, subject=f"Fach {t}", room=r)
                     for t, r in zip(teachers, rooms)],
        **kw)


class TestValidation:
    @pytest.mark.parametrize("field", ["title", "heading", "grade_id"])
    def test_required_fields(self, field):
        pools = BlockPoolManager(_make_data(), ScheduleStore())
        with pytest.raises(ValidationError):
            pools.validate(_make_block(**{field: "  "}))

    def test_no_sections(self):
        with pytest.raises(ValidationError):
            BlockPoolManager(_make_data(), ScheduleStore()).validate(_make_block(sections=()))

    def test_no_allocations(self):
        with pytest.raises(ValidationError):
            BlockPoolManager(_make_data(), ScheduleStore()).validate(_make_block(teachers=()))

    def test_allocation_without_teacher(self):
        with pytest.raises(ValidationError):
            BlockPoolManager(_make_data(), ScheduleStore()).validate(_make_block(teachers=("T1", " ")))

    def test_duplicate_teacher(self):
        with pytest.raises(ValidationError):
            BlockPoolManager(_make_data(), ScheduleStore()).validate(_make_block(teachers=("T1", "T1")))

    def test_duplicate_room_case_insensitive(self):
        block = _make_block(rooms=["Lab 1", "LAB 1 "])
        with pytest.raises(ValidationError):
            BlockPoolManager(_make_data(), ScheduleStore()).validate(block)

    def test_section_from_other_grade(self):
        with pytest.raises(ValidationError):
            BlockPoolManager(_make_data(), ScheduleStore()).validate(_make_block(sections=("s1", "p1")))

    def test_invalid_block_not_saved(self):
        store = ScheduleStore()
        with pytest.raises(ValidationError):
            BlockPoolManager(_make_data(), store).save_block(_make_block(title=""))
        assert store.blocks() == []


class TestGroupPeriods:
    def test_sum_over_blocks(self):
        store = ScheduleStore()
        pools = BlockPoolManager(_make_data(), store)
        pools.save_block(_make_block("b1", teachers=("T1", "T2"), periods=2))
        pools.save_block(_make_block("b2", teachers=("T1",), periods=3))

        assert store.assignment("T1", "g9").group_periods == 5
        assert store.assignment("T2", "g9").group_periods == 2
        assert pools.group_periods_for("T3", "g9") == 0
        assert store.assignment("T3", "g9") is None

    def test_existing_loads_preserved(self):
        store = ScheduleStore()
        store.upsert_assignments([Assignment(
            teacher_id="T1", grade_id="g9", loads=[SubjectLoad(subject="Math", periods=4)])])
        BlockPoolManager(_make_data(), store).save_block(_make_block(teachers=("T1",)))
        a = store.assignment("T1", "g9")
        assert a.base_periods == 4
        assert a.total_periods == 6

    def test_update_removes_teacher(self):
        store = ScheduleStore()
        pools = BlockPoolManager(_make_data(), store)
        pools.save_block(_make_block(teachers=("T1", "T2")))
        pools.save_block(_make_block(teachers=("T1",), periods=4))
        assert store.assignment("T1", "g9").group_periods == 4
        assert store.assignment("T2", "g9").group_periods == 0

    def test_remove_block_recomputes(self):
        store = ScheduleStore()
        pools = BlockPoolManager(_make_data(), store)
        pools.save_block(_make_block())
        removed = pools.remove_block("b1")
        assert removed.id == "b1"
        assert store.block("b1") is None
        assert store.assignment("T1", "g9").group_periods == 0
        assert pools.remove_block("b1") is None

    def test_failed_assignment_write_restores_template(self):
        backend = _FailingStore()
        store = ScheduleStore(backend)
        pools = BlockPoolManager(_make_data(), store)
        backend.fail_tables.add(ASSIGNMENT_TABLE)
        with pytest.raises(PersistenceError):
            pools.save_block(_make_block())
        assert store.block("b1") is None
        assert store.assignments() == []


class TestDeploy:
    def test_round_robin_pairing(self):
        store = ScheduleStore()
        pools = BlockPoolManager(_make_data(), store)
        entries = pools.deploy_block(_make_block(sections=("s1", "s2", "s3")), SUN1)

        assert [(e.section_id, e.teacher_id) for e in entries] == [
            ("s1", "T1"), ("s2", "T2"), ("s3", "T1")]
        assert all(e.block_id == "b1" and e.block_name == "Sprachen" for e in entries)
        assert all(e.is_manual for e in entries)
        assert len(store.entries(GridMode.DRAFT)) == 3

    def test_extra_allocations_unused(self):
        entries = BlockPoolManager(_make_data(), ScheduleStore()).deploy_block(
            _make_block(sections=("s1",), teachers=("T1", "T2")), SUN1)
        assert [e.teacher_id for e in entries] == ["T1"]

    def test_default_room_when_allocation_has_none(self):
        entries = BlockPoolManager(_make_data(), ScheduleStore()).deploy_block(
            _make_block(rooms=["LAB", ""]), SUN1)
        assert [(e.section_id, e.room) for e in entries] == [("s1", "LAB"), ("s2", "ROOM IX-B")]

    def test_overwrites_involved_sections_only(self):
        store = ScheduleStore()
        keep_other_cell = ScheduleEntry(day="Sunday", slot_id=3, section_id="s1",
                                        teacher_id="T3", subject="Math")
        keep_other_section = ScheduleEntry(day="Sunday", slot_id=1, section_id="s3",
                                           teacher_id="T3", subject="Math")
        overwritten = ScheduleEntry(day="Sunday", slot_id=1, section_id="s1",
                                    teacher_id="T3", subject="Math")
        store.insert_entries(GridMode.DRAFT, [keep_other_cell, keep_other_section, overwritten])

        BlockPoolManager(_make_data(), store).deploy_block(_make_block(), SUN1)

        ids = {e.id for e in store.entries(GridMode.DRAFT)}
        assert overwritten.id not in ids
        assert {keep_other_cell.id, keep_other_section.id} <= ids
        assert len(ids) == 4

    def test_break_slot_rejected(self):
        with pytest.raises(ValidationError):
            BlockPoolManager(_make_data(), ScheduleStore()).deploy_block(
                _make_block(), GridCell("Sunday", 2))

    def test_remove_block_orphans_entries(self):
        store = ScheduleStore()
        pools = BlockPoolManager(_make_data(), store)
        block = pools.save_block(_make_block())
        pools.deploy_block(block, SUN1)
        pools.remove_block(block.id)

        orphans = pools.orphaned_entries(GridMode.DRAFT)
        assert len(orphans) == 2
        assert {e.block_id for e in orphans} == {"b1"}

    def test_dismantle(self):
        store = ScheduleStore()
        pools = BlockPoolManager(_make_data(), store)
        block = pools.save_block(_make_block())
        pools.deploy_block(block, SUN1)
        pools.deploy_block(block, GridCell("Monday", 3))
        removed = pools.dismantle_block("b1")
        assert len(removed) == 4
        assert store.entries(GridMode.DRAFT) == []
        assert store.block("b1") is not None
