"""Tests für ManualEditor und die TimetableEngine-Fassade."""

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
from models.entry import ScheduleEntry
from models.school_data import SchoolData
from models.teacher import Teacher, UserRole
from models.timeslot import GridCell
from solver.errors import ConflictError, ValidationError
from solver.engine import TimetableEngine
from solver.manual_edit import FillPhase, ManualEditor
from storage.store import GridMode, ScheduleStore

SUN1 = GridCell("Sunday", 1)


def _make_data() -> SchoolData:
    slots = [
        TimeSlot(id=1, label="P1", start_time="08:00", end_time="08:40"),
        TimeSlot(id=2, label="Recess", start_time="08:40", end_time="09:00", is_break=True),
        TimeSlot(id=3, label="P2", start_time="09:00", end_time="09:40"),
    ]
    config = SchoolConfig(
        wings=[WingConfig(id="w-sec", name="Sek", wing_type=WingType.SECONDARY_GIRLS, slots=slots)],
        grades=[GradeConfig(id="g9", name="IX", wing_id="w-sec")],
        sections=[SectionConfig(id="s1", name="IX-A", grade_id="g9", wing_id="w-sec"),
                  SectionConfig(id="s2", name="IX-B", grade_id="g9", wing_id="w-sec")],
        engine=EngineConfig(days=["Sunday", "Monday"]),
    )
    teachers = [
        Teacher(id="T1", name="Eins", role=UserRole.TEACHER_SECONDARY, class_teacher_of="s1"),
        Teacher(id="T2", name="Zwei", role=UserRole.TEACHER_SECONDARY),
    ]
    return SchoolData(config=config, teachers=teachers)


def _entry(section_id="s1", cell=SUN1, teacher_id="T1", subject="Math", **kw) -> ScheduleEntry:
    return ScheduleEntry(day=cell.day, slot_id=cell.slot_id, section_id=section_id,
                         teacher_id=teacher_id, subject=subject, **kw)


class TestPlaceEntry:
    def test_place_marks_manual(self):
        store = ScheduleStore()
        placed = ManualEditor(_make_data(), store).place_entry(_entry())
        assert placed.is_manual
        assert store.entries(GridMode.DRAFT) == [placed]

    def test_replaces_existing_lesson_of_section(self):
        store = ScheduleStore()
        editor = ManualEditor(_make_data(), store)
        editor.place_entry(_entry(subject="Math"))
        editor.place_entry(_entry(subject="English", teacher_id="T2"))
        (entry,) = store.entries(GridMode.DRAFT)
        assert entry.subject == "English"

    @pytest.mark.parametrize("kwargs", [
        {"section_id": "sX"},
        {"teacher_id": "TX"},
        {"subject": "  "},
        {"cell": GridCell("Friday", 1)},
        {"cell": GridCell("Sunday", 2)},
    ])
    def test_invalid_input(self, kwargs):
        with pytest.raises(ValidationError):
            ManualEditor(_make_data(), ScheduleStore()).place_entry(_entry(**kwargs))

    def test_teacher_conflict(self):
        store = ScheduleStore()
        editor = ManualEditor(_make_data(), store)
        editor.place_entry(_entry("s1", teacher_id="T1"))
        with pytest.raises(ConflictError) as exc:
            editor.place_entry(_entry("s2", teacher_id="T1"))
        assert exc.value.entity_id == "T1"
        assert exc.value.cell == SUN1

    def test_room_conflict_and_force(self):
        store = ScheduleStore()
        editor = ManualEditor(_make_data(), store)
        editor.place_entry(_entry("s1", teacher_id="T1", room="LAB"))
        with pytest.raises(ConflictError):
            editor.place_entry(_entry("s2", teacher_id="T2", room="lab"))
        editor.place_entry(_entry("s2", teacher_id="T2", room="lab"), force=True)
        assert len(store.entries(GridMode.DRAFT)) == 2


class TestClearing:
    def test_clear_cell_removes_block_group(self):
        store = ScheduleStore()
        store.insert_entries(GridMode.DRAFT, [
            _entry("s1", teacher_id="T1", block_id="b1"),
            _entry("s2", teacher_id="T2", block_id="b1"),
        ])
        removed = ManualEditor(_make_data(), store).clear_cell(SUN1, "s1")
        assert len(removed) == 2
        assert store.entries(GridMode.DRAFT) == []

    def test_clear_section_draft(self):
        store = ScheduleStore()
        store.insert_entries(GridMode.DRAFT, [_entry("s1"), _entry("s2", teacher_id="T2")])
        ManualEditor(_make_data(), store).clear_section_draft("s1")
        assert store.draft_section_ids() == {"s2"}

    def test_clear_grade_keeps_manual(self):
        store = ScheduleStore()
        manual = _entry("s1", is_manual=True)
        store.insert_entries(GridMode.DRAFT, [
            manual, _entry("s2", teacher_id="T2"),
        ])
        removed = ManualEditor(_make_data(), store).clear_grade_draft("g9")
        assert len(removed) == 1
        assert store.entries(GridMode.DRAFT) == [manual]

    def test_clear_grade_by_phase(self):
        store = ScheduleStore()
        store.upsert_assignments([Assignment(
            teacher_id="T1", grade_id="g9", anchor_subject="English",
            loads=[SubjectLoad(subject="English", periods=3)])])
        anchor = _entry("s1", teacher_id="T1", subject="English")
        block = _entry("s2", teacher_id="T2", subject="French", block_id="b1")
        load = _entry("s1", cell=GridCell("Sunday", 3), teacher_id="T1", subject="English")
        store.insert_entries(GridMode.DRAFT, [anchor, block, load])
        editor = ManualEditor(_make_data(), store)

        assert editor.phase_of(anchor) is FillPhase.ANCHORS
        assert editor.phase_of(block) is FillPhase.BLOCKS
        assert editor.phase_of(load) is FillPhase.LOADS

        editor.clear_grade_draft("g9", phase=FillPhase.BLOCKS)
        assert {e.id for e in store.entries(GridMode.DRAFT)} == {anchor.id, load.id}


class TestEngineFacade:
    def test_fill_then_publish(self):
        store = ScheduleStore()
        store.upsert_assignments([Assignment(
            teacher_id="T2", grade_id="g9", loads=[SubjectLoad(subject="Math", periods=2)])])
        engine = TimetableEngine(_make_data(), store)

        report = engine.autofill.fill_grade("g9")
        assert report.placed == 4
        assert engine.mode is GridMode.DRAFT

        engine.publisher.publish()
        assert engine.mode is GridMode.LIVE
        assert len(store.entries(GridMode.LIVE)) == 4
        assert not engine.oracle(GridMode.LIVE).is_cell_free(
            SUN1, section_id="s1")
