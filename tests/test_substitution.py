"""Tests für den SubstitutionAssigner (Abwesenheiten, Auswahl, Obergrenze)."""

from datetime import date

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
from models.substitution import SubstitutionRecord
from models.teacher import Teacher, UserRole
from analysis.substitution_helper import SubstitutionAssigner
from solver.errors import ConflictError, ValidationError
from storage.store import GridMode, ScheduleStore

SUNDAY = date(2025, 3, 2)
TUESDAY = date(2025, 3, 4)
NEXT_SUNDAY = date(2025, 3, 9)


def _make_data(cap: int = 35) -> SchoolData:
    slots = [TimeSlot(id=i, label=f"P{i}", start_time="08:00", end_time="08:40")
             for i in (1, 2, 3)]
    config = SchoolConfig(
        wings=[WingConfig(id="w-sec", name="Sek", wing_type=WingType.SECONDARY_BOYS, slots=slots),
               WingConfig(id="w-pri", name="Pri", wing_type=WingType.PRIMARY, slots=slots)],
        grades=[GradeConfig(id="g9", name="IX", wing_id="w-sec"),
                GradeConfig(id="g4", name="IV", wing_id="w-pri")],
        sections=[SectionConfig(id="s1", name="IX-A", grade_id="g9", wing_id="w-sec"),
                  SectionConfig(id="s2", name="IX-B", grade_id="g9", wing_id="w-sec"),
                  SectionConfig(id="p1", name="IV-A", grade_id="g4", wing_id="w-pri")],
        engine=EngineConfig(max_weekly_periods=cap),
    )
    teachers = [
        Teacher(id="T1", name="Abwesend", role=UserRole.TEACHER_SECONDARY),
        Teacher(id="T2", name="Zwei", role=UserRole.TEACHER_SECONDARY),
        Teacher(id="T3", name="Drei", role=UserRole.TEACHER_SECONDARY),
        Teacher(id="P1", name="Primar", role=UserRole.TEACHER_PRIMARY),
        Teacher(id="A1", name="Admin", role=UserRole.ADMIN_STAFF),
    ]
    return SchoolData(config=config, teachers=teachers)


def _lesson(section_id, slot_id, teacher_id, day="Sunday") -> ScheduleEntry:
    return ScheduleEntry(day=day, slot_id=slot_id, section_id=section_id,
                         teacher_id=teacher_id, subject="Math")


def _make_store(extra_live=(), **base_periods) -> ScheduleStore:
    """T1 unterrichtet sonntags s1 (Slot 1) und s2 (Slot 2)."""
    store = ScheduleStore()
    store.insert_entries(GridMode.LIVE, [_lesson("s1", 1, "T1"), _lesson("s2", 2, "T1"),
                                         *extra_live])
    store.upsert_assignments([
        Assignment(teacher_id=tid, grade_id="g9",
                   loads=[SubjectLoad(subject="Math", periods=periods)])
        for tid, periods in base_periods.items()
    ])
    return store


class TestScanAbsences:
    def test_creates_pending_records(self):
        store = _make_store()
        created = SubstitutionAssigner(_make_data(), store).scan_absences(SUNDAY, ["T1"])
        assert [(r.slot_id, r.section_id) for r in created] == [(1, "s1"), (2, "s2")]
        assert all(r.is_pending and r.date == SUNDAY for r in created)
        assert len(store.substitutions()) == 2

    def test_rescan_skips_duplicates(self):
        assigner = SubstitutionAssigner(_make_data(), _make_store())
        assigner.scan_absences(SUNDAY, ["T1"])
        assert assigner.scan_absences(SUNDAY, ["T1"]) == []

    def test_section_filter_and_other_day(self):
        assigner = SubstitutionAssigner(_make_data(), _make_store())
        assert [r.section_id for r in assigner.scan_absences(SUNDAY, ["T1"], ["s2"])] == ["s2"]
        assert assigner.scan_absences(TUESDAY, ["T1"]) == []


class TestAutoAssign:
    def test_lowest_load_wins(self):
        store = _make_store(T2=10, T3=5)
        assigner = SubstitutionAssigner(_make_data(), store)
        assigner.scan_absences(SUNDAY, ["T1"])
        report = assigner.auto_assign(SUNDAY)
        assert [r.substitute_teacher_id for r in report.assigned] == ["T3", "T3"]
        assert report.unassigned == []

    def test_tie_broken_by_roster_order(self):
        store = _make_store(T2=4, T3=4)
        assigner = SubstitutionAssigner(_make_data(), store)
        assigner.scan_absences(SUNDAY, ["T1"], ["s1"])
        report = assigner.auto_assign(SUNDAY)
        assert report.assigned[0].substitute_teacher_id == "T2"

    def test_running_load_spreads_assignments(self):
        store = _make_store(T2=4, T3=4)
        assigner = SubstitutionAssigner(_make_data(), store)
        assigner.scan_absences(SUNDAY, ["T1"])
        report = assigner.auto_assign(SUNDAY)
        assert [r.substitute_teacher_id for r in report.assigned] == ["T2", "T3"]

    def test_cap_never_exceeded(self):
        store = _make_store(T2=5, T3=6)
        data = _make_data(cap=6)
        assigner = SubstitutionAssigner(data, store)
        assigner.scan_absences(SUNDAY, ["T1"])
        report = assigner.auto_assign(SUNDAY)

        assert [r.substitute_teacher_id for r in report.assigned] == ["T2"]
        assert len(report.unassigned) == 1
        for tid in ("T2", "T3"):
            assert assigner.load_breakdown(tid, SUNDAY).total <= data.config.engine.max_weekly_periods

    def test_busy_teacher_skipped(self):
        store = _make_store([_lesson("s2", 1, "T3")], T2=10, T3=1)
        assigner = SubstitutionAssigner(_make_data(), store)
        assigner.scan_absences(SUNDAY, ["T1"], ["s1"])
        report = assigner.auto_assign(SUNDAY)
        assert report.assigned[0].substitute_teacher_id == "T2"

    def test_absent_teachers_excluded(self):
        store = _make_store([_lesson("s1", 3, "T2")], T2=0, T3=10)
        assigner = SubstitutionAssigner(_make_data(), store)
        assigner.scan_absences(SUNDAY, ["T1", "T2"])
        report = assigner.auto_assign(SUNDAY)
        assert {r.substitute_teacher_id for r in report.assigned} == {"T3"}
        assert len(report.assigned) == 3

    def test_wing_eligibility(self):
        store = _make_store([_lesson("p1", 1, "P1")], T2=1)
        assigner = SubstitutionAssigner(_make_data(), store)
        (record,) = assigner.scan_absences(SUNDAY, ["P1"])
        report = assigner.auto_assign(SUNDAY)
        assert report.assigned == []
        assert report.unassigned[0].record_id == record.id

    def test_grid_untouched(self):
        store = _make_store(T2=1)
        before = store.entries(GridMode.LIVE)
        assigner = SubstitutionAssigner(_make_data(), store)
        assigner.scan_absences(SUNDAY, ["T1"])
        assigner.auto_assign(SUNDAY)
        assert store.entries(GridMode.LIVE) == before


class TestManualAssign:
    def _record(self, store: ScheduleStore, slot_id: int = 1) -> SubstitutionRecord:
        return next(s for s in store.substitutions() if s.slot_id == slot_id)

    def test_assign(self):
        store = _make_store(T2=1)
        assigner = SubstitutionAssigner(_make_data(), store)
        assigner.scan_absences(SUNDAY, ["T1"])
        updated = assigner.assign(self._record(store).id, "T2")
        assert store.substitution(updated.id).substitute_teacher_id == "T2"

    def test_unknown_record(self):
        with pytest.raises(ValidationError):
            SubstitutionAssigner(_make_data(), _make_store()).assign("nope", "T2")

    def test_not_eligible_for_wing(self):
        store = _make_store()
        assigner = SubstitutionAssigner(_make_data(), store)
        assigner.scan_absences(SUNDAY, ["T1"])
        with pytest.raises(ValidationError):
            assigner.assign(self._record(store).id, "P1")

    def test_busy_teacher_conflict(self):
        store = _make_store([_lesson("s2", 1, "T3")])
        assigner = SubstitutionAssigner(_make_data(), store)
        assigner.scan_absences(SUNDAY, ["T1"])
        with pytest.raises(ConflictError):
            assigner.assign(self._record(store).id, "T3")

    def test_double_substitution_conflict(self):
        store = _make_store([_lesson("s2", 1, "T1")])
        assigner = SubstitutionAssigner(_make_data(), store)
        assigner.scan_absences(SUNDAY, ["T1"])
        first, second = [s for s in store.substitutions() if s.slot_id == 1]
        assigner.assign(first.id, "T2")
        with pytest.raises(ConflictError):
            assigner.assign(second.id, "T2")

    def test_cap_reached(self):
        store = _make_store(T2=3)
        assigner = SubstitutionAssigner(_make_data(cap=3), store)
        assigner.scan_absences(SUNDAY, ["T1"])
        with pytest.raises(ValidationError):
            assigner.assign(self._record(store).id, "T2")

    def test_candidates_sorted(self):
        store = _make_store([_lesson("s2", 1, "T3")], T2=8, T3=2)
        assigner = SubstitutionAssigner(_make_data(), store)
        assigner.scan_absences(SUNDAY, ["T1"])
        candidates = assigner.candidates(self._record(store).id)
        assert [c.teacher_id for c in candidates] == ["T2", "T3"]
        assert candidates[0].is_eligible
        assert not candidates[1].is_available_at_slot


class TestLoadAndArchive:
    def test_proxy_periods_counted_per_week(self):
        store = _make_store(T2=4)
        store.upsert_substitutions([
            SubstitutionRecord(date=TUESDAY, slot_id=1, section_id="s1",
                               absent_teacher_id="T1", substitute_teacher_id="T2"),
            SubstitutionRecord(date=NEXT_SUNDAY, slot_id=1, section_id="s1",
                               absent_teacher_id="T1", substitute_teacher_id="T2"),
        ])
        load = SubstitutionAssigner(_make_data(), store).load_breakdown("T2", SUNDAY)
        assert (load.base_periods, load.proxy_periods, load.total) == (4, 1, 5)
        assert load.remaining == 30

    def test_archive(self):
        store = _make_store([_lesson("p1", 1, "P1")])
        assigner = SubstitutionAssigner(_make_data(), store)
        assigner.scan_absences(SUNDAY, ["T1", "P1"])

        assert assigner.archive(SUNDAY, wing_type=WingType.PRIMARY) == 1
        assert len(store.substitutions()) == 2
        assert assigner.archive(SUNDAY) == 2
        assert store.substitutions() == []
        assert len(store.substitutions(include_archived=True)) == 3
