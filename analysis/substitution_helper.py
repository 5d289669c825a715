"""Vertretungshelfer: findet für abwesende Lehrkräfte einsetzbare Vertreter.

Auswahl: einsetzbar für den Flügeltyp der Klasse, nicht selbst abwesend,
unter der Wochen-Obergrenze und im Slot frei. Unter den übrigen gewinnt die
geringste Wochenbelastung (Stammstunden + Pool-Stunden + Vertretungen der
laufenden Woche); bei Gleichstand entscheidet die Stammdaten-Reihenfolge.

Es werden ausschließlich Vertretungs-Datensätze geändert, nie das Raster.
"""

import logging
import datetime as dt
from typing import Optional

from pydantic import BaseModel

from config.schema import WingType
from models.school_data import SchoolData
from models.substitution import SubstitutionRecord
from models.teacher import Teacher
from models.timeslot import week_range, weekday_name
from solver.availability import AvailabilityOracle, EntityKind
from solver.errors import ConflictError, ValidationError
from storage.store import GridMode, ScheduleStore

logger = logging.getLogger(__name__)


class TeacherLoad(BaseModel):
    """Wochenbelastung einer Lehrkraft."""

    teacher_id: str
    base_periods: int
    group_periods: int
    proxy_periods: int
    cap: int

    @property
    def total(self) -> int:
        return self.base_periods + self.group_periods + self.proxy_periods

    @property
    def remaining(self) -> int:
        return max(0, self.cap - self.total)


class SubstituteCandidate(BaseModel):
    """Ein Kandidat für eine Vertretung."""

    teacher_id: str
    name: str
    load: int
    remaining: int
    is_available_at_slot: bool
    is_under_cap: bool

    @property
    def is_eligible(self) -> bool:
        return self.is_available_at_slot and self.is_under_cap


class UnassignedSubstitution(BaseModel):
    record_id: str
    slot_id: int
    section_id: str
    absent_teacher_id: str
    reason: str


class SubstitutionReport(BaseModel):
    """Ergebnis einer automatischen Vertretungszuweisung."""

    date: dt.date
    assigned: list[SubstitutionRecord] = []
    unassigned: list[UnassignedSubstitution] = []

    def print_rich(self, data: Optional[SchoolData] = None) -> None:
        from rich.console import Console
        from rich.table import Table

        def name(tid: Optional[str]) -> str:
            if not tid:
                return "–"
            return data.teacher_name(tid) if data else tid

        console = Console()
        table = Table(title=f"Vertretungen {self.date.isoformat()}")
        table.add_column("Slot", justify="right")
        table.add_column("Klasse")
        table.add_column("Abwesend")
        table.add_column("Vertretung")
        for r in self.assigned:
            table.add_row(str(r.slot_id), r.section_id, name(r.absent_teacher_id),
                          f"[green]{name(r.substitute_teacher_id)}[/green]")
        for u in self.unassigned:
            table.add_row(str(u.slot_id), u.section_id, name(u.absent_teacher_id),
                          f"[red]offen[/red] [dim]({u.reason})[/dim]")
        console.print(table)


class SubstitutionAssigner:
    """Verwendung:
        assigner = SubstitutionAssigner(school_data, store)
        assigner.scan_absences(date(2025, 3, 2), ["T07"])
        report = assigner.auto_assign(date(2025, 3, 2))
    """

    def __init__(self, data: SchoolData, store: ScheduleStore) -> None:
        self.data = data
        self.config = data.config
        self.store = store

    @property
    def cap(self) -> int:
        return self.config.engine.max_weekly_periods

    # ─── Belastung ───────────────────────────────────────────────────────────

    def load_breakdown(self, teacher_id: str, on_date: dt.date) -> TeacherLoad:
        """Stamm-, Pool- und Vertretungsstunden in der Woche von on_date."""
        assignments = self.store.assignments(teacher_id=teacher_id)
        start, end = week_range(on_date, self.config.engine.days)
        proxy = sum(
            1 for s in self.store.substitutions()
            if s.substitute_teacher_id == teacher_id and start <= s.date <= end
        )
        return TeacherLoad(
            teacher_id=teacher_id,
            base_periods=sum(a.base_periods for a in assignments),
            group_periods=sum(a.group_periods for a in assignments),
            proxy_periods=proxy,
            cap=self.cap,
        )

    # ─── Abwesenheiten erfassen ──────────────────────────────────────────────

    def scan_absences(
        self,
        on_date: dt.date,
        absent_teacher_ids: list[str],
        section_ids: Optional[list[str]] = None,
    ) -> list[SubstitutionRecord]:
        """Legt je Live-Stunde einer abwesenden Lehrkraft einen offenen Datensatz an."""
        day = weekday_name(on_date)
        absent = set(absent_teacher_ids)
        existing = {
            (s.absent_teacher_id, s.slot_id, s.section_id)
            for s in self.store.substitutions() if s.date == on_date
        }
        created: list[SubstitutionRecord] = []
        for entry in sorted(self.store.entries(GridMode.LIVE),
                            key=lambda e: (e.slot_id, e.section_id)):
            if entry.day != day or entry.teacher_id not in absent:
                continue
            if entry.date is not None and entry.date != on_date:
                continue
            if section_ids is not None and entry.section_id not in section_ids:
                continue
            key = (entry.teacher_id, entry.slot_id, entry.section_id)
            if key in existing:
                continue
            existing.add(key)
            created.append(SubstitutionRecord(
                date=on_date, slot_id=entry.slot_id, section_id=entry.section_id,
                subject=entry.subject, absent_teacher_id=entry.teacher_id,
                block_id=entry.block_id,
            ))
        self.store.upsert_substitutions(created)
        logger.info(f"Abwesenheiten {on_date}: {len(created)} offene Vertretungen angelegt")
        return created

    # ─── Kandidaten ──────────────────────────────────────────────────────────

    def _absent_on(self, on_date: dt.date) -> set[str]:
        return {s.absent_teacher_id for s in self.store.substitutions() if s.date == on_date}

    def _pool(self, record: SubstitutionRecord) -> list[Teacher]:
        wing_type = self.config.wing_type_for_section(record.section_id)
        if wing_type is None:
            return []
        absent = self._absent_on(record.date)
        return [t for t in self.data.eligible_teachers(wing_type) if t.id not in absent]

    def candidates(self, record_id: str) -> list[SubstituteCandidate]:
        """Alle einsetzbaren Lehrkräfte, freie zuerst, dann nach Belastung."""
        record = self.store.substitution(record_id)
        if record is None:
            return []
        oracle = AvailabilityOracle(self.store, GridMode.LIVE)
        day = weekday_name(record.date)
        result = []
        for teacher in self._pool(record):
            load = self.load_breakdown(teacher.id, record.date)
            result.append(SubstituteCandidate(
                teacher_id=teacher.id,
                name=teacher.name,
                load=load.total,
                remaining=load.remaining,
                is_available_at_slot=oracle.is_free(
                    EntityKind.TEACHER, teacher.id, day, record.slot_id, on_date=record.date),
                is_under_cap=load.total < self.cap,
            ))
        result.sort(key=lambda c: (not c.is_eligible, not c.is_available_at_slot, c.load))
        return result

    # ─── Zuweisung ───────────────────────────────────────────────────────────

    def auto_assign(
        self, on_date: dt.date, section_ids: Optional[list[str]] = None
    ) -> SubstitutionReport:
        """Weist allen offenen Datensätzen des Datums einen Vertreter zu.

        Belastungen werden innerhalb des Laufs mitgezählt, damit kein
        Vertreter durch mehrere Zuweisungen über die Obergrenze kommt.
        """
        pending = sorted(
            (s for s in self.store.substitutions()
             if s.date == on_date and s.is_pending
             and (section_ids is None or s.section_id in section_ids)),
            key=lambda s: (s.slot_id, s.section_id),
        )
        report = SubstitutionReport(date=on_date)
        if not pending:
            return report

        oracle = AvailabilityOracle(self.store, GridMode.LIVE)
        day = weekday_name(on_date)
        loads: dict[str, int] = {}
        taken: set[tuple[str, int]] = set()
        updates: list[SubstitutionRecord] = []

        for record in pending:
            pool = self._pool(record)
            chosen: Optional[str] = None
            qualified = []
            for teacher in pool:
                if teacher.id not in loads:
                    loads[teacher.id] = self.load_breakdown(teacher.id, on_date).total
                if loads[teacher.id] >= self.cap:
                    continue
                if (teacher.id, record.slot_id) in taken:
                    continue
                if not oracle.is_free(EntityKind.TEACHER, teacher.id, day,
                                      record.slot_id, on_date=on_date):
                    continue
                qualified.append(teacher.id)
            if qualified:
                # sort ist stabil: Gleichstand → Stammdaten-Reihenfolge
                chosen = sorted(qualified, key=lambda tid: loads[tid])[0]

            if chosen is None:
                reason = ("Keine einsetzbare Lehrkraft für den Flügel" if not pool
                          else "Alle Kandidaten belegt oder ausgelastet")
                report.unassigned.append(UnassignedSubstitution(
                    record_id=record.id, slot_id=record.slot_id,
                    section_id=record.section_id,
                    absent_teacher_id=record.absent_teacher_id, reason=reason,
                ))
                continue

            loads[chosen] += 1
            taken.add((chosen, record.slot_id))
            updates.append(record.model_copy(update={"substitute_teacher_id": chosen}))

        self.store.upsert_substitutions(updates)
        report.assigned = updates
        logger.info(f"Vertretungen {on_date}: {len(updates)} zugewiesen")
        if report.unassigned:
            logger.warning(f"Vertretungen {on_date}: {len(report.unassigned)} bleiben offen")
        return report

    def assign(self, record_id: str, teacher_id: str) -> SubstitutionRecord:
        """Manuelle Zuweisung mit denselben Prüfungen wie auto_assign.

        Raises:
            ValidationError: unbekannter Datensatz, nicht einsetzbar oder Obergrenze erreicht
            ConflictError:   Lehrkraft im Slot belegt
        """
        record = self.store.substitution(record_id)
        if record is None or not record.is_active:
            raise ValidationError(f"Kein aktiver Vertretungs-Datensatz '{record_id}'")
        if teacher_id not in {t.id for t in self._pool(record)}:
            raise ValidationError(
                f"{teacher_id} ist für {record.section_id} am {record.date} nicht einsetzbar"
            )
        day = weekday_name(record.date)
        oracle = AvailabilityOracle(self.store, GridMode.LIVE)
        if not oracle.is_free(EntityKind.TEACHER, teacher_id, day, record.slot_id,
                              on_date=record.date):
            raise ConflictError(
                f"{teacher_id} ist am {record.date} in Slot {record.slot_id} belegt",
                kind=EntityKind.TEACHER.value, entity_id=teacher_id,
            )
        load = self.load_breakdown(teacher_id, record.date)
        if load.total >= self.cap:
            raise ValidationError(
                f"{teacher_id} hat die Obergrenze von {self.cap} Wochenstunden erreicht"
            )
        updated = record.model_copy(update={"substitute_teacher_id": teacher_id})
        self.store.upsert_substitutions([updated])
        logger.info(f"Vertretung {record.id}: {teacher_id} zugewiesen")
        return updated

    # ─── Archiv ──────────────────────────────────────────────────────────────

    def archive(self, on_date: dt.date, wing_type: Optional[WingType] = None) -> int:
        """Archiviert alle aktiven Datensätze eines Datums (kein Löschen)."""
        doomed = [
            s.model_copy(update={"is_archived": True})
            for s in self.store.substitutions()
            if s.date == on_date
            and (wing_type is None
                 or self.config.wing_type_for_section(s.section_id) == wing_type)
        ]
        self.store.upsert_substitutions(doomed)
        logger.info(f"Vertretungen {on_date}: {len(doomed)} archiviert")
        return len(doomed)
