"""Validierung eines Rasters (Draft oder Live).

Prüft die Exklusivität von Klassen, Lehrkräften und Räumen, die
Vollständigkeit von Pool-Gruppen sowie verwaiste Pool-Verweise und
überlastete Lehrkräfte. Sicherheitsnetz unabhängig von den Engines.
"""

from collections import defaultdict
from typing import Literal, Optional

from pydantic import BaseModel

from models.entry import ScheduleEntry
from models.school_data import SchoolData
from models.timeslot import weekday_name
from storage.store import GridMode, ScheduleStore


class ValidationViolation(BaseModel):
    """Eine einzelne Verletzung."""

    severity: Literal["error", "warning"]
    constraint: str      # z.B. "teacher_double_booking"
    description: str
    entity: str          # teacher_id / section_id / Raum / block_id


class GridValidationReport(BaseModel):
    """Ergebnis der Raster-Validierung."""

    mode: GridMode
    violations: list[ValidationViolation]
    is_valid: bool       # True wenn keine Errors (Warnings ok)

    def by_constraint(self, constraint: str) -> list[ValidationViolation]:
        return [v for v in self.violations if v.constraint == constraint]

    def print_rich(self) -> None:
        """Gibt den Report formatiert über Rich aus."""
        from rich.console import Console
        from rich.panel import Panel
        from rich.table import Table
        from rich import box

        console = Console()
        errors = [v for v in self.violations if v.severity == "error"]
        warnings = [v for v in self.violations if v.severity == "warning"]

        status = (
            "[bold green]✓ VALIDE[/bold green]"
            if self.is_valid
            else "[bold red]✗ VERLETZUNGEN GEFUNDEN[/bold red]"
        )
        lines = [status, f"Fehler: {len(errors)} | Warnungen: {len(warnings)}"]
        console.print(Panel("\n".join(lines), title=f"Raster-Validierung ({self.mode.value})",
                            border_style="cyan"))

        if not self.violations:
            console.print("[dim]Keine Verletzungen gefunden.[/dim]")
            return

        table = Table(box=box.ROUNDED, show_lines=True)
        table.add_column("Typ", width=8)
        table.add_column("Constraint", width=28)
        table.add_column("Entität", width=16)
        table.add_column("Beschreibung")

        for v in self.violations:
            color = "red" if v.severity == "error" else "yellow"
            table.add_row(
                f"[{color}]{v.severity.upper()}[/{color}]",
                v.constraint,
                v.entity,
                v.description,
            )
        console.print(table)


def _booking_key(e: ScheduleEntry) -> str:
    """Eine Pool-Gruppe zählt als eine Belegung."""
    return f"block:{e.block_id}" if e.block_id else e.id


def _slot_key(e: ScheduleEntry) -> tuple:
    # Datumsgebundene Einträge kollidieren nur untereinander am selben Datum
    return (e.day, e.slot_id, e.date)


class GridValidator:
    """Prüft ein Raster auf Verletzungen der Raster-Invarianten."""

    def validate(
        self, store: ScheduleStore, school_data: SchoolData, mode: GridMode = GridMode.LIVE
    ) -> GridValidationReport:
        entries = store.entries(mode)
        violations: list[ValidationViolation] = []

        violations.extend(self._check_section_double_booking(entries))
        violations.extend(self._check_teacher_double_booking(entries, store))
        violations.extend(self._check_room_double_booking(entries))
        violations.extend(self._check_block_groups(entries, store))
        violations.extend(self._check_orphaned_blocks(entries, store))
        violations.extend(self._check_weekly_cap(store, school_data))
        if mode is GridMode.LIVE:
            violations.extend(self._check_substitutions(entries, store))

        has_errors = any(v.severity == "error" for v in violations)
        return GridValidationReport(mode=mode, violations=violations, is_valid=not has_errors)

    # ── Einzelne Prüfungen ────────────────────────────────────────────────────

    def _check_section_double_booking(
        self, entries: list[ScheduleEntry]
    ) -> list[ValidationViolation]:
        """Höchstens ein Eintrag pro (Tag, Slot, Klasse)."""
        by_slot: dict[tuple, list[ScheduleEntry]] = defaultdict(list)
        for e in entries:
            by_slot[(e.section_id,) + _slot_key(e)].append(e)

        violations = []
        for (section_id, day, slot, _date), group in by_slot.items():
            if len(group) > 1:
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="section_double_booking",
                    entity=section_id,
                    description=(
                        f"{day} P{slot}: mehrere Einträge "
                        f"({', '.join(e.subject for e in group)})."
                    ),
                ))
        return violations

    def _check_teacher_double_booking(
        self, entries: list[ScheduleEntry], store: ScheduleStore
    ) -> list[ValidationViolation]:
        """Keine Lehrkraft gleichzeitig in zwei Belegungen (inkl. Pool-Mitgliedschaft)."""
        seen: dict[tuple, set[str]] = defaultdict(set)
        for e in entries:
            if e.teacher_id:
                seen[(e.teacher_id,) + _slot_key(e)].add(_booking_key(e))
            if e.block_id and e.date is None:
                block = store.block(e.block_id)
                for tid in block.deployed_teacher_ids if block else []:
                    seen[(tid,) + _slot_key(e)].add(_booking_key(e))

        violations = []
        for (teacher_id, day, slot, _date), bookings in seen.items():
            if len(bookings) > 1:
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="teacher_double_booking",
                    entity=teacher_id,
                    description=f"{day} P{slot}: {len(bookings)} gleichzeitige Belegungen.",
                ))
        return violations

    def _check_room_double_booking(
        self, entries: list[ScheduleEntry]
    ) -> list[ValidationViolation]:
        seen: dict[tuple, set[str]] = defaultdict(set)
        for e in entries:
            if e.room and e.room.strip():
                seen[(e.room.strip().lower(),) + _slot_key(e)].add(_booking_key(e))

        violations = []
        for (room, day, slot, _date), bookings in seen.items():
            if len(bookings) > 1:
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="room_double_booking",
                    entity=room,
                    description=f"{day} P{slot}: {len(bookings)} gleichzeitige Belegungen.",
                ))
        return violations

    def _check_block_groups(
        self, entries: list[ScheduleEntry], store: ScheduleStore
    ) -> list[ValidationViolation]:
        """Eine Pool-Stunde muss alle Klassen der Vorlage umfassen."""
        groups: dict[tuple, set[str]] = defaultdict(set)
        for e in entries:
            if e.block_id:
                groups[(e.block_id,) + _slot_key(e)].add(e.section_id)

        violations = []
        for (block_id, day, slot, _date), sections in groups.items():
            block = store.block(block_id)
            if block is None:
                continue
            missing = set(block.section_ids) - sections
            if missing:
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="partial_block",
                    entity=block_id,
                    description=(
                        f"{day} P{slot}: Pool '{block.title}' ohne "
                        f"{', '.join(sorted(missing))}."
                    ),
                ))
        return violations

    def _check_orphaned_blocks(
        self, entries: list[ScheduleEntry], store: ScheduleStore
    ) -> list[ValidationViolation]:
        orphans: dict[str, int] = defaultdict(int)
        for e in entries:
            if e.block_id and store.block(e.block_id) is None:
                orphans[e.block_id] += 1
        return [
            ValidationViolation(
                severity="warning",
                constraint="orphaned_block_reference",
                entity=block_id,
                description=f"{count} Einträge verweisen auf eine gelöschte Pool-Vorlage.",
            )
            for block_id, count in orphans.items()
        ]

    def _check_weekly_cap(
        self, store: ScheduleStore, school_data: SchoolData
    ) -> list[ValidationViolation]:
        cap = school_data.config.engine.max_weekly_periods
        totals: dict[str, int] = defaultdict(int)
        for a in store.assignments():
            totals[a.teacher_id] += a.total_periods
        return [
            ValidationViolation(
                severity="warning",
                constraint="weekly_cap_exceeded",
                entity=teacher_id,
                description=f"Lehraufträge {total} Std. > Obergrenze {cap} Std.",
            )
            for teacher_id, total in sorted(totals.items())
            if total > cap
        ]

    def _check_substitutions(
        self, entries: list[ScheduleEntry], store: ScheduleStore
    ) -> list[ValidationViolation]:
        """Aktive Vertretungen dürfen nicht mit dem Raster des Vertreters kollidieren."""
        weekly: dict[tuple, bool] = {}
        for e in entries:
            if e.date is None and e.teacher_id:
                weekly[(e.teacher_id, e.day, e.slot_id)] = True

        violations = []
        seen: dict[tuple, str] = {}
        for sub in store.substitutions():
            tid: Optional[str] = sub.substitute_teacher_id
            if not tid:
                continue
            day = weekday_name(sub.date)
            key = (tid, sub.date, sub.slot_id)
            if key in seen:
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="substitute_double_booking",
                    entity=tid,
                    description=f"{sub.date} P{sub.slot_id}: zwei Vertretungen gleichzeitig.",
                ))
            seen[key] = sub.id
            if (tid, day, sub.slot_id) in weekly:
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="substitute_double_booking",
                    entity=tid,
                    description=f"{sub.date} P{sub.slot_id}: Vertretung trotz eigener Stunde.",
                ))
        return violations
