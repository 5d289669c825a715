"""SchoolData: Konfiguration + Lehrkräfte (Identitäts-Stammdaten), Pydantic v2."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from config.schema import SchoolConfig, WingType
from models.teacher import Teacher


class DataCheckReport(BaseModel):
    """Ergebnis der Stammdaten-Prüfung."""

    is_consistent: bool
    errors: list[str]      # Ungültige Referenzen
    warnings: list[str]    # Hinweise

    def print_rich(self) -> None:
        """Gibt den Report formatiert über Rich aus."""
        from rich.console import Console
        from rich.panel import Panel

        console = Console()
        if self.is_consistent:
            status = "[bold green]✓ KONSISTENT[/bold green]"
        else:
            status = "[bold red]✗ FEHLERHAFT[/bold red]"

        lines = [status]
        if self.errors:
            lines.append("\n[red bold]Fehler:[/red bold]")
            for e in self.errors:
                lines.append(f"  [red]• {e}[/red]")
        if self.warnings:
            lines.append("\n[yellow bold]Warnungen:[/yellow bold]")
            for w in self.warnings:
                lines.append(f"  [yellow]• {w}[/yellow]")
        if not self.errors and not self.warnings:
            lines.append("[dim]Keine Probleme gefunden.[/dim]")

        console.print(Panel("\n".join(lines), title="Stammdaten-Check", border_style="cyan"))


class SchoolData(BaseModel):
    """Stammdaten: Schulkonfiguration und Lehrkräfte (read-only für die Engine)."""

    config: SchoolConfig
    teachers: list[Teacher]
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None
    data_version: str = "1.0"

    # ─── Lookups ───

    def teacher(self, teacher_id: str) -> Optional[Teacher]:
        return next((t for t in self.teachers if t.id == teacher_id), None)

    def teacher_name(self, teacher_id: str) -> str:
        t = self.teacher(teacher_id)
        return t.name if t else teacher_id

    def class_teacher_for(self, section_id: str) -> Optional[Teacher]:
        return next(
            (t for t in self.teachers
             if t.class_teacher_of and t.class_teacher_of.strip() == section_id.strip()),
            None,
        )

    def eligible_teachers(self, wing_type: WingType) -> list[Teacher]:
        """Aktive Lehrkräfte für einen Flügeltyp, in Stammdaten-Reihenfolge."""
        return [
            t for t in self.teachers
            if t.is_teaching_staff and t.is_eligible_for(wing_type)
        ]

    # ─── Übersicht ───

    def summary(self) -> str:
        """Kurze Übersicht über den Datensatz."""
        cfg = self.config
        active = [t for t in self.teachers if t.is_teaching_staff]
        lines = [
            f"Schule: {cfg.school_name}",
            f"Flügel: {len(cfg.wings)}",
            f"Jahrgänge: {len(cfg.grades)}",
            f"Klassen: {len(cfg.sections)}",
            f"Lehrkräfte: {len(active)} aktiv ({len(self.teachers)} gesamt)",
            f"Räume: {len(cfg.rooms)}",
            f"Max. Wochenstunden: {cfg.engine.max_weekly_periods}",
        ]
        return "\n".join(lines)

    # ─── Konsistenz-Check ───

    def check_consistency(self) -> DataCheckReport:
        """Prüft Referenzen zwischen Lehrkräften und Konfiguration.

        Prüfungen:
        1. Lehrer-IDs eindeutig
        2. Klassenlehrer-Verweise zeigen auf existierende Klassen
        3. Jede Klasse hat höchstens einen Klassenlehrer
        4. Jeder Flügeltyp hat mindestens eine einsetzbare Lehrkraft
        """
        errors: list[str] = []
        warnings: list[str] = []

        ids = [t.id for t in self.teachers]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        for dup in duplicates:
            errors.append(f"Lehrer-ID '{dup}' ist mehrfach vergeben.")

        class_teachers: dict[str, list[str]] = {}
        for t in self.teachers:
            if not t.class_teacher_of:
                continue
            if self.config.section(t.class_teacher_of) is None:
                errors.append(
                    f"Lehrkraft {t.id} ({t.name}): Klassenlehrer von unbekannter "
                    f"Klasse '{t.class_teacher_of}'."
                )
                continue
            class_teachers.setdefault(t.class_teacher_of, []).append(t.id)

        for section_id, tids in class_teachers.items():
            if len(tids) > 1:
                warnings.append(
                    f"Klasse '{section_id}' hat mehrere Klassenlehrer ({', '.join(tids)}) – "
                    f"nur der erste wird für Anker verwendet."
                )

        for wing_type in sorted({w.wing_type for w in self.config.wings}, key=lambda w: w.value):
            if not self.eligible_teachers(wing_type):
                warnings.append(
                    f"Flügeltyp {wing_type.value}: keine einsetzbare Lehrkraft "
                    f"(Vertretungen unmöglich)."
                )

        return DataCheckReport(
            is_consistent=len(errors) == 0,
            errors=errors,
            warnings=warnings,
        )

    # ─── Persistenz ────────────────────────────────────────────────────────

    def save_json(self, path: Path) -> None:
        """Speichert den kompletten Datensatz als JSON-Datei."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        now = datetime.now(timezone.utc)
        updated = self.model_copy(update={
            "modified_at": now,
            "created_at": self.created_at or now,
        })
        with open(path, "w", encoding="utf-8") as f:
            f.write(updated.model_dump_json(indent=2))

    @classmethod
    def load_json(cls, path: Path) -> "SchoolData":
        """Lädt einen Datensatz aus einer JSON-Datei."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"JSON-Datei nicht gefunden: {path}")
        with open(path, "r", encoding="utf-8") as f:
            return cls.model_validate_json(f.read())
