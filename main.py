"""Timetable Engine — Haupt-CLI.

Verwendung:
  python main.py init                          Standard-Konfiguration anlegen
  python main.py config show                   Konfiguration anzeigen
  python main.py generate                      Demo-Daten erzeugen
  python main.py fill <jahrgang>               Draft eines Jahrgangs füllen
  python main.py show <klasse> [--live]        Raster einer Klasse anzeigen
  python main.py diff                          Draft ↔ Live vergleichen
  python main.py publish                       Draft veröffentlichen
  python main.py validate [--live]             Raster prüfen
  python main.py swap <von> <nach> --id <id>   Zellen tauschen (z.B. Sunday-2)
  python main.py block list|deploy|remove|dismantle
  python main.py subs scan|assign|archive|load
"""

import logging
import sys
from datetime import date, datetime
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich import box

console = Console()

# Standard-Pfade für Stammdaten und Durable Store
DEFAULT_DATA_JSON = Path("output/school_data.json")
DEFAULT_STORE_DIR = Path("output/store")


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _load_config_or_abort():
    """Lädt die Konfiguration oder bricht mit Fehlermeldung ab."""
    from config.manager import ConfigManager
    mgr = ConfigManager()
    if mgr.first_run_check():
        console.print(
            "[red]Keine Konfiguration gefunden.[/red]\n"
            "Führen Sie zunächst [bold]python main.py init[/bold] aus."
        )
        sys.exit(1)
    try:
        return mgr, mgr.load()
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)


def _load_data_or_abort():
    from models.school_data import SchoolData

    if not DEFAULT_DATA_JSON.exists():
        console.print(
            f"[red]Keine Datendatei gefunden: {DEFAULT_DATA_JSON}[/red]\n"
            "Verwenden Sie [bold]python main.py generate[/bold]."
        )
        sys.exit(1)
    return SchoolData.load_json(DEFAULT_DATA_JSON)


def _open_engine():
    from solver.engine import TimetableEngine
    from storage import JsonFileStore, ScheduleStore

    data = _load_data_or_abort()
    store = ScheduleStore.open(JsonFileStore(DEFAULT_STORE_DIR))
    return TimetableEngine(data, store)


def _mode(live: bool):
    from storage import GridMode
    return GridMode.LIVE if live else GridMode.DRAFT


def _parse_cell(text: str, days: list[str]):
    """"Sunday-3" oder "sun-3" → GridCell."""
    from models.timeslot import GridCell

    day_part, _, slot_part = text.rpartition("-")
    matches = [d for d in days if d.lower().startswith(day_part.lower())] if day_part else []
    if len(matches) != 1 or not slot_part.isdigit():
        raise click.BadParameter(f"Zelle '{text}' – erwartet z.B. {days[0]}-3")
    return GridCell(matches[0], int(slot_part))


def _parse_date(text: str) -> date:
    try:
        return datetime.strptime(text, "%Y-%m-%d").date()
    except ValueError:
        raise click.BadParameter(f"Datum '{text}' – erwartet JJJJ-MM-TT")


# ─── INIT ─────────────────────────────────────────────────────────────────────

@click.command("init")
@click.option("--force", is_flag=True, default=False, help="Bestehende Config überschreiben.")
def cmd_init(force: bool):
    """Legt die Standard-Schulkonfiguration an."""
    from config.defaults import default_school_config
    from config.manager import ConfigManager

    mgr = ConfigManager()
    if not mgr.first_run_check() and not force:
        console.print(
            "[yellow]Eine Konfiguration existiert bereits.[/yellow]\n"
            "Mit [bold]--force[/bold] wird sie überschrieben."
        )
        return
    mgr.save(default_school_config())
    console.print("Führen Sie jetzt [bold]python main.py generate[/bold] aus.")


# ─── CONFIG ───────────────────────────────────────────────────────────────────

@click.group("config")
def cmd_config():
    """Konfiguration anzeigen."""


@cmd_config.command("show")
def config_show():
    """Zeigt die aktuelle Konfiguration an."""
    mgr, config = _load_config_or_abort()

    console.print(Panel(
        f"[bold]{config.school_name}[/bold]  |  Tage: {', '.join(config.engine.days)}  |  "
        f"Max. {config.engine.max_weekly_periods} Std./Woche",
        title="Schulkonfiguration",
        border_style="cyan",
    ))

    for wing in config.wings:
        table = Table(title=f"{wing.name} ({wing.wing_type.value})", box=box.ROUNDED)
        table.add_column("Slot")
        table.add_column("Bezeichnung")
        table.add_column("Beginn")
        table.add_column("Ende")
        for slot in wing.slots:
            style = "dim" if slot.is_break else ""
            table.add_row(str(slot.id), slot.label, slot.start_time, slot.end_time, style=style)
        console.print(table)

    table2 = Table(title="Jahrgänge", box=box.ROUNDED)
    table2.add_column("Jahrgang")
    table2.add_column("Flügel")
    table2.add_column("Klassen")
    for g in config.grades:
        table2.add_row(g.name, g.wing_id,
                       ", ".join(s.name for s in config.sections_for_grade(g.id)))
    console.print(table2)
    console.print(f"\n[bold]Räume:[/bold] {', '.join(config.rooms) or '–'}")


# ─── GENERATE ─────────────────────────────────────────────────────────────────

@click.command("generate")
@click.option("--seed", default=42, help="Zufalls-Seed für reproduzierbare Daten.")
def cmd_generate(seed: int):
    """Erzeugt Demo-Daten (Lehrkräfte, Lehraufträge, Pools)."""
    mgr, config = _load_config_or_abort()
    from data.fake_data import FakeDataGenerator
    from storage import JsonFileStore, ScheduleStore

    console.print("[bold]Demo-Daten werden generiert...[/bold]")
    gen = FakeDataGenerator(config, seed=seed)
    data = gen.generate()
    gen.print_summary(data)
    data.check_consistency().print_rich()

    data.save_json(DEFAULT_DATA_JSON)
    console.print(f"[green]✓[/green] Stammdaten gespeichert: {DEFAULT_DATA_JSON}")

    store = ScheduleStore.open(JsonFileStore(DEFAULT_STORE_DIR))
    gen.populate(data, store)
    console.print(f"[green]✓[/green] Lehraufträge und Pools gespeichert: {DEFAULT_STORE_DIR}")
    console.print(f"\n[dim]{data.summary()}[/dim]")


# ─── FILL ─────────────────────────────────────────────────────────────────────

@click.command("fill")
@click.argument("grade_ids", nargs=-1)
@click.option("--no-anchors", is_flag=True, default=False, help="Keine Klassenlehrer-Anker.")
@click.option("--keep-draft", is_flag=True, default=False,
              help="Bestehenden Draft nicht vorher leeren.")
def cmd_fill(grade_ids: tuple, no_anchors: bool, keep_draft: bool):
    """Füllt den Draft der Jahrgänge (ohne Angabe: alle)."""
    engine = _open_engine()
    grades = list(grade_ids) or [g.id for g in engine.data.config.grades]
    for grade_id in grades:
        if engine.data.config.grade(grade_id) is None:
            console.print(f"[red]Unbekannter Jahrgang: {grade_id}[/red]")
            sys.exit(1)
        if not keep_draft:
            engine.editor.clear_grade_draft(grade_id, keep_manual=True)
        report = engine.autofill.fill_grade(grade_id, use_anchors=False if no_anchors else None)
        report.print_rich()


# ─── SHOW ─────────────────────────────────────────────────────────────────────

@click.command("show")
@click.argument("section_id")
@click.option("--live", is_flag=True, default=False, help="Live-Raster statt Draft.")
def cmd_show(section_id: str, live: bool):
    """Zeigt das Wochenraster einer Klasse."""
    engine = _open_engine()
    config = engine.data.config
    section = config.section(section_id)
    if section is None:
        console.print(f"[red]Unbekannte Klasse: {section_id}[/red]")
        sys.exit(1)

    mode = _mode(live)
    cells = {
        (e.day, e.slot_id): e
        for e in engine.store.section_entries(mode, section_id) if e.date is None
    }
    table = Table(title=f"{section.name} ({mode.value})", box=box.ROUNDED, show_lines=True)
    table.add_column("Slot")
    for day in config.engine.days:
        table.add_column(day[:3])
    for slot in config.slots_for_wing(section.wing_id, include_breaks=True):
        if slot.is_break:
            table.add_row(f"[dim]{slot.label}[/dim]", *["" for _ in config.engine.days])
            continue
        row = []
        for day in config.engine.days:
            e = cells.get((day, slot.id))
            if e is None:
                row.append("")
                continue
            label = f"[bold]{e.subject}[/bold]\n{engine.data.teacher_name(e.teacher_id)}"
            if e.block_name:
                label += f"\n[cyan]{e.block_name}[/cyan]"
            row.append(label)
        table.add_row(f"{slot.id}\n{slot.start_time}", *row)
    console.print(table)


# ─── DIFF / PUBLISH / VALIDATE ────────────────────────────────────────────────

@click.command("diff")
@click.option("--json", "as_json", is_flag=True, default=False, help="Als JSON ausgeben.")
def cmd_diff(as_json: bool):
    """Zeigt, was eine Veröffentlichung ändern würde."""
    from analysis.diff import diff_draft_live

    engine = _open_engine()
    diff = diff_draft_live(engine.store)
    if as_json:
        click.echo(diff.to_json())
        return
    if diff.is_empty():
        console.print("[dim]Keine Unterschiede zwischen Draft und Live.[/dim]")
        return
    table = Table(title="Draft → Live", box=box.ROUNDED)
    table.add_column("Klasse", style="bold")
    table.add_column("Neu", justify="right", style="green")
    table.add_column("Entfällt", justify="right", style="red")
    for c in diff.sections:
        table.add_row(c.section_id + (" [cyan](neu)[/cyan]" if c.is_new else ""),
                      str(len(c.added)), str(len(c.removed)))
    console.print(table)
    if diff.untouched_sections:
        console.print(f"[dim]Unverändert: {', '.join(diff.untouched_sections)}[/dim]")


@click.command("publish")
@click.option("--yes", is_flag=True, default=False, help="Ohne Rückfrage veröffentlichen.")
def cmd_publish(yes: bool):
    """Überführt den Draft in das Live-Raster."""
    from storage import PersistenceError

    engine = _open_engine()
    sections = engine.publisher.touched_sections()
    if sections and not yes:
        if not click.confirm(f"{len(sections)} Klassen veröffentlichen?", default=True):
            return
    try:
        report = engine.publisher.publish()
    except PersistenceError as e:
        console.print(f"[red bold]Veröffentlichen fehlgeschlagen:[/red bold] {e}")
        sys.exit(1)
    report.print_rich()


@click.command("validate")
@click.option("--live", is_flag=True, default=False, help="Live-Raster statt Draft prüfen.")
def cmd_validate(live: bool):
    """Prüft ein Raster auf Doppelbelegungen und Pool-Konsistenz."""
    from analysis.solution_validator import GridValidator

    engine = _open_engine()
    report = GridValidator().validate(engine.store, engine.data, _mode(live))
    report.print_rich()
    sys.exit(0 if report.is_valid else 1)


# ─── SWAP ─────────────────────────────────────────────────────────────────────

@click.command("swap")
@click.argument("source")
@click.argument("target")
@click.option("--kind", type=click.Choice(["section", "teacher", "room"]), default="section")
@click.option("--id", "entity_id", required=True, help="Klassen-, Lehrer-ID oder Raum.")
@click.option("--live", is_flag=True, default=False)
@click.option("--force", is_flag=True, default=False, help="Trotz Kollisionen tauschen.")
def cmd_swap(source: str, target: str, kind: str, entity_id: str, live: bool, force: bool):
    """Tauscht bzw. verschiebt die Stunde einer Klasse/Lehrkraft/eines Raums."""
    from solver.availability import EntityKind

    engine = _open_engine()
    days = engine.data.config.engine.days
    src, dst = _parse_cell(source, days), _parse_cell(target, days)
    entity_kind = EntityKind(kind)
    conflicts = engine.swaps.check_swap(src, dst, entity_kind, entity_id, _mode(live))
    if conflicts and not force:
        console.print("[red]Tausch würde Kollisionen erzeugen:[/red]")
        for c in conflicts:
            console.print(f"  [red]• {c}[/red]")
        sys.exit(1)
    result = engine.swaps.execute_move_or_swap(src, dst, entity_kind, entity_id, _mode(live))
    if result.is_noop:
        console.print("[dim]Nichts zu tauschen.[/dim]")
        return
    action = "getauscht" if result.is_swap else "verschoben"
    console.print(f"[green]✓[/green] {len(result.created)} Einträge {action}: {src} ↔ {dst}")


# ─── BLOCK ────────────────────────────────────────────────────────────────────

@click.group("block")
def cmd_block():
    """Pool-Vorlagen verwalten und bereitstellen."""


@cmd_block.command("list")
@click.option("--grade", "grade_id", default=None)
def block_list(grade_id):
    """Listet Pool-Vorlagen und verwaiste Pool-Einträge."""
    from storage import GridMode

    engine = _open_engine()
    table = Table(title="Pools", box=box.ROUNDED)
    table.add_column("ID", style="dim")
    table.add_column("Titel", style="bold")
    table.add_column("Klassen")
    table.add_column("Zuordnungen")
    table.add_column("Std./Woche", justify="right")
    for b in engine.store.blocks(grade_id):
        allocs = ", ".join(f"{a.subject} ({a.teacher_id})" for a in b.allocations)
        table.add_row(b.id, b.title, ", ".join(b.section_ids), allocs, str(b.weekly_periods))
    console.print(table)
    for mode in GridMode:
        orphans = engine.pools.orphaned_entries(mode)
        if orphans:
            console.print(
                f"[yellow]{len(orphans)} verwaiste Pool-Einträge im {mode.value}-Raster[/yellow]"
            )


@cmd_block.command("deploy")
@click.argument("block_id")
@click.argument("cell")
@click.option("--live", is_flag=True, default=False)
def block_deploy(block_id: str, cell: str, live: bool):
    """Stellt einen Pool in einer Zelle bereit (überschreibt bestehende Stunden)."""
    from solver.errors import ValidationError

    engine = _open_engine()
    block = engine.store.block(block_id)
    if block is None:
        console.print(f"[red]Unbekannter Pool: {block_id}[/red]")
        sys.exit(1)
    target = _parse_cell(cell, engine.data.config.engine.days)
    try:
        entries = engine.pools.deploy_block(block, target, _mode(live))
    except ValidationError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    console.print(f"[green]✓[/green] {len(entries)} Einträge in {target}")


@cmd_block.command("remove")
@click.argument("block_id")
def block_remove(block_id: str):
    """Löscht eine Vorlage (bereitgestellte Einträge bleiben erhalten)."""
    engine = _open_engine()
    removed = engine.pools.remove_block(block_id)
    if removed is None:
        console.print(f"[red]Unbekannter Pool: {block_id}[/red]")
        sys.exit(1)
    console.print(f"[green]✓[/green] Pool '{removed.title}' gelöscht")


@cmd_block.command("dismantle")
@click.argument("block_id")
@click.option("--live", is_flag=True, default=False)
def block_dismantle(block_id: str, live: bool):
    """Entfernt alle bereitgestellten Einträge eines Pools."""
    engine = _open_engine()
    removed = engine.pools.dismantle_block(block_id, _mode(live))
    console.print(f"[green]✓[/green] {len(removed)} Einträge entfernt")


# ─── SUBS ─────────────────────────────────────────────────────────────────────

@click.group("subs")
def cmd_subs():
    """Vertretungen erfassen, zuweisen und archivieren."""


@cmd_subs.command("scan")
@click.argument("day")
@click.argument("teacher_ids", nargs=-1, required=True)
def subs_scan(day: str, teacher_ids: tuple):
    """Legt offene Vertretungen für abwesende Lehrkräfte an."""
    engine = _open_engine()
    created = engine.substitutions.scan_absences(_parse_date(day), list(teacher_ids))
    console.print(f"[green]✓[/green] {len(created)} offene Vertretungen angelegt")


@cmd_subs.command("assign")
@click.argument("day")
@click.option("--record", "record_id", default=None, help="Einzelnen Datensatz zuweisen.")
@click.option("--teacher", "teacher_id", default=None)
def subs_assign(day: str, record_id, teacher_id):
    """Weist Vertreter zu (automatisch oder einzeln mit --record/--teacher)."""
    from solver.errors import SchedulingError

    engine = _open_engine()
    on_date = _parse_date(day)
    if record_id:
        if not teacher_id:
            table = Table(title=f"Kandidaten für {record_id}", box=box.ROUNDED)
            table.add_column("Lehrkraft")
            table.add_column("Belastung", justify="right")
            table.add_column("Frei")
            for c in engine.substitutions.candidates(record_id):
                table.add_row(c.name, f"{c.load}/{engine.substitutions.cap}",
                              "[green]ja[/green]" if c.is_eligible else "[red]nein[/red]")
            console.print(table)
            return
        try:
            engine.substitutions.assign(record_id, teacher_id)
        except SchedulingError as e:
            console.print(f"[red]{e}[/red]")
            sys.exit(1)
        console.print(f"[green]✓[/green] {teacher_id} zugewiesen")
        return
    report = engine.substitutions.auto_assign(on_date)
    report.print_rich(engine.data)


@cmd_subs.command("archive")
@click.argument("day")
def subs_archive(day: str):
    """Archiviert alle aktiven Vertretungen eines Datums."""
    engine = _open_engine()
    count = engine.substitutions.archive(_parse_date(day))
    console.print(f"[green]✓[/green] {count} Vertretungen archiviert")


@cmd_subs.command("load")
@click.argument("teacher_id")
@click.argument("day")
def subs_load(teacher_id: str, day: str):
    """Zeigt die Wochenbelastung einer Lehrkraft."""
    engine = _open_engine()
    load = engine.substitutions.load_breakdown(teacher_id, _parse_date(day))
    console.print(Panel(
        f"Stammstunden: {load.base_periods}\n"
        f"Pool-Stunden: {load.group_periods}\n"
        f"Vertretungen: {load.proxy_periods}\n"
        f"[bold]Gesamt: {load.total}/{load.cap}[/bold] (frei: {load.remaining})",
        title=engine.data.teacher_name(teacher_id),
        border_style="cyan",
    ))


# ─── HAUPT-CLI ────────────────────────────────────────────────────────────────

@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Debug-Ausgaben.")
def cli(verbose: bool):
    """Timetable Engine: Auto-Fill, Pools, Vertretungen, Draft/Live.

    Starten Sie mit: python main.py init
    """
    _setup_logging(verbose)


def main():
    """Einstiegspunkt. Legt beim ersten Aufruf die Standard-Config an."""
    from config.manager import ConfigManager
    mgr = ConfigManager()

    if len(sys.argv) == 1 and mgr.first_run_check():
        console.print(Panel(
            "[bold]Willkommen bei der Timetable Engine![/bold]\n\n"
            "Keine Konfiguration gefunden.\n"
            "Die Standard-Konfiguration wird jetzt angelegt...",
            border_style="cyan",
        ))
        sys.argv.append("init")

    cli()


# Befehle registrieren
cli.add_command(cmd_init)
cli.add_command(cmd_config)
cli.add_command(cmd_generate)
cli.add_command(cmd_fill)
cli.add_command(cmd_show)
cli.add_command(cmd_diff)
cli.add_command(cmd_publish)
cli.add_command(cmd_validate)
cli.add_command(cmd_swap)
cli.add_command(cmd_block)
cli.add_command(cmd_subs)


if __name__ == "__main__":
    main()
