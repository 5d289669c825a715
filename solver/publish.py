"""PublishCoordinator – überführt den Draft in das Live-Raster.

Nur die Klassen, für die der Draft Einträge enthält, werden ersetzt; Live-
Einträge aller anderen Klassen bleiben unangetastet.
"""

import logging
from typing import Optional

from pydantic import BaseModel

from storage.backend import PersistenceError
from storage.store import GridMode, ScheduleStore

logger = logging.getLogger(__name__)


class PublishReport(BaseModel):
    """Ergebnis einer Veröffentlichung."""

    section_ids: list[str] = []
    removed_live: int = 0
    published: int = 0

    def print_rich(self) -> None:
        from rich.console import Console

        console = Console()
        if not self.section_ids:
            console.print("[yellow]Draft ist leer – nichts veröffentlicht.[/yellow]")
            return
        console.print(
            f"[green]✓[/green] {self.published} Einträge für {len(self.section_ids)} "
            f"Klassen veröffentlicht ({self.removed_live} alte Live-Einträge ersetzt)"
        )


class PublishCoordinator:
    """Verwendung:
        report = PublishCoordinator(store).publish()

    Ablauf: berührte Klassen bestimmen, deren Live-Einträge löschen, Draft
    einfügen (ein kompensierter Schreibschritt), dann den Draft leeren. Schlägt
    das Leeren fehl, wird der Live-Stand zurückgerollt.
    """

    def __init__(self, store: ScheduleStore) -> None:
        self.store = store
        self.mode = GridMode.DRAFT

    def touched_sections(self) -> list[str]:
        return sorted(self.store.draft_section_ids())

    def publish(self, section_ids: Optional[list[str]] = None) -> PublishReport:
        """Veröffentlicht den Draft (optional nur für eine Teilmenge der Klassen)."""
        touched = set(self.touched_sections())
        if section_ids is not None:
            touched &= set(section_ids)
        if not touched:
            logger.info("Veröffentlichen: Draft leer, nichts zu tun")
            self.mode = GridMode.LIVE
            return PublishReport()

        drafts = [e for e in self.store.entries(GridMode.DRAFT) if e.section_id in touched]
        old_live = [e for e in self.store.entries(GridMode.LIVE) if e.section_id in touched]

        self.store.replace_entries(GridMode.LIVE, [e.id for e in old_live], drafts)
        try:
            self.store.replace_entries(GridMode.DRAFT, [e.id for e in drafts], [])
        except PersistenceError:
            logger.error("Veröffentlichen: Draft konnte nicht geleert werden, Live wird zurückgerollt")
            self.store.replace_entries(GridMode.LIVE, [e.id for e in drafts], old_live)
            raise

        self.mode = GridMode.LIVE
        report = PublishReport(
            section_ids=sorted(touched),
            removed_live=len(old_live),
            published=len(drafts),
        )
        logger.info(
            f"Veröffentlicht: {report.published} Einträge, {len(report.section_ids)} Klassen, "
            f"{report.removed_live} Live-Einträge ersetzt"
        )
        return report
