"""Vergleich Draft ↔ Live: was eine Veröffentlichung ändern würde.

Gibt strukturierte Unterschiede pro Klasse zurück, die als Rich-Tabelle oder
JSON ausgegeben werden können.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from storage.store import GridMode

if TYPE_CHECKING:
    from models.entry import ScheduleEntry
    from storage.store import ScheduleStore


def _lesson(e: "ScheduleEntry") -> str:
    label = f"{e.day[:3]} P{e.slot_id} {e.subject} ({e.teacher_id})"
    return f"{label} [{e.block_name}]" if e.block_name else label


@dataclass
class SectionChange:
    """Änderungen einer Klasse beim Veröffentlichen."""

    section_id: str
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)

    @property
    def is_new(self) -> bool:
        """Klasse hat bisher keinen Live-Plan."""
        return not self.removed and bool(self.added)


@dataclass
class GridDiff:
    """Vollständiger Diff zwischen Draft und Live."""

    sections: list[SectionChange] = field(default_factory=list)
    untouched_sections: list[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        """Gibt True zurück wenn eine Veröffentlichung nichts ändern würde."""
        return all(not c.added and not c.removed for c in self.sections)

    def to_dict(self) -> dict:
        """Serialisiert den Diff als Dictionary (für JSON-Ausgabe)."""
        return {
            "sections": [
                {"section_id": c.section_id, "added": c.added, "removed": c.removed}
                for c in self.sections
            ],
            "untouched_sections": self.untouched_sections,
        }

    def to_json(self, indent: int = 2) -> str:
        """Gibt den Diff als JSON-String zurück."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)


def diff_draft_live(store: "ScheduleStore") -> GridDiff:
    """Vergleicht Draft und Live pro berührter Klasse.

    Einträge werden ohne ID und Manuell-Flag verglichen, d.h. eine
    unveränderte Stunde erscheint weder als hinzugefügt noch als entfernt.
    """
    diff = GridDiff()
    touched = store.draft_section_ids()
    live_sections = {e.section_id for e in store.entries(GridMode.LIVE)}

    for section_id in sorted(touched):
        draft = sorted(_lesson(e) for e in store.section_entries(GridMode.DRAFT, section_id))
        live = sorted(_lesson(e) for e in store.section_entries(GridMode.LIVE, section_id))
        change = SectionChange(section_id=section_id)
        remaining = list(live)
        for lesson in draft:
            if lesson in remaining:
                remaining.remove(lesson)
            else:
                change.added.append(lesson)
        change.removed = remaining
        diff.sections.append(change)

    diff.untouched_sections = sorted(live_sections - touched)
    return diff
