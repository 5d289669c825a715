"""Datenmodell für eine Zelle im Wochenraster."""

from dataclasses import dataclass
from datetime import date, timedelta


@dataclass(frozen=True)
class GridCell:
    """Eine Zelle im Wochenraster: Kombination aus Wochentag und Slot.

    Immutable (frozen=True) damit es als Dict-Key / Set-Element nutzbar ist.
    """

    # Wochentag als Name ("Sunday", ...), wie in EngineConfig.days
    day: str
    # Physische Slot-ID aus dem Flügel-Raster
    slot_id: int

    @property
    def key(self) -> str:
        """Eindeutiger String-Bezeichner (z.B. "Sunday-1")."""
        return f"{self.day}-{self.slot_id}"

    def __str__(self) -> str:
        return f"{self.day[:3]} P{self.slot_id}"


_WEEKDAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday",
                  "Friday", "Saturday", "Sunday"]


def weekday_name(d: date) -> str:
    """Englischer Wochentagsname eines Datums, unabhängig von der Locale."""
    return _WEEKDAY_NAMES[d.weekday()]


def week_range(d: date, days: list[str]) -> tuple[date, date]:
    """Erster und letzter Unterrichtstag der Woche, die d enthält.

    Die Woche beginnt am ersten konfigurierten Tag (Standard: Sonntag) und
    umfasst len(days) Kalendertage.
    """
    first = _WEEKDAY_NAMES.index(days[0]) if days and days[0] in _WEEKDAY_NAMES else 6
    offset = (d.weekday() - first) % 7
    start = d - timedelta(days=offset)
    return start, start + timedelta(days=max(len(days), 1) - 1)
