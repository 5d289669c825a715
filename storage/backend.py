"""Durable-Store-Schnittstelle und Backends (In-Memory, JSON-Dateien).

Die Engine braucht nur Read-after-Write-Konsistenz innerhalb einer Sitzung.
Datensätze werden als JSON-kompatible Dicts mit Schlüssel "id" abgelegt.
"""

import json
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterable, Iterator, Protocol

logger = logging.getLogger(__name__)

Record = dict
Predicate = Callable[[Record], bool]


class PersistenceError(Exception):
    """Schreibzugriff auf den Durable Store ist fehlgeschlagen."""


class DurableStore(Protocol):
    """Minimale Schnittstelle, die die Engine vom Speicher erwartet."""

    def load(self, table: str) -> list[Record]: ...

    def upsert(self, table: str, records: Iterable[Record]) -> None: ...

    def delete_where(self, table: str, predicate: Predicate) -> int: ...

    def bulk_insert(self, table: str, records: Iterable[Record]) -> None: ...


class InMemoryStore:
    """Durable Store im Arbeitsspeicher (Tests, Sandbox-Betrieb)."""

    def __init__(self) -> None:
        self._tables: dict[str, dict[str, Record]] = {}

    def _table(self, table: str) -> dict[str, Record]:
        return self._tables.setdefault(table, {})

    @contextmanager
    def _writing(self, table: str) -> Iterator[dict[str, Record]]:
        """Schreibt auf einer Kopie; nur nach erfolgreichem Flush übernommen."""
        rows = dict(self._table(table))
        yield rows
        previous = self._tables[table]
        self._tables[table] = rows
        try:
            self._flush(table)
        except PersistenceError:
            self._tables[table] = previous
            raise

    def load(self, table: str) -> list[Record]:
        return [dict(r) for r in self._table(table).values()]

    def upsert(self, table: str, records: Iterable[Record]) -> None:
        with self._writing(table) as rows:
            for record in records:
                rows[record["id"]] = dict(record)

    def delete_where(self, table: str, predicate: Predicate) -> int:
        doomed = [key for key, record in self._table(table).items() if predicate(record)]
        if not doomed:
            return 0
        with self._writing(table) as rows:
            for key in doomed:
                del rows[key]
        return len(doomed)

    def bulk_insert(self, table: str, records: Iterable[Record]) -> None:
        batch = [dict(r) for r in records]
        existing = self._table(table)
        clashes = [r["id"] for r in batch if r["id"] in existing]
        if clashes:
            raise PersistenceError(
                f"Tabelle '{table}': ID bereits vorhanden: {', '.join(clashes[:3])}"
            )
        with self._writing(table) as rows:
            for record in batch:
                rows[record["id"]] = record

    def _flush(self, table: str) -> None:
        """Hook für persistente Unterklassen."""


class JsonFileStore(InMemoryStore):
    """Eine JSON-Datei pro Tabelle, nach jeder Operation komplett neu geschrieben."""

    def __init__(self, directory: Path) -> None:
        super().__init__()
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        for path in sorted(self.directory.glob("*.json")):
            with open(path, "r", encoding="utf-8") as f:
                rows = json.load(f)
            self._tables[path.stem] = {r["id"]: r for r in rows}

    def _flush(self, table: str) -> None:
        path = self.directory / f"{table}.json"
        tmp = path.with_name(path.name + ".tmp")
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(list(self._table(table).values()), f,
                          indent=2, ensure_ascii=False)
            tmp.replace(path)
        except OSError as e:
            logger.error(f"Schreiben von {path} fehlgeschlagen: {e}")
            raise PersistenceError(f"Tabelle '{table}' nicht gespeichert: {e}") from e

    def __repr__(self) -> str:
        return f"JsonFileStore({self.directory})"
