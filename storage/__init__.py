"""Persistenz: Durable-Store-Backends und ScheduleStore (Draft/Live)."""

from storage.backend import DurableStore, InMemoryStore, JsonFileStore, PersistenceError
from storage.store import ScheduleStore, GridMode

__all__ = [
    "DurableStore",
    "InMemoryStore",
    "JsonFileStore",
    "PersistenceError",
    "ScheduleStore",
    "GridMode",
]
