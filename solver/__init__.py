"""Planungs-Engine: Verfügbarkeit, Auto-Fill, Tausch, Pools, Veröffentlichen."""

from .availability import AvailabilityOracle, EntityKind
from .autofill import AutoFillEngine, FillReport, SkippedPeriod
from .blocks import BlockPoolManager
from .errors import ConflictError, PersistenceError, SchedulingError, ValidationError
from .manual_edit import FillPhase, ManualEditor
from .publish import PublishCoordinator, PublishReport
from .swap import SwapEngine, SwapResult

__all__ = [
    "AvailabilityOracle",
    "EntityKind",
    "AutoFillEngine",
    "FillReport",
    "SkippedPeriod",
    "BlockPoolManager",
    "SchedulingError",
    "ValidationError",
    "ConflictError",
    "PersistenceError",
    "FillPhase",
    "ManualEditor",
    "PublishCoordinator",
    "PublishReport",
    "SwapEngine",
    "SwapResult",
]
