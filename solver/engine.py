"""TimetableEngine – bündelt alle Komponenten über einem ScheduleStore.

Verwendung:
    engine = TimetableEngine(school_data, store)
    report = engine.autofill.fill_grade("grade-ix")
    engine.publisher.publish()
"""

from analysis.substitution_helper import SubstitutionAssigner
from models.school_data import SchoolData
from solver.autofill import AutoFillEngine
from solver.availability import AvailabilityOracle
from solver.blocks import BlockPoolManager
from solver.manual_edit import ManualEditor
from solver.publish import PublishCoordinator
from solver.swap import SwapEngine
from storage.store import GridMode, ScheduleStore


class TimetableEngine:
    def __init__(self, data: SchoolData, store: ScheduleStore) -> None:
        self.data = data
        self.store = store
        self.autofill = AutoFillEngine(data, store)
        self.swaps = SwapEngine(store)
        self.pools = BlockPoolManager(data, store)
        self.editor = ManualEditor(data, store)
        self.publisher = PublishCoordinator(store)
        self.substitutions = SubstitutionAssigner(data, store)

    @property
    def mode(self) -> GridMode:
        """Zuletzt aktives Raster (nach dem Veröffentlichen LIVE)."""
        return self.publisher.mode

    def oracle(self, mode: GridMode = GridMode.DRAFT) -> AvailabilityOracle:
        return AvailabilityOracle(self.store, mode)
