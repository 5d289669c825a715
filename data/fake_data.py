"""Demo-Daten-Generator für die Timetable Engine.

Erzeugt reproduzierbare (seed) Lehrkräfte, Lehraufträge und Pools für die
Standard-Konfiguration:
  - je Jahrgang und Fach eine Fachlehrkraft für alle Parallelklassen
  - je Klasse ein Klassenlehrer mit Anker-Fach (1. Stunde)
  - in den Sekundar-Jahrgängen ein Sprach-Pool (Französisch/Urdu)
  - je Flügeltyp zwei Springer ohne Lehrauftrag (Vertretungsreserve)
"""

import random
from typing import Optional

from config.schema import SchoolConfig, WingType
from models.assignment import Assignment, SubjectLoad
from models.combined_block import BlockAllocation, CombinedBlock
from models.school_data import SchoolData
from models.teacher import Teacher, UserRole

# ─── Namens-Listen ────────────────────────────────────────────────────────────

_FIRST_NAMES_M = [
    "Ahmed", "Bilal", "Faisal", "Hamza", "Imran", "Khalid", "Omar",
    "Rashid", "Salman", "Tariq", "Usman", "Yusuf", "Zaid", "Daniel",
    "George", "Samuel", "Thomas",
]

_FIRST_NAMES_F = [
    "Aisha", "Fatima", "Hana", "Iman", "Layla", "Mariam", "Noor",
    "Rania", "Sara", "Yasmin", "Zainab", "Anna", "Grace", "Rebecca",
]

_LAST_NAMES = [
    "Al-Amin", "Hassan", "Rahman", "Siddiqui", "Qureshi", "Farooq",
    "Haddad", "Nasser", "Khan", "Malik", "Saleh", "Joseph", "Thomas",
    "Mathew", "Pereira", "D'Souza", "Iqbal", "Hussain", "Ansari",
]

# ─── Wochenstunden pro Klasse ────────────────────────────────────────────────
# (Fach, Wochenstunden, Raum oder None = Klassenraum)

_PRIMARY_LOADS: list[tuple[str, int, Optional[str]]] = [
    ("English", 6, None),
    ("Mathematics", 6, None),
    ("Science", 4, None),
    ("Arabic", 4, None),
    ("Islamic Studies", 3, None),
    ("Social Studies", 2, None),
    ("Computer Science", 1, "COMPUTER LAB"),
    ("Physical Education", 2, "GYM"),
]

_SECONDARY_LOADS: list[tuple[str, int, Optional[str]]] = [
    ("English", 5, None),
    ("Mathematics", 6, None),
    ("Science", 5, None),
    ("Arabic", 4, None),
    ("Islamic Studies", 3, None),
    ("Social Studies", 3, None),
    ("Computer Science", 2, "COMPUTER LAB"),
    ("Physical Education", 2, "GYM"),
]

# Fächer der Klassenlehrer in Reihenfolge der Parallelklassen (A, B, C)
_CLASS_TEACHER_SUBJECTS = ["English", "Mathematics", "Science"]

_LANGUAGE_POOL = [("French", "LANGUAGE ROOM 1"), ("Urdu", "LANGUAGE ROOM 2")]
_LANGUAGE_POOL_PERIODS = 3


class FakeDataGenerator:
    """Generiert Demo-Daten auf Basis der SchoolConfig."""

    def __init__(self, config: SchoolConfig, seed: Optional[int] = None) -> None:
        self.config = config
        self.rng = random.Random(seed)
        self._counter = 0
        self._used_names: set[str] = set()
        self.assignments: list[Assignment] = []
        self.blocks: list[CombinedBlock] = []

    # ─── Lehrkräfte ──────────────────────────────────────────────────────────

    def _make_teacher(self, role: UserRole, **kwargs) -> Teacher:
        self._counter += 1
        while True:
            first_names = _FIRST_NAMES_F if self.rng.random() < 0.5 else _FIRST_NAMES_M
            name = f"{self.rng.choice(first_names)} {self.rng.choice(_LAST_NAMES)}"
            if name not in self._used_names:
                self._used_names.add(name)
                break
        return Teacher(id=f"T{self._counter:02d}", name=name, role=role, **kwargs)

    @staticmethod
    def _role_for(wing_type: WingType) -> UserRole:
        if wing_type.is_primary:
            return UserRole.TEACHER_PRIMARY
        if wing_type in (WingType.SENIOR_SECONDARY_BOYS, WingType.SENIOR_SECONDARY_GIRLS):
            return UserRole.TEACHER_SENIOR_SECONDARY
        return UserRole.TEACHER_SECONDARY

    def _generate_grade(self, grade_id: str) -> list[Teacher]:
        """Fachlehrkräfte, Lehraufträge und ggf. Sprach-Pool eines Jahrgangs."""
        cfg = self.config
        grade = cfg.grade(grade_id)
        wing = cfg.wing(grade.wing_id)
        sections = cfg.sections_for_grade(grade_id)
        role = self._role_for(wing.wing_type)
        loads = _PRIMARY_LOADS if wing.wing_type.is_primary else _SECONDARY_LOADS

        teachers: list[Teacher] = []
        for subject, periods, room in loads:
            class_of = None
            if subject in _CLASS_TEACHER_SUBJECTS:
                idx = _CLASS_TEACHER_SUBJECTS.index(subject)
                if idx < len(sections):
                    class_of = sections[idx].id
            teacher = self._make_teacher(role, class_teacher_of=class_of)
            teachers.append(teacher)
            self.assignments.append(Assignment(
                teacher_id=teacher.id,
                grade_id=grade_id,
                loads=[SubjectLoad(subject=subject, periods=periods, room=room)],
                anchor_subject=subject if class_of else None,
            ))

        if not wing.wing_type.is_primary and len(sections) > 1:
            allocations = []
            for subject, room in _LANGUAGE_POOL:
                teacher = self._make_teacher(role)
                teachers.append(teacher)
                allocations.append(BlockAllocation(
                    teacher_id=teacher.id, subject=subject, room=room))
            self.blocks.append(CombinedBlock(
                id=f"block-{grade_id}-lang",
                title=f"3rd Language {grade.name}",
                heading="French / Urdu",
                grade_id=grade_id,
                section_ids=[s.id for s in sections],
                weekly_periods=_LANGUAGE_POOL_PERIODS,
                allocations=allocations,
            ))
        return teachers

    def _generate_reserve(self) -> list[Teacher]:
        """Springer und Leitung, ohne eigenen Lehrauftrag."""
        reserve: list[Teacher] = []
        for wing_type in sorted({w.wing_type for w in self.config.wings}, key=lambda w: w.value):
            for _ in range(2):
                reserve.append(self._make_teacher(self._role_for(wing_type)))
        reserve.append(self._make_teacher(UserRole.INCHARGE_ALL))
        reserve.append(self._make_teacher(UserRole.ADMIN))
        return reserve

    # ─── Gesamt ──────────────────────────────────────────────────────────────

    def generate(self) -> SchoolData:
        """Erzeugt die Stammdaten; Lehraufträge und Pools stehen danach in
        self.assignments bzw. self.blocks (siehe populate)."""
        self.assignments = []
        self.blocks = []
        teachers: list[Teacher] = []
        for grade in self.config.grades:
            teachers.extend(self._generate_grade(grade.id))
        teachers.extend(self._generate_reserve())
        return SchoolData(config=self.config, teachers=teachers)

    def populate(self, data: SchoolData, store) -> None:
        """Schreibt Lehraufträge und Pools in den Store (group_periods inklusive)."""
        from solver.blocks import BlockPoolManager

        store.upsert_assignments(self.assignments)
        pools = BlockPoolManager(data, store)
        for block in self.blocks:
            pools.save_block(block)

    # ─── Ausgabe ──────────────────────────────────────────────────────────────

    def print_summary(self, data: SchoolData) -> None:
        """Gibt eine Rich-Tabelle mit Übersicht der erzeugten Daten aus."""
        from rich.console import Console
        from rich.table import Table
        from rich import box

        console = Console()
        table = Table(title="Erzeugte Demo-Daten", box=box.ROUNDED)
        table.add_column("Kategorie", style="bold cyan")
        table.add_column("Anzahl", justify="right")
        table.add_column("Details")

        class_teachers = sum(1 for t in data.teachers if t.class_teacher_of)
        active = sum(1 for t in data.teachers if t.is_teaching_staff)
        table.add_row("Klassen", str(len(self.config.sections)),
                      f"{len(self.config.grades)} Jahrgänge")
        table.add_row("Lehrkräfte", str(len(data.teachers)),
                      f"{active} unterrichtend, {class_teachers} Klassenlehrer")
        table.add_row("Lehraufträge", str(len(self.assignments)),
                      f"{sum(a.base_periods for a in self.assignments)} Std. je Klasse")
        table.add_row("Pools", str(len(self.blocks)),
                      f"{_LANGUAGE_POOL_PERIODS} Std./Woche")

        console.print(table)
