from config.schema import (
    EngineConfig,
    GradeConfig,
    SchoolConfig,
    SectionConfig,
    SubjectCategory,
    SubjectConfig,
    TimeSlot,
    WingConfig,
    WingType,
)


DAYS: list[str] = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday"]

MAX_WEEKLY_PERIODS = 35


# ─── KLINGELZEITEN ───
# Primar: Pause nach der 4. Stunde; Sekundar Jungen: Pause nach der 5. Stunde.

PRIMARY_SLOTS: list[TimeSlot] = [
    TimeSlot(id=1, label="Period 1", start_time="07:20", end_time="08:00"),
    TimeSlot(id=2, label="Period 2", start_time="08:00", end_time="08:40"),
    TimeSlot(id=3, label="Period 3", start_time="08:40", end_time="09:20"),
    TimeSlot(id=4, label="Period 4", start_time="09:20", end_time="10:00"),
    TimeSlot(id=5, label="Recess", start_time="10:00", end_time="10:20", is_break=True),
    TimeSlot(id=6, label="Period 5", start_time="10:20", end_time="11:00"),
    TimeSlot(id=7, label="Period 6", start_time="11:00", end_time="11:40"),
    TimeSlot(id=8, label="Period 7", start_time="11:40", end_time="12:20"),
    TimeSlot(id=9, label="Period 8", start_time="12:20", end_time="13:00"),
]

SECONDARY_BOYS_SLOTS: list[TimeSlot] = [
    TimeSlot(id=1, label="Period 1", start_time="07:20", end_time="08:00"),
    TimeSlot(id=2, label="Period 2", start_time="08:00", end_time="08:40"),
    TimeSlot(id=3, label="Period 3", start_time="08:40", end_time="09:20"),
    TimeSlot(id=4, label="Period 4", start_time="09:20", end_time="10:00"),
    TimeSlot(id=5, label="Period 5", start_time="10:00", end_time="10:40"),
    TimeSlot(id=6, label="Recess", start_time="10:40", end_time="11:00", is_break=True),
    TimeSlot(id=7, label="Period 6", start_time="11:00", end_time="11:40"),
    TimeSlot(id=8, label="Period 7", start_time="11:40", end_time="12:20"),
    TimeSlot(id=9, label="Period 8", start_time="12:20", end_time="13:00"),
    TimeSlot(id=10, label="Period 9", start_time="13:00", end_time="13:40"),
]

SECONDARY_GIRLS_SLOTS: list[TimeSlot] = [
    TimeSlot(id=1, label="Period 1", start_time="07:20", end_time="08:00"),
    TimeSlot(id=2, label="Period 2", start_time="08:00", end_time="08:40"),
    TimeSlot(id=3, label="Period 3", start_time="08:40", end_time="09:20"),
    TimeSlot(id=4, label="Period 4", start_time="09:20", end_time="10:00"),
    TimeSlot(id=5, label="Recess", start_time="10:00", end_time="10:20", is_break=True),
    TimeSlot(id=6, label="Period 5", start_time="10:20", end_time="11:00"),
    TimeSlot(id=7, label="Period 6", start_time="11:00", end_time="11:40"),
    TimeSlot(id=8, label="Period 7", start_time="11:40", end_time="12:20"),
    TimeSlot(id=9, label="Period 8", start_time="12:20", end_time="13:00"),
    TimeSlot(id=10, label="Period 9", start_time="13:00", end_time="13:40"),
]


def default_wings() -> list[WingConfig]:
    """Standard: Primar-, Jungen- und Mädchenflügel mit eigenen Klingelzeiten."""
    return [
        WingConfig(id="wing-primary", name="Primary Wing",
                   wing_type=WingType.PRIMARY, slots=list(PRIMARY_SLOTS)),
        WingConfig(id="wing-boys", name="Secondary Boys Wing",
                   wing_type=WingType.SECONDARY_BOYS,
                   slots=list(SECONDARY_BOYS_SLOTS)),
        WingConfig(id="wing-girls", name="Secondary Girls Wing",
                   wing_type=WingType.SECONDARY_GIRLS,
                   slots=list(SECONDARY_GIRLS_SLOTS)),
    ]


def default_grades() -> list[GradeConfig]:
    """Jahrgänge IV (Primar), IX (Jungen) und X (Mädchen)."""
    return [
        GradeConfig(id="grade-iv", name="IV", wing_id="wing-primary"),
        GradeConfig(id="grade-ix", name="IX", wing_id="wing-boys"),
        GradeConfig(id="grade-x", name="X", wing_id="wing-girls"),
    ]


def default_sections() -> list[SectionConfig]:
    """Je drei Parallelklassen (A, B, C) pro Jahrgang."""
    sections = []
    for grade in default_grades():
        for label in ("A", "B", "C"):
            sections.append(SectionConfig(
                id=f"{grade.id}-{label.lower()}",
                name=f"{grade.name}-{label}",
                grade_id=grade.id,
                wing_id=grade.wing_id,
            ))
    return sections


SUBJECTS: list[SubjectConfig] = [
    SubjectConfig(name="English", category=SubjectCategory.CORE),
    SubjectConfig(name="Mathematics", category=SubjectCategory.CORE),
    SubjectConfig(name="Science", category=SubjectCategory.CORE),
    SubjectConfig(name="Arabic", category=SubjectCategory.LANGUAGE_2ND),
    SubjectConfig(name="French", category=SubjectCategory.LANGUAGE_3RD),
    SubjectConfig(name="Urdu", category=SubjectCategory.LANGUAGE_3RD),
    SubjectConfig(name="Islamic Studies", category=SubjectCategory.RME),
    SubjectConfig(name="Social Studies", category=SubjectCategory.CORE),
    SubjectConfig(name="Computer Science", category=SubjectCategory.CORE),
    SubjectConfig(name="Physical Education", category=SubjectCategory.CORE),
]

ROOMS: list[str] = [
    "LAB 1", "LAB 2", "COMPUTER LAB", "LANGUAGE ROOM 1", "LANGUAGE ROOM 2",
    "LANGUAGE ROOM 3", "GYM", "LIBRARY",
]


def default_school_config() -> SchoolConfig:
    """Komplette Default-Konfiguration mit drei Flügeln."""
    return SchoolConfig(
        school_name="Ibn Al Hytham Islamic School",
        wings=default_wings(),
        grades=default_grades(),
        sections=default_sections(),
        rooms=list(ROOMS),
        subjects=list(SUBJECTS),
        engine=EngineConfig(days=list(DAYS), max_weekly_periods=MAX_WEEKLY_PERIODS),
    )
