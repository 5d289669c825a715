from models.teacher import Teacher, UserRole
from models.timeslot import GridCell
from models.entry import ScheduleEntry
from models.substitution import SubstitutionRecord
from models.combined_block import CombinedBlock, BlockAllocation
from models.assignment import Assignment, SubjectLoad
from models.school_data import SchoolData, DataCheckReport

__all__ = [
    "Teacher",
    "UserRole",
    "GridCell",
    "ScheduleEntry",
    "SubstitutionRecord",
    "CombinedBlock",
    "BlockAllocation",
    "Assignment",
    "SubjectLoad",
    "SchoolData",
    "DataCheckReport",
]
