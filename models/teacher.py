"""Datenmodell für eine Lehrkraft inkl. Rollen (Pydantic v2)."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel

from config.schema import WingType


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    INCHARGE_ALL = "INCHARGE_ALL"
    INCHARGE_PRIMARY = "INCHARGE_PRIMARY"
    INCHARGE_SECONDARY = "INCHARGE_SECONDARY"
    TEACHER_PRIMARY = "TEACHER_PRIMARY"
    TEACHER_SECONDARY = "TEACHER_SECONDARY"
    TEACHER_SENIOR_SECONDARY = "TEACHER_SENIOR_SECONDARY"
    ADMIN_STAFF = "ADMIN_STAFF"


# Rollen, die in allen Flügeln einsetzbar sind
_ALL_WINGS = {UserRole.ADMIN, UserRole.INCHARGE_ALL}


class Teacher(BaseModel):
    """Repräsentiert eine einzelne Lehrkraft."""

    id: str
    name: str
    role: UserRole
    secondary_roles: list[UserRole] = []
    class_teacher_of: Optional[str] = None   # Section-ID, falls Klassenlehrer
    is_resigned: bool = False

    @property
    def all_roles(self) -> list[UserRole]:
        return [self.role, *self.secondary_roles]

    @property
    def is_teaching_staff(self) -> bool:
        """Admins und Verwaltung unterrichten nicht."""
        return self.role not in (UserRole.ADMIN, UserRole.ADMIN_STAFF) and not self.is_resigned

    @property
    def can_teach_primary(self) -> bool:
        return any(r in _ALL_WINGS or "PRIMARY" in r.value for r in self.all_roles)

    @property
    def can_teach_secondary(self) -> bool:
        return any(r in _ALL_WINGS or "SECONDARY" in r.value for r in self.all_roles)

    def is_eligible_for(self, wing_type: WingType) -> bool:
        """True wenn die Lehrkraft in diesem Flügeltyp eingesetzt werden darf."""
        if wing_type.is_primary:
            return self.can_teach_primary
        return self.can_teach_secondary
