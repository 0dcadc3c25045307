"""Domain models for children and their guardians."""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from uuid import UUID


class AgeGroup(Enum):
    """Ministry age bands, inclusive on both ends."""

    NURSERY = "NURSERY"
    PRESCHOOL = "PRESCHOOL"
    ELEMENTARY_LOWER = "ELEMENTARY_LOWER"
    ELEMENTARY_UPPER = "ELEMENTARY_UPPER"
    MIDDLE_SCHOOL = "MIDDLE_SCHOOL"
    HIGH_SCHOOL = "HIGH_SCHOOL"
    ADULT = "ADULT"


_AGE_GROUP_BOUNDS: tuple[tuple[int, AgeGroup], ...] = (
    (2, AgeGroup.NURSERY),
    (5, AgeGroup.PRESCHOOL),
    (8, AgeGroup.ELEMENTARY_LOWER),
    (11, AgeGroup.ELEMENTARY_UPPER),
    (14, AgeGroup.MIDDLE_SCHOOL),
    (17, AgeGroup.HIGH_SCHOOL),
)


def age_in_years(date_of_birth: date, on: date) -> int:
    """Return the whole number of years between birth and ``on``."""
    years = on.year - date_of_birth.year
    if (on.month, on.day) < (date_of_birth.month, date_of_birth.day):
        years -= 1
    return years


def age_group_for(age: int) -> AgeGroup:
    """Map an age in years to its ministry age group."""
    for upper, group in _AGE_GROUP_BOUNDS:
        if age <= upper:
            return group
    return AgeGroup.ADULT


@dataclass(frozen=True)
class Child:
    """A child registered by one or two guardians."""

    id: UUID
    first_name: str
    last_name: str
    date_of_birth: date
    primary_parent_id: UUID
    secondary_parent_id: UUID | None = None
    medical_notes: str | None = None
    allergies: str | None = None
    special_needs: str | None = None
    is_active: bool = True

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def has_parent(self, parent_id: UUID) -> bool:
        """Return true when ``parent_id`` is one of the child's guardians."""
        return parent_id in {self.primary_parent_id, self.secondary_parent_id}

    @property
    def has_medical_alerts(self) -> bool:
        return any(
            note and note.strip()
            for note in (self.medical_notes, self.allergies, self.special_needs)
        )


@dataclass(frozen=True)
class ParentRecord:
    """Minimal view of a guardian profile."""

    id: UUID
    full_name: str
    email: str | None = None
    phone: str | None = None


@dataclass(frozen=True)
class StaffMember:
    """Minimal view of a staff or volunteer profile."""

    id: UUID
    full_name: str
    is_staff: bool = True
