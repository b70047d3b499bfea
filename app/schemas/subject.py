"""Subject schemas."""

import enum

from pydantic import Field, field_validator

from app.schemas.common import BaseSchema


class SubjectType(str, enum.Enum):
    """General subjects apply to a whole class, electives to enrolled students only."""

    GENERAL = "general"
    ELECTIVE = "elective"


def _unique(values: list[str]) -> list[str]:
    seen: set[str] = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


class SubjectBase(BaseSchema):
    """Base subject schema."""

    name: str = Field(..., min_length=1, max_length=255)
    arabic_name: str | None = Field(None, max_length=255)
    faculty_name: str | None = Field(None, max_length=255)
    max_ta: float = Field(0, ge=0)
    max_ce: float = Field(0, ge=0)
    passing_total: float = Field(0, ge=0)
    subject_type: SubjectType = SubjectType.GENERAL
    target_classes: list[str] = []

    @field_validator("target_classes")
    @classmethod
    def dedupe_classes(cls, v: list[str]) -> list[str]:
        return _unique([c.strip() for c in v if c and c.strip()])


class SubjectCreate(SubjectBase):
    """Subject creation schema."""

    pass


class SubjectUpdate(BaseSchema):
    """Subject update schema."""

    name: str | None = Field(None, min_length=1, max_length=255)
    arabic_name: str | None = Field(None, max_length=255)
    faculty_name: str | None = Field(None, max_length=255)
    max_ta: float | None = Field(None, ge=0)
    max_ce: float | None = Field(None, ge=0)
    passing_total: float | None = Field(None, ge=0)
    subject_type: SubjectType | None = None
    target_classes: list[str] | None = None


class SubjectConfig(SubjectBase):
    """Subject as stored."""

    id: str
    enrolled_students: list[str] = []

    @field_validator("enrolled_students")
    @classmethod
    def dedupe_students(cls, v: list[str]) -> list[str]:
        return _unique(v)

    @property
    def is_elective(self) -> bool:
        return self.subject_type == SubjectType.ELECTIVE

    @property
    def is_ta_only(self) -> bool:
        """Subjects marked entirely on TA ignore CE for passing."""
        return self.max_ta == 100
