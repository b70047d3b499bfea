"""Supplementary exam schemas."""

import enum

from pydantic import Field

from app.schemas.common import BaseSchema
from app.schemas.marks import SubjectMark
from app.schemas.student import Semester, StudentRecord


class SupplementaryExamStatus(str, enum.Enum):
    """A retake is pending until its result is entered."""

    PENDING = "Pending"
    COMPLETED = "Completed"


class SupplementaryExamCreate(BaseSchema):
    """Register a student for a retake of one subject."""

    student_id: str = Field(..., min_length=1)
    subject_id: str = Field(..., min_length=1)
    original_semester: Semester = Semester.ODD
    original_year: int = Field(..., ge=1900, le=2100)
    supplementary_year: int = Field(..., ge=1900, le=2100)


class SupplementaryExamRecord(SupplementaryExamCreate):
    """Supplementary exam as stored.

    The result lives only here; the student's regular marks, aggregates and
    rank are never touched by a retake.
    """

    id: str
    status: SupplementaryExamStatus = SupplementaryExamStatus.PENDING
    marks: SubjectMark | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == SupplementaryExamStatus.COMPLETED

    def to_document(self) -> dict:
        return self.model_dump(mode="json", exclude={"id"})


class SupplementaryExamWithStudent(BaseSchema):
    """A retake together with the student sitting it."""

    student: StudentRecord
    exam: SupplementaryExamRecord
