"""Student schemas."""

import enum

from pydantic import Field

from app.schemas.common import BaseSchema, MessageResponse, PaginatedResponse
from app.schemas.marks import SubjectMark


class Semester(str, enum.Enum):
    """Semester enumeration."""

    ODD = "Odd"
    EVEN = "Even"


class PerformanceLevel(str, enum.Enum):
    """Performance tiers applied to a student's average."""

    OUTSTANDING = "O (Outstanding)"
    EXCELLENT = "A+ (Excellent)"
    VERY_GOOD = "A (Very Good)"
    B_PLUS_GOOD = "B+ (Good)"
    B_GOOD = "B (Good)"
    AVERAGE = "C (Average)"
    FAILED = "F (Failed)"


class StudentBase(BaseSchema):
    """Base student schema."""

    admission_no: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    class_name: str = Field(..., min_length=1, max_length=100)
    semester: Semester = Semester.ODD


class StudentCreate(StudentBase):
    """Student creation schema."""

    import_row_number: int | None = None


class StudentUpdate(BaseSchema):
    """Student update schema. Marks are changed through the mark operations."""

    admission_no: str | None = Field(None, min_length=1, max_length=50)
    name: str | None = Field(None, min_length=1, max_length=255)
    class_name: str | None = Field(None, min_length=1, max_length=100)
    semester: Semester | None = None


class StudentRecord(StudentBase):
    """Student as stored, with derived aggregates."""

    id: str
    marks: dict[str, SubjectMark] = {}
    grand_total: float = 0
    average: float = 0
    rank: int = 0
    performance_level: PerformanceLevel = PerformanceLevel.FAILED
    import_row_number: int | None = None

    def to_document(self) -> dict:
        """Store form of the record, without the id."""
        return self.model_dump(mode="json", exclude={"id"})


class StudentWriteResponse(StudentRecord):
    """Student after a write, with the classes whose ranks could not be refreshed."""

    ranking_failures: list[str] = []

    def to_document(self) -> dict:
        return self.model_dump(mode="json", exclude={"id", "ranking_failures"})


class StudentDeleteResponse(MessageResponse):
    ranking_failures: list[str] = []


class StudentFilter(BaseSchema):
    """Student filter options."""

    class_name: str | None = None
    search: str | None = None  # Search by name or admission number


class PaginatedStudentResponse(PaginatedResponse[StudentRecord]):
    """Paginated student list."""


class BulkDeleteRequest(BaseSchema):
    """Delete many students at once."""

    student_ids: list[str] = Field(..., min_length=1)


class SubjectMarksClearRequest(BaseSchema):
    """Clear a subject's marks for many students."""

    student_ids: list[str] = Field(..., min_length=1)
    component: str = Field("all", pattern="^(all|ta|ce)$")


class StudentAggregate(BaseSchema):
    """Derived aggregates of a student's marks."""

    grand_total: float
    average: float
    subject_count: int
    performance_level: PerformanceLevel
