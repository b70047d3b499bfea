"""Import and export schemas."""

from app.schemas.common import BaseSchema
from app.schemas.student import StudentCreate


class ImportRowError(BaseSchema):
    """Error detail for one source row."""

    row: int
    column: str | None = None
    message: str


class ImportCandidate(BaseSchema):
    """A source row accepted by reconciliation, ready to insert."""

    row: int
    student: StudentCreate


class ReconciliationResult(BaseSchema):
    """Accepted candidates and rejected rows, in source order."""

    candidates: list[ImportCandidate] = []
    errors: list[ImportRowError] = []


class ImportResult(BaseSchema):
    """Result of a student or marks import."""

    total_rows: int
    successful_rows: int
    failed_rows: int
    errors: list[ImportRowError] = []
    ranking_failures: list[str] = []
    message: str
