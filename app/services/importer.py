"""Import reconciliation: spreadsheet rows to student and mark writes."""

import logging
import re
import time
from collections.abc import Callable, Iterable
from typing import Any

from app.core.exceptions import UploadError, ValidationError
from app.schemas.batch import BatchResult, Mutation, MutationKind
from app.schemas.marks import parse_score
from app.schemas.student import Semester, StudentCreate, StudentRecord
from app.schemas.subject import SubjectConfig
from app.schemas.upload import ImportCandidate, ImportResult, ImportRowError, ReconciliationResult
from app.services.aggregate import with_marks
from app.services.grading import UNCHANGED, apply_mark_update
from app.services.records import RecordsService, marks_payload
from app.store.base import STUDENTS
from app.store.codec import EXTRA_COLUMNS_KEY, CsvCodec, ExcelCodec, TabularCodec, codec_for_filename

logger = logging.getLogger(__name__)

MARKS_SHEET = "Student Marks"
STUDENT_ID_COLUMN = "Student ID"

# Canonical field -> accepted normalized headers
HEADER_ALIASES: dict[str, tuple[str, ...]] = {
    "admission_no": ("adno", "admissionno", "id"),
    "name": ("name", "studentname", "fullname"),
    "class_name": ("classname", "class", "grade"),
    "semester": ("semester", "term"),
}

REQUIRED_FIELDS = {
    "admission_no": "Admission number",
    "name": "Name",
    "class_name": "Class",
}

_MARK_COLUMN = re.compile(r"^(?P<subject>.+?)\s+-\s+(?P<component>TA|CE)$", re.IGNORECASE)


def normalize_header(header: Any) -> str:
    """"Admission No." -> "admissionno"."""
    return re.sub(r"[^a-z0-9]", "", str(header or "").lower())


def _text(value: Any) -> str:
    """Cell value as trimmed text. Whole floats lose their ".0"."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def normalize_semester(value: Any) -> Semester:
    """Even only on an explicit match; everything else is Odd."""
    text = _text(value).lower()
    if "even" in text or text == "2":
        return Semester.EVEN
    return Semester.ODD


def canonical_row(row: dict[str, Any]) -> dict[str, Any]:
    """Map a row's headers onto canonical field names. The first matching column wins."""
    lookup: dict[str, str] = {}
    for field, aliases in HEADER_ALIASES.items():
        for alias in aliases:
            lookup.setdefault(alias, field)

    result: dict[str, Any] = {}
    for header, value in row.items():
        field = lookup.get(normalize_header(header))
        if field and field not in result:
            result[field] = value
    return result


def next_batch_start(now_ms: int, students: Iterable[StudentRecord]) -> int:
    """First import row number of a new batch.

    The import time in ms, raised past every stored row number so a later
    import always sorts after an earlier one.
    """
    highest = max((s.import_row_number for s in students if s.import_row_number is not None), default=None)
    if highest is not None and highest >= now_ms:
        return highest + 1
    return now_ms


def reconcile_student_rows(
    rows: list[dict[str, Any]],
    known_classes: Iterable[str],
    batch_start: int,
    existing_admission_nos: Iterable[str] = (),
    strict_columns: bool = False,
) -> ReconciliationResult:
    """Turn parsed rows into insert candidates and per-row errors.

    Row numbers are spreadsheet rows, so the first data row is row 2. With
    ``strict_columns`` a row whose cell count differs from the header is
    rejected; the CSV codec marks missing cells as None and collects surplus
    ones under EXTRA_COLUMNS_KEY.
    """
    classes = list(known_classes)
    taken = set(existing_admission_nos)
    result = ReconciliationResult()

    for index, row in enumerate(rows):
        row_num = index + 2

        if strict_columns and (EXTRA_COLUMNS_KEY in row or any(v is None for v in row.values())):
            result.errors.append(ImportRowError(row=row_num, message="Column count does not match the header row"))
            continue

        fields = canonical_row(row)
        missing = [label for field, label in REQUIRED_FIELDS.items() if not _text(fields.get(field))]
        if missing:
            result.errors.append(
                ImportRowError(row=row_num, column=missing[0], message=f"Missing required fields: {', '.join(missing)}")
            )
            continue

        admission_no = _text(fields["admission_no"])
        class_name = _text(fields["class_name"])

        if class_name not in classes:
            result.errors.append(
                ImportRowError(
                    row=row_num,
                    column="Class",
                    message=f'Invalid class "{class_name}". Must be one of: {", ".join(classes)}',
                )
            )
            continue

        if admission_no in taken:
            result.errors.append(
                ImportRowError(
                    row=row_num,
                    column="Admission number",
                    message=f"Student with admission number {admission_no} already exists",
                )
            )
            continue
        taken.add(admission_no)

        result.candidates.append(
            ImportCandidate(
                row=row_num,
                student=StudentCreate(
                    admission_no=admission_no,
                    name=_text(fields["name"]),
                    class_name=class_name,
                    semester=normalize_semester(fields.get("semester")),
                    import_row_number=batch_start + index,
                ),
            )
        )

    return result


def mark_columns(headers: Iterable[str], subjects: Iterable[SubjectConfig]) -> dict[str, dict[str, str]]:
    """Find "<Subject> - TA" / "<Subject> - CE" columns, by subject id."""
    by_name = {s.name.strip().lower(): s for s in subjects}
    columns: dict[str, dict[str, str]] = {}
    for header in headers:
        match = _MARK_COLUMN.match(str(header).strip())
        if not match:
            continue
        subject = by_name.get(match["subject"].strip().lower())
        if subject is None:
            logger.warning(f"[IMPORT] Column '{header}' does not match any subject, ignored")
            continue
        columns.setdefault(subject.id, {})[match["component"].lower()] = header
    return columns


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _import_message(total: int, successful: int) -> str:
    failed = total - successful
    if failed == 0:
        return f"Successfully imported {successful} records."
    if successful:
        return f"Partially imported: {successful} successful, {failed} failed out of {total} rows."
    return f"Import failed: all {total} rows were rejected."


class ImportService:
    """Student and marks spreadsheet imports."""

    def __init__(
        self,
        records: RecordsService,
        known_classes: Iterable[str],
        clock_ms: Callable[[], int] | None = None,
    ):
        self.records = records
        self.known_classes = list(known_classes)
        self.clock_ms = clock_ms or (lambda: int(time.time() * 1000))

    def _parse(self, content: bytes | str, filename: str, sheet_name: str | None = None) -> tuple[TabularCodec, list[dict[str, Any]]]:
        codec = codec_for_filename(filename)
        if isinstance(codec, ExcelCodec):
            rows = codec.parse(content, sheet_name=sheet_name)
        else:
            rows = codec.parse(content)
        if not rows:
            raise UploadError("File contains no data rows")
        return codec, rows

    async def import_students(self, content: bytes | str, filename: str) -> ImportResult:
        """Insert the students of an uploaded sheet. Rejected rows are reported, the rest saved."""
        logger.info(f"[IMPORT] Starting student import from {filename}")
        codec, rows = self._parse(content, filename)

        entry = await self.records.fresh_snapshot()
        batch_start = next_batch_start(self.clock_ms(), entry.students)
        reconciliation = reconcile_student_rows(
            rows,
            self.known_classes,
            batch_start,
            existing_admission_nos=(s.admission_no for s in entry.students),
            strict_columns=isinstance(codec, CsvCodec),
        )
        logger.info(
            f"[IMPORT] {len(reconciliation.candidates)} rows accepted, "
            f"{len(reconciliation.errors)} rejected, batch start {batch_start}"
        )

        errors = list(reconciliation.errors)
        batch = BatchResult()
        if reconciliation.candidates:
            batch = await self.records.insert_students([c.student for c in reconciliation.candidates])
            errors.extend(
                ImportRowError(row=reconciliation.candidates[e.position].row, message=e.message)
                for e in batch.errors
            )
        return self._result(len(rows), errors, batch)

    async def import_marks(self, content: bytes | str, filename: str) -> ImportResult:
        """Apply TA/CE marks from a "Student Marks" sheet to existing students.

        A subject whose cells are all blank leaves the stored mark untouched.
        Otherwise a blank cell means the component was not entered and a
        missing column keeps the stored component.
        """
        logger.info(f"[IMPORT] Starting marks import from {filename}")
        _, rows = self._parse(content, filename, sheet_name=MARKS_SHEET)

        entry = await self.records.fresh_snapshot()
        students = {s.id: s for s in entry.students}
        catalogue = entry.subject_map()
        headers = list(dict.fromkeys(h for row in rows for h in row))
        columns = mark_columns(headers, entry.subjects)
        if STUDENT_ID_COLUMN not in headers:
            raise UploadError(f'Marks sheet must have a "{STUDENT_ID_COLUMN}" column')

        errors: list[ImportRowError] = []
        mutations: list[Mutation] = []
        mutation_rows: list[int] = []
        for index, row in enumerate(rows):
            row_num = index + 2
            student_id = _text(row.get(STUDENT_ID_COLUMN))
            student = students.get(student_id)
            if student is None:
                errors.append(
                    ImportRowError(
                        row=row_num,
                        column=STUDENT_ID_COLUMN,
                        message=f"Student {student_id} not found" if student_id else "Student ID is required",
                    )
                )
                continue

            try:
                marks = self._row_marks(row, student, columns, catalogue)
            except ValidationError as e:
                errors.append(ImportRowError(row=row_num, column=e.details.get("column"), message=e.message))
                continue

            updated = with_marks(student, marks, entry.subjects)
            mutations.append(
                Mutation(
                    kind=MutationKind.UPDATE,
                    collection=STUDENTS,
                    doc_id=student.id,
                    data=marks_payload(updated),
                    class_name=student.class_name,
                )
            )
            mutation_rows.append(row_num)

        batch = await self.records.orchestrator.run(mutations, validator=self.records.marks_validator(entry))
        errors.extend(ImportRowError(row=mutation_rows[e.position], message=e.message) for e in batch.errors)
        return self._result(len(rows), errors, batch)

    def _row_marks(
        self,
        row: dict[str, Any],
        student: StudentRecord,
        columns: dict[str, dict[str, str]],
        catalogue: dict[str, SubjectConfig],
    ) -> dict[str, Any]:
        marks = dict(student.marks)
        for subject_id, components in columns.items():
            cells = {component: row.get(header) for component, header in components.items()}
            if all(_is_blank(v) for v in cells.values()):
                continue

            subject = catalogue[subject_id]
            scores = {}
            for component in ("ta", "ce"):
                if component not in cells:
                    scores[component] = UNCHANGED
                    continue
                try:
                    scores[component] = parse_score(cells[component])
                except ValueError as e:
                    raise ValidationError(str(e), details={"column": components[component]})

            try:
                marks[subject_id] = apply_mark_update(subject, marks.get(subject_id), **scores)
            except ValidationError as e:
                raise ValidationError(e.message, details={"column": f"{subject.name} - {e.details.get('column', '').upper()}"})
        return marks

    def _result(self, total_rows: int, errors: list[ImportRowError], batch: BatchResult) -> ImportResult:
        errors.sort(key=lambda e: e.row)
        failed_rows = len({e.row for e in errors})
        successful = total_rows - failed_rows
        logger.info(f"[IMPORT] Done - {successful} of {total_rows} rows saved")
        return ImportResult(
            total_rows=total_rows,
            successful_rows=successful,
            failed_rows=failed_rows,
            errors=errors,
            ranking_failures=batch.ranking_failures,
            message=_import_message(total_rows, successful),
        )
