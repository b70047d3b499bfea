"""Spreadsheet exports of marks and reference data."""

import logging
from typing import Any

from app.core.exceptions import ValidationError
from app.schemas.marks import number_to_wire, score_to_wire
from app.schemas.student import StudentRecord
from app.schemas.subject import SubjectConfig
from app.services.cache import RecordsCache
from app.services.importer import MARKS_SHEET, STUDENT_ID_COLUMN
from app.store.codec import ExcelCodec, TabularCodec

logger = logging.getLogger(__name__)

SUBJECTS_SHEET = "Subjects Reference"
STUDENTS_SHEET = "Students Reference"

TEMPLATE_HEADERS = ("Admission No", "Name", "Class", "Semester")


def marks_rows(students: list[StudentRecord], subjects: list[SubjectConfig]) -> list[dict[str, Any]]:
    """One row per student with TA, CE, Total and Status columns per subject."""
    rows = []
    for student in students:
        row: dict[str, Any] = {
            STUDENT_ID_COLUMN: student.id,
            "Admission No": student.admission_no,
            "Student Name": student.name,
            "Class": student.class_name,
            "Semester": student.semester.value,
            "Grand Total": number_to_wire(student.grand_total),
            "Average": number_to_wire(student.average),
            "Rank": student.rank,
            "Performance Level": student.performance_level.value,
        }
        for subject in subjects:
            mark = student.marks.get(subject.id)
            row[f"{subject.name} - TA"] = score_to_wire(mark.ta) if mark else None
            row[f"{subject.name} - CE"] = score_to_wire(mark.ce) if mark else None
            row[f"{subject.name} - Total"] = number_to_wire(mark.total) if mark else None
            row[f"{subject.name} - Status"] = mark.status.value if mark else None
        rows.append(row)
    return rows


def subject_rows(subjects: list[SubjectConfig]) -> list[dict[str, Any]]:
    return [
        {
            "Subject ID": s.id,
            "Name": s.name,
            "Arabic Name": s.arabic_name,
            "Faculty": s.faculty_name,
            "Type": s.subject_type.value,
            "Max TA": number_to_wire(s.max_ta),
            "Max CE": number_to_wire(s.max_ce),
            "Passing Total": number_to_wire(s.passing_total),
            "Classes": ", ".join(s.target_classes),
        }
        for s in subjects
    ]


def student_rows(students: list[StudentRecord]) -> list[dict[str, Any]]:
    return [
        {
            STUDENT_ID_COLUMN: s.id,
            "Admission No": s.admission_no,
            "Name": s.name,
            "Class": s.class_name,
            "Semester": s.semester.value,
        }
        for s in students
    ]


class ExportService:
    """Builds export files from the current cache snapshot."""

    def __init__(self, cache: RecordsCache, known_classes: list[str]):
        self.cache = cache
        self.known_classes = known_classes

    async def export_marks(self, codec: TabularCodec) -> bytes:
        """Marks workbook. Excel gets the reference sheets as well; CSV only the marks."""
        entry = await self.cache.read()
        if not entry.students:
            raise ValidationError("No students to export")
        if not entry.subjects:
            raise ValidationError("No subjects to export")
        if entry.stale:
            logger.warning("[EXPORT] Exporting from a stale local snapshot")

        rows = marks_rows(entry.students, entry.subjects)
        logger.info(f"[EXPORT] {len(rows)} students x {len(entry.subjects)} subjects")

        if isinstance(codec, ExcelCodec):
            return codec.encode_sheets(
                {
                    MARKS_SHEET: rows,
                    SUBJECTS_SHEET: subject_rows(entry.subjects),
                    STUDENTS_SHEET: student_rows(entry.students),
                }
            )
        return codec.encode(rows)

    def student_template(self, codec: TabularCodec) -> bytes:
        """Empty student import sheet with one example row."""
        example = dict(zip(TEMPLATE_HEADERS, ("1001", "Student Name", self.known_classes[0] if self.known_classes else "", "Odd")))
        return codec.encode([example])
