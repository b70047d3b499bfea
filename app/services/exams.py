"""Supplementary exam records: retakes of failed subjects."""

import logging
from typing import Any

from app.core.exceptions import NotFoundError, ValidationError
from app.schemas.batch import BatchResult
from app.schemas.exam import (
    SupplementaryExamCreate,
    SupplementaryExamRecord,
    SupplementaryExamStatus,
    SupplementaryExamWithStudent,
)
from app.schemas.student import StudentRecord
from app.services.grading import apply_mark_update
from app.services.records import RecordsService, parse_component
from app.store.base import STUDENTS, SUPPLEMENTARY_EXAMS, DocumentStore

logger = logging.getLogger(__name__)


class SupplementaryExamService:
    """Service for supplementary exam operations.

    Retake results are evaluated with the subject's normal pass rules but kept
    on the exam record, so they never change regular marks or ranks.
    """

    def __init__(self, store: DocumentStore, records: RecordsService):
        self.store = store
        self.records = records

    async def get_exam(self, exam_id: str) -> SupplementaryExamRecord:
        document = await self.store.get(SUPPLEMENTARY_EXAMS, exam_id)
        if document is None:
            raise NotFoundError("Supplementary exam", exam_id)
        return SupplementaryExamRecord.model_validate(document)

    async def add_exam(self, request: SupplementaryExamCreate) -> SupplementaryExamRecord:
        """Register a pending retake for an existing student and subject."""
        if request.supplementary_year < request.original_year:
            raise ValidationError(
                f"Supplementary year {request.supplementary_year} is before the original year {request.original_year}",
                details={"column": "supplementary_year"},
            )
        await self.records.get_student(request.student_id)
        subject = await self.records.get_subject(request.subject_id)

        record = SupplementaryExamRecord(id="", **request.model_dump())
        exam_id = await self.store.add(SUPPLEMENTARY_EXAMS, record.to_document())
        logger.info(
            f"[SUPPLEMENTARY] Added {exam_id}: student {request.student_id}, "
            f"{subject.name} {request.original_year} -> {request.supplementary_year}"
        )
        return await self.get_exam(exam_id)

    async def exams_for_student(self, student_id: str) -> list[SupplementaryExamRecord]:
        documents = await self.store.query(SUPPLEMENTARY_EXAMS, "student_id", student_id)
        return [SupplementaryExamRecord.model_validate(d) for d in documents]

    async def exams_for_subject(self, subject_id: str, year: int | None = None) -> list[SupplementaryExamRecord]:
        """Retakes of a subject, optionally only those sat in ``year``."""
        documents = await self.store.query(SUPPLEMENTARY_EXAMS, "subject_id", subject_id)
        exams = [SupplementaryExamRecord.model_validate(d) for d in documents]
        if year is not None:
            exams = [e for e in exams if e.supplementary_year == year]
        return exams

    async def students_with_exams(self, subject_id: str, year: int) -> list[SupplementaryExamWithStudent]:
        """Pair each retake of a subject in ``year`` with its student. Exams of deleted students are left out."""
        results = []
        for exam in await self.exams_for_subject(subject_id, year):
            document = await self.store.get(STUDENTS, exam.student_id)
            if document is None:
                logger.warning(f"[SUPPLEMENTARY] {exam.id} refers to missing student {exam.student_id}")
                continue
            results.append(
                SupplementaryExamWithStudent(student=StudentRecord.model_validate(document), exam=exam)
            )
        return results

    async def update_marks(self, exam_id: str, ta: Any, ce: Any) -> SupplementaryExamRecord:
        """Enter the retake result and mark the exam completed."""
        exam = await self.get_exam(exam_id)
        subject = await self.records.get_subject(exam.subject_id)

        mark = apply_mark_update(
            subject,
            exam.marks,
            ta=parse_component(ta, "ta"),
            ce=parse_component(ce, "ce"),
        )
        await self.store.update(
            SUPPLEMENTARY_EXAMS,
            exam_id,
            {"marks": mark.model_dump(mode="json"), "status": SupplementaryExamStatus.COMPLETED.value},
        )
        logger.info(f"[SUPPLEMENTARY] {exam_id}/{subject.name}: total={mark.total:g} status={mark.status.value}")
        return await self.get_exam(exam_id)

    async def delete_exam(self, exam_id: str) -> None:
        await self.get_exam(exam_id)
        await self.store.delete(SUPPLEMENTARY_EXAMS, exam_id)
        logger.info(f"[SUPPLEMENTARY] Deleted {exam_id}")

    async def delete_all_exams(self) -> BatchResult:
        return await self.records.clear_collections(SUPPLEMENTARY_EXAMS)
