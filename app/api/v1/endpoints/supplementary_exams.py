"""Supplementary exam endpoints."""

from fastapi import APIRouter, Query

from app.core.dependencies import ExamServiceDep
from app.schemas.batch import JobResult
from app.schemas.common import MessageResponse
from app.schemas.exam import SupplementaryExamCreate, SupplementaryExamRecord, SupplementaryExamWithStudent
from app.schemas.marks import MarksInput

router = APIRouter()


@router.post("", response_model=SupplementaryExamRecord)
async def create_supplementary_exam(request: SupplementaryExamCreate, service: ExamServiceDep):
    """Register a pending retake of one subject for a student."""
    return await service.add_exam(request)


@router.delete("", response_model=JobResult)
async def delete_all_supplementary_exams(service: ExamServiceDep):
    return JobResult.from_batch(await service.delete_all_exams())


@router.get("/by-student/{student_id}", response_model=list[SupplementaryExamRecord])
async def list_student_exams(student_id: str, service: ExamServiceDep):
    return await service.exams_for_student(student_id)


@router.get("/by-subject/{subject_id}", response_model=list[SupplementaryExamRecord])
async def list_subject_exams(subject_id: str, service: ExamServiceDep, year: int | None = Query(None)):
    return await service.exams_for_subject(subject_id, year)


@router.get("/by-subject/{subject_id}/students", response_model=list[SupplementaryExamWithStudent])
async def list_subject_exam_students(subject_id: str, service: ExamServiceDep, year: int = Query(...)):
    """Students sitting a retake of the subject in ``year``."""
    return await service.students_with_exams(subject_id, year)


@router.get("/{exam_id}", response_model=SupplementaryExamRecord)
async def get_supplementary_exam(exam_id: str, service: ExamServiceDep):
    return await service.get_exam(exam_id)


@router.put("/{exam_id}/marks", response_model=SupplementaryExamRecord)
async def update_supplementary_exam_marks(exam_id: str, request: MarksInput, service: ExamServiceDep):
    """Enter the retake result. The exam becomes Completed; regular marks are not changed."""
    return await service.update_marks(exam_id, request.ta, request.ce)


@router.delete("/{exam_id}", response_model=MessageResponse)
async def delete_supplementary_exam(exam_id: str, service: ExamServiceDep):
    await service.delete_exam(exam_id)
    return MessageResponse(message="Supplementary exam deleted successfully")
