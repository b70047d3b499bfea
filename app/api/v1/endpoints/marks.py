"""Mark entry endpoints."""

from fastapi import APIRouter

from app.core.dependencies import RecordsServiceDep
from app.schemas.batch import JobResult
from app.schemas.marks import MarksInput
from app.schemas.student import StudentWriteResponse, SubjectMarksClearRequest

router = APIRouter()


@router.put("/{student_id}/{subject_id}", response_model=StudentWriteResponse)
async def update_marks(student_id: str, subject_id: str, request: MarksInput, service: RecordsServiceDep):
    """
    Set TA and CE marks of one subject.

    Values are numbers, "A" for absent, or null when not entered yet.
    Totals, status, aggregates and class ranks are recomputed.
    """
    return await service.update_marks(student_id, subject_id, request.ta, request.ce)


@router.put("/{student_id}/{subject_id}/ta", response_model=StudentWriteResponse)
async def update_ta_marks(student_id: str, subject_id: str, request: MarksInput, service: RecordsServiceDep):
    """Set TA only. The stored CE is kept."""
    return await service.update_ta_marks(student_id, subject_id, request.ta)


@router.put("/{student_id}/{subject_id}/ce", response_model=StudentWriteResponse)
async def update_ce_marks(student_id: str, subject_id: str, request: MarksInput, service: RecordsServiceDep):
    """Set CE only. The stored TA is kept."""
    return await service.update_ce_marks(student_id, subject_id, request.ce)


@router.delete("/{student_id}/{subject_id}", response_model=StudentWriteResponse)
async def clear_student_subject_marks(student_id: str, subject_id: str, service: RecordsServiceDep):
    return await service.clear_student_subject_marks(student_id, subject_id)


@router.post("/subjects/{subject_id}/clear", response_model=JobResult)
async def clear_subject_marks(subject_id: str, request: SubjectMarksClearRequest, service: RecordsServiceDep):
    """Clear a subject's marks, or only its TA or CE, for many students."""
    result = await service.clear_subject_marks(subject_id, request.student_ids, request.component)
    return JobResult.from_batch(result)
