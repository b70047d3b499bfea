"""Student management endpoints."""

import math

from fastapi import APIRouter, Query

from app.core.dependencies import RecordsServiceDep
from app.core.exceptions import NotFoundError
from app.schemas.batch import JobResult
from app.schemas.student import (
    BulkDeleteRequest,
    PaginatedStudentResponse,
    StudentCreate,
    StudentDeleteResponse,
    StudentFilter,
    StudentRecord,
    StudentUpdate,
    StudentWriteResponse,
)

router = APIRouter()


@router.post("", response_model=StudentWriteResponse)
async def create_student(request: StudentCreate, service: RecordsServiceDep):
    """Create a new student."""
    return await service.add_student(request)


@router.get("", response_model=PaginatedStudentResponse)
async def list_students(
    service: RecordsServiceDep,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    class_name: str | None = None,
    search: str | None = None,
):
    """List students in display order: imported students first, then by rank."""
    students = await service.list_students(StudentFilter(class_name=class_name, search=search))
    total = len(students)
    start = (page - 1) * page_size
    return PaginatedStudentResponse(
        items=students[start:start + page_size],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=math.ceil(total / page_size) if total else 0,
    )


@router.get("/by-admission/{admission_no}", response_model=StudentRecord)
async def get_student_by_admission_no(admission_no: str, service: RecordsServiceDep):
    student = await service.get_student_by_admission_no(admission_no)
    if student is None:
        raise NotFoundError("Student", admission_no)
    return student


@router.post("/bulk-delete", response_model=JobResult)
async def bulk_delete_students(request: BulkDeleteRequest, service: RecordsServiceDep):
    """Delete many students. Unknown ids are reported per item."""
    return JobResult.from_batch(await service.delete_students(request.student_ids))


@router.get("/{student_id}", response_model=StudentRecord)
async def get_student(student_id: str, service: RecordsServiceDep):
    return await service.get_student(student_id)


@router.put("/{student_id}", response_model=StudentWriteResponse)
async def update_student(student_id: str, request: StudentUpdate, service: RecordsServiceDep):
    """Update name, admission number, class or semester."""
    return await service.update_student(student_id, request)


@router.delete("/{student_id}", response_model=StudentDeleteResponse)
async def delete_student(student_id: str, service: RecordsServiceDep):
    failures = await service.delete_student(student_id)
    return StudentDeleteResponse(message="Student deleted successfully", ranking_failures=failures)
