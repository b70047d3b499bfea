"""Subject and elective enrollment endpoints."""

from fastapi import APIRouter

from app.core.dependencies import RecordsServiceDep
from app.schemas.common import MessageResponse
from app.schemas.student import StudentRecord
from app.schemas.subject import SubjectConfig, SubjectCreate, SubjectUpdate

router = APIRouter()


@router.post("", response_model=SubjectConfig)
async def create_subject(request: SubjectCreate, service: RecordsServiceDep):
    """Create a subject. The faculty name is stored in Title Case."""
    return await service.add_subject(request)


@router.get("", response_model=list[SubjectConfig])
async def list_subjects(service: RecordsServiceDep, class_name: str | None = None):
    if class_name:
        return await service.subjects_for_class(class_name)
    return await service.list_subjects()


@router.get("/{subject_id}", response_model=SubjectConfig)
async def get_subject(subject_id: str, service: RecordsServiceDep):
    return await service.get_subject(subject_id)


@router.put("/{subject_id}", response_model=SubjectConfig)
async def update_subject(subject_id: str, request: SubjectUpdate, service: RecordsServiceDep):
    """Update a subject. Run the status recalculation job after changing maximums."""
    return await service.update_subject(subject_id, request)


@router.delete("/{subject_id}", response_model=MessageResponse)
async def delete_subject(subject_id: str, service: RecordsServiceDep):
    await service.delete_subject(subject_id)
    return MessageResponse(message="Subject deleted successfully")


@router.get("/{subject_id}/students", response_model=list[StudentRecord])
async def list_enrolled_students(subject_id: str, service: RecordsServiceDep):
    """Students taking the subject: enrolled students of an elective, the target classes of a general subject."""
    return await service.enrolled_students(subject_id)


@router.post("/{subject_id}/students/{student_id}", response_model=SubjectConfig)
async def enroll_student(subject_id: str, student_id: str, service: RecordsServiceDep):
    """Enroll a student. Only elective subjects take enrollments."""
    return await service.enroll_student(subject_id, student_id)


@router.delete("/{subject_id}/students/{student_id}", response_model=SubjectConfig)
async def unenroll_student(subject_id: str, student_id: str, service: RecordsServiceDep):
    return await service.unenroll_student(subject_id, student_id)
