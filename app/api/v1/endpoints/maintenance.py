"""Maintenance job endpoints. Each job runs as a batch and reports per-item errors."""

from fastapi import APIRouter

from app.core.dependencies import RecordsServiceDep
from app.schemas.batch import JobResult

router = APIRouter()


@router.post("/recalculate-totals", response_model=JobResult)
async def recalculate_totals(service: RecordsServiceDep):
    """Recompute every student's aggregates and re-rank every class."""
    return JobResult.from_batch(await service.recalculate_all_totals())


@router.post("/recalculate-statuses", response_model=JobResult)
async def recalculate_statuses(service: RecordsServiceDep):
    """Re-evaluate every stored mark against the current subject settings."""
    return JobResult.from_batch(await service.recalculate_all_statuses())


@router.post("/recalculate-performance-levels", response_model=JobResult)
async def recalculate_performance_levels(service: RecordsServiceDep):
    return JobResult.from_batch(await service.recalculate_performance_levels())


@router.post("/normalize-faculty-names", response_model=JobResult)
async def normalize_faculty_names(service: RecordsServiceDep):
    return JobResult.from_batch(await service.normalize_faculty_names())


@router.post("/clear-students", response_model=JobResult)
async def clear_all_students(service: RecordsServiceDep):
    """Delete every student."""
    return JobResult.from_batch(await service.clear_all_students())


@router.post("/clear-subjects", response_model=JobResult)
async def clear_all_subjects(service: RecordsServiceDep):
    return JobResult.from_batch(await service.clear_all_subjects())


@router.post("/reset", response_model=JobResult)
async def complete_reset(service: RecordsServiceDep):
    """Delete all students, subjects and supplementary exams."""
    return JobResult.from_batch(await service.complete_reset())
