"""Main API router aggregating all module routers."""

from fastapi import APIRouter

from app.api.v1.endpoints import exports, imports, maintenance, marks, students, subjects, supplementary_exams

api_router = APIRouter()

api_router.include_router(
    students.router,
    prefix="/students",
    tags=["Students"],
)

api_router.include_router(
    subjects.router,
    prefix="/subjects",
    tags=["Subjects"],
)

api_router.include_router(
    marks.router,
    prefix="/marks",
    tags=["Marks"],
)

api_router.include_router(
    imports.router,
    prefix="/imports",
    tags=["Imports"],
)

api_router.include_router(
    exports.router,
    prefix="/exports",
    tags=["Exports"],
)

api_router.include_router(
    supplementary_exams.router,
    prefix="/supplementary-exams",
    tags=["Supplementary Exams"],
)

api_router.include_router(
    maintenance.router,
    prefix="/maintenance",
    tags=["Maintenance"],
)
