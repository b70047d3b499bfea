"""FastAPI dependency injection utilities."""

from typing import Annotated

from fastapi import Depends, Request

from app.engine import RecordsEngine
from app.services.exams import SupplementaryExamService
from app.services.exporter import ExportService
from app.services.importer import ImportService
from app.services.records import RecordsService


def get_engine(request: Request) -> RecordsEngine:
    """The engine built at startup."""
    return request.app.state.engine


EngineDep = Annotated[RecordsEngine, Depends(get_engine)]


def get_records_service(engine: EngineDep) -> RecordsService:
    return engine.records


def get_import_service(engine: EngineDep) -> ImportService:
    return engine.imports


def get_export_service(engine: EngineDep) -> ExportService:
    return engine.exports


def get_exam_service(engine: EngineDep) -> SupplementaryExamService:
    return engine.exams


RecordsServiceDep = Annotated[RecordsService, Depends(get_records_service)]
ImportServiceDep = Annotated[ImportService, Depends(get_import_service)]
ExportServiceDep = Annotated[ExportService, Depends(get_export_service)]
ExamServiceDep = Annotated[SupplementaryExamService, Depends(get_exam_service)]
