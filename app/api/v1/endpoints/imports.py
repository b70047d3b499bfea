"""Spreadsheet import endpoints."""

from pathlib import PurePath

from fastapi import APIRouter, File, UploadFile

from app.core.dependencies import EngineDep, ImportServiceDep
from app.core.exceptions import UploadError
from app.schemas.upload import ImportResult

router = APIRouter()


async def read_upload(file: UploadFile, allowed_extensions: list[str], max_size_mb: int) -> bytes:
    """Validate an uploaded file's name and size and return its content."""
    if not file.filename:
        raise UploadError("No file provided")

    suffix = PurePath(file.filename).suffix.lower()
    if suffix not in allowed_extensions:
        raise UploadError(f"Only {', '.join(allowed_extensions)} files are allowed")

    content = await file.read()
    if len(content) > max_size_mb * 1024 * 1024:
        raise UploadError(f"File size exceeds {max_size_mb}MB limit")
    return content


@router.post("/students", response_model=ImportResult)
async def import_students(
    engine: EngineDep,
    service: ImportServiceDep,
    file: UploadFile = File(...),
):
    """
    Import students from an Excel or CSV file.

    - Allows partial success (invalid rows are reported and skipped)
    - Imported students keep the file's row order in listings

    Expected columns: Admission No, Name, Class, Semester (optional)
    """
    content = await read_upload(file, engine.settings.ALLOWED_EXTENSIONS, engine.settings.MAX_UPLOAD_SIZE_MB)
    return await service.import_students(content, file.filename)


@router.post("/marks", response_model=ImportResult)
async def import_marks(
    engine: EngineDep,
    service: ImportServiceDep,
    file: UploadFile = File(...),
):
    """
    Import TA/CE marks, usually an edited marks export.

    Excel files must contain a "Student Marks" sheet with a "Student ID"
    column and "<Subject> - TA" / "<Subject> - CE" columns.
    """
    content = await read_upload(file, engine.settings.ALLOWED_EXTENSIONS, engine.settings.MAX_UPLOAD_SIZE_MB)
    return await service.import_marks(content, file.filename)
