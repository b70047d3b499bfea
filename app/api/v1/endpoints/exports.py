"""Spreadsheet export endpoints."""

from io import BytesIO

from fastapi import APIRouter, Query
from fastapi.responses import StreamingResponse

from app.core.dependencies import ExportServiceDep
from app.store.codec import codec_for_filename

router = APIRouter()

FORMAT_PATTERN = "^(xlsx|csv)$"


def _download(content: bytes, filename: str, media_type: str) -> StreamingResponse:
    return StreamingResponse(
        BytesIO(content),
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("/marks")
async def export_marks(service: ExportServiceDep, format: str = Query("xlsx", pattern=FORMAT_PATTERN)):
    """Download all marks. The Excel workbook also carries subject and student reference sheets."""
    filename = f"student_marks.{format}"
    codec = codec_for_filename(filename)
    return _download(await service.export_marks(codec), filename, codec.media_type)


@router.get("/student-template")
async def download_student_template(service: ExportServiceDep, format: str = Query("xlsx", pattern=FORMAT_PATTERN)):
    """Download the student import template."""
    filename = f"students_template.{format}"
    codec = codec_for_filename(filename)
    return _download(service.student_template(codec), filename, codec.media_type)
