"""Supplementary exam model."""

from sqlalchemy import JSON, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.base import DocumentIDMixin, TimestampMixin


class SupplementaryExam(Base, DocumentIDMixin, TimestampMixin):
    """Retake of a failed subject, sat in a later year."""

    __tablename__ = "supplementary_exams"

    student_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    subject_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    original_semester: Mapped[str] = mapped_column(String(10), nullable=False, default="Odd")
    original_year: Mapped[int] = mapped_column(Integer, nullable=False)
    supplementary_year: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="Pending")

    # {"ta": ..., "ce": ..., "total": ..., "status": ...} once the result is entered
    marks: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<SupplementaryExam(id={self.id}, student={self.student_id}, subject={self.subject_id})>"
