"""Subject model."""

from sqlalchemy import JSON, Float, String
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.base import DocumentIDMixin, TimestampMixin


class Subject(Base, DocumentIDMixin, TimestampMixin):
    """Subject configuration with TA/CE maxima and class targeting."""

    __tablename__ = "subjects"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    arabic_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    faculty_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    max_ta: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    max_ce: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    passing_total: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    subject_type: Mapped[str] = mapped_column(String(20), nullable=False, default="general")
    target_classes: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    enrolled_students: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    def __repr__(self) -> str:
        return f"<Subject(id={self.id}, name={self.name}, type={self.subject_type})>"
