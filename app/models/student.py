"""Student model."""

from sqlalchemy import JSON, BigInteger, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.base import DocumentIDMixin, TimestampMixin


class Student(Base, DocumentIDMixin, TimestampMixin):
    """Student document: identity, marks map and derived aggregates."""

    __tablename__ = "students"

    admission_no: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    class_name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)  # 'class' is reserved keyword
    semester: Mapped[str] = mapped_column(String(10), nullable=False, default="Odd")

    # subject id -> {"ta": number | "A" | null, "ce": ..., "total": number, "status": str}
    marks: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    grand_total: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    average: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    rank: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    performance_level: Mapped[str] = mapped_column(String(50), nullable=False, default="F (Failed)")
    import_row_number: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    def __repr__(self) -> str:
        return f"<Student(id={self.id}, name={self.name}, class={self.class_name})>"
