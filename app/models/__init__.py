"""Database models package."""

from app.models.exam import SupplementaryExam
from app.models.student import Student
from app.models.subject import Subject

__all__ = [
    "Student",
    "Subject",
    "SupplementaryExam",
]
