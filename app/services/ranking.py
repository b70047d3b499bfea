"""Ranking engine: standard competition ranks within a class."""

from collections.abc import Iterable, Sequence

from app.schemas.student import StudentRecord


def assign_ranks(students: Sequence[StudentRecord]) -> list[tuple[StudentRecord, int]]:
    """Rank students by grand total, highest first.

    Equal totals share a rank and the next distinct total takes its 1-based
    position, so totals 90, 90, 80, 70 rank 1, 1, 3, 4. Ties keep their input
    order.
    """
    ordered = sorted(students, key=lambda s: s.grand_total or 0, reverse=True)

    ranked: list[tuple[StudentRecord, int]] = []
    current_rank = 0
    previous_total: float | None = None
    for position, student in enumerate(ordered, start=1):
        total = student.grand_total or 0
        if total != previous_total:
            current_rank = position
        previous_total = total
        ranked.append((student, current_rank))
    return ranked


def rank_changes(students: Sequence[StudentRecord]) -> dict[str, int]:
    """Ranks that differ from what is stored, by student id."""
    return {
        student.id: rank
        for student, rank in assign_ranks(students)
        if student.rank != rank
    }


def display_order_key(student: StudentRecord) -> tuple[int, int, int]:
    """Imported students first in import order, then the rest by rank."""
    if student.import_row_number is not None:
        return (0, student.import_row_number, 0)
    return (1, 0, student.rank or 0)


def sort_for_display(students: Iterable[StudentRecord]) -> list[StudentRecord]:
    return sorted(students, key=display_order_key)
