"""Aggregate calculator: grand total, average and performance tier."""

import math
from collections.abc import Iterable, Mapping
from decimal import ROUND_HALF_UP, Decimal

from app.schemas.marks import SubjectMark
from app.schemas.student import PerformanceLevel, StudentAggregate, StudentRecord
from app.schemas.subject import SubjectConfig

# Inclusive lower bounds, highest first
PERFORMANCE_TIERS: list[tuple[float, PerformanceLevel]] = [
    (95, PerformanceLevel.OUTSTANDING),
    (85, PerformanceLevel.EXCELLENT),
    (75, PerformanceLevel.VERY_GOOD),
    (65, PerformanceLevel.B_PLUS_GOOD),
    (55, PerformanceLevel.B_GOOD),
    (40, PerformanceLevel.AVERAGE),
]

Catalogue = Mapping[str, SubjectConfig] | Iterable[SubjectConfig]


def round_half_up(value: float | Decimal, places: int = 2) -> float:
    quantum = Decimal(1).scaleb(-places)
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return float(value.quantize(quantum, rounding=ROUND_HALF_UP))


def performance_level_for(average: float) -> PerformanceLevel:
    """Map an average onto the seven-tier scale."""
    for threshold, level in PERFORMANCE_TIERS:
        if average >= threshold:
            return level
    return PerformanceLevel.FAILED


def _as_mapping(subjects: Catalogue) -> Mapping[str, SubjectConfig]:
    if isinstance(subjects, Mapping):
        return subjects
    return {s.id: s for s in subjects}


def calculate_aggregate(marks: Mapping[str, SubjectMark], subjects: Catalogue) -> StudentAggregate:
    """Compute a student's aggregates from their marks.

    Every general subject with a mark counts once in the denominator; all
    elective marks together count as a single slot. Marks for subjects
    missing from the catalogue add to the grand total only.
    """
    catalogue = _as_mapping(subjects)

    # Exact sum: ranking compares grand totals for equality
    total = sum((Decimal(str(mark.total)) for mark in marks.values() if math.isfinite(mark.total)), Decimal(0))

    general_count = 0
    has_elective = False
    for subject_id in marks:
        subject = catalogue.get(subject_id)
        if subject is None:
            continue
        if subject.is_elective:
            has_elective = True
        else:
            general_count += 1
    subject_count = general_count + (1 if has_elective else 0)

    average = round_half_up(total / subject_count) if subject_count > 0 else 0.0

    return StudentAggregate(
        grand_total=round_half_up(total),
        average=average,
        subject_count=subject_count,
        performance_level=performance_level_for(average),
    )


def apply_aggregate(student: StudentRecord, subjects: Catalogue) -> StudentRecord:
    """Return the student with aggregates recomputed from its marks."""
    aggregate = calculate_aggregate(student.marks, subjects)
    return student.model_copy(
        update={
            "grand_total": aggregate.grand_total,
            "average": aggregate.average,
            "performance_level": aggregate.performance_level,
        }
    )


def with_marks(
    student: StudentRecord,
    marks: Mapping[str, SubjectMark],
    subjects: Catalogue,
) -> StudentRecord:
    """Return the student with ``marks`` replaced and aggregates recomputed."""
    return apply_aggregate(student.model_copy(update={"marks": dict(marks)}), subjects)
