"""
Unit Tests for the Aggregate Calculator and Ranking Engine
"""

import pytest

from app.schemas.marks import MarkStatus, SubjectMark
from app.schemas.student import PerformanceLevel, StudentRecord
from app.schemas.subject import SubjectConfig, SubjectType
from app.services.aggregate import (
    apply_aggregate,
    calculate_aggregate,
    performance_level_for,
    round_half_up,
)
from app.services.ranking import assign_ranks, rank_changes, sort_for_display


def general(subject_id: str) -> SubjectConfig:
    return SubjectConfig(id=subject_id, name=subject_id, max_ta=40, max_ce=60)


def elective(subject_id: str) -> SubjectConfig:
    return SubjectConfig(id=subject_id, name=subject_id, max_ta=40, max_ce=60, subject_type=SubjectType.ELECTIVE)


def mark(total: float) -> SubjectMark:
    return SubjectMark(ta=None, ce=None, total=total, status=MarkStatus.PASSED)


def student(student_id: str, grand_total: float = 0, rank: int = 0, **kwargs) -> StudentRecord:
    return StudentRecord(
        id=student_id,
        admission_no=f"ADM-{student_id}",
        name=f"Student {student_id}",
        class_name="Eight standard",
        grand_total=grand_total,
        rank=rank,
        **kwargs,
    )


class TestCalculateAggregate:
    """Tests for grand total, denominator and average."""

    def test_aggregate_when_three_general_and_two_electives_then_denominator_is_four(self):
        catalogue = [general("g1"), general("g2"), general("g3"), elective("e1"), elective("e2")]
        marks = {sid: mark(80) for sid in ("g1", "g2", "g3", "e1", "e2")}
        result = calculate_aggregate(marks, catalogue)
        assert result.subject_count == 4
        assert result.grand_total == 400
        assert result.average == 100

    def test_aggregate_when_no_elective_marks_then_electives_not_counted(self):
        catalogue = [general("g1"), general("g2"), elective("e1")]
        result = calculate_aggregate({"g1": mark(70), "g2": mark(81)}, catalogue)
        assert result.subject_count == 2
        assert result.average == 75.5
        assert result.performance_level == PerformanceLevel.VERY_GOOD

    def test_aggregate_when_subject_unknown_then_adds_to_total_only(self):
        result = calculate_aggregate({"g1": mark(60), "gone": mark(30)}, [general("g1")])
        assert result.grand_total == 90
        assert result.subject_count == 1
        assert result.average == 90

    def test_aggregate_when_no_marks_then_zero_average_and_failed(self):
        result = calculate_aggregate({}, [general("g1")])
        assert result.grand_total == 0
        assert result.average == 0
        assert result.performance_level == PerformanceLevel.FAILED

    def test_aggregate_when_average_has_half_cent_then_rounds_half_up(self):
        result = calculate_aggregate({"g1": mark(50), "g2": mark(50.01)}, [general("g1"), general("g2")])
        assert result.average == 50.01

    def test_aggregate_when_fractional_totals_then_grand_total_exact(self):
        catalogue = [general("g1"), general("g2"), general("g3")]
        result = calculate_aggregate({"g1": mark(0.1), "g2": mark(0.2), "g3": mark(50.01)}, catalogue)
        assert result.grand_total == 50.31
        assert result.average == 16.77

    def test_apply_aggregate_when_applied_twice_then_unchanged(self):
        catalogue = [general("g1"), elective("e1")]
        record = student("s1", marks={"g1": mark(66), "e1": mark(71)})
        once = apply_aggregate(record, catalogue)
        assert apply_aggregate(once, catalogue) == once
        assert once.grand_total == 137
        assert once.average == 68.5

    def test_apply_aggregate_when_catalogue_is_mapping_then_same_result(self):
        catalogue = [general("g1"), elective("e1")]
        record = student("s1", marks={"g1": mark(66), "e1": mark(71)})
        assert apply_aggregate(record, {s.id: s for s in catalogue}) == apply_aggregate(record, catalogue)


class TestPerformanceLevel:
    """Tests for the seven-tier table."""

    @pytest.mark.parametrize(
        "average, level",
        [
            (100, PerformanceLevel.OUTSTANDING),
            (95, PerformanceLevel.OUTSTANDING),
            (94.99, PerformanceLevel.EXCELLENT),
            (85, PerformanceLevel.EXCELLENT),
            (75, PerformanceLevel.VERY_GOOD),
            (65, PerformanceLevel.B_PLUS_GOOD),
            (55, PerformanceLevel.B_GOOD),
            (40, PerformanceLevel.AVERAGE),
            (39.99, PerformanceLevel.FAILED),
            (0, PerformanceLevel.FAILED),
        ],
    )
    def test_performance_level_when_average_given_then_first_matching_tier(self, average, level):
        assert performance_level_for(average) == level

    def test_round_half_up_when_binary_float_then_rounds_decimal_value(self):
        assert round_half_up(2.675) == 2.68
        assert round_half_up(1.005) == 1.01
        assert round_half_up(3.14159) == 3.14


class TestRanking:
    """Tests for competition ranking and display order."""

    def test_assign_ranks_when_tied_totals_then_competition_ranks(self):
        students = [student("a", 80), student("b", 90), student("c", 70), student("d", 90)]
        ranks = {s.id: rank for s, rank in assign_ranks(students)}
        assert ranks == {"b": 1, "d": 1, "a": 3, "c": 4}

    def test_assign_ranks_when_tied_then_keeps_input_order(self):
        students = [student("x", 50), student("y", 50)]
        assert [s.id for s, _ in assign_ranks(students)] == ["x", "y"]

    def test_assign_ranks_when_empty_then_empty(self):
        assert assign_ranks([]) == []

    def test_rank_changes_when_some_ranks_stored_then_returns_only_changed(self):
        students = [student("a", 90, rank=1), student("b", 80, rank=1), student("c", 70, rank=3)]
        assert rank_changes(students) == {"b": 2}

    def test_sort_for_display_when_mixed_then_imported_first_in_import_order(self):
        students = [
            student("manual-2", rank=2),
            student("imported-late", import_row_number=2001),
            student("manual-1", rank=1),
            student("imported-early", import_row_number=1000),
        ]
        assert [s.id for s in sort_for_display(students)] == [
            "imported-early",
            "imported-late",
            "manual-1",
            "manual-2",
        ]
