"""
Unit Tests for the Mark Evaluator

Thresholds, Pending readiness, the TA-only rule and partial updates.
"""

import pytest

from app.core.exceptions import ValidationError
from app.schemas.marks import ABSENT, MarkStatus, Numeric, SubjectMark, parse_score
from app.schemas.subject import SubjectConfig
from app.services.grading import apply_mark_update, evaluate_marks, pass_thresholds, reevaluate


def make_subject(max_ta: float = 40, max_ce: float = 60, **kwargs) -> SubjectConfig:
    return SubjectConfig(id="sub-1", name="Mathematics", max_ta=max_ta, max_ce=max_ce, **kwargs)


def n(value: float) -> Numeric:
    return Numeric(value=value)


class TestParseScore:
    """Tests for parsing wire values into scores."""

    @pytest.mark.parametrize("raw", ["A", "a", " AB ", "abs", "Absent"])
    def test_parse_score_when_absent_spelling_then_returns_absent(self, raw):
        assert parse_score(raw) == ABSENT

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_parse_score_when_blank_then_returns_none(self, raw):
        assert parse_score(raw) is None

    def test_parse_score_when_numeric_string_then_returns_numeric(self):
        assert parse_score(" 12.5 ") == n(12.5)
        assert parse_score(7) == n(7)

    @pytest.mark.parametrize("raw", ["seven", -1, "-3", True, float("nan"), float("inf")])
    def test_parse_score_when_invalid_then_raises_value_error(self, raw):
        with pytest.raises(ValueError):
            parse_score(raw)

    def test_subject_mark_when_dumped_then_uses_wire_form(self):
        mark = SubjectMark(ta=18, ce="A", total=18, status=MarkStatus.FAILED)
        assert mark.model_dump(mode="json") == {"ta": 18, "ce": "A", "total": 18, "status": "Failed"}

    def test_subject_mark_when_loaded_from_document_then_parses_components(self):
        mark = SubjectMark.model_validate({"ta": "12.5", "ce": None, "total": 12.5, "status": "Pending"})
        assert mark.ta == n(12.5)
        assert mark.ce is None


class TestPassThresholds:
    """Tests for minimum TA/CE marks."""

    def test_pass_thresholds_when_exact_then_returns_ratio(self):
        assert pass_thresholds(make_subject(40, 60)) == (16, 30)

    def test_pass_thresholds_when_fractional_then_rounds_up(self):
        assert pass_thresholds(make_subject(25, 15)) == (10, 8)
        assert pass_thresholds(make_subject(33, 21)) == (14, 11)


class TestEvaluateMarks:
    """Tests for total and status evaluation."""

    def test_evaluate_when_both_meet_thresholds_then_passed(self):
        mark = evaluate_marks(make_subject(), n(16), n(30))
        assert mark.total == 46
        assert mark.status == MarkStatus.PASSED

    def test_evaluate_when_ta_below_threshold_then_failed(self):
        mark = evaluate_marks(make_subject(), n(15), n(60))
        assert mark.status == MarkStatus.FAILED

    def test_evaluate_when_ce_below_threshold_then_failed(self):
        mark = evaluate_marks(make_subject(), n(40), n(29.5))
        assert mark.status == MarkStatus.FAILED

    def test_evaluate_when_ce_not_entered_then_pending(self):
        mark = evaluate_marks(make_subject(), n(20), None)
        assert mark.status == MarkStatus.PENDING
        assert mark.total == 20

    def test_evaluate_when_nothing_entered_then_pending_with_zero_total(self):
        mark = evaluate_marks(make_subject(), None, None)
        assert mark.status == MarkStatus.PENDING
        assert mark.total == 0

    def test_evaluate_when_absent_then_counts_as_entered_and_fails(self):
        mark = evaluate_marks(make_subject(), ABSENT, n(50))
        assert mark.status == MarkStatus.FAILED
        assert mark.total == 50

    def test_evaluate_when_absent_in_both_then_failed_with_zero_total(self):
        mark = evaluate_marks(make_subject(), ABSENT, ABSENT)
        assert mark.status == MarkStatus.FAILED
        assert mark.total == 0

    def test_evaluate_when_subject_has_no_ce_then_ce_not_required(self):
        subject = make_subject(max_ta=50, max_ce=0)
        assert evaluate_marks(subject, n(20), None).status == MarkStatus.PASSED

    def test_evaluate_when_same_inputs_then_same_result(self):
        subject = make_subject()
        assert evaluate_marks(subject, n(17), ABSENT) == evaluate_marks(subject, n(17), ABSENT)

    # ─────────────────────────────────────────────────────────────────────────
    # TA-only subjects
    # ─────────────────────────────────────────────────────────────────────────

    def test_evaluate_when_ta_only_and_ta_at_threshold_then_passed(self):
        subject = make_subject(max_ta=100, max_ce=0)
        assert evaluate_marks(subject, n(40), None).status == MarkStatus.PASSED

    def test_evaluate_when_ta_only_and_ta_below_threshold_then_failed(self):
        subject = make_subject(max_ta=100, max_ce=0)
        assert evaluate_marks(subject, n(39), None).status == MarkStatus.FAILED

    def test_evaluate_when_ta_only_then_ce_ignored_for_status(self):
        subject = make_subject(max_ta=100, max_ce=20)
        assert evaluate_marks(subject, n(60), ABSENT).status == MarkStatus.PASSED
        assert evaluate_marks(subject, n(60), None).status == MarkStatus.PASSED

    def test_evaluate_when_ta_only_and_ta_missing_then_pending(self):
        subject = make_subject(max_ta=100, max_ce=0)
        assert evaluate_marks(subject, None, None).status == MarkStatus.PENDING


class TestApplyMarkUpdate:
    """Tests for partial updates and range validation."""

    def test_apply_when_ta_only_update_then_keeps_stored_ce(self):
        subject = make_subject()
        existing = evaluate_marks(subject, n(10), n(35))
        mark = apply_mark_update(subject, existing, ta=n(20))
        assert mark.ce == n(35)
        assert mark.total == 55
        assert mark.status == MarkStatus.PASSED

    def test_apply_when_ce_only_update_on_new_mark_then_pending(self):
        mark = apply_mark_update(make_subject(), None, ce=n(40))
        assert mark.ta is None
        assert mark.status == MarkStatus.PENDING

    def test_apply_when_component_cleared_then_pending(self):
        subject = make_subject()
        existing = evaluate_marks(subject, n(20), n(35))
        mark = apply_mark_update(subject, existing, ce=None)
        assert mark.status == MarkStatus.PENDING
        assert mark.total == 20

    def test_apply_when_ta_exceeds_maximum_then_raises_validation_error(self):
        with pytest.raises(ValidationError) as exc_info:
            apply_mark_update(make_subject(), None, ta=n(41), ce=n(10))
        assert exc_info.value.details["column"] == "ta"

    def test_apply_when_absent_then_no_range_check(self):
        mark = apply_mark_update(make_subject(max_ta=0, max_ce=60), None, ta=ABSENT, ce=n(60))
        assert mark.status == MarkStatus.FAILED

    def test_reevaluate_when_maximum_lowered_then_status_recomputed(self):
        mark = evaluate_marks(make_subject(max_ta=40), n(16), n(30))
        assert reevaluate(make_subject(max_ta=50), mark).status == MarkStatus.FAILED
