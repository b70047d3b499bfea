"""Mark evaluator: totals and pass/fail status for one subject."""

import math
from decimal import Decimal
from typing import Any

from app.core.exceptions import ValidationError
from app.schemas.marks import MarkStatus, Numeric, Score, SubjectMark, is_absent, score_value
from app.schemas.subject import SubjectConfig

TA_PASS_RATIO = Decimal("0.4")
CE_PASS_RATIO = Decimal("0.5")

# Sentinel for "component not part of this update"
UNCHANGED: Any = object()


def pass_thresholds(subject: SubjectConfig) -> tuple[int, int]:
    """Minimum TA and CE marks needed to pass the subject."""
    min_ta = math.ceil(Decimal(str(subject.max_ta)) * TA_PASS_RATIO)
    min_ce = math.ceil(Decimal(str(subject.max_ce)) * CE_PASS_RATIO)
    return min_ta, min_ce


def evaluate_marks(subject: SubjectConfig, ta: Score | None, ce: Score | None) -> SubjectMark:
    """Evaluate a TA/CE pair against the subject's thresholds.

    A component that has not been entered is ``None``; ``Absent`` counts as
    entered. Status stays Pending until every required component is entered.
    For subjects marked entirely on TA (max TA of 100) CE never affects the
    outcome.
    """
    ta_only = subject.is_ta_only
    ta_ready = subject.max_ta == 0 or ta is not None
    ce_ready = ta_only or subject.max_ce == 0 or ce is not None

    total = score_value(ta) + score_value(ce)

    if not (ta_ready and ce_ready):
        return SubjectMark(ta=ta, ce=ce, total=total, status=MarkStatus.PENDING)

    min_ta, min_ce = pass_thresholds(subject)
    passed_ta = not is_absent(ta) and score_value(ta) >= min_ta
    passed_ce = ta_only or subject.max_ce == 0 or (not is_absent(ce) and score_value(ce) >= min_ce)

    status = MarkStatus.PASSED if passed_ta and passed_ce else MarkStatus.FAILED
    return SubjectMark(ta=ta, ce=ce, total=total, status=status)


def validate_score(subject: SubjectConfig, component: str, score: Score | None) -> None:
    """Reject numeric scores above the component's maximum."""
    if not isinstance(score, Numeric):
        return
    maximum = subject.max_ta if component == "ta" else subject.max_ce
    if score.value > maximum:
        raise ValidationError(
            f"{component.upper()} marks ({score.value:g}) exceed maximum ({maximum:g}) for {subject.name}",
            details={"column": component, "value": str(score.value), "max": str(maximum)},
        )


def apply_mark_update(
    subject: SubjectConfig,
    existing: SubjectMark | None,
    ta: Score | None = UNCHANGED,
    ce: Score | None = UNCHANGED,
) -> SubjectMark:
    """Update one or both components and re-run the full evaluation.

    A component left as ``UNCHANGED`` keeps its stored value.
    """
    if ta is UNCHANGED:
        ta = existing.ta if existing else None
    if ce is UNCHANGED:
        ce = existing.ce if existing else None

    validate_score(subject, "ta", ta)
    validate_score(subject, "ce", ce)
    return evaluate_marks(subject, ta, ce)


def reevaluate(subject: SubjectConfig, mark: SubjectMark) -> SubjectMark:
    """Recompute total and status of a stored mark under the current subject config."""
    return evaluate_marks(subject, mark.ta, mark.ce)
