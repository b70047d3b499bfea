"""Mark schemas: the Score variant and per-subject marks."""

import enum
import math
from typing import Any, Literal

from pydantic import Field, field_serializer, field_validator

from app.schemas.common import BaseSchema

# Wire form of an absent component inside stored documents and spreadsheets
ABSENT_MARKER = "A"
_ABSENT_SPELLINGS = {"A", "AB", "ABS", "ABSENT"}


class MarkStatus(str, enum.Enum):
    """Pass/fail status of a subject mark."""

    PENDING = "Pending"
    PASSED = "Passed"
    FAILED = "Failed"


class Numeric(BaseSchema):
    """A numeric score."""

    kind: Literal["numeric"] = "numeric"
    value: float = Field(..., ge=0)


class Absent(BaseSchema):
    """The component was not attempted. Distinct from zero."""

    kind: Literal["absent"] = "absent"


Score = Numeric | Absent

ABSENT = Absent()


def parse_score(raw: Any) -> Score | None:
    """Parse a wire value into a Score.

    ``None`` and blank strings mean the component was not entered and return
    ``None``. Raises ValueError for anything that is neither a number nor the
    absent marker.
    """
    if raw is None:
        return None
    if isinstance(raw, (Numeric, Absent)):
        return raw
    if isinstance(raw, dict):
        return Absent() if raw.get("kind") == "absent" else Numeric.model_validate(raw)
    if isinstance(raw, bool):
        raise ValueError(f"Invalid mark value: {raw!r}")
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return None
        if text.upper() in _ABSENT_SPELLINGS:
            return ABSENT
        try:
            number = float(text)
        except ValueError:
            raise ValueError(f"Invalid mark value: {raw!r}")
    elif isinstance(raw, (int, float)):
        number = float(raw)
    else:
        raise ValueError(f"Invalid mark value: {raw!r}")

    if math.isnan(number) or math.isinf(number):
        raise ValueError(f"Invalid mark value: {raw!r}")
    if number < 0:
        raise ValueError(f"Mark cannot be negative: {raw!r}")
    return Numeric(value=number)


def score_value(score: Score | None) -> float:
    """Numeric contribution of a score. Absent and missing count as 0."""
    if isinstance(score, Numeric):
        return score.value
    return 0.0


def is_absent(score: Score | None) -> bool:
    return isinstance(score, Absent)


def score_to_wire(score: Score | None) -> float | int | str | None:
    """Document form of a score: a number, the absent marker, or None."""
    if score is None:
        return None
    if isinstance(score, Absent):
        return ABSENT_MARKER
    return int(score.value) if score.value.is_integer() else score.value


def number_to_wire(value: float) -> float | int:
    return int(value) if float(value).is_integer() else value


class SubjectMark(BaseSchema):
    """Marks of one student in one subject. Built by the mark evaluator."""

    ta: Score | None = None
    ce: Score | None = None
    total: float = 0
    status: MarkStatus = MarkStatus.PENDING

    @field_validator("ta", "ce", mode="before")
    @classmethod
    def parse_component(cls, v: Any) -> Score | None:
        return parse_score(v)

    @field_serializer("ta", "ce")
    def serialize_component(self, score: Score | None) -> float | int | str | None:
        return score_to_wire(score)

    @field_serializer("total")
    def serialize_total(self, total: float) -> float | int:
        return number_to_wire(total)


class MarksInput(BaseSchema):
    """Mark entry request. Values are numbers, "A" for absent, or null."""

    ta: float | str | None = None
    ce: float | str | None = None
