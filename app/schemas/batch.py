"""Batch mutation schemas."""

import enum
from typing import Any

from pydantic import Field

from app.schemas.common import BaseSchema


class MutationKind(str, enum.Enum):
    """Kind of store write."""

    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class Mutation(BaseSchema):
    """One record write inside a batch.

    ``class_name`` names the class whose ranking the write can affect.
    """

    kind: MutationKind
    collection: str
    doc_id: str | None = None
    data: dict[str, Any] = {}
    class_name: str | None = None


class ItemError(BaseSchema):
    """Per-item failure, keyed by the item's position in the submitted list."""

    position: int
    message: str
    doc_id: str | None = None


class ChunkStatus(str, enum.Enum):
    """Commit state of one chunk."""

    PENDING = "pending"
    COMMITTED = "committed"
    FAILED = "failed"


class ChunkResult(BaseSchema):
    """One store-sized chunk of a batch and its commit outcome."""

    index: int
    positions: list[int]
    status: ChunkStatus = ChunkStatus.PENDING
    error: str | None = None
    operations: list[Mutation] = Field(default=[], exclude=True)


class BatchResult(BaseSchema):
    """Outcome of a batch run.

    Doubles as the saga log: ``chunks`` are in commit order and
    ``resume_point`` is the first chunk that is not committed.
    """

    total_items: int = 0
    success_count: int = 0
    errors: list[ItemError] = []
    chunks: list[ChunkResult] = []
    resume_point: int | None = None
    affected_classes: list[str] = []
    affects_totals: bool = True
    ranking_failures: list[str] = []

    @property
    def failed_count(self) -> int:
        return len(self.errors)

    @property
    def is_complete(self) -> bool:
        return self.resume_point is None

    @property
    def message(self) -> str:
        if not self.errors and self.is_complete:
            return f"Successfully saved {self.success_count} records."
        return (
            f"Saved {self.success_count} of {self.total_items} records, "
            f"{self.failed_count} failed."
        )


class JobResult(BaseSchema):
    """Response for batch maintenance jobs."""

    success_count: int
    failed_count: int
    errors: list[ItemError] = []
    resume_point: int | None = None
    ranking_failures: list[str] = []
    message: str

    @classmethod
    def from_batch(cls, result: BatchResult) -> "JobResult":
        return cls(
            success_count=result.success_count,
            failed_count=result.failed_count,
            errors=result.errors,
            resume_point=result.resume_point,
            ranking_failures=result.ranking_failures,
            message=result.message,
        )
