"""Abstract document store."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from app.models.base import generate_document_id
from app.schemas.batch import Mutation

STUDENTS = "students"
SUBJECTS = "subjects"
SUPPLEMENTARY_EXAMS = "supplementary_exams"
COLLECTIONS = (STUDENTS, SUBJECTS, SUPPLEMENTARY_EXAMS)

# Maximum number of operations the store accepts in one batched write
MAX_BATCH_SIZE = 500


class DocumentStore(ABC):
    """Async CRUD, equality query and batched write over named collections.

    Documents are plain dicts carrying their ``id``. Transport failures are
    raised as ``StoreError``.
    """

    max_batch_size: int = MAX_BATCH_SIZE

    def new_id(self) -> str:
        """Issue a document id ahead of a batched insert."""
        return generate_document_id()

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Fetch one document, or None if it does not exist."""

    @abstractmethod
    async def list(self, collection: str) -> list[dict[str, Any]]:
        """Fetch every document of a collection in store order."""

    @abstractmethod
    async def query(self, collection: str, field: str, value: Any) -> list[dict[str, Any]]:
        """Fetch documents whose ``field`` equals ``value``."""

    @abstractmethod
    async def add(self, collection: str, data: dict[str, Any]) -> str:
        """Insert a document and return its new id."""

    @abstractmethod
    async def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Merge ``data`` into an existing document. Raises NotFoundError if missing."""

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> None:
        """Delete a document. Raises NotFoundError if missing."""

    @abstractmethod
    async def commit_batch(self, operations: list[Mutation]) -> None:
        """Apply all operations atomically, or none of them."""
