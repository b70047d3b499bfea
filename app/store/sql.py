"""Document store backed by SQLAlchemy async sessions."""

from __future__ import annotations

import copy
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.exceptions import NotFoundError, StoreError
from app.models.exam import SupplementaryExam
from app.models.student import Student
from app.models.subject import Subject
from app.schemas.batch import Mutation, MutationKind
from app.store.base import MAX_BATCH_SIZE, STUDENTS, SUBJECTS, SUPPLEMENTARY_EXAMS, DocumentStore

logger = logging.getLogger(__name__)

MODELS: dict[str, type[Student] | type[Subject] | type[SupplementaryExam]] = {
    STUDENTS: Student,
    SUBJECTS: Subject,
    SUPPLEMENTARY_EXAMS: SupplementaryExam,
}

# Bookkeeping columns that are not part of the document
_HIDDEN_COLUMNS = {"created_at", "updated_at"}


class SqlDocumentStore(DocumentStore):
    """Maps each collection onto its ORM table."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        max_batch_size: int = MAX_BATCH_SIZE,
    ):
        self.session_factory = session_factory
        self.max_batch_size = max_batch_size

    def _model(self, collection: str):
        try:
            return MODELS[collection]
        except KeyError:
            raise ValueError(f"Unknown collection: {collection}")

    @staticmethod
    def _columns(model) -> list[str]:
        return [c.key for c in model.__mapper__.column_attrs if c.key not in _HIDDEN_COLUMNS]

    def _to_document(self, row) -> dict[str, Any]:
        return {key: copy.deepcopy(getattr(row, key)) for key in self._columns(type(row))}

    def _apply(self, row, data: dict[str, Any]) -> None:
        columns = set(self._columns(type(row)))
        for key, value in data.items():
            if key in columns and key != "id":
                setattr(row, key, copy.deepcopy(value))

    def _build(self, model, doc_id: str, data: dict[str, Any]):
        columns = set(self._columns(model))
        values = {k: copy.deepcopy(v) for k, v in data.items() if k in columns and k != "id"}
        return model(id=doc_id, **values)

    @asynccontextmanager
    async def _session(self, write: bool = False) -> AsyncIterator[AsyncSession]:
        try:
            async with self.session_factory() as session:
                if write:
                    async with session.begin():
                        yield session
                else:
                    yield session
        except SQLAlchemyError as e:
            logger.error(f"[STORE] Call failed: {e}")
            raise StoreError(f"Store call failed: {e}") from e

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        model = self._model(collection)
        async with self._session() as session:
            row = await session.get(model, doc_id)
            return self._to_document(row) if row else None

    async def list(self, collection: str) -> list[dict[str, Any]]:
        model = self._model(collection)
        async with self._session() as session:
            result = await session.execute(select(model).order_by(model.created_at, model.id))
            return [self._to_document(row) for row in result.scalars().all()]

    async def query(self, collection: str, field: str, value: Any) -> list[dict[str, Any]]:
        model = self._model(collection)
        if field not in self._columns(model):
            raise ValueError(f"Cannot query {collection} by {field}")
        async with self._session() as session:
            result = await session.execute(
                select(model).where(getattr(model, field) == value).order_by(model.created_at, model.id)
            )
            return [self._to_document(row) for row in result.scalars().all()]

    async def add(self, collection: str, data: dict[str, Any]) -> str:
        model = self._model(collection)
        doc_id = self.new_id()
        async with self._session(write=True) as session:
            session.add(self._build(model, doc_id, data))
        logger.debug(f"[STORE] Added {collection}/{doc_id}")
        return doc_id

    async def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        model = self._model(collection)
        async with self._session(write=True) as session:
            row = await session.get(model, doc_id)
            if row is None:
                raise NotFoundError(model.__name__, doc_id)
            self._apply(row, data)

    async def delete(self, collection: str, doc_id: str) -> None:
        model = self._model(collection)
        async with self._session(write=True) as session:
            row = await session.get(model, doc_id)
            if row is None:
                raise NotFoundError(model.__name__, doc_id)
            await session.delete(row)

    async def commit_batch(self, operations: list[Mutation]) -> None:
        if len(operations) > self.max_batch_size:
            raise ValueError(
                f"Batch of {len(operations)} operations exceeds the limit of {self.max_batch_size}"
            )
        async with self._session(write=True) as session:
            for op in operations:
                model = self._model(op.collection)
                if op.kind == MutationKind.INSERT:
                    session.add(self._build(model, op.doc_id or self.new_id(), op.data))
                    continue

                row = await session.get(model, op.doc_id)
                if row is None:
                    raise NotFoundError(model.__name__, op.doc_id)
                if op.kind == MutationKind.UPDATE:
                    self._apply(row, op.data)
                else:
                    await session.delete(row)
        logger.debug(f"[STORE] Committed batch of {len(operations)} operations")
