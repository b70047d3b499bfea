"""Shared fixtures: an in-memory document store, a fake clock and engines over both stores."""

from __future__ import annotations

import copy
from typing import Any

import pytest

from app.core.config import Settings
from app.core.database import create_engine, create_session_factory, create_tables
from app.core.exceptions import NotFoundError, StoreError
from app.engine import RecordsEngine
from app.schemas.batch import Mutation, MutationKind
from app.schemas.subject import SubjectCreate, SubjectType
from app.store.base import COLLECTIONS, MAX_BATCH_SIZE, DocumentStore
from app.store.snapshot import SnapshotStore
from app.store.sql import SqlDocumentStore

EIGHT = "Eight standard"
NINE = "Nine standard"


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class MemoryStore(DocumentStore):
    """In-memory document store that counts calls and fails on demand."""

    def __init__(self, max_batch_size: int = MAX_BATCH_SIZE):
        self.max_batch_size = max_batch_size
        self.collections: dict[str, dict[str, dict[str, Any]]] = {name: {} for name in COLLECTIONS}
        self.list_calls = 0
        self.commit_sizes: list[int] = []
        self.failing_commits: set[int] = set()  # 1-based commit_batch call numbers
        self.reads_fail = False

    def _check_reads(self) -> None:
        if self.reads_fail:
            raise StoreError("Store unreachable")

    def documents(self, collection: str) -> list[dict[str, Any]]:
        return list(self.collections[collection].values())

    async def get(self, collection, doc_id):
        self._check_reads()
        doc = self.collections[collection].get(doc_id)
        return copy.deepcopy(doc) if doc else None

    async def list(self, collection):
        self._check_reads()
        self.list_calls += 1
        return copy.deepcopy(self.documents(collection))

    async def query(self, collection, field, value):
        self._check_reads()
        return [copy.deepcopy(d) for d in self.documents(collection) if d.get(field) == value]

    async def add(self, collection, data):
        doc_id = self.new_id()
        self.collections[collection][doc_id] = {**copy.deepcopy(data), "id": doc_id}
        return doc_id

    async def update(self, collection, doc_id, data):
        if doc_id not in self.collections[collection]:
            raise NotFoundError(collection, doc_id)
        self.collections[collection][doc_id].update(copy.deepcopy(data))

    async def delete(self, collection, doc_id):
        if doc_id not in self.collections[collection]:
            raise NotFoundError(collection, doc_id)
        del self.collections[collection][doc_id]

    async def commit_batch(self, operations: list[Mutation]) -> None:
        self.commit_sizes.append(len(operations))
        if len(operations) > self.max_batch_size:
            raise ValueError("Batch too large")
        if len(self.commit_sizes) in self.failing_commits:
            raise StoreError(f"Commit {len(self.commit_sizes)} rejected")

        staged = copy.deepcopy(self.collections)
        for op in operations:
            docs = staged[op.collection]
            if op.kind == MutationKind.INSERT:
                docs[op.doc_id] = {**copy.deepcopy(op.data), "id": op.doc_id}
            elif op.doc_id not in docs:
                raise NotFoundError(op.collection, op.doc_id)
            elif op.kind == MutationKind.UPDATE:
                docs[op.doc_id].update(copy.deepcopy(op.data))
            else:
                del docs[op.doc_id]
        self.collections = staged


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'records.db'}",
        SNAPSHOT_DIR=tmp_path / "snapshots",
        CUSTOM_CLASSES=["Plus one"],
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def snapshots(tmp_path) -> SnapshotStore:
    return SnapshotStore(tmp_path / "snapshots")


@pytest.fixture
def import_clock():
    """Millisecond clock for import row numbers; set ``.now`` to move it."""
    return FakeClock(start=1_700_000_000_000)


@pytest.fixture
def engine(settings, memory_store, snapshots, clock, import_clock) -> RecordsEngine:
    return RecordsEngine(
        settings,
        memory_store,
        snapshots,
        clock=clock,
        clock_ms=lambda: int(import_clock()),
    )


@pytest.fixture
async def sql_store(settings):
    db_engine = create_engine(settings.DATABASE_URL)
    await create_tables(db_engine)
    yield SqlDocumentStore(create_session_factory(db_engine), max_batch_size=settings.STORE_BATCH_LIMIT)
    await db_engine.dispose()


@pytest.fixture
def subject_factory(engine):
    """Create subjects through the records service."""

    async def create(
        name: str = "Mathematics",
        max_ta: float = 40,
        max_ce: float = 60,
        elective: bool = False,
        classes: tuple[str, ...] = (EIGHT,),
        faculty_name: str | None = None,
    ):
        return await engine.records.add_subject(
            SubjectCreate(
                name=name,
                max_ta=max_ta,
                max_ce=max_ce,
                subject_type=SubjectType.ELECTIVE if elective else SubjectType.GENERAL,
                target_classes=list(classes),
                faculty_name=faculty_name,
            )
        )

    return create
