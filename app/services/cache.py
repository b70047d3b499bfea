"""Read-through cache over the students and subjects collections."""

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

from app.core.exceptions import StoreError
from app.schemas.common import BaseSchema
from app.schemas.student import StudentRecord
from app.schemas.subject import SubjectConfig
from app.services.ranking import sort_for_display
from app.store.base import STUDENTS, SUBJECTS, DocumentStore
from app.store.snapshot import SnapshotStore

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 30.0


class CacheEntry(BaseSchema):
    """Snapshot of both collections.

    ``stale`` entries come from the local fallback snapshot and are never
    cached; callers must not base writes on them.
    """

    students: list[StudentRecord] = []
    subjects: list[SubjectConfig] = []
    fetched_at: float = 0.0
    stale: bool = False

    def students_in_class(self, class_name: str) -> list[StudentRecord]:
        return [s for s in self.students if s.class_name == class_name]

    def subject_map(self) -> dict[str, SubjectConfig]:
        return {s.id: s for s in self.subjects}


class RecordsCache:
    """Process-wide cache owned by the composition root.

    Valid for ``ttl_seconds`` after the last successful refresh. Any
    successful write must call ``invalidate()``.
    """

    def __init__(
        self,
        store: DocumentStore,
        snapshots: SnapshotStore | None = None,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.snapshots = snapshots
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entry: CacheEntry | None = None
        self._generation = 0
        self._refresh_lock = asyncio.Lock()

    def is_valid(self) -> bool:
        if self._entry is None:
            return False
        return (self.clock() - self._entry.fetched_at) < self.ttl_seconds

    def invalidate(self) -> None:
        """Drop the snapshot so the next read refetches."""
        self._entry = None
        self._generation += 1
        logger.debug("[CACHE] Invalidated")

    async def read(self) -> CacheEntry:
        """Return the cached snapshot, refreshing it from the store when expired."""
        if self.is_valid():
            return self._entry

        async with self._refresh_lock:
            if self.is_valid():
                return self._entry

            generation = self._generation
            try:
                student_docs = await self.store.list(STUDENTS)
                subject_docs = await self.store.list(SUBJECTS)
            except StoreError as e:
                logger.warning(f"[CACHE] Store read failed, serving local snapshot: {e.message}")
                return await self._fallback()

            entry = self._build_entry(student_docs, subject_docs, stale=False)
            # A write that landed during the fetch makes this snapshot outdated
            if generation == self._generation:
                self._entry = entry
            logger.info(f"[CACHE] Refreshed: {len(entry.students)} students, {len(entry.subjects)} subjects")

            await self._persist(student_docs, subject_docs)
            return entry

    async def students(self) -> list[StudentRecord]:
        return (await self.read()).students

    async def subjects(self) -> list[SubjectConfig]:
        return (await self.read()).subjects

    async def students_in_class(self, class_name: str) -> list[StudentRecord]:
        return (await self.read()).students_in_class(class_name)

    def _build_entry(
        self,
        student_docs: list[dict[str, Any]],
        subject_docs: list[dict[str, Any]],
        stale: bool,
    ) -> CacheEntry:
        return CacheEntry(
            students=sort_for_display(StudentRecord.model_validate(doc) for doc in student_docs),
            subjects=[SubjectConfig.model_validate(doc) for doc in subject_docs],
            fetched_at=self.clock(),
            stale=stale,
        )

    async def _fallback(self) -> CacheEntry:
        if self.snapshots is None:
            return CacheEntry(fetched_at=self.clock(), stale=True)
        try:
            student_docs = await self.snapshots.get(STUDENTS) or []
            subject_docs = await self.snapshots.get(SUBJECTS) or []
        except (OSError, ValueError) as e:
            logger.error(f"[CACHE] Local snapshot unreadable: {e}")
            return CacheEntry(fetched_at=self.clock(), stale=True)
        return self._build_entry(student_docs, subject_docs, stale=True)

    async def _persist(self, student_docs: list[dict[str, Any]], subject_docs: list[dict[str, Any]]) -> None:
        if self.snapshots is None:
            return
        try:
            await self.snapshots.set(STUDENTS, student_docs)
            await self.snapshots.set(SUBJECTS, subject_docs)
        except (OSError, TypeError) as e:
            logger.warning(f"[CACHE] Could not save local snapshot: {e}")
