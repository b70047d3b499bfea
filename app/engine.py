"""Composition root: builds the store, cache and services from settings."""

import logging
from collections.abc import Callable

from sqlalchemy.ext.asyncio import AsyncEngine

from app.core.config import Settings
from app.core.database import create_engine, create_session_factory, create_tables
from app.services.batch import BatchMutationOrchestrator
from app.services.cache import RecordsCache
from app.services.exams import SupplementaryExamService
from app.services.exporter import ExportService
from app.services.importer import ImportService
from app.services.records import RecordsService
from app.store.base import DocumentStore
from app.store.snapshot import SnapshotStore
from app.store.sql import SqlDocumentStore

logger = logging.getLogger(__name__)


class RecordsEngine:
    """Owns the single cache instance and wires every service to it."""

    def __init__(
        self,
        settings: Settings,
        store: DocumentStore,
        snapshots: SnapshotStore | None = None,
        clock: Callable[[], float] | None = None,
        clock_ms: Callable[[], int] | None = None,
        db_engine: AsyncEngine | None = None,
    ):
        self.settings = settings
        self.store = store
        self.snapshots = snapshots
        self.db_engine = db_engine

        cache_kwargs = {"clock": clock} if clock else {}
        self.cache = RecordsCache(store, snapshots, ttl_seconds=settings.CACHE_TTL_SECONDS, **cache_kwargs)
        self.orchestrator = BatchMutationOrchestrator(store, self.cache, batch_limit=settings.STORE_BATCH_LIMIT)
        self.records = RecordsService(store, self.cache, self.orchestrator, settings.known_classes)
        self.exams = SupplementaryExamService(store, self.records)
        self.imports = ImportService(self.records, settings.known_classes, clock_ms=clock_ms)
        self.exports = ExportService(self.cache, settings.known_classes)

    @classmethod
    async def from_settings(cls, settings: Settings) -> "RecordsEngine":
        """Engine backed by the SQL store at ``DATABASE_URL``."""
        db_engine = create_engine(settings.DATABASE_URL, echo=settings.DEBUG)
        if settings.AUTO_CREATE_TABLES:
            await create_tables(db_engine)
        store = SqlDocumentStore(create_session_factory(db_engine), max_batch_size=settings.STORE_BATCH_LIMIT)
        logger.info(f"[ENGINE] Store ready, batch limit {store.max_batch_size}, cache TTL {settings.CACHE_TTL_SECONDS}s")
        return cls(settings, store, SnapshotStore(settings.SNAPSHOT_DIR), db_engine=db_engine)

    async def close(self) -> None:
        if self.db_engine is not None:
            await self.db_engine.dispose()
