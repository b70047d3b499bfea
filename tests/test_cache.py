"""
Tests for the records cache: TTL, invalidation and snapshot fallback.
"""

from app.schemas.student import StudentCreate
from app.services.cache import RecordsCache

EIGHT = "Eight standard"


async def add_student(engine, admission_no: str = "1001", name: str = "Amina"):
    return await engine.records.add_student(StudentCreate(admission_no=admission_no, name=name, class_name=EIGHT))


class TestRecordsCache:
    """Tests for RecordsCache."""

    async def test_read_when_within_ttl_then_store_not_called_again(self, memory_store, clock):
        cache = RecordsCache(memory_store, ttl_seconds=30, clock=clock)
        await cache.read()
        clock.advance(29)
        await cache.read()
        assert memory_store.list_calls == 2  # one per collection

    async def test_read_when_ttl_elapsed_then_exactly_one_refetch(self, memory_store, clock):
        cache = RecordsCache(memory_store, ttl_seconds=30, clock=clock)
        await cache.read()
        clock.advance(31)
        await cache.read()
        await cache.read()
        assert memory_store.list_calls == 4

    async def test_read_when_after_write_then_reflects_write(self, engine):
        assert await engine.cache.students() == []
        created = await add_student(engine)
        students = await engine.cache.students()
        assert [s.id for s in students] == [created.id]

    async def test_invalidate_when_called_then_next_read_refetches(self, memory_store, clock):
        cache = RecordsCache(memory_store, clock=clock)
        await cache.read()
        cache.invalidate()
        assert not cache.is_valid()
        await cache.read()
        assert memory_store.list_calls == 4

    async def test_read_when_store_fails_then_serves_stale_snapshot(self, engine, memory_store):
        created = await add_student(engine)
        await engine.cache.read()

        engine.cache.invalidate()
        memory_store.reads_fail = True
        entry = await engine.cache.read()

        assert entry.stale is True
        assert [s.id for s in entry.students] == [created.id]

    async def test_read_when_fallback_served_then_not_cached(self, engine, memory_store):
        await engine.cache.read()
        engine.cache.invalidate()
        memory_store.reads_fail = True
        await engine.cache.read()

        memory_store.reads_fail = False
        calls = memory_store.list_calls
        entry = await engine.cache.read()
        assert entry.stale is False
        assert memory_store.list_calls == calls + 2

    async def test_read_when_store_fails_without_snapshot_then_empty_and_stale(self, memory_store, clock):
        memory_store.reads_fail = True
        cache = RecordsCache(memory_store, clock=clock)
        entry = await cache.read()
        assert entry.stale is True
        assert entry.students == []
        assert entry.subjects == []

    async def test_read_when_refreshed_then_snapshot_persisted(self, engine, snapshots):
        created = await add_student(engine)
        await engine.cache.read()
        saved = await snapshots.get("students")
        assert [doc["id"] for doc in saved] == [created.id]
