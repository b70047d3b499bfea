"""Batch mutation orchestrator: chunked commits with per-item error reporting."""

import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence

from app.core.exceptions import NotFoundError, StoreError, ValidationError
from app.schemas.batch import (
    BatchResult,
    ChunkResult,
    ChunkStatus,
    ItemError,
    Mutation,
    MutationKind,
)
from app.services.cache import RecordsCache
from app.services.ranking import rank_changes
from app.store.base import STUDENTS, DocumentStore

logger = logging.getLogger(__name__)

# Raises ValidationError to reject a single item
Validator = Callable[[Mutation], Awaitable[None]]


class BatchMutationOrchestrator:
    """Splits a logical bulk write into store-sized chunks.

    Chunks are committed one after another; each is atomic on its own and a
    failed chunk does not stop the ones after it. The returned BatchResult
    records every chunk's outcome so a partial failure can be resumed.
    """

    def __init__(
        self,
        store: DocumentStore,
        cache: RecordsCache,
        batch_limit: int | None = None,
    ):
        self.store = store
        self.cache = cache
        limit = batch_limit or store.max_batch_size
        self.batch_limit = min(limit, store.max_batch_size)

    async def run(
        self,
        mutations: Sequence[Mutation],
        validator: Validator | None = None,
        affects_totals: bool = True,
    ) -> BatchResult:
        """Validate, chunk and commit ``mutations``.

        Errors are keyed by each item's position in ``mutations``. When totals
        may have changed, classes touched by committed items are re-ranked.
        """
        result = BatchResult(total_items=len(mutations), affects_totals=affects_totals)

        accepted: list[tuple[int, Mutation]] = []
        for position, mutation in enumerate(mutations):
            try:
                if validator is not None:
                    await validator(mutation)
                accepted.append((position, self._prepare(mutation)))
            except ValidationError as e:
                logger.warning(f"[BATCH] Item {position} rejected - {e.message}")
                result.errors.append(ItemError(position=position, message=e.message, doc_id=mutation.doc_id))

        result.chunks = self._chunk(accepted)
        logger.info(
            f"[BATCH] {len(accepted)} of {len(mutations)} items accepted, "
            f"{len(result.chunks)} chunks of at most {self.batch_limit}"
        )
        await self._commit_pending(result)
        return result

    async def resume(self, result: BatchResult) -> BatchResult:
        """Retry the chunks of an earlier run that did not commit."""
        if result.is_complete:
            return result
        logger.info(f"[BATCH] Resuming from chunk {result.resume_point}")
        await self._commit_pending(result)
        return result

    def _prepare(self, mutation: Mutation) -> Mutation:
        if mutation.doc_id:
            return mutation
        if mutation.kind == MutationKind.INSERT:
            return mutation.model_copy(update={"doc_id": self.store.new_id()})
        raise ValidationError(f"{mutation.kind.value.capitalize()} requires a document id")

    def _chunk(self, accepted: list[tuple[int, Mutation]]) -> list[ChunkResult]:
        chunks = []
        for index, start in enumerate(range(0, len(accepted), self.batch_limit)):
            items = accepted[start:start + self.batch_limit]
            chunks.append(
                ChunkResult(
                    index=index,
                    positions=[position for position, _ in items],
                    operations=[mutation for _, mutation in items],
                )
            )
        return chunks

    async def _commit_pending(self, result: BatchResult) -> None:
        committed_classes: set[str] = set()

        for chunk in result.chunks:
            if chunk.status == ChunkStatus.COMMITTED:
                continue

            if chunk.status == ChunkStatus.FAILED:
                retried = set(chunk.positions)
                result.errors = [e for e in result.errors if e.position not in retried]

            try:
                await self.store.commit_batch(chunk.operations)
            except (StoreError, NotFoundError) as e:
                chunk.status = ChunkStatus.FAILED
                chunk.error = e.message
                logger.error(f"[BATCH] Chunk {chunk.index + 1}/{len(result.chunks)} failed - {e.message}")
                result.errors.extend(
                    ItemError(
                        position=position,
                        message=f"Chunk {chunk.index + 1} not committed: {e.message}",
                        doc_id=op.doc_id,
                    )
                    for position, op in zip(chunk.positions, chunk.operations)
                )
                continue

            chunk.status = ChunkStatus.COMMITTED
            chunk.error = None
            result.success_count += len(chunk.operations)
            committed_classes.update(op.class_name for op in chunk.operations if op.class_name)
            logger.debug(f"[BATCH] Chunk {chunk.index + 1}/{len(result.chunks)} committed ({len(chunk.operations)} items)")

        result.errors.sort(key=lambda e: e.position)
        result.resume_point = next(
            (c.index for c in result.chunks if c.status != ChunkStatus.COMMITTED),
            None,
        )

        if any(c.status == ChunkStatus.COMMITTED for c in result.chunks):
            self.cache.invalidate()

        # Every class written in this pass is re-ranked, including ones already
        # ranked after an earlier pass of the same saga
        if committed_classes:
            result.affected_classes = sorted(set(result.affected_classes) | committed_classes)
            if result.affects_totals:
                result.ranking_failures.extend(await self.rerank(sorted(committed_classes)))

        logger.info(
            f"[BATCH] Done - {result.success_count} committed, {result.failed_count} failed, "
            f"resume point: {result.resume_point}"
        )

    async def rerank(self, class_names: Iterable[str]) -> list[str]:
        """Recompute competition ranks for each class and write the ones that changed.

        Returns one message per class that could not be ranked.
        """
        names = list(dict.fromkeys(c for c in class_names if c))
        if not names:
            return []

        entry = await self.cache.read()
        if entry.stale:
            logger.error(f"[RANKING] Store unavailable, ranks not recomputed for {names}")
            return [f"{name}: store unavailable, ranks not recomputed" for name in names]

        failures = []
        for class_name in names:
            changes = rank_changes(entry.students_in_class(class_name))
            if not changes:
                continue

            operations = [
                Mutation(kind=MutationKind.UPDATE, collection=STUDENTS, doc_id=student_id, data={"rank": rank})
                for student_id, rank in changes.items()
            ]
            try:
                for start in range(0, len(operations), self.batch_limit):
                    await self.store.commit_batch(operations[start:start + self.batch_limit])
                logger.info(f"[RANKING] {class_name}: {len(changes)} ranks updated")
            except (StoreError, NotFoundError) as e:
                logger.error(f"[RANKING] {class_name}: {e.message}")
                failures.append(f"{class_name}: {e.message}")
            finally:
                self.cache.invalidate()

        return failures
