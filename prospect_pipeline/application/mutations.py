"""Batch status mutations: enrichment queueing and outreach tagging."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Sequence

from prospect_pipeline.core.chunking import chunked
from prospect_pipeline.core.filters import LIST_IDS_FIELD
from prospect_pipeline.core.schema import EnrichmentRun
from prospect_pipeline.core.settings import Settings
from prospect_pipeline.core.validation import EnqueueEnrichmentRequest, TagOutreachReadyRequest
from prospect_pipeline.domain import ArrayUnion
from prospect_pipeline.infrastructure import DocumentStore, StoreError

logger = logging.getLogger(__name__)

BATCH_CHUNK_SIZE = 400


class BatchCommitError(RuntimeError):
    """Raised when a chunk commit fails part way through a mutation.

    Chunks committed before the failure stay applied; ``affected`` counts the
    ids in those chunks.
    """

    def __init__(self, message: str, *, committed_chunks: int, affected: int) -> None:
        super().__init__(message)
        self.committed_chunks = committed_chunks
        self.affected = affected


@dataclass(slots=True)
class MutationResult:
    affected: int
    chunks_committed: int


@dataclass(slots=True)
class EnqueueResult:
    run_id: str
    queued: int
    list_tag: str | None


@dataclass(slots=True)
class TagResult:
    updated: int
    list_tag: str


def apply_tag_update(
    store: DocumentStore,
    collection: str,
    prospect_ids: Sequence[str],
    patch: dict[str, Any],
    list_tag: str | None = None,
    *,
    chunk_size: int = BATCH_CHUNK_SIZE,
) -> MutationResult:
    """Merge ``patch`` into every prospect in ``prospect_ids``.

    Each chunk is committed as one atomic batch before the next is built.
    Writes are create-or-merge, so ``affected`` counts ids attempted rather
    than documents that already existed.
    """

    document = dict(patch)
    if list_tag:
        document[LIST_IDS_FIELD] = ArrayUnion((list_tag,))

    affected = 0
    committed = 0
    for group in chunked(prospect_ids, chunk_size):
        writes = [(prospect_id, document) for prospect_id in group]
        try:
            store.commit_merge_batch(collection, writes)
        except StoreError as exc:
            logger.error(
                "Batch commit failed after %d committed chunk(s) (%d prospects): %s",
                committed,
                affected,
                exc,
            )
            raise BatchCommitError(str(exc), committed_chunks=committed, affected=affected) from exc
        affected += len(group)
        committed += 1
    return MutationResult(affected=affected, chunks_committed=committed)


class ProspectMutationService:
    """Coordinates the enqueue-enrichment and tag-outreach-ready use cases."""

    def __init__(
        self,
        store: DocumentStore,
        settings: Settings,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._settings = settings
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def enqueue_enrichment(self, request: EnqueueEnrichmentRequest) -> EnqueueResult:
        list_tag = request.list_tag or self._settings.default_queue_list_tag
        now = self._clock()

        run = EnrichmentRun(
            created_at=now,
            prospect_count=len(request.prospect_ids),
            list_tag=list_tag,
            metadata=request.metadata,
        )
        run_id = self._store.create_document(self._settings.runs_collection, run.to_document())
        logger.info("Created enrichment run %s for %d prospect(s)", run_id, run.prospect_count)

        patch = {
            "enrichment": {
                "status": "queued",
                "queue_run_id": run_id,
                "queue_timestamp": now,
                "updated_at": now,
            }
        }
        result = apply_tag_update(
            self._store,
            self._settings.prospects_collection,
            request.prospect_ids,
            patch,
            list_tag,
        )
        return EnqueueResult(run_id=run_id, queued=result.affected, list_tag=list_tag)

    def tag_outreach_ready(self, request: TagOutreachReadyRequest) -> TagResult:
        list_tag = request.list_tag or self._settings.outreach_ready_list_tag
        now = self._clock()
        patch = {
            "outreach": {
                "ready": True,
                "ready_at": now,
                "updated_at": now,
            }
        }
        result = apply_tag_update(
            self._store,
            self._settings.prospects_collection,
            request.prospect_ids,
            patch,
            list_tag,
        )
        return TagResult(updated=result.affected, list_tag=list_tag)
