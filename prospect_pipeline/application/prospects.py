"""Prospect listing: adaptive cursor pagination and list tag sampling."""
from __future__ import annotations

import logging

from prospect_pipeline.core.filters import LIST_IDS_FIELD, FilterPlan
from prospect_pipeline.core.schema import ProspectPage, ProspectRecord
from prospect_pipeline.core.settings import Settings
from prospect_pipeline.core.validation import ListProspectsQuery
from prospect_pipeline.domain import StoredDocument
from prospect_pipeline.infrastructure import DocumentStore, StoreError

logger = logging.getLogger(__name__)

ORDER_FIELD = "name"
MAX_FETCH_SIZE = 200
MAX_ROUNDS = 10
LIST_OPTIONS_SAMPLE_SIZE = 500


class ProspectQueryService:
    """Read side of the prospect collection."""

    def __init__(self, store: DocumentStore, settings: Settings) -> None:
        self._store = store
        self._collection = settings.prospects_collection

    def _resolve_cursor(self, page_token: str | None) -> StoredDocument | None:
        """Look up the document a page token points at.

        A token that cannot be resolved restarts the scan from the beginning
        instead of failing the request.
        """

        if not page_token:
            return None
        try:
            document = self._store.get_document(self._collection, page_token)
        except StoreError as exc:
            logger.warning("Could not resolve page token %r, starting from the beginning: %s", page_token, exc)
            return None
        if document is None:
            logger.warning("Page token %r does not match a prospect, starting from the beginning", page_token)
        return document

    def list_prospects(self, query: ListProspectsQuery) -> ProspectPage:
        plan = FilterPlan.build(
            list_ids=query.list_ids,
            priorities=query.priorities,
            statuses=query.statuses,
            search=query.search,
        )
        page_size = query.page_size
        fetch_limit = min(page_size * plan.fetch_multiplier, MAX_FETCH_SIZE)
        pushdown = plan.pushdown_predicate()
        cursor = self._resolve_cursor(query.page_token)

        matches: list[ProspectRecord] = []
        last_match_id: str | None = None
        rounds = 0
        exhausted = False

        while len(matches) < page_size and rounds < MAX_ROUNDS:
            batch = self._store.query_documents(
                self._collection,
                order_by=ORDER_FIELD,
                array_contains_any=pushdown,
                start_after=cursor,
                limit=fetch_limit,
            )
            rounds += 1

            for document in batch:
                record = ProspectRecord.from_document(document)
                if not plan.matches(record):
                    continue
                matches.append(record)
                last_match_id = document.id
                if len(matches) == page_size:
                    break

            logger.debug(
                "Round %d fetched %d prospect(s), %d/%d matched (filters=%s)",
                rounds,
                len(batch),
                len(matches),
                page_size,
                {name: kind.value for name, kind in plan.classify().items()},
            )

            if len(matches) == page_size:
                break
            if len(batch) < fetch_limit:
                exhausted = True
                break
            cursor = batch[-1]

        if len(matches) < page_size and not exhausted:
            logger.info("Round budget of %d exhausted with %d/%d match(es)", MAX_ROUNDS, len(matches), page_size)

        next_page_token = last_match_id if len(matches) == page_size else None
        return ProspectPage(data=matches, next_page_token=next_page_token)

    def list_options(self) -> list[str]:
        """Distinct list tags found in a bounded sample of prospects."""

        documents = self._store.query_documents(self._collection, limit=LIST_OPTIONS_SAMPLE_SIZE)
        options: set[str] = set()
        for document in documents:
            values = document.data.get(LIST_IDS_FIELD)
            if not isinstance(values, list):
                continue
            options.update(value for value in values if isinstance(value, str) and value.strip())
        return sorted(options)
