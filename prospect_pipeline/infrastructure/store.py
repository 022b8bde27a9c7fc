"""Document store contract and the in-memory implementation."""
from __future__ import annotations

import copy
import itertools
import threading
import uuid
from datetime import datetime
from typing import Any, Protocol, Sequence

from prospect_pipeline.domain import ArrayUnion, StoredDocument

MAX_BATCH_WRITES = 400


class StoreError(RuntimeError):
    """Raised when the backing document store fails a read or a write."""


class DocumentStore(Protocol):
    """Capabilities the services need from the document database."""

    def get_document(self, collection: str, doc_id: str) -> StoredDocument | None: ...

    def query_documents(
        self,
        collection: str,
        *,
        order_by: str | None = None,
        array_contains_any: tuple[str, Sequence[str]] | None = None,
        start_after: StoredDocument | None = None,
        limit: int | None = None,
    ) -> list[StoredDocument]: ...

    def create_document(self, collection: str, data: dict[str, Any]) -> str: ...

    def commit_merge_batch(self, collection: str, writes: Sequence[tuple[str, dict[str, Any]]]) -> None: ...


def _sort_value(value: Any) -> tuple[int, Any]:
    # mirrors the cross-type ordering used by Firestore
    if value is None:
        return (0, 0)
    if isinstance(value, bool):
        return (1, value)
    if isinstance(value, (int, float)):
        return (2, value)
    if isinstance(value, datetime):
        return (3, value.timestamp())
    if isinstance(value, str):
        return (4, value)
    if isinstance(value, bytes):
        return (5, value)
    return (9, repr(value))


def merge_document(target: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``patch`` into ``target`` and return ``target``."""

    for key, value in patch.items():
        if isinstance(value, ArrayUnion):
            existing = target.get(key)
            merged = list(existing) if isinstance(existing, list) else []
            for item in value.values:
                if item not in merged:
                    merged.append(item)
            target[key] = merged
        elif isinstance(value, dict):
            existing = target.get(key)
            nested = existing if isinstance(existing, dict) else {}
            target[key] = merge_document(nested, value)
        else:
            target[key] = copy.deepcopy(value)
    return target


class InMemoryDocumentStore:
    """Dictionary backed store for development and tests.

    Reproduces the store behaviours the services depend on: ordering with a
    document id tie-break, documents missing the order field being left out of
    ordered queries, ``startAfter`` cursors, all-or-nothing batches and
    merge writes with array unions.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._lock = threading.Lock()
        self._sequence = itertools.count()
        # insertion order doubles as the default query order
        self._created: dict[tuple[str, str], int] = {}

    # ------------------------------------------------------------------
    # internal helpers
    # ------------------------------------------------------------------
    def _collection(self, name: str) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(name, {})

    def _snapshot(self, collection: str, doc_id: str) -> StoredDocument:
        return StoredDocument(id=doc_id, data=copy.deepcopy(self._collection(collection)[doc_id]))

    def _touch(self, collection: str, doc_id: str) -> None:
        self._created.setdefault((collection, doc_id), next(self._sequence))

    # ------------------------------------------------------------------
    # DocumentStore
    # ------------------------------------------------------------------
    def get_document(self, collection: str, doc_id: str) -> StoredDocument | None:
        with self._lock:
            if doc_id not in self._collection(collection):
                return None
            return self._snapshot(collection, doc_id)

    def query_documents(
        self,
        collection: str,
        *,
        order_by: str | None = None,
        array_contains_any: tuple[str, Sequence[str]] | None = None,
        start_after: StoredDocument | None = None,
        limit: int | None = None,
    ) -> list[StoredDocument]:
        with self._lock:
            documents = self._collection(collection)
            candidates = list(documents)

            if array_contains_any is not None:
                field_name, values = array_contains_any
                wanted = set(values)
                candidates = [
                    doc_id
                    for doc_id in candidates
                    if isinstance(documents[doc_id].get(field_name), list)
                    and wanted.intersection(item for item in documents[doc_id][field_name] if isinstance(item, str))
                ]

            if order_by is not None:
                candidates = [doc_id for doc_id in candidates if order_by in documents[doc_id]]

                def key(doc_id: str) -> tuple[tuple[int, Any], str]:
                    return _sort_value(documents[doc_id][order_by]), doc_id

                candidates.sort(key=key)
                if start_after is not None:
                    boundary = (_sort_value(start_after.data.get(order_by)), start_after.id)
                    candidates = [doc_id for doc_id in candidates if key(doc_id) > boundary]
            else:
                candidates.sort(key=lambda doc_id: self._created[(collection, doc_id)])
                if start_after is not None and start_after.id in candidates:
                    candidates = candidates[candidates.index(start_after.id) + 1 :]

            if limit is not None:
                candidates = candidates[:limit]
            return [self._snapshot(collection, doc_id) for doc_id in candidates]

    def create_document(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex[:20]
        with self._lock:
            self._collection(collection)[doc_id] = copy.deepcopy(data)
            self._touch(collection, doc_id)
        return doc_id

    def commit_merge_batch(self, collection: str, writes: Sequence[tuple[str, dict[str, Any]]]) -> None:
        if len(writes) > MAX_BATCH_WRITES:
            raise StoreError(f"batch exceeds {MAX_BATCH_WRITES} writes")
        with self._lock:
            documents = self._collection(collection)
            staged: dict[str, dict[str, Any]] = {}
            for doc_id, patch in writes:
                base = staged.get(doc_id) or copy.deepcopy(documents.get(doc_id, {}))
                staged[doc_id] = merge_document(base, patch)
            for doc_id, data in staged.items():
                documents[doc_id] = data
                self._touch(collection, doc_id)

    # ------------------------------------------------------------------
    # testing helpers
    # ------------------------------------------------------------------
    def put(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Overwrite a document wholesale (seeding only)."""

        with self._lock:
            self._collection(collection)[doc_id] = copy.deepcopy(data)
            self._touch(collection, doc_id)

    def count(self, collection: str) -> int:
        with self._lock:
            return len(self._collection(collection))

    def reset(self) -> None:
        with self._lock:
            self._collections.clear()
            self._created.clear()
