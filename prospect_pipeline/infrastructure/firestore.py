"""Google Cloud Firestore implementation of :class:`DocumentStore`."""
from __future__ import annotations

import base64
import json
import logging
from typing import Any, Sequence

from google.api_core import exceptions as google_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from google.oauth2 import service_account

from prospect_pipeline.core.settings import Settings
from prospect_pipeline.domain import ArrayUnion, StoredDocument

from .store import MAX_BATCH_WRITES, StoreError

logger = logging.getLogger(__name__)


def _service_account_info(settings: Settings) -> dict[str, Any] | None:
    if settings.credentials_json:
        return json.loads(settings.credentials_json)
    if settings.credentials_b64:
        decoded = base64.b64decode(settings.credentials_b64).decode("utf-8")
        return json.loads(decoded)
    return None


def create_firestore_client(settings: Settings) -> firestore.Client:
    """Build a Firestore client from inline credentials or the ambient ones."""

    info = _service_account_info(settings)
    if info is None:
        logger.info("Using application default credentials for Firestore")
        return firestore.Client(project=settings.firestore_project)

    credentials = service_account.Credentials.from_service_account_info(info)
    project = settings.firestore_project or info.get("project_id")
    logger.info("Using inline service account credentials for Firestore project %s", project)
    return firestore.Client(project=project, credentials=credentials)


def _to_native(value: Any) -> Any:
    if isinstance(value, ArrayUnion):
        return firestore.ArrayUnion(list(value.values))
    if isinstance(value, dict):
        return {key: _to_native(item) for key, item in value.items()}
    return value


def _store_error(exc: google_exceptions.GoogleAPIError) -> StoreError:
    # RetryError and GoogleAPICallError both carry ``message``; other API errors may not
    message = getattr(exc, "message", None)
    return StoreError(message or str(exc) or type(exc).__name__)


def _wrap(snapshot: Any) -> StoredDocument:
    return StoredDocument(id=snapshot.id, data=snapshot.to_dict() or {}, native=snapshot)


class FirestoreDocumentStore:
    """Document store backed by a :class:`google.cloud.firestore.Client`."""

    def __init__(self, client: firestore.Client) -> None:
        self._client = client

    def get_document(self, collection: str, doc_id: str) -> StoredDocument | None:
        try:
            ref = self._client.collection(collection).document(doc_id)
        except ValueError:
            # not a valid document id (e.g. contains "/"), so no such document
            return None
        try:
            snapshot = ref.get()
        except google_exceptions.GoogleAPIError as exc:
            raise _store_error(exc) from exc
        if not snapshot.exists:
            return None
        return _wrap(snapshot)

    def query_documents(
        self,
        collection: str,
        *,
        order_by: str | None = None,
        array_contains_any: tuple[str, Sequence[str]] | None = None,
        start_after: StoredDocument | None = None,
        limit: int | None = None,
    ) -> list[StoredDocument]:
        query: Any = self._client.collection(collection)
        if array_contains_any is not None:
            field_name, values = array_contains_any
            query = query.where(filter=FieldFilter(field_name, "array_contains_any", list(values)))
        if order_by is not None:
            query = query.order_by(order_by)
        if start_after is not None:
            # a native snapshot keeps the document id tie-break in the cursor
            query = query.start_after(start_after.native if start_after.native is not None else start_after.data)
        if limit is not None:
            query = query.limit(limit)
        try:
            return [_wrap(snapshot) for snapshot in query.get()]
        except google_exceptions.GoogleAPIError as exc:
            raise _store_error(exc) from exc

    def create_document(self, collection: str, data: dict[str, Any]) -> str:
        ref = self._client.collection(collection).document()
        try:
            ref.set(_to_native(data))
        except google_exceptions.GoogleAPIError as exc:
            raise _store_error(exc) from exc
        return ref.id

    def commit_merge_batch(self, collection: str, writes: Sequence[tuple[str, dict[str, Any]]]) -> None:
        if len(writes) > MAX_BATCH_WRITES:
            raise StoreError(f"batch exceeds {MAX_BATCH_WRITES} writes")
        batch = self._client.batch()
        target = self._client.collection(collection)
        try:
            for doc_id, patch in writes:
                batch.set(target.document(doc_id), _to_native(patch), merge=True)
            batch.commit()
        except ValueError as exc:
            raise StoreError(f"invalid write: {exc}") from exc
        except google_exceptions.GoogleAPIError as exc:
            raise _store_error(exc) from exc

    def close(self) -> None:  # pragma: no cover - best effort cleanup
        self._client.close()
