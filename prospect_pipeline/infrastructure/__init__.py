"""Infrastructure layer exports."""

from .store import DocumentStore, InMemoryDocumentStore, StoreError, merge_document

__all__ = [
    "DocumentStore",
    "InMemoryDocumentStore",
    "StoreError",
    "merge_document",
]
