"""Domain layer definitions."""

from .documents import ArrayUnion, StoredDocument

__all__ = [
    "ArrayUnion",
    "StoredDocument",
]
