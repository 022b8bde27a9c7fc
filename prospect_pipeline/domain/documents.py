"""Domain entities shared between the store adapters and the services."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class StoredDocument:
    """A document read from the store together with its identifier."""

    id: str
    data: dict[str, Any] = field(default_factory=dict)
    # adapter specific snapshot, needed to resume native cursors
    native: Any = field(default=None, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class ArrayUnion:
    """Merge sentinel: add ``values`` to an array field unless already present."""

    values: tuple[str, ...]
