"""Filter planning for prospect listings.

List tag membership is handed to the store as an ``array-contains-any``
predicate.  Priority, enrichment status and free-text search are evaluated in
memory against fetched records: combining them in a store query would need
composite indexes that are not guaranteed to exist, and the store cannot do
substring matching at all.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from prospect_pipeline.core.schema import SEARCHABLE_FIELDS, ProspectRecord

LIST_IDS_FIELD = "list_ids"


class FilterKind(str, Enum):
    PUSHDOWN = "pushdown"
    RESIDUAL = "residual"


@dataclass(frozen=True, slots=True)
class FilterPlan:
    list_ids: tuple[str, ...] = ()
    priorities: frozenset[str] = frozenset()
    statuses: frozenset[str] = frozenset()
    search: str = ""

    @classmethod
    def build(
        cls,
        *,
        list_ids: Iterable[str] = (),
        priorities: Iterable[str] = (),
        statuses: Iterable[str] = (),
        search: str | None = "",
    ) -> "FilterPlan":
        return cls(
            list_ids=tuple(dict.fromkeys(list_ids)),
            priorities=frozenset(priorities),
            statuses=frozenset(statuses),
            search=(search or "").strip().lower(),
        )

    def classify(self) -> dict[str, FilterKind]:
        """Return the kind of every active filter dimension."""

        kinds: dict[str, FilterKind] = {}
        if self.list_ids:
            kinds["listIds"] = FilterKind.PUSHDOWN
        if self.priorities:
            kinds["priorities"] = FilterKind.RESIDUAL
        if self.statuses:
            kinds["statuses"] = FilterKind.RESIDUAL
        if self.search:
            kinds["search"] = FilterKind.RESIDUAL
        return kinds

    @property
    def has_pushdown(self) -> bool:
        return bool(self.list_ids)

    @property
    def has_residual(self) -> bool:
        return bool(self.priorities or self.statuses or self.search)

    @property
    def fetch_multiplier(self) -> int:
        if self.has_residual:
            return 5
        if self.has_pushdown:
            return 3
        return 2

    def pushdown_predicate(self) -> tuple[str, list[str]] | None:
        if not self.list_ids:
            return None
        return LIST_IDS_FIELD, list(self.list_ids)

    def matches(self, record: ProspectRecord) -> bool:
        """Evaluate the residual predicates against ``record``."""

        if self.priorities and (record.priority_bucket or "") not in self.priorities:
            return False
        if self.statuses and (record.enrichment_status or "") not in self.statuses:
            return False
        if self.search:
            haystack = ((getattr(record, key) or "").lower() for key in SEARCHABLE_FIELDS)
            if not any(self.search in value for value in haystack):
                return False
        return True
