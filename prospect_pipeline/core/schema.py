from __future__ import annotations

import base64
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from prospect_pipeline.domain import StoredDocument

SEARCHABLE_FIELDS = ("name", "organization", "role_title")


def _plain(value: Any) -> Any:
    """Reduce a stored value to something JSON serialisable.

    Store specific types become strings; document references render as
    their path.
    """

    if value is None or isinstance(value, (str, bool, int, float, date)):
        return value
    if isinstance(value, dict):
        return {str(key): _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    if isinstance(value, bytes):
        return base64.b64encode(value).decode("ascii")
    path = getattr(value, "path", None)
    if isinstance(path, str):
        return path
    return str(value)


def _text_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) else None


class EnrichmentState(BaseModel):
    model_config = ConfigDict(extra="allow")

    status: str | None = None
    queue_run_id: str | None = None
    queue_timestamp: Any = None
    updated_at: Any = None

    @classmethod
    def from_mapping(cls, value: Any) -> "EnrichmentState | None":
        if not isinstance(value, dict):
            return None
        payload = dict(value)
        payload["status"] = _text_or_none(value.get("status"))
        payload["queue_run_id"] = _text_or_none(value.get("queue_run_id"))
        return cls.model_validate(payload)


class OutreachState(BaseModel):
    model_config = ConfigDict(extra="allow")

    ready: bool | None = None
    ready_at: Any = None
    updated_at: Any = None

    @classmethod
    def from_mapping(cls, value: Any) -> "OutreachState | None":
        if not isinstance(value, dict):
            return None
        payload = dict(value)
        ready = value.get("ready")
        payload["ready"] = ready if isinstance(ready, bool) else None
        return cls.model_validate(payload)


class ProspectRecord(BaseModel):
    """A prospect as returned to callers.

    Stored documents are loosely typed: absent, null and wrongly typed values
    all collapse to ``None`` here, so filters only ever see a string or
    nothing.  Fields outside the known set are carried through untouched.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    name: str | None = None
    organization: str | None = None
    role_title: str | None = None
    priority_bucket: str | None = None
    list_ids: list[str] = Field(default_factory=list)
    enrichment: EnrichmentState | None = None
    outreach: OutreachState | None = None

    @classmethod
    def from_document(cls, document: StoredDocument) -> "ProspectRecord":
        data = _plain(document.data)
        payload: dict[str, Any] = dict(data)
        payload["id"] = document.id
        for key in (*SEARCHABLE_FIELDS, "priority_bucket"):
            payload[key] = _text_or_none(data.get(key))
        raw_lists = data.get("list_ids")
        payload["list_ids"] = [item for item in raw_lists if isinstance(item, str)] if isinstance(raw_lists, list) else []
        payload["enrichment"] = EnrichmentState.from_mapping(data.get("enrichment"))
        payload["outreach"] = OutreachState.from_mapping(data.get("outreach"))
        return cls.model_validate(payload)

    @property
    def enrichment_status(self) -> str | None:
        return self.enrichment.status if self.enrichment is not None else None


class EnrichmentRun(BaseModel):
    id: str | None = None
    created_at: datetime
    status: str = "queued"
    prospect_count: int
    list_tag: str | None = None
    metadata: dict[str, Any] | None = None

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(exclude={"id"})


class ProspectPage(BaseModel):
    data: list[ProspectRecord] = Field(default_factory=list)
    next_page_token: str | None = None
