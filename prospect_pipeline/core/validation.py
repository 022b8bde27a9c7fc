"""Request structs and the validation functions that build them."""
from __future__ import annotations

from typing import Any, Mapping, TypeVar

import pydantic
from pydantic import BaseModel, ConfigDict, Field, constr, field_validator

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200
MAX_LIST_FILTERS = 10
MAX_LIST_TAG_LENGTH = 120
# document ids are single path segments
DOCUMENT_ID_PATTERN = r"^[^/]+$"

ModelT = TypeVar("ModelT", bound=BaseModel)


class ValidationError(Exception):
    """Raised when a request payload fails validation."""

    def __init__(self, field_errors: dict[str, list[str]]) -> None:
        self.field_errors = field_errors
        fields = ", ".join(sorted(field_errors)) or "request"
        super().__init__(f"invalid {fields}")

    def as_dict(self) -> dict[str, Any]:
        return {"fieldErrors": self.field_errors}


def _split_csv(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple)):
        return value
    cleaned: list[Any] = []
    for item in value:
        if isinstance(item, str):
            item = item.strip()
            if not item:
                continue
        cleaned.append(item)
    return cleaned


class ListProspectsQuery(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, alias="pageSize")
    page_token: str | None = Field(default=None, alias="pageToken")
    list_ids: list[str] = Field(default_factory=list, alias="listIds")
    priorities: list[str] = Field(default_factory=list)
    statuses: list[str] = Field(default_factory=list)
    search: str = ""

    @field_validator("page_size", mode="before")
    @classmethod
    def _default_page_size(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_PAGE_SIZE
        return value

    @field_validator("page_token", mode="before")
    @classmethod
    def _blank_token(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("list_ids", "priorities", "statuses", mode="before")
    @classmethod
    def _split(cls, value: Any) -> Any:
        return _split_csv(value)

    @field_validator("list_ids")
    @classmethod
    def _limit_list_filters(cls, value: list[str]) -> list[str]:
        if len(value) > MAX_LIST_FILTERS:
            raise ValueError(f"A maximum of {MAX_LIST_FILTERS} list filters is supported.")
        return value

    @field_validator("search", mode="before")
    @classmethod
    def _default_search(cls, value: Any) -> Any:
        return "" if value is None else value


class EnqueueEnrichmentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    prospect_ids: list[constr(min_length=1, pattern=DOCUMENT_ID_PATTERN)] = Field(alias="prospectIds", min_length=1)
    list_tag: constr(min_length=1, max_length=MAX_LIST_TAG_LENGTH) | None = Field(default=None, alias="listTag")
    metadata: dict[str, Any] | None = None


class TagOutreachReadyRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    prospect_ids: list[constr(min_length=1, pattern=DOCUMENT_ID_PATTERN)] = Field(alias="prospectIds", min_length=1)
    list_tag: constr(min_length=1, max_length=MAX_LIST_TAG_LENGTH) | None = Field(default=None, alias="listTag")


def _validate(model: type[ModelT], payload: Mapping[str, Any] | None) -> ModelT:
    if payload is None or not isinstance(payload, Mapping):
        raise ValidationError({"_root": ["request body must be a JSON object"]})
    try:
        return model.model_validate(dict(payload))
    except pydantic.ValidationError as exc:
        field_errors: dict[str, list[str]] = {}
        for error in exc.errors():
            location = ".".join(str(part) for part in error["loc"]) or "_root"
            field_errors.setdefault(location, []).append(error["msg"])
        raise ValidationError(field_errors) from exc


def validate_list_query(params: Mapping[str, Any]) -> ListProspectsQuery:
    return _validate(ListProspectsQuery, params)


def validate_enqueue_request(payload: Mapping[str, Any] | None) -> EnqueueEnrichmentRequest:
    return _validate(EnqueueEnrichmentRequest, payload)


def validate_tag_ready_request(payload: Mapping[str, Any] | None) -> TagOutreachReadyRequest:
    return _validate(TagOutreachReadyRequest, payload)
