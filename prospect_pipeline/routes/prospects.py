from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, HTTPException, Query

from prospect_pipeline.application import ProspectQueryService
from prospect_pipeline.core.validation import ValidationError, validate_list_query
from prospect_pipeline.infrastructure import StoreError

from .dependencies import get_query_service

router = APIRouter(tags=["prospects"])


@router.get("/prospects")
async def list_prospects(
    page_size: str | None = Query(default=None, alias="pageSize"),
    page_token: str | None = Query(default=None, alias="pageToken"),
    list_ids: str | None = Query(default=None, alias="listIds"),
    priorities: str | None = Query(default=None),
    statuses: str | None = Query(default=None),
    search: str | None = Query(default=None),
    service: ProspectQueryService = Depends(get_query_service),
) -> dict:
    try:
        query = validate_list_query(
            {
                "pageSize": page_size,
                "pageToken": page_token,
                "listIds": list_ids,
                "priorities": priorities,
                "statuses": statuses,
                "search": search,
            }
        )
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.as_dict()) from exc

    try:
        page = await asyncio.to_thread(service.list_prospects, query)
    except StoreError as exc:
        raise HTTPException(status_code=500, detail=str(exc) or "Failed to load prospects.") from exc

    body: dict = {"data": [record.model_dump(mode="json") for record in page.data]}
    if page.next_page_token:
        body["nextPageToken"] = page.next_page_token
    return body


@router.get("/list-options")
async def list_options(service: ProspectQueryService = Depends(get_query_service)) -> dict:
    """Sampled set of list tags, for filter pickers."""
    try:
        options = await asyncio.to_thread(service.list_options)
    except StoreError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return {"options": options}
