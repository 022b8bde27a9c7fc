from __future__ import annotations

import asyncio
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException

from prospect_pipeline.application import BatchCommitError, ProspectMutationService
from prospect_pipeline.core.validation import ValidationError, validate_enqueue_request, validate_tag_ready_request
from prospect_pipeline.infrastructure import StoreError

from .dependencies import get_mutation_service

router = APIRouter(tags=["enrichment"])


def _batch_failure(exc: BatchCommitError) -> HTTPException:
    return HTTPException(
        status_code=500,
        detail={
            "message": str(exc),
            "affected": exc.affected,
            "committedChunks": exc.committed_chunks,
        },
    )


@router.post("/enqueue_enrichment")
async def enqueue_enrichment(
    payload: Any = Body(default=None),
    service: ProspectMutationService = Depends(get_mutation_service),
) -> dict:
    """Create an enrichment run and mark the given prospects as queued."""
    try:
        request = validate_enqueue_request(payload)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.as_dict()) from exc

    try:
        result = await asyncio.to_thread(service.enqueue_enrichment, request)
    except BatchCommitError as exc:
        raise _batch_failure(exc) from exc
    except StoreError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return {"runId": result.run_id, "queued": result.queued, "listTag": result.list_tag}


@router.post("/tag_outreach_ready")
async def tag_outreach_ready(
    payload: Any = Body(default=None),
    service: ProspectMutationService = Depends(get_mutation_service),
) -> dict:
    try:
        request = validate_tag_ready_request(payload)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.as_dict()) from exc

    try:
        result = await asyncio.to_thread(service.tag_outreach_ready, request)
    except BatchCommitError as exc:
        raise _batch_failure(exc) from exc
    return {"updated": result.updated, "listTag": result.list_tag}
