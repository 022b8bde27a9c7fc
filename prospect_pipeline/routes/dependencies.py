from __future__ import annotations

from fastapi import Request

from prospect_pipeline.application import ProspectMutationService, ProspectQueryService


def get_query_service(request: Request) -> ProspectQueryService:
    return request.app.state.query_service


def get_mutation_service(request: Request) -> ProspectMutationService:
    return request.app.state.mutation_service
