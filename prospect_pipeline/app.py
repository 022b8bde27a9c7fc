from __future__ import annotations

import logging
import time

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from prospect_pipeline.application import ProspectMutationService, ProspectQueryService
from prospect_pipeline.core.settings import Settings, load_settings
from prospect_pipeline.infrastructure import DocumentStore, InMemoryDocumentStore
from prospect_pipeline.routes import enrichment, prospects

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> DocumentStore:
    """Open the document store selected by ``settings``."""

    if settings.store_backend == "firestore":
        from prospect_pipeline.infrastructure.firestore import FirestoreDocumentStore, create_firestore_client

        logger.info("Using Firestore document store")
        return FirestoreDocumentStore(create_firestore_client(settings))

    logger.info("Using in-memory document store")
    return InMemoryDocumentStore()


def create_app(store: DocumentStore | None = None, settings: Settings | None = None) -> FastAPI:
    settings = settings or load_settings()
    logging.getLogger("prospect_pipeline").setLevel(settings.log_level)
    store = store if store is not None else build_store(settings)

    app = FastAPI(title="Prospect Pipeline API", version="0.1.0")
    app.state.settings = settings
    app.state.store = store
    app.state.query_service = ProspectQueryService(store, settings)
    app.state.mutation_service = ProspectMutationService(store, settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(enrichment.router, prefix="/api")
    app.include_router(prospects.router, prefix="/api")

    @app.get("/healthz")
    async def healthz() -> dict:
        return {"status": "ok", "timestamp": int(time.time() * 1000)}

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "Prospect Pipeline API",
                "docs": "/docs",
                "health": "/healthz",
            }
        )

    return app
