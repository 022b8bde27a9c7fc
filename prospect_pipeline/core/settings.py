"""Process configuration, resolved once from the environment at start-up."""
from __future__ import annotations

import os
from dataclasses import dataclass, field

DEFAULT_OUTREACH_READY_TAG = "outreach_ready"


def _env(name: str) -> str | None:
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass(frozen=True, slots=True)
class Settings:
    default_queue_list_tag: str | None = None
    outreach_ready_list_tag: str = DEFAULT_OUTREACH_READY_TAG
    prospects_collection: str = "prospects"
    runs_collection: str = "enrichment_runs"
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    store_backend: str = "firestore"
    firestore_project: str | None = None
    credentials_json: str | None = None
    credentials_b64: str | None = None
    log_level: str = "INFO"


def load_settings() -> Settings:
    """Build :class:`Settings` from environment variables."""

    origins_env = os.getenv("API_CORS_ORIGINS", "")
    origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()]

    credentials_json = _env("GOOGLE_APPLICATION_CREDENTIALS_JSON")
    credentials_b64 = _env("GOOGLE_APPLICATION_CREDENTIALS_B64")
    project = _env("FIRESTORE_PROJECT")

    # the in-memory store loses writes on restart, so it is opt-in only
    backend = (_env("PROSPECT_STORE") or "firestore").lower()
    if backend not in {"memory", "firestore"}:
        raise ValueError(f"PROSPECT_STORE must be 'memory' or 'firestore', got {backend!r}")

    return Settings(
        default_queue_list_tag=_env("DEFAULT_QUEUE_LIST_ID"),
        outreach_ready_list_tag=_env("OUTREACH_READY_LIST_ID") or DEFAULT_OUTREACH_READY_TAG,
        prospects_collection=_env("PROSPECTS_COLLECTION") or "prospects",
        runs_collection=_env("ENRICHMENT_RUNS_COLLECTION") or "enrichment_runs",
        cors_origins=origins or ["*"],
        store_backend=backend,
        firestore_project=project,
        credentials_json=credentials_json,
        credentials_b64=credentials_b64,
        log_level=(_env("LOG_LEVEL") or "INFO").upper(),
    )
