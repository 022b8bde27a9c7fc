from __future__ import annotations

import sys
from pathlib import Path
from unittest import mock

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from prospect_pipeline.app import build_store
from prospect_pipeline.core.settings import Settings, load_settings
from prospect_pipeline.infrastructure import InMemoryDocumentStore
from prospect_pipeline.infrastructure import firestore as firestore_module

ENV_VARS = [
    "DEFAULT_QUEUE_LIST_ID",
    "OUTREACH_READY_LIST_ID",
    "PROSPECTS_COLLECTION",
    "ENRICHMENT_RUNS_COLLECTION",
    "API_CORS_ORIGINS",
    "FIRESTORE_PROJECT",
    "GOOGLE_APPLICATION_CREDENTIALS_JSON",
    "GOOGLE_APPLICATION_CREDENTIALS_B64",
    "PROSPECT_STORE",
    "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults_without_environment():
    settings = load_settings()
    assert settings.default_queue_list_tag is None
    assert settings.outreach_ready_list_tag == "outreach_ready"
    assert settings.prospects_collection == "prospects"
    assert settings.runs_collection == "enrichment_runs"
    assert settings.cors_origins == ["*"]
    assert settings.store_backend == "firestore"
    assert settings.log_level == "INFO"


def test_firestore_is_used_with_ambient_credentials(monkeypatch):
    client = mock.Mock()
    captured: list[Settings] = []

    def fake_client(settings: Settings) -> mock.Mock:
        captured.append(settings)
        return client

    monkeypatch.setattr(firestore_module, "create_firestore_client", fake_client)

    settings = load_settings()
    store = build_store(settings)

    assert isinstance(store, firestore_module.FirestoreDocumentStore)
    assert captured == [settings]
    assert settings.firestore_project is None


def test_memory_store_requires_explicit_opt_in(monkeypatch):
    monkeypatch.setenv("PROSPECT_STORE", "Memory")
    settings = load_settings()
    assert settings.store_backend == "memory"
    assert isinstance(build_store(settings), InMemoryDocumentStore)


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("DEFAULT_QUEUE_LIST_ID", "queue")
    monkeypatch.setenv("OUTREACH_READY_LIST_ID", "  ")
    monkeypatch.setenv("API_CORS_ORIGINS", "https://a.example, https://b.example,")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = load_settings()
    assert settings.default_queue_list_tag == "queue"
    assert settings.outreach_ready_list_tag == "outreach_ready"
    assert settings.cors_origins == ["https://a.example", "https://b.example"]
    assert settings.log_level == "DEBUG"


def test_firestore_selected_when_project_configured(monkeypatch):
    monkeypatch.setenv("FIRESTORE_PROJECT", "prospects-prod")
    assert load_settings().store_backend == "firestore"

    monkeypatch.setenv("PROSPECT_STORE", "memory")
    assert load_settings().store_backend == "memory"


def test_unknown_store_backend_is_rejected(monkeypatch):
    monkeypatch.setenv("PROSPECT_STORE", "postgres")
    with pytest.raises(ValueError):
        load_settings()
