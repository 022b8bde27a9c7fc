from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

sys.path.append(str(Path(__file__).resolve().parents[1]))

from prospect_pipeline.app import create_app
from prospect_pipeline.core.settings import Settings
from prospect_pipeline.infrastructure import InMemoryDocumentStore, StoreError


class FlakyStore(InMemoryDocumentStore):
    def __init__(self) -> None:
        super().__init__()
        self.commits = 0
        self.fail_reads = False

    def commit_merge_batch(self, collection, writes):
        self.commits += 1
        if self.commits == 2:
            raise StoreError("quota exceeded")
        super().commit_merge_batch(collection, writes)

    def query_documents(self, collection, **kwargs):
        if self.fail_reads:
            raise StoreError("backend unavailable")
        return super().query_documents(collection, **kwargs)


@pytest.fixture()
def store() -> FlakyStore:
    return FlakyStore()


@pytest.fixture()
def client(store):
    app = create_app(store=store, settings=Settings(default_queue_list_tag="enrich-queue"))
    with TestClient(app) as test_client:
        yield test_client


def test_healthz(client):
    response = client.get("/healthz")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert isinstance(body["timestamp"], int)


def test_enqueue_then_list_by_status(client, store):
    store.put("prospects", "p1", {"name": "Ada Lovelace", "organization": "Analytical Engines"})
    store.put("prospects", "p2", {"name": "Grace Hopper", "organization": "Navy"})

    response = client.post("/api/enqueue_enrichment", json={"prospectIds": ["p1"], "metadata": {"source": "ui"}})
    assert response.status_code == 200
    body = response.json()
    assert body["queued"] == 1
    assert body["listTag"] == "enrich-queue"
    assert body["runId"]

    response = client.get("/api/prospects", params={"statuses": "queued"})
    assert response.status_code == 200
    payload = response.json()
    assert [item["id"] for item in payload["data"]] == ["p1"]
    assert payload["data"][0]["enrichment"]["queue_run_id"] == body["runId"]
    assert "nextPageToken" not in payload

    response = client.get("/api/list-options")
    assert response.json() == {"options": ["enrich-queue"]}


def test_tag_outreach_ready_endpoint(client, store):
    response = client.post("/api/tag_outreach_ready", json={"prospectIds": ["p1", "p2"]})
    assert response.status_code == 200
    assert response.json() == {"updated": 2, "listTag": "outreach_ready"}
    assert store.get_document("prospects", "p2").data["outreach"]["ready"] is True


def test_listing_pages_through_tokens(client, store):
    for name in "CAEBD":
        store.put("prospects", f"id-{name.lower()}", {"name": name, "list_ids": ["tag-a"]})

    response = client.get("/api/prospects", params={"pageSize": "2", "listIds": "tag-a"})
    first = response.json()
    assert [item["name"] for item in first["data"]] == ["A", "B"]
    assert first["nextPageToken"] == "id-b"

    response = client.get(
        "/api/prospects",
        params={"pageSize": "2", "listIds": "tag-a", "pageToken": first["nextPageToken"]},
    )
    second = response.json()
    assert [item["name"] for item in second["data"]] == ["C", "D"]

    response = client.get("/api/prospects", params={"pageSize": "2", "listIds": "tag-a", "pageToken": "id-d"})
    third = response.json()
    assert [item["name"] for item in third["data"]] == ["E"]
    assert "nextPageToken" not in third


def test_search_is_case_insensitive(client, store):
    store.put("prospects", "acme", {"name": "Acme Corp"})
    store.put("prospects", "other", {"name": "Other", "role_title": "ACME liaison"})
    store.put("prospects", "beta", {"name": "Beta"})

    response = client.get("/api/prospects", params={"search": "acme"})
    assert [item["id"] for item in response.json()["data"]] == ["acme", "other"]


def test_too_many_list_ids_is_rejected(client):
    tags = ",".join(f"tag-{index}" for index in range(11))
    response = client.get("/api/prospects", params={"listIds": tags})
    assert response.status_code == 400
    assert "listIds" in response.json()["detail"]["fieldErrors"]


@pytest.mark.parametrize("page_size", ["0", "201", "many"])
def test_invalid_page_size_is_rejected(client, page_size):
    response = client.get("/api/prospects", params={"pageSize": page_size})
    assert response.status_code == 400
    assert "pageSize" in response.json()["detail"]["fieldErrors"]


@pytest.mark.parametrize(
    "payload",
    [
        {"prospectIds": []},
        {"prospectIds": "p1"},
        {"listTag": "x"},
        {"prospectIds": ["p1"], "listTag": ""},
        {"prospectIds": ["p1", "prospects/p2"]},
        ["p1"],
    ],
)
def test_invalid_mutation_payloads_are_rejected(client, payload):
    for path in ("/api/enqueue_enrichment", "/api/tag_outreach_ready"):
        response = client.post(path, json=payload)
        assert response.status_code == 400
        assert response.json()["detail"]["fieldErrors"]


def test_partial_batch_failure_reports_affected_count(client, store):
    ids = [f"p{index:04d}" for index in range(500)]
    response = client.post("/api/tag_outreach_ready", json={"prospectIds": ids})

    assert response.status_code == 500
    detail = response.json()["detail"]
    assert detail == {"message": "quota exceeded", "affected": 400, "committedChunks": 1}
    assert store.count("prospects") == 400


def test_read_failure_surfaces_store_message(client, store):
    store.fail_reads = True
    response = client.get("/api/prospects")
    assert response.status_code == 500
    assert response.json()["detail"] == "backend unavailable"

    response = client.get("/api/list-options")
    assert response.status_code == 500


def test_root_landing_page(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["health"] == "/healthz"
