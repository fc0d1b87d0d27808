from __future__ import annotations

import uuid

from fastapi.testclient import TestClient


def test_preserves_incoming_request_id_header(client: TestClient) -> None:
    incoming_id = "test-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": incoming_id})

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID") == incoming_id


def test_generates_request_id_when_missing(client: TestClient) -> None:
    resp = client.get("/health")

    assert resp.status_code == 200
    generated = resp.headers.get("X-Request-ID")
    assert generated
    uuid.UUID(generated)
    assert resp.headers.get("X-Request-Duration-ms") is not None


def test_replaces_unsafe_incoming_request_id(client: TestClient) -> None:
    resp = client.get("/health", headers={"X-Request-ID": "<script>alert(1)</script>"})

    returned = resp.headers.get("X-Request-ID")
    assert returned != "<script>alert(1)</script>"
    uuid.UUID(returned)


def test_request_id_present_on_throttled_responses(client: TestClient) -> None:
    for _ in range(2):
        client.post("/customers")

    resp = client.post("/customers", headers={"X-Request-ID": "req-429"})

    assert resp.status_code == 429
    assert resp.headers.get("X-Request-ID") == "req-429"
