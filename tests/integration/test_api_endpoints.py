from __future__ import annotations

import time
from typing import Any

from fastapi.testclient import TestClient
import pytest

from courtlist_publisher.api.http_app import build_app
from courtlist_publisher.clients.stub import STUB_PDF
from courtlist_publisher.roles import validate_role
from courtlist_publisher.services.bootstrap import RuntimeContainer, build_runtime_container
from courtlist_publisher.services.settings import ServiceSettings
from courtlist_publisher.workers.runner import DispatchRuntimeSettings


def _container(role_name: str) -> RuntimeContainer:
    return build_runtime_container(
        validate_role(role_name),
        settings=ServiceSettings(),
        dispatch_settings=DispatchRuntimeSettings(queue_size=10, workers=2, stage_timeout_seconds=5),
    )


def _client(container: RuntimeContainer, role_name: str) -> TestClient:
    app = build_app(
        role=role_name,
        run_id="integration-api",
        api_deps=container.api_deps,
        on_startup=container.on_startup,
        on_shutdown=container.on_shutdown,
    )
    return TestClient(app)


def _wait_for_completion(client: TestClient, court_list_id: str, *, timeout: float = 5.0) -> dict[str, Any]:
    deadline = time.monotonic() + timeout
    body: dict[str, Any] = {}
    while time.monotonic() < deadline:
        body = client.get(f"/court-lists/{court_list_id}/status").json()
        if body["publishStatus"] in {"COMPLETED", "FAILED"}:
            return body
        time.sleep(0.02)
    raise AssertionError(f"court list {court_list_id} did not settle: {body}")


@pytest.mark.integration
def test_publish_flow_end_to_end_with_stubs() -> None:
    container = _container("api")

    with _client(container, "api") as client:
        response = client.post(
            "/court-lists/publish",
            json={
                "courtListId": "list-1",
                "courtCentreId": "centre-1",
                "courtListType": "standard",
                "publishDate": "2025-01-01",
            },
        )
        assert response.status_code == 202
        body = response.json()
        assert body["created"] is True
        assert body["runId"].startswith("run_")
        assert body["status"]["courtListType"] == "STANDARD"

        status = _wait_for_completion(client, "list-1")
        assert status["fileStatus"] == "COMPLETED"
        assert status["publishStatus"] == "COMPLETED"
        assert status["fileUrl"].endswith("court-lists/list-1.pdf")
        assert status["fileErrorMessage"] is None
        assert status["publishErrorMessage"] is None

        files = client.get("/files").json()
        assert files["folder"] == "court-lists"
        assert [item["name"] for item in files["items"]] == ["list-1.pdf"]

        download = client.get("/files/court-lists/list-1.pdf")
        assert download.status_code == 200
        assert download.headers["content-type"] == "application/pdf"
        assert download.content == STUB_PDF

        by_centre = client.get("/court-lists/status", params={"court_centre_id": "centre-1"})
        assert [item["courtListId"] for item in by_centre.json()["items"]] == ["list-1"]

        by_date = client.get("/court-lists/status", params={"publish_date": "2025-01-01", "court_list_type": "STANDARD"})
        assert [item["courtListId"] for item in by_date.json()["items"]] == ["list-1"]

        ready = client.get("/ready").json()
        assert ready["dispatcher_enabled"] is True
        assert ready["dispatcher_metrics"]["accepted_total"] == 1

    assert len(container.hub.calls) == 1


@pytest.mark.integration
def test_repeated_publish_reuses_record() -> None:
    container = _container("api")
    payload = {"courtCentreId": "centre-2", "courtListType": "ONLINE_PUBLIC", "publishDate": "2025-02-03"}

    with _client(container, "api") as client:
        first = client.post("/court-lists/publish", json=payload).json()
        court_list_id = first["status"]["courtListId"]
        _wait_for_completion(client, court_list_id)

        second = client.post("/court-lists/publish", json=payload).json()
        assert second["created"] is False
        assert second["status"]["courtListId"] == court_list_id
        _wait_for_completion(client, court_list_id)

    assert len(container.repository.records) == 1


@pytest.mark.integration
def test_request_and_lookup_errors() -> None:
    container = _container("api")

    with _client(container, "api") as client:
        missing = client.get("/court-lists/unknown/status")
        assert missing.status_code == 404

        no_filters = client.get("/court-lists/status")
        assert no_filters.status_code == 400

        invalid_body = client.post("/court-lists/publish", json={"courtCentreId": "c1"})
        assert invalid_body.status_code == 422

        blank_centre = client.post(
            "/court-lists/publish",
            json={"courtCentreId": " ", "courtListType": "STANDARD", "publishDate": "2025-01-01"},
        )
        assert blank_centre.status_code == 400

        missing_file = client.get("/files/court-lists/nothing.pdf")
        assert missing_file.status_code == 404

        health = client.get("/health")
        assert health.json() == {"status": "ok", "role": "api"}


@pytest.mark.integration
def test_query_role_rejects_publish_requests() -> None:
    container = _container("api-query")

    with _client(container, "api-query") as client:
        response = client.post(
            "/court-lists/publish",
            json={"courtCentreId": "c1", "courtListType": "STANDARD", "publishDate": "2025-01-01"},
        )
        assert response.status_code == 503

        ready = client.get("/ready").json()
        assert ready["dispatcher_enabled"] is False
        assert ready["status"] == "ready"

        # The record is upserted before the enqueue is rejected.
        statuses = client.get("/court-lists/status", params={"court_centre_id": "c1"}).json()
        assert [item["fileStatus"] for item in statuses["items"]] == ["PENDING"]
