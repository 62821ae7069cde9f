import importlib
import logging

import pytest
from fastapi.testclient import TestClient

from conftest import SAMPLE_URL, CountingFactory, FailingClient, make_settings
from timed_ingest import main
from timed_ingest.dispatcher import Dispatcher
from timed_ingest.ingest_client import IngestClientInitializer
from timed_ingest.models import BLOB_CREATED, SUBSCRIPTION_VALIDATION


def _event(url: str = SAMPLE_URL, content_length: int = 1024) -> dict:
    return {
        "id": "evt-1",
        "eventType": BLOB_CREATED,
        "subject": "/blobServices/default/containers/landing/blobs/part-0.json",
        "data": {"url": url, "contentLength": content_length, "api": "PutBlob"},
    }


@pytest.fixture
def install(monkeypatch):
    def _install(factory: CountingFactory, settings=None) -> Dispatcher:
        settings = settings or make_settings()
        initializer = IngestClientInitializer(lambda: settings, factory)
        dispatcher = Dispatcher(initializer)
        monkeypatch.setattr(main, "initializer", initializer)
        monkeypatch.setattr(main, "dispatcher", dispatcher)
        return dispatcher

    return _install


@pytest.fixture
def client() -> TestClient:
    return TestClient(main.app)


def test_health(client) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_subscription_validation(client) -> None:
    payload = [{"eventType": SUBSCRIPTION_VALIDATION, "data": {"validationCode": "abc-123"}}]

    response = client.post("/api/events", json=payload)

    assert response.status_code == 200
    assert response.json() == {"validationResponse": "abc-123"}


def test_events_are_dispatched(client, install) -> None:
    factory = CountingFactory()
    install(factory)

    response = client.post("/api/events", json=[_event(), _event(content_length=0)])

    body = response.json()
    assert response.status_code == 200
    assert body["result"]["submitted"] == 1
    assert body["result"]["skipped"] == 1
    assert len(factory.client.commands) == 1


def test_single_event_body(client, install) -> None:
    install(CountingFactory())

    response = client.post("/api/events", json=_event())

    assert response.json()["result"]["submitted"] == 1


def test_submission_failure_returns_server_error(client, install) -> None:
    install(CountingFactory(client=FailingClient(RuntimeError("boom"))))

    response = client.post("/api/events", json=[_event()])

    assert response.status_code == 500
    assert response.json()["detail"]["failed"] == 1


def test_missing_configuration_returns_server_error(client, install) -> None:
    install(CountingFactory(), settings=make_settings(tenant_id=""))

    response = client.post("/api/events", json=[_event()])

    assert response.status_code == 500


def test_status_reports_client_state(client, install) -> None:
    install(CountingFactory())
    client.post("/api/events", json=[_event()])

    body = client.get("/ingest/status").json()

    assert body["client"] == "ready"
    assert body["counts"]["submitted"] == 1
    assert body["last_outcome"]["status"] == "submitted"


def test_app_starts_with_invalid_configuration(monkeypatch) -> None:
    monkeypatch.setenv("DeleteAfterInsert", "sometimes")

    reloaded = importlib.reload(main)
    response = TestClient(reloaded.app).post("/api/events", json=[_event()])

    assert response.status_code == 500
    assert reloaded.initializer.state.value == "uninitialized"


def test_non_object_event_data_is_skipped(client, install) -> None:
    factory = CountingFactory()
    install(factory)
    event = {"id": "evt-2", "eventType": BLOB_CREATED, "data": "not-an-object"}

    response = client.post("/api/events", json=[event])

    assert response.status_code == 200
    assert response.json()["result"]["skipped"] == 1
    assert factory.client.commands == []


def test_validation_batch_logs_dropped_events(client, install, caplog) -> None:
    factory = CountingFactory()
    install(factory)
    payload = [
        {"eventType": SUBSCRIPTION_VALIDATION, "data": {"validationCode": "abc-123"}},
        _event(),
    ]

    with caplog.at_level(logging.WARNING, logger="timed_ingest.main"):
        response = client.post("/api/events", json=payload)

    assert response.json() == {"validationResponse": "abc-123"}
    assert "Dropped 1 events" in caplog.text
    assert factory.calls == 0
