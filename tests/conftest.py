from typing import List

import pytest

from timed_ingest.config import Settings
from timed_ingest.ingest_client import InMemoryIngestClient, IngestClientInitializer
from timed_ingest.models import BLOB_CREATED, IngestCommand, Notification

SAMPLE_URL = "https://acct.blob.core.windows.net/landing/date=2023-06-01/part-0.json"


def make_settings(**overrides) -> Settings:
    values = dict(
        kusto_ingest_url="https://ingest-demo.westeurope.kusto.windows.net",
        client_id="client",
        client_secret="secret",
        tenant_id="tenant",
        kusto_database="telemetry",
        kusto_table="events",
        mapping_type="json",
        mapping_reference="events_mapping",
        min_date="2023-01-01",
        min_date_pattern="yyyy-MM-dd",
        date_marker="date=",
        date_pattern="yyyy-MM-dd",
        blacklist="azuretmpfolder",
        delete_after_insert=False,
        sas_token="?sv=2022&sig=abc",
        ingest_backend="memory",
    )
    values.update(overrides)
    return Settings(**values)


def make_notification(
    url: str = SAMPLE_URL,
    content_length: int = 1024,
    event_kind: str = BLOB_CREATED,
) -> Notification:
    return Notification(event_kind=event_kind, object_url=url, content_length=content_length)


class CountingFactory:
    """Client factory that counts constructions."""

    def __init__(self, client=None, fail: bool = False):
        self.calls = 0
        self.client = client if client is not None else InMemoryIngestClient()
        self.fail = fail

    def __call__(self, settings: Settings):
        self.calls += 1
        if self.fail:
            return None
        return self.client


class FailingClient:
    def __init__(self, error: Exception):
        self.error = error
        self.commands: List[IngestCommand] = []

    def ingest(self, command: IngestCommand) -> None:
        self.commands.append(command)
        raise self.error


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def factory() -> CountingFactory:
    return CountingFactory()


@pytest.fixture
def initializer(settings, factory) -> IngestClientInitializer:
    return IngestClientInitializer(lambda: settings, factory)
