import logging
import threading
from enum import Enum
from typing import Callable, List, Optional, Protocol

from azure.kusto.data import KustoConnectionStringBuilder
from azure.kusto.data.data_format import DataFormat, IngestionMappingKind
from azure.kusto.ingest import BlobDescriptor, IngestionProperties, QueuedIngestClient
from pydantic import ValidationError

from .config import Settings, load_settings
from .models import IngestCommand, MappingKind

logger = logging.getLogger(__name__)

_FORMATS = {
    MappingKind.JSON: (DataFormat.JSON, IngestionMappingKind.JSON),
    MappingKind.CSV: (DataFormat.CSV, IngestionMappingKind.CSV),
    MappingKind.AVRO: (DataFormat.AVRO, IngestionMappingKind.AVRO),
}


class IngestClient(Protocol):
    def ingest(self, command: IngestCommand) -> None:
        ...


class KustoQueuedIngestClient:
    """Queued ingestion into Azure Data Explorer.

    Submitting only enqueues the blob reference; the service ingests it later.
    """

    def __init__(self, settings: Settings):
        connection = KustoConnectionStringBuilder.with_aad_application_key_authentication(
            settings.kusto_ingest_url,
            settings.client_id,
            settings.client_secret,
            settings.tenant_id,
        )
        self.client = QueuedIngestClient(connection)

    def ingest(self, command: IngestCommand) -> None:
        data_format, mapping_kind = _FORMATS[command.mapping_kind]
        properties = IngestionProperties(
            database=command.database,
            table=command.table,
            data_format=data_format,
            ingestion_mapping_reference=command.mapping_reference,
            ingestion_mapping_kind=mapping_kind,
            additional_tags=list(command.tags),
            additional_properties=dict(command.additional_properties),
        )
        if command.delete_source_on_success:
            # The queued client keeps blobs; deletion is left to storage lifecycle rules.
            logger.warning("Source deletion requested but not supported by the queued client")
        self.client.ingest_from_blob(
            BlobDescriptor(command.source_url, command.source_size_bytes),
            ingestion_properties=properties,
        )


class InMemoryIngestClient:
    """Records submitted commands instead of contacting a store."""

    def __init__(self):
        self.commands: List[IngestCommand] = []

    def ingest(self, command: IngestCommand) -> None:
        self.commands.append(command)


def create_ingest_client(settings: Settings) -> IngestClient:
    backend = settings.ingest_backend.lower()
    if backend == "memory":
        return InMemoryIngestClient()
    return KustoQueuedIngestClient(settings)


class InitState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"


class IngestClientInitializer:
    """Builds the shared ingest client exactly once.

    Missing configuration or a failed construction leaves the state
    uninitialized, so a later call retries with freshly loaded settings.
    """

    def __init__(
        self,
        settings_provider: Callable[[], Settings] = load_settings,
        client_factory: Callable[[Settings], Optional[IngestClient]] = create_ingest_client,
    ):
        self._settings_provider = settings_provider
        self._client_factory = client_factory
        self._lock = threading.Lock()
        self._state = InitState.UNINITIALIZED
        self._client: Optional[IngestClient] = None
        self._settings: Optional[Settings] = None

    @property
    def state(self) -> InitState:
        return self._state

    @property
    def client(self) -> Optional[IngestClient]:
        return self._client

    @property
    def settings(self) -> Optional[Settings]:
        return self._settings

    def ensure_ready(self) -> bool:
        with self._lock:
            if self._state is InitState.READY:
                return True

            try:
                settings = self._settings_provider()
            except ValidationError as exc:
                logger.error("Could not load settings: %s", exc)
                return False

            missing = settings.missing_credentials()
            if missing:
                logger.error(
                    "Could not initialize the ingest client, missing %s (url: %s, clientId: %s, tenant: %s)",
                    ", ".join(missing),
                    settings.kusto_ingest_url,
                    settings.client_id,
                    settings.tenant_id,
                )
                return False

            try:
                client = self._client_factory(settings)
            except Exception:
                logger.exception("Ingest client construction failed")
                return False
            if client is None:
                logger.warning("Ingest client was not initialized")
                return False

            self._client = client
            self._settings = settings
            self._state = InitState.READY
            logger.info("Ingest client successfully initialized")
            return True
