from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

BLOB_CREATED = "Microsoft.Storage.BlobCreated"
SUBSCRIPTION_VALIDATION = "Microsoft.EventGrid.SubscriptionValidationEvent"


class Notification(BaseModel):
    """Storage notification that an object was created."""

    model_config = ConfigDict(frozen=True)

    event_kind: str
    object_url: str
    content_length: int = 0
    event_id: Optional[str] = None
    subject: Optional[str] = None
    raw: Dict[str, Any] = Field(default_factory=dict)

    @staticmethod
    def event_data(payload: Dict[str, Any]) -> Dict[str, Any]:
        data = payload.get("data")
        return data if isinstance(data, dict) else {}

    @classmethod
    def from_event(cls, payload: Dict[str, Any]) -> "Notification":
        """Read an Event Grid or CloudEvents shaped payload."""
        data = cls.event_data(payload)
        return cls(
            event_kind=payload.get("eventType") or payload.get("type") or "",
            object_url=data.get("url") or "",
            content_length=data.get("contentLength") or 0,
            event_id=payload.get("id"),
            subject=payload.get("subject"),
            raw=payload,
        )


class MappingKind(str, Enum):
    JSON = "json"
    CSV = "csv"
    AVRO = "avro"


class IngestCommand(BaseModel):
    """Ingest-from-storage request for the analytical store."""

    database: str
    table: str
    json_mapping_reference: Optional[str] = None
    csv_mapping_reference: Optional[str] = None
    avro_mapping_reference: Optional[str] = None
    source_url: str
    source_size_bytes: int
    delete_source_on_success: bool = False
    tags: List[str] = Field(default_factory=list)
    additional_properties: Dict[str, str] = Field(default_factory=dict)

    @property
    def mapping_kind(self) -> MappingKind:
        if self.csv_mapping_reference is not None:
            return MappingKind.CSV
        if self.avro_mapping_reference is not None:
            return MappingKind.AVRO
        return MappingKind.JSON

    @property
    def mapping_reference(self) -> Optional[str]:
        return {
            MappingKind.JSON: self.json_mapping_reference,
            MappingKind.CSV: self.csv_mapping_reference,
            MappingKind.AVRO: self.avro_mapping_reference,
        }[self.mapping_kind]


class RejectReason(str, Enum):
    UNSUPPORTED_EVENT_KIND = "unsupported-event-kind"
    BLACKLISTED_PATH = "blacklisted-path"
    STALE_OBJECT = "stale-object"
    EMPTY_OBJECT_EVENT = "empty-object-event"


class DispatchStatus(str, Enum):
    SKIPPED = "skipped"
    SUBMITTED = "submitted"
    FAILED = "failed"


class DispatchOutcome(BaseModel):
    """Terminal state of one notification dispatch."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    status: DispatchStatus
    object_url: str = ""
    reason: Optional[RejectReason] = None
    command: Optional[IngestCommand] = None
    detail: Optional[str] = None
    error: Optional[Exception] = Field(default=None, exclude=True)

    @classmethod
    def skipped(cls, object_url: str, reason: RejectReason) -> "DispatchOutcome":
        return cls(status=DispatchStatus.SKIPPED, object_url=object_url, reason=reason)

    @classmethod
    def submitted(cls, object_url: str, command: IngestCommand) -> "DispatchOutcome":
        return cls(status=DispatchStatus.SUBMITTED, object_url=object_url, command=command)

    @classmethod
    def failed(cls, object_url: str, error: Exception) -> "DispatchOutcome":
        return cls(
            status=DispatchStatus.FAILED,
            object_url=object_url,
            detail=str(error),
            error=error,
        )

    def raise_for_failure(self) -> None:
        if self.status is DispatchStatus.FAILED and self.error is not None:
            raise self.error


class DispatchSummary(BaseModel):
    received: int
    submitted: int
    skipped: int
    failed: int
    outcomes: List[DispatchOutcome]
