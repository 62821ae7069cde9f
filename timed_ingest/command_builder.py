import logging
from datetime import datetime

from .config import Settings
from .errors import ConfigurationError
from .models import IngestCommand, MappingKind

logger = logging.getLogger(__name__)

CREATION_DATE_KEY = "creationTime"


def resolve_mapping_kind(value: str) -> MappingKind:
    """Map a configured mapping type onto MappingKind, defaulting to json."""
    try:
        return MappingKind((value or "").strip().lower())
    except ValueError:
        logger.warning("Unknown mapping type %r, falling back to json", value)
        return MappingKind.JSON


def build_ingest_command(
    settings: Settings,
    timestamp: datetime,
    object_url: str,
    content_length: int,
) -> IngestCommand:
    if not settings.kusto_database.strip() or not settings.kusto_table.strip():
        raise ConfigurationError("KustoDatabase and KustoTableName must be configured")

    kind = resolve_mapping_kind(settings.mapping_type)
    mapping = {f"{kind.value}_mapping_reference": settings.mapping_reference}
    created = timestamp.isoformat()

    return IngestCommand(
        database=settings.kusto_database,
        table=settings.kusto_table,
        source_url=object_url + settings.sas_token,
        source_size_bytes=content_length,
        delete_source_on_success=settings.delete_after_insert,
        tags=[created],
        additional_properties={CREATION_DATE_KEY: created},
        **mapping,
    )
