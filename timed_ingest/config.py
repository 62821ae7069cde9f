import logging

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration for the ingest dispatcher."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    kusto_ingest_url: str = Field("", alias="KustoIngestUrl")
    client_id: str = Field("", alias="ClientId")
    client_secret: str = Field("", alias="ClientSecret")
    tenant_id: str = Field("", alias="TenantId")

    kusto_database: str = Field("", alias="KustoDatabase")
    kusto_table: str = Field("", alias="KustoTableName")
    mapping_type: str = Field("json", alias="KustoMappingType")  # json, csv, avro
    mapping_reference: str = Field("", alias="KustoMappingRef")

    min_date: str = Field("2000-01-01", alias="MindateString")
    min_date_pattern: str = Field("yyyy-MM-dd", alias="MindateStringPattern")
    date_marker: str = Field("date=", alias="DatePrefixBlob")
    date_pattern: str = Field("yyyy-MM-dd", alias="DateFormat")

    blacklist: str = Field("azuretmpfolder", alias="BlacklistSubstring")
    delete_after_insert: bool = Field(False, alias="DeleteAfterInsert")
    sas_token: str = Field("", alias="SasToken")

    ingest_backend: str = Field("kusto", alias="IngestBackend")  # options: kusto, memory
    log_level: str = Field("INFO", alias="LogLevel")

    def missing_credentials(self) -> list[str]:
        required = {
            "KustoIngestUrl": self.kusto_ingest_url,
            "ClientId": self.client_id,
            "ClientSecret": self.client_secret,
            "TenantId": self.tenant_id,
        }
        return [name for name, value in required.items() if not value or not value.strip()]


class LoggingSettings(BaseSettings):
    """Start-up logging options, read apart from Settings so they cannot fail."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    log_level: str = Field("INFO", alias="LogLevel")


def load_settings() -> Settings:
    """Read settings from the process environment."""
    return Settings()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
