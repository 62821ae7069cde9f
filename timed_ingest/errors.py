class TimedIngestError(Exception):
    """Base exception for ingest dispatcher failures."""


class ConfigurationError(TimedIngestError):
    """Raised for invalid runtime configuration."""


class ConfigurationMissingError(ConfigurationError):
    """Raised when required store credentials are not configured."""
