"""Domain errors and failure typing."""


class PipelineError(Exception):
    """Base class for pipeline failures."""

    error_code = "PIPELINE_ERROR"


class ConfigError(PipelineError):
    """Raised for invalid or missing configuration."""

    error_code = "CONFIG_ERROR"


class IngestError(PipelineError):
    """Raised when the input dataset cannot be read."""

    error_code = "FATAL_INGEST"


class SchemaError(PipelineError):
    """Raised when the input header is too narrow for the address column."""

    error_code = "SCHEMA_TOO_NARROW"


class WriteError(PipelineError):
    """Raised when a batch could not be durably written."""

    error_code = "WRITE_ERROR"
