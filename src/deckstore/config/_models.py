"""Configuration models.

This module provides the Pydantic models for every configuration section
and the DeckstoreConfig container that aggregates them.
"""

from enum import StrEnum
from typing import ClassVar, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator


class LogLevel(StrEnum):
    """Log level threshold values.

    Values are ordered from most verbose (debug) to least verbose (error).
    """

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LogFormat(StrEnum):
    """Log output format values."""

    JSON = "json"
    TEXT = "text"


class StoreBackend(StrEnum):
    """Blob store backend selector."""

    MEMORY = "memory"
    HTTP = "http"


class RetryConfiguration(BaseModel):
    """Optimistic update retry policy.

    Attributes:
        max_attempts: Total read-modify-write attempts before giving up.
        base_delay: Base backoff delay in seconds.
        max_delay: Upper bound for a single backoff delay in seconds.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    max_attempts: int = Field(
        default=8,
        ge=1,
        description="Total read-modify-write attempts before giving up.",
    )
    base_delay: float = Field(
        default=0.1,
        ge=0.0,
        description="Base backoff delay in seconds.",
    )
    max_delay: float = Field(
        default=30.0,
        ge=0.0,
        description="Upper bound for a single backoff delay in seconds.",
    )


class StoreConfiguration(BaseModel):
    """Blob store connection settings.

    Attributes:
        backend: Which blob store implementation to use.
        endpoint: Base URL of the S3-compatible service (http backend).
        bucket: Bucket holding the documents (http backend).
        timeout: Per-request timeout in seconds.
        transport_retries: Attempts for requests that fail to connect.
        max_concurrent_writes: Parallel writes allowed during batch inserts.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    backend: StoreBackend = StoreBackend.MEMORY
    endpoint: str = ""
    bucket: str = ""
    timeout: float = Field(default=10.0, gt=0.0)
    transport_retries: int = Field(default=3, ge=1)
    max_concurrent_writes: int = Field(default=16, ge=1)

    @model_validator(mode="after")
    def _require_http_location(self) -> Self:
        if self.backend == StoreBackend.HTTP and not (self.endpoint and self.bucket):
            msg = "endpoint and bucket are required for the http backend"
            raise ValueError(msg)
        return self


class LoggingConfig(BaseModel):
    """Logging configuration section.

    Attributes:
        level: Log level threshold.
        format: Log output format.
        file: Path to log file (empty writes to stderr).
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.JSON
    file: str = ""


class DeckstoreConfig(BaseModel):
    """Complete deckstore configuration.

    Attributes:
        retry: Optimistic update retry policy.
        store: Blob store connection settings.
        logging: Logging settings.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    retry: RetryConfiguration = Field(default_factory=RetryConfiguration)
    store: StoreConfiguration = Field(default_factory=StoreConfiguration)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
