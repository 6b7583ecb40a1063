"""Core configuration module for crm-party.

Loads settings from PARTY_* prefixed environment variables using Pydantic Settings.
The Jaeger collector hostname keeps its historical unprefixed name,
JAEGER_SERVER_HOSTNAME, because deployments already export it.

Patterns applied:
- pydantic-settings BaseSettings (Pydantic v2 split)
- env_prefix = "PARTY_" for namespace isolation
- @field_validator + @classmethod (Pydantic v2 pattern)
- @lru_cache for singleton pattern
- PEP 604 union syntax (X | None)
"""

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings

from crm_party.core.constants import (
    DEFAULT_CIRCUIT_ERROR_THRESHOLD_PERCENTAGE,
    DEFAULT_CIRCUIT_REQUEST_VOLUME_THRESHOLD,
    DEFAULT_CIRCUIT_ROLLING_WINDOW_SECONDS,
    DEFAULT_CIRCUIT_SLEEP_WINDOW_SECONDS,
    DEFAULT_ENVIRONMENT,
    DEFAULT_FALLBACK_POOL_SIZE,
    DEFAULT_HOST,
    DEFAULT_JAEGER_AGENT_PORT,
    DEFAULT_LOG_LEVEL,
    DEFAULT_PARTY_BASE_URL,
    DEFAULT_PARTY_TIMEOUT_SECONDS,
    DEFAULT_PORT,
    DEFAULT_REPORTER_FLUSH_INTERVAL_MS,
    DEFAULT_REPORTER_MAX_BATCH_SIZE,
    DEFAULT_SAMPLING_PROBABILITY,
    DEFAULT_SERVICE_NAME,
    DEFAULT_TRACING_SKIP_PATTERN,
    JAEGER_HOSTNAME_ENV,
)


class Settings(BaseSettings):
    """Application settings loaded from PARTY_* environment variables.

    All environment variables except JAEGER_SERVER_HOSTNAME must be
    prefixed with PARTY_.
    Example: PARTY_PORT=8081, PARTY_LOG_LEVEL=DEBUG

    Attributes:
        service_name: Service identifier reported with every span.
        port: HTTP port (1-65535). Default: 8080.
        host: Bind address. Default: 0.0.0.0.
        environment: Deployment environment. Default: development.
        log_level: Logging verbosity. Default: INFO.
        jaeger_server_hostname: Jaeger agent host; unset selects the no-op tracer.
        party_base_url: Base URL of the downstream party service.
        party_timeout_seconds: Per-call timeout enforced by the fallback executor.
    """

    # =========================================================================
    # Core Settings
    # =========================================================================
    service_name: str = Field(
        default=DEFAULT_SERVICE_NAME,
        description="Service name for identification",
    )
    port: int = Field(
        default=DEFAULT_PORT,
        ge=1,
        le=65535,
        description="HTTP server port",
    )
    host: str = Field(
        default=DEFAULT_HOST,
        description="HTTP server bind address",
    )
    environment: Literal["development", "staging", "production"] = Field(
        default=DEFAULT_ENVIRONMENT,
        description="Deployment environment",
    )
    log_level: str = Field(
        default=DEFAULT_LOG_LEVEL,
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    # =========================================================================
    # Tracing
    # =========================================================================
    jaeger_server_hostname: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            JAEGER_HOSTNAME_ENV, "PARTY_JAEGER_SERVER_HOSTNAME"
        ),
        description="Jaeger agent hostname; unset or empty disables tracing",
    )
    jaeger_agent_port: int = Field(
        default=DEFAULT_JAEGER_AGENT_PORT,
        ge=1,
        le=65535,
        description="Jaeger agent UDP port",
    )
    sampling_probability: float = Field(
        default=DEFAULT_SAMPLING_PROBABILITY,
        ge=0.0,
        le=1.0,
        description="Fraction of traces sampled",
    )
    reporter_max_batch_size: int = Field(
        default=DEFAULT_REPORTER_MAX_BATCH_SIZE,
        ge=1,
        description="Spans buffered before a batch is flushed",
    )
    reporter_flush_interval_ms: int = Field(
        default=DEFAULT_REPORTER_FLUSH_INTERVAL_MS,
        ge=1,
        description="Maximum delay between two batch flushes",
    )
    tracing_skip_pattern: str = Field(
        default=DEFAULT_TRACING_SKIP_PATTERN,
        description="Inbound paths matching this pattern are never traced",
    )

    # =========================================================================
    # Downstream Party Service
    # =========================================================================
    party_base_url: str = Field(
        default=DEFAULT_PARTY_BASE_URL,
        description="Base URL of the party service",
    )
    party_timeout_seconds: float = Field(
        default=DEFAULT_PARTY_TIMEOUT_SECONDS,
        gt=0,
        description="Timeout applied to every party call",
    )

    # =========================================================================
    # Fallback Execution / Circuit Breaker
    # =========================================================================
    fallback_pool_size: int = Field(
        default=DEFAULT_FALLBACK_POOL_SIZE,
        ge=1,
        description="Worker threads isolating downstream calls",
    )
    circuit_request_volume_threshold: int = Field(
        default=DEFAULT_CIRCUIT_REQUEST_VOLUME_THRESHOLD,
        ge=1,
        description="Calls in the rolling window before the circuit may open",
    )
    circuit_error_threshold_percentage: int = Field(
        default=DEFAULT_CIRCUIT_ERROR_THRESHOLD_PERCENTAGE,
        ge=1,
        le=100,
        description="Error percentage that opens the circuit",
    )
    circuit_sleep_window_seconds: float = Field(
        default=DEFAULT_CIRCUIT_SLEEP_WINDOW_SECONDS,
        gt=0,
        description="Time an open circuit waits before a trial call",
    )
    circuit_rolling_window_seconds: float = Field(
        default=DEFAULT_CIRCUIT_ROLLING_WINDOW_SECONDS,
        gt=0,
        description="Length of the outcome window used for the error percentage",
    )

    # =========================================================================
    # Pydantic v2 Model Configuration
    # =========================================================================
    model_config = {
        "env_prefix": "PARTY_",
        "case_sensitive": False,
        "extra": "ignore",
        "populate_by_name": True,
    }

    # =========================================================================
    # Validators (Pydantic v2 pattern: @field_validator + @classmethod)
    # =========================================================================
    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level to uppercase.

        Args:
            v: Input log level string.

        Returns:
            Normalized uppercase log level.

        Raises:
            ValueError: If log level is not valid.
        """
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        normalized = v.upper()
        if normalized not in valid_levels:
            msg = f"log_level must be one of {valid_levels}, got '{v}'"
            raise ValueError(msg)
        return normalized

    @field_validator("party_base_url")
    @classmethod
    def validate_party_base_url(cls, v: str) -> str:
        """Require an absolute http(s) URL ending with a slash.

        Relative request paths are resolved against this URL, so the
        trailing slash is added when missing.
        """
        if not v.startswith(("http://", "https://")):
            msg = f"party_base_url must be an http(s) URL, got '{v}'"
            raise ValueError(msg)
        return v if v.endswith("/") else f"{v}/"


@lru_cache
def get_settings() -> Settings:
    """Get singleton Settings instance.

    Uses @lru_cache to ensure only one instance is created.

    Returns:
        Cached Settings instance.
    """
    return Settings()
