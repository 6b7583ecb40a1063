"""Custom exceptions for crm-party.

Exception Hierarchy:
    PartyServiceError (base)
    ├── RetriableError (downstream failures, absorbed by the fallback)
    │   ├── DownstreamUnavailableError
    │   ├── DownstreamTimeoutError
    │   ├── CircuitOpenError
    │   └── ExecutionRejectedError
    └── NonRetriableError (escape to the caller)
        ├── RequestConstructionError
        └── ConfigurationError

Retriable errors never reach request handlers: the fallback executor turns
them into the configured fallback value. Non-retriable errors are caller-side
programming errors and propagate synchronously.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


# =============================================================================
# Error Codes Enum
# =============================================================================


class ErrorCode(str, Enum):
    """Error codes for crm-party exceptions.

    These codes provide a consistent way to identify error types
    across the API and in logging.
    """

    # Base error
    PARTY_SERVICE_ERROR = "PARTY_SERVICE_ERROR"

    # Retriable errors
    DOWNSTREAM_UNAVAILABLE = "DOWNSTREAM_UNAVAILABLE"
    DOWNSTREAM_TIMEOUT = "DOWNSTREAM_TIMEOUT"
    CIRCUIT_OPEN = "CIRCUIT_OPEN"
    EXECUTION_REJECTED = "EXECUTION_REJECTED"

    # Non-retriable errors
    REQUEST_CONSTRUCTION = "REQUEST_CONSTRUCTION"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


# =============================================================================
# Base Exception
# =============================================================================


class PartyServiceError(Exception):
    """Base exception for all crm-party errors.

    Attributes:
        message: Human-readable error message.
        error_code: Machine-readable error code from ErrorCode enum.
    """

    def __init__(
        self,
        message: str,
        error_code: str | ErrorCode = ErrorCode.PARTY_SERVICE_ERROR,
        **kwargs: Any,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error message.
            error_code: Machine-readable error code.
            **kwargs: Additional attributes to set on the exception.
        """
        super().__init__(message)
        self.message = message
        self.error_code = (
            error_code.value if isinstance(error_code, ErrorCode) else error_code
        )

        for key, value in kwargs.items():
            setattr(self, key, value)


# =============================================================================
# Retriable Error Base
# =============================================================================


class RetriableError(PartyServiceError):
    """Base class for downstream failures that a later call may not see.

    Attributes:
        operation: Remote operation that failed, when known.
    """

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        error_code: str | ErrorCode = ErrorCode.PARTY_SERVICE_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)
        self.operation = operation


# =============================================================================
# Non-Retriable Error Base
# =============================================================================


class NonRetriableError(PartyServiceError):
    """Base class for errors caused by the caller or by configuration."""

    pass


# =============================================================================
# Retriable Exceptions
# =============================================================================


class DownstreamUnavailableError(RetriableError):
    """Downstream call failed: connection error, non-2xx or undecodable body.

    Attributes:
        status_code: HTTP status returned by the downstream, if any.
    """

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        status_code: int | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message,
            operation=operation,
            error_code=ErrorCode.DOWNSTREAM_UNAVAILABLE,
            **kwargs,
        )
        self.status_code = status_code


class DownstreamTimeoutError(RetriableError):
    """Downstream call did not finish within the executor timeout.

    Attributes:
        timeout_seconds: The timeout that was exceeded.
    """

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        timeout_seconds: float | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message,
            operation=operation,
            error_code=ErrorCode.DOWNSTREAM_TIMEOUT,
            **kwargs,
        )
        self.timeout_seconds = timeout_seconds


class CircuitOpenError(RetriableError):
    """The circuit breaker is open and the call was short-circuited."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message,
            operation=operation,
            error_code=ErrorCode.CIRCUIT_OPEN,
            **kwargs,
        )


class ExecutionRejectedError(RetriableError):
    """The isolated worker pool had no free slot for the call.

    Attributes:
        max_concurrent: Size of the worker pool.
    """

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        max_concurrent: int | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message,
            operation=operation,
            error_code=ErrorCode.EXECUTION_REJECTED,
            **kwargs,
        )
        self.max_concurrent = max_concurrent


# =============================================================================
# Non-Retriable Exceptions
# =============================================================================


class RequestConstructionError(NonRetriableError):
    """The outbound request could not be built from the caller's arguments.

    Raised synchronously and never replaced by a fallback.

    Attributes:
        operation: Remote operation being called.
    """

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message,
            error_code=ErrorCode.REQUEST_CONSTRUCTION,
            **kwargs,
        )
        self.operation = operation


class ConfigurationError(NonRetriableError):
    """Service configuration is invalid.

    Attributes:
        setting: Name of the problematic setting.
    """

    def __init__(
        self,
        message: str,
        setting: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message,
            error_code=ErrorCode.CONFIGURATION_ERROR,
            **kwargs,
        )
        self.setting = setting
