"""Error handlers for FastAPI exception handling.

Downstream failures never reach this layer: the party client answers them
with its fallback. What remains are caller errors and configuration errors.

Error Response Schema:
{
    "error": {
        "code": "ERROR_CODE",
        "message": "Human-readable message",
        "type": "retriable|non_retriable",
        "provider": "amazon.crm.party",
        "details": {...}
    }
}
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from crm_party.core.constants import DEFAULT_SERVICE_NAME
from crm_party.core.exceptions import (
    ConfigurationError,
    ErrorCode,
    NonRetriableError,
    PartyServiceError,
    RequestConstructionError,
    RetriableError,
)
from crm_party.core.logging import get_logger


logger = get_logger(__name__)


# =============================================================================
# Error Response Models (Pydantic)
# =============================================================================


class ErrorDetail(BaseModel):
    """Error detail schema.

    Attributes:
        code: Machine-readable error code.
        message: Human-readable error message.
        type: Error type (retriable or non_retriable).
        provider: Service that generated the error.
        details: Additional error-specific information.
    """

    code: str
    message: str
    type: str
    provider: str = DEFAULT_SERVICE_NAME
    details: dict[str, Any] | None = None


class ErrorResponse(BaseModel):
    """Error response wrapper."""

    error: ErrorDetail


# =============================================================================
# Status Code Mapping
# =============================================================================


def get_status_code_for_error(error: Exception) -> int:
    """Determine HTTP status code based on exception type.

    Args:
        error: The exception to get status code for.

    Returns:
        Appropriate HTTP status code.
    """
    if isinstance(error, RequestConstructionError):
        return 400
    if isinstance(error, RetriableError):
        return 503
    return 500


def extract_error_details(error: Exception) -> dict[str, Any]:
    """Extract additional details from exception attributes.

    Args:
        error: The exception to extract details from.

    Returns:
        Dictionary of error details.
    """
    known_attrs = [
        "operation",
        "status_code",
        "timeout_seconds",
        "max_concurrent",
        "setting",
    ]

    details: dict[str, Any] = {}
    for attr in known_attrs:
        value = getattr(error, attr, None)
        if value is not None:
            details[attr] = value
    return details


def build_error_response(error: Exception, error_type: str) -> ErrorResponse:
    """Build a standardized error response.

    Args:
        error: The exception that occurred.
        error_type: Either "retriable" or "non_retriable".

    Returns:
        ErrorResponse with structured error information.
    """
    code = getattr(error, "error_code", ErrorCode.PARTY_SERVICE_ERROR.value)
    message = getattr(error, "message", str(error))
    details = extract_error_details(error)

    return ErrorResponse(
        error=ErrorDetail(
            code=code,
            message=message,
            type=error_type,
            details=details or None,
        )
    )


# =============================================================================
# Exception Handlers
# =============================================================================


async def party_service_error_handler(
    _request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle PartyServiceError and its subclasses.

    Args:
        _request: The FastAPI request (unused).
        exc: The exception that was raised.

    Returns:
        JSONResponse with error details.
    """
    if not isinstance(exc, PartyServiceError):
        return generic_error_handler(_request, exc)

    error_type = "retriable" if isinstance(exc, RetriableError) else "non_retriable"
    status_code = get_status_code_for_error(exc)

    if isinstance(exc, ConfigurationError):
        logger.error("Configuration error", error=exc.message, setting=exc.setting)

    return JSONResponse(
        status_code=status_code,
        content=build_error_response(exc, error_type).model_dump(),
    )


def generic_error_handler(
    _request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle generic/unexpected exceptions.

    Args:
        _request: The FastAPI request (unused).
        exc: The exception that was raised.

    Returns:
        JSONResponse with 500 status code.
    """
    logger.error("Unhandled exception", error=str(exc), exc_type=type(exc).__name__)

    response = ErrorResponse(
        error=ErrorDetail(
            code=ErrorCode.PARTY_SERVICE_ERROR.value,
            message=f"Internal server error: {exc!s}",
            type="non_retriable",
            details=None,
        )
    )

    return JSONResponse(
        status_code=500,
        content=response.model_dump(),
    )


# =============================================================================
# Handler Registration
# =============================================================================


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application.

    Args:
        app: The FastAPI application instance.
    """
    app.add_exception_handler(RequestConstructionError, party_service_error_handler)
    app.add_exception_handler(ConfigurationError, party_service_error_handler)
    app.add_exception_handler(NonRetriableError, party_service_error_handler)
    app.add_exception_handler(RetriableError, party_service_error_handler)
    app.add_exception_handler(PartyServiceError, party_service_error_handler)

    # Catch-all for unexpected exceptions
    app.add_exception_handler(Exception, generic_error_handler)
