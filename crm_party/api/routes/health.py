"""Health check API route for crm-party.

``/api/health`` is excluded from request tracing, so probes never produce
spans.
"""

from __future__ import annotations

from fastapi import APIRouter, Request, status
from pydantic import BaseModel, Field

from crm_party.core.constants import DEFAULT_SERVICE_NAME, HEALTH_PATH, SERVICE_VERSION


# =============================================================================
# Constants
# =============================================================================

STATUS_OK = "ok"


# =============================================================================
# Response Models
# =============================================================================


class HealthResponse(BaseModel):
    """Response model for the liveness endpoint."""

    status: str = Field(
        default=STATUS_OK,
        description="Service health status",
        examples=["ok"],
    )
    service: str = Field(
        default=DEFAULT_SERVICE_NAME,
        description="Service name",
        examples=["amazon.crm.party"],
    )
    version: str = Field(
        default=SERVICE_VERSION,
        description="Service version",
        examples=["0.1.0"],
    )
    tracer: str | None = Field(
        default=None,
        description="Active tracer (jaeger or noop)",
        examples=["noop"],
    )


# =============================================================================
# Router
# =============================================================================

router = APIRouter(tags=["health"])


@router.get(
    HEALTH_PATH,
    response_model=HealthResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    summary="Liveness check",
    description="Returns 200 if the service is running. Never traced.",
)
async def health_check(request: Request) -> HealthResponse:
    """Liveness probe endpoint.

    Args:
        request: FastAPI request to access app state.

    Returns:
        HealthResponse with status 'ok'.
    """
    tracing = getattr(request.app.state, "tracing", None)
    tracer_kind = None
    if tracing is not None:
        tracer_kind = "noop" if tracing.is_noop else "jaeger"

    return HealthResponse(
        status=STATUS_OK,
        service=getattr(request.app.state, "service_name", DEFAULT_SERVICE_NAME),
        version=SERVICE_VERSION,
        tracer=tracer_kind,
    )
