"""FastAPI application entrypoint for crm-party.

Patterns applied:
- Application factory building the process-wide tracer and party client
  once and storing them on ``app.state`` (no module-level app; uvicorn runs
  ``create_app`` in factory mode)
- asynccontextmanager lifespan releasing them on shutdown
- configure_logging() called ONCE before anything logs
- Docs disabled in production
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
import uvicorn
from fastapi import FastAPI
from opentelemetry.sdk.trace.export import SpanExporter

from crm_party.api.error_handlers import register_exception_handlers
from crm_party.api.routes.health import router as health_router
from crm_party.api.routes.party import router as party_router
from crm_party.clients.factory import build_party_client
from crm_party.core.config import Settings, get_settings
from crm_party.core.constants import SERVICE_VERSION
from crm_party.core.logging import configure_logging, get_logger
from crm_party.observability.middleware import TracingMiddleware, get_skip_pattern
from crm_party.observability.tracing import get_tracer


# =============================================================================
# Application Metadata
# =============================================================================
APP_NAME = "crm-party"
APP_DESCRIPTION = "Party service front with distributed tracing and downstream fallback"
APP_VERSION = SERVICE_VERSION


# =============================================================================
# Lifespan Context Manager
# =============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan - startup and shutdown events.

    Args:
        app: FastAPI application instance.

    Yields:
        None after startup, before shutdown.
    """
    logger = get_logger(__name__)
    settings: Settings = app.state.settings

    logger.info(
        "Application starting",
        service=settings.service_name,
        version=APP_VERSION,
        environment=settings.environment,
        port=settings.port,
        tracer="noop" if app.state.tracing.is_noop else "jaeger",
    )
    app.state.initialized = True

    yield

    logger.info("Application shutting down", service=settings.service_name)
    app.state.party_service.close()
    app.state.tracing.shutdown()
    app.state.initialized = False


# =============================================================================
# Application Factory
# =============================================================================
def create_app(
    settings: Settings | None = None,
    *,
    span_exporter: SpanExporter | None = None,
    party_transport: httpx.BaseTransport | None = None,
) -> FastAPI:
    """Build the application and its process-wide collaborators.

    Args:
        settings: Defaults to the cached environment settings.
        span_exporter: Replaces the Jaeger UDP exporter (tests).
        party_transport: Replaces the HTTP transport to the party service (tests).

    Returns:
        Configured FastAPI application.
    """
    settings = settings or get_settings()

    configure_logging(level=settings.log_level, force=True)

    tracing = get_tracer(settings, exporter=span_exporter)
    party_service = build_party_client(
        tracing.tracer,
        settings,
        propagator=tracing.propagator,
        transport=party_transport,
    )

    app = FastAPI(
        title=APP_NAME,
        description=APP_DESCRIPTION,
        version=APP_VERSION,
        docs_url="/docs" if settings.environment != "production" else None,
        redoc_url="/redoc" if settings.environment != "production" else None,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.service_name = settings.service_name
    app.state.environment = settings.environment
    app.state.tracing = tracing
    app.state.party_service = party_service
    app.state.initialized = False

    app.add_middleware(
        TracingMiddleware,
        tracer=tracing.tracer,
        skip_pattern=get_skip_pattern(settings.tracing_skip_pattern),
        propagator=tracing.propagator,
    )

    app.include_router(health_router)
    app.include_router(party_router)

    register_exception_handlers(app)

    return app


# =============================================================================
# Server Entrypoint
# =============================================================================
def run() -> None:
    """Serve the application with uvicorn.

    uvicorn calls ``create_app`` itself (factory mode), so importing this
    module builds no tracer, client or worker pool.
    """
    settings = get_settings()
    uvicorn.run(
        "crm_party.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    run()
