"""Construction of the party service client.

``build_party_client`` assembles, once per process:

1. the fallback executor (isolated worker pool, timeout, circuit breaker),
   which carries the caller's trace context into its worker threads;
2. an httpx transport decorated with ``TracingTransport``;
3. basic call logging and JSON decoding;
4. ``HttpPartyService`` bound to the party base URL with the static fallback.
"""

from __future__ import annotations

import httpx
from opentelemetry.propagators.textmap import TextMapPropagator
from opentelemetry.trace import Tracer

from crm_party.clients.party import HttpPartyService, PartyService, StaticPartyFallback
from crm_party.clients.transport import TracingTransport, basic_logging_hooks
from crm_party.core.config import Settings, get_settings
from crm_party.core.logging import get_logger
from crm_party.resilience.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from crm_party.resilience.fallback import FallbackExecutor


logger = get_logger(__name__)

PARTY_DEPENDENCY = "party"


def build_fallback_executor(settings: Settings) -> FallbackExecutor:
    """Executor and breaker configured from the PARTY_* settings."""
    breaker = CircuitBreaker(
        PARTY_DEPENDENCY,
        CircuitBreakerConfig(
            request_volume_threshold=settings.circuit_request_volume_threshold,
            error_threshold_percentage=settings.circuit_error_threshold_percentage,
            sleep_window_seconds=settings.circuit_sleep_window_seconds,
            rolling_window_seconds=settings.circuit_rolling_window_seconds,
        ),
    )
    return FallbackExecutor(
        PARTY_DEPENDENCY,
        breaker=breaker,
        timeout_seconds=settings.party_timeout_seconds,
        max_workers=settings.fallback_pool_size,
    )


def build_party_client(
    tracer: Tracer,
    settings: Settings | None = None,
    *,
    propagator: TextMapPropagator | None = None,
    transport: httpx.BaseTransport | None = None,
    fallback: PartyService | None = None,
) -> HttpPartyService:
    """Build the traced, fallback-protected party client.

    Args:
        tracer: Process tracer; outbound calls become its CLIENT spans.
        settings: Defaults to the cached application settings.
        propagator: Trace header format. Defaults to W3C + Jaeger.
        transport: Transport doing the I/O, wrapped with tracing.
            Defaults to ``httpx.HTTPTransport``.
        fallback: Defaults to ``StaticPartyFallback``.

    Returns:
        HttpPartyService ready to be shared by all request handlers.
    """
    settings = settings or get_settings()

    executor = build_fallback_executor(settings)

    traced_transport = TracingTransport(
        transport or httpx.HTTPTransport(),
        tracer,
        propagator=propagator,
    )

    client = httpx.Client(
        base_url=settings.party_base_url,
        transport=traced_transport,
        timeout=settings.party_timeout_seconds,
        event_hooks=basic_logging_hooks("crm_party.clients.party"),
    )

    logger.info(
        "Party client configured",
        base_url=settings.party_base_url,
        timeout_seconds=settings.party_timeout_seconds,
        pool_size=settings.fallback_pool_size,
    )

    return HttpPartyService(
        client,
        executor,
        fallback=fallback or StaticPartyFallback(),
    )
