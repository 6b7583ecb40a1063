"""Tracer selection and construction for crm-party.

The process runs with exactly one tracer, chosen once at startup:

- no collector hostname: the OpenTelemetry no-op tracer, every span
  operation is discarded;
- collector hostname set: an SDK tracer sampling with a fixed probability,
  batching finished spans and sending them to the Jaeger agent over UDP.

Selection is a pure function of the hostname (``select_tracer``) so it can be
tested without touching the process environment. Construction
(``create_tracing``) turns the selected config into a ``TracingRuntime`` that
the application stores and passes explicitly to the middleware and the party
client. No global tracer provider is installed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from opentelemetry import trace
from opentelemetry.exporter.jaeger.thrift import JaegerExporter
from opentelemetry.propagators.composite import CompositePropagator
from opentelemetry.propagators.jaeger import JaegerPropagator
from opentelemetry.propagators.textmap import TextMapPropagator
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SpanExporter
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from opentelemetry.trace import NoOpTracerProvider, Tracer
from opentelemetry.trace.propagation.tracecontext import (
    TraceContextTextMapPropagator,
)

from crm_party.core.constants import (
    DEFAULT_JAEGER_AGENT_PORT,
    DEFAULT_REPORTER_FLUSH_INTERVAL_MS,
    DEFAULT_REPORTER_MAX_BATCH_SIZE,
    DEFAULT_SAMPLING_PROBABILITY,
    DEFAULT_SERVICE_NAME,
    SERVICE_VERSION as APP_VERSION,
)
from crm_party.core.logging import get_logger


if TYPE_CHECKING:
    from crm_party.core.config import Settings


logger = get_logger(__name__)

INSTRUMENTATION_NAME = "crm_party"


# =============================================================================
# Tracer Configurations
# =============================================================================


@dataclass(frozen=True)
class NoopTracerConfig:
    """Selects the no-op tracer. Nothing is sampled or reported."""

    service_name: str = DEFAULT_SERVICE_NAME


@dataclass(frozen=True)
class JaegerTracerConfig:
    """Selects the Jaeger tracer.

    Attributes:
        agent_host: Hostname of the Jaeger agent (not validated).
        agent_port: UDP port of the agent's compact Thrift endpoint.
        service_name: Service identifier attached to every span.
        sampling_probability: Fraction of root traces recorded.
        max_export_batch_size: Spans buffered before a batch is flushed.
        schedule_delay_millis: Maximum delay between two flushes.
    """

    agent_host: str
    agent_port: int = DEFAULT_JAEGER_AGENT_PORT
    service_name: str = DEFAULT_SERVICE_NAME
    sampling_probability: float = DEFAULT_SAMPLING_PROBABILITY
    max_export_batch_size: int = DEFAULT_REPORTER_MAX_BATCH_SIZE
    schedule_delay_millis: int = DEFAULT_REPORTER_FLUSH_INTERVAL_MS


TracerConfig = NoopTracerConfig | JaegerTracerConfig


def select_tracer(
    hostname: str | None,
    *,
    service_name: str = DEFAULT_SERVICE_NAME,
    agent_port: int = DEFAULT_JAEGER_AGENT_PORT,
    sampling_probability: float = DEFAULT_SAMPLING_PROBABILITY,
    max_export_batch_size: int = DEFAULT_REPORTER_MAX_BATCH_SIZE,
    schedule_delay_millis: int = DEFAULT_REPORTER_FLUSH_INTERVAL_MS,
) -> TracerConfig:
    """Choose the tracer variant from the collector hostname.

    Args:
        hostname: Collector hostname, ``None`` or empty when not configured.
        service_name: Service identifier for reported spans.
        agent_port: Jaeger agent UDP port.
        sampling_probability: Root sampling probability.
        max_export_batch_size: Batch size that triggers a flush.
        schedule_delay_millis: Flush interval.

    Returns:
        NoopTracerConfig when hostname is absent, JaegerTracerConfig otherwise.
    """
    if not hostname:
        return NoopTracerConfig(service_name=service_name)

    return JaegerTracerConfig(
        agent_host=hostname,
        agent_port=agent_port,
        service_name=service_name,
        sampling_probability=sampling_probability,
        max_export_batch_size=max_export_batch_size,
        schedule_delay_millis=schedule_delay_millis,
    )


def select_tracer_from_settings(settings: Settings) -> TracerConfig:
    """Apply ``select_tracer`` to the values held by ``settings``."""
    return select_tracer(
        settings.jaeger_server_hostname,
        service_name=settings.service_name,
        agent_port=settings.jaeger_agent_port,
        sampling_probability=settings.sampling_probability,
        max_export_batch_size=settings.reporter_max_batch_size,
        schedule_delay_millis=settings.reporter_flush_interval_ms,
    )


# =============================================================================
# Tracing Runtime
# =============================================================================


def build_propagator() -> TextMapPropagator:
    """W3C traceparent plus Jaeger uber-trace-id headers."""
    return CompositePropagator(
        [TraceContextTextMapPropagator(), JaegerPropagator()]
    )


@dataclass
class TracingRuntime:
    """The process tracer together with the provider that owns it.

    Attributes:
        config: The configuration the runtime was built from.
        provider: SDK provider for Jaeger, NoOpTracerProvider otherwise.
        tracer: Tracer handed to the middleware and the party client.
        exporter: Span exporter fed by the batch processor (Jaeger only).
        propagator: Header format used for inject/extract.
    """

    config: TracerConfig
    provider: trace.TracerProvider
    tracer: Tracer
    exporter: SpanExporter | None = None
    propagator: TextMapPropagator = field(default_factory=build_propagator)

    @property
    def is_noop(self) -> bool:
        """True when spans are discarded."""
        return isinstance(self.config, NoopTracerConfig)

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        """Export buffered spans now. Always True for the no-op tracer."""
        if isinstance(self.provider, TracerProvider):
            return self.provider.force_flush(timeout_millis)
        return True

    def shutdown(self) -> None:
        """Flush and stop the batch processor."""
        if isinstance(self.provider, TracerProvider):
            self.provider.shutdown()


def create_tracing(
    config: TracerConfig,
    exporter: SpanExporter | None = None,
) -> TracingRuntime:
    """Build the tracer described by ``config``.

    Args:
        config: Output of ``select_tracer``.
        exporter: Replaces the Jaeger UDP exporter when given. Ignored for
            the no-op variant.

    Returns:
        TracingRuntime holding the provider and its tracer.
    """
    if isinstance(config, NoopTracerConfig):
        logger.info("Using Noop tracer", service=config.service_name)
        provider: trace.TracerProvider = NoOpTracerProvider()
        return TracingRuntime(
            config=config,
            provider=provider,
            tracer=provider.get_tracer(INSTRUMENTATION_NAME, APP_VERSION),
        )

    logger.info(
        "Using Jaeger tracer",
        service=config.service_name,
        agent_host=config.agent_host,
        agent_port=config.agent_port,
        sampling_probability=config.sampling_probability,
    )

    # UDP sends are fire-and-forget: failures are logged by the exporter
    # thread and the batch is dropped.
    span_exporter = exporter or JaegerExporter(
        agent_host_name=config.agent_host,
        agent_port=config.agent_port,
        udp_split_oversized_batches=True,
    )

    resource = Resource.create(
        {SERVICE_NAME: config.service_name, SERVICE_VERSION: APP_VERSION}
    )
    sdk_provider = TracerProvider(
        resource=resource,
        sampler=ParentBased(root=TraceIdRatioBased(config.sampling_probability)),
    )
    sdk_provider.add_span_processor(
        BatchSpanProcessor(
            span_exporter,
            max_export_batch_size=config.max_export_batch_size,
            schedule_delay_millis=config.schedule_delay_millis,
        )
    )

    return TracingRuntime(
        config=config,
        provider=sdk_provider,
        tracer=sdk_provider.get_tracer(INSTRUMENTATION_NAME, APP_VERSION),
        exporter=span_exporter,
    )


def get_tracer(
    settings: Settings,
    exporter: SpanExporter | None = None,
) -> TracingRuntime:
    """Select and build the process tracer from settings."""
    return create_tracing(select_tracer_from_settings(settings), exporter=exporter)


# =============================================================================
# Propagation Helpers
# =============================================================================


def inject_trace_context(
    propagator: TextMapPropagator,
    carrier: Any,
    context: Any = None,
) -> Any:
    """Write trace headers for ``context`` (default: current) into ``carrier``."""
    propagator.inject(carrier, context=context)
    return carrier


def extract_trace_context(propagator: TextMapPropagator, headers: dict[str, Any]) -> Any:
    """Read the remote parent context from incoming headers."""
    return propagator.extract(headers)
