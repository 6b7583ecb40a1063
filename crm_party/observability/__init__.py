"""Observability Package: distributed tracing for crm-party.

Spans are reported to a Jaeger agent over UDP when JAEGER_SERVER_HOSTNAME
is set, and discarded otherwise.
"""

from crm_party.observability.context import ContextCarrier
from crm_party.observability.middleware import TracingMiddleware, get_skip_pattern
from crm_party.observability.tracing import (
    JaegerTracerConfig,
    NoopTracerConfig,
    TracerConfig,
    TracingRuntime,
    create_tracing,
    get_tracer,
    select_tracer,
)

__all__ = [
    "ContextCarrier",
    "JaegerTracerConfig",
    "NoopTracerConfig",
    "TracerConfig",
    "TracingMiddleware",
    "TracingRuntime",
    "create_tracing",
    "get_skip_pattern",
    "get_tracer",
    "select_tracer",
]
