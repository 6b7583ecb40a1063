"""Tracing decorator for httpx transports.

``TracingTransport`` wraps any synchronous httpx transport. Every request
becomes a CLIENT span, child of the span current in the calling thread, with
the trace headers injected into the outgoing request. The HTTP status (or the
transport error) is recorded on the span before it ends.

The span is named after the remote operation when the request carries the
``OPERATION_EXTENSION`` extension, and after the HTTP method otherwise.
"""

from __future__ import annotations

from typing import Any

import httpx
from opentelemetry.propagators.textmap import TextMapPropagator
from opentelemetry.trace import SpanKind, Status, StatusCode, Tracer

from crm_party.core.logging import get_logger
from crm_party.observability.tracing import build_propagator, inject_trace_context


OPERATION_EXTENSION = "crm_party.operation"
COMPONENT = "httpx"


class TracingTransport(httpx.BaseTransport):
    """
    httpx transport decorator creating one span per outbound request.

    Args:
        transport: Transport doing the actual I/O.
        tracer: Tracer the spans are created with.
        propagator: Header format for the injected trace context.
    """

    def __init__(
        self,
        transport: httpx.BaseTransport,
        tracer: Tracer,
        propagator: TextMapPropagator | None = None,
    ) -> None:
        self._transport = transport
        self._tracer = tracer
        self._propagator = propagator or build_propagator()

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        operation = request.extensions.get(OPERATION_EXTENSION, request.method)

        with self._tracer.start_as_current_span(
            operation,
            kind=SpanKind.CLIENT,
            record_exception=False,
            set_status_on_exception=False,
        ) as span:
            span.set_attribute("component", COMPONENT)
            span.set_attribute("http.method", request.method)
            span.set_attribute("http.url", str(request.url))
            inject_trace_context(self._propagator, request.headers)

            try:
                response = self._transport.handle_request(request)
            except Exception as e:
                span.set_attribute("error", True)
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                raise

            span.set_attribute("http.status_code", response.status_code)
            if response.status_code >= 400:
                span.set_attribute("error", True)
                span.set_status(Status(StatusCode.ERROR))
            return response

    def close(self) -> None:
        self._transport.close()


# =============================================================================
# Call Logging
# =============================================================================


def basic_logging_hooks(name: str) -> dict[str, list[Any]]:
    """httpx event hooks logging method, URL and status. Bodies are never logged."""
    logger = get_logger(name)

    def log_request(request: httpx.Request) -> None:
        logger.debug("HTTP request", method=request.method, url=str(request.url))

    def log_response(response: httpx.Response) -> None:
        logger.info(
            "HTTP response",
            method=response.request.method,
            url=str(response.request.url),
            status_code=response.status_code,
        )

    return {"request": [log_request], "response": [log_response]}
