"""Inbound request tracing.

Every HTTP request gets one SERVER span, parented on the trace context sent
by the caller, except requests whose path matches the skip pattern (the
health check by default).
"""

from __future__ import annotations

import re
from typing import Any, Callable

from opentelemetry.propagators.textmap import TextMapPropagator
from opentelemetry.trace import SpanKind, Status, StatusCode, Tracer

from crm_party.core.constants import DEFAULT_TRACING_SKIP_PATTERN
from crm_party.observability.tracing import build_propagator, extract_trace_context


def get_skip_pattern(pattern: str = DEFAULT_TRACING_SKIP_PATTERN) -> re.Pattern[str]:
    """Paths never wrapped in a span.

    Matching is against the full request path, so ``/api/health`` does not
    exclude ``/api/health/details``.
    """
    return re.compile(pattern)


def _headers_to_dict(headers: list[tuple[bytes, bytes]]) -> dict[str, str]:
    """Convert ASGI headers to dict for propagation."""
    return {
        key.decode("latin-1").lower(): value.decode("latin-1")
        for key, value in headers
    }


class TracingMiddleware:
    """
    ASGI middleware creating a span per traced HTTP request.

    The tracer is passed in explicitly; with the no-op tracer the spans are
    non-recording and cost nothing.
    """

    def __init__(
        self,
        app: Callable[..., Any],
        tracer: Tracer,
        skip_pattern: re.Pattern[str] | None = None,
        propagator: TextMapPropagator | None = None,
    ) -> None:
        self.app = app
        self.tracer = tracer
        self.skip_pattern = skip_pattern or get_skip_pattern()
        self.propagator = propagator or build_propagator()

    def is_skipped(self, path: str) -> bool:
        return self.skip_pattern.fullmatch(path) is not None

    async def __call__(
        self,
        scope: dict[str, Any],
        receive: Callable[..., Any],
        send: Callable[..., Any],
    ) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        method = scope.get("method", "GET")
        path = scope.get("path", "/")

        if self.is_skipped(path):
            await self.app(scope, receive, send)
            return

        headers_dict = _headers_to_dict(scope.get("headers", []))
        parent_context = extract_trace_context(self.propagator, headers_dict)

        span_name = f"{method} {path}"
        status_code = 500

        async def send_wrapper(message: dict[str, Any]) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 500)
            await send(message)

        with self.tracer.start_as_current_span(
            span_name,
            context=parent_context,
            kind=SpanKind.SERVER,
            record_exception=False,
            set_status_on_exception=False,
        ) as span:
            span.set_attribute("http.method", method)
            span.set_attribute("http.target", path)

            try:
                await self.app(scope, receive, send_wrapper)
            except Exception as e:
                span.set_attribute("http.status_code", 500)
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                raise

            span.set_attribute("http.status_code", status_code)
            if status_code >= 500:
                span.set_status(Status(StatusCode.ERROR))
